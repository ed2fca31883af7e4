"""Embedded per-platform datasets.

Every platform build ships one dataset image inside a Python package and tags
it with its own magic. A single :class:`EmbeddedDataManager` covers all of
them; platforms differ only in their :class:`PlatformProfile`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import resources
from typing import Dict, Tuple, Union

from .data_manager import DataManager
from .format import FormatError
from .resource_limits import ResourceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformProfile:
    """Where a platform's embedded image lives and which magic it carries."""

    name: str
    magic: bytes
    package: str
    resource: str

    def load_bytes(self) -> bytes:
        return resources.files(self.package).joinpath(self.resource).read_bytes()


class EmbeddedDataManager(DataManager):
    """Data manager initialised eagerly from an embedded image."""

    def __init__(self, data: bytes, magic: Union[bytes, str], *, label: str = "embedded") -> None:
        super().__init__()
        try:
            self.init_from_array(data, magic)
        except FormatError as exc:
            raise FormatError(f"Embedded dataset '{label}' is broken: {exc}") from exc
        self.label = label

    @classmethod
    def from_profile(cls, profile: PlatformProfile) -> "EmbeddedDataManager":
        try:
            data = profile.load_bytes()
        except (ModuleNotFoundError, OSError) as exc:
            raise ResourceError(
                f"Embedded dataset for platform '{profile.name}' is unavailable: {exc}"
            ) from exc
        return cls(data, profile.magic, label=profile.name)


_PLATFORMS: Dict[str, PlatformProfile] = {}


def register_platform(profile: PlatformProfile, *, replace: bool = False) -> None:
    if profile.name in _PLATFORMS and not replace:
        raise ValueError(f"platform '{profile.name}' is already registered")
    _PLATFORMS[profile.name] = profile


def unregister_platform(name: str) -> None:
    _PLATFORMS.pop(name, None)


def get_platform(name: str) -> PlatformProfile:
    try:
        return _PLATFORMS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown platform: {name}") from exc


def available_platforms() -> Tuple[str, ...]:
    return tuple(sorted(_PLATFORMS))


def create_data_manager(platform: str) -> EmbeddedDataManager:
    profile = get_platform(platform)
    logger.debug("Loading embedded dataset for platform %s", profile.name)
    return EmbeddedDataManager.from_profile(profile)


__all__ = [
    "EmbeddedDataManager",
    "PlatformProfile",
    "available_platforms",
    "create_data_manager",
    "get_platform",
    "register_platform",
    "unregister_platform",
]
