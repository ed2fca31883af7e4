"""Format version constants for dataset images and packed containers."""

from __future__ import annotations

from typing import Dict

# Layout revision of the section directory that follows the magic tag.
DIRECTORY_VERSION = 1

# Value the packed container's ``format_version`` field must carry.
SYSTEM_DICTIONARY_FORMAT_VERSION = 1


def ensure_directory_version(version: int) -> None:
    """Raise if *version* is not the directory layout this decoder reads."""

    if version != DIRECTORY_VERSION:
        raise ValueError(
            f"Unsupported section directory version {version}; expected {DIRECTORY_VERSION}"
        )


def ensure_container_version(version: int) -> None:
    """Raise if a packed container declares a different format version."""

    if version != SYSTEM_DICTIONARY_FORMAT_VERSION:
        raise ValueError(
            "System dictionary data format version mismatch: "
            f"expected {SYSTEM_DICTIONARY_FORMAT_VERSION}, actual {version}"
        )


def compatibility_summary() -> Dict[str, int]:
    """Return the versions this build reads, for ``lexpack inspect``."""

    return {
        "directory_version": DIRECTORY_VERSION,
        "container_format_version": SYSTEM_DICTIONARY_FORMAT_VERSION,
    }


__all__ = [
    "DIRECTORY_VERSION",
    "SYSTEM_DICTIONARY_FORMAT_VERSION",
    "compatibility_summary",
    "ensure_container_version",
    "ensure_directory_version",
]
