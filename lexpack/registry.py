"""Process-level slot holding the loaded packed dataset.

Loading is all-or-nothing: a missing path, an unreadable file or a broken
container is logged and escalated to :class:`SystemExit`, because the
application cannot run without its language data. Concurrent first access is
supported; the slot is filled under a lock so at most one instance is ever
constructed and every caller observes the same one.
"""

from __future__ import annotations

import logging
import mmap
import threading
from pathlib import Path
from typing import Optional

from .config import ConfigurationError, DatasetConfig
from .format import FormatError
from .packed import PackedDataManager
from .resource_limits import ResourceBudget, ResourceError

logger = logging.getLogger(__name__)


def read_mapped_file(path: Path, budget: Optional[ResourceBudget] = None) -> bytes:
    """Memory-map *path* and return an owned copy of its contents."""

    try:
        with path.open("rb") as handle:
            size = handle.seek(0, 2)
            if budget is not None:
                budget.ensure_container(size)
            if size == 0:
                return b""
            with mmap.mmap(handle.fileno(), 0, access=mmap.ACCESS_READ) as mapped:
                return mapped[:]
    except OSError as exc:
        raise ResourceError(f"unable to map dataset '{path}': {exc}") from exc


class DatasetRegistry:
    """Caller-owned holder for at most one :class:`PackedDataManager`."""

    def __init__(self, config: Optional[DatasetConfig] = None) -> None:
        self._config = config or DatasetConfig()
        self._instance: Optional[PackedDataManager] = None
        self._lock = threading.Lock()

    @property
    def config(self) -> DatasetConfig:
        return self._config

    def get(self) -> Optional[PackedDataManager]:
        return self._instance

    def register(self, instance: Optional[PackedDataManager]) -> None:
        with self._lock:
            self._instance = instance

    def clear(self) -> None:
        self.register(None)

    def load(self) -> PackedDataManager:
        """Load the configured dataset, raising recoverable errors."""

        path = self._config.require_dataset_path()
        logger.info("Loading packed dataset from %s", path)
        buffer = read_mapped_file(path, self._config.budget)
        return PackedDataManager.from_bytes(buffer, budget=self._config.budget)

    def get_or_load(self) -> PackedDataManager:
        instance = self._instance
        if instance is not None:
            return instance
        with self._lock:
            if self._instance is None:
                try:
                    self._instance = self.load()
                except (ConfigurationError, ResourceError, FormatError) as exc:
                    logger.critical("Unable to load the packed dataset: %s", exc)
                    raise SystemExit(f"fatal: unable to load the packed dataset: {exc}") from exc
            return self._instance


_default_registry: Optional[DatasetRegistry] = None
_default_lock = threading.Lock()


def default_registry() -> DatasetRegistry:
    """Return the process-wide registry configured from the environment."""

    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = DatasetRegistry(DatasetConfig.from_env())
        return _default_registry


def reset_default_registry(config: Optional[DatasetConfig] = None) -> DatasetRegistry:
    """Replace the process-wide registry, mainly for tests and CLI bootstrap."""

    global _default_registry
    with _default_lock:
        _default_registry = DatasetRegistry(config or DatasetConfig.from_env())
        return _default_registry


def get_user_pos_manager() -> PackedDataManager:
    return default_registry().get_or_load()


def register_packed_data_manager(instance: Optional[PackedDataManager]) -> None:
    default_registry().register(instance)


def get_packed_data_manager() -> Optional[PackedDataManager]:
    return default_registry().get()


__all__ = [
    "DatasetRegistry",
    "default_registry",
    "get_packed_data_manager",
    "get_user_pos_manager",
    "read_mapped_file",
    "register_packed_data_manager",
    "reset_default_registry",
]
