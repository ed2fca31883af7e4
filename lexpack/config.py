"""Configuration for locating and bounding the dataset file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .resource_limits import ResourceBudget

DATASET_ENV = "LEXPACK_DATASET"
MAX_CONTAINER_BYTES_ENV = "LEXPACK_MAX_CONTAINER_BYTES"


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class DatasetConfig:
    """Where the packed dataset lives and how much of it may be decoded."""

    dataset_path: Optional[Path] = None
    budget: ResourceBudget = field(default_factory=ResourceBudget)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DatasetConfig":
        env = os.environ if environ is None else environ
        raw_path = env.get(DATASET_ENV, "").strip()
        raw_limit = env.get(MAX_CONTAINER_BYTES_ENV, "").strip()
        budget = ResourceBudget()
        if raw_limit:
            try:
                budget = ResourceBudget(max_container_bytes=int(raw_limit))
            except ValueError as exc:
                raise ConfigurationError(
                    f"{MAX_CONTAINER_BYTES_ENV} must be a positive integer, got {raw_limit!r}"
                ) from exc
        return cls(dataset_path=Path(raw_path) if raw_path else None, budget=budget)

    def with_dataset(self, path: Optional[str]) -> "DatasetConfig":
        if not path:
            return self
        return DatasetConfig(dataset_path=Path(path), budget=self.budget)

    def require_dataset_path(self) -> Path:
        if self.dataset_path is None:
            raise ConfigurationError(
                f"no dataset configured; set {DATASET_ENV} or pass --dataset"
            )
        return self.dataset_path


__all__ = [
    "DATASET_ENV",
    "MAX_CONTAINER_BYTES_ENV",
    "ConfigurationError",
    "DatasetConfig",
]
