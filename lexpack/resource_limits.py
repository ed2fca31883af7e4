"""Resource budgeting helpers for decoding untrusted containers."""

from __future__ import annotations

import gzip
import io
import zlib
from dataclasses import dataclass

from .format import FormatError

DEFAULT_MAX_CONTAINER_BYTES = 64 << 20
GZIP_READ_CHUNK = 1 << 16


class ResourceError(RuntimeError):
    """Raised when a dataset cannot be read within the available resources."""


class ResourceBudgetExceeded(ResourceError):
    """Raised when a container exceeds configured resource limits."""


@dataclass(frozen=True)
class ResourceBudget:
    """Declarative limits covering the container decode stage."""

    max_container_bytes: int = DEFAULT_MAX_CONTAINER_BYTES

    def __post_init__(self) -> None:
        if self.max_container_bytes <= 0:
            raise ValueError("max_container_bytes must be positive")

    def ensure_container(self, size: int) -> None:
        if size > self.max_container_bytes:
            raise ResourceBudgetExceeded(
                f"container body {size} bytes exceeds budgeted maximum {self.max_container_bytes}"
            )


def read_gzip_bounded(data: bytes, budget: ResourceBudget) -> bytes:
    """Inflate *data* without ever holding more than the budget allows."""

    collected = bytearray()
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(data), mode="rb") as stream:
            while True:
                chunk = stream.read(GZIP_READ_CHUNK)
                if not chunk:
                    break
                collected.extend(chunk)
                budget.ensure_container(len(collected))
    except (OSError, EOFError, zlib.error) as exc:
        raise FormatError(f"corrupt gzip container: {exc}") from exc
    return bytes(collected)


__all__ = [
    "DEFAULT_MAX_CONTAINER_BYTES",
    "ResourceBudget",
    "ResourceBudgetExceeded",
    "ResourceError",
    "read_gzip_bounded",
]
