"""Binary framing helpers for sectioned dataset images.

The magic comparison is byte-exact and an empty magic is refused. A packed
container that ships a nested image but leaves ``mozc_data_magic`` unset
therefore fails to load.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Mapping, Tuple

from .sections import SECTION_SPECS, SECTIONS_BY_ID, SECTIONS_BY_NAME
from .versioning import DIRECTORY_VERSION, ensure_directory_version

DIRECTORY_HEADER_STRUCT = struct.Struct("<HH")
DIRECTORY_ENTRY_STRUCT = struct.Struct("<HQQ")
DIRECTORY_HEADER_SIZE = DIRECTORY_HEADER_STRUCT.size
DIRECTORY_ENTRY_SIZE = DIRECTORY_ENTRY_STRUCT.size

PAYLOAD_ALIGNMENT = 4


class FormatError(ValueError):
    """Raised when a dataset image or container fails validation."""


class HeaderFormatError(FormatError):
    """Raised when the leading magic tag does not match."""


@dataclass(frozen=True)
class DirectoryEntry:
    """Location of one section inside a dataset image."""

    section_id: int
    offset: int
    length: int

    @property
    def name(self) -> str:
        return SECTIONS_BY_ID[self.section_id].name

    @property
    def end(self) -> int:
        return self.offset + self.length


def check_magic(buffer: bytes, magic: bytes) -> None:
    """Raise :class:`HeaderFormatError` unless *buffer* starts with *magic*."""

    if not magic:
        raise HeaderFormatError("dataset magic must not be empty")
    if len(buffer) < len(magic) + DIRECTORY_HEADER_SIZE:
        raise HeaderFormatError(
            f"broken dataset: {len(buffer)} bytes is too small for magic and header"
        )
    actual = bytes(buffer[: len(magic)])
    if actual != magic:
        raise HeaderFormatError(
            f"broken dataset: unexpected magic {actual!r} (expected {magic!r})"
        )


def read_directory(buffer: bytes, magic: bytes) -> Tuple[DirectoryEntry, ...]:
    """Validate *buffer* and return its section directory.

    Every check happens here, once: the magic, the directory version, each
    entry's section id and each payload range. Callers bind views from the
    returned entries without re-validating them.
    """

    check_magic(buffer, magic)
    offset = len(magic)
    version, count = DIRECTORY_HEADER_STRUCT.unpack_from(buffer, offset)
    try:
        ensure_directory_version(version)
    except ValueError as exc:
        raise FormatError(str(exc)) from exc
    offset += DIRECTORY_HEADER_SIZE
    directory_end = offset + count * DIRECTORY_ENTRY_SIZE
    if directory_end > len(buffer):
        raise FormatError("truncated section directory")
    entries = []
    seen = set()
    for _ in range(count):
        section_id, start, length = DIRECTORY_ENTRY_STRUCT.unpack_from(buffer, offset)
        offset += DIRECTORY_ENTRY_SIZE
        if section_id not in SECTIONS_BY_ID:
            raise FormatError(f"unknown section id {section_id}")
        if section_id in seen:
            raise FormatError(f"duplicate section '{SECTIONS_BY_ID[section_id].name}'")
        seen.add(section_id)
        if start < directory_end or start + length > len(buffer):
            raise FormatError(
                f"section '{SECTIONS_BY_ID[section_id].name}' spans "
                f"[{start}, {start + length}) outside the payload area"
            )
        entries.append(DirectoryEntry(section_id, start, length))
    return tuple(entries)


def _padding(size: int) -> int:
    return -size % PAYLOAD_ALIGNMENT


def write_dataset(sections: Mapping[str, bytes], magic: bytes) -> bytes:
    """Serialise *sections* into a dataset image tagged with *magic*.

    Payloads are laid out in section-table order, each starting on a
    four byte boundary relative to the start of the image.
    """

    unknown = set(sections) - set(SECTIONS_BY_NAME)
    if unknown:
        raise FormatError(f"unknown section(s): {sorted(unknown)}")
    ordered = [(spec, bytes(sections[spec.name])) for spec in SECTION_SPECS if spec.name in sections]
    header_size = len(magic) + DIRECTORY_HEADER_SIZE + len(ordered) * DIRECTORY_ENTRY_SIZE
    cursor = header_size + _padding(header_size)
    directory = [DIRECTORY_HEADER_STRUCT.pack(DIRECTORY_VERSION, len(ordered))]
    body = [b"\0" * _padding(header_size)]
    for spec, payload in ordered:
        directory.append(DIRECTORY_ENTRY_STRUCT.pack(spec.section_id, cursor, len(payload)))
        pad = _padding(len(payload))
        body.append(payload + b"\0" * pad)
        cursor += len(payload) + pad
    return magic + b"".join(directory) + b"".join(body)


__all__ = [
    "DIRECTORY_HEADER_STRUCT",
    "DIRECTORY_ENTRY_STRUCT",
    "DIRECTORY_HEADER_SIZE",
    "DIRECTORY_ENTRY_SIZE",
    "PAYLOAD_ALIGNMENT",
    "DirectoryEntry",
    "FormatError",
    "HeaderFormatError",
    "check_magic",
    "read_directory",
    "write_dataset",
]
