"""Decoder for sectioned dataset images.

A :class:`DataManager` validates an image once and then hands out read-only
``memoryview`` slices of the original buffer. Nothing is copied: every view
keeps the buffer alive and reports it through ``view.obj``. Typed sections are
cast to native ``H``/``I`` arrays and the segmenter size info is read as two
native ``I`` counts, all without byte swapping, so the image must be
produced in the consumer's layout.
"""

from __future__ import annotations

import logging
import struct
from typing import Dict, Mapping, Optional, Tuple, Union

from .format import DirectoryEntry, FormatError, read_directory
from .sections import (
    REQUIRED_SECTIONS,
    SECTIONS_BY_ID,
    USAGE_REWRITER_SECTIONS,
    ReadingCorrectionData,
    SectionKind,
    SegmenterData,
    SuffixDictionaryData,
    SymbolRewriterData,
    UsageRewriterData,
)

logger = logging.getLogger(__name__)

SEGMENTER_SIZE_INFO_STRUCT = struct.Struct("=II")

Magic = Union[bytes, str]


class NotInitializedError(RuntimeError):
    """Raised when a section is requested before a successful decode."""


def _as_magic(magic: Magic) -> bytes:
    if isinstance(magic, str):
        return magic.encode("utf-8")
    return bytes(magic)


def _bind_sections(
    buffer: bytes, entries: Tuple[DirectoryEntry, ...]
) -> Tuple[Dict[str, memoryview], Tuple[int, int]]:
    root = memoryview(buffer).toreadonly()
    views: Dict[str, memoryview] = {}
    sizes = (0, 0)
    for entry in entries:
        spec = SECTIONS_BY_ID[entry.section_id]
        view = root[entry.offset : entry.end]
        if spec.kind is SectionKind.SIZE_INFO:
            if entry.length != SEGMENTER_SIZE_INFO_STRUCT.size:
                raise FormatError(
                    f"section '{spec.name}' must be {SEGMENTER_SIZE_INFO_STRUCT.size} bytes, "
                    f"got {entry.length}"
                )
            sizes = SEGMENTER_SIZE_INFO_STRUCT.unpack(view)
        elif spec.kind.cast_code is not None:
            if entry.length % spec.kind.item_size:
                raise FormatError(
                    f"section '{spec.name}' length {entry.length} is not a multiple of "
                    f"{spec.kind.item_size}"
                )
            view = view.cast(spec.kind.cast_code)
        views[spec.name] = view

    missing = [name for name in REQUIRED_SECTIONS if name not in views]
    if missing:
        raise FormatError(f"dataset is missing required section(s): {', '.join(missing)}")
    usage_present = [name for name in USAGE_REWRITER_SECTIONS if name in views]
    if usage_present and len(usage_present) != len(USAGE_REWRITER_SECTIONS):
        raise FormatError("dataset carries an incomplete usage rewriter section group")
    return views, sizes


class DataManager:
    """Zero-copy accessor over one dataset image."""

    def __init__(self) -> None:
        self._buffer: Optional[bytes] = None
        self._magic: Optional[bytes] = None
        self._views: Optional[Dict[str, memoryview]] = None
        self._segmenter_sizes: Tuple[int, int] = (0, 0)

    @classmethod
    def from_array(cls, buffer: bytes, magic: Magic) -> "DataManager":
        manager = cls()
        manager.init_from_array(buffer, magic)
        return manager

    def init_from_array(self, buffer: bytes, magic: Magic) -> None:
        """Decode *buffer* and bind every section.

        On failure the previous state, if any, is left untouched. Calling this
        again after a success rebinds all sections over the new buffer; views
        handed out earlier keep the old buffer alive and stay valid.
        """

        expected = _as_magic(magic)
        try:
            entries = read_directory(buffer, expected)
            views, sizes = _bind_sections(buffer, entries)
        except FormatError as exc:
            logger.error("Failed to initialize dataset (magic %r): %s", expected, exc)
            raise
        self._buffer = buffer
        self._magic = expected
        self._views = views
        self._segmenter_sizes = sizes
        logger.debug("Bound %d dataset sections from %d bytes", len(views), len(buffer))

    # ------------------------------------------------------------------
    # State

    @property
    def is_initialized(self) -> bool:
        return self._views is not None

    @property
    def magic(self) -> Optional[bytes]:
        return self._magic

    def release(self) -> None:
        """Release the held views and forget the backing buffer."""

        views, self._views = self._views, None
        self._buffer = None
        self._magic = None
        self._segmenter_sizes = (0, 0)
        for view in (views or {}).values():
            view.release()

    def _require(self) -> Mapping[str, memoryview]:
        if self._views is None:
            raise NotInitializedError("dataset has not been initialized")
        return self._views

    def section(self, name: str) -> memoryview:
        """Return the bound view for section *name*."""

        views = self._require()
        try:
            return views[name]
        except KeyError as exc:
            raise KeyError(f"section '{name}' is not present in this dataset") from exc

    def has_section(self, name: str) -> bool:
        return name in self._require()

    def section_sizes(self) -> Dict[str, int]:
        return {name: view.nbytes for name, view in self._require().items()}

    # ------------------------------------------------------------------
    # Flat byte sections

    def connector_data(self) -> memoryview:
        return self.section("conn")

    def system_dictionary_data(self) -> memoryview:
        return self.section("dict")

    def collocation_data(self) -> memoryview:
        return self.section("coll")

    def collocation_suppression_data(self) -> memoryview:
        return self.section("cols")

    def suggestion_filter_data(self) -> memoryview:
        return self.section("sugg")

    def pos_group_data(self) -> memoryview:
        return self.section("posg")

    def counter_suffix_sorted_array(self) -> memoryview:
        return self.section("counter_suffix")

    # ------------------------------------------------------------------
    # Bundles

    def segmenter_data(self) -> SegmenterData:
        views = self._require()
        l_num_elements, r_num_elements = self._segmenter_sizes
        bitarray = views["segmenter_bitarray"]
        return SegmenterData(
            l_num_elements=l_num_elements,
            r_num_elements=r_num_elements,
            l_table=views["segmenter_ltable"],
            r_table=views["segmenter_rtable"],
            bitarray_num_bytes=bitarray.nbytes,
            bitarray=bitarray,
            boundary=views["boundary"],
        )

    def suffix_dictionary_data(self) -> SuffixDictionaryData:
        views = self._require()
        return SuffixDictionaryData(
            key_array=views["suffix_key"],
            value_array=views["suffix_value"],
            token_array=views["suffix_token"],
        )

    def reading_correction_data(self) -> ReadingCorrectionData:
        views = self._require()
        return ReadingCorrectionData(
            value_array=views["reading_correction_value"],
            error_array=views["reading_correction_error"],
            correction_array=views["reading_correction_correction"],
        )

    def symbol_rewriter_data(self) -> SymbolRewriterData:
        views = self._require()
        return SymbolRewriterData(
            token_array=views["symbol_token"],
            string_array=views["symbol_string"],
        )

    def usage_rewriter_data(self) -> Optional[UsageRewriterData]:
        """Return the usage rewriter bundle, or ``None`` for builds without it."""

        views = self._require()
        if "usage_items" not in views:
            return None
        return UsageRewriterData(
            base_conjugation_suffix=views["usage_base_conjugation_suffix"],
            conjugation_suffix=views["usage_conjugation_suffix"],
            conjugation_index=views["usage_conjugation_index"],
            usage_items=views["usage_items"],
            string_array=views["usage_string_array"],
        )


__all__ = ["DataManager", "NotInitializedError", "SEGMENTER_SIZE_INFO_STRUCT"]
