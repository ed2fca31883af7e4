"""Fixed section table of the dataset image and the view bundles built from it."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


class SectionKind(str, Enum):
    BYTES = "bytes"
    UINT16 = "uint16"
    UINT32 = "uint32"
    SIZE_INFO = "size-info"

    @property
    def cast_code(self) -> Optional[str]:
        """``memoryview.cast`` code for typed arrays, ``None`` for raw bytes."""

        return _CAST_FORMATS.get(self)

    @property
    def item_size(self) -> int:
        return _ITEM_SIZES[self]


_CAST_FORMATS: Mapping[SectionKind, str] = {
    SectionKind.UINT16: "H",
    SectionKind.UINT32: "I",
}

_ITEM_SIZES: Mapping[SectionKind, int] = {
    SectionKind.BYTES: 1,
    SectionKind.UINT16: 2,
    SectionKind.UINT32: 4,
    SectionKind.SIZE_INFO: 8,
}


@dataclass(frozen=True)
class SectionSpec:
    """Static description of one section of the dataset image."""

    section_id: int
    name: str
    kind: SectionKind = SectionKind.BYTES
    group: str = "core"

    @property
    def optional(self) -> bool:
        return self.group != "core"


USAGE_REWRITER_GROUP = "usage-rewriter"

SECTION_SPECS: Tuple[SectionSpec, ...] = (
    SectionSpec(1, "conn"),
    SectionSpec(2, "dict"),
    SectionSpec(3, "coll"),
    SectionSpec(4, "cols"),
    SectionSpec(5, "sugg"),
    SectionSpec(6, "posg"),
    SectionSpec(7, "segmenter_sizeinfo", SectionKind.SIZE_INFO),
    SectionSpec(8, "segmenter_ltable", SectionKind.UINT16),
    SectionSpec(9, "segmenter_rtable", SectionKind.UINT16),
    SectionSpec(10, "segmenter_bitarray"),
    SectionSpec(11, "boundary", SectionKind.UINT16),
    SectionSpec(12, "counter_suffix"),
    SectionSpec(13, "suffix_key"),
    SectionSpec(14, "suffix_value"),
    SectionSpec(15, "suffix_token", SectionKind.UINT32),
    SectionSpec(16, "reading_correction_value"),
    SectionSpec(17, "reading_correction_error"),
    SectionSpec(18, "reading_correction_correction"),
    SectionSpec(19, "symbol_token"),
    SectionSpec(20, "symbol_string"),
    SectionSpec(21, "usage_base_conjugation_suffix", group=USAGE_REWRITER_GROUP),
    SectionSpec(22, "usage_conjugation_suffix", group=USAGE_REWRITER_GROUP),
    SectionSpec(23, "usage_conjugation_index", group=USAGE_REWRITER_GROUP),
    SectionSpec(24, "usage_items", group=USAGE_REWRITER_GROUP),
    SectionSpec(25, "usage_string_array", group=USAGE_REWRITER_GROUP),
)

SECTIONS_BY_ID: Dict[int, SectionSpec] = {spec.section_id: spec for spec in SECTION_SPECS}
SECTIONS_BY_NAME: Dict[str, SectionSpec] = {spec.name: spec for spec in SECTION_SPECS}

REQUIRED_SECTIONS: Tuple[str, ...] = tuple(spec.name for spec in SECTION_SPECS if not spec.optional)
USAGE_REWRITER_SECTIONS: Tuple[str, ...] = tuple(
    spec.name for spec in SECTION_SPECS if spec.group == USAGE_REWRITER_GROUP
)


# ----------------------------------------------------------------------
# View bundles handed to consumers. Every field borrows from the decoder's
# backing buffer and must not be used after that buffer is released.


@dataclass(frozen=True)
class SegmenterData:
    l_num_elements: int
    r_num_elements: int
    l_table: memoryview
    r_table: memoryview
    bitarray_num_bytes: int
    bitarray: memoryview
    boundary: memoryview


@dataclass(frozen=True)
class SuffixDictionaryData:
    key_array: memoryview
    value_array: memoryview
    token_array: memoryview


@dataclass(frozen=True)
class ReadingCorrectionData:
    value_array: memoryview
    error_array: memoryview
    correction_array: memoryview


@dataclass(frozen=True)
class SymbolRewriterData:
    token_array: memoryview
    string_array: memoryview


@dataclass(frozen=True)
class UsageRewriterData:
    base_conjugation_suffix: memoryview
    conjugation_suffix: memoryview
    conjugation_index: memoryview
    usage_items: memoryview
    string_array: memoryview


__all__ = [
    "REQUIRED_SECTIONS",
    "SECTION_SPECS",
    "SECTIONS_BY_ID",
    "SECTIONS_BY_NAME",
    "USAGE_REWRITER_GROUP",
    "USAGE_REWRITER_SECTIONS",
    "ReadingCorrectionData",
    "SectionKind",
    "SectionSpec",
    "SegmenterData",
    "SuffixDictionaryData",
    "SymbolRewriterData",
    "UsageRewriterData",
]
