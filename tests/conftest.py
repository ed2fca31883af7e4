from __future__ import annotations

import struct
from array import array
from typing import Dict

import pytest

from lexpack.format import write_dataset

MAGIC = b"LEXDATA-v1\x00"


def build_sections(*, with_usage: bool = True) -> Dict[str, bytes]:
    sections = {
        "conn": b"connector-matrix-bytes",
        "dict": b"system-dictionary" * 4,
        "coll": b"collocation",
        "cols": b"collocation-suppression",
        "sugg": b"suggestion-filter",
        "posg": bytes(range(16)),
        "segmenter_sizeinfo": struct.pack("=II", 3, 5),
        "segmenter_ltable": array("H", [1, 2, 3]).tobytes(),
        "segmenter_rtable": array("H", [4, 5, 6, 7, 8]).tobytes(),
        "segmenter_bitarray": b"\x0f\xf0\xaa",
        "boundary": array("H", [10, 20, 30, 40]).tobytes(),
        "counter_suffix": b"counter-suffix",
        "suffix_key": b"suffix-keys",
        "suffix_value": b"suffix-values",
        "suffix_token": array("I", [7, 8, 9, 10]).tobytes(),
        "reading_correction_value": b"rc-value",
        "reading_correction_error": b"rc-error",
        "reading_correction_correction": b"rc-correction",
        "symbol_token": b"symbol-token",
        "symbol_string": b"symbol-string",
    }
    if with_usage:
        sections.update(
            {
                "usage_base_conjugation_suffix": b"base-conjugation",
                "usage_conjugation_suffix": b"conjugation",
                "usage_conjugation_index": b"index",
                "usage_items": b"items",
                "usage_string_array": b"strings",
            }
        )
    return sections


@pytest.fixture
def sections() -> Dict[str, bytes]:
    return build_sections()


@pytest.fixture
def image(sections: Dict[str, bytes]) -> bytes:
    return write_dataset(sections, MAGIC)


@pytest.fixture
def pos_tokens():
    return [
        {"pos": "noun", "conjugation_forms": []},
        {
            "pos": "verb-godan",
            "conjugation_forms": [
                {"key_suffix": "ku", "value_suffix": "く", "id": 10},
                {"key_suffix": "ka", "value_suffix": "か", "id": 11},
                {"key_suffix": "ki", "value_suffix": "き", "id": 12},
            ],
        },
        {"pos": "adjective", "conjugation_forms": [("i", "い", 20)]},
        {"conjugation_forms": [{"id": 30}]},
    ]


@pytest.fixture
def range_tables():
    return [
        [(1, 5), (10, 12)],
        [],
        [(100, 200)],
    ]


@pytest.fixture
def magic() -> bytes:
    return MAGIC


@pytest.fixture
def make_image():
    def _make(*, with_usage: bool = True, overrides: Dict[str, bytes] | None = None, drop=()) -> bytes:
        payload = build_sections(with_usage=with_usage)
        payload.update(overrides or {})
        for name in drop:
            payload.pop(name)
        return write_dataset(payload, MAGIC)

    return _make
