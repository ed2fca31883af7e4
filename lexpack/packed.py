"""Packed dataset containers: protobuf body plus an optional nested image."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .container import parse_container, text_field
from .data_manager import DataManager, NotInitializedError
from .format import FormatError
from .pos import PosMatcher, PosTokenTable, RangeTableSet
from .resource_limits import ResourceBudget, ResourceError, read_gzip_bounded
from .sections import (
    ReadingCorrectionData,
    SegmenterData,
    SuffixDictionaryData,
    SymbolRewriterData,
    UsageRewriterData,
)
from .versioning import ensure_container_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PackedState:
    product_version: str
    pos_tokens: PosTokenTable
    pos_matcher: PosMatcher
    mozc_data: bytes
    manager: Optional[DataManager]


def _initialize(message: Any) -> _PackedState:
    try:
        ensure_container_version(message.format_version)
    except ValueError as exc:
        logger.error("%s", exc)
        raise FormatError(str(exc)) from exc

    product_version = text_field(message, "product_version") or ""
    pos_tokens = PosTokenTable.build(message.pos_tokens)
    pos_matcher = PosMatcher.from_record(message.pos_matcher_data)

    # Light builds ship POS data only and carry no nested image.
    manager = None
    mozc_data = b""
    if message.HasField("mozc_data"):
        mozc_data = message.mozc_data
        magic = text_field(message, "mozc_data_magic") or ""
        try:
            manager = DataManager.from_array(mozc_data, magic)
        except FormatError:
            logger.error("Failed to initialize mozc data")
            raise
    return _PackedState(
        product_version=product_version,
        pos_tokens=pos_tokens,
        pos_matcher=pos_matcher,
        mozc_data=mozc_data,
        manager=manager,
    )


class PackedDataManager:
    """Dataset loaded from a packed container.

    POS tokens and the POS matcher tables are rebuilt into owned arrays; the
    nested image, when present, is decoded by a :class:`DataManager` whose
    views borrow from the container's ``mozc_data`` bytes.
    """

    def __init__(self) -> None:
        self._state: Optional[_PackedState] = None

    @classmethod
    def from_bytes(cls, data: bytes, budget: Optional[ResourceBudget] = None) -> "PackedDataManager":
        manager = cls()
        manager.init(data, budget=budget)
        return manager

    @classmethod
    def from_zipped_bytes(
        cls, data: bytes, budget: Optional[ResourceBudget] = None
    ) -> "PackedDataManager":
        manager = cls()
        manager.init_with_zipped_data(data, budget=budget)
        return manager

    def init(self, data: bytes, *, budget: Optional[ResourceBudget] = None) -> None:
        """Decode an uncompressed container body."""

        budget = budget or ResourceBudget()
        self._load(lambda: _ensure_within(data, budget))

    def init_with_zipped_data(self, data: bytes, *, budget: Optional[ResourceBudget] = None) -> None:
        """Decode a gzip-compressed container body."""

        budget = budget or ResourceBudget()
        self._load(lambda: read_gzip_bounded(data, budget))

    def _load(self, read_body) -> None:
        self._state = None
        try:
            self._state = _initialize(parse_container(read_body()))
        except (FormatError, ResourceError) as exc:
            logger.error("PackedDataManager initialization error: %s", exc)
            raise

    # ------------------------------------------------------------------
    # Container level data

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    def _require(self) -> _PackedState:
        if self._state is None:
            raise NotInitializedError("packed dataset has not been initialized")
        return self._state

    def dictionary_version(self) -> str:
        return self._require().product_version

    def user_pos_data(self) -> PosTokenTable:
        return self._require().pos_tokens

    def pos_matcher(self) -> PosMatcher:
        return self._require().pos_matcher

    def rule_id_table(self) -> memoryview:
        return self._require().pos_matcher.rule_id_table

    def range_tables(self) -> RangeTableSet:
        return self._require().pos_matcher.range_tables

    @property
    def has_mozc_data(self) -> bool:
        return self._require().manager is not None

    def mozc_data(self) -> memoryview:
        """Return the nested image bytes, empty when the container has none."""

        return memoryview(self._require().mozc_data).toreadonly()

    @property
    def data_manager(self) -> DataManager:
        manager = self._require().manager
        if manager is None:
            raise NotInitializedError("packed dataset does not carry a nested data image")
        return manager

    # ------------------------------------------------------------------
    # Section accessors forwarded to the nested image

    def connector_data(self) -> memoryview:
        return self.data_manager.connector_data()

    def system_dictionary_data(self) -> memoryview:
        return self.data_manager.system_dictionary_data()

    def collocation_data(self) -> memoryview:
        return self.data_manager.collocation_data()

    def collocation_suppression_data(self) -> memoryview:
        return self.data_manager.collocation_suppression_data()

    def suggestion_filter_data(self) -> memoryview:
        return self.data_manager.suggestion_filter_data()

    def pos_group_data(self) -> memoryview:
        return self.data_manager.pos_group_data()

    def counter_suffix_sorted_array(self) -> memoryview:
        return self.data_manager.counter_suffix_sorted_array()

    def segmenter_data(self) -> SegmenterData:
        return self.data_manager.segmenter_data()

    def suffix_dictionary_data(self) -> SuffixDictionaryData:
        return self.data_manager.suffix_dictionary_data()

    def reading_correction_data(self) -> ReadingCorrectionData:
        return self.data_manager.reading_correction_data()

    def symbol_rewriter_data(self) -> SymbolRewriterData:
        return self.data_manager.symbol_rewriter_data()

    def usage_rewriter_data(self) -> Optional[UsageRewriterData]:
        return self.data_manager.usage_rewriter_data()

    def summary(self) -> Dict[str, Any]:
        """Return counts describing the loaded container."""

        state = self._require()
        return {
            "product_version": state.product_version,
            "pos_tokens": len(state.pos_tokens),
            "conjugation_forms": len(state.pos_tokens.conjugations),
            "rule_ids": len(state.pos_matcher.rule_id_table),
            "range_tables": len(state.pos_matcher.range_tables),
            "mozc_data_bytes": len(state.mozc_data),
            "sections": state.manager.section_sizes() if state.manager is not None else {},
        }


def _ensure_within(data: bytes, budget: ResourceBudget) -> bytes:
    budget.ensure_container(len(data))
    return data


__all__ = ["PackedDataManager"]
