"""Part-of-speech tables rebuilt from a packed container.

Both tables use one shared, never-resized arena per kind and refer into it
by index, so every reference stays valid for as long as the owning table is
alive:

* conjugation forms of all tokens live in one tuple; each token keeps a
  ``(arena, start, count)`` :class:`ConjugationSlice`, or ``None`` when it
  has no forms at all;
* range tables live in one ``array('H')`` of interleaved bounds, each table
  closed by the ``(0xFFFF, 0xFFFF)`` sentinel pair.
"""

from __future__ import annotations

from array import array
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from .container import text_field
from .format import FormatError

RANGE_SENTINEL = 0xFFFF


@dataclass(frozen=True)
class ConjugationForm:
    key_suffix: Optional[str]
    value_suffix: Optional[str]
    id: int


@dataclass(frozen=True)
class ConjugationSlice:
    """Window of ``count`` forms starting at ``start`` in a shared arena."""

    arena: Tuple[ConjugationForm, ...]
    start: int
    count: int

    def __len__(self) -> int:
        return self.count

    def __getitem__(self, index: int) -> ConjugationForm:
        if index < 0:
            index += self.count
        if not 0 <= index < self.count:
            raise IndexError("conjugation index out of range")
        return self.arena[self.start + index]

    def __iter__(self) -> Iterator[ConjugationForm]:
        return iter(self.arena[self.start : self.start + self.count])


@dataclass(frozen=True)
class PosToken:
    pos: Optional[str]
    conjugation_forms: Optional[ConjugationSlice]

    @property
    def conjugation_size(self) -> int:
        return 0 if self.conjugation_forms is None else self.conjugation_forms.count


class PosTokenTable(Sequence[PosToken]):
    """Ordered POS tokens backed by one shared conjugation arena."""

    def __init__(self, tokens: Tuple[PosToken, ...], conjugations: Tuple[ConjugationForm, ...]):
        self._tokens = tokens
        self._conjugations = conjugations

    @classmethod
    def build(cls, records: Iterable[Any]) -> "PosTokenTable":
        """Rebuild the table from ``SystemDictionaryData.PosToken`` records."""

        records = list(records)
        forms: List[ConjugationForm] = []
        layout: List[Tuple[Optional[str], int, int]] = []
        for record in records:
            start = len(forms)
            for form in record.conjugation_forms:
                forms.append(
                    ConjugationForm(
                        key_suffix=text_field(form, "key_suffix"),
                        value_suffix=text_field(form, "value_suffix"),
                        id=form.id,
                    )
                )
            layout.append((text_field(record, "pos"), start, len(forms) - start))
        arena = tuple(forms)
        tokens = tuple(
            PosToken(pos, ConjugationSlice(arena, start, count) if count else None)
            for pos, start, count in layout
        )
        return cls(tokens, arena)

    def __len__(self) -> int:
        return len(self._tokens)

    def __getitem__(self, index):  # type: ignore[override]
        return self._tokens[index]

    @property
    def conjugations(self) -> Tuple[ConjugationForm, ...]:
        return self._conjugations


class RangeTableSet:
    """Sentinel-terminated range tables sharing one ``array('H')``."""

    def __init__(self, items: array, starts: Tuple[int, ...]):
        self._items = items
        self._starts = starts

    @classmethod
    def build(cls, tables: Iterable[Iterable[Tuple[int, int]]]) -> "RangeTableSet":
        items = array("H")
        starts: List[int] = []
        for table_index, table in enumerate(tables):
            starts.append(len(items) // 2)
            for lower, upper in table:
                if not (0 <= lower <= 0xFFFF and 0 <= upper <= 0xFFFF):
                    raise FormatError(
                        f"range ({lower}, {upper}) in table {table_index} does not fit in 16 bits"
                    )
                if lower == RANGE_SENTINEL and upper == RANGE_SENTINEL:
                    raise FormatError(
                        f"range table {table_index} contains the reserved end-of-table pair"
                    )
                items.append(lower)
                items.append(upper)
            items.append(RANGE_SENTINEL)
            items.append(RANGE_SENTINEL)
        return cls(items, tuple(starts))

    @classmethod
    def from_records(cls, records: Iterable[Any]) -> "RangeTableSet":
        """Rebuild from ``PosMatcherData.RangeTable`` records."""

        return cls.build(
            [(entry.lower, entry.upper) for entry in record.ranges] for record in records
        )

    def __len__(self) -> int:
        return len(self._starts)

    @property
    def starts(self) -> Tuple[int, ...]:
        """Pair index at which each table begins."""

        return self._starts

    @property
    def items(self) -> memoryview:
        return memoryview(self._items).toreadonly()

    def pair_at(self, position: int) -> Tuple[int, int]:
        return self._items[2 * position], self._items[2 * position + 1]

    def ranges(self, table: int) -> Iterator[Tuple[int, int]]:
        position = self._starts[table]
        while True:
            pair = self.pair_at(position)
            if pair == (RANGE_SENTINEL, RANGE_SENTINEL):
                return
            yield pair
            position += 1


class PosMatcher:
    """Rule-id table plus range tables, as consumed by POS classification."""

    def __init__(self, rule_id_table: array, range_tables: RangeTableSet):
        self._rule_id_table = rule_id_table
        self._range_tables = range_tables

    @classmethod
    def from_record(cls, record: Any) -> "PosMatcher":
        rule_ids = array("H")
        for value in record.rule_id_table:
            if value > 0xFFFF:
                raise FormatError(f"rule id {value} does not fit in 16 bits")
            rule_ids.append(value)
        return cls(rule_ids, RangeTableSet.from_records(record.range_tables))

    @property
    def rule_id_table(self) -> memoryview:
        return memoryview(self._rule_id_table).toreadonly()

    @property
    def range_tables(self) -> RangeTableSet:
        return self._range_tables

    def rule_id(self, index: int) -> int:
        return self._rule_id_table[index]

    def matches(self, table: int, value: int) -> bool:
        """Return whether *value* lies within one of the ranges of *table*."""

        return any(lower <= value <= upper for lower, upper in self._range_tables.ranges(table))


__all__ = [
    "RANGE_SENTINEL",
    "ConjugationForm",
    "ConjugationSlice",
    "PosMatcher",
    "PosToken",
    "PosTokenTable",
    "RangeTableSet",
]
