import gzip

import pytest
from hypothesis import given, settings, strategies as st

from lexpack.container import encode_container
from lexpack.data_manager import NotInitializedError
from lexpack.format import FormatError, HeaderFormatError
from lexpack.packed import PackedDataManager
from lexpack.pos import RANGE_SENTINEL, ConjugationForm
from lexpack.resource_limits import ResourceBudget, ResourceBudgetExceeded
from lexpack.versioning import SYSTEM_DICTIONARY_FORMAT_VERSION


@pytest.fixture
def container(pos_tokens, range_tables, image, magic) -> bytes:
    return encode_container(
        product_version="2.17.2100.0",
        pos_tokens=pos_tokens,
        rule_id_table=[1841, 1842, 2003],
        range_tables=range_tables,
        mozc_data=image,
        mozc_data_magic=magic.decode("ascii"),
    )


def _expected_forms(token) -> list:
    forms = []
    for form in token.get("conjugation_forms") or ():
        if isinstance(form, dict):
            forms.append(
                ConjugationForm(form.get("key_suffix"), form.get("value_suffix"), form.get("id", 0))
            )
        else:
            forms.append(ConjugationForm(*form))
    return forms


def test_pos_tokens_are_rebuilt_in_order(container, pos_tokens) -> None:
    manager = PackedDataManager.from_bytes(container)
    table = manager.user_pos_data()
    assert len(table) == len(pos_tokens)
    expected_total = sum(len(token["conjugation_forms"]) for token in pos_tokens)
    assert len(table.conjugations) == expected_total
    for token, original in zip(table, pos_tokens):
        assert token.pos == original.get("pos")
        assert token.conjugation_size == len(original["conjugation_forms"])
        assert list(token.conjugation_forms or ()) == _expected_forms(original)


def test_conjugations_share_one_arena(container) -> None:
    table = PackedDataManager.from_bytes(container).user_pos_data()
    verb = table[1]
    adjective = table[2]
    assert verb.conjugation_forms.arena is adjective.conjugation_forms.arena
    assert (verb.conjugation_forms.start, verb.conjugation_forms.count) == (0, 3)
    assert (adjective.conjugation_forms.start, adjective.conjugation_forms.count) == (3, 1)
    assert verb.conjugation_forms[-1] == ConjugationForm("ki", "き", 12)


def test_token_without_forms_has_null_conjugations(container) -> None:
    table = PackedDataManager.from_bytes(container).user_pos_data()
    noun, _, adjective, unlabelled = table
    assert noun.conjugation_forms is None
    assert noun.conjugation_size == 0
    assert adjective.conjugation_forms is not None
    assert len(adjective.conjugation_forms) == 1
    assert unlabelled.pos is None
    assert unlabelled.conjugation_forms[0] == ConjugationForm(None, None, 30)


def test_empty_string_suffix_is_distinct_from_absent() -> None:
    payload = encode_container(
        pos_tokens=[{"pos": "", "conjugation_forms": [{"key_suffix": "", "id": 1}]}]
    )
    token = PackedDataManager.from_bytes(payload).user_pos_data()[0]
    assert token.pos == ""
    form = token.conjugation_forms[0]
    assert form.key_suffix == ""
    assert form.value_suffix is None


def test_range_tables_are_sentinel_terminated(container, range_tables) -> None:
    manager = PackedDataManager.from_bytes(container)
    tables = manager.range_tables()
    assert len(tables) == len(range_tables)
    assert tables.starts == (0, 3, 4)
    for index, original in enumerate(range_tables):
        assert list(tables.ranges(index)) == original
        end = tables.starts[index] + len(original)
        assert tables.pair_at(end) == (RANGE_SENTINEL, RANGE_SENTINEL)
    items = tables.items
    assert items.readonly
    assert len(items) == 2 * (sum(len(table) for table in range_tables) + len(range_tables))


def test_matcher_never_matches_the_sentinel(container) -> None:
    matcher = PackedDataManager.from_bytes(container).pos_matcher()
    assert matcher.matches(0, 3)
    assert matcher.matches(0, 12)
    assert not matcher.matches(0, 6)
    assert not matcher.matches(1, 0)
    for table in range(len(matcher.range_tables)):
        assert not matcher.matches(table, 0xFFFF)
    assert matcher.rule_id(2) == 2003
    assert PackedDataManager.from_bytes(container).rule_id_table().tolist() == [1841, 1842, 2003]


def test_nested_image_is_forwarded(container, sections) -> None:
    manager = PackedDataManager.from_bytes(container)
    assert manager.has_mozc_data
    assert manager.dictionary_version() == "2.17.2100.0"
    backing = manager.mozc_data().obj
    assert manager.connector_data().obj is backing
    assert bytes(manager.connector_data()) == sections["conn"]
    assert bytes(manager.system_dictionary_data()) == sections["dict"]
    assert bytes(manager.collocation_data()) == sections["coll"]
    assert bytes(manager.collocation_suppression_data()) == sections["cols"]
    assert bytes(manager.suggestion_filter_data()) == sections["sugg"]
    assert bytes(manager.pos_group_data()) == sections["posg"]
    assert bytes(manager.counter_suffix_sorted_array()) == sections["counter_suffix"]
    assert manager.segmenter_data().r_table.tolist() == [4, 5, 6, 7, 8]
    assert manager.suffix_dictionary_data().token_array.tolist() == [7, 8, 9, 10]
    assert bytes(manager.reading_correction_data().error_array) == b"rc-error"
    assert bytes(manager.symbol_rewriter_data().string_array) == b"symbol-string"
    assert manager.usage_rewriter_data() is not None


def test_pos_only_container_leaves_nested_manager_unset(pos_tokens) -> None:
    manager = PackedDataManager.from_bytes(encode_container(pos_tokens=pos_tokens))
    assert not manager.has_mozc_data
    assert len(manager.mozc_data()) == 0
    assert len(manager.user_pos_data()) == len(pos_tokens)
    with pytest.raises(NotInitializedError):
        manager.connector_data()
    assert manager.summary()["sections"] == {}


def test_nested_magic_is_checked_independently(pos_tokens, image) -> None:
    payload = encode_container(pos_tokens=pos_tokens, mozc_data=image, mozc_data_magic="WRONG-MAGIC")
    manager = PackedDataManager()
    with pytest.raises(HeaderFormatError):
        manager.init(payload)
    assert not manager.is_initialized


def test_format_version_mismatch_is_rejected(pos_tokens, range_tables, image, magic) -> None:
    payload = encode_container(
        pos_tokens=pos_tokens,
        range_tables=range_tables,
        mozc_data=image,
        mozc_data_magic=magic.decode("ascii"),
        format_version=SYSTEM_DICTIONARY_FORMAT_VERSION + 1,
    )
    with pytest.raises(FormatError, match="expected 1, actual 2"):
        PackedDataManager.from_bytes(payload)


def test_malformed_protobuf_is_rejected() -> None:
    with pytest.raises(FormatError, match="protobuf format error"):
        PackedDataManager.from_bytes(b"\x12\x05ab")


def test_failed_init_resets_previous_state(container) -> None:
    manager = PackedDataManager.from_bytes(container)
    with pytest.raises(FormatError):
        manager.init(b"\x12\x05ab")
    assert not manager.is_initialized
    with pytest.raises(NotInitializedError):
        manager.user_pos_data()


def test_gzip_body_matches_raw_body(container) -> None:
    raw = PackedDataManager.from_bytes(container)
    zipped = PackedDataManager.from_zipped_bytes(gzip.compress(container))
    assert list(zipped.user_pos_data()) == list(raw.user_pos_data())
    assert zipped.user_pos_data().conjugations == raw.user_pos_data().conjugations
    assert zipped.range_tables().items.tolist() == raw.range_tables().items.tolist()
    assert zipped.range_tables().starts == raw.range_tables().starts
    assert zipped.rule_id_table().tolist() == raw.rule_id_table().tolist()
    assert zipped.summary() == raw.summary()


def test_corrupt_gzip_is_a_format_error() -> None:
    with pytest.raises(FormatError, match="corrupt gzip"):
        PackedDataManager.from_zipped_bytes(b"definitely not gzip")


def test_oversized_body_is_rejected(container) -> None:
    budget = ResourceBudget(max_container_bytes=len(container) - 1)
    with pytest.raises(ResourceBudgetExceeded):
        PackedDataManager.from_bytes(container, budget=budget)


def test_decompression_bomb_is_stopped_at_the_ceiling(pos_tokens) -> None:
    payload = encode_container(pos_tokens=pos_tokens, mozc_data=b"\0" * (4 << 20), mozc_data_magic="M")
    bomb = gzip.compress(payload)
    assert len(bomb) < 64 << 10
    manager = PackedDataManager()
    with pytest.raises(ResourceBudgetExceeded):
        manager.init_with_zipped_data(bomb, budget=ResourceBudget(max_container_bytes=1 << 20))
    assert not manager.is_initialized


def test_out_of_range_matcher_values_are_rejected() -> None:
    with pytest.raises(FormatError, match="rule id"):
        PackedDataManager.from_bytes(encode_container(rule_id_table=[70000]))
    with pytest.raises(FormatError, match="16 bits"):
        PackedDataManager.from_bytes(encode_container(range_tables=[[(1, 0x10000)]]))


def test_uninitialised_manager_raises() -> None:
    manager = PackedDataManager()
    with pytest.raises(NotInitializedError):
        manager.dictionary_version()
    with pytest.raises(NotInitializedError):
        manager.pos_matcher()


@pytest.mark.parametrize(
    "overrides",
    [
        {"product_version": "ZZ"},
        {"pos_tokens": [{"pos": "ZZ", "conjugation_forms": []}]},
        {"pos_tokens": [{"conjugation_forms": [{"key_suffix": "ZZ", "id": 1}]}]},
        {"pos_tokens": [{"conjugation_forms": [{"value_suffix": "ZZ", "id": 1}]}]},
    ],
)
def test_string_fields_must_hold_utf8(overrides) -> None:
    payload = encode_container(**overrides).replace(b"ZZ", b"\xff\xfe")
    manager = PackedDataManager()
    with pytest.raises(FormatError):
        manager.init(payload)
    assert not manager.is_initialized


def test_nested_image_without_magic_is_rejected(pos_tokens, image) -> None:
    payload = encode_container(pos_tokens=pos_tokens, mozc_data=image)
    with pytest.raises(HeaderFormatError, match="must not be empty"):
        PackedDataManager.from_bytes(payload)


@pytest.mark.property
@given(st.binary(max_size=256))
@settings(max_examples=150)
def test_arbitrary_containers_decode_or_raise_format_error(body: bytes) -> None:
    try:
        manager = PackedDataManager.from_bytes(body)
    except FormatError:
        return
    assert isinstance(manager.dictionary_version(), str)
    for token in manager.user_pos_data():
        assert token.pos is None or isinstance(token.pos, str)
        for form in token.conjugation_forms or ():
            assert form.key_suffix is None or isinstance(form.key_suffix, str)
            assert form.value_suffix is None or isinstance(form.value_suffix, str)
