"""Protobuf schema and codec helpers for packed dataset containers.

The schema is assembled from a ``FileDescriptorProto`` at import time so the
package carries no generated ``_pb2`` module. It is equivalent to::

    syntax = "proto2";
    package lexpack;

    message SystemDictionaryData {
      message PosToken {
        message ConjugationType {
          optional string key_suffix = 1;
          optional string value_suffix = 2;
          optional uint32 id = 3;
        }
        optional string pos = 1;
        repeated ConjugationType conjugation_forms = 2;
      }
      message PosMatcherData {
        message RangeTable {
          message Range {
            optional uint32 lower = 1;
            optional uint32 upper = 2;
          }
          repeated Range ranges = 1;
        }
        repeated uint32 rule_id_table = 1;
        repeated RangeTable range_tables = 2;
      }
      optional uint32 format_version = 1;
      optional string product_version = 2;
      repeated PosToken pos_tokens = 3;
      optional PosMatcherData pos_matcher_data = 4;
      optional bytes mozc_data = 5;
      optional string mozc_data_magic = 6;
    }
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Union

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError

from .format import FormatError
from .versioning import SYSTEM_DICTIONARY_FORMAT_VERSION

PROTO_PACKAGE = "lexpack"
ROOT_MESSAGE = f"{PROTO_PACKAGE}.SystemDictionaryData"

_Field = descriptor_pb2.FieldDescriptorProto


def _field(
    name: str,
    number: int,
    field_type: int,
    *,
    repeated: bool = False,
    type_name: Optional[str] = None,
) -> descriptor_pb2.FieldDescriptorProto:
    field = _Field(
        name=name,
        number=number,
        type=field_type,
        label=_Field.LABEL_REPEATED if repeated else _Field.LABEL_OPTIONAL,
    )
    if type_name is not None:
        field.type_name = f".{ROOT_MESSAGE}.{type_name}"
    return field


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="lexpack/system_dictionary_data.proto",
        package=PROTO_PACKAGE,
        syntax="proto2",
    )
    root = file_proto.message_type.add(name="SystemDictionaryData")

    pos_token = root.nested_type.add(name="PosToken")
    conjugation = pos_token.nested_type.add(name="ConjugationType")
    conjugation.field.extend(
        [
            _field("key_suffix", 1, _Field.TYPE_STRING),
            _field("value_suffix", 2, _Field.TYPE_STRING),
            _field("id", 3, _Field.TYPE_UINT32),
        ]
    )
    pos_token.field.extend(
        [
            _field("pos", 1, _Field.TYPE_STRING),
            _field(
                "conjugation_forms",
                2,
                _Field.TYPE_MESSAGE,
                repeated=True,
                type_name="PosToken.ConjugationType",
            ),
        ]
    )

    matcher = root.nested_type.add(name="PosMatcherData")
    range_table = matcher.nested_type.add(name="RangeTable")
    range_message = range_table.nested_type.add(name="Range")
    range_message.field.extend(
        [
            _field("lower", 1, _Field.TYPE_UINT32),
            _field("upper", 2, _Field.TYPE_UINT32),
        ]
    )
    range_table.field.append(
        _field(
            "ranges",
            1,
            _Field.TYPE_MESSAGE,
            repeated=True,
            type_name="PosMatcherData.RangeTable.Range",
        )
    )
    matcher.field.extend(
        [
            _field("rule_id_table", 1, _Field.TYPE_UINT32, repeated=True),
            _field(
                "range_tables",
                2,
                _Field.TYPE_MESSAGE,
                repeated=True,
                type_name="PosMatcherData.RangeTable",
            ),
        ]
    )

    root.field.extend(
        [
            _field("format_version", 1, _Field.TYPE_UINT32),
            _field("product_version", 2, _Field.TYPE_STRING),
            _field("pos_tokens", 3, _Field.TYPE_MESSAGE, repeated=True, type_name="PosToken"),
            _field("pos_matcher_data", 4, _Field.TYPE_MESSAGE, type_name="PosMatcherData"),
            _field("mozc_data", 5, _Field.TYPE_BYTES),
            _field("mozc_data_magic", 6, _Field.TYPE_STRING),
        ]
    )
    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file_descriptor().SerializeToString())

SystemDictionaryData = message_factory.GetMessageClass(_POOL.FindMessageTypeByName(ROOT_MESSAGE))

ConjugationSpec = Union[Mapping[str, Any], Tuple[Optional[str], Optional[str], int]]
RangeSpec = Tuple[int, int]


def parse_container(data: bytes) -> Any:
    """Parse a serialised :class:`SystemDictionaryData` message."""

    message = SystemDictionaryData()
    try:
        message.ParseFromString(bytes(data))
    except DecodeError as exc:
        raise FormatError(f"System dictionary data protobuf format error: {exc}") from exc
    return message


def text_field(record: Any, name: str) -> Optional[str]:
    """Return string field *name* of *record*, or ``None`` when it is unset.

    proto2 strings holding invalid UTF-8 come back as ``bytes``; they are
    rejected rather than handed to consumers expecting text.
    """

    if not record.HasField(name):
        return None
    value = getattr(record, name)
    if not isinstance(value, str):
        raise FormatError(
            f"System dictionary data field '{name}' is not valid UTF-8: {value!r}"
        )
    return value


def _conjugation_fields(spec: ConjugationSpec) -> Tuple[Optional[str], Optional[str], int]:
    if isinstance(spec, Mapping):
        return spec.get("key_suffix"), spec.get("value_suffix"), int(spec.get("id", 0))
    if hasattr(spec, "key_suffix"):
        return spec.key_suffix, spec.value_suffix, int(spec.id)  # type: ignore[union-attr]
    key_suffix, value_suffix, identifier = spec
    return key_suffix, value_suffix, int(identifier)


def encode_container(
    *,
    product_version: Optional[str] = None,
    pos_tokens: Iterable[Mapping[str, Any]] = (),
    rule_id_table: Sequence[int] = (),
    range_tables: Iterable[Sequence[RangeSpec]] = (),
    mozc_data: Optional[bytes] = None,
    mozc_data_magic: Optional[Union[bytes, str]] = None,
    format_version: int = SYSTEM_DICTIONARY_FORMAT_VERSION,
) -> bytes:
    """Serialise a packed container.

    ``pos_tokens`` entries are mappings with an optional ``pos`` label and a
    ``conjugation_forms`` list whose items are mappings, ``(key_suffix,
    value_suffix, id)`` triples or :class:`~lexpack.pos.ConjugationForm`
    records. Fields given as ``None`` are left unset on the wire.
    """

    message = SystemDictionaryData()
    message.format_version = format_version
    if product_version is not None:
        message.product_version = product_version
    for token in pos_tokens:
        record = message.pos_tokens.add()
        if token.get("pos") is not None:
            record.pos = token["pos"]
        for form in token.get("conjugation_forms") or ():
            key_suffix, value_suffix, identifier = _conjugation_fields(form)
            conjugation = record.conjugation_forms.add()
            if key_suffix is not None:
                conjugation.key_suffix = key_suffix
            if value_suffix is not None:
                conjugation.value_suffix = value_suffix
            conjugation.id = identifier
    matcher = message.pos_matcher_data
    matcher.rule_id_table.extend(int(value) for value in rule_id_table)
    for table in range_tables:
        table_record = matcher.range_tables.add()
        for lower, upper in table:
            entry = table_record.ranges.add()
            entry.lower = int(lower)
            entry.upper = int(upper)
    if mozc_data is not None:
        message.mozc_data = bytes(mozc_data)
    if mozc_data_magic is not None:
        if isinstance(mozc_data_magic, bytes):
            mozc_data_magic = mozc_data_magic.decode("utf-8")
        message.mozc_data_magic = mozc_data_magic
    return message.SerializeToString()


__all__ = [
    "ROOT_MESSAGE",
    "SystemDictionaryData",
    "encode_container",
    "parse_container",
    "text_field",
]
