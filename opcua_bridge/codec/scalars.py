"""
Built-in scalar types

Each built-in data type gets a ScalarType carrying its serialize rule
(Python value -> JSON) and its parse rule (JSON -> Python value). The table
is a fixed-size tuple indexed by the data type tag; kinds without a rule
hold None.
"""

import base64
import binascii
import math
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Tuple

from google.protobuf.timestamp_pb2 import Timestamp

from opcua_bridge.codec.identifiers import GUID_PATTERN, IdentifierResolver
from opcua_bridge.codec.ua_types import DataType, LocalizedText, StatusCode
from opcua_bridge.errors import (
    ComponentRangeError,
    FormatError,
    RangeError,
    UnsupportedTypeError,
)

FLOAT32_MAX = 3.4028234663852886e38
UINT32_MAX = 0xFFFFFFFF
UINT64_MASK = 0xFFFFFFFFFFFFFFFF

_DATETIME_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}\.[0-9]{3}Z$")


@dataclass(frozen=True)
class ScalarType:
    name: str
    description: str
    serialize: Callable[[Any], Any]
    parse_value: Callable[[Any], Any]


def _identity(value):
    return value


def _is_integral(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def define_int_type(name: str, min_value: int, max_value: int) -> ScalarType:
    def parse_integer(value):
        if not _is_integral(value) or value < min_value or value > max_value:
            raise RangeError(f"{name} must be an integer between {min_value} and {max_value}")
        return int(value)

    return ScalarType(
        name=name,
        description=f"{'Signed' if min_value else 'Unsigned'} integer between {min_value} and {max_value}",
        serialize=_identity,
        parse_value=parse_integer,
    )


def define_int64_type(name: str, signed: bool) -> ScalarType:
    """64-bit integers travel as a [high, low] pair of unsigned 32-bit words"""

    def serialize(value):
        unsigned = int(value) & UINT64_MASK
        return [unsigned >> 32, unsigned & UINT32_MAX]

    def parse_pair(value):
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise FormatError(f"{name} must be a [high, low] pair of 32-bit words")
        for component in value:
            if not _is_integral(component) or component < 0 or component > UINT32_MAX:
                raise ComponentRangeError(
                    f"{name} components must be integers between 0 and {UINT32_MAX}")
        high, low = (int(component) for component in value)
        combined = (high << 32) | low
        if signed and combined >= 1 << 63:
            combined -= 1 << 64
        return combined

    return ScalarType(
        name=name,
        description=f"{'Signed' if signed else 'Unsigned'} 64-bit integer as [high, low] words",
        serialize=serialize,
        parse_value=parse_pair,
    )


def define_string_type(name: str, description: str) -> ScalarType:
    def parse_string(value):
        if not isinstance(value, str):
            raise FormatError(f"{name} must be a string")
        return value

    return ScalarType(name, description, _identity, parse_string)


def _parse_boolean(value):
    if not isinstance(value, bool):
        raise FormatError("Boolean must be true or false")
    return value


def _parse_float(value):
    if not _is_number(value):
        raise FormatError("Float must be a number")
    if abs(value) > FLOAT32_MAX or not math.isfinite(value):
        raise RangeError(f"Float must be a number between {-FLOAT32_MAX} and {FLOAT32_MAX}")
    return float(value)


def _parse_double(value):
    if not _is_number(value):
        raise FormatError("Double must be a number")
    return float(value)


def serialize_datetime(value: datetime) -> str:
    """Render as ISO-8601 UTC with millisecond precision"""
    timestamp = Timestamp()
    timestamp.FromDatetime(value)
    moment = timestamp.ToDatetime()
    return (f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
            f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
            f".{timestamp.nanos // 1_000_000:03d}Z")


def parse_datetime(value: Any) -> datetime:
    if not isinstance(value, str) or not _DATETIME_PATTERN.match(value):
        raise FormatError("DateTime must be an ISO-8601 string like 2018-01-01T00:00:00.000Z")
    timestamp = Timestamp()
    try:
        timestamp.FromJsonString(value)
    except ValueError as e:
        raise FormatError(f"Invalid DateTime value: {value}") from e
    return timestamp.ToDatetime(tzinfo=timezone.utc)


def _serialize_guid(value) -> str:
    return str(value).upper()


def _parse_guid(value) -> uuid.UUID:
    if not isinstance(value, str) or not GUID_PATTERN.match(value):
        raise FormatError("Guid must be a string like 72962B91-FA75-4AE6-8D28-B404DC7DAF63")
    return uuid.UUID(value)


def _serialize_byte_string(value) -> str:
    return base64.b64encode(bytes(value)).decode("ascii")


def _parse_byte_string(value) -> bytes:
    if not isinstance(value, str):
        raise FormatError("ByteString must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise FormatError(f"ByteString is not valid base64: {e}") from e


def _serialize_status_code(value: StatusCode):
    return value.to_dict()


def _parse_status_code(value):
    raise UnsupportedTypeError("StatusCode can only be serialized")


def _serialize_localized_text(value: LocalizedText):
    return value.text


def _parse_localized_text(value) -> LocalizedText:
    # Locale is never supplied by callers
    if not isinstance(value, str):
        raise FormatError("LocalizedText must be a string")
    return LocalizedText(text=value, locale=None)


def build_scalar_table(resolver: IdentifierResolver,
                       variant_type: Optional[ScalarType] = None) -> Tuple[Optional[ScalarType], ...]:
    """Create the tag-indexed table of built-in scalar types

    Args:
        resolver: Identifier collaborator used by NodeId and QualifiedName
        variant_type: Rule for nested Variant values, supplied by the codec

    Returns:
        Tuple with one entry per built-in data type tag
    """
    table = [None] * len(DataType)

    table[DataType.Boolean] = ScalarType("Boolean", "Boolean value", _identity, _parse_boolean)
    table[DataType.SByte] = define_int_type("SByte", -128, 127)
    table[DataType.Byte] = define_int_type("Byte", 0, 255)
    table[DataType.Int16] = define_int_type("Int16", -32768, 32767)
    table[DataType.UInt16] = define_int_type("UInt16", 0, 65535)
    table[DataType.Int32] = define_int_type("Int32", -2147483648, 2147483647)
    table[DataType.UInt32] = define_int_type("UInt32", 0, 4294967295)
    table[DataType.Int64] = define_int64_type("Int64", signed=True)
    table[DataType.UInt64] = define_int64_type("UInt64", signed=False)
    table[DataType.Float] = ScalarType("Float", "OPC UA Float type", _identity, _parse_float)
    table[DataType.Double] = ScalarType("Double", "OPC UA Double type", _identity, _parse_double)
    table[DataType.String] = define_string_type("String", "Unicode string")
    table[DataType.DateTime] = ScalarType(
        "DateTime", "ISO-8601 date and time with milliseconds", serialize_datetime, parse_datetime)
    table[DataType.Guid] = ScalarType("Guid", "OPC UA Guid type", _serialize_guid, _parse_guid)
    table[DataType.ByteString] = ScalarType(
        "ByteString", "Base64 encoded byte sequence", _serialize_byte_string, _parse_byte_string)
    table[DataType.XmlElement] = define_string_type("XmlElement", "XML fragment")
    table[DataType.NodeId] = ScalarType(
        "NodeId", "OPC UA NodeId type", resolver.node_id_to_string, resolver.resolve_node_id)
    table[DataType.ExpandedNodeId] = ScalarType(
        "ExpandedNodeId", "OPC UA ExpandedNodeId type",
        resolver.node_id_to_string, resolver.resolve_expanded_node_id)
    table[DataType.StatusCode] = ScalarType(
        "StatusCode", "OPC UA StatusCode type", _serialize_status_code, _parse_status_code)
    table[DataType.QualifiedName] = ScalarType(
        "QualifiedName", "OPC UA QualifiedName type",
        resolver.qualified_name_to_string, resolver.parse_qualified_name)
    table[DataType.LocalizedText] = ScalarType(
        "LocalizedText", "OPC UA LocalizedText type", _serialize_localized_text, _parse_localized_text)
    table[DataType.Variant] = variant_type

    return tuple(table)
