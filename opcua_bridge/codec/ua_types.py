"""
OPC UA built-in data model

Plain Python counterparts of the protocol structures the codec works with:
built-in data type tags, Variant, NodeId and friends, StatusCode and the
Argument structure describing one method parameter.
"""

import base64
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Tuple

from opcua_bridge.errors import DimensionMismatchError


class DataType(IntEnum):
    """Built-in data type tags, fixed by the protocol"""
    Null = 0
    Boolean = 1
    SByte = 2
    Byte = 3
    Int16 = 4
    UInt16 = 5
    Int32 = 6
    UInt32 = 7
    Int64 = 8
    UInt64 = 9
    Float = 10
    Double = 11
    String = 12
    DateTime = 13
    Guid = 14
    ByteString = 15
    XmlElement = 16
    NodeId = 17
    ExpandedNodeId = 18
    StatusCode = 19
    QualifiedName = 20
    LocalizedText = 21
    ExtensionObject = 22
    DataValue = 23
    Variant = 24
    DiagnosticInfo = 25


class VariantArrayType(IntEnum):
    Scalar = 0
    Array = 1
    Matrix = 2


class NodeIdType(Enum):
    """Identifier kinds and their string prefixes"""
    NUMERIC = "i"
    STRING = "s"
    GUID = "g"
    BYTESTRING = "b"


@dataclass(frozen=True)
class NodeId:
    namespace: int = 0
    value: Any = 0
    identifier_type: NodeIdType = NodeIdType.NUMERIC

    def identifier_string(self) -> str:
        if self.identifier_type is NodeIdType.GUID:
            return str(self.value).upper()
        if self.identifier_type is NodeIdType.BYTESTRING:
            return base64.b64encode(bytes(self.value)).decode("ascii")
        return str(self.value)

    def to_string(self) -> str:
        return f"ns={self.namespace};{self.identifier_type.value}={self.identifier_string()}"

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class ExpandedNodeId(NodeId):
    namespace_uri: Optional[str] = None
    server_index: int = 0

    def to_string(self) -> str:
        prefix = ""
        if self.server_index:
            prefix += f"svr={self.server_index};"
        if self.namespace_uri:
            return f"{prefix}nsu={self.namespace_uri};{self.identifier_type.value}={self.identifier_string()}"
        return prefix + super().to_string()


@dataclass(frozen=True)
class QualifiedName:
    name: str
    namespace_index: int = 0

    def to_string(self) -> str:
        if self.namespace_index:
            return f"{self.namespace_index}:{self.name}"
        return self.name

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class LocalizedText:
    text: Optional[str]
    locale: Optional[str] = None


# value -> (name, description)
_STATUS_CODES: Dict[int, Tuple[str, str]] = {
    0x00000000: ("Good", "No Error"),
    0x40000000: ("Uncertain", "The value is uncertain but no specific reason is known."),
    0x80000000: ("Bad", "The value is bad but no specific reason is known."),
    0x80010000: ("BadUnexpectedError", "An unexpected error occurred."),
    0x80020000: ("BadInternalError", "An internal error occurred as a result of a programming or configuration error."),
    0x80050000: ("BadCommunicationError", "A low level communication error occurred."),
    0x800A0000: ("BadTimeout", "The operation timed out."),
    0x800F0000: ("BadNothingToDo", "There was nothing to do because the client passed a list of operations with no elements."),
    0x801F0000: ("BadUserAccessDenied", "User does not have permission to perform the requested operation."),
    0x80330000: ("BadNodeIdInvalid", "The syntax of the node id is not valid."),
    0x80340000: ("BadNodeIdUnknown", "The node id refers to a node that does not exist in the server address space."),
    0x80350000: ("BadAttributeIdInvalid", "The attribute is not supported for the specified Node."),
    0x803C0000: ("BadOutOfRange", "The value was out of range."),
    0x803D0000: ("BadNotSupported", "The requested operation is not supported."),
    0x806F0000: ("BadNoMatch", "The requested operation has no match to return."),
    0x80740000: ("BadTypeMismatch", "The value supplied for the attribute is not of the same type as the attribute's value."),
    0x80750000: ("BadMethodInvalid", "The method id does not refer to a method for the specified object."),
    0x80760000: ("BadArgumentsMissing", "The client did not specify all of the input arguments for the method."),
    0x80AB0000: ("BadInvalidArgument", "One or more arguments are invalid."),
    0x80E50000: ("BadTooManyArguments", "Too many arguments were provided."),
    0x81110000: ("BadNotExecutable", "The executable attribute does not allow the execution of the method."),
}

_STATUS_CODES_BY_NAME = {name: value for value, (name, _) in _STATUS_CODES.items()}


@dataclass(frozen=True)
class StatusCode:
    value: int = 0

    @classmethod
    def from_name(cls, name: str) -> "StatusCode":
        if name not in _STATUS_CODES_BY_NAME:
            raise KeyError(f"Unknown status code name: {name}")
        return cls(_STATUS_CODES_BY_NAME[name])

    @property
    def name(self) -> str:
        known = _STATUS_CODES.get(self.value)
        return known[0] if known else f"0x{self.value:08X}"

    @property
    def description(self) -> str:
        known = _STATUS_CODES.get(self.value)
        return known[1] if known else ""

    def is_good(self) -> bool:
        # Severity lives in the two top bits
        return (self.value & 0xC0000000) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value, "description": self.description}


GOOD = StatusCode(0)


@dataclass(frozen=True)
class Variant:
    """Tagged union value: a scalar, a flat array or a row-major matrix"""
    data_type: DataType
    value: Any = None
    array_type: VariantArrayType = VariantArrayType.Scalar
    dimensions: Optional[Tuple[int, ...]] = None

    def __post_init__(self):
        if self.array_type is VariantArrayType.Scalar:
            if self.dimensions is not None:
                raise ValueError("Scalar Variant cannot carry dimensions")
            return

        object.__setattr__(self, "value", tuple(self.value or ()))

        if self.array_type is VariantArrayType.Array:
            if self.dimensions is not None:
                raise ValueError("Array Variant cannot carry dimensions")
            return

        if self.dimensions is None:
            raise ValueError("Matrix Variant requires dimensions")
        dimensions = tuple(int(d) for d in self.dimensions)
        if any(d < 0 for d in dimensions):
            raise DimensionMismatchError(f"Matrix dimensions must be non-negative: {dimensions}")
        if math.prod(dimensions) != len(self.value):
            raise DimensionMismatchError(
                f"Matrix dimensions {list(dimensions)} do not match {len(self.value)} values")
        object.__setattr__(self, "dimensions", dimensions)


def _builtin_node_id(value: Any) -> NodeId:
    if isinstance(value, NodeId):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return NodeId(0, int(value))
    raise TypeError(f"Cannot use {value!r} as a data type id")


def _field(source: Any, *names: str, default: Any = None) -> Any:
    for name in names:
        if isinstance(source, Mapping):
            if name in source:
                return source[name]
        elif hasattr(source, name):
            return getattr(source, name)
    return default


@dataclass(frozen=True)
class ArgumentDescriptor:
    """Declared type and shape of one method input argument"""
    name: str
    data_type: NodeId
    value_rank: int = -1
    array_dimensions: Tuple[int, ...] = field(default_factory=tuple)
    description: Optional[LocalizedText] = None

    @property
    def builtin_type(self) -> Optional[DataType]:
        """Built-in tag of the declared type, or None for non built-in types"""
        data_type = self.data_type
        if (data_type.namespace == 0
                and data_type.identifier_type is NodeIdType.NUMERIC
                and 0 <= data_type.value <= DataType.DiagnosticInfo):
            return DataType(data_type.value)
        return None

    @classmethod
    def coerce(cls, source: Any) -> "ArgumentDescriptor":
        """Build a descriptor from a session Argument object or mapping"""
        if isinstance(source, cls):
            return source
        return cls(
            name=_field(source, "name", default=""),
            data_type=_builtin_node_id(_field(source, "data_type", "dataType")),
            value_rank=int(_field(source, "value_rank", "valueRank", default=-1)),
            array_dimensions=tuple(_field(source, "array_dimensions", "arrayDimensions", default=None) or ()),
            description=_field(source, "description"),
        )
