"""
Variant codec

Conversion between OPC UA Variants and the JSON values exchanged with callers:
- ua_types: built-in data model (DataType, Variant, NodeId, ...)
- identifiers: NodeId / QualifiedName string resolution
- scalars: per-type serialize and parse rules
- value_codec: scalar, array and matrix transcoding
"""

from .ua_types import (
    ArgumentDescriptor,
    DataType,
    ExpandedNodeId,
    LocalizedText,
    NodeId,
    NodeIdType,
    QualifiedName,
    StatusCode,
    Variant,
    VariantArrayType,
)
from .identifiers import IdentifierResolver
from .value_codec import ValueCodec

__all__ = [
    "ArgumentDescriptor",
    "DataType",
    "ExpandedNodeId",
    "IdentifierResolver",
    "LocalizedText",
    "NodeId",
    "NodeIdType",
    "QualifiedName",
    "StatusCode",
    "ValueCodec",
    "Variant",
    "VariantArrayType",
]
