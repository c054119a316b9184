"""
Variant <-> JSON conversion

Serializes Variants of any built-in type and shape (scalar, array, matrix) to
JSON values and parses JSON values back into Variants given the declared data
type and value rank.

Value rank semantics:
    -3  scalar or one dimensional array
    -2  scalar or array of any rank
    -1  scalar only
     0  array of one or more dimensions
    N>0 array of exactly N dimensions
"""

import logging
import math
from typing import Any, List, Optional, Sequence, Tuple, Union

from opcua_bridge.codec.identifiers import IdentifierResolver
from opcua_bridge.codec.scalars import ScalarType, build_scalar_table
from opcua_bridge.codec.ua_types import (
    DataType,
    NodeId,
    NodeIdType,
    Variant,
    VariantArrayType,
)
from opcua_bridge.errors import (
    ArrayExpectedError,
    DimensionMismatchError,
    FormatError,
    RankMismatchError,
    ScalarExpectedError,
    ScalarOr1DExpectedError,
    UnsupportedTypeError,
)

logger = logging.getLogger(__name__)

DataTypeLike = Union[DataType, int, str, NodeId]

_INT64_TYPES = (DataType.Int64, DataType.UInt64)


def _is_json_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def nesting_depth(value: Any) -> int:
    """Count array nesting levels, following the first element of each level"""
    depth = 0
    while _is_json_array(value):
        depth += 1
        if not value:
            break
        value = value[0]
    return depth


def fold_matrix(flat: Sequence[Any], dimensions: Sequence[int]) -> List[Any]:
    """Reshape a flat row-major sequence into nested lists

    The first dimension is the outermost level of the result.
    """
    if len(dimensions) <= 1:
        return list(flat)
    stride = math.prod(dimensions[1:])
    return [fold_matrix(flat[i * stride:(i + 1) * stride], dimensions[1:])
            for i in range(dimensions[0])]


def flatten_matrix(value: Sequence[Any], depth: int) -> Tuple[Tuple[int, ...], List[Any]]:
    """Flatten ``depth`` nesting levels of a rectangular JSON array

    Returns:
        (dimensions, flat values) where dimensions[0] is the outermost length
    """
    dimensions = []
    probe = value
    for _ in range(depth):
        dimensions.append(len(probe))
        probe = probe[0] if probe else []

    flat = list(value)
    for level in range(1, depth):
        expected = dimensions[level]
        next_level = []
        for item in flat:
            if not _is_json_array(item) or len(item) != expected:
                raise DimensionMismatchError(
                    f"Matrix is not rectangular: expected {expected} elements at level {level}")
            next_level.extend(item)
        flat = next_level

    if math.prod(dimensions) != len(flat):
        raise DimensionMismatchError(
            f"Matrix dimensions {dimensions} do not match {len(flat)} values")
    return tuple(dimensions), flat


class ValueCodec:
    """Bidirectional conversion between Variant and JSON"""

    def __init__(self, resolver: Optional[IdentifierResolver] = None):
        self.resolver = resolver if resolver is not None else IdentifierResolver()
        variant_type = ScalarType(
            name="Variant",
            description="OPC UA Variant is a union of the other built-in types",
            serialize=self.to_json,
            parse_value=self._parse_nested_variant,
        )
        self._scalar_types = build_scalar_table(self.resolver, variant_type)

    def data_type_of(self, data_type: DataTypeLike) -> DataType:
        """Normalize a data type given as tag, name, enum or namespace 0 NodeId"""
        if isinstance(data_type, DataType):
            return data_type
        if isinstance(data_type, NodeId):
            if data_type.namespace != 0 or data_type.identifier_type is not NodeIdType.NUMERIC:
                raise UnsupportedTypeError(f"Data type {data_type} is not supported.")
            data_type = data_type.value
        if isinstance(data_type, int) and not isinstance(data_type, bool):
            if 0 <= data_type < len(DataType):
                return DataType(data_type)
        elif isinstance(data_type, str) and data_type in DataType.__members__:
            return DataType[data_type]
        raise UnsupportedTypeError(f"Data type {data_type} is not supported.")

    def scalar_type(self, data_type: DataTypeLike) -> ScalarType:
        scalar = self._scalar_types[self.data_type_of(data_type)]
        if scalar is None:
            raise UnsupportedTypeError(f"Unknown value data type {data_type}")
        return scalar

    def to_json(self, variant: Variant) -> Any:
        if not isinstance(variant, Variant):
            raise FormatError("Variant value expected")

        scalar = self.scalar_type(variant.data_type)

        if variant.array_type is VariantArrayType.Scalar:
            return self._serialize(scalar, variant.value)

        serialized = [self._serialize(scalar, item) for item in variant.value]

        if variant.array_type is VariantArrayType.Array or not variant.dimensions:
            return serialized

        return fold_matrix(serialized, variant.dimensions)

    def from_json(self, value: Any, data_type: DataTypeLike, value_rank: int) -> Variant:
        data_type = self.data_type_of(data_type)
        scalar = self.scalar_type(data_type)

        depth = nesting_depth(value)
        # 64-bit scalars are already a two element list
        if data_type in _INT64_TYPES and depth > 0 and value:
            depth -= 1

        if depth <= 0:
            if value_rank >= 0:
                raise ArrayExpectedError(
                    f"{scalar.name} array expected for value rank {value_rank}, got a scalar")
            return Variant(data_type, scalar.parse_value(value))

        if depth == 1:
            if value_rank > 1:
                raise RankMismatchError(
                    f"{scalar.name} array of rank {value_rank} expected, got rank 1")
            if value_rank == -1:
                raise ScalarExpectedError(f"{scalar.name} scalar expected, got an array")
            return Variant(
                data_type,
                tuple(scalar.parse_value(item) for item in value),
                VariantArrayType.Array,
            )

        if value_rank > 0 and value_rank != depth:
            raise RankMismatchError(
                f"{scalar.name} array of rank {value_rank} expected, got rank {depth}")
        if value_rank in (-1, -3):
            raise ScalarOr1DExpectedError(
                f"{scalar.name} scalar or one dimensional array expected, got rank {depth}")

        dimensions, flat = flatten_matrix(value, depth)
        logger.debug(f"Parsed {scalar.name} matrix with dimensions {list(dimensions)}")
        return Variant(
            data_type,
            tuple(scalar.parse_value(item) for item in flat),
            VariantArrayType.Matrix,
            dimensions,
        )

    @staticmethod
    def _serialize(scalar: ScalarType, value: Any) -> Any:
        if value is None:
            return None
        return scalar.serialize(value)

    def _parse_nested_variant(self, value: Any) -> Variant:
        """Nested Variants carry their own type: {"dataType", "value", "valueRank"?}"""
        if not isinstance(value, dict) or "dataType" not in value or "value" not in value:
            raise FormatError("Variant must be an object with dataType and value fields")
        return self.from_json(value["value"], value["dataType"], value.get("valueRank", -2))
