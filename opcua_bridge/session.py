"""
Session interface

Defines the browse/read/call operations the bridge needs from an OPC UA client
session, together with the request and response structures they exchange.
Concrete sessions wrap a real client stack; the bridge never encodes protocol
messages itself.
"""

import abc
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Any, List, Optional, Sequence, Tuple, Union

from opcua_bridge.codec.ua_types import (
    GOOD,
    LocalizedText,
    NodeId,
    QualifiedName,
    StatusCode,
    Variant,
)

HAS_PROPERTY = NodeId(0, 46)


class BrowseDirection(IntEnum):
    Forward = 0
    Inverse = 1
    Both = 2


class NodeClass(IntFlag):
    Unspecified = 0
    Object = 1
    Variable = 2
    Method = 4
    ObjectType = 8
    VariableType = 16
    ReferenceType = 32
    DataType = 64
    View = 128


class ResultMask(IntFlag):
    ReferenceType = 1
    IsForward = 2
    NodeClass = 4
    BrowseName = 8
    DisplayName = 16
    TypeDefinition = 32


class AttributeId(IntEnum):
    NodeId = 1
    NodeClass = 2
    BrowseName = 3
    DisplayName = 4
    Description = 5
    WriteMask = 6
    UserWriteMask = 7
    IsAbstract = 8
    Symmetric = 9
    InverseName = 10
    ContainsNoLoops = 11
    EventNotifier = 12
    Value = 13
    DataType = 14
    ValueRank = 15
    ArrayDimensions = 16
    AccessLevel = 17
    UserAccessLevel = 18
    MinimumSamplingInterval = 19
    Historizing = 20
    Executable = 21
    UserExecutable = 22


@dataclass(frozen=True)
class BrowseDescription:
    node_id: NodeId
    reference_type_id: Optional[NodeId] = None
    include_subtypes: bool = True
    browse_direction: BrowseDirection = BrowseDirection.Both
    node_class_mask: int = 0
    result_mask: int = 0


@dataclass(frozen=True)
class ReferenceDescription:
    node_id: NodeId
    browse_name: Optional[QualifiedName] = None
    reference_type_id: Optional[NodeId] = None
    is_forward: bool = True
    node_class: Optional[NodeClass] = None
    display_name: Optional[LocalizedText] = None
    type_definition: Optional[NodeId] = None


@dataclass(frozen=True)
class BrowseResult:
    status_code: StatusCode = GOOD
    references: Tuple[ReferenceDescription, ...] = ()


@dataclass(frozen=True)
class ReadValueId:
    node_id: NodeId
    attribute_id: AttributeId = AttributeId.Value


@dataclass(frozen=True)
class DataValue:
    value: Optional[Variant] = None
    status_code: StatusCode = GOOD


@dataclass(frozen=True)
class CallMethodRequest:
    object_id: NodeId
    method_id: NodeId
    input_arguments: Tuple[Variant, ...] = ()


@dataclass(frozen=True)
class CallMethodResult:
    status_code: StatusCode = GOOD
    input_argument_results: Tuple[StatusCode, ...] = ()
    output_arguments: Tuple[Variant, ...] = field(default_factory=tuple)


class Session(abc.ABC):
    """Client session operations used by the bridge

    Each operation accepts either a single item or a list of items and
    answers with the same shape: one result for one item, a list of results
    in request order for a list.
    """

    @abc.abstractmethod
    async def browse(self, nodes_to_browse: Union[BrowseDescription, Sequence[BrowseDescription]]
                     ) -> Union[BrowseResult, List[BrowseResult]]:
        """Browse the references of one or more nodes"""
        pass

    @abc.abstractmethod
    async def read(self, nodes_to_read: Union[ReadValueId, Sequence[ReadValueId]]
                   ) -> Union[DataValue, List[DataValue]]:
        """Read attributes of one or more nodes"""
        pass

    @abc.abstractmethod
    async def call(self, methods_to_call: Union[CallMethodRequest, Sequence[CallMethodRequest]]
                   ) -> Union[CallMethodResult, List[CallMethodResult]]:
        """Call one or more methods"""
        pass


def as_list(result: Any) -> List[Any]:
    """Normalize a single-or-list session answer to a list"""
    if isinstance(result, (list, tuple)):
        return list(result)
    return [result]
