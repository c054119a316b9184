"""
Identifier resolution

Converts between the textual and structured forms of NodeId, ExpandedNodeId
and QualifiedName.

NodeId is represented as a string with the syntax ``ns=<namespaceindex>;<type>=<value>``,
for example ``ns=1;i=123``. The namespace may be omitted (namespace 0).
Well-known namespace 0 nodes can also be referenced by their symbolic name,
e.g. ``ObjectsFolder``.
"""

import base64
import binascii
import re
import uuid
from typing import Dict, Optional, Union

from opcua_bridge.codec.ua_types import (
    DataType,
    ExpandedNodeId,
    NodeId,
    NodeIdType,
    QualifiedName,
)
from opcua_bridge.errors import FormatError

UINT32_MAX = 0xFFFFFFFF

GUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")

_NODE_ID_PATTERN = re.compile(r"^(?:ns=([0-9]+);)?([isgb])=(.*)$", re.DOTALL)
_EXPANDED_PREFIX_PATTERN = re.compile(r"^(?:svr=([0-9]+);)?(?:nsu=([^;]+);)?(.*)$", re.DOTALL)
_QUALIFIED_NAME_PATTERN = re.compile(r"^([0-9]+):(.*)$", re.DOTALL)

# Well-known namespace 0 nodes addressable by name
SYMBOLIC_NODE_IDS: Dict[str, int] = {
    "References": 31,
    "NonHierarchicalReferences": 32,
    "HierarchicalReferences": 33,
    "HasChild": 34,
    "Organizes": 35,
    "HasEventSource": 36,
    "HasModellingRule": 37,
    "HasEncoding": 38,
    "HasDescription": 39,
    "HasTypeDefinition": 40,
    "GeneratesEvent": 41,
    "Aggregates": 44,
    "HasSubtype": 45,
    "HasProperty": 46,
    "HasComponent": 47,
    "HasNotifier": 48,
    "HasOrderedComponent": 49,
    "BaseObjectType": 58,
    "FolderType": 61,
    "BaseVariableType": 62,
    "BaseDataVariableType": 63,
    "PropertyType": 68,
    "RootFolder": 84,
    "ObjectsFolder": 85,
    "TypesFolder": 86,
    "ViewsFolder": 87,
    "Argument": 296,
    "Server": 2253,
}
# Built-in data type nodes share their tag as numeric id
SYMBOLIC_NODE_IDS.update({data_type.name: int(data_type) for data_type in DataType if data_type})


class IdentifierResolver:
    """String <-> structured identifier conversion for NodeId and QualifiedName"""

    def __init__(self, symbolic_names: Optional[Dict[str, int]] = None):
        self.symbolic_names = dict(SYMBOLIC_NODE_IDS)
        if symbolic_names:
            self.symbolic_names.update(symbolic_names)

    def resolve_node_id(self, value: Union[str, NodeId]) -> NodeId:
        if isinstance(value, NodeId):
            return value
        if not isinstance(value, str):
            raise FormatError("NodeId must be a string")

        match = _NODE_ID_PATTERN.match(value)
        if match is None:
            if value in self.symbolic_names:
                return NodeId(0, self.symbolic_names[value])
            raise FormatError(f"String cannot be coerced to a NodeId: {value}")

        namespace, kind, identifier = match.groups()
        return NodeId(
            namespace=int(namespace) if namespace is not None else 0,
            value=self._parse_identifier(kind, identifier, value),
            identifier_type=NodeIdType(kind),
        )

    def resolve_expanded_node_id(self, value: Union[str, NodeId]) -> ExpandedNodeId:
        if isinstance(value, ExpandedNodeId):
            return value
        if isinstance(value, NodeId):
            return ExpandedNodeId(value.namespace, value.value, value.identifier_type)
        if not isinstance(value, str):
            raise FormatError("ExpandedNodeId must be a string")

        server_index, namespace_uri, rest = _EXPANDED_PREFIX_PATTERN.match(value).groups()
        if namespace_uri is not None:
            match = _NODE_ID_PATTERN.match(rest)
            if match is None or match.group(1) is not None:
                raise FormatError(f"String cannot be coerced to an ExpandedNodeId: {value}")
        node_id = self.resolve_node_id(rest)

        return ExpandedNodeId(
            namespace=node_id.namespace,
            value=node_id.value,
            identifier_type=node_id.identifier_type,
            namespace_uri=namespace_uri,
            server_index=int(server_index) if server_index is not None else 0,
        )

    def node_id_to_string(self, node_id: NodeId) -> str:
        return node_id.to_string()

    def canonical_id(self, value: Union[str, NodeId]) -> str:
        """Normalized string form used as a cache key"""
        return self.node_id_to_string(self.resolve_node_id(value))

    def parse_qualified_name(self, value: Union[str, QualifiedName]) -> QualifiedName:
        """Parse ``<namespaceindex>:<name>``; namespace 0 can be omitted"""
        if isinstance(value, QualifiedName):
            return value
        if not isinstance(value, str):
            raise FormatError("QualifiedName must be a string")

        match = _QUALIFIED_NAME_PATTERN.match(value)
        if match is None:
            return QualifiedName(name=value, namespace_index=0)
        return QualifiedName(name=match.group(2), namespace_index=int(match.group(1)))

    def qualified_name_to_string(self, name: QualifiedName) -> str:
        return name.to_string()

    @staticmethod
    def _parse_identifier(kind: str, identifier: str, source: str):
        if kind == "i":
            if not re.fullmatch(r"[0-9]+", identifier) or int(identifier) > UINT32_MAX:
                raise FormatError(f"Invalid numeric identifier in NodeId: {source}")
            return int(identifier)
        if kind == "g":
            if not GUID_PATTERN.match(identifier):
                raise FormatError(f"Invalid guid identifier in NodeId: {source}")
            return uuid.UUID(identifier)
        if kind == "b":
            try:
                return base64.b64decode(identifier, validate=True)
            except binascii.Error as e:
                raise FormatError(f"Invalid opaque identifier in NodeId: {source}") from e
        if not identifier:
            raise FormatError(f"Empty string identifier in NodeId: {source}")
        return identifier
