"""
Tests for NodeId, ExpandedNodeId and QualifiedName resolution
"""
import uuid

import pytest

from opcua_bridge.codec.identifiers import IdentifierResolver
from opcua_bridge.codec.ua_types import (
    ExpandedNodeId,
    NodeId,
    NodeIdType,
    QualifiedName,
)
from opcua_bridge.errors import FormatError


@pytest.fixture
def resolver():
    return IdentifierResolver()


class TestNodeId:
    """Test NodeId parsing and formatting"""

    def test_serialize(self, resolver):
        assert resolver.node_id_to_string(NodeId(0, 1234)) == "ns=0;i=1234"
        assert str(NodeId(1, "TestNodeId", NodeIdType.STRING)) == "ns=1;s=TestNodeId"

    def test_parse_numeric(self, resolver):
        value = resolver.resolve_node_id("ns=1;i=123")
        assert value.identifier_type is NodeIdType.NUMERIC
        assert value.namespace == 1
        assert value.value == 123

    def test_parse_without_namespace(self, resolver):
        assert resolver.resolve_node_id("i=85") == NodeId(0, 85)

    def test_parse_string(self, resolver):
        value = resolver.resolve_node_id("ns=1;s=TestNodeId")
        assert value.identifier_type is NodeIdType.STRING
        assert value.namespace == 1
        assert value.value == "TestNodeId"

    def test_parse_guid(self, resolver):
        value = resolver.resolve_node_id("ns=2;g=72962b91-fa75-4ae6-8d28-b404dc7daf63")
        assert value.identifier_type is NodeIdType.GUID
        assert value.value == uuid.UUID("72962b91-fa75-4ae6-8d28-b404dc7daf63")
        assert str(value) == "ns=2;g=72962B91-FA75-4AE6-8D28-B404DC7DAF63"

    def test_parse_opaque(self, resolver):
        value = resolver.resolve_node_id("ns=3;b=AQI=")
        assert value.identifier_type is NodeIdType.BYTESTRING
        assert value.value == b"\x01\x02"
        assert str(value) == "ns=3;b=AQI="

    def test_parse_symbolic_name(self, resolver):
        assert resolver.resolve_node_id("ObjectsFolder") == NodeId(0, 85)
        assert resolver.resolve_node_id("RootFolder") == NodeId(0, 84)
        assert resolver.resolve_node_id("HasProperty") == NodeId(0, 46)
        assert resolver.resolve_node_id("Double") == NodeId(0, 11)

    def test_custom_symbolic_name(self):
        resolver = IdentifierResolver({"MyMethod": 5040})
        assert resolver.resolve_node_id("MyMethod") == NodeId(0, 5040)

    def test_node_id_passthrough(self, resolver):
        node_id = NodeId(4, 7)
        assert resolver.resolve_node_id(node_id) is node_id

    def test_not_a_string(self, resolver):
        for value in ({}, 10, None):
            with pytest.raises(FormatError, match="NodeId must be a string"):
                resolver.resolve_node_id(value)

    @pytest.mark.parametrize("text", ["invalid", "ns=0", "ns=1;i=abc", "ns=1;i=4294967296",
                                      "ns=1;g=1234", "ns=1;s=", "ns=x;i=1"])
    def test_invalid_string(self, resolver, text):
        with pytest.raises(FormatError):
            resolver.resolve_node_id(text)

    def test_canonical_id(self, resolver):
        assert resolver.canonical_id("i=85") == "ns=0;i=85"
        assert resolver.canonical_id("ObjectsFolder") == "ns=0;i=85"
        assert resolver.canonical_id(NodeId(1, 5020)) == "ns=1;i=5020"


class TestExpandedNodeId:
    """Test ExpandedNodeId parsing and formatting"""

    def test_plain_node_id(self, resolver):
        value = resolver.resolve_expanded_node_id("ns=1;i=10")
        assert isinstance(value, ExpandedNodeId)
        assert value.namespace == 1
        assert value.server_index == 0
        assert str(value) == "ns=1;i=10"

    def test_uri_and_server(self, resolver):
        value = resolver.resolve_expanded_node_id("svr=1;nsu=http://test.org/UA/;s=Pump")
        assert value.server_index == 1
        assert value.namespace_uri == "http://test.org/UA/"
        assert value.value == "Pump"
        assert str(value) == "svr=1;nsu=http://test.org/UA/;s=Pump"

    def test_uri_with_namespace_index(self, resolver):
        with pytest.raises(FormatError):
            resolver.resolve_expanded_node_id("nsu=urn:x;ns=1;i=1")


class TestQualifiedName:
    """Test QualifiedName parsing and formatting"""

    def test_serialize(self, resolver):
        assert resolver.qualified_name_to_string(QualifiedName("TestName", 1)) == "1:TestName"

    def test_serialize_no_namespace(self, resolver):
        assert resolver.qualified_name_to_string(QualifiedName("TestName", 0)) == "TestName"

    def test_parse(self, resolver):
        assert resolver.parse_qualified_name("1:SomeName") == QualifiedName("SomeName", 1)

    def test_parse_no_namespace(self, resolver):
        assert resolver.parse_qualified_name("NoNamespace") == QualifiedName("NoNamespace", 0)

    def test_not_a_string(self, resolver):
        for value in ({}, 10):
            with pytest.raises(FormatError, match="QualifiedName must be a string"):
                resolver.parse_qualified_name(value)
