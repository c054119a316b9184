"""
Shared test fixtures: an in-memory session recording every round trip.
"""

import pytest

from opcua_bridge.codec.ua_types import (
    GOOD,
    ArgumentDescriptor,
    DataType,
    NodeId,
    NodeIdType,
    QualifiedName,
    Variant,
    VariantArrayType,
)
from opcua_bridge.session import (
    BrowseResult,
    CallMethodResult,
    DataValue,
    ReferenceDescription,
    Session,
)


def argument(name, data_type, value_rank=-1):
    """Build an argument descriptor for a built-in type"""
    return ArgumentDescriptor(name=name, data_type=NodeId(0, int(data_type)), value_rank=value_rank)


class InMemorySession(Session):
    """Session serving InputArguments from a dict and echoing method calls

    Args:
        methods: canonical method id -> list of descriptors, or None when the
            method has no InputArguments property
        handlers: canonical method id -> callable(input Variants) -> output Variants
    """

    def __init__(self, methods, handlers=None, browse_status=None, read_status=None):
        self.methods = methods
        self.handlers = handlers or {}
        self.browse_status = browse_status or {}
        self.read_status = read_status or {}
        self.browse_calls = []
        self.read_calls = []
        self.call_calls = []
        self._properties = {}

    async def browse(self, nodes_to_browse):
        self.browse_calls.append(list(nodes_to_browse))
        results = []
        for description in nodes_to_browse:
            key = str(description.node_id)
            references = ()
            if self.methods.get(key) is not None:
                property_id = NodeId(1, f"{key}.InputArguments", NodeIdType.STRING)
                self._properties[str(property_id)] = key
                references = (
                    ReferenceDescription(node_id=NodeId(1, f"{key}.Other", NodeIdType.STRING),
                                         browse_name=QualifiedName("OutputArguments")),
                    ReferenceDescription(node_id=property_id,
                                         browse_name=QualifiedName("InputArguments")),
                )
            results.append(BrowseResult(self.browse_status.get(key, GOOD), references))
        return results

    async def read(self, nodes_to_read):
        self.read_calls.append(list(nodes_to_read))
        results = []
        for item in nodes_to_read:
            key = self._properties[str(item.node_id)]
            value = Variant(DataType.ExtensionObject, self.methods[key], VariantArrayType.Array)
            results.append(DataValue(value, self.read_status.get(key, GOOD)))
        return results

    async def call(self, methods_to_call):
        self.call_calls.append(list(methods_to_call))
        results = []
        for request in methods_to_call:
            handler = self.handlers.get(str(request.method_id), lambda inputs: ())
            results.append(CallMethodResult(
                status_code=GOOD,
                input_argument_results=tuple(GOOD for _ in request.input_arguments),
                output_arguments=tuple(handler(request.input_arguments)),
            ))
        return results


@pytest.fixture
def method_table():
    """Methods of the test object ns=1;i=5000"""
    return {
        "ns=1;i=5010": None,
        "ns=1;i=5020": [argument("Text", DataType.String)],
        "ns=1;i=5030": [],
        "ns=1;i=5040": [argument("A", DataType.Double), argument("B", DataType.Double)],
        "ns=1;i=5050": [argument("Matrix", DataType.Int32, 2)],
        "ns=1;i=5060": [argument("Counter", DataType.UInt64)],
    }


@pytest.fixture
def session(method_table):
    def multiply(inputs):
        return [Variant(DataType.Double, inputs[0].value * inputs[1].value)]

    return InMemorySession(method_table, handlers={"ns=1;i=5040": multiply})
