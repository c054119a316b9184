"""
Method invocation

Converts caller JSON input arguments into typed Variants using the declared
InputArguments of each method and forwards the whole batch to the session in a
single call. Validation of every request completes before anything is sent:
one bad request fails the entire batch.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from opcua_bridge.codec.ua_types import NodeId
from opcua_bridge.codec.value_codec import ValueCodec
from opcua_bridge.errors import (
    ArgumentConversionError,
    ArgumentCountError,
    BridgeError,
    CodecError,
    MissingArgumentsError,
    RemoteCallError,
    UnsupportedTypeError,
)
from opcua_bridge.methods.argument_cache import ArgumentTypeCache, Descriptors
from opcua_bridge.session import CallMethodRequest, CallMethodResult, Session, as_list
from opcua_bridge.telemetry.metrics import increment_counter, record_latency
from opcua_bridge.telemetry.tracer import create_span
from opcua_bridge.utils.serialization import call_result_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallRequest:
    """Caller request: JSON input arguments, not yet typed"""
    object_id: Union[str, NodeId]
    method_id: Union[str, NodeId]
    input_arguments: Optional[Sequence[Any]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CallRequest":
        """Create from the caller-facing {objectId, methodId, inputArguments} mapping"""
        try:
            return cls(
                object_id=data["objectId"],
                method_id=data["methodId"],
                input_arguments=data.get("inputArguments"),
            )
        except KeyError as e:
            raise ValueError(f"Call request is missing field {e.args[0]}") from e


class MethodInvoker:
    """Typed, batched method calls driven by declared input arguments"""

    def __init__(self,
                 session: Session,
                 argument_cache: Optional[ArgumentTypeCache] = None,
                 codec: Optional[ValueCodec] = None):
        """Initialize the invoker

        Args:
            session: Session the call batch is forwarded to
            argument_cache: Input argument descriptor cache
            codec: Variant codec; its resolver parses string ids
        """
        self.session = session
        self.codec = codec if codec is not None else ValueCodec()
        if argument_cache is None:
            argument_cache = ArgumentTypeCache(session, self.codec.resolver)
        self.argument_cache = argument_cache

    async def invoke(self, requests: Sequence[CallRequest]) -> List[CallMethodResult]:
        """Call a batch of methods

        Args:
            requests: Call requests with JSON input arguments

        Returns:
            Session call results in request order

        Raises:
            MissingArgumentsError: Arguments omitted for a method declaring some
            ArgumentCountError: Wrong number of arguments
            ArgumentConversionError: An argument does not fit its declared type, or
                the declared type is not a built-in type
        """
        if not requests:
            return []

        start_time = time.time()

        with create_span("opcua_bridge.invoke", {"requests.count": len(requests)}):
            try:
                methods_to_call = await self._build_call_requests(requests)
            except BridgeError as e:
                increment_counter("opcua_bridge.invoke.errors", 1, {"type": type(e).__name__})
                raise

            logger.info(f"Calling {len(methods_to_call)} methods")
            results = as_list(await self.session.call(methods_to_call))

        if len(results) != len(methods_to_call):
            raise RemoteCallError(
                f"Call returned {len(results)} results for {len(methods_to_call)} requests")

        increment_counter("opcua_bridge.invoke.requests", len(methods_to_call))
        record_latency("opcua_bridge.invoke.latency", (time.time() - start_time) * 1000)

        return results

    async def call_method(self, request: CallRequest) -> CallMethodResult:
        """Call a single method"""
        results = await self.invoke([request])
        return results[0]

    async def invoke_json(self, requests: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Call methods described by caller-facing mappings and render JSON results"""
        results = await self.invoke([CallRequest.from_dict(request) for request in requests])
        return [call_result_to_dict(result, self.codec) for result in results]

    async def _build_call_requests(self, requests: Sequence[CallRequest]) -> List[CallMethodRequest]:
        resolver = self.codec.resolver
        method_ids = [resolver.resolve_node_id(request.method_id) for request in requests]

        # Argument types are required to convert input JSON to Variants
        descriptor_lists = await self.argument_cache.get_descriptors(method_ids)

        return [
            self._build_call_request(request, method_id, descriptors)
            for request, method_id, descriptors in zip(requests, method_ids, descriptor_lists)
        ]

    def _build_call_request(self,
                            request: CallRequest,
                            method_id: NodeId,
                            descriptors: Descriptors) -> CallMethodRequest:
        object_id = self.codec.resolver.resolve_node_id(request.object_id)
        arguments = request.input_arguments

        if not arguments:
            if descriptors:
                logger.error(f"Method {method_id} called without its {len(descriptors)} input arguments")
                raise MissingArgumentsError(f"Method {method_id} requires inputArguments", method_id)
            return CallMethodRequest(object_id=object_id, method_id=method_id)

        if len(arguments) != len(descriptors):
            logger.error(f"Method {method_id} expects {len(descriptors)} input arguments, got {len(arguments)}")
            raise ArgumentCountError(
                f"Input arguments array of the method {method_id} has a wrong length: "
                f"expected {len(descriptors)}, got {len(arguments)}",
                method_id,
            )

        input_arguments = []
        for index, (argument, descriptor) in enumerate(zip(arguments, descriptors)):
            try:
                data_type = descriptor.builtin_type
                # Only built-in types are supported
                if data_type is None:
                    raise UnsupportedTypeError(f"Data type {descriptor.data_type} is not supported.")
                input_arguments.append(self.codec.from_json(argument, data_type, descriptor.value_rank))
            except CodecError as e:
                logger.error(f"Input argument {index} of method {method_id} is invalid: {e}")
                raise ArgumentConversionError(
                    f"Input argument {index} ({descriptor.name}) of method {method_id} is invalid: {e}",
                    method_id,
                    index,
                ) from e

        return CallMethodRequest(
            object_id=object_id,
            method_id=method_id,
            input_arguments=tuple(input_arguments),
        )
