"""
Method input argument cache

Input argument types are needed to convert caller JSON into typed Variants.
They are declared by the ``InputArguments`` property (a Variable) of each
Method node, so resolving them costs a browse plus a read. Resolved argument
lists never change for the lifetime of the process, so they are cached by the
canonical method id string and never evicted.
"""

import logging
import time
from typing import Dict, List, Optional, Sequence, Tuple, Union

from opcua_bridge.codec.identifiers import IdentifierResolver
from opcua_bridge.codec.ua_types import ArgumentDescriptor, NodeId, VariantArrayType
from opcua_bridge.errors import RemoteBrowseError, RemoteReadError
from opcua_bridge.session import (
    HAS_PROPERTY,
    AttributeId,
    BrowseDescription,
    BrowseDirection,
    DataValue,
    NodeClass,
    ReadValueId,
    ReferenceDescription,
    ResultMask,
    Session,
    as_list,
)
from opcua_bridge.telemetry.metrics import increment_counter, record_latency
from opcua_bridge.telemetry.tracer import create_span

logger = logging.getLogger(__name__)

INPUT_ARGUMENTS = "InputArguments"

Descriptors = Tuple[ArgumentDescriptor, ...]
MethodIdLike = Union[str, NodeId]


def _find_input_arguments(references: Sequence[ReferenceDescription]) -> Optional[NodeId]:
    for ref in references:
        browse_name = ref.browse_name
        if browse_name and browse_name.namespace_index == 0 and browse_name.name == INPUT_ARGUMENTS:
            return ref.node_id
    return None


def _descriptors_from(data_value: DataValue) -> Descriptors:
    variant = data_value.value
    if variant is None or variant.value is None:
        return ()
    if variant.array_type is VariantArrayType.Scalar:
        return (ArgumentDescriptor.coerce(variant.value),)
    return tuple(ArgumentDescriptor.coerce(argument) for argument in variant.value)


async def fetch_input_arguments(session: Session, method_ids: Sequence[NodeId]) -> List[Descriptors]:
    """Request InputArguments of the given methods in one browse and one read

    Args:
        session: Session used for browse and read
        method_ids: Method node ids

    Returns:
        List of argument descriptor tuples in method_ids order; methods
        without an InputArguments property get an empty tuple

    Raises:
        RemoteBrowseError: A browse result has a non-good status
        RemoteReadError: A read result has a non-good status
    """
    if not method_ids:
        return []

    start_time = time.time()

    with create_span("opcua_bridge.fetch_input_arguments", {"methods.count": len(method_ids)}):
        methods_to_browse = [
            BrowseDescription(
                node_id=method_id,
                reference_type_id=HAS_PROPERTY,
                include_subtypes=True,
                browse_direction=BrowseDirection.Forward,
                node_class_mask=NodeClass.Variable,
                result_mask=ResultMask.BrowseName,
            )
            for method_id in method_ids
        ]

        browse_results = as_list(await session.browse(methods_to_browse))
        if len(browse_results) != len(method_ids):
            raise RemoteBrowseError(
                f"Browse returned {len(browse_results)} results for {len(method_ids)} methods")

        property_ids = []
        for method_id, browse_result in zip(method_ids, browse_results):
            status = browse_result.status_code
            if not status.is_good():
                logger.error(f"Browse of method {method_id} failed with {status.name}")
                raise RemoteBrowseError(
                    f"Browse of method {method_id} failed with {status.name}: {status.description}",
                    node_id=method_id,
                    status_code=status,
                )
            property_ids.append(_find_input_arguments(browse_result.references))

        nodes_to_read = [
            ReadValueId(node_id=property_id, attribute_id=AttributeId.Value)
            for property_id in property_ids
            if property_id is not None
        ]

        # None of the methods declares InputArguments
        if not nodes_to_read:
            return [() for _ in method_ids]

        data_values = as_list(await session.read(nodes_to_read))
        if len(data_values) != len(nodes_to_read):
            raise RemoteReadError(
                f"Read returned {len(data_values)} values for {len(nodes_to_read)} properties")

        remaining = iter(data_values)
        result = []
        for method_id, property_id in zip(method_ids, property_ids):
            if property_id is None:
                result.append(())
                continue
            data_value = next(remaining)
            status = data_value.status_code
            if not status.is_good():
                logger.error(f"Read of InputArguments of method {method_id} failed with {status.name}")
                raise RemoteReadError(
                    f"Read of InputArguments of method {method_id} failed with "
                    f"{status.name}: {status.description}",
                    node_id=method_id,
                    status_code=status,
                )
            result.append(_descriptors_from(data_value))

    latency_ms = (time.time() - start_time) * 1000
    record_latency("opcua_bridge.cache.fetch_latency", latency_ms)
    increment_counter("opcua_bridge.cache.fetches", 1)
    logger.info(f"Fetched InputArguments of {len(method_ids)} methods in {latency_ms:.2f}ms")

    return result


class ArgumentTypeCache:
    """Process-lifetime cache: canonical method id -> input argument descriptors"""

    def __init__(self,
                 session: Session,
                 resolver: Optional[IdentifierResolver] = None,
                 enabled: bool = True):
        """Initialize the cache

        Args:
            session: Session used to fetch missing entries
            resolver: Identifier collaborator producing canonical id strings
            enabled: When False every lookup goes to the server
        """
        self.session = session
        self.resolver = resolver if resolver is not None else IdentifierResolver()
        self.enabled = enabled
        self._entries: Dict[str, Descriptors] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, method_id: MethodIdLike) -> bool:
        return self.resolver.canonical_id(method_id) in self._entries

    async def get_descriptors(self, method_ids: Sequence[MethodIdLike]) -> List[Descriptors]:
        """Get input argument descriptors for the given methods

        Cached methods are answered from memory; all others are requested from
        the server in a single batch and stored.

        Args:
            method_ids: Method ids (NodeId or string), duplicates allowed

        Returns:
            List of descriptor tuples in method_ids order
        """
        node_ids = [self.resolver.resolve_node_id(method_id) for method_id in method_ids]

        if not self.enabled:
            return await fetch_input_arguments(self.session, node_ids)

        keys = [self.resolver.node_id_to_string(node_id) for node_id in node_ids]

        missing: Dict[str, NodeId] = {}
        for key, node_id in zip(keys, node_ids):
            if key not in self._entries and key not in missing:
                missing[key] = node_id

        hits = sum(1 for key in keys if key not in missing)
        if hits:
            increment_counter("opcua_bridge.cache.hits", hits)

        if missing:
            increment_counter("opcua_bridge.cache.misses", len(missing))
            logger.debug(f"InputArguments cache miss for {list(missing)}")
            fetched = await fetch_input_arguments(self.session, list(missing.values()))
            for key, descriptors in zip(missing, fetched):
                # Descriptors are immutable, a concurrent fetch may overwrite with an equal value
                self._entries[key] = descriptors

        return [self._entries[key] for key in keys]
