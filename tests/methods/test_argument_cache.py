"""
Tests for the InputArguments descriptor cache
"""
import asyncio

import pytest
from unittest.mock import AsyncMock

from opcua_bridge.codec.ua_types import (
    ArgumentDescriptor,
    DataType,
    NodeId,
    StatusCode,
    QualifiedName,
    Variant,
)
from opcua_bridge.errors import RemoteBrowseError, RemoteReadError
from opcua_bridge.methods.argument_cache import ArgumentTypeCache, fetch_input_arguments
from opcua_bridge.session import (
    HAS_PROPERTY,
    AttributeId,
    BrowseDirection,
    BrowseResult,
    DataValue,
    NodeClass,
    ReferenceDescription,
    ResultMask,
)


class TestFetchInputArguments:
    """Test the browse + read round trip"""

    @pytest.mark.asyncio
    async def test_browse_description(self, session):
        await fetch_input_arguments(session, [NodeId(1, 5020)])

        assert len(session.browse_calls) == 1
        description = session.browse_calls[0][0]
        assert description.node_id == NodeId(1, 5020)
        assert description.reference_type_id == HAS_PROPERTY
        assert description.include_subtypes is True
        assert description.browse_direction is BrowseDirection.Forward
        assert description.node_class_mask == NodeClass.Variable
        assert description.result_mask == ResultMask.BrowseName

    @pytest.mark.asyncio
    async def test_single_read_for_batch(self, session):
        result = await fetch_input_arguments(
            session, [NodeId(1, 5020), NodeId(1, 5010), NodeId(1, 5040)])

        assert len(session.browse_calls) == 1
        assert len(session.read_calls) == 1
        assert len(session.read_calls[0]) == 2
        assert all(item.attribute_id is AttributeId.Value for item in session.read_calls[0])

        assert [d.name for d in result[0]] == ["Text"]
        assert result[1] == ()
        assert [d.name for d in result[2]] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_no_input_arguments_property(self, session):
        result = await fetch_input_arguments(session, [NodeId(1, 5010), NodeId(1, 9999)])

        assert result == [(), ()]
        assert session.read_calls == []

    @pytest.mark.asyncio
    async def test_empty_request(self, session):
        assert await fetch_input_arguments(session, []) == []
        assert session.browse_calls == []

    @pytest.mark.asyncio
    async def test_browse_failure(self, session):
        session.browse_status["ns=1;i=5040"] = StatusCode(0x80340000)

        with pytest.raises(RemoteBrowseError, match="ns=1;i=5040") as exc_info:
            await fetch_input_arguments(session, [NodeId(1, 5020), NodeId(1, 5040)])

        assert exc_info.value.node_id == NodeId(1, 5040)
        assert exc_info.value.status_code.name == "BadNodeIdUnknown"
        assert session.read_calls == []

    @pytest.mark.asyncio
    async def test_read_failure(self, session):
        session.read_status["ns=1;i=5020"] = StatusCode(0x801F0000)

        with pytest.raises(RemoteReadError, match="ns=1;i=5020"):
            await fetch_input_arguments(session, [NodeId(1, 5020)])

    @pytest.mark.asyncio
    async def test_browse_without_references(self):
        mock_session = AsyncMock()
        mock_session.browse.return_value = [BrowseResult(references=())]

        assert await fetch_input_arguments(mock_session, [NodeId(1, 1)]) == [()]
        mock_session.read.assert_not_called()

    def test_descriptor_coercion(self):
        descriptor = ArgumentDescriptor.coerce(
            {"name": "X", "dataType": NodeId(0, 6), "valueRank": 2, "arrayDimensions": [0, 0]})
        assert descriptor.name == "X"
        assert descriptor.builtin_type is DataType.Int32
        assert descriptor.value_rank == 2
        assert descriptor.array_dimensions == (0, 0)

    def test_non_builtin_descriptor(self):
        descriptor = ArgumentDescriptor.coerce({"name": "S", "dataType": NodeId(2, 3001)})
        assert descriptor.builtin_type is None
        assert descriptor.value_rank == -1


class TestArgumentTypeCache:
    """Test caching and batching behaviour"""

    @pytest.mark.asyncio
    async def test_order_preserved(self, session):
        cache = ArgumentTypeCache(session)

        result = await cache.get_descriptors(["ns=1;i=5040", "ns=1;i=5010", "ns=1;i=5020"])

        assert [d.name for d in result[0]] == ["A", "B"]
        assert result[1] == ()
        assert [d.name for d in result[2]] == ["Text"]

    @pytest.mark.asyncio
    async def test_single_fetch_total(self, session):
        cache = ArgumentTypeCache(session)

        first = await cache.get_descriptors(["ns=1;i=5020", "ns=1;i=5040"])
        second = await cache.get_descriptors(["ns=1;i=5020", "ns=1;i=5040"])

        assert first == second
        assert len(session.browse_calls) == 1
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_fetches_only_uncached(self, session):
        cache = ArgumentTypeCache(session)
        await cache.get_descriptors(["ns=1;i=5020"])

        await cache.get_descriptors(["ns=1;i=5020", "ns=1;i=5040"])

        assert len(session.browse_calls) == 2
        assert [d.node_id for d in session.browse_calls[1]] == [NodeId(1, 5040)]

    @pytest.mark.asyncio
    async def test_duplicates_fetched_once(self, session):
        cache = ArgumentTypeCache(session)

        result = await cache.get_descriptors(["ns=1;i=5040", NodeId(1, 5040), "ns=1;i=5040"])

        assert len(result) == 3
        assert result[0] is result[1] is result[2]
        assert len(session.browse_calls[0]) == 1

    @pytest.mark.asyncio
    async def test_empty_list_cached(self, session):
        cache = ArgumentTypeCache(session)

        assert await cache.get_descriptors(["ns=1;i=5010"]) == [()]
        assert await cache.get_descriptors(["ns=1;i=5010"]) == [()]

        assert "ns=1;i=5010" in cache
        assert len(session.browse_calls) == 1

    @pytest.mark.asyncio
    async def test_failed_fetch_not_cached(self, session):
        cache = ArgumentTypeCache(session)
        session.browse_status["ns=1;i=5020"] = StatusCode(0x80340000)

        with pytest.raises(RemoteBrowseError):
            await cache.get_descriptors(["ns=1;i=5020"])

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_disabled_cache_always_fetches(self, session):
        cache = ArgumentTypeCache(session, enabled=False)

        await cache.get_descriptors(["ns=1;i=5020"])
        await cache.get_descriptors(["ns=1;i=5020"])

        assert len(session.browse_calls) == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_concurrent_lookups(self, session):
        cache = ArgumentTypeCache(session)
        await cache.get_descriptors(["ns=1;i=5020"])

        results = await asyncio.gather(
            cache.get_descriptors(["ns=1;i=5040"]),
            cache.get_descriptors(["ns=1;i=5020"]),
            cache.get_descriptors(["ns=1;i=5040", "ns=1;i=5020"]),
        )

        assert [d.name for d in results[0][0]] == ["A", "B"]
        assert [d.name for d in results[1][0]] == ["Text"]
        assert results[2][0] == results[0][0]
        # The in-memory session never suspends, so 5040 is fetched exactly once
        assert len(session.browse_calls) == 2

    @pytest.mark.asyncio
    async def test_scalar_argument_value(self):
        descriptor = ArgumentDescriptor(name="Only", data_type=NodeId(0, 12))
        mock_session = AsyncMock()
        mock_session.browse.return_value = [BrowseResult(references=(
            ReferenceDescription(node_id=NodeId(1, 77), browse_name=QualifiedName("InputArguments")),
        ))]
        mock_session.read.return_value = [DataValue(Variant(DataType.ExtensionObject, descriptor))]

        cache = ArgumentTypeCache(mock_session)
        assert await cache.get_descriptors(["ns=1;i=7"]) == [(descriptor,)]

    @pytest.mark.asyncio
    async def test_inflight_fetch_does_not_block_cached_lookup(self, session):
        cache = ArgumentTypeCache(session)
        await cache.get_descriptors(["ns=1;i=5020"])

        gate = asyncio.Event()
        browse = session.browse

        async def slow_browse(nodes_to_browse):
            await gate.wait()
            return await browse(nodes_to_browse)

        session.browse = slow_browse
        pending = asyncio.ensure_future(cache.get_descriptors(["ns=1;i=5040"]))
        await asyncio.sleep(0)

        cached = await cache.get_descriptors(["ns=1;i=5020"])
        assert [d.name for d in cached[0]] == ["Text"]
        assert not pending.done()

        gate.set()
        fetched = await pending
        assert [d.name for d in fetched[0]] == ["A", "B"]
        assert "ns=1;i=5040" in cache
