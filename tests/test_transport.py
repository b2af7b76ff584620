# tests/test_transport.py
"""
Transport tests - best-effort sends, failure counting, readiness barrier
"""

import random

import pytest

from benor.consensus import ConsensusMessage
from benor.network import ReadinessBarrier
from benor.transport import HttpTransport, InMemoryNetwork


class TestLocalTransport:
    """In-memory delivery and simulated loss"""

    @pytest.mark.asyncio
    async def test_delivery_to_registered_node(self, make_node):
        network = InMemoryNetwork(2)
        receiver = make_node(node_id=1, total_nodes=2, max_faults=0)
        network.register(receiver)
        transport = network.transport_for(0)

        delivered = await transport.send(1, ConsensusMessage.opinion(0, 1))

        assert delivered is True
        assert len(receiver.log) == 1

    @pytest.mark.asyncio
    async def test_unregistered_peer_counts_as_failure(self):
        transport = InMemoryNetwork(3).transport_for(0)

        delivered = await transport.send(2, ConsensusMessage.opinion(0, 1))

        assert delivered is False
        assert transport.stats.failed_sends == 1

    @pytest.mark.asyncio
    async def test_drops_are_counted(self, make_node):
        network = InMemoryNetwork(2, drop_rate=0.5, rng=random.Random(5))
        receiver = make_node(node_id=1, total_nodes=2, max_faults=0)
        network.register(receiver)
        transport = network.transport_for(0)

        for _ in range(50):
            transport.broadcast(ConsensusMessage.opinion(0, 1), exclude=0)
        await transport.drain()

        assert transport.stats.sent + transport.stats.failed_sends == 50
        assert transport.stats.failed_sends > 0
        assert len(receiver.log) == transport.stats.sent

    def test_invalid_drop_rate(self):
        with pytest.raises(ValueError, match="drop_rate"):
            InMemoryNetwork(3, drop_rate=1.0)


class TestHttpTransport:
    """Network errors never escape send()"""

    @pytest.mark.asyncio
    async def test_unreachable_peer_is_swallowed(self):
        transport = HttpTransport(2, url_for=lambda i: "http://127.0.0.1:1", send_timeout=0.5)
        try:
            delivered = await transport.send(1, ConsensusMessage.opinion(0, 1))
        finally:
            await transport.close()

        assert delivered is False
        assert transport.stats.failed_sends == 1
        assert transport.stats.sent == 0


class TestReadinessBarrier:

    def test_all_ready(self):
        barrier = ReadinessBarrier(3)
        barrier.set_node_ready(0)
        barrier.set_node_ready(2)
        assert barrier.all_ready() is False

        barrier.set_node_ready(1)
        assert barrier.all_ready() is True
        assert barrier.ready_nodes() == {0, 1, 2}

    def test_marking_twice_is_harmless(self):
        barrier = ReadinessBarrier(1)
        barrier.set_node_ready(0)
        barrier.set_node_ready(0)

        assert barrier.all_ready() is True

    def test_unknown_node_rejected(self):
        with pytest.raises(ValueError, match="outside"):
            ReadinessBarrier(2).set_node_ready(2)

    @pytest.mark.asyncio
    async def test_wait_returns_once_ready(self):
        barrier = ReadinessBarrier(1)
        barrier.set_node_ready(0)

        await barrier.wait(poll_interval=0.01)
