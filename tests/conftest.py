"""
pytest configuration for the Ben-Or test suite
"""

import pytest

from benor.config import NodeConfig
from benor.consensus import ConsensusNode
from benor.transport.base import Transport


class RecordingTransport(Transport):
    """Transport that records every delivered message instead of sending it"""

    def __init__(self, total_nodes: int):
        super().__init__(total_nodes)
        self.delivered = []

    async def _deliver(self, peer_id, message):
        self.delivered.append((peer_id, message))


class FailingTransport(Transport):
    """Transport whose every send fails"""

    async def _deliver(self, peer_id, message):
        raise ConnectionError(f"node {peer_id} unreachable")


@pytest.fixture
def fast_config():
    """Zero-wait node configuration"""
    return NodeConfig(round_delay=0.0, readiness_poll_interval=0.01)


@pytest.fixture
def sim_config():
    """Short but non-zero propagation window for multi-node runs"""
    return NodeConfig(round_delay=0.01, readiness_poll_interval=0.01)


@pytest.fixture
def make_node(fast_config):
    """Factory for a standalone node wired to a RecordingTransport"""
    def _make(node_id=0, total_nodes=4, max_faults=1, initial_value=1, is_faulty=False, **kwargs):
        kwargs.setdefault("config", fast_config)
        return ConsensusNode(
            node_id=node_id,
            total_nodes=total_nodes,
            max_faults=max_faults,
            initial_value=initial_value,
            transport=kwargs.pop("transport", RecordingTransport(total_nodes)),
            is_faulty=is_faulty,
            **kwargs
        )
    return _make


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "network: test binds real local TCP ports")
