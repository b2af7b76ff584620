# src/benor/transport/local.py
"""
In-memory Transport - delivers messages straight into peer nodes in-process

Used by the offline simulator and the test suite. An optional drop
probability models omission faults on every link.
"""

import logging
import random
from typing import TYPE_CHECKING, Dict, Optional

from ..consensus.messages import ConsensusMessage
from .base import Transport

if TYPE_CHECKING:
    from ..consensus.node import ConsensusNode

logger = logging.getLogger("benor.transport.local")


class MessageDropped(Exception):
    """The simulated link lost the message"""


class UnknownPeerError(Exception):
    """No node is registered under the requested id"""


class InMemoryNetwork:
    """Registry of in-process nodes sharing a lossy link model"""

    def __init__(self, total_nodes: int, drop_rate: float = 0.0, rng: Optional[random.Random] = None):
        if not 0.0 <= drop_rate < 1.0:
            raise ValueError(f"drop_rate must be within [0, 1), got {drop_rate}")
        self.total_nodes = total_nodes
        self.drop_rate = drop_rate
        self.rng = rng or random.Random()
        self.nodes: Dict[int, "ConsensusNode"] = {}

    def register(self, node: "ConsensusNode") -> None:
        self.nodes[node.node_id] = node

    def transport_for(self, node_id: int) -> "LocalTransport":
        return LocalTransport(self, sender_id=node_id)


class LocalTransport(Transport):
    """Transport bound to one sender on an InMemoryNetwork"""

    def __init__(self, network: InMemoryNetwork, sender_id: int):
        super().__init__(network.total_nodes)
        self.network = network
        self.sender_id = sender_id

    async def _deliver(self, peer_id: int, message: ConsensusMessage) -> None:
        node = self.network.nodes.get(peer_id)
        if node is None:
            raise UnknownPeerError(f"Node {peer_id} is not registered")
        if self.network.drop_rate and self.network.rng.random() < self.network.drop_rate:
            raise MessageDropped(f"{self.sender_id} -> {peer_id} round {message.round}")
        node.handle_inbound(message)
