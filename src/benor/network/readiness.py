# src/benor/network/readiness.py
"""
Readiness Barrier - tells nodes when every peer is reachable
"""

import asyncio
import logging
from typing import Callable, Set

logger = logging.getLogger("benor.readiness")

ReadinessPredicate = Callable[[], bool]


class ReadinessBarrier:
    """
    Tracks which nodes have started listening.

    Nodes mark themselves ready once their server is up; the consensus loop
    polls all_ready() on a fixed interval before round 0.
    """

    def __init__(self, total_nodes: int):
        if total_nodes < 1:
            raise ValueError(f"total_nodes must be >= 1, got {total_nodes}")
        self.total_nodes = total_nodes
        self._ready: Set[int] = set()

    def set_node_ready(self, node_id: int) -> None:
        if not 0 <= node_id < self.total_nodes:
            raise ValueError(f"Node id {node_id} outside [0, {self.total_nodes})")
        if node_id not in self._ready:
            self._ready.add(node_id)
            logger.debug(f"Node {node_id} ready ({len(self._ready)}/{self.total_nodes})")

    def all_ready(self) -> bool:
        return len(self._ready) == self.total_nodes

    def ready_nodes(self) -> Set[int]:
        return set(self._ready)

    async def wait(self, poll_interval: float = 1.0) -> None:
        await wait_until_ready(self.all_ready, poll_interval)


async def wait_until_ready(predicate: ReadinessPredicate, poll_interval: float) -> None:
    """Poll a readiness predicate until it holds; not cancellable by stop()"""
    while not predicate():
        await asyncio.sleep(poll_interval)
