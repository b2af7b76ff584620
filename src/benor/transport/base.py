# src/benor/transport/base.py
"""
Transport base - best-effort point-to-point send plus fire-and-forget broadcast

Sends carry no delivery or ordering guarantee. Failures are swallowed and
counted; the protocol's quorum thresholds already absorb lost messages.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from ..consensus.messages import ConsensusMessage

logger = logging.getLogger("benor.transport")


@dataclass
class TransportStats:
    """Send counters for diagnostics"""
    sent: int = 0
    failed_sends: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"sent": self.sent, "failed_sends": self.failed_sends}


class Transport:
    """
    Base class for node-to-node message delivery.

    Subclasses implement _deliver(); send() wraps it so that no exception
    escapes to the consensus loop.
    """

    def __init__(self, total_nodes: int):
        self.total_nodes = total_nodes
        self.stats = TransportStats()
        self._pending: Set[asyncio.Task] = set()

    async def _deliver(self, peer_id: int, message: ConsensusMessage) -> None:
        raise NotImplementedError

    async def send(self, peer_id: int, message: ConsensusMessage) -> bool:
        """Send one message. Returns False (never raises) if delivery failed."""
        try:
            await self._deliver(peer_id, message)
        except Exception as e:
            self.stats.failed_sends += 1
            logger.debug(f"Send to node {peer_id} failed: {type(e).__name__}: {e}")
            return False
        self.stats.sent += 1
        return True

    def broadcast(self, message: ConsensusMessage, exclude: Optional[int] = None) -> None:
        """Schedule a send to every peer except `exclude`; does not wait"""
        for peer_id in range(self.total_nodes):
            if peer_id == exclude:
                continue
            task = asyncio.ensure_future(self.send(peer_id, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight broadcasts (used on shutdown and in tests)"""
        while self._pending:
            pending = list(self._pending)
            await asyncio.gather(*pending)
            self._pending.difference_update(pending)

    async def close(self) -> None:
        await self.drain()
