# src/benor/consensus/coordinator.py
"""
Round Coordinator - one Ben-Or round for a node

Round k with opinion x:
1. Broadcast {k, x} to every peer (fire-and-forget)
2. Wait the propagation window
3. Adopt any decision announcement logged for round k
4. Tally round k reports plus x
5. Strict majority (> n/2): decide and announce
6. Otherwise adopt a value seen n - f times, else toss a fair coin
7. Advance to k + 1
"""

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Optional

from .messages import ConsensusMessage
from .quorum import QuorumCalculator

if TYPE_CHECKING:
    from .node import ConsensusNode

logger = logging.getLogger("benor.coordinator")


class RoundCoordinator:
    """Executes a single consensus step against a ConsensusNode"""

    def __init__(
        self,
        quorum: QuorumCalculator,
        round_delay: float = 0.1,
        rng: Optional[random.Random] = None
    ):
        self.quorum = quorum
        self.round_delay = round_delay
        self.rng = rng or random.Random()
        self.coin_tosses = 0

    def toss_coin(self) -> int:
        self.coin_tosses += 1
        return self.rng.randint(0, 1)

    async def step(self, node: "ConsensusNode") -> None:
        k = node.k
        x = node.x

        node.broadcast(ConsensusMessage.opinion(k, x))

        await asyncio.sleep(self.round_delay)

        # An announcement may have been adopted while we waited
        if node.decided:
            return

        round_messages = node.log.messages_for_round(k)

        announcement = next((m for m in round_messages if m.decision), None)
        if announcement is not None:
            node.decide(announcement.value, reason=f"announcement in round {k}")
            return

        tally = self.quorum.tally(round_messages, x)

        value = self.quorum.majority_value(tally)
        if value is not None:
            if node.decide(value, reason=f"majority {tally.count(value)}/{self.quorum.n} in round {k}"):
                node.broadcast(ConsensusMessage.announcement(k, value))
            return

        adopted = self.quorum.adoptable_value(tally)
        if adopted is not None:
            node.x = adopted
            logger.debug(f"Node {node.node_id} round {k}: adopted {adopted} "
                         f"(count0={tally.count0}, count1={tally.count1})")
        else:
            node.x = self.toss_coin()
            logger.debug(f"Node {node.node_id} round {k}: coin toss -> {node.x} "
                         f"(count0={tally.count0}, count1={tally.count1})")

        node.advance_round()
