# src/benor/consensus/message_log.py
"""
Message Log - per-node buffer of received round messages, indexed by round
"""

import logging
from collections import defaultdict
from typing import Dict, List

from .messages import ConsensusMessage

logger = logging.getLogger("benor.message_log")


class MessageLog:
    """
    Append-only log of inbound messages.

    Messages are bucketed by the round they claim; arrival order is kept
    within each round. The only removal is prune_before(), which drops whole
    rounds that fall behind the retention window.
    """

    def __init__(self):
        self._by_round: Dict[int, List[ConsensusMessage]] = defaultdict(list)
        self._size = 0
        self._pruned = 0

    def record(self, message: ConsensusMessage) -> None:
        """Append a message unconditionally (no deduplication)"""
        self._by_round[message.round].append(message)
        self._size += 1

    def messages_for_round(self, round: int) -> List[ConsensusMessage]:
        """Messages claiming the given round, in arrival order"""
        return list(self._by_round.get(round, ()))

    def prune_before(self, round: int) -> int:
        """
        Drop every round strictly below `round`.

        Returns:
            Number of messages removed
        """
        stale = [r for r in self._by_round if r < round]
        removed = 0
        for r in stale:
            removed += len(self._by_round.pop(r))
        if removed:
            self._size -= removed
            self._pruned += removed
            logger.debug(f"Pruned {removed} messages below round {round}")
        return removed

    def rounds(self) -> List[int]:
        return sorted(self._by_round)

    @property
    def pruned(self) -> int:
        return self._pruned

    def __len__(self) -> int:
        return self._size
