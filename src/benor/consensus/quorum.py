# src/benor/consensus/quorum.py
"""
Quorum Calculator - Ben-Or threshold calculation
Determines when a node may decide, adopt a value, or must toss a coin

Crash-fault formulas:
- n = total nodes
- f = max crashed/omitting nodes tolerated, n > 2f
- majority = floor(n/2) + 1 (decide outright)
- safe_adopt = n - f (adopt as next opinion)

For n=4, f=1:
- majority = 3
- safe_adopt = 3
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .messages import ConsensusMessage

logger = logging.getLogger("benor.quorum")


@dataclass(frozen=True)
class Tally:
    """Round counts, including the node's own opinion"""
    count0: int = 0
    count1: int = 0

    def count(self, value: int) -> int:
        return self.count1 if value == 1 else self.count0


@dataclass
class QuorumCalculator:
    """
    Calculates Ben-Or thresholds for a network of n nodes tolerating f faults.
    """

    total_nodes: int = 4
    max_faults: int = 1

    def __post_init__(self):
        if self.total_nodes < 1:
            raise ValueError(f"Network needs at least one node, got {self.total_nodes}")
        if not 0 <= self.max_faults <= self.total_nodes:
            raise ValueError(
                f"Fault bound must be within [0, {self.total_nodes}], got {self.max_faults}"
            )
        # Agreement and termination only hold with a correct majority: n > 2f
        if self.total_nodes <= 2 * self.max_faults:
            logger.warning(
                f"n={self.total_nodes} <= 2f={2 * self.max_faults}: "
                f"nodes may never decide"
            )

        self._majority = self.total_nodes // 2 + 1
        self._safe_adopt = self.total_nodes - self.max_faults
        logger.debug(
            f"QuorumCalculator initialized: n={self.total_nodes}, f={self.max_faults}, "
            f"majority={self._majority}, safe_adopt={self._safe_adopt}"
        )

    @property
    def n(self) -> int:
        return self.total_nodes

    @property
    def f(self) -> int:
        return self.max_faults

    @property
    def majority(self) -> int:
        """Minimum same-valued reports to decide (strictly more than n/2)"""
        return self._majority

    @property
    def safe_adopt(self) -> int:
        """Minimum same-valued reports to adopt a value (n - f)"""
        return self._safe_adopt

    def has_majority(self, count: int) -> bool:
        return count > self.total_nodes / 2

    def can_adopt(self, count: int) -> bool:
        return count >= self._safe_adopt

    def tally(self, messages: Iterable[ConsensusMessage], own_opinion: Optional[int]) -> Tally:
        """Count reported values for a round, plus the node's own opinion"""
        count0 = 1 if own_opinion == 0 else 0
        count1 = 1 if own_opinion == 1 else 0
        for message in messages:
            if message.value == 0:
                count0 += 1
            elif message.value == 1:
                count1 += 1
        return Tally(count0=count0, count1=count1)

    def majority_value(self, tally: Tally) -> Optional[int]:
        """Value with a strict majority, if any"""
        if self.has_majority(tally.count0):
            return 0
        if self.has_majority(tally.count1):
            return 1
        return None

    def adoptable_value(self, tally: Tally) -> Optional[int]:
        """Value reaching the n - f threshold, if any"""
        if self.can_adopt(tally.count0):
            return 0
        if self.can_adopt(tally.count1):
            return 1
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Return quorum configuration as dict"""
        return {
            "total_nodes": self.total_nodes,
            "max_faults": self.max_faults,
            "majority": self._majority,
            "safe_adopt": self._safe_adopt,
        }
