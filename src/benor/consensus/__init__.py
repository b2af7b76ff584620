# src/benor/consensus/__init__.py
"""
Consensus Module - Ben-Or randomized binary agreement

Each round a node:
- BROADCAST: sends its opinion for the round to every peer
- TALLY: counts round reports plus its own opinion
- DECIDE: on a strict majority, announces the decision
- ADOPT / COIN: adopts a value seen n - f times, else tosses a fair coin
"""

from .messages import ConsensusMessage, NodeStateSnapshot, parse_message
from .message_log import MessageLog
from .quorum import QuorumCalculator, Tally
from .coordinator import RoundCoordinator
from .node import (
    ConsensusNode,
    NodePhase,
    NodeStatus,
    StartResult,
    InvalidTransitionError,
    NodeAlreadyStartedError,
)

__all__ = [
    # Messages
    "ConsensusMessage",
    "NodeStateSnapshot",
    "parse_message",
    "MessageLog",
    # Quorum
    "QuorumCalculator",
    "Tally",
    # Node
    "RoundCoordinator",
    "ConsensusNode",
    "NodePhase",
    "NodeStatus",
    "StartResult",
    "InvalidTransitionError",
    "NodeAlreadyStartedError",
]
