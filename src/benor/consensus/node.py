# src/benor/consensus/node.py
"""
Consensus Node - per-node Ben-Or state machine
Lifecycle: INIT → RUNNING → {DECIDED, STOPPED}; faulty nodes sit in FAULTY

The node owns its opinion (x), round (k), decided flag and message log.
Inbound handling and the round loop run on the same event loop, so state is
only ever touched by one coroutine at a time and needs no lock.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Set

from ..config import NodeConfig
from ..network.readiness import ReadinessPredicate, wait_until_ready
from .coordinator import RoundCoordinator
from .message_log import MessageLog
from .messages import ConsensusMessage, NodeStateSnapshot
from .quorum import QuorumCalculator

if TYPE_CHECKING:
    from ..transport.base import Transport

logger = logging.getLogger("benor.node")


class NodePhase(str, Enum):
    """Node lifecycle phases"""
    INIT = "init"              # Created, start() not yet called
    RUNNING = "running"        # Round loop active
    DECIDED = "decided"        # Final value reached (terminal)
    STOPPED = "stopped"        # Halted by stop() before deciding
    FAULTY = "faulty"          # Configured faulty, never participates (terminal)


class NodeStatus(str, Enum):
    """Liveness reported by the status route"""
    LIVE = "live"
    FAULTY = "faulty"


# Valid phase transitions
VALID_TRANSITIONS: Dict[NodePhase, Set[NodePhase]] = {
    NodePhase.INIT: {NodePhase.RUNNING, NodePhase.DECIDED, NodePhase.FAULTY},
    NodePhase.RUNNING: {NodePhase.DECIDED, NodePhase.STOPPED},
    NodePhase.STOPPED: {NodePhase.DECIDED},  # A late announcement is still adopted
    NodePhase.DECIDED: set(),
    NodePhase.FAULTY: set(),
}


class InvalidTransitionError(Exception):
    """Raised when an invalid phase transition is attempted"""
    def __init__(self, node_id: int, from_phase: NodePhase, to_phase: NodePhase):
        self.node_id = node_id
        self.from_phase = from_phase
        self.to_phase = to_phase
        super().__init__(
            f"Invalid transition for node {node_id}: {from_phase.value} → {to_phase.value}"
        )


class NodeAlreadyStartedError(Exception):
    """Raised when start() is called while the round loop is already running"""
    def __init__(self, node_id: int):
        self.node_id = node_id
        super().__init__(f"Node {node_id} is already running")


@dataclass(frozen=True)
class StartResult:
    """Outcome of start(): a decided value, or stopped"""
    decided: bool
    value: Optional[int] = None

    @property
    def stopped(self) -> bool:
        return not self.decided

    def describe(self) -> str:
        return f"decided {self.value}" if self.decided else "stopped"


class ConsensusNode:
    """
    One participant in a Ben-Or network.

    Operations mirror the node control surface: status(), handle_inbound(),
    start(), stop() and get_state().
    """

    def __init__(
        self,
        node_id: int,
        total_nodes: int,
        max_faults: int,
        initial_value: Optional[int],
        transport: "Transport",
        is_faulty: bool = False,
        nodes_are_ready: Optional[ReadinessPredicate] = None,
        config: Optional[NodeConfig] = None,
        rng: Optional[random.Random] = None
    ):
        if not 0 <= node_id < total_nodes:
            raise ValueError(f"Node id {node_id} outside [0, {total_nodes})")
        if initial_value not in (0, 1, None):
            raise ValueError(f"Initial value must be 0, 1 or None, got {initial_value!r}")

        self.node_id = node_id
        self.is_faulty = is_faulty
        self.transport = transport
        self.config = config or NodeConfig()
        self.quorum = QuorumCalculator(total_nodes=total_nodes, max_faults=max_faults)
        self.log = MessageLog()
        self.coordinator = RoundCoordinator(
            self.quorum,
            round_delay=self.config.round_delay,
            rng=rng
        )
        self._nodes_are_ready = nodes_are_ready or (lambda: True)

        # Protocol state
        self.killed = False
        self.x: Optional[int] = initial_value
        self.decided: Optional[bool] = False
        self.k: Optional[int] = 0
        self.phase = NodePhase.INIT

        # Diagnostics
        self.conflicting_decisions = 0

        if is_faulty:
            self._mark_faulty()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _transition(self, new_phase: NodePhase, reason: Optional[str] = None) -> None:
        if new_phase not in VALID_TRANSITIONS[self.phase]:
            raise InvalidTransitionError(self.node_id, self.phase, new_phase)
        old_phase = self.phase
        self.phase = new_phase
        logger.info(f"Node {self.node_id}: {old_phase.value} → {new_phase.value}"
                    + (f" ({reason})" if reason else ""))

    def _mark_faulty(self) -> None:
        self.x = None
        self.decided = None
        self.k = None
        if self.phase != NodePhase.FAULTY:
            self._transition(NodePhase.FAULTY, "configured faulty")

    def _current_result(self) -> StartResult:
        if self.decided:
            return StartResult(decided=True, value=self.x)
        return StartResult(decided=False)

    # =========================================================================
    # Operations
    # =========================================================================

    def status(self) -> NodeStatus:
        """Liveness, independent of decision state"""
        return NodeStatus.FAULTY if self.is_faulty else NodeStatus.LIVE

    def handle_inbound(self, message: ConsensusMessage) -> None:
        """
        Record an inbound message and eagerly adopt decision announcements.

        Adoption ignores the announcement's round: a node still working on
        round 2 adopts a decision announced in round 5 immediately.
        """
        self.log.record(message)
        if message.decision and not self.is_faulty:
            self.decide(message.value, reason=f"announced in round {message.round}")

    def decide(self, value: int, reason: Optional[str] = None) -> bool:
        """
        Latch a final value.

        The first decision wins. A later decision with a different value is
        counted and ignored. Returns True if this call set the decision.
        """
        if self.decided:
            if value != self.x:
                self.conflicting_decisions += 1
                logger.warning(
                    f"Node {self.node_id}: ignoring conflicting decision {value} "
                    f"(already decided {self.x})" + (f" ({reason})" if reason else "")
                )
            return False

        self.decided = True
        self.x = value
        self._transition(NodePhase.DECIDED, f"value={value}" + (f", {reason}" if reason else ""))
        self._apply_retention()
        return True

    async def start(self) -> StartResult:
        """
        Run the protocol until decided or stopped.

        Raises:
            NodeAlreadyStartedError: If the round loop is already running
        """
        if self.is_faulty:
            self._mark_faulty()
            return StartResult(decided=False)

        if self.phase == NodePhase.RUNNING:
            raise NodeAlreadyStartedError(self.node_id)
        if self.phase != NodePhase.INIT:
            return self._current_result()

        self._transition(NodePhase.RUNNING)
        await wait_until_ready(self._nodes_are_ready, self.config.readiness_poll_interval)

        while not self.killed and not self.decided:
            await self.coordinator.step(self)
            logger.debug(f"Node {self.node_id} state: {self.get_state().model_dump()}")

        if self.decided:
            return self._current_result()

        self._transition(NodePhase.STOPPED, f"killed at round {self.k}")
        return StartResult(decided=False)

    def stop(self) -> None:
        """Request a halt; observed at the top of the next round"""
        if not self.killed:
            self.killed = True
            logger.info(f"Node {self.node_id}: stop requested at round {self.k}")

    def get_state(self) -> NodeStateSnapshot:
        return NodeStateSnapshot(killed=self.killed, x=self.x, decided=self.decided, k=self.k)

    # =========================================================================
    # Round bookkeeping (driven by RoundCoordinator)
    # =========================================================================

    def broadcast(self, message: ConsensusMessage) -> None:
        self.transport.broadcast(message, exclude=self.node_id)

    def advance_round(self) -> None:
        self.k += 1
        self._apply_retention()

    def _apply_retention(self) -> None:
        window = self.config.retention_rounds
        if window is not None and self.k is not None:
            self.log.prune_before(self.k - window + 1)

    def metrics(self) -> Dict[str, Any]:
        """Counters for diagnostics"""
        return {
            "node_id": self.node_id,
            "phase": self.phase.value,
            **self.transport.stats.to_dict(),
            "messages_logged": len(self.log),
            "messages_pruned": self.log.pruned,
            "conflicting_decisions": self.conflicting_decisions,
        }
