# PATH: execution/state_machine.py
"""
Transaction lifecycle state machine.

LIFECYCLE CONTRACT:
===================

States (TxState):
  BUILDING    → building the transaction (sequence number, gas)
  SIMULATING  → dry run requested
  SIMULATED   → dry run returned an outcome
  SIGNING     → obtaining signing message and signature
  SUBMITTED   → accepted by the node, pending
  FINALIZED   → committed, Move execution succeeded
  ABORTED     → committed, Move execution aborted (outcome success=false)
  ERRORED     → infrastructure error or admission rejection

Transitions:
  BUILDING   → SIMULATING | SIGNING
  SIMULATING → SIMULATED
  SIGNING    → SUBMITTED
  SUBMITTED  → FINALIZED | ABORTED
  *          → ERRORED   (from any non-terminal state)

===================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class TxState(str, Enum):
    """Transaction lifecycle states."""
    BUILDING = "BUILDING"
    SIMULATING = "SIMULATING"
    SIMULATED = "SIMULATED"
    SIGNING = "SIGNING"
    SUBMITTED = "SUBMITTED"
    FINALIZED = "FINALIZED"
    ABORTED = "ABORTED"
    ERRORED = "ERRORED"


VALID_TRANSITIONS: Dict[TxState, List[TxState]] = {
    TxState.BUILDING: [TxState.SIMULATING, TxState.SIGNING, TxState.ERRORED],
    TxState.SIMULATING: [TxState.SIMULATED, TxState.ERRORED],
    TxState.SIMULATED: [],  # Terminal state
    TxState.SIGNING: [TxState.SUBMITTED, TxState.ERRORED],
    TxState.SUBMITTED: [TxState.FINALIZED, TxState.ABORTED, TxState.ERRORED],
    TxState.FINALIZED: [],  # Terminal state
    TxState.ABORTED: [],  # Terminal state
    TxState.ERRORED: [],  # Terminal state
}


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: TxState
    to_state: TxState
    timestamp: str = ""
    reason: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


@dataclass
class TxLifecycle:
    """
    State machine for one orchestrated call.

    Tracks current state and transition history.
    """
    function_id: str
    mode: str
    state: TxState = TxState.BUILDING
    tx_hash: Optional[str] = None
    history: List[StateTransition] = field(default_factory=list)
    created_at: str = ""

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()

    def can_transition_to(self, new_state: TxState) -> bool:
        return new_state in VALID_TRANSITIONS.get(self.state, [])

    def transition_to(
        self,
        new_state: TxState,
        reason: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """
        Transition to a new state.

        Raises InvalidTransitionError if transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}. "
                f"Valid transitions: {[s.value for s in VALID_TRANSITIONS.get(self.state, [])]}"
            )

        transition = StateTransition(
            from_state=self.state,
            to_state=new_state,
            reason=reason,
            metadata=metadata or {},
        )
        self.history.append(transition)
        self.state = new_state
        return transition

    def fail(self, reason: str) -> Optional[StateTransition]:
        """Move to ERRORED unless already terminal."""
        if self.is_terminal:
            return None
        return self.transition_to(TxState.ERRORED, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return len(VALID_TRANSITIONS.get(self.state, [])) == 0

    @property
    def is_committed(self) -> bool:
        """Ledger state may have changed."""
        return self.state in (TxState.FINALIZED, TxState.ABORTED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function_id": self.function_id,
            "mode": self.mode,
            "state": self.state.value,
            "tx_hash": self.tx_hash,
            "is_terminal": self.is_terminal,
            "created_at": self.created_at,
            "history": [
                {
                    "from_state": t.from_state.value,
                    "to_state": t.to_state.value,
                    "timestamp": t.timestamp,
                    "reason": t.reason,
                    "metadata": t.metadata,
                }
                for t in self.history
            ],
        }
