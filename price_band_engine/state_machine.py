"""
Price Band Engine - Pass State Machine.

============================================================
PURPOSE
============================================================
Tracks one control loop pass through its stages with
strict transitions.

STATE MACHINE:

    IDLE ──► FETCHING ──► DECIDING ──► NO_ACTION ──► DONE
                │            │
                │            ▼
                │     GRANTING_ALLOWANCES
                │            │
                │            ▼
                │        SWAPPING ──► REPORTED ──► DONE
                │            │
                ▼            ▼
              FAILED ◄───────┘   (from any non-terminal stage)

INVARIANTS:
- Terminal states are final
- Each transition has a guard
- All transitions are logged
- A failed pass is not retried; the next pass starts at IDLE

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .types import PassResult, PassState


logger = logging.getLogger(__name__)


# ============================================================
# STATE TRANSITION RULES
# ============================================================

VALID_TRANSITIONS: Dict[PassState, Set[PassState]] = {
    PassState.IDLE: {
        PassState.FETCHING,
        PassState.FAILED,
    },
    PassState.FETCHING: {
        PassState.DECIDING,
        PassState.FAILED,
    },
    PassState.DECIDING: {
        PassState.NO_ACTION,
        PassState.GRANTING_ALLOWANCES,
        PassState.FAILED,
    },
    PassState.NO_ACTION: {
        PassState.DONE,
    },
    PassState.GRANTING_ALLOWANCES: {
        PassState.SWAPPING,
        PassState.FAILED,
    },
    PassState.SWAPPING: {
        PassState.REPORTED,
        PassState.FAILED,
    },
    PassState.REPORTED: {
        PassState.DONE,
    },
    # Terminal states - no transitions out
    PassState.DONE: set(),
    PassState.FAILED: set(),
}


# ============================================================
# STATE TRANSITION EVENT
# ============================================================

@dataclass
class StateTransitionEvent:
    """Event representing a state transition."""

    pass_id: str
    """Pass ID."""

    from_state: PassState
    """Previous state."""

    to_state: PassState
    """New state."""

    timestamp: datetime = field(default_factory=datetime.utcnow)
    """When transition occurred."""

    reason: str = ""
    """Reason for transition."""

    details: Dict[str, Any] = field(default_factory=dict)
    """Additional details."""


# ============================================================
# STATE TRANSITION GUARD
# ============================================================

class TransitionGuard:
    """
    Guard for state transitions.
    """

    @staticmethod
    def can_transition(
        from_state: PassState,
        to_state: PassState,
    ) -> Tuple[bool, str]:
        """
        Check if transition is allowed.

        Args:
            from_state: Current state
            to_state: Target state

        Returns:
            Tuple of (allowed, reason)
        """
        if to_state in VALID_TRANSITIONS.get(from_state, set()):
            return True, "Valid transition"

        if from_state.is_terminal():
            return False, f"Cannot transition from terminal state {from_state.value}"

        return False, f"Invalid transition: {from_state.value} -> {to_state.value}"

    @staticmethod
    def validate_result_for_state(
        result: PassResult,
        target_state: PassState,
    ) -> Tuple[bool, str]:
        """
        Check the pass record carries what the target state needs.
        """
        if target_state == PassState.DECIDING:
            if result.reserve is None:
                return False, "Missing reserve snapshot for DECIDING"

        if target_state == PassState.GRANTING_ALLOWANCES:
            if result.trade is None:
                return False, "Missing corrective trade for GRANTING_ALLOWANCES"

        if target_state == PassState.SWAPPING:
            if len(result.grants) != 2:
                return False, "Both allowance grants required for SWAPPING"

        if target_state == PassState.REPORTED:
            if result.receipt is None:
                return False, "Missing swap receipt for REPORTED"

        return True, "Result valid for state"


# ============================================================
# PASS STATE MACHINE
# ============================================================

class PassStateMachine:
    """
    State machine for one control loop pass.
    """

    def __init__(self, result: Optional[PassResult] = None):
        self._result = result or PassResult()
        self._history: List[StateTransitionEvent] = []
        self._listeners: List[Callable[[StateTransitionEvent], None]] = []

    @property
    def current_state(self) -> PassState:
        return self._result.state

    @property
    def result(self) -> PassResult:
        return self._result

    @property
    def history(self) -> List[StateTransitionEvent]:
        return list(self._history)

    def add_listener(
        self,
        listener: Callable[[StateTransitionEvent], None],
    ) -> None:
        """Add a transition listener."""
        self._listeners.append(listener)

    def can_transition_to(self, target_state: PassState) -> Tuple[bool, str]:
        allowed, reason = TransitionGuard.can_transition(self.current_state, target_state)
        if not allowed:
            return False, reason
        return TransitionGuard.validate_result_for_state(self._result, target_state)

    def transition_to(
        self,
        target_state: PassState,
        reason: str = "",
        details: Optional[Dict[str, Any]] = None,
    ) -> StateTransitionEvent:
        """
        Transition to a new state.

        Raises:
            ValueError: If transition is not allowed
        """
        allowed, validation_reason = self.can_transition_to(target_state)
        if not allowed:
            raise ValueError(
                f"Cannot transition pass {self._result.pass_id} from "
                f"{self.current_state.value} to {target_state.value}: "
                f"{validation_reason}"
            )

        event = StateTransitionEvent(
            pass_id=self._result.pass_id,
            from_state=self.current_state,
            to_state=target_state,
            reason=reason,
            details=details or {},
        )

        self._result.state = target_state
        if target_state.is_terminal():
            self._result.finished_at = event.timestamp

        self._history.append(event)
        self._result.history.append(event)

        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"State listener error: {e}")

        logger.info(
            f"Pass {self._result.pass_id}: "
            f"{event.from_state.value} -> {event.to_state.value}"
            + (f" ({reason})" if reason else "")
        )

        return event

    # --------------------------------------------------------
    # CONVENIENCE METHODS
    # --------------------------------------------------------

    def mark_fetching(self) -> StateTransitionEvent:
        return self.transition_to(PassState.FETCHING, "Reading reserve state")

    def mark_deciding(self) -> StateTransitionEvent:
        return self.transition_to(PassState.DECIDING, "Inputs fetched")

    def mark_no_action(self, reason: str = "Price inside band") -> StateTransitionEvent:
        return self.transition_to(PassState.NO_ACTION, reason)

    def mark_granting(self) -> StateTransitionEvent:
        return self.transition_to(PassState.GRANTING_ALLOWANCES, "Breach detected")

    def mark_swapping(self) -> StateTransitionEvent:
        return self.transition_to(PassState.SWAPPING, "Allowances granted")

    def mark_reported(self) -> StateTransitionEvent:
        return self.transition_to(
            PassState.REPORTED,
            "Swap accepted",
            details={"tx_hash": self._result.receipt.tx_hash},
        )

    def mark_done(self) -> StateTransitionEvent:
        return self.transition_to(PassState.DONE, "Pass complete")

    def mark_failed(
        self,
        reason: str = "Pass failed",
        error_code: Optional[str] = None,
        error: Optional[str] = None,
    ) -> StateTransitionEvent:
        if error_code:
            self._result.error_code = error_code
        if error:
            self._result.error_message = error
        return self.transition_to(
            PassState.FAILED,
            reason,
            details={"error_code": error_code, "error": error},
        )

    def is_terminal(self) -> bool:
        return self.current_state.is_terminal()
