"""Session State Definitions

Lifecycle of one tracked ticker session and the per-symbol record the
supervisor keeps for it.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from tickerstream.drivers.base import PageDriver
from tickerstream.logger import logger


class SessionPhase(Enum):
    """Ticker session lifecycle states.

    State transitions:
    UNVALIDATED → OPENING → STREAMING → CLOSED_INTENTIONAL
                     ↑          ↓
                     └──── HEALING → ABANDONED
    """

    UNVALIDATED = "unvalidated"
    """Entry created without a persistent page, or its page was lost before the first reading."""

    OPENING = "opening"
    """Persistent page being opened and navigated."""

    STREAMING = "streaming"
    """Page open and observer installed."""

    HEALING = "healing"
    """Validated page was lost; reopen attempts in progress."""

    ABANDONED = "abandoned"
    """Reopen attempts exhausted; entry kept with no page."""

    CLOSED_INTENTIONAL = "closed_intentional"
    """Closed on request (remove, shutdown, or invalid page after navigation)."""

    def requires_attention(self) -> bool:
        """Check if state means updates have stopped for this symbol."""
        return self in (SessionPhase.HEALING, SessionPhase.ABANDONED)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"SessionPhase.{self.name}"


# State transition validation
VALID_TRANSITIONS = {
    SessionPhase.UNVALIDATED: {
        SessionPhase.OPENING,
        SessionPhase.CLOSED_INTENTIONAL
    },
    SessionPhase.OPENING: {
        SessionPhase.UNVALIDATED,
        SessionPhase.STREAMING,
        SessionPhase.HEALING,
        SessionPhase.ABANDONED,
        SessionPhase.CLOSED_INTENTIONAL
    },
    SessionPhase.STREAMING: {
        SessionPhase.UNVALIDATED,
        SessionPhase.OPENING,
        SessionPhase.HEALING,
        SessionPhase.ABANDONED,
        SessionPhase.CLOSED_INTENTIONAL
    },
    SessionPhase.HEALING: {
        SessionPhase.OPENING,
        SessionPhase.ABANDONED,
        SessionPhase.CLOSED_INTENTIONAL
    },
    SessionPhase.ABANDONED: {
        SessionPhase.OPENING,
        SessionPhase.CLOSED_INTENTIONAL
    },
    SessionPhase.CLOSED_INTENTIONAL: set()
}


def is_valid_transition(from_state: SessionPhase, to_state: SessionPhase) -> bool:
    """Check if state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is valid
    """
    if from_state not in VALID_TRANSITIONS:
        return False

    return to_state in VALID_TRANSITIONS[from_state]


@dataclass
class SessionState:
    """Everything the supervisor tracks for one symbol.

    Invariant: at most one live ``driver_handle`` at any time. The handle
    is replaced across recovery; ``last_value`` survives it so deltas
    continue from the last reading before the interruption.
    """

    symbol: str
    driver_handle: Optional[PageDriver] = None
    last_value: Optional[float] = None
    validated: bool = False
    intentional_close: bool = False
    phase: SessionPhase = SessionPhase.UNVALIDATED
    created_at: float = field(default_factory=time.time)
    last_update_at: Optional[float] = None
    recovery_attempts: int = 0
    last_error: Optional[str] = None

    @property
    def has_live_handle(self) -> bool:
        return self.driver_handle is not None and not self.driver_handle.is_closed

    def transition_to(self, phase: SessionPhase) -> None:
        """Move to ``phase``; invalid transitions are logged, not refused."""
        if phase == self.phase:
            return
        if not is_valid_transition(self.phase, phase):
            logger.warning(f"[{self.symbol}] unexpected transition {self.phase} -> {phase}")
        else:
            logger.debug(f"[{self.symbol}] {self.phase} -> {phase}")
        self.phase = phase

    def reset_for_open(self) -> None:
        """Prepare a re-added entry for a fresh persistent page."""
        self.validated = False
        self.intentional_close = False
        self.recovery_attempts = 0
        self.last_error = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "phase": self.phase.value,
            "validated": self.validated,
            "last_value": self.last_value,
            "has_live_handle": self.has_live_handle,
            "stalled": self.phase.requires_attention(),
            "recovery_attempts": self.recovery_attempts,
            "created_at": self.created_at,
            "last_update_at": self.last_update_at,
            "last_error": self.last_error,
        }
