"""Session management: validation, per-symbol session lifecycle, recovery."""
from tickerstream.managers.session_manager.api import AddResult, SessionSupervisor
from tickerstream.managers.session_manager.session_state import SessionPhase, SessionState
from tickerstream.managers.session_manager.validator import TickerValidator, ValidationResult

__all__ = [
    "AddResult",
    "SessionSupervisor",
    "SessionPhase",
    "SessionState",
    "TickerValidator",
    "ValidationResult",
]
