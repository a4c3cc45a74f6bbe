"""Unit Tests for SessionPhase transitions and SessionState"""
import pytest

from tickerstream.managers.session_manager.session_state import (
    SessionPhase,
    SessionState,
    VALID_TRANSITIONS,
    is_valid_transition,
)


class TestTransitions:

    def test_happy_path(self):
        assert is_valid_transition(SessionPhase.UNVALIDATED, SessionPhase.OPENING)
        assert is_valid_transition(SessionPhase.OPENING, SessionPhase.STREAMING)
        assert is_valid_transition(SessionPhase.STREAMING, SessionPhase.HEALING)
        assert is_valid_transition(SessionPhase.HEALING, SessionPhase.OPENING)
        assert is_valid_transition(SessionPhase.HEALING, SessionPhase.ABANDONED)

    def test_closed_is_terminal(self):
        assert VALID_TRANSITIONS[SessionPhase.CLOSED_INTENTIONAL] == set()
        assert not is_valid_transition(SessionPhase.CLOSED_INTENTIONAL, SessionPhase.OPENING)

    def test_invalid_transition_still_applied(self):
        state = SessionState(symbol="BTCUSDT", phase=SessionPhase.CLOSED_INTENTIONAL)
        state.transition_to(SessionPhase.STREAMING)
        assert state.phase == SessionPhase.STREAMING

    def test_every_phase_has_entry(self):
        assert set(VALID_TRANSITIONS) == set(SessionPhase)


class TestSessionState:

    def test_defaults(self):
        state = SessionState(symbol="BTCUSDT")
        assert state.phase == SessionPhase.UNVALIDATED
        assert state.driver_handle is None
        assert not state.has_live_handle

    def test_reset_keeps_last_value(self):
        state = SessionState(symbol="BTCUSDT", last_value=1.5, validated=True, intentional_close=True)
        state.recovery_attempts = 3
        state.reset_for_open()
        assert state.last_value == 1.5
        assert not state.validated
        assert not state.intentional_close
        assert state.recovery_attempts == 0

    def test_to_dict(self):
        data = SessionState(symbol="BTCUSDT").to_dict()
        assert data["symbol"] == "BTCUSDT"
        assert data["phase"] == "unvalidated"
        assert data["has_live_handle"] is False
        assert data["stalled"] is False

    @pytest.mark.parametrize("phase", [SessionPhase.HEALING, SessionPhase.ABANDONED])
    def test_to_dict_flags_stalled_phases(self, phase):
        data = SessionState(symbol="BTCUSDT", phase=phase).to_dict()
        assert data["stalled"] is True
