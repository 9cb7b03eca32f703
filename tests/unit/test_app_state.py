"""Unit tests for session phases and the regeneration guard."""

import uuid

import pytest

from travelhelper.app.errors import GenerationInProgressError, TurnInProgressError
from travelhelper.app.orchestration.state import (
    AppState,
    RegenerationGuard,
    SessionPhase,
    SessionStateRegistry,
    get_app_state,
)


class TestSessionStateRegistry:
    def test_unknown_session_is_idle(self) -> None:
        assert SessionStateRegistry().phase(uuid.uuid4()) is SessionPhase.idle

    def test_turn_lifecycle(self) -> None:
        registry = SessionStateRegistry()
        session_id = uuid.uuid4()

        registry.begin_turn(session_id)
        assert registry.phase(session_id) is SessionPhase.awaiting_reply

        registry.end_turn(session_id)
        assert registry.phase(session_id) is SessionPhase.idle

    def test_second_turn_rejected(self) -> None:
        registry = SessionStateRegistry()
        session_id = uuid.uuid4()
        registry.begin_turn(session_id)

        with pytest.raises(TurnInProgressError):
            registry.begin_turn(session_id)

    def test_sessions_are_independent(self) -> None:
        registry = SessionStateRegistry()
        registry.begin_turn(uuid.uuid4())
        registry.begin_turn(uuid.uuid4())


class TestRegenerationGuard:
    def test_claim_and_release(self) -> None:
        guard = RegenerationGuard()
        trip_id = uuid.uuid4()

        assert guard.try_claim(trip_id)
        assert guard.is_in_flight(trip_id)
        assert not guard.try_claim(trip_id)

        guard.release(trip_id)
        assert not guard.is_in_flight(trip_id)
        assert guard.try_claim(trip_id)

    def test_claim_raises_when_in_flight(self) -> None:
        guard = RegenerationGuard()
        trip_id = uuid.uuid4()
        guard.claim(trip_id)

        with pytest.raises(GenerationInProgressError):
            guard.claim(trip_id)

    def test_release_unknown_is_noop(self) -> None:
        RegenerationGuard().release(uuid.uuid4())


def test_global_state_is_shared() -> None:
    assert get_app_state() is get_app_state()
    assert isinstance(get_app_state(), AppState)
