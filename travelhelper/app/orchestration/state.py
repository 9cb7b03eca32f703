"""Explicit application state for conversations and itinerary regeneration.

Replaces ambient mutable singletons with one object holding:
- the per-session phase machine (``idle`` -> ``awaiting_reply`` -> ``idle``)
- the per-trip ``itinerary-regeneration-in-flight`` guard

All transitions are synchronous, so on a single event loop a check-and-set
never interleaves with another coroutine.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from travelhelper.app.errors import GenerationInProgressError, TurnInProgressError


class SessionPhase(str, Enum):
    """Conversation state of one chat session."""

    idle = "idle"
    awaiting_reply = "awaiting_reply"


class SessionStateRegistry:
    """Phase machine per chat session; unknown sessions are ``idle``."""

    def __init__(self) -> None:
        self._phases: dict[UUID, SessionPhase] = {}

    def phase(self, session_id: UUID) -> SessionPhase:
        return self._phases.get(session_id, SessionPhase.idle)

    def begin_turn(self, session_id: UUID) -> None:
        """Transition ``idle`` -> ``awaiting_reply``.

        Raises:
            TurnInProgressError: The session is already awaiting a reply
        """
        if self.phase(session_id) is SessionPhase.awaiting_reply:
            raise TurnInProgressError(session_id)
        self._phases[session_id] = SessionPhase.awaiting_reply

    def end_turn(self, session_id: UUID) -> None:
        """Transition back to ``idle``."""
        self._phases.pop(session_id, None)


class RegenerationGuard:
    """At most one itinerary regeneration in flight per trip."""

    def __init__(self) -> None:
        self._in_flight: set[UUID] = set()

    def is_in_flight(self, trip_id: UUID) -> bool:
        return trip_id in self._in_flight

    def try_claim(self, trip_id: UUID) -> bool:
        if trip_id in self._in_flight:
            return False
        self._in_flight.add(trip_id)
        return True

    def claim(self, trip_id: UUID) -> None:
        """Claim the guard for a trip.

        Raises:
            GenerationInProgressError: Already claimed
        """
        if not self.try_claim(trip_id):
            raise GenerationInProgressError(trip_id)

    def release(self, trip_id: UUID) -> None:
        self._in_flight.discard(trip_id)


@dataclass
class AppState:
    """Process-wide conversation state passed to the orchestrator and generator."""

    sessions: SessionStateRegistry = field(default_factory=SessionStateRegistry)
    regenerations: RegenerationGuard = field(default_factory=RegenerationGuard)


# Global application state
_app_state: AppState | None = None


def get_app_state() -> AppState:
    """Get global application state instance."""
    global _app_state
    if _app_state is None:
        _app_state = AppState()
    return _app_state
