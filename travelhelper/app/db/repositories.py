"""Repository protocol interfaces for data access."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from travelhelper.app.db.context import RequestContext
from travelhelper.app.errors import NotAuthenticatedError
from travelhelper.app.models.chat import ChatMessage, ChatSession, MessageRole, MessageType
from travelhelper.app.models.trip import DayPlan, Trip, TripCreate
from travelhelper.app.models.user import Profile

SESSION_TITLE_CHARS = 50


def require_context(ctx: RequestContext | None) -> RequestContext:
    """Return ``ctx`` or raise when no owning user is resolved.

    Raises:
        NotAuthenticatedError: If ctx is None
    """
    if ctx is None:
        raise NotAuthenticatedError("No authenticated user for this operation")
    return ctx


def session_title(content: str) -> str:
    """Title for a lazily created session: the first 50 characters of its first message."""
    return content.strip()[:SESSION_TITLE_CHARS]


class SessionStore(Protocol):
    """Durable, owner-scoped storage for trips, itineraries and chat."""

    async def create_trip(self, fields: TripCreate, ctx: RequestContext | None) -> Trip:
        """Create a trip owned by the caller.

        Args:
            fields: Initial trip fields
            ctx: Request context

        Returns:
            The stored trip (empty itinerary)
        """
        ...

    async def get_trip(self, trip_id: UUID, ctx: RequestContext | None) -> Trip:
        """Get a trip with its itinerary, days ordered by day_number.

        Raises:
            NotFoundError: Unknown trip or owned by another user
        """
        ...

    async def update_trip(
        self, trip_id: UUID, changes: dict[str, Any], ctx: RequestContext | None
    ) -> None:
        """Merge ``changes`` into the trip and bump ``updated_at``.

        Only keys present in ``changes`` are written.
        """
        ...

    async def replace_itinerary(
        self, trip_id: UUID, days: list[DayPlan], ctx: RequestContext | None
    ) -> None:
        """Replace every day plan of a trip.

        Days are renumbered 1..N in the given order; activity order within a
        day is preserved.
        """
        ...

    async def list_trips(self, ctx: RequestContext | None) -> list[Trip]:
        """List the caller's trips, newest first."""
        ...

    async def delete_trip(self, trip_id: UUID, ctx: RequestContext | None) -> None:
        """Delete a trip with its days and activities; linked chat sessions are detached."""
        ...

    async def share_trip(self, trip_id: UUID, ctx: RequestContext | None) -> str:
        """Assign (or return the existing) public share id of a trip."""
        ...

    async def get_shared_trip(self, share_id: str) -> Trip:
        """Read-only lookup of a shared trip; no owner check."""
        ...

    async def create_session(
        self,
        ctx: RequestContext | None,
        trip_id: UUID | None = None,
        title: str | None = None,
    ) -> ChatSession:
        """Create a chat session, optionally tied to one of the caller's trips."""
        ...

    async def get_session(self, session_id: UUID, ctx: RequestContext | None) -> ChatSession:
        ...

    async def list_sessions(
        self, ctx: RequestContext | None, trip_id: UUID | None = None
    ) -> list[ChatSession]:
        """List the caller's sessions, most recently active first."""
        ...

    async def append_message(
        self,
        session_id: UUID | None,
        role: MessageRole,
        content: str,
        ctx: RequestContext | None,
        *,
        message_type: MessageType = MessageType.text,
        metadata: dict[str, Any] | None = None,
        trip_id: UUID | None = None,
    ) -> ChatMessage:
        """Append a message to a session.

        When ``session_id`` is None a new session is created (tied to
        ``trip_id``, titled after the content) and the message goes there.

        Returns:
            The stored message; its ``session_id`` names the session used
        """
        ...

    async def list_messages(
        self, session_id: UUID, ctx: RequestContext | None
    ) -> list[ChatMessage]:
        """List session messages oldest first, ties broken by insertion order."""
        ...


@dataclass
class ProfileRecord:
    """Profile row including the password hash, never returned to clients."""

    profile: Profile
    password_hash: str


class ProfileRepository(Protocol):
    """Repository for profiles and issued bearer tokens."""

    async def create_profile(self, email: str, password_hash: str, name: str) -> Profile:
        """Create a profile.

        Raises:
            AuthenticationError: Email already registered
        """
        ...

    async def get_by_email(self, email: str) -> ProfileRecord | None:
        ...

    async def get_profile(self, user_id: UUID) -> Profile | None:
        ...

    async def update_profile(self, user_id: UUID, changes: dict[str, Any]) -> Profile:
        """Apply profile changes and bump ``updated_at``.

        Raises:
            NotFoundError: Unknown profile
        """
        ...

    async def store_token(self, token_hash: str, user_id: UUID, issued_at: datetime) -> None:
        ...

    async def resolve_token(self, token_hash: str) -> UUID | None:
        """Owner of a non-revoked token, or None."""
        ...

    async def revoke_token(self, token_hash: str) -> None:
        ...
