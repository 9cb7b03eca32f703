"""In-memory implementations of repository interfaces."""

import itertools
import secrets
import uuid
from datetime import UTC, datetime
from typing import Any

from travelhelper.app.db.changes import ChangeEvent, ChangeFeed, get_change_feed
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.repositories import ProfileRecord, require_context, session_title
from travelhelper.app.errors import AuthenticationError, NotFoundError
from travelhelper.app.models.chat import ChatMessage, ChatSession, MessageRole, MessageType
from travelhelper.app.models.trip import DayPlan, Trip, TripCreate
from travelhelper.app.models.user import Profile


def _now() -> datetime:
    return datetime.now(UTC)


class InMemorySessionStore:
    """In-memory implementation of SessionStore."""

    def __init__(self, feed: ChangeFeed | None = None) -> None:
        self._trips: dict[uuid.UUID, Trip] = {}
        self._sessions: dict[uuid.UUID, ChatSession] = {}
        self._messages: dict[uuid.UUID, list[ChatMessage]] = {}
        self._message_ids = itertools.count(1)
        self._feed = feed or get_change_feed()

    def _publish(
        self,
        table: str,
        op: str,
        owner_id: uuid.UUID,
        record_id: object,
        session_id: uuid.UUID | None = None,
    ) -> None:
        self._feed.publish(ChangeEvent(table, op, owner_id, str(record_id), session_id))

    def _owned_trip(self, trip_id: uuid.UUID, ctx: RequestContext) -> Trip:
        trip = self._trips.get(trip_id)
        # Enforce ownership
        if trip is None or trip.user_id != ctx.user_id:
            raise NotFoundError(f"Trip {trip_id} not found")
        return trip

    def _owned_session(self, session_id: uuid.UUID, ctx: RequestContext) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is None or session.user_id != ctx.user_id:
            raise NotFoundError(f"Chat session {session_id} not found")
        return session

    # --- Trips ---------------------------------------------------------------

    async def create_trip(self, fields: TripCreate, ctx: RequestContext | None) -> Trip:
        ctx = require_context(ctx)
        now = _now()
        trip = Trip(
            id=uuid.uuid4(),
            user_id=ctx.user_id,
            created_at=now,
            updated_at=now,
            **fields.model_dump(),
        )
        self._trips[trip.id] = trip
        self._publish("trips", "insert", ctx.user_id, trip.id)
        return trip.model_copy(deep=True)

    async def get_trip(self, trip_id: uuid.UUID, ctx: RequestContext | None) -> Trip:
        ctx = require_context(ctx)
        return self._owned_trip(trip_id, ctx).model_copy(deep=True)

    async def update_trip(
        self, trip_id: uuid.UUID, changes: dict[str, Any], ctx: RequestContext | None
    ) -> None:
        ctx = require_context(ctx)
        trip = self._owned_trip(trip_id, ctx)
        merged = trip.model_dump()
        merged.update(changes)
        merged["updated_at"] = _now()
        self._trips[trip_id] = Trip.model_validate(merged)
        self._publish("trips", "update", ctx.user_id, trip_id)

    async def replace_itinerary(
        self, trip_id: uuid.UUID, days: list[DayPlan], ctx: RequestContext | None
    ) -> None:
        ctx = require_context(ctx)
        trip = self._owned_trip(trip_id, ctx)
        renumbered = [
            day.model_copy(update={"day_number": number}, deep=True)
            for number, day in enumerate(days, start=1)
        ]
        self._trips[trip_id] = trip.model_copy(
            update={"itinerary": renumbered, "updated_at": _now()}
        )
        self._publish("itinerary_days", "update", ctx.user_id, trip_id)

    async def list_trips(self, ctx: RequestContext | None) -> list[Trip]:
        ctx = require_context(ctx)
        trips = [t for t in self._trips.values() if t.user_id == ctx.user_id]
        trips.sort(key=lambda t: t.created_at, reverse=True)
        return [t.model_copy(deep=True) for t in trips]

    async def delete_trip(self, trip_id: uuid.UUID, ctx: RequestContext | None) -> None:
        ctx = require_context(ctx)
        self._owned_trip(trip_id, ctx)
        del self._trips[trip_id]
        for session_id, session in self._sessions.items():
            if session.trip_id == trip_id:
                self._sessions[session_id] = session.model_copy(update={"trip_id": None})
        self._publish("trips", "delete", ctx.user_id, trip_id)

    async def share_trip(self, trip_id: uuid.UUID, ctx: RequestContext | None) -> str:
        ctx = require_context(ctx)
        trip = self._owned_trip(trip_id, ctx)
        if trip.share_id:
            return trip.share_id
        share_id = secrets.token_urlsafe(12)
        self._trips[trip_id] = trip.model_copy(update={"share_id": share_id})
        self._publish("trips", "update", ctx.user_id, trip_id)
        return share_id

    async def get_shared_trip(self, share_id: str) -> Trip:
        for trip in self._trips.values():
            if trip.share_id == share_id:
                return trip.model_copy(deep=True)
        raise NotFoundError(f"Shared trip {share_id} not found")

    # --- Chat ----------------------------------------------------------------

    async def create_session(
        self,
        ctx: RequestContext | None,
        trip_id: uuid.UUID | None = None,
        title: str | None = None,
    ) -> ChatSession:
        ctx = require_context(ctx)
        if trip_id is not None:
            self._owned_trip(trip_id, ctx)
        now = _now()
        session = ChatSession(
            id=uuid.uuid4(),
            user_id=ctx.user_id,
            trip_id=trip_id,
            title=title or "New conversation",
            created_at=now,
            updated_at=now,
        )
        self._sessions[session.id] = session
        self._messages[session.id] = []
        self._publish("chat_sessions", "insert", ctx.user_id, session.id, session.id)
        return session

    async def get_session(self, session_id: uuid.UUID, ctx: RequestContext | None) -> ChatSession:
        ctx = require_context(ctx)
        return self._owned_session(session_id, ctx)

    async def list_sessions(
        self, ctx: RequestContext | None, trip_id: uuid.UUID | None = None
    ) -> list[ChatSession]:
        ctx = require_context(ctx)
        sessions = [
            s
            for s in self._sessions.values()
            if s.user_id == ctx.user_id and (trip_id is None or s.trip_id == trip_id)
        ]
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions

    async def append_message(
        self,
        session_id: uuid.UUID | None,
        role: MessageRole,
        content: str,
        ctx: RequestContext | None,
        *,
        message_type: MessageType = MessageType.text,
        metadata: dict[str, Any] | None = None,
        trip_id: uuid.UUID | None = None,
    ) -> ChatMessage:
        ctx = require_context(ctx)
        if session_id is None:
            session = await self.create_session(ctx, trip_id=trip_id, title=session_title(content))
        else:
            session = self._owned_session(session_id, ctx)

        now = _now()
        message = ChatMessage(
            id=next(self._message_ids),
            session_id=session.id,
            role=role,
            content=content,
            message_type=message_type,
            metadata=dict(metadata or {}),
            created_at=now,
        )
        self._messages[session.id].append(message)
        self._sessions[session.id] = session.model_copy(update={"updated_at": now})
        self._publish("chat_messages", "insert", ctx.user_id, message.id, session.id)
        return message

    async def list_messages(
        self, session_id: uuid.UUID, ctx: RequestContext | None
    ) -> list[ChatMessage]:
        ctx = require_context(ctx)
        self._owned_session(session_id, ctx)
        return sorted(self._messages[session_id], key=lambda m: (m.created_at, m.id))


class InMemoryProfileRepository:
    """In-memory implementation of ProfileRepository."""

    def __init__(self) -> None:
        self._profiles: dict[uuid.UUID, ProfileRecord] = {}
        self._tokens: dict[str, tuple[uuid.UUID, bool]] = {}

    async def create_profile(self, email: str, password_hash: str, name: str) -> Profile:
        if await self.get_by_email(email) is not None:
            raise AuthenticationError("Email is already registered")
        now = _now()
        profile = Profile(id=uuid.uuid4(), email=email, name=name, created_at=now, updated_at=now)
        self._profiles[profile.id] = ProfileRecord(profile=profile, password_hash=password_hash)
        return profile

    async def get_by_email(self, email: str) -> ProfileRecord | None:
        for record in self._profiles.values():
            if record.profile.email == email:
                return record
        return None

    async def get_profile(self, user_id: uuid.UUID) -> Profile | None:
        record = self._profiles.get(user_id)
        return record.profile if record else None

    async def update_profile(self, user_id: uuid.UUID, changes: dict[str, Any]) -> Profile:
        record = self._profiles.get(user_id)
        if record is None:
            raise NotFoundError(f"Profile {user_id} not found")
        record.profile = record.profile.model_copy(update={**changes, "updated_at": _now()})
        return record.profile

    async def store_token(self, token_hash: str, user_id: uuid.UUID, issued_at: datetime) -> None:
        self._tokens[token_hash] = (user_id, False)

    async def resolve_token(self, token_hash: str) -> uuid.UUID | None:
        entry = self._tokens.get(token_hash)
        if entry is None or entry[1]:
            return None
        return entry[0]

    async def revoke_token(self, token_hash: str) -> None:
        if token_hash in self._tokens:
            self._tokens[token_hash] = (self._tokens[token_hash][0], True)
