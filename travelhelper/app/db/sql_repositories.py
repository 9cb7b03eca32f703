"""SQL implementations of repository interfaces."""

import secrets
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from travelhelper.app.db.changes import ChangeEvent, ChangeFeed, get_change_feed
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.models import Activity as ActivityDB
from travelhelper.app.db.models import AuthToken
from travelhelper.app.db.models import ChatMessage as ChatMessageDB
from travelhelper.app.db.models import ChatSession as ChatSessionDB
from travelhelper.app.db.models import ItineraryDay as ItineraryDayDB
from travelhelper.app.db.models import Profile as ProfileDB
from travelhelper.app.db.models import Trip as TripDB
from travelhelper.app.db.queries import (
    select_sessions,
    select_shared_trip,
    select_trip,
    select_trips,
)
from travelhelper.app.db.repositories import ProfileRecord, require_context, session_title
from travelhelper.app.errors import AuthenticationError, NotFoundError
from travelhelper.app.models.chat import ChatMessage, ChatSession, MessageRole, MessageType
from travelhelper.app.models.common import Location
from travelhelper.app.models.trip import Activity, DayPlan, TravelPreferences, Trip, TripCreate
from travelhelper.app.models.user import Profile


def _now() -> datetime:
    return datetime.now(UTC)


def _column_value(key: str, value: Any) -> Any:
    if key == "preferences":
        return TravelPreferences.model_validate(value or {}).model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    return value


def _to_activity(row: ActivityDB) -> Activity:
    return Activity(
        name=row.name,
        type=row.type,
        description=row.description,
        time_slot=row.time_slot,
        duration_minutes=row.duration_minutes,
        cost=row.cost,
        rating=row.rating,
        location=Location.model_validate(row.location or {}),
        booking_url=row.booking_url,
        images=list(row.images or []),
        tips=list(row.tips or []),
    )


def _to_trip(row: TripDB) -> Trip:
    return Trip(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        destination=row.destination,
        start_date=row.start_date,
        end_date=row.end_date,
        budget=row.budget,
        travelers=row.travelers,
        status=row.status,
        preferences=TravelPreferences.model_validate(row.preferences or {}),
        itinerary=[
            DayPlan(
                day_number=day.day_number,
                date=day.date,
                notes=day.notes,
                budget=day.budget,
                activities=[_to_activity(a) for a in day.activities],
            )
            for day in row.days
        ],
        share_id=row.share_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_session(row: ChatSessionDB) -> ChatSession:
    return ChatSession(
        id=row.id,
        user_id=row.user_id,
        trip_id=row.trip_id,
        title=row.title,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_message(row: ChatMessageDB) -> ChatMessage:
    return ChatMessage(
        id=row.id,
        session_id=row.session_id,
        role=row.role,
        content=row.content,
        message_type=row.message_type,
        metadata=dict(row.message_metadata or {}),
        created_at=row.created_at,
    )


def _to_profile(row: ProfileDB) -> Profile:
    return Profile(
        id=row.id,
        email=row.email,
        name=row.name,
        avatar_url=row.avatar_url,
        plan=row.plan,
        stripe_customer_id=row.stripe_customer_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlSessionStore:
    """SQL implementation of SessionStore.

    Each operation runs in its own session and transaction; change events are
    published only after the commit succeeds.
    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], feed: ChangeFeed | None = None
    ) -> None:
        self._session_factory = session_factory
        self._feed = feed or get_change_feed()

    async def _owned_trip_row(
        self, session: AsyncSession, trip_id: uuid.UUID, ctx: RequestContext
    ) -> TripDB:
        result = await session.execute(
            select(TripDB).where(TripDB.id == trip_id, TripDB.user_id == ctx.user_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Trip {trip_id} not found")
        return row

    async def _owned_session_row(
        self, session: AsyncSession, session_id: uuid.UUID, ctx: RequestContext
    ) -> ChatSessionDB:
        result = await session.execute(
            select_sessions(ctx).where(ChatSessionDB.id == session_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        return row

    # --- Trips ---------------------------------------------------------------

    async def create_trip(self, fields: TripCreate, ctx: RequestContext | None) -> Trip:
        ctx = require_context(ctx)
        trip_id = uuid.uuid4()
        async with self._session_factory() as session, session.begin():
            now = _now()
            session.add(
                TripDB(
                    id=trip_id,
                    user_id=ctx.user_id,
                    created_at=now,
                    updated_at=now,
                    **{k: _column_value(k, v) for k, v in fields.model_dump().items()},
                )
            )
        self._feed.publish(ChangeEvent("trips", "insert", ctx.user_id, str(trip_id)))
        return await self.get_trip(trip_id, ctx)

    async def get_trip(self, trip_id: uuid.UUID, ctx: RequestContext | None) -> Trip:
        ctx = require_context(ctx)
        async with self._session_factory() as session:
            result = await session.execute(select_trip(trip_id, ctx))
            row = result.scalar_one_or_none()
            if row is None:
                raise NotFoundError(f"Trip {trip_id} not found")
            return _to_trip(row)

    async def update_trip(
        self, trip_id: uuid.UUID, changes: dict[str, Any], ctx: RequestContext | None
    ) -> None:
        ctx = require_context(ctx)
        async with self._session_factory() as session, session.begin():
            row = await self._owned_trip_row(session, trip_id, ctx)
            for key, value in changes.items():
                setattr(row, key, _column_value(key, value))
            row.updated_at = _now()
        self._feed.publish(ChangeEvent("trips", "update", ctx.user_id, str(trip_id)))

    async def replace_itinerary(
        self, trip_id: uuid.UUID, days: list[DayPlan], ctx: RequestContext | None
    ) -> None:
        """Replace the itinerary: delete then insert within one transaction."""
        ctx = require_context(ctx)
        async with self._session_factory() as session, session.begin():
            row = await self._owned_trip_row(session, trip_id, ctx)

            day_ids = select(ItineraryDayDB.id).where(ItineraryDayDB.trip_id == trip_id)
            await session.execute(delete(ActivityDB).where(ActivityDB.day_id.in_(day_ids)))
            await session.execute(delete(ItineraryDayDB).where(ItineraryDayDB.trip_id == trip_id))

            for number, day in enumerate(days, start=1):
                session.add(
                    ItineraryDayDB(
                        trip_id=trip_id,
                        day_number=number,
                        date=day.date,
                        notes=day.notes,
                        budget=day.budget,
                        activities=[
                            ActivityDB(
                                position=position,
                                name=activity.name,
                                type=activity.type.value,
                                description=activity.description,
                                time_slot=activity.time_slot,
                                duration_minutes=activity.duration_minutes,
                                cost=activity.cost,
                                rating=activity.rating,
                                location=activity.location.model_dump(mode="json"),
                                booking_url=activity.booking_url,
                                images=list(activity.images),
                                tips=list(activity.tips),
                            )
                            for position, activity in enumerate(day.activities)
                        ],
                    )
                )
            row.updated_at = _now()
        self._feed.publish(ChangeEvent("itinerary_days", "update", ctx.user_id, str(trip_id)))

    async def list_trips(self, ctx: RequestContext | None) -> list[Trip]:
        ctx = require_context(ctx)
        async with self._session_factory() as session:
            result = await session.execute(
                select_trips(ctx).order_by(TripDB.created_at.desc())
            )
            return [_to_trip(row) for row in result.scalars().all()]

    async def delete_trip(self, trip_id: uuid.UUID, ctx: RequestContext | None) -> None:
        ctx = require_context(ctx)
        async with self._session_factory() as session, session.begin():
            await self._owned_trip_row(session, trip_id, ctx)
            await session.execute(
                update(ChatSessionDB)
                .where(ChatSessionDB.trip_id == trip_id)
                .values(trip_id=None)
            )
            day_ids = select(ItineraryDayDB.id).where(ItineraryDayDB.trip_id == trip_id)
            await session.execute(delete(ActivityDB).where(ActivityDB.day_id.in_(day_ids)))
            await session.execute(delete(ItineraryDayDB).where(ItineraryDayDB.trip_id == trip_id))
            await session.execute(delete(TripDB).where(TripDB.id == trip_id))
        self._feed.publish(ChangeEvent("trips", "delete", ctx.user_id, str(trip_id)))

    async def share_trip(self, trip_id: uuid.UUID, ctx: RequestContext | None) -> str:
        ctx = require_context(ctx)
        async with self._session_factory() as session, session.begin():
            row = await self._owned_trip_row(session, trip_id, ctx)
            if row.share_id:
                return row.share_id
            row.share_id = secrets.token_urlsafe(12)
            share_id = row.share_id
        self._feed.publish(ChangeEvent("trips", "update", ctx.user_id, str(trip_id)))
        return share_id

    async def get_shared_trip(self, share_id: str) -> Trip:
        async with self._session_factory() as session:
            result = await session.execute(select_shared_trip(share_id))
            row = result.scalar_one_or_none()
            if row is None:
                raise NotFoundError(f"Shared trip {share_id} not found")
            return _to_trip(row)

    # --- Chat ----------------------------------------------------------------

    async def create_session(
        self,
        ctx: RequestContext | None,
        trip_id: uuid.UUID | None = None,
        title: str | None = None,
    ) -> ChatSession:
        ctx = require_context(ctx)
        async with self._session_factory() as session, session.begin():
            row = await self._insert_session(session, ctx, trip_id, title)
        self._feed.publish(
            ChangeEvent("chat_sessions", "insert", ctx.user_id, str(row.id), row.id)
        )
        return _to_session(row)

    async def _insert_session(
        self,
        session: AsyncSession,
        ctx: RequestContext,
        trip_id: uuid.UUID | None,
        title: str | None,
    ) -> ChatSessionDB:
        if trip_id is not None:
            await self._owned_trip_row(session, trip_id, ctx)
        now = _now()
        row = ChatSessionDB(
            id=uuid.uuid4(),
            user_id=ctx.user_id,
            trip_id=trip_id,
            title=title or "New conversation",
            created_at=now,
            updated_at=now,
        )
        session.add(row)
        await session.flush()
        return row

    async def get_session(self, session_id: uuid.UUID, ctx: RequestContext | None) -> ChatSession:
        ctx = require_context(ctx)
        async with self._session_factory() as session:
            return _to_session(await self._owned_session_row(session, session_id, ctx))

    async def list_sessions(
        self, ctx: RequestContext | None, trip_id: uuid.UUID | None = None
    ) -> list[ChatSession]:
        ctx = require_context(ctx)
        query = select_sessions(ctx).order_by(ChatSessionDB.updated_at.desc())
        if trip_id is not None:
            query = query.where(ChatSessionDB.trip_id == trip_id)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_session(row) for row in result.scalars().all()]

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
        created_session = session_id is None
        async with self._session_factory() as session, session.begin():
            if session_id is None:
                chat = await self._insert_session(session, ctx, trip_id, session_title(content))
            else:
                chat = await self._owned_session_row(session, session_id, ctx)

            now = _now()
            row = ChatMessageDB(
                session_id=chat.id,
                role=role.value,
                content=content,
                message_type=message_type.value,
                message_metadata=dict(metadata or {}),
                created_at=now,
            )
            session.add(row)
            chat.updated_at = now
            await session.flush()
            message = _to_message(row)

        if created_session:
            self._feed.publish(
                ChangeEvent("chat_sessions", "insert", ctx.user_id, str(chat.id), chat.id)
            )
        self._feed.publish(
            ChangeEvent("chat_messages", "insert", ctx.user_id, str(message.id), chat.id)
        )
        return message

    async def list_messages(
        self, session_id: uuid.UUID, ctx: RequestContext | None
    ) -> list[ChatMessage]:
        ctx = require_context(ctx)
        async with self._session_factory() as session:
            await self._owned_session_row(session, session_id, ctx)
            result = await session.execute(
                select(ChatMessageDB)
                .where(ChatMessageDB.session_id == session_id)
                .order_by(ChatMessageDB.created_at, ChatMessageDB.id)
            )
            return [_to_message(row) for row in result.scalars().all()]


class SqlProfileRepository:
    """SQL implementation of ProfileRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_profile(self, email: str, password_hash: str, name: str) -> Profile:
        now = _now()
        row = ProfileDB(
            id=uuid.uuid4(),
            email=email,
            password_hash=password_hash,
            name=name,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
        except IntegrityError as e:
            raise AuthenticationError("Email is already registered") from e
        return _to_profile(row)

    async def get_by_email(self, email: str) -> ProfileRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(select(ProfileDB).where(ProfileDB.email == email))
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return ProfileRecord(profile=_to_profile(row), password_hash=row.password_hash)

    async def get_profile(self, user_id: uuid.UUID) -> Profile | None:
        async with self._session_factory() as session:
            row = await session.get(ProfileDB, user_id)
            return _to_profile(row) if row else None

    async def update_profile(self, user_id: uuid.UUID, changes: dict[str, Any]) -> Profile:
        async with self._session_factory() as session, session.begin():
            row = await session.get(ProfileDB, user_id)
            if row is None:
                raise NotFoundError(f"Profile {user_id} not found")
            for key, value in changes.items():
                setattr(row, key, _column_value(key, value))
            row.updated_at = _now()
        return _to_profile(row)

    async def store_token(self, token_hash: str, user_id: uuid.UUID, issued_at: datetime) -> None:
        async with self._session_factory() as session, session.begin():
            session.add(AuthToken(token_hash=token_hash, user_id=user_id, created_at=issued_at))

    async def resolve_token(self, token_hash: str) -> uuid.UUID | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AuthToken.user_id).where(
                    AuthToken.token_hash == token_hash, AuthToken.revoked.is_(False)
                )
            )
            return result.scalar_one_or_none()

    async def revoke_token(self, token_hash: str) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(AuthToken).where(AuthToken.token_hash == token_hash).values(revoked=True)
            )
