"""Unit tests for the in-memory session store."""

import uuid
from datetime import date

import pytest

from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.inmemory import InMemorySessionStore
from travelhelper.app.errors import NotAuthenticatedError, NotFoundError
from travelhelper.app.models.chat import MessageRole, MessageType
from travelhelper.app.models.trip import Activity, DayPlan, TripCreate, TripStatus


def _day(number: int, *names: str) -> DayPlan:
    return DayPlan(day_number=number, activities=[Activity(name=n) for n in names])


class TestTrips:
    @pytest.mark.asyncio
    async def test_create_minimal_trip(self, store: InMemorySessionStore, ctx: RequestContext) -> None:
        trip = await store.create_trip(TripCreate(title="Weekend", budget=0, travelers=1), ctx)

        assert trip.status is TripStatus.planning
        assert trip.itinerary == []
        assert trip.user_id == ctx.user_id
        assert trip.budget == 0

    @pytest.mark.asyncio
    async def test_trips_are_owner_scoped(
        self, store: InMemorySessionStore, ctx: RequestContext, other_ctx: RequestContext
    ) -> None:
        trip = await store.create_trip(TripCreate(title="Mine"), ctx)

        assert await store.list_trips(other_ctx) == []
        with pytest.raises(NotFoundError):
            await store.get_trip(trip.id, other_ctx)
        with pytest.raises(NotFoundError):
            await store.update_trip(trip.id, {"title": "Stolen"}, other_ctx)
        with pytest.raises(NotFoundError):
            await store.delete_trip(trip.id, other_ctx)

    @pytest.mark.asyncio
    async def test_missing_context_rejected(self, store: InMemorySessionStore) -> None:
        with pytest.raises(NotAuthenticatedError):
            await store.create_trip(TripCreate(title="Nobody"), None)
        with pytest.raises(NotAuthenticatedError):
            await store.list_trips(None)

    @pytest.mark.asyncio
    async def test_list_newest_first(self, store: InMemorySessionStore, ctx: RequestContext) -> None:
        first = await store.create_trip(TripCreate(title="First"), ctx)
        second = await store.create_trip(TripCreate(title="Second"), ctx)

        trips = await store.list_trips(ctx)

        assert {t.id for t in trips} == {first.id, second.id}
        assert trips[0].created_at >= trips[1].created_at

    @pytest.mark.asyncio
    async def test_partial_update(self, store: InMemorySessionStore, ctx: RequestContext) -> None:
        trip = await store.create_trip(
            TripCreate(title="Rome", destination="Rome", start_date=date(2024, 3, 15)), ctx
        )

        await store.update_trip(
            trip.id, {"budget": 1500, "preferences": {"interests": ["food"]}}, ctx
        )

        updated = await store.get_trip(trip.id, ctx)
        assert updated.budget == 1500
        assert updated.destination == "Rome"
        assert updated.start_date == date(2024, 3, 15)
        assert updated.preferences.interests == ["food"]
        assert updated.updated_at >= trip.updated_at

    @pytest.mark.asyncio
    async def test_returned_trip_is_a_copy(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        trip = await store.create_trip(TripCreate(title="Copy"), ctx)
        trip.title = "Mutated"

        assert (await store.get_trip(trip.id, ctx)).title == "Copy"

    @pytest.mark.asyncio
    async def test_delete_detaches_sessions(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        trip = await store.create_trip(TripCreate(title="Gone"), ctx)
        session = await store.create_session(ctx, trip_id=trip.id)

        await store.delete_trip(trip.id, ctx)

        with pytest.raises(NotFoundError):
            await store.get_trip(trip.id, ctx)
        assert (await store.get_session(session.id, ctx)).trip_id is None


class TestItinerary:
    @pytest.mark.asyncio
    async def test_replace_renumbers_days(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        trip = await store.create_trip(TripCreate(title="Trip"), ctx)

        await store.replace_itinerary(
            trip.id, [_day(7, "a", "b"), _day(3, "c"), _day(3, "d", "e", "f")], ctx
        )

        stored = await store.get_trip(trip.id, ctx)
        assert [d.day_number for d in stored.itinerary] == [1, 2, 3]
        assert [[a.name for a in d.activities] for d in stored.itinerary] == [
            ["a", "b"],
            ["c"],
            ["d", "e", "f"],
        ]

    @pytest.mark.asyncio
    async def test_replace_discards_previous_days(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        trip = await store.create_trip(TripCreate(title="Trip"), ctx)
        await store.replace_itinerary(trip.id, [_day(1, "a"), _day(2, "b")], ctx)

        await store.replace_itinerary(trip.id, [_day(1, "z")], ctx)

        stored = await store.get_trip(trip.id, ctx)
        assert len(stored.itinerary) == 1
        assert stored.itinerary[0].activities[0].name == "z"

    @pytest.mark.asyncio
    async def test_replace_with_empty_list_clears(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        trip = await store.create_trip(TripCreate(title="Trip"), ctx)
        await store.replace_itinerary(trip.id, [_day(1, "a")], ctx)

        await store.replace_itinerary(trip.id, [], ctx)

        assert (await store.get_trip(trip.id, ctx)).itinerary == []


class TestSharing:
    @pytest.mark.asyncio
    async def test_share_is_stable_and_public(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        trip = await store.create_trip(TripCreate(title="Shared"), ctx)

        share_id = await store.share_trip(trip.id, ctx)

        assert await store.share_trip(trip.id, ctx) == share_id
        assert (await store.get_shared_trip(share_id)).id == trip.id

    @pytest.mark.asyncio
    async def test_unknown_share_id(self, store: InMemorySessionStore) -> None:
        with pytest.raises(NotFoundError):
            await store.get_shared_trip("nope")


class TestChat:
    @pytest.mark.asyncio
    async def test_append_creates_session_lazily(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        long_text = "Where should I go in Portugal for a relaxing week by the sea?"

        message = await store.append_message(None, MessageRole.user, long_text, ctx)

        session = await store.get_session(message.session_id, ctx)
        assert session.title == long_text[:50]
        assert session.user_id == ctx.user_id

    @pytest.mark.asyncio
    async def test_messages_in_insertion_order(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        session = await store.create_session(ctx)
        for n in range(5):
            await store.append_message(session.id, MessageRole.user, f"m{n}", ctx)

        messages = await store.list_messages(session.id, ctx)

        assert [m.content for m in messages] == [f"m{n}" for n in range(5)]
        assert [m.id for m in messages] == sorted(m.id for m in messages)

    @pytest.mark.asyncio
    async def test_message_type_and_metadata(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        session = await store.create_session(ctx)

        message = await store.append_message(
            session.id,
            MessageRole.assistant,
            "digest",
            ctx,
            message_type=MessageType.summary,
            metadata={"kind": "weather"},
        )

        assert message.message_type is MessageType.summary
        assert message.metadata == {"kind": "weather"}

    @pytest.mark.asyncio
    async def test_sessions_owner_scoped(
        self, store: InMemorySessionStore, ctx: RequestContext, other_ctx: RequestContext
    ) -> None:
        session = await store.create_session(ctx, title="Private")

        with pytest.raises(NotFoundError):
            await store.list_messages(session.id, other_ctx)
        with pytest.raises(NotFoundError):
            await store.append_message(session.id, MessageRole.user, "hi", other_ctx)
        assert await store.list_sessions(other_ctx) == []

    @pytest.mark.asyncio
    async def test_list_sessions_by_trip(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        trip = await store.create_trip(TripCreate(title="Trip"), ctx)
        tied = await store.create_session(ctx, trip_id=trip.id)
        await store.create_session(ctx)

        sessions = await store.list_sessions(ctx, trip_id=trip.id)

        assert [s.id for s in sessions] == [tied.id]

    @pytest.mark.asyncio
    async def test_session_for_unknown_trip(
        self, store: InMemorySessionStore, ctx: RequestContext
    ) -> None:
        with pytest.raises(NotFoundError):
            await store.create_session(ctx, trip_id=uuid.uuid4())
