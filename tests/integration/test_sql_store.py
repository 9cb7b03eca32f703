"""Integration tests for the SQL session store and profile repository (SQLite)."""

from datetime import UTC, date, datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from travelhelper.app.db.changes import ChangeFeed
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.engine import create_session_factory
from travelhelper.app.db.sql_repositories import SqlProfileRepository, SqlSessionStore
from travelhelper.app.errors import AuthenticationError, NotFoundError
from travelhelper.app.models.chat import MessageRole, MessageType
from travelhelper.app.models.trip import (
    Activity,
    ActivityType,
    DayPlan,
    TravelPreferences,
    TravelStyle,
    TripCreate,
    TripStatus,
)


pytestmark = pytest.mark.integration


@pytest.fixture
def profiles(sqlite_engine: AsyncEngine) -> SqlProfileRepository:
    return SqlProfileRepository(create_session_factory(sqlite_engine))


@pytest.fixture
def sql_store(sqlite_engine: AsyncEngine, feed: ChangeFeed) -> SqlSessionStore:
    return SqlSessionStore(create_session_factory(sqlite_engine), feed)


@pytest_asyncio.fixture
async def owner(profiles: SqlProfileRepository) -> RequestContext:
    profile = await profiles.create_profile("owner@example.com", "hash", "Owner")
    return RequestContext(user_id=profile.id)


@pytest_asyncio.fixture
async def stranger(profiles: SqlProfileRepository) -> RequestContext:
    profile = await profiles.create_profile("stranger@example.com", "hash", "Stranger")
    return RequestContext(user_id=profile.id)


class TestSqlTrips:
    @pytest.mark.asyncio
    async def test_create_and_read_back(
        self, sql_store: SqlSessionStore, owner: RequestContext
    ) -> None:
        created = await sql_store.create_trip(
            TripCreate(
                title="Rome",
                destination="Rome",
                start_date=date(2024, 3, 15),
                end_date=date(2024, 3, 18),
                budget=0,
                travelers=1,
                preferences=TravelPreferences(travel_style=TravelStyle.comfort),
            ),
            owner,
        )

        trip = await sql_store.get_trip(created.id, owner)

        assert trip.status is TripStatus.planning
        assert trip.itinerary == []
        assert trip.budget == 0
        assert trip.preferences.travel_style is TravelStyle.comfort
        assert trip.duration_days() == 3

    @pytest.mark.asyncio
    async def test_owner_scoping(
        self, sql_store: SqlSessionStore, owner: RequestContext, stranger: RequestContext
    ) -> None:
        trip = await sql_store.create_trip(TripCreate(title="Private"), owner)

        assert await sql_store.list_trips(stranger) == []
        with pytest.raises(NotFoundError):
            await sql_store.get_trip(trip.id, stranger)
        with pytest.raises(NotFoundError):
            await sql_store.replace_itinerary(trip.id, [], stranger)

    @pytest.mark.asyncio
    async def test_update_merges_fields(
        self, sql_store: SqlSessionStore, owner: RequestContext
    ) -> None:
        trip = await sql_store.create_trip(TripCreate(title="Draft", destination="Lisbon"), owner)

        await sql_store.update_trip(
            trip.id,
            {"status": TripStatus.completed, "preferences": {"interests": ["fado"]}},
            owner,
        )

        updated = await sql_store.get_trip(trip.id, owner)
        assert updated.status is TripStatus.completed
        assert updated.destination == "Lisbon"
        assert updated.preferences.interests == ["fado"]

    @pytest.mark.asyncio
    async def test_delete_detaches_sessions(
        self, sql_store: SqlSessionStore, owner: RequestContext
    ) -> None:
        trip = await sql_store.create_trip(TripCreate(title="Gone"), owner)
        await sql_store.replace_itinerary(
            trip.id, [DayPlan(day_number=1, activities=[Activity(name="Walk")])], owner
        )
        session = await sql_store.create_session(owner, trip_id=trip.id)

        await sql_store.delete_trip(trip.id, owner)

        with pytest.raises(NotFoundError):
            await sql_store.get_trip(trip.id, owner)
        assert (await sql_store.get_session(session.id, owner)).trip_id is None

    @pytest.mark.asyncio
    async def test_share(self, sql_store: SqlSessionStore, owner: RequestContext) -> None:
        trip = await sql_store.create_trip(TripCreate(title="Shared"), owner)

        share_id = await sql_store.share_trip(trip.id, owner)

        assert await sql_store.share_trip(trip.id, owner) == share_id
        assert (await sql_store.get_shared_trip(share_id)).id == trip.id
        with pytest.raises(NotFoundError):
            await sql_store.get_shared_trip("missing")


class TestSqlItinerary:
    @pytest.mark.asyncio
    async def test_replace_renumbers_and_keeps_activity_order(
        self, sql_store: SqlSessionStore, owner: RequestContext
    ) -> None:
        trip = await sql_store.create_trip(TripCreate(title="Trip"), owner)
        days = [
            DayPlan(
                day_number=4,
                date=date(2024, 3, 15),
                activities=[
                    Activity(name="Colosseum", type=ActivityType.tour, cost=25, tips=["Go early"]),
                    Activity(name="Lunch", type=ActivityType.meal),
                    Activity(name="Forum"),
                ],
            ),
            DayPlan(day_number=9, activities=[Activity(name="Vatican")]),
        ]

        await sql_store.replace_itinerary(trip.id, days, owner)

        stored = (await sql_store.get_trip(trip.id, owner)).itinerary
        assert [d.day_number for d in stored] == [1, 2]
        assert [a.name for a in stored[0].activities] == ["Colosseum", "Lunch", "Forum"]
        assert stored[0].activities[0].type is ActivityType.tour
        assert stored[0].activities[0].tips == ["Go early"]
        assert stored[0].date == date(2024, 3, 15)

    @pytest.mark.asyncio
    async def test_replace_discards_previous_days(
        self, sql_store: SqlSessionStore, owner: RequestContext
    ) -> None:
        trip = await sql_store.create_trip(TripCreate(title="Trip"), owner)
        first = [DayPlan(day_number=n, activities=[Activity(name=f"a{n}")]) for n in (1, 2, 3)]
        await sql_store.replace_itinerary(trip.id, first, owner)

        await sql_store.replace_itinerary(
            trip.id, [DayPlan(day_number=1, activities=[Activity(name="only")])], owner
        )

        stored = (await sql_store.get_trip(trip.id, owner)).itinerary
        assert len(stored) == 1
        assert [a.name for a in stored[0].activities] == ["only"]


class TestSqlChat:
    @pytest.mark.asyncio
    async def test_lazy_session_and_ordering(
        self, sql_store: SqlSessionStore, owner: RequestContext
    ) -> None:
        first = await sql_store.append_message(None, MessageRole.user, "Plan Rome please", owner)
        await sql_store.append_message(
            first.session_id,
            MessageRole.assistant,
            "Weather digest",
            owner,
            message_type=MessageType.summary,
            metadata={"kind": "weather"},
        )
        await sql_store.append_message(first.session_id, MessageRole.assistant, "Sure!", owner)

        session = await sql_store.get_session(first.session_id, owner)
        messages = await sql_store.list_messages(first.session_id, owner)

        assert session.title == "Plan Rome please"
        assert [m.content for m in messages] == ["Plan Rome please", "Weather digest", "Sure!"]
        assert messages[1].message_type is MessageType.summary
        assert messages[1].metadata == {"kind": "weather"}

    @pytest.mark.asyncio
    async def test_foreign_session_rejected(
        self, sql_store: SqlSessionStore, owner: RequestContext, stranger: RequestContext
    ) -> None:
        session = await sql_store.create_session(owner)

        with pytest.raises(NotFoundError):
            await sql_store.append_message(session.id, MessageRole.user, "hi", stranger)
        assert await sql_store.list_sessions(stranger) == []


class TestSqlProfiles:
    @pytest.mark.asyncio
    async def test_duplicate_email(self, profiles: SqlProfileRepository) -> None:
        await profiles.create_profile("dup@example.com", "hash", "")

        with pytest.raises(AuthenticationError):
            await profiles.create_profile("dup@example.com", "hash", "")

    @pytest.mark.asyncio
    async def test_token_lifecycle(
        self, profiles: SqlProfileRepository, owner: RequestContext
    ) -> None:
        await profiles.store_token("digest", owner.user_id, datetime.now(UTC))
        assert await profiles.resolve_token("digest") == owner.user_id

        await profiles.revoke_token("digest")
        assert await profiles.resolve_token("digest") is None

    @pytest.mark.asyncio
    async def test_update_profile(
        self, profiles: SqlProfileRepository, owner: RequestContext
    ) -> None:
        updated = await profiles.update_profile(owner.user_id, {"stripe_customer_id": "cus_1"})

        assert updated.stripe_customer_id == "cus_1"
        record = await profiles.get_by_email("owner@example.com")
        assert record is not None
        assert record.profile.stripe_customer_id == "cus_1"
