"""Unit tests for the itinerary generator."""

import asyncio
import json
from collections.abc import Callable
from datetime import date

import pytest

from tests.helpers import StubTextGenerator
from travelhelper.app.config import Settings
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.inmemory import InMemorySessionStore
from travelhelper.app.errors import (
    GenerationInProgressError,
    NotFoundError,
    TripNotReadyError,
)
from travelhelper.app.models.trip import Trip, TripCreate
from travelhelper.app.orchestration.itinerary import ItineraryGenerator
from travelhelper.app.orchestration.state import AppState
from travelhelper.app.providers.gateway import ProviderGateway


class SlowTextGenerator:
    """Generator that blocks until released, to hold a generation in flight."""

    model = "slow-model"

    def __init__(self, text: str) -> None:
        self.text = text
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def generate(self, prompt: str) -> str:
        self.started.set()
        await self.release.wait()
        return self.text


def _generated(days: int) -> str:
    return json.dumps(
        {
            "days": [
                {
                    "day": d,
                    "activities": [{"name": f"Stop {d}", "type": "tour", "duration": 90, "cost": 20}],
                    "budget": 100,
                }
                for d in range(1, days + 1)
            ]
        }
    )


async def _rome_trip(store: InMemorySessionStore, ctx: RequestContext, **overrides: object) -> Trip:
    fields = {
        "title": "Rome",
        "destination": "Rome",
        "start_date": date(2024, 3, 15),
        "end_date": date(2024, 3, 18),
        "budget": 900,
    }
    fields.update(overrides)
    return await store.create_trip(TripCreate(**fields), ctx)


def _generator(
    store: InMemorySessionStore, gateway: ProviderGateway, app_state: AppState, settings: Settings
) -> ItineraryGenerator:
    return ItineraryGenerator(store, gateway, app_state, settings)


class TestGenerate:
    @pytest.mark.asyncio
    async def test_template_when_provider_unconfigured(
        self,
        store: InMemorySessionStore,
        gateway: ProviderGateway,
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx)

        itinerary = await _generator(store, gateway, app_state, settings).generate(trip.id, ctx)

        assert itinerary.source == "template"
        assert itinerary.reason == "credentials_missing"
        stored = await store.get_trip(trip.id, ctx)
        assert [d.day_number for d in stored.itinerary] == [1, 2, 3]
        assert stored.itinerary[0].activities[0].name == "Explore Rome"

    @pytest.mark.asyncio
    async def test_parsed_provider_itinerary_is_stored(
        self,
        store: InMemorySessionStore,
        make_gateway: Callable[..., ProviderGateway],
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx)
        llm = StubTextGenerator(_generated(3))
        generator = _generator(store, make_gateway(text_generator=llm), app_state, settings)

        itinerary = await generator.generate(trip.id, ctx)

        assert itinerary.source == "provider"
        stored = await store.get_trip(trip.id, ctx)
        assert [d.activities[0].name for d in stored.itinerary] == ["Stop 1", "Stop 2", "Stop 3"]
        assert "3-day travel itinerary for Rome" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_unparseable_response_uses_template(
        self,
        store: InMemorySessionStore,
        make_gateway: Callable[..., ProviderGateway],
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx)
        gateway = make_gateway(text_generator=StubTextGenerator("Rome is lovely in spring!"))

        itinerary = await _generator(store, gateway, app_state, settings).generate(trip.id, ctx)

        assert itinerary.source == "template"
        assert itinerary.reason == "unparseable_response"
        assert len((await store.get_trip(trip.id, ctx)).itinerary) == 3

    @pytest.mark.asyncio
    async def test_default_duration_without_dates(
        self,
        store: InMemorySessionStore,
        gateway: ProviderGateway,
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx, start_date=None, end_date=None)

        itinerary = await _generator(store, gateway, app_state, settings).generate(trip.id, ctx)

        assert len(itinerary.days) == settings.default_trip_days

    @pytest.mark.asyncio
    async def test_same_day_trip_has_one_day(
        self,
        store: InMemorySessionStore,
        gateway: ProviderGateway,
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx, end_date=date(2024, 3, 15))

        itinerary = await _generator(store, gateway, app_state, settings).generate(trip.id, ctx)

        assert len(itinerary.days) == 1

    @pytest.mark.asyncio
    async def test_trip_without_destination_is_rejected(
        self,
        store: InMemorySessionStore,
        gateway: ProviderGateway,
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx, destination="  ")
        generator = _generator(store, gateway, app_state, settings)

        with pytest.raises(TripNotReadyError):
            await generator.generate(trip.id, ctx)
        assert not app_state.regenerations.is_in_flight(trip.id)

    @pytest.mark.asyncio
    async def test_other_users_trip_not_found(
        self,
        store: InMemorySessionStore,
        gateway: ProviderGateway,
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
        other_ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx)

        with pytest.raises(NotFoundError):
            await _generator(store, gateway, app_state, settings).generate(trip.id, other_ctx)
        assert (await store.get_trip(trip.id, ctx)).itinerary == []


class TestConcurrentGeneration:
    @pytest.mark.asyncio
    async def test_second_generation_rejected_while_first_in_flight(
        self,
        store: InMemorySessionStore,
        make_gateway: Callable[..., ProviderGateway],
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx)
        llm = SlowTextGenerator(_generated(3))
        generator = _generator(store, make_gateway(text_generator=llm), app_state, settings)

        first = asyncio.create_task(generator.generate(trip.id, ctx))
        await llm.started.wait()

        with pytest.raises(GenerationInProgressError):
            await generator.generate(trip.id, ctx)

        llm.release.set()
        itinerary = await first
        assert itinerary.source == "provider"
        assert not app_state.regenerations.is_in_flight(trip.id)

    @pytest.mark.asyncio
    async def test_concurrent_generations_leave_consistent_itinerary(
        self,
        store: InMemorySessionStore,
        gateway: ProviderGateway,
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx)
        generator = _generator(store, gateway, app_state, settings)

        results = await asyncio.gather(
            generator.generate(trip.id, ctx),
            generator.generate(trip.id, ctx),
            return_exceptions=True,
        )

        assert any(not isinstance(r, BaseException) for r in results)
        for result in results:
            if isinstance(result, BaseException):
                assert isinstance(result, GenerationInProgressError)

        trips = await store.list_trips(ctx)
        assert len(trips) == 1
        day_numbers = [d.day_number for d in trips[0].itinerary]
        assert day_numbers == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_guard_released_after_failure(
        self,
        store: InMemorySessionStore,
        gateway: ProviderGateway,
        app_state: AppState,
        settings: Settings,
        ctx: RequestContext,
        other_ctx: RequestContext,
    ) -> None:
        trip = await _rome_trip(store, ctx)
        generator = _generator(store, gateway, app_state, settings)

        with pytest.raises(NotFoundError):
            await generator.generate(trip.id, other_ctx)

        itinerary = await generator.generate(trip.id, ctx)
        assert len(itinerary.days) == 3
