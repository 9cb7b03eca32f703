"""Itinerary Generator - generative itinerary with deterministic template fallback."""

import logging
from uuid import UUID

from travelhelper.app.config import Settings, get_settings
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.repositories import SessionStore
from travelhelper.app.errors import GenerationFailedError, TripNotReadyError
from travelhelper.app.llm.prompts import build_itinerary_prompt
from travelhelper.app.models.itinerary import FallbackItinerary, ParsedItinerary
from travelhelper.app.orchestration.parsing import build_template_itinerary, parse_itinerary
from travelhelper.app.orchestration.state import AppState, get_app_state
from travelhelper.app.providers.gateway import ProviderGateway
from travelhelper.app.utils.metrics import itinerary_generations_total

logger = logging.getLogger(__name__)


class ItineraryGenerator:
    """Generates and persists a day-by-day itinerary for one trip at a time."""

    def __init__(
        self,
        store: SessionStore,
        gateway: ProviderGateway,
        state: AppState | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._state = state or get_app_state()
        self._settings = settings or get_settings()

    async def generate(
        self, trip_id: UUID, ctx: RequestContext | None
    ) -> ParsedItinerary | FallbackItinerary:
        """Generate an itinerary and replace the trip's stored days with it.

        The regeneration guard is claimed before the first suspension point,
        so a concurrent call for the same trip is rejected rather than
        interleaved.

        Args:
            trip_id: Trip to generate for
            ctx: Request context

        Returns:
            ParsedItinerary when the provider's answer was usable, otherwise
            the FallbackItinerary template

        Raises:
            GenerationInProgressError: A generation for this trip is running
            TripNotReadyError: The trip has no destination
            NotAuthenticatedError: ctx is None
            NotFoundError: Unknown trip for this owner
        """
        self._state.regenerations.claim(trip_id)
        return await self.run_claimed(trip_id, ctx)

    async def run_claimed(
        self, trip_id: UUID, ctx: RequestContext | None
    ) -> ParsedItinerary | FallbackItinerary:
        """Generate for a trip whose regeneration guard the caller already holds.

        The guard is released when this call completes or fails.
        """
        try:
            return await self._generate(trip_id, ctx)
        finally:
            self._state.regenerations.release(trip_id)

    async def _generate(
        self, trip_id: UUID, ctx: RequestContext | None
    ) -> ParsedItinerary | FallbackItinerary:
        # Always act on the stored trip, never a caller's copy
        trip = await self._store.get_trip(trip_id, ctx)
        if not trip.has_destination:
            raise TripNotReadyError("Set a destination before generating an itinerary")

        duration = trip.duration_days(self._settings.default_trip_days)
        result = await self._gateway.generate_itinerary_text(
            build_itinerary_prompt(trip, duration), destination=trip.destination
        )

        itinerary: ParsedItinerary | FallbackItinerary
        if result.is_fallback:
            itinerary = build_template_itinerary(
                trip, duration, reason=result.fallback_reason or "fallback"
            )
        else:
            try:
                itinerary = parse_itinerary(result.data.text, trip, duration)
            except GenerationFailedError as e:
                logger.warning(
                    f"Generated itinerary unusable, using template: {e}",
                    extra={"structured": {"trip_id": str(trip_id)}},
                )
                itinerary = build_template_itinerary(trip, duration, reason="unparseable_response")

        await self._store.replace_itinerary(trip_id, itinerary.days, ctx)
        itinerary_generations_total.labels(source=itinerary.source).inc()
        logger.info(
            "Itinerary generated",
            extra={
                "structured": {
                    "trip_id": str(trip_id),
                    "source": itinerary.source,
                    "days": len(itinerary.days),
                }
            },
        )
        return itinerary
