"""Conversation Orchestrator - one user turn end to end.

A turn appends, in order:
1. the user message
2. one summary message per data lookup the turn asked for (non-empty only)
3. the assistant reply
4. a provisional "generating" message when an itinerary regeneration starts

Failures in steps 2-3 collapse into a single apologetic assistant message and
the turn still returns normally. The regeneration itself runs as a background
task that appends its own completion or failure message later.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any
from uuid import UUID

from travelhelper.app.config import Settings, get_settings
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.repositories import SessionStore, require_context
from travelhelper.app.llm.prompts import build_chat_prompt
from travelhelper.app.models.chat import ChatMessage, MessageRole, MessageType, TurnResult
from travelhelper.app.models.trip import Trip
from travelhelper.app.orchestration.digests import build_digest
from travelhelper.app.orchestration.intent import (
    Intent,
    IntentDetector,
    KeywordIntentDetector,
    matches_itinerary_trigger,
)
from travelhelper.app.orchestration.itinerary import ItineraryGenerator
from travelhelper.app.orchestration.state import AppState, get_app_state
from travelhelper.app.providers.gateway import ProviderGateway, ProviderResult
from travelhelper.app.utils.metrics import chat_turns_total

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "I'm sorry, I ran into a problem while working on that. "
    "Please try again in a moment."
)
PROVISIONAL_MESSAGE = (
    "🗓️ Generating your day-by-day itinerary for {destination}... "
    "I'll post here as soon as it's ready."
)
COMPLETED_MESSAGE = "✅ Your {days}-day itinerary for {destination} is ready. Open the trip to see it."
FAILED_MESSAGE = (
    "I couldn't finish the itinerary for {destination} this time. "
    "Please ask me again in a moment."
)

# Metadata "kind" of the main conversational reply
REPLY_KIND = "reply"


class ConversationOrchestrator:
    """Runs chat turns against the Session Store and Provider Gateway."""

    def __init__(
        self,
        store: SessionStore,
        gateway: ProviderGateway,
        generator: ItineraryGenerator,
        state: AppState | None = None,
        settings: Settings | None = None,
        detector: IntentDetector | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            store: Session Store
            gateway: Provider Gateway
            generator: Itinerary Generator for triggered regenerations
            state: Application state (default: process-wide AppState)
            settings: Tuning constants (default: get_settings())
            detector: Intent detector (default: keyword sets from settings)
        """
        self._store = store
        self._gateway = gateway
        self._generator = generator
        self._state = state or get_app_state()
        self._settings = settings or get_settings()
        self._detector = detector or KeywordIntentDetector.from_settings(self._settings)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_generations(self) -> int:
        return len(self._tasks)

    async def send_user_turn(
        self,
        text: str,
        ctx: RequestContext | None,
        *,
        session_id: UUID | None = None,
        trip_id: UUID | None = None,
    ) -> TurnResult:
        """Process one user turn.

        Args:
            text: User message
            ctx: Request context
            session_id: Existing session, or None to start a new one
            trip_id: Trip the turn is about (defaults to the session's trip)

        Returns:
            TurnResult listing the messages appended during the turn

        Raises:
            NotAuthenticatedError: ctx is None
            NotFoundError: Unknown session or trip for this owner
            TurnInProgressError: The session is still awaiting a previous reply
        """
        ctx = require_context(ctx)
        active: UUID | None = None
        if session_id is not None:
            self._state.sessions.begin_turn(session_id)
            active = session_id

        try:
            if session_id is not None:
                session = await self._store.get_session(session_id, ctx)
                trip_id = trip_id or session.trip_id
            trip = await self._store.get_trip(trip_id, ctx) if trip_id is not None else None

            user_message = await self._store.append_message(
                session_id, MessageRole.user, text, ctx, trip_id=trip_id
            )
            if active is None:
                active = user_message.session_id
                self._state.sessions.begin_turn(active)

            messages = [user_message]
            degraded = False
            reply_text = ""
            try:
                reply_text = await self._respond(text, user_message, trip, ctx, messages)
            except Exception:
                logger.exception(
                    "Chat turn failed; replying with apology",
                    extra={"structured": {"session_id": str(active)}},
                )
                degraded = True
                try:
                    messages.append(
                        await self._store.append_message(
                            active,
                            MessageRole.assistant,
                            APOLOGY_MESSAGE,
                            ctx,
                            metadata={"kind": "error"},
                        )
                    )
                except Exception:
                    logger.exception(
                        "Could not store apology message",
                        extra={"structured": {"session_id": str(active)}},
                    )

            scheduled = False
            if not degraded and trip is not None:
                scheduled = await self._maybe_schedule_generation(
                    f"{text}\n{reply_text}", trip, active, ctx, messages
                )
        finally:
            if active is not None:
                self._state.sessions.end_turn(active)

        chat_turns_total.labels(outcome="degraded" if degraded else "ok").inc()
        return TurnResult(
            session_id=active,
            messages=messages,
            degraded=degraded,
            generation_scheduled=scheduled,
        )

    async def _respond(
        self,
        text: str,
        user_message: ChatMessage,
        trip: Trip | None,
        ctx: RequestContext,
        messages: list[ChatMessage],
    ) -> str:
        session_id = user_message.session_id
        history = [
            m for m in await self._store.list_messages(session_id, ctx) if m.id != user_message.id
        ]

        # Data lookups, each digest appended before the main reply
        if trip is not None and trip.has_destination:
            prior_reply = _last_reply(history)
            for intent in self._detector.detect(text, prior_reply):
                result = await self._lookup(intent, trip)
                digest = build_digest(result, trip.destination, self._settings.digest_top_n)
                if digest is None:
                    continue
                messages.append(
                    await self._store.append_message(
                        session_id,
                        MessageRole.assistant,
                        digest.content,
                        ctx,
                        message_type=MessageType.summary,
                        metadata=digest.metadata,
                    )
                )

        window = history[-self._settings.chat_history_window :]
        reply = await self._gateway.generate_chat_reply(
            build_chat_prompt(text, window, trip),
            message=text,
            destination=trip.destination if trip else "",
        )
        messages.append(
            await self._store.append_message(
                session_id,
                MessageRole.assistant,
                reply.data.text,
                ctx,
                metadata={"kind": REPLY_KIND, "source": reply.source, "model": reply.data.model},
            )
        )
        return reply.data.text

    async def _lookup(self, intent: Intent, trip: Trip) -> ProviderResult[Any]:
        start = trip.start_date or date.today()
        destination = trip.destination.strip()
        city_code = destination.split(",")[0].strip()[:3].upper()

        if intent is Intent.flights:
            return await self._gateway.search_flights(
                self._settings.default_flight_origin,
                city_code,
                start.isoformat(),
                trip.end_date.isoformat() if trip.end_date else None,
            )
        if intent is Intent.hotels:
            check_out = trip.end_date or start + timedelta(days=self._settings.default_trip_days)
            return await self._gateway.search_hotels(
                city_code, start.isoformat(), check_out.isoformat()
            )
        if intent is Intent.restaurants:
            return await self._gateway.get_restaurants(destination)
        return await self._gateway.get_weather(destination)

    async def _maybe_schedule_generation(
        self,
        combined_text: str,
        trip: Trip,
        session_id: UUID,
        ctx: RequestContext,
        messages: list[ChatMessage],
    ) -> bool:
        if not trip.has_destination:
            return False
        if not matches_itinerary_trigger(combined_text, self._settings.itinerary_triggers):
            return False
        if not self._state.regenerations.try_claim(trip.id):
            logger.info(
                "Itinerary regeneration already in flight; not scheduling another",
                extra={"structured": {"trip_id": str(trip.id)}},
            )
            return False

        try:
            messages.append(
                await self._store.append_message(
                    session_id,
                    MessageRole.assistant,
                    PROVISIONAL_MESSAGE.format(destination=trip.destination),
                    ctx,
                    metadata={"kind": "itinerary_pending", "trip_id": str(trip.id)},
                )
            )
        except Exception:
            self._state.regenerations.release(trip.id)
            raise

        task = asyncio.create_task(self._run_generation(trip, session_id, ctx))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run_generation(self, trip: Trip, session_id: UUID, ctx: RequestContext) -> None:
        try:
            itinerary = await self._generator.run_claimed(trip.id, ctx)
        except Exception:
            logger.exception(
                "Background itinerary generation failed",
                extra={"structured": {"trip_id": str(trip.id)}},
            )
            content = FAILED_MESSAGE.format(destination=trip.destination)
            metadata: dict[str, Any] = {"kind": "itinerary_failed", "trip_id": str(trip.id)}
        else:
            content = COMPLETED_MESSAGE.format(
                days=len(itinerary.days), destination=trip.destination
            )
            metadata = {
                "kind": "itinerary_ready",
                "trip_id": str(trip.id),
                "source": itinerary.source,
                "days": len(itinerary.days),
            }

        try:
            await self._store.append_message(
                session_id, MessageRole.assistant, content, ctx, metadata=metadata
            )
        except Exception:
            # Nobody awaits this task; the session may have gone away meanwhile
            logger.exception(
                "Could not append itinerary result message",
                extra={"structured": {"session_id": str(session_id)}},
            )

    async def drain(self) -> None:
        """Wait for all background itinerary generations to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


def _last_reply(history: list[ChatMessage]) -> str | None:
    for message in reversed(history):
        if message.role is MessageRole.assistant and message.metadata.get("kind") == REPLY_KIND:
            return message.content
    return None
