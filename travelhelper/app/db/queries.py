"""Ownership-safe query helpers."""

from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.orm import selectinload

from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.models import ChatSession, ItineraryDay, Trip


def select_trips_with_itinerary() -> Select[tuple[Trip]]:
    """Select trips with days and activities eagerly loaded (no owner filter)."""
    return select(Trip).options(selectinload(Trip.days).selectinload(ItineraryDay.activities))


def select_trips(ctx: RequestContext) -> Select[tuple[Trip]]:
    """Select trips with owner scoping enforced and the itinerary eagerly loaded.

    Args:
        ctx: Request context with user_id

    Returns:
        Select filtered by user_id
    """
    return select_trips_with_itinerary().where(Trip.user_id == ctx.user_id)


def select_trip(trip_id: UUID, ctx: RequestContext) -> Select[tuple[Trip]]:
    return select_trips(ctx).where(Trip.id == trip_id)


def select_shared_trip(share_id: str) -> Select[tuple[Trip]]:
    """Select a trip by public share id; sharing deliberately bypasses owner scoping."""
    return select_trips_with_itinerary().where(Trip.share_id == share_id)


def select_sessions(ctx: RequestContext) -> Select[tuple[ChatSession]]:
    """Select chat sessions with owner scoping enforced.

    Args:
        ctx: Request context with user_id

    Returns:
        Select filtered by user_id
    """
    return select(ChatSession).where(ChatSession.user_id == ctx.user_id)
