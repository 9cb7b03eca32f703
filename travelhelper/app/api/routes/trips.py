"""Trip endpoints - CRUD, itinerary replacement and generation, sharing."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from travelhelper.app.api.auth import get_current_context
from travelhelper.app.api.dependencies import get_generator, get_session_store
from travelhelper.app.api.errors import store_errors
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.repositories import SessionStore
from travelhelper.app.errors import GenerationInProgressError, TripNotReadyError
from travelhelper.app.models.itinerary import FallbackItinerary, ParsedItinerary
from travelhelper.app.models.trip import DayPlan, Trip, TripCreate, TripUpdate
from travelhelper.app.orchestration.itinerary import ItineraryGenerator

router = APIRouter(prefix="/trips", tags=["trips"])
shared_router = APIRouter(prefix="/shared", tags=["trips"])


class ShareResponse(BaseModel):
    """Response for POST /trips/{trip_id}/share."""

    share_id: str


@router.get("", response_model=list[Trip])
async def list_trips(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> list[Trip]:
    """List the caller's trips, newest first."""
    with store_errors():
        return await store.list_trips(ctx)


@router.post("", response_model=Trip, status_code=status.HTTP_201_CREATED)
async def create_trip(
    request: TripCreate,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Trip:
    with store_errors():
        return await store.create_trip(request, ctx)


@router.get("/{trip_id}", response_model=Trip)
async def get_trip(
    trip_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Trip:
    with store_errors():
        return await store.get_trip(trip_id, ctx)


@router.patch("/{trip_id}", response_model=Trip)
async def update_trip(
    trip_id: UUID,
    request: TripUpdate,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Trip:
    """Apply a partial update; fields absent from the body are untouched.

    Raises:
        HTTPException: 404 unknown trip, 422 if the merged dates are inverted
    """
    changes = request.changes()
    with store_errors():
        current = await store.get_trip(trip_id, ctx)
        start = changes.get("start_date", current.start_date)
        end = changes.get("end_date", current.end_date)
        if start is not None and end is not None and end < start:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="end_date must be >= start_date",
            )
        await store.update_trip(trip_id, changes, ctx)
        return await store.get_trip(trip_id, ctx)


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Response:
    with store_errors():
        await store.delete_trip(trip_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{trip_id}/itinerary", response_model=Trip)
async def replace_itinerary(
    trip_id: UUID,
    days: list[DayPlan],
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Trip:
    """Replace the itinerary; days are renumbered 1..N in body order."""
    with store_errors():
        await store.replace_itinerary(trip_id, days, ctx)
        return await store.get_trip(trip_id, ctx)


@router.post("/{trip_id}/itinerary/generate", response_model=ParsedItinerary | FallbackItinerary)
async def generate_itinerary(
    trip_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    generator: Annotated[ItineraryGenerator, Depends(get_generator)],
) -> ParsedItinerary | FallbackItinerary:
    """Generate and store a new itinerary.

    Raises:
        HTTPException: 404 unknown trip, 409 generation already running,
            422 trip has no destination
    """
    try:
        with store_errors():
            return await generator.generate(trip_id, ctx)
    except GenerationInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except TripNotReadyError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e


@router.post("/{trip_id}/share", response_model=ShareResponse)
async def share_trip(
    trip_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> ShareResponse:
    with store_errors():
        return ShareResponse(share_id=await store.share_trip(trip_id, ctx))


@shared_router.get("/{share_id}", response_model=Trip)
async def get_shared_trip(
    share_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Trip:
    """Public read-only view of a shared trip; no authentication."""
    with store_errors():
        return await store.get_shared_trip(share_id)
