"""Change notifications over Server-Sent Events."""

import json
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from travelhelper.app.api.auth import get_current_context
from travelhelper.app.api.dependencies import get_feed
from travelhelper.app.config import get_settings
from travelhelper.app.db.changes import ChangeFeed
from travelhelper.app.db.context import RequestContext

router = APIRouter(prefix="/events", tags=["events"])


def _parse_tables(tables: str | None) -> set[str] | None:
    if not tables:
        return None
    names = {name.strip() for name in tables.split(",") if name.strip()}
    return names or None


@router.get("/stream")
async def stream_changes(
    request: Request,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
    tables: Annotated[str | None, Query(description="Comma-separated table filter")] = None,
    session_id: Annotated[UUID | None, Query()] = None,
) -> StreamingResponse:
    """Stream the caller's committed changes.

    Args:
        request: Incoming request (used to detect client disconnect)
        ctx: Request context; only this user's changes are delivered
        feed: Change feed
        tables: Optional filter, e.g. ``chat_messages,trips``
        session_id: Optional chat session filter

    Returns:
        SSE stream of ``change`` events with periodic ``heartbeat`` events
    """
    heartbeat_sec = get_settings().events_heartbeat_sec
    table_filter = _parse_tables(tables)

    async def event_generator() -> AsyncGenerator[str, None]:
        async with feed.subscribe(ctx.user_id, table_filter, session_id) as subscription:
            while not await request.is_disconnected():
                event = await subscription.next_event(timeout=heartbeat_sec)
                if event is None:
                    yield "event: heartbeat\n"
                    yield f'data: {{"ts": "{datetime.now(UTC).isoformat()}"}}\n\n'
                    continue
                yield "event: change\n"
                yield f"data: {json.dumps(event.to_json())}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
