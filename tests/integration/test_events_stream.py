"""Tests for the change-feed SSE endpoint."""

import json
import uuid
from collections.abc import Callable
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from tests.helpers import make_settings
from travelhelper.app.api.routes.events import stream_changes
from travelhelper.app.db.changes import ChangeEvent, ChangeFeed
from travelhelper.app.db.context import RequestContext


class ScriptedRequest:
    """Stands in for a Request: runs ``on_connect`` on the first poll, disconnects after ``polls``."""

    def __init__(self, on_connect: Callable[[], None], polls: int = 1) -> None:
        self._on_connect = on_connect
        self._remaining = polls
        self._connected = False

    async def is_disconnected(self) -> bool:
        if not self._connected:
            self._connected = True
            self._on_connect()
        self._remaining -= 1
        return self._remaining < 0


async def _collect(response: object) -> str:
    chunks = [chunk async for chunk in response.body_iterator]  # type: ignore[attr-defined]
    return "".join(c if isinstance(c, str) else c.decode() for c in chunks)


@pytest.mark.asyncio
async def test_stream_delivers_owner_changes(feed: ChangeFeed, ctx: RequestContext) -> None:
    def publish() -> None:
        feed.publish(ChangeEvent("trips", "update", uuid.uuid4(), "foreign"))
        feed.publish(ChangeEvent("trips", "update", ctx.user_id, "mine"))

    response = await stream_changes(ScriptedRequest(publish), ctx, feed, tables="trips")

    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["x-accel-buffering"] == "no"
    body = await _collect(response)
    assert body.startswith("event: change\n")
    payload = json.loads(body.split("data: ", 1)[1])
    assert payload["record_id"] == "mine"
    assert feed.subscriber_count == 0


@pytest.mark.asyncio
async def test_stream_sends_heartbeat_when_idle(feed: ChangeFeed, ctx: RequestContext) -> None:
    with patch(
        "travelhelper.app.api.routes.events.get_settings",
        return_value=make_settings(events_heartbeat_sec=0.01),
    ):
        response = await stream_changes(ScriptedRequest(lambda: None), ctx, feed)

    body = await _collect(response)

    assert body.startswith("event: heartbeat\n")
    assert '"ts"' in body


def test_stream_requires_auth(api_client: TestClient) -> None:
    assert api_client.get("/events/stream").status_code == 401
