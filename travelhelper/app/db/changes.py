"""Process-wide change feed for committed Session Store mutations.

Stores publish one ChangeEvent per committed mutation; the SSE endpoint
subscribes per user and forwards matching events to the browser.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)

# Per-subscriber queue bound; slow consumers drop events rather than block writers
MAX_PENDING_EVENTS = 256


@dataclass(frozen=True)
class ChangeEvent:
    """One committed row-level change."""

    table: str
    op: str  # insert | update | delete
    owner_id: UUID
    record_id: str
    session_id: UUID | None = None

    def to_json(self) -> dict[str, Any]:
        data = asdict(self)
        data["owner_id"] = str(self.owner_id)
        data["session_id"] = str(self.session_id) if self.session_id else None
        return data


@dataclass
class Subscription:
    """A subscriber's filter and pending-event queue."""

    owner_id: UUID
    tables: frozenset[str] | None
    session_id: UUID | None
    queue: asyncio.Queue[ChangeEvent]

    def matches(self, event: ChangeEvent) -> bool:
        if event.owner_id != self.owner_id:
            return False
        if self.tables is not None and event.table not in self.tables:
            return False
        if self.session_id is not None and event.session_id != self.session_id:
            return False
        return True

    async def next_event(self, timeout: float | None = None) -> ChangeEvent | None:
        """Wait for the next event; None when ``timeout`` elapses first."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except TimeoutError:
            return None


class ChangeFeed:
    """Fan-out of change events to in-process subscribers."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every matching subscriber without blocking."""
        for sub in self._subscriptions:
            if not sub.matches(event):
                continue
            try:
                sub.queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping change event for slow subscriber",
                    extra={"structured": {"table": event.table, "owner_id": str(event.owner_id)}},
                )

    @asynccontextmanager
    async def subscribe(
        self,
        owner_id: UUID,
        tables: set[str] | None = None,
        session_id: UUID | None = None,
    ) -> AsyncIterator[Subscription]:
        """Subscribe to one user's changes for the duration of the context.

        Args:
            owner_id: Only events for this owner are delivered
            tables: Optional table filter (e.g. {"chat_messages"})
            session_id: Optional chat session filter
        """
        sub = Subscription(
            owner_id=owner_id,
            tables=frozenset(tables) if tables is not None else None,
            session_id=session_id,
            queue=asyncio.Queue(maxsize=MAX_PENDING_EVENTS),
        )
        self._subscriptions.append(sub)
        try:
            yield sub
        finally:
            self._subscriptions.remove(sub)


# Global feed shared by all stores in the process
_change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Get the global change feed instance."""
    return _change_feed
