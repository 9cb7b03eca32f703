"""Chat models - sessions, messages, and turn results."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Author of a chat message."""

    user = "user"
    assistant = "assistant"


class MessageType(str, Enum):
    """Rendering hint for a chat message."""

    text = "text"
    options = "options"
    form = "form"
    map = "map"
    summary = "summary"


class ChatSession(BaseModel):
    """A conversation thread owned by one user, optionally tied to a trip."""

    id: UUID
    user_id: UUID
    trip_id: UUID | None = None
    title: str = ""
    created_at: datetime
    updated_at: datetime


class ChatMessage(BaseModel):
    """One message; ``id`` is the insertion sequence used to break time ties."""

    id: int
    session_id: UUID
    role: MessageRole
    content: str
    message_type: MessageType = MessageType.text
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class TurnResult(BaseModel):
    """Outcome of one user turn.

    ``messages`` lists everything appended synchronously during the turn, in
    order. Messages appended later by a background itinerary generation are
    only visible through the session history.
    """

    session_id: UUID
    messages: list[ChatMessage]
    degraded: bool = False
    generation_scheduled: bool = False
