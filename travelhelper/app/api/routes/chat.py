"""Chat endpoints - sessions, message history and user turns."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from travelhelper.app.api.auth import get_current_context
from travelhelper.app.api.dependencies import get_orchestrator, get_session_store
from travelhelper.app.api.errors import store_errors
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.repositories import SessionStore
from travelhelper.app.errors import TurnInProgressError
from travelhelper.app.models.chat import ChatMessage, ChatSession, TurnResult
from travelhelper.app.orchestration.conversation import ConversationOrchestrator

router = APIRouter(prefix="/chat", tags=["chat"])


class CreateSessionRequest(BaseModel):
    """Request body for POST /chat/sessions."""

    trip_id: UUID | None = None
    title: str | None = Field(None, max_length=200)


class TurnRequest(BaseModel):
    """Request body for POST /chat/turns."""

    text: str = Field(..., min_length=1, max_length=4000)
    session_id: UUID | None = None
    trip_id: UUID | None = None


@router.post("/sessions", response_model=ChatSession, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateSessionRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> ChatSession:
    with store_errors():
        return await store.create_session(ctx, trip_id=request.trip_id, title=request.title)


@router.get("/sessions", response_model=list[ChatSession])
async def list_sessions(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    trip_id: Annotated[UUID | None, Query()] = None,
) -> list[ChatSession]:
    with store_errors():
        return await store.list_sessions(ctx, trip_id=trip_id)


@router.get("/sessions/{session_id}/messages", response_model=list[ChatMessage])
async def list_messages(
    session_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> list[ChatMessage]:
    """Session history, oldest first."""
    with store_errors():
        return await store.list_messages(session_id, ctx)


@router.post("/turns", response_model=TurnResult)
async def send_turn(
    request: TurnRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    orchestrator: Annotated[ConversationOrchestrator, Depends(get_orchestrator)],
) -> TurnResult:
    """Send one user turn.

    Provider and generation failures never fail the request; they show up as
    assistant messages instead.

    Raises:
        HTTPException: 404 unknown session/trip, 409 previous turn still running
    """
    try:
        with store_errors():
            return await orchestrator.send_user_turn(
                request.text, ctx, session_id=request.session_id, trip_id=request.trip_id
            )
    except TurnInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
