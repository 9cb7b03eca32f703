"""Health check endpoints.

- /health: liveness, always 200
- /healthz: database connectivity plus provider circuit breaker states
"""

import json
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from travelhelper.app.config import Settings, get_settings
from travelhelper.app.db.engine import get_async_engine
from travelhelper.app.providers.executor import BreakerState, get_breaker_registry

router = APIRouter()


async def check_db(settings: Settings) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    if settings.store_backend == "memory":
        return (True, "not_configured")

    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except (SQLAlchemyError, OSError) as e:
        return (False, f"error: {type(e).__name__}")


def check_providers() -> dict[str, str]:
    """Report providers whose circuit breaker is not closed.

    Open breakers do not fail the check; those providers serve fallbacks.
    """
    states = get_breaker_registry().states(datetime.now())
    return {name: state.value for name, state in states.items() if state != BreakerState.CLOSED}


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Component health.

    Returns:
        200 with component status if the store is reachable
        503 if the database check fails
    """
    settings = get_settings()
    db_ok, db_status = await check_db(settings)

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {
            "db": db_status,
            "providers": check_providers(),
        },
    }

    if not db_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
