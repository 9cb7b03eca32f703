"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - provider_latency_ms{kind, outcome}
    - provider_fallbacks_total{kind, reason}
    - chat_turns_total{outcome}
    - itinerary_generations_total{source}
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
