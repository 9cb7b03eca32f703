"""Travel data proxy - browser-facing access to the gateway's data kinds."""

from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, ValidationError

from travelhelper.app.api.auth import get_current_context
from travelhelper.app.api.dependencies import get_gateway
from travelhelper.app.db.context import RequestContext
from travelhelper.app.models.common import Provenance
from travelhelper.app.providers.gateway import ProviderGateway, ProviderKind

router = APIRouter(prefix="/travel-data", tags=["travel-data"])


class TravelDataRequest(BaseModel):
    """Request body for POST /travel-data."""

    type: str = Field(..., description="Provider kind, e.g. 'flights' or 'weather'")
    params: dict[str, Any] = Field(default_factory=dict)


class TravelDataResponse(BaseModel):
    """Provider payload with its origin."""

    kind: str
    source: Literal["live", "fallback"]
    fallback_reason: str | None = None
    provenance: Provenance
    data: Any


@router.post("", response_model=TravelDataResponse)
async def fetch_travel_data(
    request: TravelDataRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    gateway: Annotated[ProviderGateway, Depends(get_gateway)],
) -> TravelDataResponse:
    """Proxy one data lookup through the Provider Gateway.

    Always answers 200 for a valid request; an unavailable provider yields the
    fallback payload with ``source="fallback"``.

    Raises:
        HTTPException: 400 unknown or action kind, 422 invalid params
    """
    try:
        kind = ProviderKind(request.type)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown travel data type: {request.type}",
        ) from e

    if kind.is_action:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{kind.value} is not a data lookup",
        )

    try:
        result = await gateway.call(kind, request.params)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        ) from e

    return TravelDataResponse(
        kind=kind.value,
        source=result.source,
        fallback_reason=result.fallback_reason,
        provenance=result.provenance,
        data=result.data,
    )
