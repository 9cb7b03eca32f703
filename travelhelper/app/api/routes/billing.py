"""Billing endpoints - hosted checkout and customer portal redirects."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from travelhelper.app.api.auth import get_current_context
from travelhelper.app.api.dependencies import get_gateway, get_identity_service
from travelhelper.app.api.errors import store_errors
from travelhelper.app.db.context import RequestContext
from travelhelper.app.errors import ActionFailedError
from travelhelper.app.identity.service import IdentityService
from travelhelper.app.models.providers import RedirectSession
from travelhelper.app.providers.gateway import ProviderGateway

router = APIRouter(prefix="/billing", tags=["billing"])


class CheckoutRequest(BaseModel):
    """Request body for POST /billing/checkout."""

    price_id: str = Field(..., min_length=1)


def _bad_gateway(e: ActionFailedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/checkout", response_model=RedirectSession)
async def create_checkout(
    request: CheckoutRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    gateway: Annotated[ProviderGateway, Depends(get_gateway)],
) -> RedirectSession:
    """Start a subscription checkout for the caller.

    Raises:
        HTTPException: 502 if the payment provider fails or is not configured
    """
    with store_errors():
        profile = await identity.current_user(ctx)

    try:
        return await gateway.create_checkout_session(
            request.price_id,
            str(profile.id),
            customer_email=profile.email,
            customer_id=profile.stripe_customer_id,
        )
    except ActionFailedError as e:
        raise _bad_gateway(e) from e


@router.post("/portal", response_model=RedirectSession)
async def create_portal(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    gateway: Annotated[ProviderGateway, Depends(get_gateway)],
) -> RedirectSession:
    """Open the billing portal for a caller with a payment account.

    Nothing in this API records ``stripe_customer_id``: checkout completion
    arrives via the payment webhook, which is not handled here. Until the id is
    written to the profile (``ProfileRepository.update_profile``) this returns 400.

    Raises:
        HTTPException: 400 no payment account yet, 502 provider failure
    """
    with store_errors():
        profile = await identity.current_user(ctx)

    if not profile.stripe_customer_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No billing account for this user",
        )

    try:
        return await gateway.create_portal_session(profile.stripe_customer_id)
    except ActionFailedError as e:
        raise _bad_gateway(e) from e
