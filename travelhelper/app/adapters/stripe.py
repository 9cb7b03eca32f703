"""Stripe adapter: hosted checkout and billing-portal sessions.

These are payment actions, so every failure propagates to the caller.
"""

import httpx

from travelhelper.app.adapters.http import http_client, parsing
from travelhelper.app.adapters.provenance import Sourced, provenance_for_http
from travelhelper.app.models.providers import CheckoutParams, PortalParams, RedirectSession

STRIPE_API_URL = "https://api.stripe.com"


async def _post_form(
    path: str,
    form: dict[str, str],
    secret_key: str,
    base_url: str,
    client: httpx.AsyncClient | None,
) -> Sourced[RedirectSession]:
    url = f"{base_url.rstrip('/')}{path}"
    async with http_client(client) as http:
        response = await http.post(
            url, data=form, headers={"Authorization": f"Bearer {secret_key}"}
        )
        response.raise_for_status()

        with parsing(f"stripe{path}"):
            body = response.json()
            session = RedirectSession(id=body["id"], url=body["url"])

    return Sourced(value=session, provenance=provenance_for_http("payments.stripe", url))


async def create_checkout_session(
    params: CheckoutParams,
    secret_key: str,
    app_base_url: str,
    base_url: str = STRIPE_API_URL,
    client: httpx.AsyncClient | None = None,
) -> Sourced[RedirectSession]:
    """Create a subscription checkout session for a price.

    Args:
        params: Price id and the paying user
        secret_key: Stripe secret key
        app_base_url: Frontend origin for success/cancel redirects
        base_url: Stripe API host
        client: Optional httpx client (for testing with mocks)

    Returns:
        Sourced RedirectSession with the hosted checkout URL

    Raises:
        httpx.HTTPError: On network or HTTP errors
        MalformedResponseError: If the session cannot be read
    """
    form = {
        "mode": "subscription",
        "line_items[0][price]": params.price_id,
        "line_items[0][quantity]": "1",
        "client_reference_id": params.user_id,
        "success_url": f"{app_base_url}/dashboard?success=true",
        "cancel_url": f"{app_base_url}/pricing?canceled=true",
    }
    if params.customer_id:
        form["customer"] = params.customer_id
    elif params.customer_email:
        form["customer_email"] = params.customer_email

    return await _post_form("/v1/checkout/sessions", form, secret_key, base_url, client)


async def create_portal_session(
    params: PortalParams,
    secret_key: str,
    app_base_url: str,
    base_url: str = STRIPE_API_URL,
    client: httpx.AsyncClient | None = None,
) -> Sourced[RedirectSession]:
    """Create a billing-portal session for an existing customer."""
    form = {"customer": params.customer_id, "return_url": f"{app_base_url}/dashboard"}
    return await _post_form("/v1/billing_portal/sessions", form, secret_key, base_url, client)
