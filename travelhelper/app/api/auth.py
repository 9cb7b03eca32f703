"""Bearer-token auth dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from travelhelper.app.api.dependencies import get_identity_service
from travelhelper.app.db.context import RequestContext
from travelhelper.app.errors import NotAuthenticatedError
from travelhelper.app.identity.service import IdentityService


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_bearer_token(authorization: Annotated[str | None, Header()] = None) -> str:
    """Extract the raw token from an ``Authorization: Bearer <token>`` header.

    Raises:
        HTTPException: 401 if the header is missing or malformed
    """
    if not authorization:
        raise _unauthorized("Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise _unauthorized("Invalid authorization header format")

    token = authorization[7:].strip()  # Strip "Bearer "
    if not token:
        raise _unauthorized("Empty bearer token")
    return token


async def get_current_context(
    token: Annotated[str, Depends(get_bearer_token)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> RequestContext:
    """Resolve the bearer token to the caller's request context.

    Returns:
        RequestContext with user_id

    Raises:
        HTTPException: 401 if the token is unknown or revoked
    """
    try:
        return await identity.resolve(token)
    except NotAuthenticatedError as e:
        raise _unauthorized(str(e)) from e
