"""Account endpoints - sign-up, sign-in, sign-out and the current profile."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from travelhelper.app.api.auth import get_bearer_token, get_current_context
from travelhelper.app.api.dependencies import get_identity_service
from travelhelper.app.api.errors import store_errors
from travelhelper.app.db.context import RequestContext
from travelhelper.app.errors import AuthenticationError
from travelhelper.app.identity.service import IdentityService
from travelhelper.app.models.user import Profile, ProfileUpdate

router = APIRouter(prefix="/auth", tags=["auth"])


class SignUpRequest(BaseModel):
    """Request body for POST /auth/signup."""

    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    name: str = ""


class SignInRequest(BaseModel):
    """Request body for POST /auth/signin."""

    email: str
    password: str


class AuthResponse(BaseModel):
    """Issued bearer token with the signed-in profile."""

    token: str
    token_type: str = "bearer"
    profile: Profile


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    request: SignUpRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> AuthResponse:
    try:
        profile, token = await identity.sign_up(request.email, request.password, request.name)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return AuthResponse(token=token, profile=profile)


@router.post("/signin", response_model=AuthResponse)
async def sign_in(
    request: SignInRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> AuthResponse:
    try:
        profile, token = await identity.sign_in(request.email, request.password)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    return AuthResponse(token=token, profile=profile)


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    token: Annotated[str, Depends(get_bearer_token)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> Response:
    """Revoke the presented token. Unknown tokens are ignored."""
    await identity.sign_out(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=Profile)
async def get_me(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> Profile:
    with store_errors():
        return await identity.current_user(ctx)


@router.patch("/me", response_model=Profile)
async def update_me(
    request: ProfileUpdate,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> Profile:
    with store_errors():
        return await identity.update_profile(request.changes(), ctx)
