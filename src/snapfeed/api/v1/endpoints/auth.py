# src/snapfeed/api/v1/endpoints/auth.py
"""Authentication endpoints for the Snapfeed API."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from snapfeed.api.v1.dependencies import AuthDep, SessionDep, SessionStoreDep
from snapfeed.core.settings import settings
from snapfeed.schemas.common import SuccessResponse
from snapfeed.schemas.user import (
    LoginRequest,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserSummary,
)
from snapfeed.services import user_service

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: SessionDep) -> RegisterResponse:
    """Create a new account.

    Args:
        payload: Username, email, password and optional profile fields
        db: Database session

    Returns:
        The created user

    Raises:
        InvalidInputError: If a field fails validation
        AlreadyExistsError: If the username or email is taken
    """
    user = user_service.register_user(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        country=payload.country,
        signature=payload.signature,
    )
    return RegisterResponse(user=UserSummary.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    db: SessionDep,
    store: SessionStoreDep,
) -> TokenResponse:
    """Open a session and return its access token.

    The token is also set as an HttpOnly cookie so browser redirects, such
    as the cross-post OAuth callback, are authenticated.
    """
    result = user_service.login(db, store, username=payload.username, password=payload.password)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=result.access_token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return TokenResponse(access_token=result.access_token, user=UserSummary.model_validate(result.user))


@router.post("/logout", response_model=SuccessResponse)
async def logout(auth: AuthDep, response: Response, store: SessionStoreDep) -> SuccessResponse:
    """Destroy the caller's session."""
    user_service.logout(store, auth.session_id)
    response.delete_cookie(settings.session_cookie_name)
    return SuccessResponse(message="Logged out")


@router.get("/me", response_model=MeResponse)
async def me(auth: AuthDep) -> MeResponse:
    """Return the caller's cached snapshot."""
    return MeResponse(
        id=auth.acting_user_id,
        username=auth.username,
        email=str(auth.snapshot.get("email", "")),
        is_verified=bool(auth.snapshot.get("is_verified", False)),
    )
