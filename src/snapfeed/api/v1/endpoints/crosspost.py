# src/snapfeed/api/v1/endpoints/crosspost.py
"""Cross-posting endpoints for the Snapfeed API."""

from fastapi import APIRouter, Query

from snapfeed.api.v1.dependencies import (
    AuthDep,
    GatewayDep,
    MediaStorageDep,
    SessionDep,
    SessionStoreDep,
)
from snapfeed.core.errors import InvalidInputError
from snapfeed.schemas.common import SuccessResponse
from snapfeed.schemas.crosspost import (
    ConnectedResponse,
    ConnectionStatus,
    ConnectResponse,
    ShareRequest,
    ShareResponse,
)
from snapfeed.services import crosspost

router = APIRouter(prefix="/crosspost", tags=["crosspost"])


@router.get("/auth", response_model=ConnectResponse)
async def start_connect(
    auth: AuthDep,
    gateway: GatewayDep,
    store: SessionStoreDep,
) -> ConnectResponse:
    """Start linking an external account.

    Returns:
        The external authorization URL the user must visit

    Raises:
        ExternalServiceError: 503 when cross-posting is not configured, or
            the mapped upstream failure
    """
    url = await crosspost.start_connect(gateway, store, auth.session_id, auth.acting_user_id)
    return ConnectResponse(auth_url=url)


@router.get("/callback", response_model=ConnectedResponse)
async def complete_connect(
    auth: AuthDep,
    db: SessionDep,
    gateway: GatewayDep,
    store: SessionStoreDep,
    oauth_token: str | None = Query(None),
    oauth_verifier: str | None = Query(None),
    denied: str | None = Query(None),
) -> ConnectedResponse:
    """Finish linking after the external network redirects back."""
    if denied:
        raise InvalidInputError("Authorization was denied")
    account = await crosspost.complete_connect(
        db,
        gateway,
        store,
        auth.session_id,
        auth.acting_user_id,
        oauth_token=oauth_token,
        oauth_verifier=oauth_verifier,
    )
    return ConnectedResponse(handle=account.handle, username=account.username)


@router.get("/status", response_model=ConnectionStatus)
async def connection_status(auth: AuthDep, db: SessionDep) -> ConnectionStatus:
    """Report whether an external account is linked."""
    return ConnectionStatus(**crosspost.connection_status(db, auth.acting_user_id))


@router.post("/disconnect", response_model=SuccessResponse)
async def disconnect(auth: AuthDep, db: SessionDep) -> SuccessResponse:
    """Unlink the caller's external account."""
    removed = crosspost.disconnect(db, auth.acting_user_id)
    return SuccessResponse(message="Disconnected" if removed else "No account was connected")


@router.post("/share", response_model=ShareResponse)
async def share(
    payload: ShareRequest,
    auth: AuthDep,
    db: SessionDep,
    gateway: GatewayDep,
    storage: MediaStorageDep,
) -> ShareResponse:
    """Publish one of the caller's posts to the linked account."""
    result = await crosspost.share_post(
        db,
        gateway,
        storage,
        auth.acting_user_id,
        payload.post_id,
        payload.caption,
    )
    return ShareResponse(external_post_id=result.post_id, with_media=result.with_media)
