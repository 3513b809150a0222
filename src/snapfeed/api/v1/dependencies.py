"""Shared API dependencies for authentication and common functionality."""

from dataclasses import dataclass, field
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from snapfeed.core.errors import UnauthenticatedError
from snapfeed.core.security import decode_access_token
from snapfeed.core.settings import settings
from snapfeed.db.session import get_db
from snapfeed.services.gateway import CrossPostGateway, get_gateway
from snapfeed.services.media import MediaStorage, get_media_storage
from snapfeed.services.sessions import (
    SessionStore,
    UserSnapshotCache,
    get_session_store,
)
from snapfeed.services.user_service import load_snapshot

# HTTP Bearer scheme; the session cookie is accepted when no header is sent.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_session_store_dep() -> SessionStore:
    """Return the shared session store."""
    return get_session_store()


def get_media_storage_dep() -> MediaStorage:
    """Return the configured media storage."""
    return get_media_storage()


def get_gateway_dep() -> CrossPostGateway:
    """Return the shared cross-post gateway."""
    return get_gateway()


SessionStoreDep = Annotated[SessionStore, Depends(get_session_store_dep)]


def get_user_cache_dep(store: SessionStoreDep) -> UserSnapshotCache:
    """Return the snapshot cache bound to the request's session store."""
    return UserSnapshotCache(store, settings.user_cache_ttl_seconds)


UserCacheDep = Annotated[UserSnapshotCache, Depends(get_user_cache_dep)]
MediaStorageDep = Annotated[MediaStorage, Depends(get_media_storage_dep)]
GatewayDep = Annotated[CrossPostGateway, Depends(get_gateway_dep)]


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, resolved once per request."""

    acting_user_id: int
    session_id: str
    snapshot: dict[str, Any]
    acting_user_roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def username(self) -> str:
        return str(self.snapshot.get("username", ""))


def _roles_for(snapshot: dict[str, Any]) -> frozenset[str]:
    roles = {"user"}
    if snapshot.get("is_verified"):
        roles.add("verified")
    return frozenset(roles)


def get_auth_context(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
    store: SessionStoreDep,
    cache: UserCacheDep,
) -> AuthContext:
    """Resolve the acting user from the bearer token or session cookie.

    Args:
        request: Incoming request, consulted for the session cookie
        credentials: Optional HTTP Bearer credentials
        db: Database session, used only when the snapshot cache misses
        store: Server-side session store
        cache: Per-session user snapshot cache

    Returns:
        AuthContext for the caller

    Raises:
        UnauthenticatedError: If no valid, live session backs the request
    """
    token = credentials.credentials if credentials else request.cookies.get(settings.session_cookie_name)
    if not token:
        raise UnauthenticatedError("Not authenticated")

    payload = decode_access_token(token)
    if payload is None:
        raise UnauthenticatedError("Could not validate credentials")

    session_id = str(payload["sid"])
    session = store.get(session_id)
    if session is None or str(session.get("user_id")) != str(payload["sub"]):
        raise UnauthenticatedError("Session expired")

    user_id = int(payload["sub"])
    snapshot = cache.get_or_load(session_id, lambda: load_snapshot(db, user_id))
    if snapshot is None:
        raise UnauthenticatedError("User not found")

    return AuthContext(
        acting_user_id=user_id,
        session_id=session_id,
        snapshot=snapshot,
        acting_user_roles=_roles_for(snapshot),
    )


# Type alias for the authenticated caller
AuthDep = Annotated[AuthContext, Depends(get_auth_context)]
