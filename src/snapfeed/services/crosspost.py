"""Linking external accounts and sharing posts to them."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from snapfeed.core.errors import (
    AlreadyExistsError,
    ExternalServiceError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    RateLimitedError,
)
from snapfeed.core.settings import settings
from snapfeed.db.time import as_utc, utcnow
from snapfeed.models import CrossPostAccount, Post
from snapfeed.services.gateway import (
    AccessGrant,
    CrossPostGateway,
    ExternalPost,
    ExternalProfile,
    MediaPayload,
)
from snapfeed.services.media import ALLOWED_MEDIA_TYPES, MediaStorage
from snapfeed.services.sessions import SessionStore
from snapfeed.utils.text import truncate_for_share

logger = logging.getLogger(__name__)

OAUTH_STATE_KEY = "crosspost_oauth"
SHARE_TEXT_LIMIT = 280


def _cooldown(seconds: int | None) -> timedelta:
    return timedelta(seconds=settings.crosspost_cooldown_seconds if seconds is None else seconds)


def can_cross_post(
    account: CrossPostAccount,
    now: datetime | None = None,
    cooldown_seconds: int | None = None,
) -> bool:
    """True iff the account never posted or its last post is older than the cooldown."""
    if account.last_post_at is None:
        return True
    now = now or utcnow()
    return now - as_utc(account.last_post_at) > _cooldown(cooldown_seconds)


def record_cross_post(
    db: Session,
    account: CrossPostAccount,
    now: datetime | None = None,
    cooldown_seconds: int | None = None,
) -> bool:
    """Record a successful post, re-checking the cooldown at write time.

    Returns False when another post was recorded inside the cooldown since
    the caller last looked, in which case nothing is written.
    """
    now = now or utcnow()
    cutoff = now - _cooldown(cooldown_seconds)
    result = db.execute(
        update(CrossPostAccount)
        .where(
            CrossPostAccount.id == account.id,
            or_(CrossPostAccount.last_post_at.is_(None), CrossPostAccount.last_post_at < cutoff),
        )
        .values(last_post_at=now, post_count=CrossPostAccount.post_count + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return bool(result.rowcount)


def get_account(db: Session, user_id: int, *, active_only: bool = True) -> CrossPostAccount | None:
    stmt = select(CrossPostAccount).where(CrossPostAccount.user_id == user_id)
    if active_only:
        stmt = stmt.where(CrossPostAccount.is_active.is_(True))
    return db.scalar(stmt)


def link_account(
    db: Session,
    user_id: int,
    grant: AccessGrant,
    profile: ExternalProfile,
) -> CrossPostAccount:
    """Link an external account, replacing the user's previous link.

    Raises:
        AlreadyExistsError: If the external account belongs to another user;
            nothing is changed in that case.
    """
    external_id = profile.account_id or grant.account_id
    owner = db.scalar(
        select(CrossPostAccount.user_id).where(CrossPostAccount.external_account_id == external_id)
    )
    if owner is not None and owner != user_id:
        raise AlreadyExistsError("This external account is already connected to another user")

    db.execute(
        delete(CrossPostAccount)
        .where(CrossPostAccount.user_id == user_id)
        .execution_options(synchronize_session="fetch")
    )
    account = CrossPostAccount(
        user_id=user_id,
        external_account_id=external_id,
        username=profile.name,
        handle=profile.handle or grant.screen_name,
        access_token=grant.access_token,
        access_secret=grant.access_secret,
        profile_image_url=profile.profile_image_url,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise AlreadyExistsError(
            "This external account is already connected to another user"
        ) from err
    db.refresh(account)
    logger.info("User %s linked external account %s", user_id, external_id)
    return account


def disconnect(db: Session, user_id: int) -> bool:
    """Remove the user's link; returns False when none existed."""
    result = db.execute(
        delete(CrossPostAccount)
        .where(CrossPostAccount.user_id == user_id)
        .execution_options(synchronize_session="fetch")
    )
    db.commit()
    if result.rowcount:
        logger.info("User %s disconnected their external account", user_id)
    return bool(result.rowcount)


def connection_status(db: Session, user_id: int) -> dict[str, Any]:
    account = get_account(db, user_id)
    if account is None:
        return {"connected": False}
    return {
        "connected": True,
        "username": account.username,
        "handle": account.handle,
        "profile_image_url": account.profile_image_url,
        "connected_at": account.connected_at,
        "last_post_at": account.last_post_at,
        "post_count": account.post_count,
        "can_post_now": can_cross_post(account),
    }


async def start_connect(
    gateway: CrossPostGateway,
    store: SessionStore,
    session_id: str,
    user_id: int,
    callback_url: str | None = None,
) -> str:
    """Begin the OAuth dance and return the URL the user must visit."""
    if not gateway.configured:
        raise ExternalServiceError(
            "Cross-posting is not configured on this server", status_code=503
        )
    request_token = await gateway.request_token(callback_url or settings.crosspost_callback_url)

    data = store.get(session_id) or {}
    data[OAUTH_STATE_KEY] = {
        "token": request_token.token,
        "secret": request_token.secret,
        "user_id": user_id,
    }
    store.set(session_id, data)
    return request_token.authorize_url


async def complete_connect(
    db: Session,
    gateway: CrossPostGateway,
    store: SessionStore,
    session_id: str,
    user_id: int,
    *,
    oauth_token: str | None,
    oauth_verifier: str | None,
) -> CrossPostAccount:
    """Finish the OAuth dance started by :func:`start_connect`."""
    data = store.get(session_id) or {}
    state = data.get(OAUTH_STATE_KEY)
    if not oauth_token or not oauth_verifier or not state or not state.get("secret"):
        raise InvalidInputError("Invalid OAuth callback parameters")
    if state.get("token") != oauth_token:
        raise InvalidInputError("OAuth token mismatch")
    if int(state.get("user_id", -1)) != user_id:
        raise ForbiddenError("OAuth flow was started by another user")

    grant = await gateway.exchange_token(oauth_token, state["secret"], oauth_verifier)
    profile = await gateway.get_profile(grant.access_token, grant.access_secret)
    account = link_account(db, user_id, grant, profile)

    data.pop(OAUTH_STATE_KEY, None)
    store.set(session_id, data)
    return account


def _media_payload(storage: MediaStorage, post: Post) -> MediaPayload | None:
    data = storage.open(post.media_ref)
    if data is None:
        logger.warning("Media for post %s is unreadable; sharing text only", post.id)
        return None
    filename = post.media_ref.rsplit("/", 1)[-1]
    extension = "." + filename.rsplit(".", 1)[-1].lower()
    content_type = next(
        (mime for mime, ext in ALLOWED_MEDIA_TYPES.items() if ext == extension),
        "application/octet-stream",
    )
    return MediaPayload(data=data, content_type=content_type, filename=filename)


async def share_post(
    db: Session,
    gateway: CrossPostGateway,
    storage: MediaStorage,
    user_id: int,
    post_id: int,
    caption: str | None = None,
) -> ExternalPost:
    """Publish one of the caller's posts to their linked account.

    Raises:
        InvalidInputError: If no active account is linked.
        RateLimitedError: If the cooldown has not elapsed, including when a
            concurrent share was recorded while this one was in flight.
        NotFoundError: Unless the post exists and belongs to the caller.
        ExternalServiceError: If the gateway call fails.
    """
    account = get_account(db, user_id)
    if account is None:
        raise InvalidInputError("No external account connected")
    if not can_cross_post(account):
        raise RateLimitedError("Please wait before sharing another post")

    post = db.get(Post, post_id)
    if post is None or post.user_id != user_id:
        raise NotFoundError("Post not found")

    text = truncate_for_share(post.caption if caption is None else caption, SHARE_TEXT_LIMIT)
    media = _media_payload(storage, post)
    access_token, access_secret = account.access_token, account.access_secret
    # Do not hold the transaction open across the network call.
    db.commit()

    result = await gateway.post_media(access_token, access_secret, text, media)

    if not record_cross_post(db, account):
        logger.warning(
            "External post %s by user %s landed inside the cooldown of a concurrent share",
            result.post_id,
            user_id,
        )
        raise RateLimitedError("Another share completed moments ago; please wait before sharing")
    logger.info("User %s shared post %s as external post %s", user_id, post_id, result.post_id)
    return result
