"""Account, session and profile helpers for users."""
from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from snapfeed.core import security
from snapfeed.core.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InvalidInputError,
    UnauthenticatedError,
)
from snapfeed.db.time import as_utc, utcnow
from snapfeed.models import Follow, Post, User
from snapfeed.models.user import (
    BIO_MAX_LENGTH,
    COUNTRY_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from snapfeed.services.sessions import SessionStore, UserSnapshotCache, new_session_id

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)

__all__ = [
    "get_user",
    "get_users",
    "register_user",
    "login",
    "logout",
    "user_snapshot",
    "load_snapshot",
    "update_profile",
    "insights",
]

logger = logging.getLogger(__name__)

INSIGHTS_WINDOW_DAYS = 30


@dataclass(frozen=True)
class LoginResult:
    user: User
    session_id: str
    access_token: str


def get_user(db: Session, user_id: int) -> User | None:
    """Return a single user by primary key."""
    return db.get(User, user_id)


def get_users(db: Session, skip: int = 0, limit: int = 100) -> Sequence[User]:
    """Return users ordered by username with simple offset-based pagination."""
    return db.scalars(select(User).order_by(User.username).offset(skip).limit(limit)).all()


def _validate_username(username: str) -> str:
    username = (username or "").strip()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise InvalidInputError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )
    return username


def _validate_password(password: str) -> None:
    if len(password or "") < PASSWORD_MIN_LENGTH:
        raise InvalidInputError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")


def register_user(
    db: Session,
    *,
    username: str,
    email: str,
    password: str,
    country: str | None = None,
    signature: str | None = None,
) -> User:
    """Create an account; usernames and emails are unique."""
    username = _validate_username(username)
    try:
        email = _email_adapter.validate_python((email or "").strip()).lower()
    except ValidationError as err:
        raise InvalidInputError("A valid email is required") from err
    _validate_password(password)
    if country and len(country) > COUNTRY_MAX_LENGTH:
        raise InvalidInputError(f"Country exceeds {COUNTRY_MAX_LENGTH} characters")

    clash = db.scalar(select(User).where(or_(User.username == username, User.email == email)))
    if clash is not None:
        raise AlreadyExistsError("Username or email already exists")

    user = User(username=username, email=email, country=country or "", signature=signature)
    user.set_password(password)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise AlreadyExistsError("Username or email already exists") from err
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.username)
    return user


def user_snapshot(user: User) -> dict[str, Any]:
    """Return the cacheable view of a user kept in the session."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "is_verified": user.is_verified,
    }


def load_snapshot(db: Session, user_id: int) -> dict[str, Any] | None:
    user = get_user(db, user_id)
    return user_snapshot(user) if user is not None else None


def login(db: Session, store: SessionStore, *, username: str, password: str) -> LoginResult:
    """Check credentials and open a server-side session."""
    user = db.scalar(select(User).where(User.username == (username or "").strip()))
    if user is None or not user.check_password(password or ""):
        raise UnauthenticatedError("Invalid username or password")

    session_id = new_session_id()
    store.set(session_id, {"user_id": user.id, "created_at": utcnow().isoformat()})
    token = security.create_access_token(user.id, session_id)
    logger.info("User %s logged in", user.id)
    return LoginResult(user=user, session_id=session_id, access_token=token)


def logout(store: SessionStore, session_id: str) -> None:
    """Destroy the session; every token bound to it stops working."""
    store.destroy(session_id)


def update_profile(
    db: Session,
    user_id: int,
    cache: UserSnapshotCache,
    session_id: str,
    *,
    bio: str | None = None,
    country: str | None = None,
    group_tags: list[str] | None = None,
    password: str | None = None,
) -> User:
    """Apply the provided profile fields and refresh the cached snapshot."""
    user = get_user(db, user_id)
    if user is None:
        raise UnauthenticatedError("User not found")
    if bio is not None:
        if len(bio) > BIO_MAX_LENGTH:
            raise InvalidInputError(f"Bio exceeds {BIO_MAX_LENGTH} characters")
        user.bio = bio
    if country is not None:
        if len(country) > COUNTRY_MAX_LENGTH:
            raise InvalidInputError(f"Country exceeds {COUNTRY_MAX_LENGTH} characters")
        user.country = country
    if group_tags is not None:
        user.group_tags = [tag.strip() for tag in group_tags if tag.strip()]
    if password is not None:
        _validate_password(password)
        user.set_password(password)

    db.commit()
    db.refresh(user)
    cache.invalidate(session_id)
    return user


def _daily_counts(stamps: list[Any], start: date, days: int) -> list[dict[str, Any]]:
    counts = Counter(as_utc(stamp).date() for stamp in stamps)
    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        series.append({"date": day.isoformat(), "count": counts.get(day, 0)})
    return series


def insights(db: Session, owner_id: int, viewer_id: int) -> dict[str, Any]:
    """Daily post and new-follower counts over the last 30 days; owner only."""
    if owner_id != viewer_id:
        raise ForbiddenError("Insights are only available for your own profile")

    now = utcnow()
    start = (now - timedelta(days=INSIGHTS_WINDOW_DAYS - 1)).date()
    cutoff = datetime.combine(start, time.min, tzinfo=UTC)
    post_stamps = list(
        db.scalars(select(Post.created_at).where(Post.user_id == owner_id, Post.created_at >= cutoff))
    )
    follow_stamps = list(
        db.scalars(
            select(Follow.followed_at).where(Follow.followed_id == owner_id, Follow.followed_at >= cutoff)
        )
    )
    return {
        "posts_per_day": _daily_counts(post_stamps, start, INSIGHTS_WINDOW_DAYS),
        "followers_per_day": _daily_counts(follow_stamps, start, INSIGHTS_WINDOW_DAYS),
        "total_posts": len(post_stamps),
        "total_new_followers": len(follow_stamps),
    }
