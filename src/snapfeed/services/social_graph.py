"""Follow edges between users."""
from __future__ import annotations

import logging

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from snapfeed.core.errors import AlreadyExistsError, InvalidOperationError, NotFoundError
from snapfeed.models import Follow, User

__all__ = [
    "get_user_by_username",
    "follower_count",
    "following_count",
    "is_following",
    "follow_user",
    "unfollow_user",
    "list_followers",
    "list_following",
]

logger = logging.getLogger(__name__)


def get_user_by_username(db: Session, username: str) -> User:
    """Return the user with `username` or raise NotFoundError."""
    user = db.scalar(select(User).where(User.username == username.strip()))
    if user is None:
        raise NotFoundError("User not found")
    return user


def follower_count(db: Session, user_id: int) -> int:
    return db.scalar(
        select(func.count()).select_from(Follow).where(Follow.followed_id == user_id)
    ) or 0


def following_count(db: Session, user_id: int) -> int:
    return db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    ) or 0


def is_following(db: Session, follower_id: int, followed_id: int) -> bool:
    return bool(
        db.scalar(
            select(
                exists().where(
                    Follow.follower_id == follower_id,
                    Follow.followed_id == followed_id,
                )
            )
        )
    )


def follow_user(db: Session, acting_user_id: int, target_username: str) -> int:
    """Create the edge acting user -> target and return the target's follower count.

    Raises:
        NotFoundError: If the target does not exist.
        InvalidOperationError: If the caller tries to follow themselves.
        AlreadyExistsError: If the edge already exists.
    """
    target = get_user_by_username(db, target_username)
    if target.id == acting_user_id:
        raise InvalidOperationError("You cannot follow yourself")
    if is_following(db, acting_user_id, target.id):
        raise AlreadyExistsError("Already following this user")

    db.add(Follow(follower_id=acting_user_id, followed_id=target.id))
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise AlreadyExistsError("Already following this user") from err

    logger.info("User %s followed %s", acting_user_id, target.id)
    return follower_count(db, target.id)


def unfollow_user(db: Session, acting_user_id: int, target_username: str) -> int:
    """Remove the edge if present and return the target's follower count."""
    target = get_user_by_username(db, target_username)
    db.execute(
        delete(Follow).where(
            Follow.follower_id == acting_user_id,
            Follow.followed_id == target.id,
        )
    )
    db.commit()
    return follower_count(db, target.id)


def list_followers(db: Session, user_id: int) -> list[Follow]:
    """Return edges pointing at `user_id`, oldest first."""
    return list(
        db.scalars(
            select(Follow).where(Follow.followed_id == user_id).order_by(Follow.followed_at)
        )
    )


def list_following(db: Session, user_id: int) -> list[Follow]:
    """Return edges leaving `user_id`, oldest first."""
    return list(
        db.scalars(
            select(Follow).where(Follow.follower_id == user_id).order_by(Follow.followed_at)
        )
    )
