"""Likes and comments on posts."""
from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from snapfeed.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from snapfeed.models import PostComment, PostLike
from snapfeed.models.post import COMMENT_MAX_LENGTH
from snapfeed.services.post_service import ensure_post_visible, get_post_or_404

logger = logging.getLogger(__name__)


def likes_count(db: Session, post_id: int) -> int:
    return db.scalar(
        select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
    ) or 0


def comments_count(db: Session, post_id: int) -> int:
    return db.scalar(
        select(func.count()).select_from(PostComment).where(PostComment.post_id == post_id)
    ) or 0


def toggle_like(db: Session, user_id: int, post_id: int) -> tuple[bool, int]:
    """Flip the caller's like on a post.

    Returns:
        ``(liked, likes_count)`` after the toggle.
    """
    post = get_post_or_404(db, post_id)
    ensure_post_visible(db, post, user_id)

    result = db.execute(
        delete(PostLike).where(PostLike.post_id == post.id, PostLike.user_id == user_id)
    )
    if result.rowcount:
        db.commit()
        liked = False
    else:
        db.add(PostLike(post_id=post.id, user_id=user_id))
        try:
            db.commit()
        except IntegrityError:
            # The same user liked concurrently; the like is in place either way.
            db.rollback()
        liked = True

    return liked, likes_count(db, post.id)


def add_comment(db: Session, user_id: int, post_id: int, text: str) -> tuple[PostComment, int]:
    """Append a comment and return it with the post's new comment count."""
    text = (text or "").strip()
    if not text:
        raise InvalidInputError("Comment text is required")
    if len(text) > COMMENT_MAX_LENGTH:
        raise InvalidInputError(f"Comment exceeds {COMMENT_MAX_LENGTH} characters")

    post = get_post_or_404(db, post_id)
    ensure_post_visible(db, post, user_id)

    comment = PostComment(post_id=post.id, user_id=user_id, text=text)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment, comments_count(db, post.id)


def delete_comment(db: Session, user_id: int, post_id: int, comment_id: int) -> int:
    """Delete one of the caller's own comments and return the remaining count."""
    get_post_or_404(db, post_id)
    comment = db.get(PostComment, comment_id)
    if comment is None or comment.post_id != post_id:
        raise NotFoundError("Comment not found")
    if comment.user_id != user_id:
        raise ForbiddenError("Not authorized to delete this comment")
    db.delete(comment)
    db.commit()
    return comments_count(db, post_id)


def list_comments(db: Session, user_id: int, post_id: int) -> list[PostComment]:
    """Return a post's comments in insertion order."""
    post = get_post_or_404(db, post_id)
    ensure_post_visible(db, post, user_id)
    return list(
        db.scalars(
            select(PostComment).where(PostComment.post_id == post.id).order_by(PostComment.id)
        )
    )
