"""Service-level helpers for creating, reading and deleting posts."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from snapfeed.core.errors import ForbiddenError, InternalError, InvalidInputError, NotFoundError
from snapfeed.db.time import as_utc
from snapfeed.models import Follow, GroupMembership, Place, Post, PostHashtag, PostLike
from snapfeed.models.post import CAPTION_MAX_LENGTH
from snapfeed.repositories.place_repo import PlaceData, PlaceRepository
from snapfeed.schemas.place import PlaceSummary
from snapfeed.schemas.post import GroupRef, PostResponse
from snapfeed.schemas.user import UserSummary
from snapfeed.services import group_service
from snapfeed.services.media import MediaStorage, validate_media
from snapfeed.utils.text import extract_hashtags, extract_mentions

logger = logging.getLogger(__name__)

EXPLORE_FEED_LIMIT = 20
HOME_FEED_DEFAULT_LIMIT = 20
PLACE_FEED_LIMIT = 50


@dataclass(frozen=True)
class MediaUpload:
    """Raw upload handed over by the API layer."""

    data: bytes
    content_type: str | None


def build_place_data(
    place_id: str | None,
    name: str | None,
    formatted_address: str | None = None,
    lat: float | str | None = None,
    lng: float | str | None = None,
    types: list[str] | None = None,
) -> PlaceData | None:
    """Validate submitted place fields.

    Returns None when no place was submitted at all.

    Raises:
        InvalidInputError: If a place was submitted but is incomplete or
            its coordinates are missing or out of range.
    """
    if not place_id and not name:
        return None
    if not place_id or not name or not name.strip():
        raise InvalidInputError("Place requires both an id and a name")
    if lat is None or lng is None or lat == "" or lng == "":
        raise InvalidInputError("Place coordinates are required")
    try:
        lat_value = float(lat)
        lng_value = float(lng)
    except (TypeError, ValueError) as err:
        raise InvalidInputError("Place coordinates must be numbers") from err
    if not (-90.0 <= lat_value <= 90.0) or not (-180.0 <= lng_value <= 180.0):
        raise InvalidInputError("Place coordinates are out of range")
    return PlaceData(
        place_id=place_id,
        name=name,
        formatted_address=formatted_address or "",
        lat=lat_value,
        lng=lng_value,
        types=list(types or []),
    )


def get_post_or_404(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def ensure_post_visible(db: Session, post: Post, user_id: int) -> None:
    """Group posts are visible to the group's members only."""
    if post.group_id is not None and not group_service.is_member(db, post.group_id, user_id):
        raise ForbiddenError("Not a member of this group")


def visible_to(user_id: int) -> ColumnElement[bool]:
    """SQL predicate selecting posts `user_id` may see."""
    return or_(
        Post.group_id.is_(None),
        Post.group_id.in_(
            select(GroupMembership.group_id).where(GroupMembership.user_id == user_id)
        ),
    )


def resolve_place(post: Post) -> Place | None:
    """Return the post's place, logging posts that point at a missing one."""
    if post.place_id is None:
        return None
    place = post.place
    if place is None:
        logger.warning("Post %s references missing place %s", post.id, post.place_id)
    return place


def create_post(
    db: Session,
    author_id: int,
    *,
    caption: str | None,
    media: MediaUpload,
    storage: MediaStorage,
    group_id: int | None = None,
    place: PlaceData | None = None,
) -> Post:
    """Validate and persist a new post.

    The media is stored first; if any later step fails the stored media is
    released so no orphaned file is left behind.

    Raises:
        InvalidInputError: For a missing/oversized/disallowed upload or an
            overlong caption.
        NotFoundError: If `group_id` names no group.
        ForbiddenError: If the author is not a member of the group.
        InternalError: If the post could not be persisted.
    """
    caption = caption or ""
    if len(caption) > CAPTION_MAX_LENGTH:
        raise InvalidInputError(f"Caption exceeds {CAPTION_MAX_LENGTH} characters")
    media_type = validate_media(media.data, media.content_type)

    if group_id is not None:
        group = group_service.get_group_or_404(db, group_id)
        if not group_service.is_member(db, group.id, author_id):
            raise ForbiddenError("Not a member of this group")

    media_ref = storage.store(media.data, media.content_type or "")
    try:
        place_pk: int | None = None
        if place is not None:
            places = PlaceRepository(db)
            place_pk = places.find_or_create(place).id
            places.increment_posts(place_pk)

        post = Post(
            user_id=author_id,
            caption=caption,
            media_ref=media_ref,
            media_type=media_type,
            group_id=group_id,
            place_id=place_pk,
            mentions=extract_mentions(caption),
        )
        post.hashtag_rows = [
            PostHashtag(tag=tag, position=position)
            for position, tag in enumerate(extract_hashtags(caption))
        ]
        db.add(post)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to persist post by user %s; releasing media %s", author_id, media_ref)
        storage.delete(media_ref)
        raise InternalError("Failed to create post") from exc

    db.refresh(post)
    logger.info("User %s created post %s", author_id, post.id)
    return post


def delete_post(db: Session, user_id: int, post_id: int, storage: MediaStorage) -> None:
    """Delete a post owned by the caller, releasing media and place count.

    Media is released before the row is removed; a storage failure leaves
    the post in place and surfaces as InternalError.
    """
    post = get_post_or_404(db, post_id)
    if post.user_id != user_id:
        raise ForbiddenError("Not authorized to delete this post")

    storage.delete(post.media_ref)
    if post.place_id is not None:
        PlaceRepository(db).decrement_posts(post.place_id)
    db.delete(post)
    db.commit()
    logger.info("User %s deleted post %s", user_id, post_id)


def get_post(db: Session, post_id: int, viewer_id: int) -> Post:
    post = get_post_or_404(db, post_id)
    ensure_post_visible(db, post, viewer_id)
    return post


def user_posts(db: Session, owner_id: int, viewer_id: int) -> list[Post]:
    """Return the owner's posts the viewer may see, newest first."""
    return list(
        db.scalars(
            select(Post)
            .where(Post.user_id == owner_id, visible_to(viewer_id))
            .order_by(Post.created_at.desc(), Post.id.desc())
        )
    )


def count_user_posts(db: Session, owner_id: int) -> int:
    return db.scalar(select(func.count()).select_from(Post).where(Post.user_id == owner_id)) or 0


def explore_feed(db: Session, viewer_id: int, limit: int = EXPLORE_FEED_LIMIT) -> list[Post]:
    """Return the newest posts visible to the viewer."""
    return list(
        db.scalars(
            select(Post)
            .where(visible_to(viewer_id))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
        )
    )


def home_feed(
    db: Session,
    viewer_id: int,
    *,
    page: int = 1,
    limit: int = HOME_FEED_DEFAULT_LIMIT,
) -> tuple[list[Post], int]:
    """Posts by the viewer, by users they follow, and in their groups.

    Returns:
        ``(posts, total)`` for the requested page.
    """
    followed = select(Follow.followed_id).where(Follow.follower_id == viewer_id)
    my_groups = select(GroupMembership.group_id).where(GroupMembership.user_id == viewer_id)
    criteria = (
        or_(
            Post.user_id == viewer_id,
            Post.user_id.in_(followed),
            Post.group_id.in_(my_groups),
        ),
        visible_to(viewer_id),
    )
    total = db.scalar(select(func.count()).select_from(Post).where(*criteria)) or 0
    posts = list(
        db.scalars(
            select(Post)
            .where(*criteria)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
    )
    return posts, total


def place_posts(db: Session, place_pk: int, viewer_id: int, limit: int = PLACE_FEED_LIMIT) -> list[Post]:
    """Return visible posts tagged with the place, newest first."""
    return list(
        db.scalars(
            select(Post)
            .where(Post.place_id == place_pk, visible_to(viewer_id))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
        )
    )


def liked_post_ids(db: Session, viewer_id: int, post_ids: list[int]) -> set[int]:
    """Return which of `post_ids` the viewer has liked, in one query."""
    if not post_ids:
        return set()
    return set(
        db.scalars(
            select(PostLike.post_id).where(PostLike.user_id == viewer_id, PostLike.post_id.in_(post_ids))
        )
    )


def to_post_out(post: Post, *, liked_by_me: bool = False) -> PostResponse:
    """Convert a Post ORM instance to an API schema."""
    place = resolve_place(post)
    return PostResponse(
        id=post.id,
        author=UserSummary.model_validate(post.author),
        caption=post.caption,
        media_ref=post.media_ref,
        media_type=post.media_type,
        group=GroupRef.model_validate(post.group) if post.group is not None else None,
        place=PlaceSummary.model_validate(place) if place is not None else None,
        hashtags=post.hashtags,
        mentions=list(post.mentions or []),
        likes_count=post.likes_count,
        comments_count=post.comments_count,
        liked_by_me=liked_by_me,
        created_at=as_utc(post.created_at),
    )


def to_post_list(db: Session, posts: list[Post], viewer_id: int) -> list[PostResponse]:
    liked = liked_post_ids(db, viewer_id, [post.id for post in posts])
    return [to_post_out(post, liked_by_me=post.id in liked) for post in posts]
