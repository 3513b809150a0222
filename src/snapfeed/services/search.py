"""Paginated search over users, posts, groups and places."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from snapfeed.core.errors import InvalidInputError
from snapfeed.models import Group, Place, Post, PostHashtag, User
from snapfeed.services.post_service import visible_to
from snapfeed.utils.text import normalize_hashtag

T = TypeVar("T")

MAX_PAGE_SIZE = 100
PLACE_QUERY_MIN_LENGTH = 2


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 20

    def __post_init__(self) -> None:
        if self.page < 1:
            raise InvalidInputError("page must be at least 1")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class SearchPage(Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _paginate(db: Session, stmt: Select[Any], pagination: Pagination) -> SearchPage[Any]:
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    items = list(db.scalars(stmt.offset(pagination.offset).limit(pagination.limit)))
    return SearchPage(items=items, total=total, page=pagination.page, limit=pagination.limit)


def search_users(db: Session, query: str | None, pagination: Pagination) -> SearchPage[User]:
    """Case-insensitive substring match on username or email."""
    stmt = select(User)
    if query and query.strip():
        pattern = _like(query.strip())
        stmt = stmt.where(
            or_(User.username.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\"))
        )
    return _paginate(db, stmt.order_by(User.username.asc()), pagination)


def search_posts(
    db: Session,
    viewer_id: int,
    pagination: Pagination,
    *,
    query: str | None = None,
    username: str | None = None,
    tags: list[str] | None = None,
    created_after: datetime | None = None,
    created_before: datetime | None = None,
    group_id: int | None = None,
) -> SearchPage[Post]:
    """Filter posts the viewer may see; all given tags must be present."""
    stmt = select(Post).where(visible_to(viewer_id))
    if query and query.strip():
        stmt = stmt.where(Post.caption.ilike(_like(query.strip()), escape="\\"))
    if username and username.strip():
        stmt = stmt.join(User, User.id == Post.user_id).where(
            User.username.ilike(_like(username.strip()), escape="\\")
        )
    wanted = list(dict.fromkeys(normalize_hashtag(tag) for tag in tags or [] if tag.strip()))
    if wanted:
        matching = (
            select(PostHashtag.post_id)
            .where(PostHashtag.tag.in_(wanted))
            .group_by(PostHashtag.post_id)
            .having(func.count(PostHashtag.tag) == len(wanted))
        )
        stmt = stmt.where(Post.id.in_(matching))
    if created_after is not None:
        stmt = stmt.where(Post.created_at >= created_after)
    if created_before is not None:
        stmt = stmt.where(Post.created_at <= created_before)
    if group_id is not None:
        stmt = stmt.where(Post.group_id == group_id)
    return _paginate(db, stmt.order_by(Post.created_at.desc(), Post.id.desc()), pagination)


def search_groups(db: Session, query: str | None, pagination: Pagination) -> SearchPage[Group]:
    """Public groups whose name or description contains the query."""
    stmt = select(Group).where(Group.is_public.is_(True))
    if query and query.strip():
        pattern = _like(query.strip())
        stmt = stmt.where(
            or_(Group.name.ilike(pattern, escape="\\"), Group.description.ilike(pattern, escape="\\"))
        )
    return _paginate(db, stmt.order_by(Group.created_at.desc(), Group.id.desc()), pagination)


def search_places(db: Session, query: str | None, pagination: Pagination) -> SearchPage[Place]:
    """Places by name or address; queries under two characters match nothing."""
    term = (query or "").strip()
    if len(term) < PLACE_QUERY_MIN_LENGTH:
        return SearchPage(items=[], total=0, page=pagination.page, limit=pagination.limit)
    pattern = _like(term)
    stmt = select(Place).where(
        or_(Place.name.ilike(pattern, escape="\\"), Place.formatted_address.ilike(pattern, escape="\\"))
    )
    return _paginate(db, stmt.order_by(Place.posts_count.desc(), Place.id.asc()), pagination)
