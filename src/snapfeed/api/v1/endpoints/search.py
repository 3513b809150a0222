# src/snapfeed/api/v1/endpoints/search.py
"""Search endpoints for the Snapfeed API."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Query

from snapfeed.api.v1.dependencies import AuthDep, SessionDep
from snapfeed.schemas.common import Page
from snapfeed.schemas.group import GroupResponse
from snapfeed.schemas.place import PlaceResponse
from snapfeed.schemas.post import PostResponse
from snapfeed.schemas.user import UserSummary
from snapfeed.services import post_service, search
from snapfeed.services.search import MAX_PAGE_SIZE, Pagination

router = APIRouter(prefix="/search", tags=["search"])

PageParam = Annotated[int, Query(ge=1, description="1-based page number")]
LimitParam = Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE, description="Results per page")]


def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@router.get("/users", response_model=Page[UserSummary])
async def search_users(
    auth: AuthDep,
    db: SessionDep,
    q: str | None = Query(None, description="Substring of username or email"),
    page: PageParam = 1,
    limit: LimitParam = 20,
) -> Page[UserSummary]:
    """Search users, sorted by username."""
    result = search.search_users(db, q, Pagination(page, limit))
    return Page[UserSummary](
        items=[UserSummary.model_validate(user) for user in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )


@router.get("/posts", response_model=Page[PostResponse])
async def search_posts(
    auth: AuthDep,
    db: SessionDep,
    q: str | None = Query(None, description="Substring of the caption"),
    username: str | None = Query(None, description="Substring of the author's username"),
    tags: list[str] | None = Query(None, description="Hashtags that must all be present"),
    created_after: datetime | None = Query(None),
    created_before: datetime | None = Query(None),
    group_id: int | None = Query(None),
    page: PageParam = 1,
    limit: LimitParam = 20,
) -> Page[PostResponse]:
    """Search posts visible to the caller, newest first.

    Args:
        auth: Caller identity
        db: Database session
        q: Caption substring
        username: Author username substring
        tags: Hashtags, with or without the leading `#`
        created_after: Inclusive lower bound on creation time
        created_before: Inclusive upper bound on creation time
        group_id: Restrict to one group
        page: Page number
        limit: Page size

    Returns:
        One page of matching posts
    """
    result = search.search_posts(
        db,
        auth.acting_user_id,
        Pagination(page, limit),
        query=q,
        username=username,
        tags=tags,
        created_after=_to_utc(created_after),
        created_before=_to_utc(created_before),
        group_id=group_id,
    )
    return Page[PostResponse](
        items=post_service.to_post_list(db, result.items, auth.acting_user_id),
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )


@router.get("/groups", response_model=Page[GroupResponse])
async def search_groups(
    auth: AuthDep,
    db: SessionDep,
    q: str | None = Query(None, description="Substring of name or description"),
    page: PageParam = 1,
    limit: LimitParam = 20,
) -> Page[GroupResponse]:
    """Search public groups, newest first."""
    result = search.search_groups(db, q, Pagination(page, limit))
    return Page[GroupResponse](
        items=[GroupResponse.model_validate(group) for group in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )


@router.get("/places", response_model=Page[PlaceResponse])
async def search_places(
    auth: AuthDep,
    db: SessionDep,
    q: str | None = Query(None, description="Substring of name or address, at least 2 characters"),
    page: PageParam = 1,
    limit: LimitParam = 20,
) -> Page[PlaceResponse]:
    """Search places, most-posted first."""
    result = search.search_places(db, q, Pagination(page, limit))
    return Page[PlaceResponse](
        items=[PlaceResponse.model_validate(place) for place in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )
