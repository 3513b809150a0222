# src/snapfeed/api/v1/endpoints/places.py
"""Place page endpoints for the Snapfeed API."""

from fastapi import APIRouter, Query
from sqlalchemy.orm import Session

from snapfeed.api.v1.dependencies import AuthDep, SessionDep
from snapfeed.core.errors import NotFoundError
from snapfeed.models import Place
from snapfeed.repositories.place_repo import PlaceRepository
from snapfeed.schemas.place import PlaceResponse
from snapfeed.schemas.post import PostResponse
from snapfeed.services import post_service

router = APIRouter(prefix="/places", tags=["places"])


def _get_place(db: Session, key: str) -> Place:
    place = PlaceRepository(db).get_by_key(key)
    if place is None:
        raise NotFoundError("Place not found")
    return place


@router.get("/{key}", response_model=PlaceResponse)
async def get_place(key: str, auth: AuthDep, db: SessionDep) -> PlaceResponse:
    """Look a place up by external id, slug or numeric id."""
    return PlaceResponse.model_validate(_get_place(db, key))


@router.get("/{key}/posts", response_model=list[PostResponse])
async def place_posts(
    key: str,
    auth: AuthDep,
    db: SessionDep,
    limit: int = Query(post_service.PLACE_FEED_LIMIT, ge=1, le=100),
) -> list[PostResponse]:
    """List visible posts tagged with the place, newest first."""
    place = _get_place(db, key)
    posts = post_service.place_posts(db, place.id, auth.acting_user_id, limit)
    return post_service.to_post_list(db, posts, auth.acting_user_id)
