# src/snapfeed/api/v1/endpoints/users.py
"""User profile and follow endpoints for the Snapfeed API."""

from __future__ import annotations

from fastapi import APIRouter, Query

from snapfeed.api.v1.dependencies import AuthDep, SessionDep, UserCacheDep
from snapfeed.core.errors import UnauthenticatedError
from snapfeed.db.time import as_utc
from snapfeed.models import Follow
from snapfeed.schemas.post import PostResponse
from snapfeed.schemas.profile import ProfileResponse
from snapfeed.schemas.user import (
    FollowEdgeResponse,
    FollowResponse,
    InsightsResponse,
    ProfileSelfResponse,
    ProfileUpdateRequest,
    UserSummary,
)
from snapfeed.services import post_service, social_graph, user_service

router = APIRouter(prefix="/users", tags=["users"])
# Short aliases for following, mounted without the /users prefix.
graph_router = APIRouter(tags=["users"])

RECENT_POSTS_LIMIT = 12


def _edges(edges: list[Follow], *, followers: bool) -> list[FollowEdgeResponse]:
    return [
        FollowEdgeResponse(
            user=UserSummary.model_validate(edge.follower if followers else edge.followed),
            followed_at=as_utc(edge.followed_at),
        )
        for edge in edges
    ]


@router.get("", response_model=list[UserSummary])
async def list_users(
    auth: AuthDep,
    db: SessionDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> list[UserSummary]:
    """List users by username, for member pickers."""
    return [UserSummary.model_validate(user) for user in user_service.get_users(db, skip, limit)]


@router.get("/me/profile", response_model=ProfileSelfResponse)
async def get_own_profile(auth: AuthDep, db: SessionDep) -> ProfileSelfResponse:
    """Return the caller's editable profile fields."""
    user = user_service.get_user(db, auth.acting_user_id)
    if user is None:
        raise UnauthenticatedError("User not found")
    return ProfileSelfResponse.model_validate(user)


@router.patch("/me/profile", response_model=ProfileSelfResponse)
async def update_own_profile(
    payload: ProfileUpdateRequest,
    auth: AuthDep,
    db: SessionDep,
    cache: UserCacheDep,
) -> ProfileSelfResponse:
    """Update bio, country, group tags or password.

    Args:
        payload: Fields to change; omitted fields are left untouched
        auth: Caller identity
        db: Database session
        cache: Snapshot cache, invalidated for the caller's session

    Returns:
        The updated profile
    """
    user = user_service.update_profile(
        db,
        auth.acting_user_id,
        cache,
        auth.session_id,
        bio=payload.bio,
        country=payload.country,
        group_tags=payload.group_tags,
        password=payload.password,
    )
    return ProfileSelfResponse.model_validate(user)


@router.get("/{username}", response_model=ProfileResponse)
async def get_profile(username: str, auth: AuthDep, db: SessionDep) -> ProfileResponse:
    """Return a user's profile with counts and their latest posts."""
    user = social_graph.get_user_by_username(db, username)
    posts = post_service.user_posts(db, user.id, auth.acting_user_id)
    return ProfileResponse(
        id=user.id,
        username=user.username,
        bio=user.bio,
        country=user.country,
        is_verified=user.is_verified,
        group_tags=list(user.group_tags or []),
        created_at=as_utc(user.created_at),
        follower_count=social_graph.follower_count(db, user.id),
        following_count=social_graph.following_count(db, user.id),
        posts_count=post_service.count_user_posts(db, user.id),
        is_following=social_graph.is_following(db, auth.acting_user_id, user.id),
        is_own_profile=user.id == auth.acting_user_id,
        recent_posts=post_service.to_post_list(db, posts[:RECENT_POSTS_LIMIT], auth.acting_user_id),
    )


@router.post("/{username}/follow", response_model=FollowResponse)
async def follow(username: str, auth: AuthDep, db: SessionDep) -> FollowResponse:
    """Follow a user."""
    count = social_graph.follow_user(db, auth.acting_user_id, username)
    return FollowResponse(is_following=True, follower_count=count)


@router.post("/{username}/unfollow", response_model=FollowResponse)
async def unfollow(username: str, auth: AuthDep, db: SessionDep) -> FollowResponse:
    """Stop following a user."""
    count = social_graph.unfollow_user(db, auth.acting_user_id, username)
    return FollowResponse(is_following=False, follower_count=count)


@router.get("/{username}/followers", response_model=list[FollowEdgeResponse])
async def followers(username: str, auth: AuthDep, db: SessionDep) -> list[FollowEdgeResponse]:
    """List the user's followers, oldest first."""
    user = social_graph.get_user_by_username(db, username)
    return _edges(social_graph.list_followers(db, user.id), followers=True)


@router.get("/{username}/following", response_model=list[FollowEdgeResponse])
async def following(username: str, auth: AuthDep, db: SessionDep) -> list[FollowEdgeResponse]:
    """List users this user follows, oldest first."""
    user = social_graph.get_user_by_username(db, username)
    return _edges(social_graph.list_following(db, user.id), followers=False)


@router.get("/{username}/insights", response_model=InsightsResponse)
async def insights(username: str, auth: AuthDep, db: SessionDep) -> InsightsResponse:
    """Daily activity for the caller's own profile."""
    user = social_graph.get_user_by_username(db, username)
    return InsightsResponse(**user_service.insights(db, user.id, auth.acting_user_id))


@router.get("/{username}/posts", response_model=list[PostResponse])
async def user_posts(username: str, auth: AuthDep, db: SessionDep) -> list[PostResponse]:
    """List the user's posts visible to the caller, newest first."""
    user = social_graph.get_user_by_username(db, username)
    posts = post_service.user_posts(db, user.id, auth.acting_user_id)
    return post_service.to_post_list(db, posts, auth.acting_user_id)


graph_router.add_api_route("/follow/{username}", follow, methods=["POST"], response_model=FollowResponse)
graph_router.add_api_route(
    "/unfollow/{username}", unfollow, methods=["POST"], response_model=FollowResponse
)
