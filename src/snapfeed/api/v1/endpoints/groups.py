# src/snapfeed/api/v1/endpoints/groups.py
"""Group endpoints for the Snapfeed API."""

from fastapi import APIRouter, status

from snapfeed.api.v1.dependencies import AuthDep, MediaStorageDep, SessionDep
from snapfeed.models import Group
from snapfeed.schemas.group import (
    GroupCreate,
    GroupDeletedResponse,
    GroupDetailResponse,
    GroupResponse,
    GroupUpdate,
    MemberAction,
)
from snapfeed.schemas.post import PostResponse
from snapfeed.services import group_service, post_service
from snapfeed.services.group_service import GroupRole

router = APIRouter(prefix="/groups", tags=["groups"])


def _detail(group: Group, role: GroupRole) -> GroupDetailResponse:
    base = GroupResponse.model_validate(group)
    return GroupDetailResponse(
        **base.model_dump(),
        is_current_user_admin=role.can_administer,
        is_current_user_creator=role is GroupRole.CREATOR,
    )


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(payload: GroupCreate, auth: AuthDep, db: SessionDep) -> GroupResponse:
    """Create a group with the caller as creator and admin.

    Args:
        payload: Name, description, visibility and initial member ids
        auth: Caller identity
        db: Database session

    Returns:
        The created group

    Raises:
        InvalidInputError: If the name is empty or a member id is unknown
    """
    group = group_service.create_group(
        db,
        auth.acting_user_id,
        name=payload.name,
        description=payload.description,
        is_public=payload.is_public,
        member_ids=payload.members,
    )
    return GroupResponse.model_validate(group)


@router.get("", response_model=list[GroupResponse])
async def my_groups(auth: AuthDep, db: SessionDep) -> list[GroupResponse]:
    """List groups the caller belongs to."""
    return [
        GroupResponse.model_validate(group)
        for group in group_service.user_groups(db, auth.acting_user_id)
    ]


@router.get("/public", response_model=list[GroupResponse])
async def public_groups(auth: AuthDep, db: SessionDep) -> list[GroupResponse]:
    """List the newest public groups."""
    return [GroupResponse.model_validate(group) for group in group_service.public_groups(db)]


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def group_details(group_id: int, auth: AuthDep, db: SessionDep) -> GroupDetailResponse:
    """Return a group with the caller's role flags; members only."""
    group, role = group_service.group_details(db, group_id, auth.acting_user_id)
    return _detail(group, role)


@router.patch("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: int,
    payload: GroupUpdate,
    auth: AuthDep,
    db: SessionDep,
) -> GroupResponse:
    """Change group settings; admins only."""
    group = group_service.update_group(
        db,
        group_id,
        auth.acting_user_id,
        name=payload.name,
        description=payload.description,
        is_public=payload.is_public,
    )
    return GroupResponse.model_validate(group)


@router.delete("/{group_id}", response_model=GroupDeletedResponse)
async def delete_group(
    group_id: int,
    auth: AuthDep,
    db: SessionDep,
    storage: MediaStorageDep,
) -> GroupDeletedResponse:
    """Delete the group and all of its posts; creator only."""
    deleted = group_service.delete_group(db, group_id, auth.acting_user_id, storage)
    return GroupDeletedResponse(deleted_posts=deleted)


@router.post("/{group_id}/join", response_model=GroupResponse)
async def join_group(group_id: int, auth: AuthDep, db: SessionDep) -> GroupResponse:
    """Join the group; joining twice is harmless."""
    return GroupResponse.model_validate(group_service.join_group(db, group_id, auth.acting_user_id))


@router.post("/{group_id}/leave", response_model=GroupResponse)
async def leave_group(group_id: int, auth: AuthDep, db: SessionDep) -> GroupResponse:
    """Leave the group; the creator cannot leave."""
    return GroupResponse.model_validate(group_service.leave_group(db, group_id, auth.acting_user_id))


@router.get("/{group_id}/posts", response_model=list[PostResponse])
async def group_posts(group_id: int, auth: AuthDep, db: SessionDep) -> list[PostResponse]:
    """List the group's posts, newest first; members only."""
    posts = group_service.group_posts(db, group_id, auth.acting_user_id)
    return post_service.to_post_list(db, posts, auth.acting_user_id)


@router.post("/{group_id}/admin/add", response_model=GroupResponse)
async def add_admin(
    group_id: int,
    payload: MemberAction,
    auth: AuthDep,
    db: SessionDep,
) -> GroupResponse:
    """Promote a member to admin."""
    group = group_service.promote_admin(db, group_id, auth.acting_user_id, payload.user_id)
    return GroupResponse.model_validate(group)


@router.post("/{group_id}/admin/remove", response_model=GroupResponse)
async def remove_admin(
    group_id: int,
    payload: MemberAction,
    auth: AuthDep,
    db: SessionDep,
) -> GroupResponse:
    """Demote an admin back to member."""
    group = group_service.demote_admin(db, group_id, auth.acting_user_id, payload.user_id)
    return GroupResponse.model_validate(group)


@router.post("/{group_id}/member/remove", response_model=GroupResponse)
async def remove_member(
    group_id: int,
    payload: MemberAction,
    auth: AuthDep,
    db: SessionDep,
) -> GroupResponse:
    """Remove a member from the group."""
    group = group_service.remove_member(db, group_id, auth.acting_user_id, payload.user_id)
    return GroupResponse.model_validate(group)
