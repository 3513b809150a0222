"""Group membership and administration.

Per (group, user) pair the role moves through ``NonMember -> Member ->
Admin``; the creator holds a permanent admin membership that no operation
can strip.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from snapfeed.core.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    InvalidOperationError,
    NotFoundError,
)
from snapfeed.models import Group, GroupMembership, Post, User
from snapfeed.repositories.place_repo import PlaceRepository
from snapfeed.services.media import MediaStorage

logger = logging.getLogger(__name__)

PUBLIC_GROUPS_LIMIT = 20


class GroupRole(str, Enum):
    """Role of a user within one group."""

    NON_MEMBER = "non_member"
    MEMBER = "member"
    ADMIN = "admin"
    CREATOR = "creator"

    @property
    def can_administer(self) -> bool:
        return self in (GroupRole.ADMIN, GroupRole.CREATOR)


def get_group_or_404(db: Session, group_id: int) -> Group:
    group = db.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    return group


def get_membership(db: Session, group_id: int, user_id: int) -> GroupMembership | None:
    return db.get(GroupMembership, (group_id, user_id))


def is_member(db: Session, group_id: int, user_id: int) -> bool:
    return get_membership(db, group_id, user_id) is not None


def role_of(db: Session, group: Group, user_id: int) -> GroupRole:
    """Resolve the caller's role in `group`."""
    if group.created_by == user_id:
        return GroupRole.CREATOR
    membership = get_membership(db, group.id, user_id)
    if membership is None:
        return GroupRole.NON_MEMBER
    return GroupRole.ADMIN if membership.is_admin else GroupRole.MEMBER


def _require_admin(db: Session, group: Group, acting_user_id: int, action: str) -> GroupRole:
    role = role_of(db, group, acting_user_id)
    if not role.can_administer:
        raise ForbiddenError(f"Only admins can {action}")
    return role


def create_group(
    db: Session,
    creator_id: int,
    *,
    name: str,
    description: str | None = None,
    is_public: bool = False,
    member_ids: Sequence[int] = (),
) -> Group:
    """Create a group; the creator becomes its first member and admin."""
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("Name required")

    invited = [uid for uid in dict.fromkeys(member_ids) if uid != creator_id]
    if invited:
        found = set(db.scalars(select(User.id).where(User.id.in_(invited))))
        missing = [uid for uid in invited if uid not in found]
        if missing:
            raise InvalidInputError(f"Unknown member ids: {missing}")

    group = Group(
        name=name,
        description=description,
        is_public=is_public,
        created_by=creator_id,
    )
    group.memberships.append(GroupMembership(user_id=creator_id, is_admin=True))
    for uid in invited:
        group.memberships.append(GroupMembership(user_id=uid, is_admin=False))
    db.add(group)
    db.commit()
    db.refresh(group)
    logger.info("User %s created group %s with %d members", creator_id, group.id, len(invited) + 1)
    return group


def join_group(db: Session, group_id: int, user_id: int) -> Group:
    """Add the caller as a member; repeated joins leave one membership."""
    group = get_group_or_404(db, group_id)
    if is_member(db, group.id, user_id):
        return group
    db.add(GroupMembership(group_id=group.id, user_id=user_id, is_admin=False))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent join inserted the same row first.
        db.rollback()
    db.refresh(group)
    return group


def leave_group(db: Session, group_id: int, user_id: int) -> Group:
    """Remove the caller's membership (and admin status)."""
    group = get_group_or_404(db, group_id)
    if group.created_by == user_id:
        raise ForbiddenError("The group creator cannot leave the group")
    db.execute(
        delete(GroupMembership).where(
            GroupMembership.group_id == group.id,
            GroupMembership.user_id == user_id,
        )
    )
    db.commit()
    db.refresh(group)
    return group


def promote_admin(db: Session, group_id: int, acting_user_id: int, target_user_id: int) -> Group:
    """Grant admin status to an existing member."""
    group = get_group_or_404(db, group_id)
    _require_admin(db, group, acting_user_id, "add other admins")
    membership = get_membership(db, group.id, target_user_id)
    if membership is None:
        raise InvalidOperationError("User must be a member to become admin")
    if membership.is_admin:
        raise AlreadyExistsError("User is already an admin")
    membership.is_admin = True
    db.commit()
    db.refresh(group)
    logger.info("User %s promoted %s in group %s", acting_user_id, target_user_id, group.id)
    return group


def demote_admin(db: Session, group_id: int, acting_user_id: int, target_user_id: int) -> Group:
    """Revoke admin status, keeping the user as a member."""
    group = get_group_or_404(db, group_id)
    _require_admin(db, group, acting_user_id, "remove admins")
    if target_user_id == group.created_by:
        raise ForbiddenError("Group creator cannot be removed as admin")
    membership = get_membership(db, group.id, target_user_id)
    if membership is None or not membership.is_admin:
        raise InvalidOperationError("User is not an admin")
    membership.is_admin = False
    db.commit()
    db.refresh(group)
    logger.info("User %s demoted %s in group %s", acting_user_id, target_user_id, group.id)
    return group


def remove_member(db: Session, group_id: int, acting_user_id: int, target_user_id: int) -> Group:
    """Remove another user from the group entirely."""
    group = get_group_or_404(db, group_id)
    _require_admin(db, group, acting_user_id, "remove members")
    if target_user_id == group.created_by:
        raise ForbiddenError("Cannot remove the group creator")
    db.execute(
        delete(GroupMembership).where(
            GroupMembership.group_id == group.id,
            GroupMembership.user_id == target_user_id,
        )
    )
    db.commit()
    db.refresh(group)
    return group


def update_group(
    db: Session,
    group_id: int,
    acting_user_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
    is_public: bool | None = None,
) -> Group:
    """Apply the provided settings; omitted fields are left untouched."""
    group = get_group_or_404(db, group_id)
    _require_admin(db, group, acting_user_id, "update group settings")
    if name is not None:
        if not name.strip():
            raise InvalidInputError("Name cannot be empty")
        group.name = name.strip()
    if description is not None:
        group.description = description
    if is_public is not None:
        group.is_public = is_public
    db.commit()
    db.refresh(group)
    return group


def delete_group(
    db: Session,
    group_id: int,
    acting_user_id: int,
    media_storage: MediaStorage,
) -> int:
    """Delete the group and every post in it, returning the post count.

    Media for all posts is released before any row is removed; if any
    release fails nothing is deleted from the database and the failure is
    reported.
    """
    group = get_group_or_404(db, group_id)
    if group.created_by != acting_user_id:
        raise ForbiddenError("Only the group creator can delete the group")

    posts = list(db.scalars(select(Post).where(Post.group_id == group.id)))
    failures: list[str] = []
    for post in posts:
        try:
            media_storage.delete(post.media_ref)
        except InternalError:
            logger.error("Failed to release media for post %s", post.id, exc_info=True)
            failures.append(post.media_ref)
    if failures:
        raise InternalError(
            f"Failed to delete media for {len(failures)} of {len(posts)} group posts"
        )

    places = PlaceRepository(db)
    for post in posts:
        if post.place_id is not None:
            places.decrement_posts(post.place_id)
        db.delete(post)
    db.delete(group)
    db.commit()
    logger.info("User %s deleted group %s and %d posts", acting_user_id, group_id, len(posts))
    return len(posts)


def user_groups(db: Session, user_id: int) -> list[Group]:
    return list(
        db.scalars(
            select(Group)
            .join(GroupMembership, GroupMembership.group_id == Group.id)
            .where(GroupMembership.user_id == user_id)
            .order_by(Group.created_at.desc())
        ).unique()
    )


def public_groups(db: Session, limit: int = PUBLIC_GROUPS_LIMIT) -> list[Group]:
    return list(
        db.scalars(
            select(Group)
            .where(Group.is_public.is_(True))
            .order_by(Group.created_at.desc())
            .limit(limit)
        ).unique()
    )


def group_details(db: Session, group_id: int, viewer_id: int) -> tuple[Group, GroupRole]:
    """Return the group and the viewer's role; members only."""
    group = get_group_or_404(db, group_id)
    role = role_of(db, group, viewer_id)
    if role is GroupRole.NON_MEMBER:
        raise ForbiddenError("Not a member of this group")
    return group, role


def group_posts(db: Session, group_id: int, viewer_id: int) -> list[Post]:
    """Return the group's posts, newest first; members only."""
    group = get_group_or_404(db, group_id)
    if not is_member(db, group.id, viewer_id):
        raise ForbiddenError("Not authorized to view this group")
    return list(
        db.scalars(
            select(Post).where(Post.group_id == group.id).order_by(Post.created_at.desc(), Post.id.desc())
        ).unique()
    )
