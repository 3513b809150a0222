"""Tests for group membership and administration rules."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from snapfeed.core.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    InvalidOperationError,
    NotFoundError,
)
from snapfeed.models import Group, Place, Post
from snapfeed.services import group_service, post_service
from snapfeed.services.group_service import GroupRole
from snapfeed.services.post_service import build_place_data
from tests.conftest import jpeg_upload


@pytest.fixture()
def group(db_session, alice, bob):
    return group_service.create_group(
        db_session,
        alice.id,
        name="  Photo Walks ",
        description="Weekend walks",
        is_public=True,
        member_ids=[bob.id],
    )


def _role(db_session, group_id, user_id) -> GroupRole:
    return group_service.role_of(db_session, db_session.get(Group, group_id), user_id)


def test_create_group_sets_creator_as_admin(db_session, group, alice, bob) -> None:
    assert group.name == "Photo Walks"
    assert group.created_by == alice.id
    assert set(group.member_ids) == {alice.id, bob.id}
    assert group.admin_ids == [alice.id]
    assert _role(db_session, group.id, alice.id) is GroupRole.CREATOR
    assert _role(db_session, group.id, bob.id) is GroupRole.MEMBER


def test_create_group_validates_input(db_session, alice) -> None:
    with pytest.raises(InvalidInputError):
        group_service.create_group(db_session, alice.id, name="   ")
    with pytest.raises(InvalidInputError):
        group_service.create_group(db_session, alice.id, name="Ghosts", member_ids=[424242])
    assert db_session.scalar(select(Group)) is None


def test_join_is_idempotent(db_session, group, carol) -> None:
    group_service.join_group(db_session, group.id, carol.id)
    group_service.join_group(db_session, group.id, carol.id)

    assert group.member_ids.count(carol.id) == 1
    assert _role(db_session, group.id, carol.id) is GroupRole.MEMBER


def test_join_missing_group(db_session, carol) -> None:
    with pytest.raises(NotFoundError):
        group_service.join_group(db_session, 999, carol.id)


def test_leave_drops_admin_status(db_session, group, alice, bob) -> None:
    group_service.promote_admin(db_session, group.id, alice.id, bob.id)
    group_service.leave_group(db_session, group.id, bob.id)

    assert bob.id not in group.member_ids
    assert bob.id not in group.admin_ids
    assert _role(db_session, group.id, bob.id) is GroupRole.NON_MEMBER


def test_creator_cannot_leave(db_session, group, alice) -> None:
    with pytest.raises(ForbiddenError):
        group_service.leave_group(db_session, group.id, alice.id)
    assert alice.id in group.admin_ids


def test_promote_rules(db_session, group, alice, bob, carol) -> None:
    with pytest.raises(ForbiddenError):
        group_service.promote_admin(db_session, group.id, bob.id, bob.id)
    with pytest.raises(InvalidOperationError):
        group_service.promote_admin(db_session, group.id, alice.id, carol.id)

    group_service.promote_admin(db_session, group.id, alice.id, bob.id)
    assert _role(db_session, group.id, bob.id) is GroupRole.ADMIN

    with pytest.raises(AlreadyExistsError):
        group_service.promote_admin(db_session, group.id, alice.id, bob.id)


def test_admin_can_promote_others(db_session, group, alice, bob, carol) -> None:
    group_service.promote_admin(db_session, group.id, alice.id, bob.id)
    group_service.join_group(db_session, group.id, carol.id)

    group_service.promote_admin(db_session, group.id, bob.id, carol.id)
    assert set(group.admin_ids) == {alice.id, bob.id, carol.id}


def test_demote_rules(db_session, group, alice, bob, carol) -> None:
    group_service.join_group(db_session, group.id, carol.id)
    group_service.promote_admin(db_session, group.id, alice.id, bob.id)

    with pytest.raises(ForbiddenError):
        group_service.demote_admin(db_session, group.id, carol.id, bob.id)
    with pytest.raises(ForbiddenError):
        group_service.demote_admin(db_session, group.id, bob.id, alice.id)
    with pytest.raises(InvalidOperationError):
        group_service.demote_admin(db_session, group.id, alice.id, carol.id)

    group_service.demote_admin(db_session, group.id, bob.id, bob.id)
    assert _role(db_session, group.id, bob.id) is GroupRole.MEMBER
    assert bob.id in group.member_ids


def test_remove_member_rules(db_session, group, alice, bob, carol) -> None:
    group_service.join_group(db_session, group.id, carol.id)

    with pytest.raises(ForbiddenError):
        group_service.remove_member(db_session, group.id, carol.id, bob.id)
    with pytest.raises(ForbiddenError):
        group_service.remove_member(db_session, group.id, alice.id, alice.id)

    group_service.remove_member(db_session, group.id, alice.id, bob.id)
    assert bob.id not in group.member_ids
    # Removing someone who is already gone changes nothing.
    group_service.remove_member(db_session, group.id, alice.id, bob.id)


def test_creator_stays_admin_member_through_every_operation(db_session, group, alice, bob) -> None:
    group_service.promote_admin(db_session, group.id, alice.id, bob.id)
    for attempt in (
        lambda: group_service.demote_admin(db_session, group.id, bob.id, alice.id),
        lambda: group_service.remove_member(db_session, group.id, bob.id, alice.id),
        lambda: group_service.leave_group(db_session, group.id, alice.id),
    ):
        with pytest.raises(ForbiddenError):
            attempt()
    assert alice.id in group.member_ids
    assert alice.id in group.admin_ids


def test_update_group_admins_only(db_session, group, alice, bob) -> None:
    with pytest.raises(ForbiddenError):
        group_service.update_group(db_session, group.id, bob.id, name="Hijacked")

    updated = group_service.update_group(db_session, group.id, alice.id, is_public=False)
    assert updated.is_public is False
    assert updated.name == "Photo Walks"


def test_group_details_members_only(db_session, group, alice, carol) -> None:
    with pytest.raises(ForbiddenError):
        group_service.group_details(db_session, group.id, carol.id)
    _, role = group_service.group_details(db_session, group.id, alice.id)
    assert role.can_administer


def test_public_and_user_groups(db_session, group, alice, carol) -> None:
    private = group_service.create_group(db_session, carol.id, name="Hidden")

    assert [g.id for g in group_service.public_groups(db_session)] == [group.id]
    assert [g.id for g in group_service.user_groups(db_session, carol.id)] == [private.id]
    assert [g.id for g in group_service.user_groups(db_session, alice.id)] == [group.id]


def test_delete_group_removes_posts_media_and_counts(db_session, group, alice, bob, media_storage) -> None:
    place = build_place_data("pier-7", "Pier 7", "Harbour", 37.8, -122.4)
    posts = [
        post_service.create_post(
            db_session,
            author.id,
            caption="pier",
            media=jpeg_upload(),
            storage=media_storage,
            group_id=group.id,
            place=place,
        )
        for author in (alice, bob)
    ]
    references = [post.media_ref for post in posts]
    place_pk = posts[0].place_id

    with pytest.raises(ForbiddenError):
        group_service.delete_group(db_session, group.id, bob.id, media_storage)

    assert group_service.delete_group(db_session, group.id, alice.id, media_storage) == 2
    assert db_session.get(Group, group.id) is None
    assert db_session.scalar(select(Post)) is None
    assert all(media_storage.open(ref) is None for ref in references)
    assert db_session.get(Place, place_pk).posts_count == 0


def test_delete_group_aborts_when_media_release_fails(db_session, group, alice, media_storage) -> None:
    post = post_service.create_post(
        db_session,
        alice.id,
        caption="",
        media=jpeg_upload(),
        storage=media_storage,
        group_id=group.id,
    )
    storage = MagicMock()
    storage.delete.side_effect = InternalError("storage offline")

    with pytest.raises(InternalError):
        group_service.delete_group(db_session, group.id, alice.id, storage)

    assert db_session.get(Group, group.id) is not None
    assert db_session.get(Post, post.id) is not None


def test_group_posts_members_only(db_session, group, alice, carol, media_storage) -> None:
    post = post_service.create_post(
        db_session,
        alice.id,
        caption="",
        media=jpeg_upload(),
        storage=media_storage,
        group_id=group.id,
    )
    with pytest.raises(ForbiddenError):
        group_service.group_posts(db_session, group.id, carol.id)
    assert [p.id for p in group_service.group_posts(db_session, group.id, alice.id)] == [post.id]
