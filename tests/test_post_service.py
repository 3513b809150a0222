"""Tests for post creation, deletion and feeds."""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import OperationalError

from snapfeed.core.errors import ForbiddenError, InternalError, InvalidInputError, NotFoundError
from snapfeed.models import Place, Post
from snapfeed.services import engagement, group_service, post_service, social_graph
from snapfeed.services.post_service import MediaUpload, build_place_data
from tests.conftest import JPEG_BYTES, MP4_BYTES, jpeg_upload

SUNSET_PLACE = dict(
    place_id="ChIJ-sunset",
    name="Sunset Beach",
    formatted_address="1 Shore Rd",
    lat=21.6,
    lng=-158.1,
)


def _create(db_session, user, storage, caption="", **kwargs):
    return post_service.create_post(
        db_session,
        user.id,
        caption=caption,
        media=kwargs.pop("media", jpeg_upload()),
        storage=storage,
        **kwargs,
    )


def test_create_post_extracts_hashtags_and_mentions(db_session, alice, media_storage) -> None:
    post = _create(db_session, alice, media_storage, "#Sunset nice with @Bob #sunset #beach")

    assert post.hashtags == ["#sunset", "#beach"]
    assert post.mentions == ["bob"]
    assert post.media_type == "image"
    assert media_storage.open(post.media_ref) == JPEG_BYTES


def test_create_post_detects_video(db_session, alice, media_storage) -> None:
    post = _create(
        db_session,
        alice,
        media_storage,
        media=MediaUpload(data=MP4_BYTES, content_type="video/mp4"),
    )
    assert post.media_type == "video"
    assert post.media_ref.endswith(".mp4")


@pytest.mark.parametrize(
    "upload",
    [
        MediaUpload(data=b"", content_type="image/jpeg"),
        MediaUpload(data=b"%PDF-1.7", content_type="application/pdf"),
        MediaUpload(data=JPEG_BYTES, content_type=None),
    ],
)
def test_create_post_rejects_bad_media(db_session, alice, media_storage, upload) -> None:
    with pytest.raises(InvalidInputError):
        _create(db_session, alice, media_storage, media=upload)
    assert db_session.scalar(select(Post)) is None


def test_create_post_rejects_oversized_media(db_session, alice, media_storage) -> None:
    with patch("snapfeed.services.media.settings") as fake_settings:
        fake_settings.media_max_bytes = 10
        with pytest.raises(InvalidInputError):
            _create(db_session, alice, media_storage)


def test_create_post_rejects_long_caption(db_session, alice, media_storage) -> None:
    with pytest.raises(InvalidInputError):
        _create(db_session, alice, media_storage, "a" * 2201)


def test_create_post_in_group_requires_membership(db_session, alice, bob, media_storage) -> None:
    group = group_service.create_group(db_session, alice.id, name="Hikers")

    with pytest.raises(ForbiddenError):
        _create(db_session, bob, media_storage, group_id=group.id)
    with pytest.raises(NotFoundError):
        _create(db_session, alice, media_storage, group_id=group.id + 100)

    post = _create(db_session, alice, media_storage, group_id=group.id)
    assert post.group_id == group.id


def test_failed_insert_releases_stored_media(db_session, alice) -> None:
    storage = MagicMock()
    storage.store.return_value = "posts/orphan.jpg"
    place = build_place_data(**SUNSET_PLACE)

    with patch.object(
        post_service.PlaceRepository,
        "find_or_create",
        side_effect=OperationalError("INSERT", {}, Exception("disk full")),
    ):
        with pytest.raises(InternalError):
            _create(db_session, alice, storage, place=place)

    storage.delete.assert_called_once_with("posts/orphan.jpg")
    assert db_session.scalar(select(Post)) is None


def test_place_is_shared_and_counted(db_session, alice, bob, media_storage) -> None:
    place = build_place_data(**SUNSET_PLACE)
    first = _create(db_session, alice, media_storage, place=place)
    second = _create(db_session, bob, media_storage, place=place)

    assert first.place_id == second.place_id
    stored = db_session.get(Place, first.place_id)
    assert stored.posts_count == 2
    assert stored.slug == "sunset-beach"

    post_service.delete_post(db_session, alice.id, first.id, media_storage)
    db_session.refresh(stored)
    assert stored.posts_count == 1


def test_delete_post_removes_media(db_session, alice, bob, media_storage) -> None:
    post = _create(db_session, alice, media_storage)
    reference = post.media_ref

    with pytest.raises(ForbiddenError):
        post_service.delete_post(db_session, bob.id, post.id, media_storage)

    post_service.delete_post(db_session, alice.id, post.id, media_storage)
    assert media_storage.open(reference) is None
    assert db_session.get(Post, post.id) is None


def test_delete_post_keeps_row_when_media_release_fails(db_session, alice, media_storage) -> None:
    post = _create(db_session, alice, media_storage)
    storage = MagicMock()
    storage.delete.side_effect = InternalError("storage offline")

    with pytest.raises(InternalError):
        post_service.delete_post(db_session, alice.id, post.id, storage)
    assert db_session.get(Post, post.id) is not None


@pytest.mark.parametrize(
    "fields",
    [
        dict(place_id="abc", name=None),
        dict(place_id=None, name="Somewhere"),
        dict(place_id="abc", name="Somewhere", lat="north", lng="1"),
        dict(place_id="abc", name="Somewhere", lat=91, lng=0),
        dict(place_id="abc", name="Somewhere", lat=0, lng=-181),
        dict(place_id="abc", name="Somewhere"),
    ],
)
def test_build_place_data_rejects_incomplete_places(fields) -> None:
    with pytest.raises(InvalidInputError):
        build_place_data(**fields)


def test_build_place_data_without_place() -> None:
    assert build_place_data(None, None) is None


def test_home_feed_includes_followed_and_group_posts(db_session, alice, bob, carol, media_storage) -> None:
    own = _create(db_session, alice, media_storage, "mine")
    followed = _create(db_session, bob, media_storage, "bob's")
    stranger = _create(db_session, carol, media_storage, "carol's")
    group = group_service.create_group(db_session, carol.id, name="Club", member_ids=[alice.id])
    in_group = _create(db_session, carol, media_storage, "club", group_id=group.id)
    social_graph.follow_user(db_session, alice.id, "bob")

    posts, total = post_service.home_feed(db_session, alice.id)

    ids = {post.id for post in posts}
    assert ids == {own.id, followed.id, in_group.id}
    assert stranger.id not in ids
    assert total == 3


def test_home_feed_pagination(db_session, alice, media_storage) -> None:
    created = [_create(db_session, alice, media_storage, f"post {i}") for i in range(5)]

    page_one, total = post_service.home_feed(db_session, alice.id, page=1, limit=2)
    page_three, _ = post_service.home_feed(db_session, alice.id, page=3, limit=2)

    assert total == 5
    assert [post.id for post in page_one] == [created[4].id, created[3].id]
    assert [post.id for post in page_three] == [created[0].id]


def test_explore_hides_private_group_posts(db_session, alice, bob, media_storage) -> None:
    group = group_service.create_group(db_session, alice.id, name="Secret")
    public = _create(db_session, alice, media_storage, "public")
    _create(db_session, alice, media_storage, "members only", group_id=group.id)

    assert [post.id for post in post_service.explore_feed(db_session, bob.id)] == [public.id]
    assert len(post_service.explore_feed(db_session, alice.id)) == 2


def test_to_post_list_marks_viewer_like(db_session, alice, bob, media_storage) -> None:
    post = _create(db_session, alice, media_storage, "#tag")
    engagement.toggle_like(db_session, bob.id, post.id)
    db_session.refresh(post)

    [as_bob] = post_service.to_post_list(db_session, [post], bob.id)
    [as_alice] = post_service.to_post_list(db_session, [post], alice.id)

    assert as_bob.liked_by_me is True
    assert as_alice.liked_by_me is False
    assert as_bob.likes_count == 1
    assert as_bob.hashtags == ["#tag"]
    assert as_bob.created_at.tzinfo is not None


@pytest.mark.parametrize("missing", ["lat", "lng"])
def test_build_place_data_requires_coordinates(missing) -> None:
    fields = {**SUNSET_PLACE, missing: None}
    with pytest.raises(InvalidInputError, match="Place coordinates are required"):
        build_place_data(**fields)


def test_feed_serialization_counts_without_loading_collections(
    db_session, alice, bob, carol, media_storage
) -> None:
    liked = _create(db_session, alice, media_storage, "liked")
    quiet = _create(db_session, alice, media_storage, "quiet")
    engagement.toggle_like(db_session, bob.id, liked.id)
    engagement.toggle_like(db_session, carol.id, liked.id)
    engagement.add_comment(db_session, bob.id, liked.id, "nice")
    liked_id, quiet_id = liked.id, quiet.id
    db_session.expire_all()

    posts = post_service.explore_feed(db_session, bob.id)
    items = {item.id: item for item in post_service.to_post_list(db_session, posts, bob.id)}

    assert (items[liked_id].likes_count, items[liked_id].comments_count) == (2, 1)
    assert items[liked_id].liked_by_me is True
    assert (items[quiet_id].likes_count, items[quiet_id].liked_by_me) == (0, False)
    for post in posts:
        assert {"likes", "comments"} <= inspect(post).unloaded
