"""Tests for paginated search."""

from datetime import timedelta

import pytest

from snapfeed.core.errors import InvalidInputError
from snapfeed.db.time import as_utc
from snapfeed.services import group_service, post_service, search
from snapfeed.services.post_service import build_place_data
from snapfeed.services.search import Pagination
from tests.conftest import jpeg_upload


def _post(db_session, user, storage, caption, **kwargs):
    return post_service.create_post(
        db_session, user.id, caption=caption, media=jpeg_upload(), storage=storage, **kwargs
    )


@pytest.mark.parametrize(("page", "limit"), [(0, 20), (1, 0), (1, 101)])
def test_pagination_bounds(page, limit) -> None:
    with pytest.raises(InvalidInputError):
        Pagination(page, limit)


def test_search_users_by_username_or_email(db_session, make_user) -> None:
    make_user("zoe", "zoe@photos.net")
    make_user("adam", "adam@example.com")
    make_user("mia", "mia@photos.net")

    result = search.search_users(db_session, "PHOTOS", Pagination(1, 20))
    assert [user.username for user in result.items] == ["mia", "zoe"]
    assert result.total == 2

    first = search.search_users(db_session, None, Pagination(1, 2))
    assert [user.username for user in first.items] == ["adam", "mia"]
    assert first.total == 3
    assert first.pages == 2


def test_search_users_escapes_wildcards(db_session, make_user) -> None:
    make_user("under_score")
    make_user("underxscore")

    result = search.search_users(db_session, "r_s", Pagination())
    assert [user.username for user in result.items] == ["under_score"]


def test_search_posts_requires_all_tags(db_session, alice, media_storage) -> None:
    both = _post(db_session, alice, media_storage, "#sunset #beach")
    _post(db_session, alice, media_storage, "#sunset only")

    result = search.search_posts(db_session, alice.id, Pagination(), tags=["sunset", "#Beach"])
    assert [post.id for post in result.items] == [both.id]


def test_search_posts_filters(db_session, alice, bob, media_storage) -> None:
    old = _post(db_session, alice, media_storage, "Morning fog")
    new = _post(db_session, bob, media_storage, "Evening fog")

    by_caption = search.search_posts(db_session, alice.id, Pagination(), query="FOG")
    assert [post.id for post in by_caption.items] == [new.id, old.id]

    by_author = search.search_posts(db_session, alice.id, Pagination(), username="bo")
    assert [post.id for post in by_author.items] == [new.id]

    cutoff = as_utc(new.created_at)
    after = search.search_posts(db_session, alice.id, Pagination(), created_after=cutoff)
    assert [post.id for post in after.items] == [new.id]
    before = search.search_posts(
        db_session, alice.id, Pagination(), created_before=cutoff - timedelta(microseconds=1)
    )
    assert [post.id for post in before.items] == [old.id]


def test_search_posts_respects_group_visibility(db_session, alice, bob, media_storage) -> None:
    group = group_service.create_group(db_session, alice.id, name="Private")
    hidden = _post(db_session, alice, media_storage, "secret #x", group_id=group.id)

    assert search.search_posts(db_session, bob.id, Pagination(), tags=["x"]).total == 0
    as_member = search.search_posts(db_session, alice.id, Pagination(), group_id=group.id)
    assert [post.id for post in as_member.items] == [hidden.id]


def test_search_groups_public_only(db_session, alice) -> None:
    public = group_service.create_group(
        db_session, alice.id, name="Film Lovers", description="35mm", is_public=True
    )
    group_service.create_group(db_session, alice.id, name="Film Secret")

    result = search.search_groups(db_session, "film", Pagination())
    assert [group.id for group in result.items] == [public.id]
    assert search.search_groups(db_session, "35MM", Pagination()).total == 1


def test_search_places_orders_by_popularity(db_session, alice, media_storage) -> None:
    quiet = build_place_data("p-1", "Quiet Park", "North Side", 1.0, 1.0)
    busy = build_place_data("p-2", "Busy Park", "South Side", 2.0, 2.0)
    _post(db_session, alice, media_storage, "", place=quiet)
    for _ in range(2):
        _post(db_session, alice, media_storage, "", place=busy)

    result = search.search_places(db_session, "park", Pagination())
    assert [place.name for place in result.items] == ["Busy Park", "Quiet Park"]
    assert search.search_places(db_session, "side", Pagination()).total == 2


def test_search_places_short_query_matches_nothing(db_session, alice, media_storage) -> None:
    _post(db_session, alice, media_storage, "", place=build_place_data("p-1", "Pier", "", 0, 0))

    result = search.search_places(db_session, "p", Pagination())
    assert result.items == []
    assert result.total == 0
    assert result.pages == 0
