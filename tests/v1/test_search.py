"""Tests for search endpoints."""

from fastapi import status

from tests.conftest import upload_post


def test_search_users_paginates(client, make_user, alice_headers) -> None:
    for name in ("sam1", "sam2", "sam3"):
        make_user(name)

    page = client.get(
        "/api/v1/search/users", params={"q": "sam", "page": 2, "limit": 2}, headers=alice_headers
    ).json()
    assert [user["username"] for user in page["items"]] == ["sam3"]
    assert (page["total"], page["page"], page["limit"], page["pages"]) == (3, 2, 2, 2)


def test_search_rejects_bad_pagination(client, alice_headers) -> None:
    for params in ({"page": 0}, {"limit": 0}, {"limit": 101}):
        response = client.get("/api/v1/search/users", params=params, headers=alice_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "error" in response.json()


def test_search_posts_by_tags(client, alice_headers) -> None:
    wanted = upload_post(client, alice_headers, "#sunset #beach").json()
    upload_post(client, alice_headers, "#sunset")

    response = client.get(
        "/api/v1/search/posts",
        params=[("tags", "sunset"), ("tags", "beach")],
        headers=alice_headers,
    ).json()
    assert [post["id"] for post in response["items"]] == [wanted["id"]]


def test_search_groups_and_places(client, alice_headers, bob_headers) -> None:
    client.post("/api/v1/groups", json={"name": "Night Owls", "is_public": True}, headers=alice_headers)
    upload_post(
        client,
        alice_headers,
        place_id="owl-1",
        place_name="Owl Bar",
        place_address="3 Night St",
        place_lat=10,
        place_lng=10,
    )

    groups = client.get("/api/v1/search/groups", params={"q": "owl"}, headers=bob_headers).json()
    assert [g["name"] for g in groups["items"]] == ["Night Owls"]

    places = client.get("/api/v1/search/places", params={"q": "night"}, headers=bob_headers).json()
    assert [p["name"] for p in places["items"]] == ["Owl Bar"]
    assert places["items"][0]["posts_count"] == 1

    short = client.get("/api/v1/search/places", params={"q": "o"}, headers=bob_headers).json()
    assert short["total"] == 0
