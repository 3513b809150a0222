"""Tests for profile and follow endpoints."""

from fastapi import status

from tests.conftest import upload_post


def test_follow_and_unfollow(client, alice, bob, alice_headers) -> None:
    response = client.post("/api/v1/users/bob/follow", headers=alice_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "is_following": True, "follower_count": 1}

    repeat = client.post("/api/v1/follow/bob", headers=alice_headers)
    assert repeat.status_code == status.HTTP_400_BAD_REQUEST

    followers = client.get("/api/v1/users/bob/followers", headers=alice_headers).json()
    assert [entry["user"]["username"] for entry in followers] == ["alice"]

    response = client.post("/api/v1/unfollow/bob", headers=alice_headers)
    assert response.json()["follower_count"] == 0
    assert client.get("/api/v1/users/alice/following", headers=alice_headers).json() == []


def test_follow_self_and_unknown(client, alice, alice_headers) -> None:
    assert client.post("/api/v1/users/alice/follow", headers=alice_headers).status_code == 400
    assert client.post("/api/v1/users/ghost/follow", headers=alice_headers).status_code == 404


def test_profile_shows_counts_and_recent_posts(client, alice, bob, alice_headers, bob_headers) -> None:
    for i in range(13):
        upload_post(client, bob_headers, f"shot {i}")
    client.post("/api/v1/users/bob/follow", headers=alice_headers)

    profile = client.get("/api/v1/users/bob", headers=alice_headers).json()

    assert profile["follower_count"] == 1
    assert profile["following_count"] == 0
    assert profile["posts_count"] == 13
    assert profile["is_following"] is True
    assert profile["is_own_profile"] is False
    assert len(profile["recent_posts"]) == 12
    assert profile["recent_posts"][0]["caption"] == "shot 12"


def test_update_own_profile(client, alice, alice_headers) -> None:
    response = client.patch(
        "/api/v1/users/me/profile",
        json={"bio": "Street photographer", "group_tags": [" film ", ""]},
        headers=alice_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["bio"] == "Street photographer"
    assert response.json()["group_tags"] == ["film"]

    too_long = client.patch("/api/v1/users/me/profile", json={"bio": "b" * 151}, headers=alice_headers)
    assert too_long.status_code == status.HTTP_400_BAD_REQUEST


def test_insights_are_owner_only(client, alice, bob, alice_headers, bob_headers) -> None:
    upload_post(client, alice_headers, "today")
    client.post("/api/v1/users/alice/follow", headers=bob_headers)

    response = client.get("/api/v1/users/alice/insights", headers=alice_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data["posts_per_day"]) == 30
    assert data["posts_per_day"][-1]["count"] == 1
    assert data["total_posts"] == 1
    assert data["total_new_followers"] == 1

    forbidden = client.get("/api/v1/users/alice/insights", headers=bob_headers)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN


def test_list_users(client, alice, bob, alice_headers) -> None:
    response = client.get("/api/v1/users", headers=alice_headers)
    assert [user["username"] for user in response.json()] == ["alice", "bob"]
