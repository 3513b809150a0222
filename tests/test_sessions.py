"""Tests for session stores and the user snapshot cache."""

from unittest.mock import MagicMock, patch

from snapfeed.services.sessions import (
    MemorySessionStore,
    RedisSessionStore,
    UserSnapshotCache,
    new_session_id,
)


def test_memory_store_round_trip_and_destroy() -> None:
    store = MemorySessionStore(ttl_seconds=60)
    sid = new_session_id()

    store.set(sid, {"user_id": 1})
    assert store.get(sid) == {"user_id": 1}

    store.destroy(sid)
    assert store.get(sid) is None


def test_memory_store_expires_entries() -> None:
    store = MemorySessionStore(ttl_seconds=10)
    with patch("snapfeed.services.sessions.time.monotonic", return_value=100.0):
        store.set("sid", {"user_id": 1})
    with patch("snapfeed.services.sessions.time.monotonic", return_value=111.0):
        assert store.get("sid") is None


def test_memory_store_returns_copies() -> None:
    store = MemorySessionStore(ttl_seconds=60)
    store.set("sid", {"user_id": 1})
    store.get("sid")["user_id"] = 2
    assert store.get("sid") == {"user_id": 1}


def test_redis_store_uses_prefixed_keys_with_ttl() -> None:
    client = MagicMock()
    client.get.return_value = b'{"user_id": 7}'
    store = RedisSessionStore(client, ttl_seconds=30)

    store.set("abc", {"user_id": 7})
    client.set.assert_called_once_with("session:abc", '{"user_id": 7}', ex=30)
    assert store.get("abc") == {"user_id": 7}

    store.destroy("abc")
    client.delete.assert_called_once_with("session:abc")


def test_snapshot_cache_loads_once_within_ttl() -> None:
    store = MemorySessionStore(ttl_seconds=60)
    store.set("sid", {"user_id": 1})
    cache = UserSnapshotCache(store, ttl_seconds=300)
    loader = MagicMock(return_value={"id": 1, "username": "alice"})

    assert cache.get_or_load("sid", loader) == {"id": 1, "username": "alice"}
    assert cache.get_or_load("sid", loader) == {"id": 1, "username": "alice"}
    loader.assert_called_once()


def test_snapshot_cache_reloads_after_ttl_or_invalidation() -> None:
    store = MemorySessionStore(ttl_seconds=600)
    store.set("sid", {"user_id": 1})
    cache = UserSnapshotCache(store, ttl_seconds=300)
    loader = MagicMock(return_value={"id": 1})

    with patch("snapfeed.services.sessions.time.time", return_value=1000.0):
        cache.get_or_load("sid", loader)
    with patch("snapfeed.services.sessions.time.time", return_value=1301.0):
        cache.get_or_load("sid", loader)
    assert loader.call_count == 2

    cache.invalidate("sid")
    assert cache.get("sid") is None
    assert store.get("sid") == {"user_id": 1}


def test_snapshot_cache_ignores_missing_session() -> None:
    cache = UserSnapshotCache(MemorySessionStore(ttl_seconds=60), ttl_seconds=300)
    cache.put("gone", {"id": 1})
    assert cache.get("gone") is None
