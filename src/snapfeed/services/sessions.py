"""Server-side sessions and the per-session user snapshot cache.

Sessions hold small JSON documents keyed by an opaque session id. The
access token only names the session; logging out destroys the document,
which invalidates every token minted for it.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from collections.abc import Callable
from threading import Lock
from typing import Any, Protocol

import redis

from snapfeed.core.settings import settings

logger = logging.getLogger(__name__)

SessionData = dict[str, Any]


class SessionStore(Protocol):
    """Contract consumed by the auth layer."""

    def get(self, session_id: str) -> SessionData | None: ...

    def set(self, session_id: str, data: SessionData) -> None: ...

    def destroy(self, session_id: str) -> None: ...


class RedisSessionStore:
    """Session store persisted in Redis with a sliding TTL."""

    def __init__(self, client: redis.Redis, ttl_seconds: int, prefix: str = "session:") -> None:
        self._redis = client
        self._ttl = ttl_seconds
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    def get(self, session_id: str) -> SessionData | None:
        raw = self._redis.get(self._key(session_id))
        if raw is None:
            return None
        data: SessionData = json.loads(raw)
        return data

    def set(self, session_id: str, data: SessionData) -> None:
        self._redis.set(self._key(session_id), json.dumps(data, default=str), ex=self._ttl)

    def destroy(self, session_id: str) -> None:
        self._redis.delete(self._key(session_id))


class MemorySessionStore:
    """In-process session store for single-worker deployments and tests."""

    def __init__(self, ttl_seconds: int) -> None:
        self._ttl = ttl_seconds
        self._lock = Lock()
        self._entries: dict[str, tuple[float, str]] = {}

    def get(self, session_id: str) -> SessionData | None:
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            expires_at, raw = entry
            if expires_at <= time.monotonic():
                del self._entries[session_id]
                return None
        data: SessionData = json.loads(raw)
        return data

    def set(self, session_id: str, data: SessionData) -> None:
        # Serialize so callers never share mutable state with the store.
        raw = json.dumps(data, default=str)
        with self._lock:
            self._entries[session_id] = (time.monotonic() + self._ttl, raw)

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._entries.pop(session_id, None)


def new_session_id() -> str:
    """Return a fresh, unguessable session identifier."""
    return secrets.token_urlsafe(32)


class UserSnapshotCache:
    """Short-lived read-through cache of the acting user, keyed by session id.

    The snapshot lives inside the session document under `user_cache` with
    the time it was loaded; entries older than the TTL are reloaded.
    """

    KEY = "user_cache"

    def __init__(self, store: SessionStore, ttl_seconds: int) -> None:
        self._store = store
        self._ttl = ttl_seconds

    def get(self, session_id: str) -> SessionData | None:
        data = self._store.get(session_id)
        if not data:
            return None
        cached = data.get(self.KEY)
        if not cached:
            return None
        if time.time() - float(cached.get("cached_at", 0)) >= self._ttl:
            return None
        snapshot: SessionData = cached["user"]
        return snapshot

    def put(self, session_id: str, snapshot: SessionData) -> None:
        data = self._store.get(session_id)
        if data is None:
            return
        data[self.KEY] = {"user": snapshot, "cached_at": time.time()}
        self._store.set(session_id, data)

    def invalidate(self, session_id: str) -> None:
        data = self._store.get(session_id)
        if data is None or self.KEY not in data:
            return
        del data[self.KEY]
        self._store.set(session_id, data)

    def get_or_load(
        self,
        session_id: str,
        loader: Callable[[], SessionData | None],
    ) -> SessionData | None:
        """Return the cached snapshot or load, cache and return a fresh one."""
        snapshot = self.get(session_id)
        if snapshot is not None:
            return snapshot
        snapshot = loader()
        if snapshot is not None:
            self.put(session_id, snapshot)
        return snapshot


class _SessionStoreSingleton:
    """Singleton wrapper for the configured session store."""

    _instance: SessionStore | None = None

    @classmethod
    def get_instance(cls) -> SessionStore:
        if cls._instance is None:
            backend = settings.session_backend.lower()
            if backend == "redis":
                client = redis.from_url(settings.redis_url)
                cls._instance = RedisSessionStore(client, settings.session_ttl_seconds)
            elif backend == "memory":
                cls._instance = MemorySessionStore(settings.session_ttl_seconds)
            else:
                raise ValueError(f"Unknown SESSION_BACKEND: {settings.session_backend!r}")
            logger.info("Session store initialised with %s backend", backend)
        return cls._instance


def get_session_store() -> SessionStore:
    """Return the process-wide session store."""
    return _SessionStoreSingleton.get_instance()
