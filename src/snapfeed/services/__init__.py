# src/snapfeed/services/__init__.py
"""Business logic services for the Snapfeed application."""

from .gateway import TwitterGateway, get_gateway
from .media import LocalMediaStorage, get_media_storage
from .sessions import MemorySessionStore, RedisSessionStore, get_session_store

__all__ = [
    "LocalMediaStorage",
    "MemorySessionStore",
    "RedisSessionStore",
    "TwitterGateway",
    "get_gateway",
    "get_media_storage",
    "get_session_store",
]
