# src/snapfeed/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    crosspost_router,
    graph_router,
    groups_router,
    places_router,
    posts_router,
    search_router,
    users_router,
)

__all__ = [
    "auth_router",
    "crosspost_router",
    "graph_router",
    "groups_router",
    "places_router",
    "posts_router",
    "search_router",
    "users_router",
]
