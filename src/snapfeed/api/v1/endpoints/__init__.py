# src/snapfeed/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .crosspost import router as crosspost_router
from .groups import router as groups_router
from .places import router as places_router
from .posts import router as posts_router
from .search import router as search_router
from .users import graph_router
from .users import router as users_router

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
