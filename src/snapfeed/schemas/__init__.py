# src/snapfeed/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .common import Page, SuccessResponse
from .crosspost import ConnectionStatus, ShareRequest, ShareResponse
from .group import GroupCreate, GroupDetailResponse, GroupResponse, GroupUpdate
from .place import PlaceResponse, PlaceSummary
from .post import CommentCreate, CommentResponse, LikeResponse, PostResponse
from .profile import ProfileResponse
from .user import RegisterRequest, UserSummary

__all__ = [
    "Page", "SuccessResponse",
    "ConnectionStatus", "ShareRequest", "ShareResponse",
    "GroupCreate", "GroupDetailResponse", "GroupResponse", "GroupUpdate",
    "PlaceResponse", "PlaceSummary",
    "CommentCreate", "CommentResponse", "LikeResponse", "PostResponse",
    "ProfileResponse", "RegisterRequest", "UserSummary",
]
