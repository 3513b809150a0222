# src/snapfeed/models/__init__.py
"""SQLAlchemy models for the Snapfeed application."""

from .crosspost import CrossPostAccount
from .group import Group, GroupMembership
from .place import Place
from .post import Post, PostComment, PostHashtag, PostLike
from .user import Follow, User

__all__ = [
    "CrossPostAccount",
    "Group", "GroupMembership",
    "Place",
    "Post", "PostComment", "PostHashtag", "PostLike",
    "Follow", "User",
]
