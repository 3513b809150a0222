"""Profile page schema."""

from datetime import datetime

from pydantic import BaseModel, Field

from .post import PostResponse


class ProfileResponse(BaseModel):
    """Public profile with relationship flags for the viewer."""

    id: int
    username: str
    bio: str
    country: str
    is_verified: bool
    group_tags: list[str]
    created_at: datetime
    follower_count: int
    following_count: int
    posts_count: int
    is_following: bool = Field(..., description="Whether the viewer follows this user")
    is_own_profile: bool
    recent_posts: list[PostResponse] = Field(default_factory=list)
