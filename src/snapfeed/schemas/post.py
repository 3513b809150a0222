"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .place import PlaceSummary
from .user import UserSummary


class GroupRef(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    author: UserSummary
    caption: str
    media_ref: str
    media_type: str = Field(..., description="`image` or `video`")
    group: GroupRef | None = None
    place: PlaceSummary | None = None
    hashtags: list[str]
    mentions: list[str]
    likes_count: int
    comments_count: int
    liked_by_me: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    """Schema for adding a comment."""

    text: str = Field(..., description="1-500 characters after trimming")


class CommentResponse(BaseModel):
    id: int
    post_id: int
    author: UserSummary
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentCreatedResponse(BaseModel):
    success: bool = True
    comment: CommentResponse
    comments_count: int


class CommentDeletedResponse(BaseModel):
    success: bool = True
    comments_count: int


class LikeResponse(BaseModel):
    """Result of a like toggle."""

    success: bool = True
    liked: bool
    likes_count: int


class FeedResponse(BaseModel):
    """One page of the home feed."""

    items: list[PostResponse]
    total: int
    page: int
    limit: int
    has_more: bool
