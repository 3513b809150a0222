"""Group-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .user import UserSummary


class GroupCreate(BaseModel):
    """Schema for creating a group."""

    name: str = Field(..., max_length=100, description="Group name")
    description: str | None = Field(None, description="Optional description")
    is_public: bool = Field(False, description="Public groups appear in discovery and search")
    members: list[int] = Field(default_factory=list, description="User ids to add as members")


class GroupUpdate(BaseModel):
    """Partial update of group settings."""

    name: str | None = Field(None, max_length=100)
    description: str | None = None
    is_public: bool | None = None


class MemberAction(BaseModel):
    """Target of an admin or membership action."""

    user_id: int


class GroupResponse(BaseModel):
    """Schema for group information returned by the API."""

    id: int
    name: str
    description: str | None
    is_public: bool
    creator: UserSummary
    members: list[UserSummary]
    admins: list[UserSummary]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupDetailResponse(GroupResponse):
    """Group with the viewer's role flags."""

    is_current_user_admin: bool
    is_current_user_creator: bool


class GroupDeletedResponse(BaseModel):
    success: bool = True
    deleted_posts: int
