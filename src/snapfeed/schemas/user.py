"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserSummary(BaseModel):
    """Minimal public view of a user."""

    id: int
    username: str
    is_verified: bool = False

    model_config = ConfigDict(from_attributes=True)


class RegisterRequest(BaseModel):
    """Schema for creating an account."""

    username: str = Field(..., description="3-30 characters, unique")
    email: EmailStr = Field(..., max_length=254, description="Unique email address")
    password: str = Field(..., description="At least 6 characters")
    country: str | None = Field(None, description="Optional country, up to 50 characters")
    signature: str | None = Field(None, description="Optional signature captured at sign-up")


class RegisterResponse(BaseModel):
    """Registration response."""

    success: bool = True
    user: UserSummary


class LoginRequest(BaseModel):
    """Credentials for opening a session."""

    username: str
    password: str


class TokenResponse(BaseModel):
    """Access token bound to a server-side session."""

    access_token: str = Field(..., description="JWT carrying the user and session ids")
    token_type: str = "bearer"
    user: UserSummary


class MeResponse(BaseModel):
    """The acting user's cached snapshot."""

    id: int
    username: str
    email: str
    is_verified: bool


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted fields are left untouched."""

    bio: str | None = Field(None, description="Up to 150 characters")
    country: str | None = Field(None, description="Up to 50 characters")
    group_tags: list[str] | None = None
    password: str | None = Field(None, description="New password, at least 6 characters")


class ProfileSelfResponse(BaseModel):
    """Private view of the acting user's own profile fields."""

    id: int
    username: str
    email: str
    bio: str
    country: str
    is_verified: bool
    group_tags: list[str]
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FollowResponse(BaseModel):
    """Result of a follow or unfollow."""

    success: bool = True
    is_following: bool
    follower_count: int


class FollowEdgeResponse(BaseModel):
    """One entry in a followers or following list."""

    user: UserSummary
    followed_at: datetime


class DailyCount(BaseModel):
    date: str
    count: int


class InsightsResponse(BaseModel):
    """Activity over the last 30 days."""

    posts_per_day: list[DailyCount]
    followers_per_day: list[DailyCount]
    total_posts: int
    total_new_followers: int
