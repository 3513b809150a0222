"""Cross-posting Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ConnectResponse(BaseModel):
    """Where to send the user to authorize the external account."""

    success: bool = True
    auth_url: str


class ConnectionStatus(BaseModel):
    connected: bool
    username: str | None = None
    handle: str | None = None
    profile_image_url: str | None = None
    connected_at: datetime | None = None
    last_post_at: datetime | None = None
    post_count: int | None = None
    can_post_now: bool | None = None


class ConnectedResponse(BaseModel):
    success: bool = True
    handle: str
    username: str


class ShareRequest(BaseModel):
    """Share one of the caller's posts to the linked account."""

    post_id: int
    caption: str | None = Field(None, description="Text to publish; defaults to the post caption")


class ShareResponse(BaseModel):
    success: bool = True
    external_post_id: str
    with_media: bool
    message: str = "Shared successfully"
