"""Place-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PlaceSummary(BaseModel):
    """Place as embedded in a post."""

    id: int
    place_id: str
    name: str
    slug: str
    lat: float
    lng: float

    model_config = ConfigDict(from_attributes=True)


class PlaceResponse(BaseModel):
    """Schema for a place page."""

    id: int
    place_id: str
    name: str
    slug: str
    formatted_address: str
    lat: float
    lng: float
    types: list[str]
    posts_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
