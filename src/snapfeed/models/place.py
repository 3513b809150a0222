"""SQLAlchemy model for tagged places."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from snapfeed.db.session import Base
from snapfeed.db.time import utcnow
from snapfeed.utils.text import slugify


class Place(Base):
    """Place keyed by its external (maps provider) identifier."""

    __tablename__ = "place"
    __table_args__ = (Index("ix_place_coordinates", "lat", "lng"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    place_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    formatted_address: Mapped[str] = mapped_column(Text, nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # Denormalized; maintained with atomic UPDATEs, never below zero.
    posts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, default="", index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @validates("name")
    def _regenerate_slug(self, _key: str, value: str) -> str:
        value = value.strip()
        self.slug = slugify(value)
        return value
