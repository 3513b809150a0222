# src/snapfeed/models/user.py
"""SQLAlchemy models for user accounts and follow edges."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from snapfeed.core import security
from snapfeed.db.session import Base
from snapfeed.db.time import utcnow

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6
BIO_MAX_LENGTH = 150
COUNTRY_MAX_LENGTH = 50


class User(Base):
    """Registered account with profile fields."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH), unique=True, nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bio: Mapped[str] = mapped_column(String(BIO_MAX_LENGTH), nullable=False, default="")
    country: Mapped[str] = mapped_column(String(COUNTRY_MAX_LENGTH), nullable=False, default="")
    signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Free-form group-name tags chosen on the profile.
    group_tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    following_edges: Mapped[list[Follow]] = relationship(
        "Follow",
        foreign_keys="Follow.follower_id",
        order_by="Follow.followed_at",
        viewonly=True,
    )
    follower_edges: Mapped[list[Follow]] = relationship(
        "Follow",
        foreign_keys="Follow.followed_id",
        order_by="Follow.followed_at",
        viewonly=True,
    )

    @validates("username")
    def _normalize_username(self, _key: str, value: str) -> str:
        return value.strip()

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        return value.strip().lower()

    def set_password(self, password: str) -> None:
        """Hash and store a new password; the only place hashing happens."""
        self.password_hash = security.hash_password(password)

    def check_password(self, password: str) -> bool:
        """Return True if `password` matches the stored hash."""
        return security.verify_password(self.password_hash, password)


class Follow(Base):
    """Directed follow edge.

    A single row is both `follower.following` and `followed.followers`, so
    the two sides of an edge cannot drift apart.
    """

    __tablename__ = "follow_edge"
    __table_args__ = (
        CheckConstraint("follower_id <> followed_id", name="ck_follow_edge_not_self"),
        Index("ix_follow_edge_followed_id", "followed_id"),
    )

    follower_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    followed_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    followed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    follower: Mapped[User] = relationship("User", foreign_keys=[follower_id])
    followed: Mapped[User] = relationship("User", foreign_keys=[followed_id])
