"""SQLAlchemy models for groups and their membership."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snapfeed.db.session import Base
from snapfeed.db.time import utcnow

if TYPE_CHECKING:
    from .user import User


class Group(Base):
    """A set of members who can post to a shared feed."""

    __tablename__ = "user_group"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    creator: Mapped[User] = relationship("User", lazy="joined")
    memberships: Mapped[list[GroupMembership]] = relationship(
        "GroupMembership",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupMembership.joined_at",
    )

    @property
    def member_ids(self) -> list[int]:
        return [m.user_id for m in self.memberships]

    @property
    def admin_ids(self) -> list[int]:
        return [m.user_id for m in self.memberships if m.is_admin]

    @property
    def members(self) -> list[User]:
        return [m.user for m in self.memberships]

    @property
    def admins(self) -> list[User]:
        return [m.user for m in self.memberships if m.is_admin]


class GroupMembership(Base):
    """Membership row; `is_admin` marks the admin subset of members."""

    __tablename__ = "group_membership"

    group_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_group.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    group: Mapped[Group] = relationship("Group", back_populates="memberships")
    user: Mapped[User] = relationship("User", lazy="joined")
