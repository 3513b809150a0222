# src/snapfeed/models/post.py
"""SQLAlchemy models for posts, likes, comments and hashtags."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, func, select
from sqlalchemy.orm import Mapped, column_property, mapped_column, relationship

from snapfeed.db.session import Base
from snapfeed.db.time import utcnow

if TYPE_CHECKING:
    from .group import Group
    from .place import Place
    from .user import User

CAPTION_MAX_LENGTH = 2200
COMMENT_MAX_LENGTH = 500

MEDIA_TYPE_IMAGE = "image"
MEDIA_TYPE_VIDEO = "video"


class Post(Base):
    """Photo or video shared by a user, optionally inside a group."""

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_created_at", "created_at"),
        Index("ix_post_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    caption: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media_ref: Mapped[str] = mapped_column(Text, nullable=False)
    media_type: Mapped[str] = mapped_column(String(10), nullable=False, default=MEDIA_TYPE_IMAGE)
    group_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_group.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    place_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("place.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    mentions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    author: Mapped[User] = relationship("User", lazy="joined")
    group: Mapped[Group | None] = relationship("Group", lazy="selectin")
    place: Mapped[Place | None] = relationship("Place", lazy="selectin")
    likes: Mapped[list[PostLike]] = relationship(
        "PostLike",
        cascade="all, delete-orphan",
    )
    comments: Mapped[list[PostComment]] = relationship(
        "PostComment",
        cascade="all, delete-orphan",
        order_by="PostComment.id",
    )
    hashtag_rows: Mapped[list[PostHashtag]] = relationship(
        "PostHashtag",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PostHashtag.position",
    )

    @property
    def hashtags(self) -> list[str]:
        """Return hashtags in caption order."""
        return [row.tag for row in self.hashtag_rows]


class PostLike(Base):
    """Membership of a user in a post's like set."""

    __tablename__ = "post_like"

    # Composite primary key keeps the like set free of duplicates.
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class PostComment(Base):
    """Append-only comment; only its author may delete it."""

    __tablename__ = "post_comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(String(COMMENT_MAX_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    author: Mapped[User] = relationship("User", lazy="joined")


class PostHashtag(Base):
    """Hashtag extracted from a caption."""

    __tablename__ = "post_hashtag"
    __table_args__ = (Index("ix_post_hashtag_tag", "tag"),)

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag: Mapped[str] = mapped_column(String(140), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# Like and comment counts load with the post row as correlated subqueries.
Post.likes_count = column_property(  # type: ignore[attr-defined]
    select(func.count())
    .select_from(PostLike)
    .where(PostLike.post_id == Post.id)
    .correlate_except(PostLike)
    .scalar_subquery()
)
Post.comments_count = column_property(  # type: ignore[attr-defined]
    select(func.count())
    .select_from(PostComment)
    .where(PostComment.post_id == Post.id)
    .correlate_except(PostComment)
    .scalar_subquery()
)
