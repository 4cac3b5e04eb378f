"""
agora.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- forums                 — Discussion areas posts are filed under
- profiles               — Local mirror of member display fields
- posts                  — Forum posts with moderation flags + cached counters
- replies                — Two-level reply tree (adjacency list)
- likes                  — Like ledger, one row per (user, target type, target)
- blog_comments          — Comments on blog articles
- announcement_comments  — Comments on community announcements

Member identity is owned by the external auth provider; ``author_id`` /
``user_id`` columns hold its opaque string ids and carry no foreign key.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    # Python-side timestamps keep microsecond ordering on every backend.
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Agora ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class LikeTarget(enum.StrEnum):
    """Kinds of rows a member can like."""
    POST = "post"
    REPLY = "reply"


# ---------------------------------------------------------------------------
# Forum — a discussion area
# ---------------------------------------------------------------------------
class Forum(Base):
    __tablename__ = "forums"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<Forum id={self.id} name={self.name!r} active={self.is_active}>"


# ---------------------------------------------------------------------------
# Profile — display fields mirrored from the identity provider
# ---------------------------------------------------------------------------
class Profile(Base):
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(100), default=None)
    first_name: Mapped[str | None] = mapped_column(String(100), default=None)
    last_name: Mapped[str | None] = mapped_column(String(100), default=None)
    nickname: Mapped[str | None] = mapped_column(String(100), default=None)
    avatar_url: Mapped[str | None] = mapped_column(String(500), default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "nickname": self.nickname,
            "avatar_url": self.avatar_url,
        }

    def __repr__(self) -> str:
        return f"<Profile user={self.user_id!r} name={self.display_name!r}>"


# ---------------------------------------------------------------------------
# Post — a forum thread root
# ---------------------------------------------------------------------------
class Post(Base):
    """A forum post.

    ``accepted_reply_id`` must point at a top-level reply of this post; the
    services check that.  The foreign key is added after both tables exist
    (``use_alter``) and nulls the pointer when the reply row goes away.
    """
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    forum_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("forums.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    media_url: Mapped[str | None] = mapped_column(String(500), default=None)
    media_type: Mapped[str | None] = mapped_column(String(10), default=None)

    # Moderation
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    accepted_reply_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey(
            "replies.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_posts_accepted_reply_id",
        ),
        default=None,
    )

    # Cached counters: recomputed from source tables, never incremented
    # from client-supplied deltas.
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    like_count: Mapped[int] = mapped_column(Integer, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    __table_args__ = (
        Index("ix_posts_forum_pinned_created", "forum_id", "is_pinned", "created_at"),
        Index("ix_posts_author_created", "author_id", "created_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Post id={self.id} title={self.title!r} locked={self.is_locked}>"


# ---------------------------------------------------------------------------
# Reply — two-level adjacency list under a post
# ---------------------------------------------------------------------------
class Reply(Base):
    __tablename__ = "replies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    parent_reply_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("replies.id", ondelete="CASCADE"), nullable=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    like_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("ix_replies_post_parent", "post_id", "parent_reply_id"),
        Index("ix_replies_author_created", "author_id", "created_at"),
    )

    @property
    def is_top_level(self) -> bool:
        return self.parent_reply_id is None

    def __repr__(self) -> str:
        return (
            f"<Reply id={self.id} post={self.post_id} "
            f"parent={self.parent_reply_id}>"
        )


# ---------------------------------------------------------------------------
# Like — the like ledger
# ---------------------------------------------------------------------------
class Like(Base):
    """Presence of a row means "liked".

    The composite primary key is the uniqueness guarantee; concurrent
    toggles from the same member resolve against it in the database.
    """
    __tablename__ = "likes"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    target_type: Mapped[str] = mapped_column(String(10), primary_key=True)
    target_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    __table_args__ = (
        Index("ix_likes_target", "target_type", "target_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Like user={self.user_id!r} "
            f"{self.target_type}={self.target_id}>"
        )


# ---------------------------------------------------------------------------
# BlogComment — comments under blog articles
# ---------------------------------------------------------------------------
class BlogComment(Base):
    __tablename__ = "blog_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    blog_post_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("blog_comments.id", ondelete="CASCADE"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    __table_args__ = (
        Index("ix_blog_comments_post_created", "blog_post_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<BlogComment id={self.id} blog_post={self.blog_post_id}>"


# ---------------------------------------------------------------------------
# AnnouncementComment — comments under announcements
# ---------------------------------------------------------------------------
class AnnouncementComment(Base):
    __tablename__ = "announcement_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    announcement_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("announcement_comments.id", ondelete="CASCADE"),
        nullable=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    __table_args__ = (
        Index(
            "ix_announcement_comments_target_created",
            "announcement_id", "created_at",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<AnnouncementComment id={self.id} "
            f"announcement={self.announcement_id}>"
        )
