"""
nexus.database.models — SQLAlchemy 2.0 Data Models
===================================================

Tables:
- users                          — Identity projection (owned by the auth layer)
- communities                    — Game communities
- community_members              — Community membership
- posts                          — Community posts (soft-deleted)
- voice_channels                 — Durable community voice rooms
- voice_channel_participants     — Who is in which community room
- post_voice_channels            — Ephemeral one-per-post voice rooms
- post_voice_channel_participants — Who is in which post room
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Nexus ORM models."""


# ---------------------------------------------------------------------------
# Users — one row per account; the PK is the identity provider's subject
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    password_hash: Mapped[str | None] = mapped_column(String(255), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


# ---------------------------------------------------------------------------
# Communities
# ---------------------------------------------------------------------------
class Community(Base):
    __tablename__ = "communities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    game: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    voice_channels: Mapped[list[VoiceChannel]] = relationship(
        back_populates="community", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Community id={self.id} name={self.name!r}>"


class CommunityMember(Base):
    __tablename__ = "community_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_members_pair"),
    )

    def __repr__(self) -> str:
        return f"<CommunityMember community={self.community_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    voice_channel: Mapped[PostVoiceChannel | None] = relationship(
        back_populates="post", uselist=False
    )

    __table_args__ = (
        Index("ix_posts_community_time", "community_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post id={self.id} community={self.community_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# VoiceChannel — durable community voice room
# ---------------------------------------------------------------------------
class VoiceChannel(Base):
    """A named, capacity-bounded LiveKit room owned by a community.

    ``livekit_room`` is assigned once at creation and never reused.
    """
    __tablename__ = "voice_channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    livekit_room: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    created_by: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    community: Mapped[Community] = relationship(back_populates="voice_channels")
    participants: Mapped[list[VoiceChannelParticipant]] = relationship(
        back_populates="channel", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("max_participants >= 1", name="ck_voice_channels_capacity"),
        Index("ix_voice_channels_community", "community_id"),
    )

    def __repr__(self) -> str:
        return f"<VoiceChannel id={self.id} name={self.name!r} room={self.livekit_room!r}>"


class VoiceChannelParticipant(Base):
    __tablename__ = "voice_channel_participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("voice_channels.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    channel: Mapped[VoiceChannel] = relationship(back_populates="participants")

    __table_args__ = (
        UniqueConstraint("channel_id", "user_id", name="uq_voice_participants_pair"),
        Index("ix_voice_participants_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<VoiceChannelParticipant channel={self.channel_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# PostVoiceChannel — at most one per post
# ---------------------------------------------------------------------------
class PostVoiceChannel(Base):
    """Ephemeral voice room attached to a single post.

    Deactivated (``is_active=False``) rather than deleted when the post goes
    away, so the room identifier is never handed to another post.
    """
    __tablename__ = "post_voice_channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    max_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    livekit_room: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    post: Mapped[Post] = relationship(back_populates="voice_channel")
    participants: Mapped[list[PostVoiceChannelParticipant]] = relationship(
        back_populates="channel", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("max_slots >= 1", name="ck_post_voice_channels_slots"),
    )

    def __repr__(self) -> str:
        return (
            f"<PostVoiceChannel id={self.id} post={self.post_id} "
            f"active={self.is_active}>"
        )


class PostVoiceChannelParticipant(Base):
    __tablename__ = "post_voice_channel_participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("post_voice_channels.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    channel: Mapped[PostVoiceChannel] = relationship(back_populates="participants")

    __table_args__ = (
        UniqueConstraint("channel_id", "user_id", name="uq_post_voice_participants_pair"),
        Index("ix_post_voice_participants_user", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PostVoiceChannelParticipant channel={self.channel_id} "
            f"user={self.user_id}>"
        )
