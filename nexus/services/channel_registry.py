"""
nexus.services.channel_registry — Voice Channel Registry
=========================================================

Creates and looks up voice channel rows for both kinds.  Every write follows
the same pattern:

  1. Reject a capacity outside ``1..max_channel_capacity`` (``InvalidCapacity``)
  2. Verify the owner (community / post) exists
  3. Enforce the kind's uniqueness rule
  4. Assign a fresh LiveKit room identifier
  5. Flush; a unique violation here is an invariant breach, not a retry
  6. Commit and return the detached row

Lookups return ``None`` for absent channels; a post without voice is the
common case, not an error.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nexus.config import NexusConfig
from nexus.database.engine import get_session
from nexus.database.models import (
    Community,
    Post,
    PostVoiceChannel,
    VoiceChannel,
    VoiceChannelParticipant,
)
from nexus.engine.kinds import COMMUNITY, POST, make_room_name
from nexus.errors import InvalidCapacity, InvariantViolation, NotFound
from nexus.services import membership_service

logger = logging.getLogger(__name__)


def _check_capacity(value: int, cfg: NexusConfig) -> None:
    if value < 1 or value > cfg.max_channel_capacity:
        raise InvalidCapacity(
            f"Channel capacity must be between 1 and {cfg.max_channel_capacity} (got {value})"
        )


# ---------------------------------------------------------------------------
# Community channels
# ---------------------------------------------------------------------------
def create_community_channel(
    engine: Engine,
    community_id: int,
    name: str,
    max_participants: int,
    *,
    caller_id: str | None = None,
    cfg: NexusConfig | None = None,
) -> VoiceChannel:
    """Create a voice channel in *community_id*.

    The caller's community membership must already have been verified.
    """
    cfg = cfg or NexusConfig()
    _check_capacity(max_participants, cfg)
    with get_session(engine) as session:
        if session.get(Community, community_id) is None:
            raise NotFound("Community not found")

        channel = VoiceChannel(
            community_id=community_id,
            name=name,
            max_participants=max_participants,
            livekit_room=make_room_name(cfg.room_prefix, COMMUNITY, community_id),
            created_by=caller_id,
        )
        session.add(channel)
        try:
            session.flush()
        except IntegrityError:
            logger.error(
                "LiveKit room collision creating channel %r in community %d (room %s)",
                name, community_id, channel.livekit_room, exc_info=True,
            )
            raise InvariantViolation("Voice room identifier collision") from None
        session.refresh(channel)

    logger.info(
        "Created voice channel %d %r in community %d (max %d, room %s)",
        channel.id, channel.name, community_id, max_participants, channel.livekit_room,
    )
    return channel


def get_channel(engine: Engine, channel_id: int) -> VoiceChannel | None:
    with Session(engine, expire_on_commit=False) as session:
        return session.get(VoiceChannel, channel_id)


def list_community_channels(engine: Engine, community_id: int) -> list[tuple[VoiceChannel, int]]:
    """Channels of *community_id* with their live occupancy, oldest first."""
    with Session(engine) as session:
        rows = session.execute(
            select(VoiceChannel, func.count(VoiceChannelParticipant.id))
            .outerjoin(
                VoiceChannelParticipant,
                VoiceChannelParticipant.channel_id == VoiceChannel.id,
            )
            .where(VoiceChannel.community_id == community_id)
            .group_by(VoiceChannel.id)
            .order_by(VoiceChannel.created_at, VoiceChannel.id)
        ).all()
        return [(row[0], int(row[1])) for row in rows]


def delete_community_channel(engine: Engine, channel_id: int) -> bool:
    """Delete a community channel and its memberships."""
    with get_session(engine) as session:
        channel = session.get(VoiceChannel, channel_id)
        if channel is None:
            return False
        evicted = membership_service.evict_all(session, COMMUNITY, channel_id)
        session.delete(channel)

    logger.info("Deleted voice channel %d (evicted %d participants)", channel_id, evicted)
    return True


# ---------------------------------------------------------------------------
# Post channels
# ---------------------------------------------------------------------------
def create_post_voice_channel(
    engine: Engine,
    post_id: int,
    max_slots: int,
    *,
    cfg: NexusConfig | None = None,
) -> PostVoiceChannel:
    """Create the voice channel of *post_id*.

    A post has at most one voice channel.  A second attempt raises
    :class:`InvariantViolation` and leaves the first channel untouched.
    """
    cfg = cfg or NexusConfig()
    _check_capacity(max_slots, cfg)
    with get_session(engine) as session:
        post = session.get(Post, post_id)
        if post is None or post.deleted_at is not None:
            raise NotFound("Post not found")

        existing = session.scalar(
            select(PostVoiceChannel.id).where(PostVoiceChannel.post_id == post_id)
        )
        if existing is not None:
            logger.error(
                "Refusing second voice channel for post %d (existing channel %d)",
                post_id, existing,
            )
            raise InvariantViolation("Post already has a voice channel")

        channel = PostVoiceChannel(
            post_id=post_id,
            max_slots=max_slots,
            livekit_room=make_room_name(cfg.room_prefix, POST, post_id),
            is_active=True,
        )
        session.add(channel)
        try:
            session.flush()
        except IntegrityError:
            logger.error(
                "Unique violation creating voice channel for post %d", post_id, exc_info=True,
            )
            raise InvariantViolation("Post already has a voice channel") from None
        session.refresh(channel)

    logger.info(
        "Created post voice channel %d for post %d (%d slots, room %s)",
        channel.id, post_id, max_slots, channel.livekit_room,
    )
    return channel


def get_post_channel(engine: Engine, post_id: int) -> PostVoiceChannel | None:
    with Session(engine, expire_on_commit=False) as session:
        return session.scalar(
            select(PostVoiceChannel).where(PostVoiceChannel.post_id == post_id)
        )


def get_post_channel_by_id(engine: Engine, channel_id: int) -> PostVoiceChannel | None:
    with Session(engine, expire_on_commit=False) as session:
        return session.get(PostVoiceChannel, channel_id)


def deactivate_post_channel(engine: Engine, post_id: int) -> PostVoiceChannel | None:
    """Switch off the voice channel of *post_id* and empty it.

    The row is kept so its room identifier is never reissued.
    """
    with get_session(engine) as session:
        channel = session.scalar(
            select(PostVoiceChannel).where(PostVoiceChannel.post_id == post_id)
        )
        if channel is None:
            return None
        channel.is_active = False
        evicted = membership_service.evict_all(session, POST, channel.id)

    logger.info(
        "Deactivated post voice channel %d for post %d (evicted %d participants)",
        channel.id, post_id, evicted,
    )
    return channel
