"""
nexus.services.post_service — Posts and Their Voice Channels
=============================================================

A post with voice enabled gets its :class:`PostVoiceChannel` as a
**best-effort second step**: the post is committed first, then the channel
is created.  If channel creation fails the post still stands; the failure
is logged and reported back in :attr:`PostResult.voice_error` so the
client can say "posted, but voice is unavailable".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Engine

from nexus.config import NexusConfig
from nexus.database.engine import get_session
from nexus.database.models import Community, Post, PostVoiceChannel
from nexus.errors import Forbidden, NotFound, VoiceError
from nexus.services import channel_registry, community_service

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PostResult:
    post: Post
    voice_channel: PostVoiceChannel | None = None
    voice_error: str | None = None


def create_post(
    engine: Engine,
    *,
    caller_id: str,
    community_id: int,
    content: str,
    enable_voice: bool = False,
    max_slots: int | None = None,
    cfg: NexusConfig | None = None,
) -> PostResult:
    """Create a post, then (optionally) its voice channel."""
    cfg = cfg or NexusConfig()
    with get_session(engine) as session:
        if session.get(Community, community_id) is None:
            raise NotFound("Community not found")
        if not community_service.is_member(session, community_id, caller_id):
            raise Forbidden("You must be a member of this community to post")
        post = Post(community_id=community_id, user_id=caller_id, content=content)
        session.add(post)
        session.flush()
        session.refresh(post)

    logger.info("User %s created post %d in community %d", caller_id, post.id, community_id)
    result = PostResult(post=post)
    if not enable_voice:
        return result

    slots = max_slots if max_slots is not None else cfg.default_max_slots
    try:
        result.voice_channel = channel_registry.create_post_voice_channel(
            engine, post.id, slots, cfg=cfg,
        )
    except VoiceError as exc:
        result.voice_error = exc.message
        logger.warning(
            "Post %d created without voice: %s", post.id, exc.message,
        )
    except Exception:
        result.voice_error = "Failed to create voice channel"
        logger.exception("Post %d created without voice: unexpected error", post.id)
    return result


def get_post(engine: Engine, post_id: int) -> Post | None:
    """Return the post unless it is missing or deleted."""
    with get_session(engine) as session:
        post = session.get(Post, post_id)
        if post is None or post.deleted_at is not None:
            return None
        return post


def require_author(engine: Engine, post_id: int, caller_id: str) -> Post:
    post = get_post(engine, post_id)
    if post is None:
        raise NotFound("Post not found")
    if post.user_id != caller_id:
        raise Forbidden("Only the post author can do that")
    return post


def delete_post(engine: Engine, *, caller_id: str, post_id: int) -> None:
    """Soft-delete a post and switch off its voice channel."""
    require_author(engine, post_id, caller_id)
    with get_session(engine) as session:
        post = session.get(Post, post_id)
        post.deleted_at = datetime.now(UTC)

    channel = channel_registry.deactivate_post_channel(engine, post_id)
    logger.info(
        "User %s deleted post %d%s",
        caller_id, post_id, " (voice channel deactivated)" if channel else "",
    )
