"""
nexus.api.routes.post_voice — Per-post voice channels
======================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from nexus.api.deps import get_caller, get_config, get_engine, get_issuer
from nexus.config import NexusConfig
from nexus.database.models import PostVoiceChannel
from nexus.engine.kinds import POST
from nexus.services import channel_registry, membership_service, post_service, voice_service
from nexus.services.credential_service import CredentialIssuer
from nexus.services.membership_service import ChannelSnapshot
from nexus.services.voice_service import Caller

router = APIRouter(tags=["voice"])


class PostVoiceChannelCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_slots: int | None = Field(default=None, alias="maxSlots", ge=1)


def post_channel_dict(ch: PostVoiceChannel, snap: ChannelSnapshot | None = None) -> dict:
    participants = snap.participants if snap else []
    return {
        "id": ch.id,
        "postId": ch.post_id,
        "maxSlots": ch.max_slots,
        "livekitRoom": ch.livekit_room,
        "isActive": ch.is_active,
        "participantCount": len(participants),
        "participants": [p.to_dict() for p in participants],
        "createdAt": ch.created_at.isoformat() if ch.created_at else None,
    }


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
@router.post("/posts/{post_id}/voice-channel", status_code=201)
def create_post_voice_channel(
    post_id: int,
    body: PostVoiceChannelCreate,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
    cfg: NexusConfig = Depends(get_config),
):
    """Attach a voice channel to a post.  Only the author may do this."""
    max_slots = body.max_slots or cfg.default_max_slots
    post_service.require_author(engine, post_id, caller.user_id)
    channel = channel_registry.create_post_voice_channel(engine, post_id, max_slots, cfg=cfg)
    return post_channel_dict(channel)


@router.get("/posts/{post_id}/voice-channel")
def get_post_voice_channel(post_id: int, engine=Depends(get_engine)):
    """Return the post's channel with participants, or ``null``."""
    channel = channel_registry.get_post_channel(engine, post_id)
    if channel is None:
        return None
    return post_channel_dict(channel, membership_service.snapshot(engine, POST, channel.id))


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------
@router.post("/post-voice-channels/{channel_id}/join")
def join_post_voice_channel(
    channel_id: int,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
    issuer: CredentialIssuer = Depends(get_issuer),
):
    grant = voice_service.join_voice(engine, POST, channel_id, caller, issuer=issuer)
    return grant.to_dict()


@router.post("/post-voice-channels/{channel_id}/leave", status_code=204)
def leave_post_voice_channel(
    channel_id: int,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
):
    voice_service.leave_voice(engine, POST, channel_id, caller)
    return None
