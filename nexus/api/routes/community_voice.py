"""
nexus.api.routes.community_voice — Community voice channels
============================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from nexus.api.deps import get_caller, get_config, get_engine, get_issuer
from nexus.config import NexusConfig
from nexus.database.models import VoiceChannel
from nexus.engine.kinds import COMMUNITY
from nexus.errors import ChannelNotFound
from nexus.services import channel_registry, community_service, voice_service
from nexus.services.credential_service import CredentialIssuer
from nexus.services.voice_service import Caller

router = APIRouter(tags=["voice"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class VoiceChannelCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    max_participants: int | None = Field(default=None, alias="maxParticipants", ge=1)


def channel_dict(ch: VoiceChannel, participant_count: int) -> dict:
    return {
        "id": ch.id,
        "communityId": ch.community_id,
        "name": ch.name,
        "maxParticipants": ch.max_participants,
        "livekitRoom": ch.livekit_room,
        "participantCount": participant_count,
        "createdBy": ch.created_by,
        "createdAt": ch.created_at.isoformat() if ch.created_at else None,
    }


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
@router.post("/communities/{community_id}/voice-channels", status_code=201)
def create_voice_channel(
    community_id: int,
    body: VoiceChannelCreate,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
    cfg: NexusConfig = Depends(get_config),
):
    """Create a voice channel.  Only community members may do this."""
    max_participants = body.max_participants or cfg.default_max_participants
    community_service.require_member(engine, community_id, caller.user_id)
    channel = channel_registry.create_community_channel(
        engine,
        community_id,
        body.name,
        max_participants,
        caller_id=caller.user_id,
        cfg=cfg,
    )
    return channel_dict(channel, 0)


@router.get("/communities/{community_id}/voice-channels")
def list_voice_channels(community_id: int, engine=Depends(get_engine)):
    """Return the community's channels with live occupancy."""
    return [
        channel_dict(ch, count)
        for ch, count in channel_registry.list_community_channels(engine, community_id)
    ]


@router.delete("/voice-channels/{channel_id}", status_code=204)
def delete_voice_channel(
    channel_id: int,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
):
    channel = channel_registry.get_channel(engine, channel_id)
    if channel is None:
        raise ChannelNotFound()
    community_service.require_member(engine, channel.community_id, caller.user_id)
    channel_registry.delete_community_channel(engine, channel_id)
    return None


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------
@router.post("/voice-channels/{channel_id}/join")
def join_voice_channel(
    channel_id: int,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
    issuer: CredentialIssuer = Depends(get_issuer),
):
    """Take a seat and receive ``{token, url, room}`` for LiveKit."""
    grant = voice_service.join_voice(engine, COMMUNITY, channel_id, caller, issuer=issuer)
    return grant.to_dict()


@router.post("/voice-channels/{channel_id}/leave", status_code=204)
def leave_voice_channel(
    channel_id: int,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
):
    voice_service.leave_voice(engine, COMMUNITY, channel_id, caller)
    return None
