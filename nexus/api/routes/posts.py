"""
nexus.api.routes.posts — Post creation with optional voice
===========================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from nexus.api.deps import get_caller, get_config, get_engine
from nexus.api.routes.post_voice import post_channel_dict
from nexus.config import NexusConfig
from nexus.services import post_service
from nexus.services.voice_service import Caller

router = APIRouter(tags=["posts"])


class PostCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    community_id: int = Field(alias="communityId")
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=5000)]
    enable_voice: bool = Field(default=False, alias="enableVoice")
    max_slots: int | None = Field(default=None, alias="maxSlots", ge=1)


@router.post("/posts", status_code=201)
def create_post(
    body: PostCreate,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
    cfg: NexusConfig = Depends(get_config),
):
    """Create a post.  Voice channel failure does not fail the post."""
    if body.max_slots is not None and body.max_slots > cfg.max_channel_capacity:
        raise HTTPException(422, f"maxSlots must be at most {cfg.max_channel_capacity}")
    result = post_service.create_post(
        engine,
        caller_id=caller.user_id,
        community_id=body.community_id,
        content=body.content,
        enable_voice=body.enable_voice,
        max_slots=body.max_slots,
        cfg=cfg,
    )
    post = result.post
    return {
        "id": post.id,
        "communityId": post.community_id,
        "userId": post.user_id,
        "content": post.content,
        "createdAt": post.created_at.isoformat() if post.created_at else None,
        "voiceChannel": (
            post_channel_dict(result.voice_channel) if result.voice_channel else None
        ),
        "voiceError": result.voice_error,
    }


@router.delete("/posts/{post_id}", status_code=204)
def delete_post(
    post_id: int,
    caller: Caller = Depends(get_caller),
    engine=Depends(get_engine),
):
    post_service.delete_post(engine, caller_id=caller.user_id, post_id=post_id)
    return None
