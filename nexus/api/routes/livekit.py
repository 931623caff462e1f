"""
nexus.api.routes.livekit — Media service status
================================================

Clients poll this once to decide whether to render voice controls at all.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from nexus.api.deps import get_media_config
from nexus.services.credential_service import MediaConfig

router = APIRouter(tags=["livekit"])


@router.get("/livekit/config")
def livekit_config(media: MediaConfig = Depends(get_media_config)):
    return media.public_dict()
