"""
nexus.services.credential_service — LiveKit Credential Issuer
==============================================================

Turns a permitted membership into a connectable credential.  The token is a
LiveKit access JWT scoped to exactly one room and one identity, with
publish, subscribe and data rights — never room admin or room creation.

LiveKit credentials come from the environment:

* ``LIVEKIT_API_KEY``
* ``LIVEKIT_API_SECRET``
* ``LIVEKIT_URL`` — the ``wss://`` endpoint clients connect to

If any of them is missing the deployment is *unconfigured* and every issue
call returns :class:`IssueErr` with kind ``"unconfigured"``.  Tokens are
signed locally by ``livekit-api``, so issuing never performs network I/O.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Literal, Protocol

from livekit import api

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=2)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class MediaConfig:
    api_key: str = ""
    api_secret: str = ""
    url: str = ""

    @classmethod
    def from_env(cls) -> MediaConfig:
        return cls(
            api_key=os.getenv("LIVEKIT_API_KEY", "").strip(),
            api_secret=os.getenv("LIVEKIT_API_SECRET", "").strip(),
            url=os.getenv("LIVEKIT_URL", "").strip(),
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_secret and self.url)

    def public_dict(self) -> dict:
        """What the client may know: never the key or secret."""
        return {"configured": self.configured, "url": self.url or None}


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class IssueOk:
    token: str
    url: str


@dataclass(frozen=True, slots=True)
class IssueErr:
    kind: Literal["unconfigured", "failed"]
    detail: str = ""


IssueResult = IssueOk | IssueErr


class CredentialIssuer(Protocol):
    @property
    def configured(self) -> bool: ...

    def issue_token(self, room: str, display_name: str, user_id: str) -> IssueResult: ...


# ---------------------------------------------------------------------------
# LiveKit implementation
# ---------------------------------------------------------------------------
class LiveKitCredentialIssuer:
    """Mint LiveKit access tokens for a single (room, identity) pair."""

    def __init__(self, media: MediaConfig, ttl: timedelta = DEFAULT_TOKEN_TTL) -> None:
        self.media = media
        self.ttl = ttl

    @property
    def configured(self) -> bool:
        return self.media.configured

    def issue_token(self, room: str, display_name: str, user_id: str) -> IssueResult:
        if not self.configured:
            return IssueErr("unconfigured", "LiveKit API credentials not configured")

        grants = api.VideoGrants(
            room_join=True,
            room=room,
            can_publish=True,
            can_subscribe=True,
            can_publish_data=True,
        )
        try:
            token = (
                api.AccessToken(self.media.api_key, self.media.api_secret)
                .with_identity(user_id)
                .with_name(display_name)
                .with_ttl(self.ttl)
                .with_grants(grants)
                .to_jwt()
            )
        except Exception as exc:
            logger.error(
                "LiveKit token signing failed for room %s / user %s",
                room, user_id, exc_info=True,
            )
            return IssueErr("failed", str(exc))

        return IssueOk(token=token, url=self.media.url)
