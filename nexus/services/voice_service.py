"""
nexus.services.voice_service — Join / Leave Orchestration
==========================================================

One join request runs these steps in a fixed order:

  1. Media service configured?        → ``MediaServiceUnconfigured``
  2. Channel exists and is active?    → ``ChannelNotFound``
  3. Lock the channel row, capacity?  → ``ChannelFull``
  4. Record membership (idempotent), re-count under the lock
  5. Mint the LiveKit credential      → ``CredentialIssuanceFailed``
  6. Commit

Steps 2–5 share one transaction.  Any failure rolls it back, so a caller who
cannot connect never leaves a participant row behind.  The row lock
(``SELECT … FOR UPDATE``) serializes joins per channel on PostgreSQL; the
post-insert re-count is the backstop on databases that ignore the lock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError

from nexus.database.engine import get_session
from nexus.database.models import User
from nexus.engine.kinds import VoiceKind
from nexus.errors import (
    ChannelFull,
    ChannelNotFound,
    CredentialIssuanceFailed,
    MediaServiceUnconfigured,
    NotFound,
)
from nexus.services import capacity, membership_service
from nexus.services.credential_service import CredentialIssuer, IssueErr

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Caller:
    """The authenticated user behind a request."""

    user_id: str
    display_name: str


@dataclass(frozen=True, slots=True)
class JoinGrant:
    token: str
    url: str
    room: str

    def to_dict(self) -> dict:
        return {"token": self.token, "url": self.url, "room": self.room}


def join_voice(
    engine: Engine,
    kind: VoiceKind,
    channel_id: int,
    caller: Caller,
    *,
    issuer: CredentialIssuer,
) -> JoinGrant:
    """Admit *caller* to a channel and return a connectable credential."""
    if not issuer.configured:
        raise MediaServiceUnconfigured()

    try:
        return _join_once(engine, kind, channel_id, caller, issuer)
    except IntegrityError:
        # Lost a race with a duplicate join for the same user; the row now
        # exists, so the second pass takes the already-a-member path.
        logger.info(
            "Concurrent join of user %s to %s channel %d, retrying as member",
            caller.user_id, kind.name, channel_id,
        )
        return _join_once(engine, kind, channel_id, caller, issuer)


def _join_once(
    engine: Engine,
    kind: VoiceKind,
    channel_id: int,
    caller: Caller,
    issuer: CredentialIssuer,
) -> JoinGrant:
    with get_session(engine) as session:
        channel = session.get(kind.channel_model, channel_id, with_for_update=True)
        if channel is None or not kind.is_open(channel):
            raise ChannelNotFound()
        if session.get(User, caller.user_id) is None:
            raise NotFound("User not found")

        limit = kind.capacity(channel)
        if not capacity.can_join(session, kind, channel, caller.user_id):
            logger.warning(
                "Rejected join of user %s to full %s channel %d (%d/%d)",
                caller.user_id, kind.name, channel_id,
                membership_service.occupancy(session, kind, channel_id), limit,
            )
            raise ChannelFull()

        created = membership_service.join(session, kind, channel_id, caller.user_id)
        if created:
            current = membership_service.occupancy(session, kind, channel_id)
            if current > limit:
                logger.warning(
                    "Over capacity after insert in %s channel %d (%d/%d), rolling back",
                    kind.name, channel_id, current, limit,
                )
                raise ChannelFull()

        result = issuer.issue_token(channel.livekit_room, caller.display_name, caller.user_id)
        if isinstance(result, IssueErr):
            if result.kind == "unconfigured":
                raise MediaServiceUnconfigured()
            raise CredentialIssuanceFailed()

        room = channel.livekit_room

    logger.info(
        "User %s %s %s channel %d (room %s)",
        caller.user_id, "joined" if created else "rejoined", kind.name, channel_id, room,
    )
    return JoinGrant(token=result.token, url=result.url, room=room)


def leave_voice(engine: Engine, kind: VoiceKind, channel_id: int, caller: Caller) -> bool:
    """Remove *caller* from a channel.  Never fails for a non-member."""
    return membership_service.leave(engine, kind, channel_id, caller.user_id)
