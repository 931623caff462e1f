"""
nexus.engine.kinds — Voice Channel Kinds
=========================================

Community voice channels and post voice channels are the same machine:
a channel row with a capacity and a LiveKit room, plus a participant table.
A :class:`VoiceKind` describes one flavour — which ORM classes back it, which
column holds the capacity, and whether the channel can be switched off — so
the registry, membership tracker, capacity gate and join flow are written
once and parameterized by kind.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Any

from nexus.database.models import (
    PostVoiceChannel,
    PostVoiceChannelParticipant,
    VoiceChannel,
    VoiceChannelParticipant,
)

__all__ = ["VoiceKind", "COMMUNITY", "POST", "make_room_name"]


@dataclass(frozen=True, slots=True)
class VoiceKind:
    """Descriptor for one family of voice channels."""

    name: str
    channel_model: type
    participant_model: type
    owner_attr: str
    capacity_attr: str
    # Channels of this kind carry an ``is_active`` flag that gates joins
    deactivatable: bool = False

    def capacity(self, channel: Any) -> int:
        return getattr(channel, self.capacity_attr)

    def owner_id(self, channel: Any) -> int:
        return getattr(channel, self.owner_attr)

    def is_open(self, channel: Any) -> bool:
        """Whether *channel* accepts joins at all (capacity aside)."""
        return not self.deactivatable or bool(channel.is_active)


COMMUNITY = VoiceKind(
    name="community",
    channel_model=VoiceChannel,
    participant_model=VoiceChannelParticipant,
    owner_attr="community_id",
    capacity_attr="max_participants",
)

POST = VoiceKind(
    name="post",
    channel_model=PostVoiceChannel,
    participant_model=PostVoiceChannelParticipant,
    owner_attr="post_id",
    capacity_attr="max_slots",
    deactivatable=True,
)


def make_room_name(prefix: str, kind: VoiceKind, owner_id: int) -> str:
    """Build a fresh LiveKit room identifier.

    ``<prefix>-<kind>-<owner>-<epoch ms>-<6 hex>``.  The timestamp and the
    random tail make two channels for the same owner distinct; uniqueness is
    still enforced by the database.
    """
    return f"{prefix}-{kind.name}-{owner_id}-{time.time_ns() // 1_000_000}-{secrets.token_hex(3)}"
