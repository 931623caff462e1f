"""
nexus.services.capacity — Capacity Gate
========================================

The single authority for "is there room".  A user who is already inside a
channel may always "join" again, so a full room never breaks idempotent
joins.

Concurrency: the gate itself is a pure read.  The join flow in
:mod:`nexus.services.voice_service` locks the channel row before calling it
and re-counts after inserting, which closes the last-seat race on
PostgreSQL instead of tolerating overbooking.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from nexus.engine.kinds import VoiceKind
from nexus.services import membership_service


def has_room(current: int, capacity: int, *, already_member: bool) -> bool:
    return already_member or current < capacity


def can_join(session: Session, kind: VoiceKind, channel: Any, user_id: str) -> bool:
    """Return whether *user_id* may take (or keep) a seat in *channel*."""
    already_member = membership_service.is_participant(session, kind, channel.id, user_id)
    if already_member:
        return True
    current = membership_service.occupancy(session, kind, channel.id)
    return has_room(current, kind.capacity(channel), already_member=False)
