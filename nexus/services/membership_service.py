"""
nexus.services.membership_service — Voice Membership Tracker
=============================================================

The only code that writes participant rows.  Joins and leaves are
idempotent so clients can retry freely; occupancy is always a live
``COUNT(*)`` and never cached.

Session-level functions (``join``, ``occupancy``, ``list_participants``,
``evict_all``) run inside the caller's transaction so the join flow can
lock, count, insert and re-count atomically.  ``leave`` and ``snapshot``
open their own session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Engine, delete, func, select
from sqlalchemy.orm import Session

from nexus.database.engine import get_session
from nexus.database.models import User
from nexus.engine.kinds import VoiceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParticipantView:
    """A participant row plus the public slice of the user record."""

    user_id: str
    username: str
    avatar: str | None
    joined_at: datetime

    def to_dict(self) -> dict:
        return {
            "user": {
                "id": self.user_id,
                "username": self.username,
                "avatar": self.avatar,
            },
            "joinedAt": self.joined_at.isoformat() if self.joined_at else None,
        }


@dataclass(frozen=True, slots=True)
class ChannelSnapshot:
    participants: list[ParticipantView]

    @property
    def participant_count(self) -> int:
        return len(self.participants)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def is_participant(session: Session, kind: VoiceKind, channel_id: int, user_id: str) -> bool:
    model = kind.participant_model
    row = session.scalar(
        select(model.id).where(model.channel_id == channel_id, model.user_id == user_id)
    )
    return row is not None


def occupancy(session: Session, kind: VoiceKind, channel_id: int) -> int:
    """Live number of participant rows for *channel_id*."""
    model = kind.participant_model
    return session.scalar(
        select(func.count()).select_from(model).where(model.channel_id == channel_id)
    ) or 0


def list_participants(session: Session, kind: VoiceKind, channel_id: int) -> list[ParticipantView]:
    """Participants of *channel_id*, oldest first.

    Only ``id``, ``username`` and ``avatar`` are selected from ``users``;
    email and password hash never leave the user table.
    """
    model = kind.participant_model
    rows = session.execute(
        select(User.id, User.username, User.avatar, model.joined_at)
        .join(User, User.id == model.user_id)
        .where(model.channel_id == channel_id)
        .order_by(model.joined_at, model.id)
    ).all()
    return [
        ParticipantView(user_id=r[0], username=r[1], avatar=r[2], joined_at=r[3])
        for r in rows
    ]


def snapshot(engine: Engine, kind: VoiceKind, channel_id: int) -> ChannelSnapshot:
    """List participants once and derive the count from the same read."""
    with Session(engine) as session:
        return ChannelSnapshot(participants=list_participants(session, kind, channel_id))


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def join(session: Session, kind: VoiceKind, channel_id: int, user_id: str) -> bool:
    """Record *user_id* in *channel_id*.

    Returns ``True`` when a row was inserted, ``False`` when the user was
    already a participant.  Flushes but does not commit.  If another request
    inserts the same pair between the check and the flush, the unique
    constraint raises :class:`~sqlalchemy.exc.IntegrityError`; the join flow
    retries once and then takes the already-a-member path.
    """
    if is_participant(session, kind, channel_id, user_id):
        logger.debug("User %s already in %s channel %d", user_id, kind.name, channel_id)
        return False

    session.add(kind.participant_model(
        channel_id=channel_id,
        user_id=user_id,
        joined_at=datetime.now(UTC),
    ))
    session.flush()
    return True


def leave(engine: Engine, kind: VoiceKind, channel_id: int, user_id: str) -> bool:
    """Remove *user_id* from *channel_id*.  Leaving twice is harmless."""
    model = kind.participant_model
    with get_session(engine) as session:
        result = session.execute(
            delete(model).where(model.channel_id == channel_id, model.user_id == user_id)
        )
        removed = (result.rowcount or 0) > 0

    if removed:
        logger.info("User %s left %s channel %d", user_id, kind.name, channel_id)
    return removed


def evict_all(session: Session, kind: VoiceKind, channel_id: int) -> int:
    """Delete every participant row of *channel_id*; returns how many."""
    model = kind.participant_model
    result = session.execute(delete(model).where(model.channel_id == channel_id))
    return result.rowcount or 0
