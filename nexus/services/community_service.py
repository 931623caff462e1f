"""
nexus.services.community_service — Community Membership Checks
===============================================================

Read-only helpers the voice routes use to authorize callers.  Community
membership itself is managed elsewhere; this module never writes.
"""

from __future__ import annotations

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from nexus.database.models import Community, CommunityMember
from nexus.errors import Forbidden, NotFound


def is_member(session: Session, community_id: int, user_id: str) -> bool:
    row = session.scalar(
        select(CommunityMember.id).where(
            CommunityMember.community_id == community_id,
            CommunityMember.user_id == user_id,
        )
    )
    return row is not None


def require_member(engine: Engine, community_id: int, user_id: str) -> None:
    """Raise unless *user_id* belongs to *community_id*.

    Raises
    ------
    NotFound
        The community does not exist.
    Forbidden
        The user is not a member.
    """
    with Session(engine) as session:
        if session.get(Community, community_id) is None:
            raise NotFound("Community not found")
        if not is_member(session, community_id, user_id):
            raise Forbidden("You must be a member of this community")
