"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import SimpleNamespace

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of nexus.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from nexus.database.engine import create_db_engine, init_db  # noqa: E402
from nexus.database.models import Community, CommunityMember, Post, User  # noqa: E402
from nexus.services.credential_service import IssueErr, IssueOk, MediaConfig  # noqa: E402

TEST_MEDIA = MediaConfig(
    api_key="APItestkey",
    api_secret="livekit-test-secret-" + "s" * 32,
    url="wss://voice.test.example",
)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Nexus tables.

    Uses StaticPool so every session (and the TestClient's worker threads)
    share the same in-memory database.
    """
    engine = create_db_engine("sqlite://")
    init_db(engine)
    return engine


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------
@pytest.fixture
def world(db_engine: Engine) -> SimpleNamespace:
    """One community, four users and a post.

    ``alice``, ``bob`` and ``carol`` are community members; ``dave`` is not.
    ``alice`` authored the post.
    """
    with Session(db_engine) as session:
        for uid, name in (("u-alice", "alice"), ("u-bob", "bob"),
                          ("u-carol", "carol"), ("u-dave", "dave")):
            session.add(User(
                id=uid,
                username=name,
                avatar=f"https://cdn.test/{name}.png",
                email=f"{name}@mail.test",
                password_hash=f"argon2$hash-of-{name}",
            ))
        community = Community(name="Raid Night", game="Destiny 2")
        session.add(community)
        session.flush()
        for uid in ("u-alice", "u-bob", "u-carol"):
            session.add(CommunityMember(community_id=community.id, user_id=uid))
        post = Post(community_id=community.id, user_id="u-alice", content="LFG raid tonight")
        session.add(post)
        session.commit()
        return SimpleNamespace(
            community_id=community.id,
            post_id=post.id,
            alice="u-alice",
            bob="u-bob",
            carol="u-carol",
            dave="u-dave",
        )


# ---------------------------------------------------------------------------
# Credential issuer test double
# ---------------------------------------------------------------------------
@dataclass
class FakeIssuer:
    """Records calls and returns canned results instead of signing."""

    configured: bool = True
    fail: bool = False
    calls: list[tuple[str, str, str]] = field(default_factory=list)

    def issue_token(self, room: str, display_name: str, user_id: str):
        self.calls.append((room, display_name, user_id))
        if not self.configured:
            return IssueErr("unconfigured")
        if self.fail:
            return IssueErr("failed", "signing backend exploded")
        return IssueOk(token=f"tok:{room}:{user_id}", url="wss://voice.test.example")


@pytest.fixture
def issuer() -> FakeIssuer:
    return FakeIssuer()


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------
def make_token(sub: str, username: str | None = None) -> str:
    """Create a user JWT.  Usable as both a fixture helper and a factory."""
    import jwt

    from nexus.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": username or sub},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def auth():
    """Factory: ``auth("u-alice")`` → Authorization header dict."""
    def _auth(user_id: str) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id)}"}
    return _auth


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------
@pytest.fixture
def client(db_engine: Engine, issuer: FakeIssuer):
    """FastAPI TestClient bound to the SQLite engine and the fake issuer."""
    from fastapi.testclient import TestClient

    # Override the dependency objects the routers captured at import time.
    from nexus.api.routes import community_voice, livekit
    from nexus.api.main import app
    from nexus.config import NexusConfig

    app.dependency_overrides[community_voice.get_engine] = lambda: db_engine
    app.dependency_overrides[community_voice.get_config] = lambda: NexusConfig()
    app.dependency_overrides[community_voice.get_issuer] = lambda: issuer
    app.dependency_overrides[livekit.get_media_config] = lambda: TEST_MEDIA
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
