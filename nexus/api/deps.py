"""
nexus.api.deps — FastAPI dependency injection
==============================================
"""

from __future__ import annotations

import os
from datetime import timedelta
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from nexus.config import NexusConfig, load_config
from nexus.database.engine import create_db_engine
from nexus.services.credential_service import (
    CredentialIssuer,
    LiveKitCredentialIssuer,
    MediaConfig,
)
from nexus.services.voice_service import Caller

_WEAK_SECRETS = frozenset({
    "nexus-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> NexusConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_media_config() -> MediaConfig:
    return MediaConfig.from_env()


def get_issuer(
    media: MediaConfig = Depends(get_media_config),
    cfg: NexusConfig = Depends(get_config),
) -> CredentialIssuer:
    return LiveKitCredentialIssuer(media, ttl=timedelta(minutes=cfg.token_ttl_minutes))


def get_caller(
    authorization: Annotated[str | None, Header()] = None,
) -> Caller:
    """Resolve the bearer JWT into a :class:`Caller`.  Raises 401 if invalid.

    The identity layer signs tokens with ``sub`` (user id) and ``username``
    (display name) claims.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    return Caller(
        user_id=str(user_id),
        display_name=str(payload.get("username") or user_id),
    )
