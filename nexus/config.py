"""
nexus.config — YAML Configuration Loader
=========================================

**Why this file exists:**
This module reads ``config.yaml`` for **voice tuning** settings (room
naming, default capacities, token lifetime).  Secrets — the database URL,
JWT secret and LiveKit credentials — never live in YAML; they come from the
environment (see :mod:`nexus.services.credential_service`).

Usage::

    from nexus.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.room_prefix)           # "nexus"
    print(cfg.token_ttl_minutes)     # 120
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Typed settings object — voice tuning only.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class NexusConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Room identifiers are "<room_prefix>-<kind>-<owner id>-<suffix>"
    room_prefix: str = "nexus"

    # Capacities offered when the client does not send one
    default_max_participants: int = 10
    default_max_slots: int = 4

    # Upper bound accepted for either capacity field
    max_channel_capacity: int = 50

    # Lifetime of an issued media credential
    token_ttl_minutes: int = 120


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> NexusConfig:
    """Read *path* and return a :class:`NexusConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    A missing file is not an error: every key has a default, so the
    service runs unconfigured with the built-in values.

    Raises
    ------
    ValueError
        If a capacity or TTL value is not a positive integer.
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(
            "Configuration file %s not found — using built-in defaults.",
            config_path.resolve(),
        )
        return NexusConfig()

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = NexusConfig()
    cfg = NexusConfig(
        room_prefix=str(raw.get("room_prefix", defaults.room_prefix)),
        default_max_participants=int(
            raw.get("default_max_participants", defaults.default_max_participants)
        ),
        default_max_slots=int(raw.get("default_max_slots", defaults.default_max_slots)),
        max_channel_capacity=int(
            raw.get("max_channel_capacity", defaults.max_channel_capacity)
        ),
        token_ttl_minutes=int(raw.get("token_ttl_minutes", defaults.token_ttl_minutes)),
    )

    for key in (
        "default_max_participants",
        "default_max_slots",
        "max_channel_capacity",
        "token_ttl_minutes",
    ):
        if getattr(cfg, key) < 1:
            raise ValueError(f"{key} must be a positive integer (got {getattr(cfg, key)})")
    if cfg.default_max_participants > cfg.max_channel_capacity:
        raise ValueError("default_max_participants exceeds max_channel_capacity")
    if cfg.default_max_slots > cfg.max_channel_capacity:
        raise ValueError("default_max_slots exceeds max_channel_capacity")

    return cfg
