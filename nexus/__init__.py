"""
Nexus Voice — Voice Rooms for Gaming Communities
=================================================
Tracks who occupies which community or post voice room, enforces room
capacity, brokers join/leave, and issues scoped LiveKit credentials so
clients can connect straight to the media service.

Package layout::

    nexus/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # Voice error taxonomy (each maps to an HTTP status)
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   └── models.py      # ORM models (channels, participants, posts …)
    ├── engine/
    │   └── kinds.py       # VoiceKind descriptors: community vs post
    ├── services/
    │   ├── channel_registry.py    # Create / look up / deactivate channels
    │   ├── membership_service.py  # Idempotent join/leave, occupancy
    │   ├── capacity.py            # "Is there room?"
    │   ├── credential_service.py  # LiveKit token minting
    │   ├── voice_service.py       # Ordered join flow
    │   ├── community_service.py   # Membership checks
    │   └── post_service.py        # Posts + best-effort voice channel
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine, config, caller (JWT) dependencies
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
