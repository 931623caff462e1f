"""
nexus.errors — Voice Subsystem Error Taxonomy
==============================================

Every failure the voice core can report is one of these classes.  Each
carries the HTTP status it maps to, so the API layer renders them with a
single exception handler instead of per-route ``try`` blocks.
"""

from __future__ import annotations

__all__ = [
    "VoiceError",
    "NotFound",
    "ChannelNotFound",
    "Forbidden",
    "ChannelFull",
    "InvalidCapacity",
    "MediaServiceUnconfigured",
    "CredentialIssuanceFailed",
    "InvariantViolation",
]


class VoiceError(Exception):
    """Base class for all expected voice-core failures."""

    status_code: int = 500
    code: str = "voice_error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return "Voice operation failed"

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class NotFound(VoiceError):
    """A referenced channel, post, community or user does not exist."""

    status_code = 404
    code = "not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Not found"


class ChannelNotFound(NotFound):
    code = "channel_not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Voice channel not found"


class Forbidden(VoiceError):
    """Caller is not allowed to perform the action (e.g. not a member)."""

    status_code = 403
    code = "forbidden"

    @classmethod
    def default_message(cls) -> str:
        return "Not allowed"


class ChannelFull(VoiceError):
    status_code = 400
    code = "channel_full"

    @classmethod
    def default_message(cls) -> str:
        return "Voice channel is full"


class InvalidCapacity(VoiceError):
    """A channel capacity outside ``1..max_channel_capacity``."""

    status_code = 422
    code = "invalid_capacity"

    @classmethod
    def default_message(cls) -> str:
        return "Channel capacity must be a positive integer"


class MediaServiceUnconfigured(VoiceError):
    """The deployment has no LiveKit credentials."""

    status_code = 400
    code = "media_unconfigured"

    @classmethod
    def default_message(cls) -> str:
        return "Voice chat is not configured"


class CredentialIssuanceFailed(VoiceError):
    """Minting the media credential failed; the client may retry."""

    status_code = 502
    code = "credential_issuance_failed"

    @classmethod
    def default_message(cls) -> str:
        return "Could not issue a voice credential, try again"


class InvariantViolation(VoiceError):
    """Duplicate post channel or room-identifier collision.

    Indicates a bug or a lost race.  Always logged at ERROR by the raiser.
    """

    status_code = 409
    code = "invariant_violation"

    @classmethod
    def default_message(cls) -> str:
        return "Conflicting voice channel state"
