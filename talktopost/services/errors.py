"""Error taxonomy shared by services, the pipeline and the HTTP layer.

Every error carries the HTTP status it maps to and whether the client has to
reconnect its Twitter account before retrying. Posting errors additionally
carry ``progress``: the tweet ids published before the thread aborted and the
number of rate-limit retries performed. ``progress`` stays ``None`` when the
failure happened before any provider call.
"""

from __future__ import annotations

from typing import Any


class TalkToPostError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_message: str = "Unexpected error"
    needs_reconnect: bool = False

    def __init__(self, message: str | None = None, *, detail: Any = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        self.progress: Any = None
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code,
            "needsReconnect": self.needs_reconnect,
        }


class NotFound(TalkToPostError):
    status_code = 404
    default_message = "Resource not found"


class ValidationError(TalkToPostError):
    status_code = 400
    default_message = "Invalid request"


class AlreadyProcessing(TalkToPostError):
    status_code = 409
    default_message = "Recording is already being processed"


class InvalidTransition(TalkToPostError):
    status_code = 409
    default_message = "Invalid recording status transition"


class ProviderError(TalkToPostError):
    status_code = 502
    default_message = "Upstream provider failed"


class TranscriptionFailed(ProviderError):
    default_message = "Transcription failed"


class DraftingFailed(ProviderError):
    default_message = "Drafting failed"


class PostingFailed(ProviderError):
    default_message = "Failed to post to Twitter"


class StorageError(TalkToPostError):
    status_code = 502
    default_message = "Storage operation failed"


class AuthExpired(TalkToPostError):
    status_code = 401
    default_message = "Twitter authentication expired. Please reconnect your account."
    needs_reconnect = True


class RefreshFailed(AuthExpired):
    default_message = "Could not refresh the Twitter access token"


class NoAccountConnected(TalkToPostError):
    status_code = 400
    default_message = "No Twitter account connected"
    needs_reconnect = True


class StateMismatch(TalkToPostError):
    status_code = 400
    default_message = "OAuth state mismatch"


class PermissionDenied(TalkToPostError):
    status_code = 403
    default_message = "Twitter API access denied. Please check your app permissions."


class RateLimited(TalkToPostError):
    status_code = 429
    default_message = "Twitter rate limit exceeded. Please try again later."


__all__ = [
    "TalkToPostError",
    "NotFound",
    "ValidationError",
    "AlreadyProcessing",
    "InvalidTransition",
    "ProviderError",
    "TranscriptionFailed",
    "DraftingFailed",
    "PostingFailed",
    "StorageError",
    "AuthExpired",
    "RefreshFailed",
    "NoAccountConnected",
    "StateMismatch",
    "PermissionDenied",
    "RateLimited",
]
