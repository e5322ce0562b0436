"""SQLAlchemy models."""

from .account import DISCONNECTED_TOKEN, Account  # noqa: F401
from .attachment import Attachment, MediaType  # noqa: F401
from .base import Base, ensure_utc, utcnow
from .draft import Draft, DraftMode  # noqa: F401
from .oauth_session import OAuthSession  # noqa: F401
from .post import Post  # noqa: F401
from .recording import Recording, RecordingStatus  # noqa: F401
from .transcript import Transcript  # noqa: F401
from .user import User  # noqa: F401

__all__ = [
    "Base",
    "User",
    "Recording",
    "RecordingStatus",
    "Transcript",
    "Draft",
    "DraftMode",
    "Post",
    "Account",
    "DISCONNECTED_TOKEN",
    "Attachment",
    "MediaType",
    "OAuthSession",
    "ensure_utc",
    "utcnow",
]
