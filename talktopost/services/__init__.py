"""Service layer for storage, speech, drafting and Twitter integrations."""

from .errors import TalkToPostError
from .storage import StorageGateway
from .transcribe import TranscribeService, TranscriptionResult

__all__ = [
    "StorageGateway",
    "TalkToPostError",
    "TranscribeService",
    "TranscriptionResult",
]
