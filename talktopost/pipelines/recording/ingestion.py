"""Ingestion stage (Stage 01): audio type resolution and storage keys."""

from __future__ import annotations

import time
from uuid import UUID

from talktopost.services import errors
from talktopost.services.transcribe import AUDIO_EXTENSIONS

DEFAULT_AUDIO_TYPE = "audio/webm"


def resolve_content_type(content_type: str | None) -> str:
    """Normalise the declared audio type, defaulting to WebM."""

    if not content_type:
        return DEFAULT_AUDIO_TYPE
    normalised = content_type.split(";", 1)[0].strip().lower()
    if normalised not in AUDIO_EXTENSIONS:
        raise errors.ValidationError(f"Unsupported audio type '{content_type}'")
    return normalised


def recording_storage_key(user_id: UUID, content_type: str) -> str:
    extension = AUDIO_EXTENSIONS.get(content_type, "webm")
    return f"{user_id}/{int(time.time() * 1000)}-recording.{extension}"


__all__ = ["AUDIO_EXTENSIONS", "recording_storage_key", "resolve_content_type"]
