"""Typed containers shared across the recording pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from talktopost.models import Draft, Post, Recording, RecordingStatus, Transcript


@dataclass(frozen=True)
class IngestOptions:
    """Per-request ingest switches; ``None`` means use the configured default."""

    auto_post: Optional[bool] = None
    system_prompt: Optional[str] = None


@dataclass(frozen=True)
class UploadTarget:
    recording: Recording
    upload_url: str


@dataclass
class IngestOutcome:
    recording: Recording
    transcript: Transcript
    draft: Draft
    post: Optional[Post] = None
    post_error: Optional[dict[str, Any]] = None
    status_history: list[RecordingStatus] = field(default_factory=list)


__all__ = ["IngestOptions", "IngestOutcome", "UploadTarget"]
