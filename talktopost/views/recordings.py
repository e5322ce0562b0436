"""Schemas for recordings and the artefacts the pipeline attaches to them."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from talktopost.models import Draft, Post, Recording


class RecordingCreateRequest(BaseModel):
    content_type: Optional[str] = Field(default=None, max_length=64)


class RecordingCreateResponse(BaseModel):
    recording_id: UUID
    upload_url: str
    storage_key: str


class TranscriptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    confidence: Optional[float] = None
    language: Optional[str] = None
    created_at: datetime


class TweetResponse(BaseModel):
    text: str
    char_count: int


class DraftResponse(BaseModel):
    draft_id: UUID
    recording_id: UUID
    mode: str
    tweets: List[TweetResponse]
    original_text: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, draft: Draft) -> "DraftResponse":
        return cls(
            draft_id=draft.id,
            recording_id=draft.recording_id,
            mode=draft.mode.value if hasattr(draft.mode, "value") else str(draft.mode),
            tweets=[TweetResponse(**tweet) for tweet in draft.thread or []],
            original_text=draft.original_text,
            created_at=draft.created_at,
            updated_at=draft.updated_at,
        )


class PostSummary(BaseModel):
    id: UUID
    tweet_ids: List[str]
    posted_at: Optional[datetime] = None
    error: Optional[str] = None
    retry_count: int = 0

    @classmethod
    def from_model(cls, post: Post) -> "PostSummary":
        return cls(
            id=post.id,
            tweet_ids=list(post.twitter_tweet_ids or []),
            posted_at=post.posted_at,
            error=post.error,
            retry_count=post.retry_count or 0,
        )


class RecordingResponse(BaseModel):
    id: UUID
    status: str
    storage_key: str
    content_type: str
    file_size: Optional[int] = None
    duration_seconds: Optional[float] = None
    created_at: datetime
    updated_at: datetime
    transcript: Optional[TranscriptResponse] = None
    draft: Optional[DraftResponse] = None
    posts: List[PostSummary] = Field(default_factory=list)

    @classmethod
    def from_model(cls, recording: Recording) -> "RecordingResponse":
        """Build from a recording whose children were eagerly loaded."""

        return cls(
            id=recording.id,
            status=recording.status.value,
            storage_key=recording.storage_key,
            content_type=recording.content_type,
            file_size=recording.file_size,
            duration_seconds=recording.duration_seconds,
            created_at=recording.created_at,
            updated_at=recording.updated_at,
            transcript=(
                TranscriptResponse.model_validate(recording.transcript)
                if recording.transcript
                else None
            ),
            draft=DraftResponse.from_model(recording.draft) if recording.draft else None,
            posts=[PostSummary.from_model(post) for post in recording.posts],
        )


class RecordingListResponse(BaseModel):
    recordings: List[RecordingResponse]


class IngestRequest(BaseModel):
    auto_post: Optional[bool] = None
    system_prompt: Optional[str] = None


class IngestResponse(BaseModel):
    recording_id: UUID
    status: str
    status_history: List[str]
    transcript: TranscriptResponse
    draft: DraftResponse
    post: Optional[PostSummary] = None
    post_error: Optional[dict[str, Any]] = None


class RewriteRequest(BaseModel):
    text: str = Field(..., min_length=1)
    max_length: int = Field(default=280, ge=4, le=25000)


class RewriteResponse(BaseModel):
    rewritten_text: str
    original_length: int
    new_length: int
    fallback: bool = False


__all__ = [
    "DraftResponse",
    "IngestRequest",
    "IngestResponse",
    "PostSummary",
    "RecordingCreateRequest",
    "RecordingCreateResponse",
    "RecordingListResponse",
    "RecordingResponse",
    "RewriteRequest",
    "RewriteResponse",
    "TranscriptResponse",
    "TweetResponse",
]
