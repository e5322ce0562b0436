"""Pydantic schemas used as views."""

from .activity import ActivityDayResponse, ActivityResponse, DateRange
from .attachments import AttachmentResponse
from .auth import DisconnectResponse, TwitterAccountInfo, TwitterStatusResponse
from .common import ErrorResponse
from .health import HealthResponse
from .posts import PostRequest, PostResponse
from .recordings import (
    DraftResponse,
    IngestRequest,
    IngestResponse,
    PostSummary,
    RecordingCreateRequest,
    RecordingCreateResponse,
    RecordingListResponse,
    RecordingResponse,
    RewriteRequest,
    RewriteResponse,
    TranscriptResponse,
    TweetResponse,
)

__all__ = [
    "ActivityDayResponse",
    "ActivityResponse",
    "AttachmentResponse",
    "DateRange",
    "DisconnectResponse",
    "DraftResponse",
    "ErrorResponse",
    "HealthResponse",
    "IngestRequest",
    "IngestResponse",
    "PostRequest",
    "PostResponse",
    "PostSummary",
    "RecordingCreateRequest",
    "RecordingCreateResponse",
    "RecordingListResponse",
    "RecordingResponse",
    "RewriteRequest",
    "RewriteResponse",
    "TranscriptResponse",
    "TweetResponse",
    "TwitterAccountInfo",
    "TwitterStatusResponse",
]
