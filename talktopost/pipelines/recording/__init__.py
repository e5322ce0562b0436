"""Recording pipeline package.

Modules follow the order in which a recording is processed:

1. `ingestion` – audio type and storage key for the upload.
2. `transcription` – Whisper transcript of the uploaded blob.
3. `drafting` – LLM draft of a tweet or thread.
4. `posting` – reply-chained publication on Twitter.

`flow` holds the transition table and `orchestrator` ties the stages together
so the HTTP layer only ever talks to `PipelineOrchestrator`.
"""

from .flow import (
    ALLOWED_TRANSITIONS,
    PipelineStage,
    RecordingPipeline,
    can_transition,
    ensure_transition,
    is_terminal,
)
from .ingestion import recording_storage_key, resolve_content_type
from .orchestrator import PipelineOrchestrator
from .types import IngestOptions, IngestOutcome, UploadTarget

__all__ = [
    "ALLOWED_TRANSITIONS",
    "IngestOptions",
    "IngestOutcome",
    "PipelineOrchestrator",
    "PipelineStage",
    "RecordingPipeline",
    "UploadTarget",
    "can_transition",
    "ensure_transition",
    "is_terminal",
    "recording_storage_key",
    "resolve_content_type",
]
