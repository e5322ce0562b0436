"""Recording lifecycle: the closed transition table and the stage map.

A recording moves strictly forward through

1. ``ingestion`` – create the row and hand the client a presigned upload URL.
2. ``transcription`` – download the blob, run Whisper, persist the transcript.
3. ``drafting`` – ask the LLM for a tweet or thread, persist the draft.
4. ``posting`` – publish the draft as a reply chain, persist the post.

``failed`` is reachable from every non-terminal state. ``posted`` and
``failed`` are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping

from talktopost.models import RecordingStatus
from talktopost.services import errors

ALLOWED_TRANSITIONS: Mapping[RecordingStatus, frozenset[RecordingStatus]] = {
    RecordingStatus.UPLOADED: frozenset({RecordingStatus.TRANSCRIBING, RecordingStatus.FAILED}),
    RecordingStatus.TRANSCRIBING: frozenset({RecordingStatus.DRAFTING, RecordingStatus.FAILED}),
    RecordingStatus.DRAFTING: frozenset({RecordingStatus.READY, RecordingStatus.FAILED}),
    RecordingStatus.READY: frozenset({RecordingStatus.POSTED, RecordingStatus.FAILED}),
    RecordingStatus.POSTED: frozenset(),
    RecordingStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({RecordingStatus.POSTED, RecordingStatus.FAILED})


def can_transition(current: RecordingStatus, target: RecordingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: RecordingStatus, target: RecordingStatus) -> None:
    if not can_transition(current, target):
        raise errors.InvalidTransition(
            f"Cannot move recording from '{current.value}' to '{target.value}'"
        )


def is_terminal(status: str) -> bool:
    """Unknown status values are treated as non-terminal."""

    try:
        return RecordingStatus(status) in TERMINAL_STATUSES
    except ValueError:
        return False


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the recording pipeline."""

    order: int
    name: str
    module: str
    summary: str


class RecordingPipeline:
    """Utility wrapper documenting the recording flow."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            "Ingestion",
            "talktopost.pipelines.recording.ingestion",
            "Validate the audio type, build the storage key, issue a presigned upload URL.",
        ),
        PipelineStage(
            2,
            "Transcription",
            "talktopost.pipelines.recording.transcription",
            "Download the blob and forward it to Whisper; persist the transcript.",
        ),
        PipelineStage(
            3,
            "Drafting",
            "talktopost.pipelines.recording.drafting",
            "Prompt the LLM with the transcript and persist the normalised draft.",
        ),
        PipelineStage(
            4,
            "Posting",
            "talktopost.pipelines.recording.posting",
            "Publish the draft as a reply chain and record the resulting tweet ids.",
        ),
    ]

    @classmethod
    def stages(cls) -> Iterable[PipelineStage]:
        return tuple(cls._STAGES)

    @classmethod
    def describe(cls) -> str:
        return "\n".join(
            f"{stage.order:02d}. {stage.name} ({stage.module}) - {stage.summary}"
            for stage in cls._STAGES
        )


__all__ = [
    "ALLOWED_TRANSITIONS",
    "PipelineStage",
    "RecordingPipeline",
    "TERMINAL_STATUSES",
    "can_transition",
    "ensure_transition",
    "is_terminal",
]
