"""Recording endpoints: create, list, poll and ingest.

The stage-by-stage map lives in
`talktopost.pipelines.recording.flow.RecordingPipeline`.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from talktopost.controllers.dependencies import CurrentUserDep, PipelineDep, SessionDep
from talktopost.pipelines.recording import IngestOptions
from talktopost.services import repositories
from talktopost.views import (
    DraftResponse,
    ErrorResponse,
    IngestRequest,
    IngestResponse,
    PostSummary,
    RecordingCreateRequest,
    RecordingCreateResponse,
    RecordingListResponse,
    RecordingResponse,
    TranscriptResponse,
)

router = APIRouter(prefix="/recordings", tags=["recordings"])

logger = logging.getLogger(__name__)


@router.post("", response_model=RecordingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_recording(
    current_user: CurrentUserDep,
    session: SessionDep,
    pipeline: PipelineDep,
    payload: Optional[RecordingCreateRequest] = None,
) -> RecordingCreateResponse:
    """Register a recording and return a presigned URL to PUT the audio to."""

    target = await pipeline.create_recording(
        session,
        current_user.id,
        payload.content_type if payload else None,
    )
    return RecordingCreateResponse(
        recording_id=target.recording.id,
        upload_url=target.upload_url,
        storage_key=target.recording.storage_key,
    )


@router.get("", response_model=RecordingListResponse)
async def list_recordings(
    current_user: CurrentUserDep,
    session: SessionDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> RecordingListResponse:
    recordings = await repositories.list_recordings_for_user(
        session, current_user.id, limit=limit, offset=offset
    )
    return RecordingListResponse(
        recordings=[RecordingResponse.from_model(recording) for recording in recordings]
    )


@router.get("/{recording_id}", response_model=RecordingResponse)
async def get_recording(
    recording_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
) -> RecordingResponse:
    recording = await repositories.get_recording_for_user(
        session, recording_id, current_user.id, with_children=True
    )
    return RecordingResponse.from_model(recording)


@router.post(
    "/{recording_id}/ingest",
    response_model=IngestResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def ingest_recording(
    recording_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    pipeline: PipelineDep,
    payload: Optional[IngestRequest] = None,
) -> IngestResponse:
    """Transcribe and draft an uploaded recording, posting it when asked to."""

    options = IngestOptions(
        auto_post=payload.auto_post if payload else None,
        system_prompt=payload.system_prompt if payload else None,
    )
    outcome = await pipeline.ingest(session, recording_id, current_user.id, options)
    return IngestResponse(
        recording_id=outcome.recording.id,
        status=outcome.recording.status.value,
        status_history=[value.value for value in outcome.status_history],
        transcript=TranscriptResponse.model_validate(outcome.transcript),
        draft=DraftResponse.from_model(outcome.draft),
        post=PostSummary.from_model(outcome.post) if outcome.post else None,
        post_error=outcome.post_error,
    )
