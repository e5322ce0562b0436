"""Transcription stage (Stage 02) of the recording pipeline."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from talktopost.models import Recording, Transcript
from talktopost.services import repositories
from talktopost.services.storage import StorageGateway
from talktopost.services.transcribe import TranscribeService

logger = logging.getLogger("talktopost.pipeline")


async def run_transcription(
    session: AsyncSession,
    recording: Recording,
    *,
    storage: StorageGateway,
    transcriber: TranscribeService,
) -> Transcript:
    """Download the recording, transcribe it and persist the transcript."""

    audio_bytes = await storage.download(recording.storage_key)
    result = await transcriber.transcribe(audio_bytes, mime_hint=recording.content_type)

    transcript = await repositories.create_transcript(
        session,
        recording_id=recording.id,
        text=result.text,
        confidence=result.confidence,
        language=result.language,
    )
    await repositories.update_recording_media(
        session,
        recording,
        file_size=len(audio_bytes),
        duration_seconds=result.duration_seconds,
    )
    logger.info(
        "[recording %s] transcript (%d chars): %s",
        recording.id,
        len(result.text),
        _truncate(result.text),
    )
    return transcript


def _truncate(value: str, limit: int = 200) -> str:
    return value if len(value) <= limit else value[:limit] + "..."


__all__ = ["run_transcription"]
