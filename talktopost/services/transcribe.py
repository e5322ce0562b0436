"""OpenAI Whisper integration for recording transcription."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Sequence

from openai import AsyncOpenAI, OpenAIError

from talktopost.config.settings import TranscriptionConfig
from talktopost.services import errors

logger = logging.getLogger(__name__)

# Accepted recording MIME types and the file extension Whisper expects for each.
AUDIO_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
}


@dataclass(frozen=True)
class TranscriptionResult:
    """Structured transcription outcome returned to the pipeline."""

    text: str
    confidence: float | None = None
    language: str | None = None
    duration_seconds: float | None = None


def _field(source: Any, name: str) -> Any:
    if isinstance(source, dict):
        return source.get(name)
    return getattr(source, name, None)


def mean_logprob_confidence(segments: Sequence[Any] | None) -> float | None:
    """Map the mean segment ``avg_logprob`` into (0, 1].

    Segments without a log-probability count as 0.0, so they pull the
    average up rather than being dropped.
    """

    if not segments:
        return None
    total = sum(float(_field(segment, "avg_logprob") or 0.0) for segment in segments)
    return math.exp(min(0.0, total / len(segments)))


class TranscribeService:
    """Facade over the Whisper transcription endpoint."""

    def __init__(
        self,
        config: TranscriptionConfig,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._config = config
        self._client = client or AsyncOpenAI(
            api_key=config.api_key.get_secret_value() or "unset",
            timeout=config.timeout_seconds,
            max_retries=0,
        )

    async def transcribe(
        self,
        audio_bytes: bytes,
        mime_hint: str | None = None,
    ) -> TranscriptionResult:
        """Send audio to Whisper and return its text with a confidence score."""

        if not audio_bytes:
            raise errors.ValidationError("The uploaded audio file is empty.")

        mime_type = (mime_hint or "audio/webm").split(";", 1)[0].strip().lower()
        extension = AUDIO_EXTENSIONS.get(mime_type, "webm")

        try:
            response = await self._client.audio.transcriptions.create(
                file=(f"recording.{extension}", audio_bytes, mime_type),
                model=self._config.model,
                language=self._config.language,
                response_format="verbose_json",
            )
        except OpenAIError as exc:
            logger.error("Whisper transcription failed: %s", exc)
            raise errors.TranscriptionFailed(f"Transcription failed: {exc}") from exc

        text = str(_field(response, "text") or "").strip()
        if not text:
            raise errors.TranscriptionFailed("No speech detected in audio")

        duration = _field(response, "duration")
        result = TranscriptionResult(
            text=text,
            confidence=mean_logprob_confidence(_field(response, "segments")),
            language=_field(response, "language") or self._config.language,
            duration_seconds=float(duration) if duration is not None else None,
        )
        logger.info(
            "Transcribed %d bytes into %d characters (confidence=%s)",
            len(audio_bytes),
            len(result.text),
            f"{result.confidence:.3f}" if result.confidence is not None else "n/a",
        )
        return result

    async def ping(self) -> None:
        try:
            await self._client.models.retrieve(self._config.model)
        except OpenAIError as exc:
            raise errors.ProviderError(f"Transcription provider unreachable: {exc}") from exc


__all__ = ["AUDIO_EXTENSIONS", "TranscribeService", "TranscriptionResult", "mean_logprob_confidence"]
