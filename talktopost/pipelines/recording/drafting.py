"""Drafting stage (Stage 03) of the recording pipeline."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from talktopost.config.settings import LlmConfig
from talktopost.models import Draft, Recording, Transcript
from talktopost.services import repositories
from talktopost.services.drafting import DraftingAdapter

logger = logging.getLogger("talktopost.pipeline")


async def run_drafting(
    session: AsyncSession,
    recording: Recording,
    transcript: Transcript,
    *,
    drafter: DraftingAdapter,
    system_prompt: str,
    model_config: LlmConfig | None = None,
) -> Draft:
    response = await drafter.draft(transcript.text, system_prompt, model_config)
    draft = await repositories.create_draft(
        session,
        recording_id=recording.id,
        mode=response.mode,
        thread=response.thread_payload(),
        original_text=transcript.text,
    )
    for index, tweet in enumerate(response.tweets, start=1):
        logger.info(
            "[recording %s] draft %s %d/%d (%d chars): %s",
            recording.id,
            response.mode,
            index,
            len(response.tweets),
            tweet.char_count,
            tweet.text,
        )
    return draft


__all__ = ["run_drafting"]
