"""Posting stage (Stage 04) of the recording pipeline."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from talktopost.models import Account, Draft, Post, Recording, utcnow
from talktopost.services import repositories
from talktopost.services.posting import PostingEngine

logger = logging.getLogger("talktopost.pipeline")


async def run_posting(
    session: AsyncSession,
    recording: Recording,
    draft: Draft,
    account: Account,
    *,
    poster: PostingEngine,
) -> Post:
    """Publish the draft; the Post row is written only on success."""

    result = await poster.post_for_account(session, account, draft.thread or [])
    post = await repositories.create_post(
        session,
        recording_id=recording.id,
        draft_id=draft.id,
        account_id=account.id,
        tweet_ids=result.tweet_ids,
        posted_at=utcnow(),
        retry_count=result.retries,
    )
    logger.info(
        "[recording %s] posted %d tweet(s) as @%s: %s",
        recording.id,
        len(result.tweet_ids),
        account.screen_name,
        ", ".join(result.tweet_ids),
    )
    return post


async def record_failed_post(
    session: AsyncSession,
    recording: Recording,
    draft: Draft,
    account: Account,
    *,
    error: str,
    tweet_ids: list[str],
    retries: int,
) -> Post:
    post = await repositories.create_post(
        session,
        recording_id=recording.id,
        draft_id=draft.id,
        account_id=account.id,
        tweet_ids=tweet_ids,
        error=error,
        retry_count=retries,
    )
    logger.warning(
        "[recording %s] posting failed after %d tweet(s): %s",
        recording.id,
        len(tweet_ids),
        error,
    )
    return post


__all__ = ["record_failed_post", "run_posting"]
