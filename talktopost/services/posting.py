"""Publish drafts to Twitter as reply-chained threads."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from talktopost.models import Account, ensure_utc, utcnow
from talktopost.services import errors
from talktopost.services.oauth import OAuth2Connector
from talktopost.services.twitter import TwitterApiError, TwitterClient
from talktopost.telemetry.metrics import increment_rate_limit_retry, increment_tweets_posted

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class ThreadState(str, Enum):
    PENDING = "pending"
    POSTING = "posting"
    POSTED = "posted"
    FAILED = "failed"


@dataclass
class PostingResult:
    tweet_ids: list[str] = field(default_factory=list)
    retries: int = 0
    state: ThreadState = ThreadState.PENDING


def _tweet_text(tweet: Any) -> str:
    if isinstance(tweet, str):
        return tweet
    if isinstance(tweet, Mapping):
        return str(tweet.get("text", ""))
    return str(getattr(tweet, "text", ""))


def _abort(error: errors.TalkToPostError, result: PostingResult) -> errors.TalkToPostError:
    result.state = ThreadState.FAILED
    error.progress = result
    return error


def _published(error: errors.TalkToPostError) -> bool:
    return bool(error.progress and error.progress.tweet_ids)


def _map_error(exc: TwitterApiError) -> errors.TalkToPostError:
    if exc.status_code == 401:
        return errors.AuthExpired(detail=exc.detail)
    if exc.status_code == 403:
        return errors.PermissionDenied(detail=exc.detail)
    if exc.status_code is None:
        return errors.PostingFailed(f"Twitter request failed: {exc.detail}", detail=exc.detail)
    return errors.PostingFailed(
        f"Twitter API error {exc.status_code}: {exc.detail}", detail=exc.detail
    )


class PostingEngine:
    def __init__(
        self,
        client: TwitterClient,
        connector: OAuth2Connector,
        *,
        post_delay_seconds: float = 0.5,
        rate_limit_backoff_seconds: float = 5.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._connector = connector
        self._post_delay = post_delay_seconds
        self._backoff = rate_limit_backoff_seconds
        self._sleep = sleep

    async def post_thread(
        self,
        access_token: str,
        tweets: Sequence[Any],
    ) -> PostingResult:
        """Post tweets in order, each replying to the previous one.

        Raises a ``TalkToPostError`` whose ``progress`` holds the ids that made
        it out before the failure.
        """

        texts = [_tweet_text(tweet) for tweet in tweets]
        result = PostingResult()
        if not texts:
            return result

        result.state = ThreadState.POSTING
        reply_to: str | None = None
        for index, text in enumerate(texts):
            if index > 0:
                await self._sleep(self._post_delay)
            tweet_id = await self._post_one(access_token, text, reply_to, result)
            result.tweet_ids.append(tweet_id)
            increment_tweets_posted()
            logger.info("Posted tweet %d/%d id=%s", index + 1, len(texts), tweet_id)
            reply_to = tweet_id

        result.state = ThreadState.POSTED
        return result

    async def _post_one(
        self,
        access_token: str,
        text: str,
        reply_to: str | None,
        result: PostingResult,
    ) -> str:
        try:
            return await self._client.create_tweet(access_token, text, reply_to=reply_to)
        except TwitterApiError as exc:
            if exc.status_code != 429:
                raise _abort(_map_error(exc), result) from exc
            logger.warning("Rate limited; retrying in %.1fs", self._backoff)

        increment_rate_limit_retry()
        await self._sleep(self._backoff)
        result.retries += 1
        try:
            return await self._client.create_tweet(access_token, text, reply_to=reply_to)
        except TwitterApiError as exc:
            raise _abort(
                errors.RateLimited(detail=f"Retry failed: {exc.detail}"), result
            ) from exc

    async def post_for_account(
        self,
        session: AsyncSession,
        account: Account,
        tweets: Sequence[Any],
    ) -> PostingResult:
        """Post with the account's token, refreshing it first when expired.

        A 401 on the first tweet of a stored, unexpired token gets one refresh
        and one more attempt; once a tweet is out the thread is never retried.
        """

        if account.needs_reauth:
            raise errors.AuthExpired()

        access_token = account.access_token
        refreshed = False
        expires_at = ensure_utc(account.token_expires_at)
        if expires_at is not None and expires_at <= utcnow():
            logger.info("Access token for account %s expired; refreshing", account.id)
            try:
                access_token = await self._connector.refresh(session, account)
            except errors.RefreshFailed as exc:
                raise errors.AuthExpired() from exc
            refreshed = True

        try:
            return await self.post_thread(access_token, tweets)
        except errors.AuthExpired as exc:
            if refreshed or not account.refresh_token or _published(exc):
                raise
            logger.info("Token for account %s rejected; refreshing once", account.id)
            try:
                access_token = await self._connector.refresh(session, account)
            except errors.RefreshFailed:
                raise exc from None

        return await self.post_thread(access_token, tweets)


__all__ = ["PostingEngine", "PostingResult", "ThreadState"]
