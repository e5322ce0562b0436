"""Build the service graph once from settings."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from talktopost.config.settings import Settings
from talktopost.database import ping_database
from talktopost.pipelines.recording.orchestrator import PipelineOrchestrator
from talktopost.services.attachments import AttachmentService
from talktopost.services.drafting import DraftingAdapter
from talktopost.services.health import ProviderHealthRegistry
from talktopost.services.llm_client import OpenRouterLlmClient
from talktopost.services.oauth import OAuth2Connector
from talktopost.services.posting import PostingEngine
from talktopost.services.storage import StorageGateway
from talktopost.services.transcribe import TranscribeService
from talktopost.services.twitter import TwitterClient


@dataclass(frozen=True)
class Services:
    storage: StorageGateway
    transcriber: TranscribeService
    llm: OpenRouterLlmClient
    drafter: DraftingAdapter
    twitter: TwitterClient
    connector: OAuth2Connector
    poster: PostingEngine
    attachments: AttachmentService
    pipeline: PipelineOrchestrator
    health: ProviderHealthRegistry


def build_services(
    config: Settings,
    *,
    storage: StorageGateway | None = None,
    transcriber: TranscribeService | None = None,
    llm_transport: httpx.AsyncBaseTransport | None = None,
    twitter_transport: httpx.AsyncBaseTransport | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Services:
    """Wire every component; keyword overrides swap in test doubles."""

    storage = storage or StorageGateway(config.s3)
    transcriber = transcriber or TranscribeService(config.transcription)
    llm = OpenRouterLlmClient(config.llm, transport=llm_transport)
    drafter = DraftingAdapter(
        llm, config.llm, max_tweet_length=config.pipeline.max_tweet_length
    )
    twitter = TwitterClient(config.twitter, transport=twitter_transport)
    connector = OAuth2Connector(twitter, config.twitter)
    poster = PostingEngine(
        twitter,
        connector,
        post_delay_seconds=config.pipeline.post_delay_seconds,
        rate_limit_backoff_seconds=config.pipeline.rate_limit_backoff_seconds,
        sleep=sleep,
    )
    pipeline = PipelineOrchestrator(
        storage=storage,
        transcriber=transcriber,
        drafter=drafter,
        connector=connector,
        poster=poster,
        config=config.pipeline,
        llm_config=config.llm,
    )
    health = ProviderHealthRegistry(
        {
            "database": ping_database,
            "storage": storage.ping,
            "transcription": transcriber.ping,
            "drafting": llm.ping,
            "twitter": twitter.ping,
        }
    )
    return Services(
        storage=storage,
        transcriber=transcriber,
        llm=llm,
        drafter=drafter,
        twitter=twitter,
        connector=connector,
        poster=poster,
        attachments=AttachmentService(storage),
        pipeline=pipeline,
        health=health,
    )


__all__ = ["Services", "build_services"]
