"""Sequence the pipeline stages and own every recording status change."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from talktopost.config.settings import LlmConfig, PipelineConfig
from talktopost.models import Draft, Post, Recording, RecordingStatus
from talktopost.pipelines.recording.drafting import run_drafting
from talktopost.pipelines.recording.flow import ensure_transition
from talktopost.pipelines.recording.ingestion import recording_storage_key, resolve_content_type
from talktopost.pipelines.recording.posting import record_failed_post, run_posting
from talktopost.pipelines.recording.transcription import run_transcription
from talktopost.pipelines.recording.types import IngestOptions, IngestOutcome, UploadTarget
from talktopost.services import errors, repositories
from talktopost.services.drafting import DraftingAdapter
from talktopost.services.oauth import OAuth2Connector
from talktopost.services.posting import PostingEngine
from talktopost.services.storage import StorageGateway
from talktopost.services.transcribe import TranscribeService
from talktopost.telemetry.metrics import record_stage

logger = logging.getLogger("talktopost.pipeline")


class PipelineOrchestrator:
    def __init__(
        self,
        *,
        storage: StorageGateway,
        transcriber: TranscribeService,
        drafter: DraftingAdapter,
        connector: OAuth2Connector,
        poster: PostingEngine,
        config: PipelineConfig,
        llm_config: LlmConfig,
    ) -> None:
        self._storage = storage
        self._transcriber = transcriber
        self._drafter = drafter
        self._connector = connector
        self._poster = poster
        self._config = config
        self._llm_config = llm_config

    async def create_recording(
        self,
        session: AsyncSession,
        user_id: UUID,
        content_type: str | None = None,
    ) -> UploadTarget:
        """Register a new recording and return where the client uploads it."""

        resolved_type = resolve_content_type(content_type)
        key = recording_storage_key(user_id, resolved_type)
        upload_url = await self._storage.create_upload_target(key, content_type=resolved_type)
        recording = await repositories.create_recording(
            session,
            user_id=user_id,
            storage_key=key,
            content_type=resolved_type,
        )
        record_stage("ingestion", "success")
        logger.info("[recording %s] created, awaiting upload at %s", recording.id, key)
        return UploadTarget(recording=recording, upload_url=upload_url)

    def resolve_system_prompt(self, override: str | None) -> str:
        if override is None or not override.strip():
            return self._config.system_prompt
        if not self._config.custom_system_prompts:
            logger.info("Ignoring system prompt override; custom prompts are disabled")
            return self._config.system_prompt
        if len(override) > self._config.max_prompt_length:
            raise errors.ValidationError(
                f"System prompt exceeds {self._config.max_prompt_length} characters"
            )
        return override

    async def ingest(
        self,
        session: AsyncSession,
        recording_id: UUID,
        user_id: UUID,
        options: IngestOptions | None = None,
    ) -> IngestOutcome:
        """Run transcription and drafting, then post when auto-post is on."""

        options = options or IngestOptions()
        recording = await repositories.get_recording_for_user(session, recording_id, user_id)
        system_prompt = self.resolve_system_prompt(options.system_prompt)
        auto_post = (
            self._config.auto_post_default if options.auto_post is None else options.auto_post
        )

        history = [recording.status]
        await self._advance(session, recording, RecordingStatus.UPLOADED, RecordingStatus.TRANSCRIBING)
        history.append(recording.status)

        try:
            transcript = await run_transcription(
                session,
                recording,
                storage=self._storage,
                transcriber=self._transcriber,
            )
        except Exception as exc:
            await self._fail(session, recording, RecordingStatus.TRANSCRIBING, "transcription", exc)
            raise
        record_stage("transcription", "success")

        await self._advance(session, recording, RecordingStatus.TRANSCRIBING, RecordingStatus.DRAFTING)
        history.append(recording.status)

        try:
            draft = await run_drafting(
                session,
                recording,
                transcript,
                drafter=self._drafter,
                system_prompt=system_prompt,
                model_config=self._llm_config,
            )
        except Exception as exc:
            await self._fail(session, recording, RecordingStatus.DRAFTING, "drafting", exc)
            raise
        record_stage("drafting", "success")

        await self._advance(session, recording, RecordingStatus.DRAFTING, RecordingStatus.READY)
        history.append(recording.status)

        outcome = IngestOutcome(
            recording=recording,
            transcript=transcript,
            draft=draft,
            status_history=history,
        )
        if auto_post:
            try:
                outcome.post = await self._post(session, recording, draft)
            except errors.TalkToPostError as exc:
                logger.warning("[recording %s] auto-post failed: %s", recording.id, exc.message)
                outcome.post_error = exc.to_payload()
            if recording.status != history[-1]:
                history.append(recording.status)
        return outcome

    async def post_draft(
        self,
        session: AsyncSession,
        draft_id: UUID,
        user_id: UUID,
    ) -> tuple[Post, Draft]:
        """Publish a ready draft on behalf of its owner."""

        draft, recording = await repositories.get_draft_with_recording(session, draft_id, user_id)
        if recording.status == RecordingStatus.POSTED:
            raise errors.AlreadyProcessing("Draft has already been posted")
        if recording.status != RecordingStatus.READY:
            raise errors.InvalidTransition(
                f"Recording is '{recording.status.value}', only ready drafts can be posted"
            )
        post = await self._post(session, recording, draft)
        return post, draft

    async def _post(self, session: AsyncSession, recording: Recording, draft: Draft) -> Post:
        account = await self._connector.resolve_account_for_user(session, recording.user_id)
        try:
            post = await run_posting(session, recording, draft, account, poster=self._poster)
        except errors.TalkToPostError as exc:
            if exc.progress is None:
                # Nothing reached Twitter; the draft stays ready for a retry.
                record_stage("posting", "blocked")
                raise
            await record_failed_post(
                session,
                recording,
                draft,
                account,
                error=f"{exc.message} ({exc.detail})" if exc.detail else exc.message,
                tweet_ids=exc.progress.tweet_ids,
                retries=exc.progress.retries,
            )
            if not exc.progress.tweet_ids and isinstance(
                exc, (errors.AuthExpired, errors.PermissionDenied)
            ):
                # Twitter refused the account before anything was published;
                # reconnecting makes the same draft postable again.
                if isinstance(exc, errors.AuthExpired):
                    await repositories.mark_account_needs_reauth(session, account)
                record_stage("posting", "blocked")
                raise
            await self._fail(session, recording, RecordingStatus.READY, "posting", exc)
            raise
        record_stage("posting", "success")
        await self._advance(
            session, recording, RecordingStatus.READY, RecordingStatus.POSTED, strict=False
        )
        return post

    async def _advance(
        self,
        session: AsyncSession,
        recording: Recording,
        expected: RecordingStatus,
        target: RecordingStatus,
        *,
        strict: bool = True,
    ) -> None:
        ensure_transition(expected, target)
        moved = await repositories.transition_recording_status(
            session, recording.id, expected, target
        )
        await session.refresh(recording)
        if not moved:
            if strict:
                raise errors.AlreadyProcessing(
                    f"Recording is '{recording.status.value}', expected '{expected.value}'"
                )
            logger.warning(
                "[recording %s] lost %s -> %s race; status is %s",
                recording.id,
                expected.value,
                target.value,
                recording.status.value,
            )
            return
        logger.info("[recording %s] %s -> %s", recording.id, expected.value, target.value)

    async def _fail(
        self,
        session: AsyncSession,
        recording: Recording,
        expected: RecordingStatus,
        stage: str,
        exc: Exception,
    ) -> None:
        record_stage(stage, "failure")
        recording_id = recording.id
        if not isinstance(exc, errors.TalkToPostError):
            # Unexpected errors may leave the session mid-transaction.
            await session.rollback()
        moved = await repositories.transition_recording_status(
            session, recording_id, expected, RecordingStatus.FAILED
        )
        await session.refresh(recording)
        logger.error("[recording %s] %s failed: %s", recording_id, stage, exc)
        if not moved:
            logger.warning(
                "[recording %s] could not mark failed; status is %s",
                recording_id,
                recording.status.value,
            )


__all__ = ["PipelineOrchestrator"]
