import json
from datetime import timedelta

import pytest

from talktopost.config.settings import PipelineConfig, settings
from talktopost.database import SessionFactory
from talktopost.models import DISCONNECTED_TOKEN, RecordingStatus, utcnow
from talktopost.pipelines.recording import IngestOptions, PipelineOrchestrator
from talktopost.services import errors, repositories

S = RecordingStatus

TRANSCRIPT = "Building an AI product that converts voice to Twitter posts."

THREAD_DRAFT = json.dumps(
    {
        "mode": "thread",
        "tweets": [
            {"text": "Voice notes are the fastest way to write.", "char_count": 41},
            {"text": "So I built a tool that drafts tweets from them.", "char_count": 47},
        ],
    }
)


@pytest.fixture
def pipeline(services):
    return services.pipeline


async def _connect(session, user):
    return await repositories.upsert_account(
        session,
        user_id=user.id,
        twitter_user_id="42",
        screen_name="voiceuser",
        access_token="access",
        refresh_token="refresh",
        token_expires_at=utcnow() + timedelta(hours=2),
    )


async def _uploaded(pipeline, session, user, fake_storage):
    target = await pipeline.create_recording(session, user.id)
    fake_storage.put_recording(target.recording.storage_key)
    return target.recording


async def _reload(recording_id, user_id):
    async with SessionFactory() as fresh:
        return await repositories.get_recording_for_user(
            fresh, recording_id, user_id, with_children=True
        )


async def test_create_recording_issues_upload_url(pipeline, session, user):
    target = await pipeline.create_recording(session, user.id, "audio/mpeg")

    recording = target.recording
    assert recording.status == S.UPLOADED
    assert recording.content_type == "audio/mpeg"
    assert recording.storage_key.startswith(f"{user.id}/")
    assert recording.storage_key.endswith("-recording.mp3")
    assert recording.storage_key in target.upload_url


async def test_create_recording_rejects_unknown_audio_type(pipeline, session, user):
    with pytest.raises(errors.ValidationError):
        await pipeline.create_recording(session, user.id, "text/plain")


async def test_ingest_with_auto_post_runs_every_stage(
    pipeline, session, user, fake_storage, fake_twitter
):
    await _connect(session, user)
    recording = await _uploaded(pipeline, session, user, fake_storage)

    outcome = await pipeline.ingest(
        session, recording.id, user.id, IngestOptions(auto_post=True)
    )

    assert outcome.status_history == [S.UPLOADED, S.TRANSCRIBING, S.DRAFTING, S.READY, S.POSTED]
    assert outcome.recording.status == S.POSTED
    assert outcome.transcript.text == TRANSCRIPT
    assert outcome.transcript.confidence == pytest.approx(0.91)
    assert outcome.draft.mode.value == "tweet"
    assert outcome.draft.thread == [{"text": TRANSCRIPT, "char_count": 60}]
    assert outcome.draft.original_text == TRANSCRIPT
    assert outcome.post.twitter_tweet_ids == ["1001"]
    assert outcome.post.error is None
    assert outcome.post_error is None
    assert fake_twitter.tweet_payloads == [{"text": TRANSCRIPT}]

    stored = await _reload(recording.id, user.id)
    assert stored.status == S.POSTED
    assert stored.file_size == len(b"fake-webm-audio")
    assert stored.duration_seconds == pytest.approx(4.2)
    assert len(stored.posts) == 1


async def test_second_ingest_is_rejected(pipeline, session, user, fake_storage, fake_transcriber):
    recording = await _uploaded(pipeline, session, user, fake_storage)
    await pipeline.ingest(session, recording.id, user.id, IngestOptions(auto_post=False))

    with pytest.raises(errors.AlreadyProcessing):
        await pipeline.ingest(session, recording.id, user.id)

    assert len(fake_transcriber.calls) == 1
    assert (await _reload(recording.id, user.id)).status == S.READY


async def test_status_compare_and_set_allows_one_winner(pipeline, session, user, fake_storage):
    recording = await _uploaded(pipeline, session, user, fake_storage)

    first = await repositories.transition_recording_status(
        session, recording.id, S.UPLOADED, S.TRANSCRIBING
    )
    second = await repositories.transition_recording_status(
        session, recording.id, S.UPLOADED, S.TRANSCRIBING
    )

    assert (first, second) == (True, False)


async def test_ingest_then_post_draft(pipeline, session, user, fake_storage, fake_twitter):
    await _connect(session, user)
    recording = await _uploaded(pipeline, session, user, fake_storage)

    outcome = await pipeline.ingest(session, recording.id, user.id)

    assert outcome.recording.status == S.READY
    assert outcome.post is None
    assert fake_twitter.requests_to("/2/tweets") == []

    post, draft = await pipeline.post_draft(session, outcome.draft.id, user.id)

    assert draft.id == outcome.draft.id
    assert post.twitter_tweet_ids == ["1001"]
    assert post.posted_at is not None
    assert (await _reload(recording.id, user.id)).status == S.POSTED

    with pytest.raises(errors.AlreadyProcessing):
        await pipeline.post_draft(session, outcome.draft.id, user.id)
    assert len(fake_twitter.requests_to("/2/tweets")) == 1


async def test_disconnect_keeps_posted_history(
    pipeline, services, session, user, fake_storage, fake_twitter
):
    account = await _connect(session, user)
    recording = await _uploaded(pipeline, session, user, fake_storage)
    outcome = await pipeline.ingest(session, recording.id, user.id)
    post, _ = await pipeline.post_draft(session, outcome.draft.id, user.id)

    assert await services.connector.disconnect_user(session, user.id) == 1

    stored = await _reload(recording.id, user.id)
    assert stored.status == S.POSTED
    assert stored.draft is not None
    assert stored.draft.id == outcome.draft.id
    assert [p.id for p in stored.posts] == [post.id]
    assert stored.posts[0].account_id == account.id
    assert stored.posts[0].twitter_tweet_ids == ["1001"]
    await session.refresh(account)
    assert account.access_token == DISCONNECTED_TOKEN
    assert account.refresh_token is None


async def test_transcription_failure_marks_failed(
    pipeline, session, user, fake_storage, fake_transcriber, fake_llm
):
    fake_transcriber.error = errors.TranscriptionFailed("No speech detected in audio")
    recording = await _uploaded(pipeline, session, user, fake_storage)

    with pytest.raises(errors.TranscriptionFailed):
        await pipeline.ingest(session, recording.id, user.id)

    stored = await _reload(recording.id, user.id)
    assert stored.status == S.FAILED
    assert stored.transcript is None
    assert fake_llm.requests == []


async def test_missing_upload_marks_failed(pipeline, session, user):
    target = await pipeline.create_recording(session, user.id)

    with pytest.raises(errors.NotFound):
        await pipeline.ingest(session, target.recording.id, user.id)

    assert (await _reload(target.recording.id, user.id)).status == S.FAILED


async def test_drafting_failure_keeps_transcript(pipeline, session, user, fake_storage, fake_llm):
    fake_llm.status_code = 500
    recording = await _uploaded(pipeline, session, user, fake_storage)

    with pytest.raises(errors.DraftingFailed):
        await pipeline.ingest(session, recording.id, user.id)

    stored = await _reload(recording.id, user.id)
    assert stored.status == S.FAILED
    assert stored.transcript.text == TRANSCRIPT
    assert stored.draft is None


async def test_failed_recording_cannot_be_reingested(pipeline, session, user, fake_storage, fake_llm):
    fake_llm.status_code = 500
    recording = await _uploaded(pipeline, session, user, fake_storage)
    with pytest.raises(errors.DraftingFailed):
        await pipeline.ingest(session, recording.id, user.id)

    with pytest.raises(errors.AlreadyProcessing):
        await pipeline.ingest(session, recording.id, user.id)


async def test_auto_post_without_account_leaves_draft_ready(
    pipeline, session, user, fake_storage, fake_twitter
):
    recording = await _uploaded(pipeline, session, user, fake_storage)

    outcome = await pipeline.ingest(
        session, recording.id, user.id, IngestOptions(auto_post=True)
    )

    assert outcome.recording.status == S.READY
    assert outcome.status_history[-1] == S.READY
    assert outcome.post is None
    assert outcome.post_error["code"] == "NoAccountConnected"
    assert outcome.post_error["needsReconnect"] is True
    assert fake_twitter.requests == []

    with pytest.raises(errors.NoAccountConnected):
        await pipeline.post_draft(session, outcome.draft.id, user.id)
    assert (await _reload(recording.id, user.id)).status == S.READY


async def test_partial_thread_failure_records_post(
    pipeline, session, user, fake_storage, fake_llm, fake_twitter
):
    fake_llm.content = THREAD_DRAFT
    fake_twitter.tweet_responses = [(201, {"data": {"id": "1"}}), (500, {"title": "Internal"})]
    await _connect(session, user)
    recording = await _uploaded(pipeline, session, user, fake_storage)
    outcome = await pipeline.ingest(session, recording.id, user.id)
    assert outcome.draft.mode.value == "thread"

    with pytest.raises(errors.PostingFailed):
        await pipeline.post_draft(session, outcome.draft.id, user.id)

    stored = await _reload(recording.id, user.id)
    assert stored.status == S.FAILED
    assert len(stored.posts) == 1
    assert stored.posts[0].twitter_tweet_ids == ["1"]
    assert stored.posts[0].posted_at is None
    assert "Internal" in stored.posts[0].error
    assert fake_twitter.tweet_payloads[1]["reply"] == {"in_reply_to_tweet_id": "1"}


async def test_unauthorized_before_first_tweet_allows_reconnect_and_repost(
    pipeline, services, session, user, fake_storage, fake_twitter
):
    account = await _connect(session, user)
    fake_twitter.tweet_responses = [
        (401, {"title": "Unauthorized"}),
        (401, {"title": "Unauthorized"}),
    ]
    recording = await _uploaded(pipeline, session, user, fake_storage)
    outcome = await pipeline.ingest(session, recording.id, user.id)

    with pytest.raises(errors.AuthExpired) as excinfo:
        await pipeline.post_draft(session, outcome.draft.id, user.id)
    assert excinfo.value.needs_reconnect is True

    stored = await _reload(recording.id, user.id)
    assert stored.status == S.READY
    assert len(stored.posts) == 1
    assert stored.posts[0].twitter_tweet_ids == []
    assert stored.posts[0].error
    await session.refresh(account)
    assert account.needs_reauth is True

    request = await services.connector.begin_auth(session, user_id=user.id)
    await services.connector.complete_auth(
        session, code="auth-code", state=request.state, session_token=request.session_token
    )

    post, _ = await pipeline.post_draft(session, outcome.draft.id, user.id)

    assert post.error is None
    assert len(post.twitter_tweet_ids) == 1
    stored = await _reload(recording.id, user.id)
    assert stored.status == S.POSTED
    assert len(stored.posts) == 2


async def test_other_users_recording_is_not_found(pipeline, session, user, other_user, fake_storage):
    recording = await _uploaded(pipeline, session, user, fake_storage)

    with pytest.raises(errors.NotFound):
        await pipeline.ingest(session, recording.id, other_user.id)

    assert (await _reload(recording.id, user.id)).status == S.UPLOADED


async def test_prompt_override_ignored_unless_enabled(pipeline, session, user, fake_storage, fake_llm):
    recording = await _uploaded(pipeline, session, user, fake_storage)

    await pipeline.ingest(
        session, recording.id, user.id, IngestOptions(system_prompt="Write like a pirate.")
    )

    prompt = fake_llm.payloads[0]["messages"][0]["content"]
    assert prompt.startswith(settings.pipeline.system_prompt)
    assert "pirate" not in prompt


def test_resolve_system_prompt_with_custom_prompts(services):
    orchestrator = PipelineOrchestrator(
        storage=services.storage,
        transcriber=services.transcriber,
        drafter=services.drafter,
        connector=services.connector,
        poster=services.poster,
        config=PipelineConfig(
            system_prompt="default", custom_system_prompts=True, max_prompt_length=20
        ),
        llm_config=settings.llm,
    )

    assert orchestrator.resolve_system_prompt(None) == "default"
    assert orchestrator.resolve_system_prompt("   ") == "default"
    assert orchestrator.resolve_system_prompt("Be brief.") == "Be brief."
    with pytest.raises(errors.ValidationError):
        orchestrator.resolve_system_prompt("x" * 21)
