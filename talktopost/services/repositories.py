"""Persistence helpers for users, recordings and their pipeline artefacts.

Every write commits immediately so that each pipeline stage is durable before
the next one starts.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from talktopost.models import (
    DISCONNECTED_TOKEN,
    Account,
    Attachment,
    Draft,
    OAuthSession,
    Post,
    Recording,
    RecordingStatus,
    Transcript,
    User,
    utcnow,
)
from talktopost.services import errors

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


async def _save(session: AsyncSession, instance: Any) -> Any:
    session.add(instance)
    await session.commit()
    await session.refresh(instance)
    return instance


# Users -----------------------------------------------------------------------


async def create_user(session: AsyncSession, *, display_name: str | None = None) -> User:
    return await _save(session, User(display_name=display_name))


async def get_user(session: AsyncSession, user_id: UUID) -> Optional[User]:
    return await session.get(User, user_id)


# Recordings ------------------------------------------------------------------


async def create_recording(
    session: AsyncSession,
    *,
    user_id: UUID,
    storage_key: str,
    content_type: str,
) -> Recording:
    recording = Recording(
        user_id=user_id,
        storage_key=storage_key,
        content_type=content_type,
        status=RecordingStatus.UPLOADED,
    )
    return await _save(session, recording)


async def get_recording_for_user(
    session: AsyncSession,
    recording_id: UUID,
    user_id: UUID,
    *,
    with_children: bool = False,
) -> Recording:
    stmt = select(Recording).where(
        Recording.id == recording_id, Recording.user_id == user_id
    )
    if with_children:
        stmt = stmt.options(
            selectinload(Recording.transcript),
            selectinload(Recording.draft),
            selectinload(Recording.posts),
        )
    recording = (await session.execute(stmt)).scalar_one_or_none()
    if recording is None:
        raise errors.NotFound("Recording not found")
    return recording


async def list_recordings_for_user(
    session: AsyncSession,
    user_id: UUID,
    *,
    limit: int = 50,
    offset: int = 0,
) -> list[Recording]:
    stmt = (
        select(Recording)
        .where(Recording.user_id == user_id)
        .options(
            selectinload(Recording.transcript),
            selectinload(Recording.draft),
            selectinload(Recording.posts),
        )
        .order_by(Recording.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list((await session.execute(stmt)).scalars().all())


async def transition_recording_status(
    session: AsyncSession,
    recording_id: UUID,
    expected: RecordingStatus,
    target: RecordingStatus,
) -> bool:
    """Compare-and-set the status; ``False`` when another writer got there first."""

    result = await session.execute(
        update(Recording)
        .where(Recording.id == recording_id, Recording.status == expected)
        .values(status=target, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount == 1


async def update_recording_media(
    session: AsyncSession,
    recording: Recording,
    *,
    file_size: int | None,
    duration_seconds: float | None,
) -> Recording:
    recording.file_size = file_size
    if duration_seconds is not None:
        recording.duration_seconds = duration_seconds
    return await _save(session, recording)


# Transcripts and drafts ------------------------------------------------------


async def create_transcript(
    session: AsyncSession,
    *,
    recording_id: UUID,
    text: str,
    confidence: float | None,
    language: str | None,
) -> Transcript:
    transcript = Transcript(
        recording_id=recording_id,
        text=text,
        confidence=confidence,
        language=language,
    )
    return await _save(session, transcript)


async def create_draft(
    session: AsyncSession,
    *,
    recording_id: UUID,
    mode: str,
    thread: list[dict[str, Any]],
    original_text: str,
) -> Draft:
    draft = Draft(
        recording_id=recording_id,
        mode=mode,
        thread=thread,
        original_text=original_text,
    )
    return await _save(session, draft)


async def get_draft_for_recording(
    session: AsyncSession,
    recording_id: UUID,
    user_id: UUID,
) -> Draft:
    stmt = (
        select(Draft)
        .join(Recording, Recording.id == Draft.recording_id)
        .where(Draft.recording_id == recording_id, Recording.user_id == user_id)
    )
    draft = (await session.execute(stmt)).scalar_one_or_none()
    if draft is None:
        raise errors.NotFound("Draft not found")
    return draft


async def get_draft_with_recording(
    session: AsyncSession,
    draft_id: UUID,
    user_id: UUID,
) -> tuple[Draft, Recording]:
    stmt = (
        select(Draft, Recording)
        .join(Recording, Recording.id == Draft.recording_id)
        .where(Draft.id == draft_id, Recording.user_id == user_id)
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        raise errors.NotFound("Draft not found")
    return row[0], row[1]


# Posts -----------------------------------------------------------------------


async def create_post(
    session: AsyncSession,
    *,
    recording_id: UUID | None,
    draft_id: UUID | None,
    account_id: UUID | None,
    tweet_ids: Iterable[str],
    posted_at: datetime | None = None,
    error: str | None = None,
    retry_count: int = 0,
) -> Post:
    post = Post(
        recording_id=recording_id,
        draft_id=draft_id,
        account_id=account_id,
        twitter_tweet_ids=list(tweet_ids),
        posted_at=posted_at,
        error=error,
        retry_count=retry_count,
    )
    return await _save(session, post)


async def list_post_times_since(
    session: AsyncSession,
    user_id: UUID,
    since: datetime,
) -> list[datetime]:
    """Timestamps of the user's successful posts at or after ``since``."""

    stmt = (
        select(Post.posted_at)
        .join(Recording, Recording.id == Post.recording_id)
        .where(
            Recording.user_id == user_id,
            Post.posted_at.is_not(None),
            Post.error.is_(None),
            Post.posted_at >= since,
        )
        .order_by(Post.posted_at)
    )
    return list((await session.execute(stmt)).scalars().all())


# Accounts --------------------------------------------------------------------


async def latest_valid_account(session: AsyncSession, user_id: UUID) -> Optional[Account]:
    """Most recently created account of the user that is not disconnected."""

    stmt = (
        select(Account)
        .where(
            Account.user_id == user_id,
            Account.provider == "twitter",
            Account.access_token != DISCONNECTED_TOKEN,
        )
        .order_by(Account.created_at.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def find_account_by_twitter_id(
    session: AsyncSession,
    twitter_user_id: str,
) -> Optional[Account]:
    stmt = (
        select(Account)
        .where(Account.provider == "twitter", Account.twitter_user_id == twitter_user_id)
        .order_by(Account.created_at.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def upsert_account(
    session: AsyncSession,
    *,
    user_id: UUID,
    twitter_user_id: str,
    screen_name: str | None,
    access_token: str,
    refresh_token: str | None,
    token_expires_at: datetime | None,
) -> Account:
    stmt = select(Account).where(
        Account.user_id == user_id,
        Account.provider == "twitter",
        Account.twitter_user_id == twitter_user_id,
    )
    account = (await session.execute(stmt)).scalars().first()
    if account is None:
        account = Account(
            user_id=user_id,
            provider="twitter",
            twitter_user_id=twitter_user_id,
        )
    account.screen_name = screen_name
    account.access_token = access_token
    account.refresh_token = refresh_token
    account.token_expires_at = token_expires_at
    account.needs_reauth = False
    return await _save(session, account)


async def update_account_tokens(
    session: AsyncSession,
    account: Account,
    *,
    access_token: str,
    refresh_token: str | None,
    token_expires_at: datetime | None,
) -> Account:
    account.access_token = access_token
    account.refresh_token = refresh_token
    account.token_expires_at = token_expires_at
    account.needs_reauth = False
    return await _save(session, account)


async def mark_account_needs_reauth(session: AsyncSession, account: Account) -> Account:
    account.needs_reauth = True
    return await _save(session, account)


async def mark_account_disconnected(session: AsyncSession, account: Account) -> Account:
    account.access_token = DISCONNECTED_TOKEN
    account.refresh_token = None
    account.token_expires_at = _EPOCH
    return await _save(session, account)


async def disconnect_accounts(session: AsyncSession, user_id: UUID) -> int:
    """Clear token material of every connected account of the user."""

    result = await session.execute(
        update(Account)
        .where(
            Account.user_id == user_id,
            Account.provider == "twitter",
            Account.access_token != DISCONNECTED_TOKEN,
        )
        .values(
            access_token=DISCONNECTED_TOKEN,
            refresh_token=None,
            token_expires_at=_EPOCH,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount or 0


# Attachments -----------------------------------------------------------------


async def create_attachment(session: AsyncSession, attachment: Attachment) -> Attachment:
    return await _save(session, attachment)


async def get_attachment_for_user(
    session: AsyncSession,
    attachment_id: UUID,
    user_id: UUID,
) -> Attachment:
    stmt = select(Attachment).where(
        Attachment.id == attachment_id, Attachment.user_id == user_id
    )
    attachment = (await session.execute(stmt)).scalar_one_or_none()
    if attachment is None:
        raise errors.NotFound("Attachment not found")
    return attachment


async def delete_attachment(session: AsyncSession, attachment: Attachment) -> None:
    await session.delete(attachment)
    await session.commit()


# OAuth sessions --------------------------------------------------------------


async def create_oauth_session(session: AsyncSession, oauth_session: OAuthSession) -> OAuthSession:
    return await _save(session, oauth_session)


async def purge_expired_oauth_sessions(session: AsyncSession, now: datetime) -> int:
    """Drop abandoned authorizations whose TTL has passed."""

    result = await session.execute(
        delete(OAuthSession)
        .where(OAuthSession.expires_at < now)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount or 0


async def pop_oauth_session(session: AsyncSession, token: str) -> Optional[OAuthSession]:
    """Load and delete the pending session so it can be used only once.

    Only the caller whose ``DELETE`` removes the row gets the session back.
    """

    oauth_session = await session.get(OAuthSession, token)
    if oauth_session is None:
        return None
    result = await session.execute(
        delete(OAuthSession)
        .where(OAuthSession.token == token)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    session.expunge(oauth_session)
    if result.rowcount != 1:
        return None
    return oauth_session


__all__ = [
    "create_user",
    "get_user",
    "create_recording",
    "get_recording_for_user",
    "list_recordings_for_user",
    "transition_recording_status",
    "update_recording_media",
    "create_transcript",
    "create_draft",
    "get_draft_for_recording",
    "get_draft_with_recording",
    "create_post",
    "list_post_times_since",
    "latest_valid_account",
    "find_account_by_twitter_id",
    "upsert_account",
    "update_account_tokens",
    "mark_account_needs_reauth",
    "mark_account_disconnected",
    "disconnect_accounts",
    "create_attachment",
    "get_attachment_for_user",
    "delete_attachment",
    "create_oauth_session",
    "purge_expired_oauth_sessions",
    "pop_oauth_session",
]
