"""Media attachments stored beside drafts."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from talktopost.models import Attachment, MediaType
from talktopost.services import errors, repositories
from talktopost.services.storage import StorageGateway

logger = logging.getLogger(__name__)

MB = 1024 * 1024

ALLOWED_MIME_TYPES: dict[str, tuple[MediaType, str]] = {
    "image/jpeg": (MediaType.IMAGE, "jpg"),
    "image/jpg": (MediaType.IMAGE, "jpg"),
    "image/png": (MediaType.IMAGE, "png"),
    "image/webp": (MediaType.IMAGE, "webp"),
    "image/gif": (MediaType.GIF, "gif"),
    "video/mp4": (MediaType.VIDEO, "mp4"),
    "video/quicktime": (MediaType.VIDEO, "mov"),
}

MAX_SIZES = {
    MediaType.IMAGE: 5 * MB,
    MediaType.GIF: 15 * MB,
    MediaType.VIDEO: 512 * MB,
}


def validate_attachment(mime_type: str | None, size: int) -> tuple[MediaType, str]:
    """Return (media type, file extension) or raise ``ValidationError``."""

    normalised = (mime_type or "").split(";", 1)[0].strip().lower()
    if normalised not in ALLOWED_MIME_TYPES:
        raise errors.ValidationError(
            "Unsupported file type. Allowed: JPEG, PNG, GIF, WEBP, MP4, MOV."
        )
    if size <= 0:
        raise errors.ValidationError("File is empty.")
    media_type, extension = ALLOWED_MIME_TYPES[normalised]
    limit = MAX_SIZES[media_type]
    if size > limit:
        raise errors.ValidationError(
            f"File too large. Maximum size for {media_type.value} is {limit // MB}MB."
        )
    return media_type, extension


def attachment_key(user_id: UUID, extension: str) -> str:
    return f"{user_id}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{extension}"


@dataclass(frozen=True)
class AttachmentPreview:
    attachment: Attachment
    content: bytes


class AttachmentService:
    def __init__(self, storage: StorageGateway) -> None:
        self._storage = storage

    async def create(
        self,
        session: AsyncSession,
        *,
        user_id: UUID,
        draft_id: UUID,
        filename: str,
        mime_type: str | None,
        data: bytes,
    ) -> Attachment:
        media_type, extension = validate_attachment(mime_type, len(data))
        draft, _ = await repositories.get_draft_with_recording(session, draft_id, user_id)

        key = attachment_key(user_id, extension)
        bucket = self._storage.attachments_bucket
        await self._storage.upload(key, data, content_type=mime_type, bucket=bucket)

        try:
            attachment = await repositories.create_attachment(
                session,
                Attachment(
                    draft_id=draft.id,
                    user_id=user_id,
                    storage_key=key,
                    filename=filename,
                    file_size=len(data),
                    mime_type=mime_type,
                    media_type=media_type,
                ),
            )
        except SQLAlchemyError:
            await session.rollback()
            await self._storage.remove(key, bucket=bucket)
            raise
        logger.info("Stored %s attachment %s for draft %s", media_type.value, key, draft.id)
        return attachment

    async def delete(self, session: AsyncSession, *, user_id: UUID, attachment_id: UUID) -> None:
        attachment = await repositories.get_attachment_for_user(session, attachment_id, user_id)
        removed = await self._storage.remove(
            attachment.storage_key, bucket=self._storage.attachments_bucket
        )
        if not removed:
            logger.error("Blob for attachment %s left behind in storage", attachment.id)
        await repositories.delete_attachment(session, attachment)

    async def preview(
        self, session: AsyncSession, *, user_id: UUID, attachment_id: UUID
    ) -> AttachmentPreview:
        attachment = await repositories.get_attachment_for_user(session, attachment_id, user_id)
        content = await self._storage.download(
            attachment.storage_key, bucket=self._storage.attachments_bucket
        )
        return AttachmentPreview(attachment=attachment, content=content)


__all__ = [
    "ALLOWED_MIME_TYPES",
    "AttachmentPreview",
    "AttachmentService",
    "MAX_SIZES",
    "attachment_key",
    "validate_attachment",
]
