"""Media attachment uploaded for a draft."""

from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import BigInteger, Column, DateTime
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import ForeignKey, String, Uuid

from talktopost.models.base import Base, utcnow


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    GIF = "gif"


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    draft_id = Column(
        Uuid, ForeignKey("drafts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    storage_key = Column(String(512), nullable=False)
    filename = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(64), nullable=False)
    media_type = Column(
        SqlEnum(
            MediaType,
            name="media_type",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


__all__ = ["Attachment", "MediaType"]
