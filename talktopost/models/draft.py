"""Drafted tweet or thread for a recording."""

from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import ForeignKey, Text, Uuid

from talktopost.models.base import Base, JsonType, utcnow


class DraftMode(str, Enum):
    TWEET = "tweet"
    THREAD = "thread"


class Draft(Base):
    __tablename__ = "drafts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recording_id = Column(
        Uuid,
        ForeignKey("recordings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    mode = Column(
        SqlEnum(
            DraftMode,
            name="draft_mode",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    )
    # [{"text": ..., "char_count": ...}, ...] in posting order
    thread = Column(JsonType, nullable=False, default=list)
    original_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


__all__ = ["Draft", "DraftMode"]
