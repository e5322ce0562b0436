"""Recording model and its processing lifecycle states."""

from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from talktopost.models.base import Base, utcnow


class RecordingStatus(str, Enum):
    """Lifecycle states of a recording as it moves through the pipeline."""

    UPLOADED = "uploaded"
    TRANSCRIBING = "transcribing"
    DRAFTING = "drafting"
    READY = "ready"
    POSTED = "posted"
    FAILED = "failed"


class Recording(Base):
    __tablename__ = "recordings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    storage_key = Column(String(512), nullable=False)
    content_type = Column(String(64), nullable=False, default="audio/webm")
    status = Column(
        SqlEnum(
            RecordingStatus,
            name="recording_status",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
        default=RecordingStatus.UPLOADED,
    )
    file_size = Column(Integer, nullable=True)
    duration_seconds = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    transcript = relationship(
        "Transcript", uselist=False, cascade="all, delete-orphan", lazy="raise"
    )
    draft = relationship(
        "Draft", uselist=False, cascade="all, delete-orphan", lazy="raise"
    )
    posts = relationship(
        "Post",
        cascade="all, delete-orphan",
        order_by="Post.created_at",
        lazy="raise",
    )


__all__ = ["Recording", "RecordingStatus"]
