"""Transcript produced for a recording."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, String, Text, Uuid

from talktopost.models.base import Base, utcnow


class Transcript(Base):
    __tablename__ = "transcripts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recording_id = Column(
        Uuid,
        ForeignKey("recordings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    text = Column(Text, nullable=False)
    confidence = Column(Float, nullable=True)
    language = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


__all__ = ["Transcript"]
