"""Record of a posting attempt, successful or not."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, Uuid

from talktopost.models.base import Base, JsonType, utcnow


class Post(Base):
    __tablename__ = "posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recording_id = Column(
        Uuid, ForeignKey("recordings.id", ondelete="CASCADE"), nullable=True, index=True
    )
    draft_id = Column(
        Uuid, ForeignKey("drafts.id", ondelete="SET NULL"), nullable=True
    )
    account_id = Column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    twitter_tweet_ids = Column(JsonType, nullable=False, default=list)
    posted_at = Column(DateTime(timezone=True), nullable=True, index=True)
    error = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


__all__ = ["Post"]
