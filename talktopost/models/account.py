"""Connected Twitter account and its OAuth token material."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid

from talktopost.models.base import Base, utcnow

DISCONNECTED_TOKEN = "DISCONNECTED"


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider = Column(String(32), nullable=False, default="twitter")
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
    screen_name = Column(String(255), nullable=True)
    twitter_user_id = Column(String(64), nullable=True, index=True)
    needs_reauth = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def is_connected(self) -> bool:
        return self.access_token != DISCONNECTED_TOKEN


__all__ = ["Account", "DISCONNECTED_TOKEN"]
