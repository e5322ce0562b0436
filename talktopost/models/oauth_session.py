"""Short-lived PKCE state for an in-flight OAuth2 authorization."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Uuid

from talktopost.models.base import Base, utcnow


class OAuthSession(Base):
    __tablename__ = "oauth_sessions"

    token = Column(String(64), primary_key=True)
    state = Column(String(128), nullable=False)
    code_verifier = Column(String(128), nullable=False)
    user_id = Column(Uuid, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


__all__ = ["OAuthSession"]
