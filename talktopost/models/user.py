"""SQLAlchemy model for application users."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, String, Uuid

from talktopost.models.base import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    display_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


__all__ = ["User"]
