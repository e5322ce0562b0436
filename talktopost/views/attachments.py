"""Schemas for draft attachments."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from talktopost.models import MediaType


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    draft_id: UUID
    filename: str
    file_size: int
    mime_type: str
    media_type: MediaType
    storage_key: str
    created_at: datetime
