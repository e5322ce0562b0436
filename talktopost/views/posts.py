"""Schemas for publishing drafts."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class PostRequest(BaseModel):
    draft_id: UUID


class PostResponse(BaseModel):
    post_id: UUID
    tweet_ids: List[str]
    mode: str
    posted_at: Optional[datetime] = None
    retry_count: int = 0
