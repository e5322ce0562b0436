"""Schemas for the Twitter connection endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TwitterAccountInfo(BaseModel):
    screen_name: Optional[str] = None
    connected_at: Optional[datetime] = None
    needs_reauth: bool = False


class TwitterStatusResponse(BaseModel):
    connected: bool
    account: Optional[TwitterAccountInfo] = None


class DisconnectResponse(BaseModel):
    success: bool
    message: str
    disconnected_accounts: int
