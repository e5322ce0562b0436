"""Schemas for provider health probes."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    provider: str
    status: str
    detail: Optional[str] = None
    latency_ms: float
