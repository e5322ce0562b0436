"""Common response schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    detail: str
    code: Optional[str] = None
    needs_reconnect: bool = Field(default=False, serialization_alias="needsReconnect")
