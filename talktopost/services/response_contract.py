"""Pydantic models for validating the drafting LLM's JSON responses.

The model is asked for ``{"mode": ..., "tweets": [{"text", "char_count"}]}``.
Models routinely wrap that in Markdown fences, miscount characters or pick the
wrong mode, so everything is normalised here: texts are trimmed, empties are
dropped, ``char_count`` is recomputed and ``mode`` follows the tweet count.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError, field_validator, model_validator


class ResponseContractError(ValueError):
    """Raised when the LLM response contract cannot be validated."""


class DraftTweet(BaseModel):
    text: str
    char_count: int = 0

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def accept_plain_strings(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"text": value}
        return value

    @model_validator(mode="after")
    def recount(self) -> "DraftTweet":
        self.text = self.text.strip()
        self.char_count = len(self.text)
        return self


class DraftResponse(BaseModel):
    mode: str = "tweet"
    tweets: List[DraftTweet]

    model_config = {"extra": "ignore"}

    @field_validator("tweets", mode="before")
    @classmethod
    def drop_empty(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [
            item
            for item in value
            if not (isinstance(item, str) and not item.strip())
        ]

    @model_validator(mode="after")
    def normalise(self) -> "DraftResponse":
        tweets = [tweet for tweet in self.tweets if tweet.text]
        if not tweets:
            raise ValueError("draft contained no tweets")
        self.tweets = tweets
        self.mode = "thread" if len(tweets) > 1 else "tweet"
        return self

    @property
    def texts(self) -> list[str]:
        return [tweet.text for tweet in self.tweets]

    def overlong(self, limit: int = 280) -> list[int]:
        """Positions of tweets Twitter would reject for length."""

        return [index for index, tweet in enumerate(self.tweets) if tweet.char_count > limit]

    def thread_payload(self) -> list[dict[str, Any]]:
        return [tweet.model_dump() for tweet in self.tweets]

    @classmethod
    def from_json(cls, payload: str) -> "DraftResponse":
        cleaned = _clean_json_payload(payload)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ResponseContractError(f"Draft is not valid JSON: {exc}") from exc
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ResponseContractError(f"Draft does not match contract: {exc}") from exc

    @classmethod
    def fallback(cls, content: str, limit: int = 280) -> "DraftResponse":
        """Single tweet made of the raw content cut to ``limit`` characters."""

        return cls(mode="tweet", tweets=[DraftTweet(text=content.strip()[:limit])])


def _clean_json_payload(payload: Optional[str]) -> str:
    """Strip Markdown code blocks and find the first/last brace to extract JSON."""
    if not payload:
        return ""

    # Remove markdown code blocks if present
    cleaned = payload.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]

    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    cleaned = cleaned.strip()

    # Find the first '{' and last '}'
    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start != -1 and end != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


__all__ = ["DraftResponse", "DraftTweet", "ResponseContractError"]
