"""Thin OpenRouter client wrapper for chat-completion invocations."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from talktopost.config.settings import LlmConfig

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when the OpenRouter invocation fails."""


class OpenRouterLlmClient:
    """Invoke OpenRouter chat completions with standard configuration."""

    def __init__(
        self,
        config: LlmConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key.get_secret_value()}",
            "HTTP-Referer": self._config.referer,
            "X-Title": self._config.title,
        }

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout_seconds,
            headers=self._headers(),
            transport=self._transport,
        )

    async def invoke(
        self,
        *,
        user_prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str | None:
        """Run a chat completion and return the first choice's text."""

        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        payload: dict[str, Any] = {
            "model": model or self._config.model,
            "messages": messages,
            "max_tokens": max_tokens or self._config.max_tokens,
            "temperature": (
                temperature if temperature is not None else self._config.temperature
            ),
        }

        try:
            async with self._http_client() as client:
                response = await client.post("/chat/completions", json=payload)
        except httpx.HTTPError as exc:
            raise LlmInvocationError(f"OpenRouter request failed: {exc}") from exc

        if response.status_code != 200:
            raise LlmInvocationError(
                f"OpenRouter returned HTTP {response.status_code}: {response.text[:300]}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LlmInvocationError("OpenRouter returned a non-JSON body") from exc

        choices = data.get("choices") or []
        if not choices:
            return None
        content = (choices[0].get("message") or {}).get("content")
        if not isinstance(content, str):
            return None
        return content.strip() or None

    async def ping(self) -> None:
        try:
            async with self._http_client() as client:
                response = await client.get("/models")
        except httpx.HTTPError as exc:
            raise LlmInvocationError(f"OpenRouter unreachable: {exc}") from exc
        if response.status_code >= 400:
            raise LlmInvocationError(f"OpenRouter returned HTTP {response.status_code}")


__all__ = ["OpenRouterLlmClient", "LlmInvocationError"]
