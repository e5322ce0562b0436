"""HTTP client for the Twitter v2 API and its OAuth2 token endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from talktopost.config.settings import TwitterConfig

logger = logging.getLogger(__name__)


class TwitterApiError(Exception):
    """Non-success response (or transport failure when ``status_code`` is None)."""

    def __init__(self, status_code: int | None, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Twitter API error {status_code}: {detail}")


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    refresh_token: str | None
    expires_in: int | None


@dataclass(frozen=True)
class TwitterProfile:
    id: str
    username: str
    name: str | None = None


def _grant_from(data: dict[str, Any]) -> TokenGrant:
    access_token = data.get("access_token")
    if not access_token:
        raise TwitterApiError(None, "Token response missing access_token")
    expires_in = data.get("expires_in")
    return TokenGrant(
        access_token=access_token,
        refresh_token=data.get("refresh_token"),
        expires_in=int(expires_in) if expires_in is not None else None,
    )


class TwitterClient:
    """Async Twitter API calls; tokens are passed in, never stored here."""

    def __init__(
        self,
        config: TwitterConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    def _http_client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.api_base_url,
            timeout=timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            async with self._http_client(timeout) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise TwitterApiError(None, f"Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise TwitterApiError(None, f"Request to {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise TwitterApiError(response.status_code, response.text[:500])
        try:
            return response.json()
        except ValueError as exc:
            raise TwitterApiError(response.status_code, "Non-JSON response") from exc

    async def _token_request(self, form: dict[str, str]) -> TokenGrant:
        data = await self._request(
            "POST",
            "/2/oauth2/token",
            timeout=self._config.token_timeout_seconds,
            data={**form, "client_id": self._config.client_id},
            auth=(self._config.client_id, self._config.client_secret.get_secret_value()),
        )
        return _grant_from(data)

    async def exchange_code(self, code: str, code_verifier: str) -> TokenGrant:
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._config.redirect_uri,
                "code_verifier": code_verifier,
            }
        )

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        return await self._token_request(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

    async def get_me(self, access_token: str) -> TwitterProfile:
        data = await self._request(
            "GET",
            "/2/users/me",
            timeout=self._config.token_timeout_seconds,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        user = data.get("data") or {}
        if not user.get("id"):
            raise TwitterApiError(None, "Profile response missing user id")
        return TwitterProfile(
            id=str(user["id"]),
            username=user.get("username") or "",
            name=user.get("name"),
        )

    async def create_tweet(
        self,
        access_token: str,
        text: str,
        *,
        reply_to: str | None = None,
    ) -> str:
        """Publish one tweet and return its id."""

        payload: dict[str, Any] = {"text": text}
        if reply_to:
            payload["reply"] = {"in_reply_to_tweet_id": reply_to}
        data = await self._request(
            "POST",
            "/2/tweets",
            timeout=self._config.post_timeout_seconds,
            json=payload,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        tweet_id = (data.get("data") or {}).get("id")
        if not tweet_id:
            raise TwitterApiError(None, "Tweet response missing id")
        return str(tweet_id)

    async def ping(self) -> None:
        try:
            async with self._http_client(self._config.token_timeout_seconds) as client:
                await client.head("/")
        except httpx.HTTPError as exc:
            raise TwitterApiError(None, f"Twitter unreachable: {exc}") from exc


__all__ = ["TokenGrant", "TwitterApiError", "TwitterClient", "TwitterProfile"]
