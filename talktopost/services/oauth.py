"""OAuth2 (PKCE) connector for linking Twitter accounts.

A connection walks ``INIT -> AWAITING_CODE -> EXCHANGING -> CONNECTED`` and
drops to ``FAILED`` on any error. The pending verifier and state live in an
``OAuthSession`` row that is deleted the moment the callback loads it.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable
from urllib.parse import urlencode
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from talktopost.config.settings import TwitterConfig
from talktopost.models import Account, OAuthSession, ensure_utc, utcnow
from talktopost.services import errors, repositories
from talktopost.services.twitter import TokenGrant, TwitterApiError, TwitterClient, TwitterProfile
from talktopost.telemetry.metrics import record_connection

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    INIT = "init"
    AWAITING_CODE = "awaiting_code"
    EXCHANGING = "exchanging"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass(frozen=True)
class AuthorizationRequest:
    authorization_url: str
    session_token: str
    state: str
    code_verifier: str
    expires_at: datetime


@dataclass(frozen=True)
class ConnectedAccount:
    account: Account
    user_id: UUID
    profile: TwitterProfile


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    screen_name: str | None = None
    connected_at: datetime | None = None
    needs_reauth: bool = False


def generate_code_verifier() -> str:
    """Random URL-safe verifier within the 43..128 character PKCE bounds."""

    return secrets.token_urlsafe(64)[:128]


def code_challenge_s256(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def _expiry(grant: TokenGrant, now: datetime) -> datetime | None:
    if grant.expires_in is None:
        return None
    return now + timedelta(seconds=grant.expires_in)


class OAuth2Connector:
    def __init__(
        self,
        client: TwitterClient,
        config: TwitterConfig,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._client = client
        self._config = config
        self._clock = clock

    def _log_state(self, state: ConnectionState, detail: str = "") -> None:
        logger.info("Twitter connection state=%s %s", state.value, detail)

    async def begin_auth(
        self,
        session: AsyncSession,
        *,
        user_id: UUID | None = None,
    ) -> AuthorizationRequest:
        """Create a pending session and the provider authorization URL."""

        self._log_state(ConnectionState.INIT)
        verifier = generate_code_verifier()
        state = secrets.token_urlsafe(32)
        token = secrets.token_urlsafe(32)
        now = self._clock()
        expires_at = now + timedelta(seconds=self._config.oauth_session_ttl_seconds)

        purged = await repositories.purge_expired_oauth_sessions(session, now)
        if purged:
            logger.debug("Purged %d expired OAuth session(s)", purged)
        await repositories.create_oauth_session(
            session,
            OAuthSession(
                token=token,
                state=state,
                code_verifier=verifier,
                user_id=user_id,
                expires_at=expires_at,
            ),
        )

        query = urlencode(
            {
                "response_type": "code",
                "client_id": self._config.client_id,
                "redirect_uri": self._config.redirect_uri,
                "scope": " ".join(self._config.scopes),
                "state": state,
                "code_challenge": code_challenge_s256(verifier),
                "code_challenge_method": "S256",
            }
        )
        self._log_state(ConnectionState.AWAITING_CODE)
        return AuthorizationRequest(
            authorization_url=f"{self._config.authorize_url}?{query}",
            session_token=token,
            state=state,
            code_verifier=verifier,
            expires_at=expires_at,
        )

    async def complete_auth(
        self,
        session: AsyncSession,
        *,
        code: str,
        state: str,
        session_token: str | None,
    ) -> ConnectedAccount:
        pending = await repositories.pop_oauth_session(session, session_token) if session_token else None
        if pending is None:
            self._fail("no pending session")
            raise errors.StateMismatch("OAuth session not found")
        if not secrets.compare_digest(pending.state, state):
            self._fail("state mismatch")
            raise errors.StateMismatch()
        if ensure_utc(pending.expires_at) <= self._clock():
            self._fail("session expired")
            raise errors.StateMismatch("OAuth session expired")

        self._log_state(ConnectionState.EXCHANGING)
        try:
            grant = await self._client.exchange_code(code, pending.code_verifier)
        except TwitterApiError as exc:
            self._fail(f"token exchange failed ({exc.status_code})")
            raise errors.ProviderError("Failed to exchange authorization code") from exc

        profile, placeholder = await self._fetch_profile(grant.access_token)
        user_id = await self._resolve_user(session, profile, pending.user_id)
        account = await repositories.upsert_account(
            session,
            user_id=user_id,
            twitter_user_id=profile.id,
            screen_name=profile.username,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            token_expires_at=_expiry(grant, self._clock()),
        )
        if placeholder:
            account = await repositories.mark_account_needs_reauth(session, account)
        record_connection("connected")
        self._log_state(ConnectionState.CONNECTED, f"screen_name={profile.username}")
        return ConnectedAccount(account=account, user_id=user_id, profile=profile)

    def _fail(self, reason: str) -> None:
        record_connection("failed")
        self._log_state(ConnectionState.FAILED, reason)

    async def _fetch_profile(self, access_token: str) -> tuple[TwitterProfile, bool]:
        try:
            return await self._client.get_me(access_token), False
        except TwitterApiError as exc:
            if exc.status_code == 403:
                # Without users.read the profile is unreadable; keep the tokens, flag for re-auth.
                placeholder = f"twitter_user_{int(self._clock().timestamp() * 1000)}"
                logger.warning("Profile lookup forbidden; using placeholder %s", placeholder)
                profile = TwitterProfile(
                    id=placeholder, username="twitter_user", name="Twitter User"
                )
                return profile, True
            self._fail(f"profile lookup failed ({exc.status_code})")
            raise errors.ProviderError("Failed to load Twitter profile") from exc

    async def _resolve_user(
        self,
        session: AsyncSession,
        profile: TwitterProfile,
        pending_user_id: UUID | None,
    ) -> UUID:
        existing = await repositories.find_account_by_twitter_id(session, profile.id)
        if existing is not None:
            return existing.user_id
        if pending_user_id is not None:
            user = await repositories.get_user(session, pending_user_id)
            if user is not None:
                return user.id
        user = await repositories.create_user(
            session, display_name=profile.name or profile.username
        )
        return user.id

    async def resolve_account_for_user(self, session: AsyncSession, user_id: UUID) -> Account:
        account = await repositories.latest_valid_account(session, user_id)
        if account is None:
            raise errors.NoAccountConnected()
        return account

    async def refresh(self, session: AsyncSession, account: Account) -> str:
        """Exchange the refresh token and persist the new token material."""

        if not account.refresh_token:
            await repositories.mark_account_needs_reauth(session, account)
            raise errors.RefreshFailed("No refresh token available")
        try:
            grant = await self._client.refresh_token(account.refresh_token)
        except TwitterApiError as exc:
            logger.warning("Token refresh failed for account %s: %s", account.id, exc.status_code)
            await repositories.mark_account_needs_reauth(session, account)
            raise errors.RefreshFailed() from exc

        await repositories.update_account_tokens(
            session,
            account,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or account.refresh_token,
            token_expires_at=_expiry(grant, self._clock()),
        )
        logger.info("Refreshed access token for account %s", account.id)
        return grant.access_token

    async def disconnect(self, session: AsyncSession, account: Account) -> None:
        """Revoke locally; the row stays so posts keep their account reference."""

        await repositories.mark_account_disconnected(session, account)
        logger.info("Disconnected Twitter account %s", account.id)

    async def disconnect_user(self, session: AsyncSession, user_id: UUID) -> int:
        count = await repositories.disconnect_accounts(session, user_id)
        logger.info("Disconnected %d Twitter account(s) for user %s", count, user_id)
        return count

    async def status(self, session: AsyncSession, user_id: UUID) -> ConnectionStatus:
        account = await repositories.latest_valid_account(session, user_id)
        if account is None:
            return ConnectionStatus(connected=False)
        return ConnectionStatus(
            connected=True,
            screen_name=account.screen_name,
            connected_at=ensure_utc(account.created_at),
            needs_reauth=bool(account.needs_reauth),
        )


__all__ = [
    "AuthorizationRequest",
    "ConnectedAccount",
    "ConnectionState",
    "ConnectionStatus",
    "OAuth2Connector",
    "code_challenge_s256",
    "generate_code_verifier",
]
