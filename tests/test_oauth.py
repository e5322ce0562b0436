import base64
import hashlib
from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from sqlalchemy import select

from talktopost.config.settings import TwitterConfig
from talktopost.database import SessionFactory
from talktopost.models import DISCONNECTED_TOKEN, OAuthSession, ensure_utc, utcnow
from talktopost.services import errors, repositories
from talktopost.services.oauth import (
    OAuth2Connector,
    code_challenge_s256,
    generate_code_verifier,
)
from talktopost.services.twitter import TwitterClient


@pytest.fixture
def twitter_config():
    return TwitterConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://api.test/auth/twitter/callback",
    )


@pytest.fixture
def twitter_client(twitter_config, fake_twitter):
    return TwitterClient(twitter_config, transport=httpx.MockTransport(fake_twitter.handler))


@pytest.fixture
def connector(twitter_client, twitter_config):
    return OAuth2Connector(twitter_client, twitter_config)


def test_code_verifier_within_pkce_bounds():
    verifier = generate_code_verifier()
    assert 43 <= len(verifier) <= 128


def test_code_challenge_is_unpadded_sha256():
    verifier = "a" * 64
    expected = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
    assert code_challenge_s256(verifier) == expected.decode().rstrip("=")
    assert "=" not in code_challenge_s256(verifier)


async def test_begin_auth_builds_authorization_url(connector, session, user):
    request = await connector.begin_auth(session, user_id=user.id)

    parts = urlsplit(request.authorization_url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://twitter.com/i/oauth2/authorize"
    query = {key: values[0] for key, values in parse_qs(parts.query).items()}
    assert query["response_type"] == "code"
    assert query["client_id"] == "client-id"
    assert query["redirect_uri"] == "http://api.test/auth/twitter/callback"
    assert query["scope"] == "tweet.read tweet.write users.read offline.access"
    assert query["state"] == request.state
    assert query["code_challenge_method"] == "S256"
    assert query["code_challenge"] == code_challenge_s256(request.code_verifier)

    stored = await session.get(OAuthSession, request.session_token)
    assert stored.state == request.state
    assert stored.user_id == user.id


async def test_complete_auth_links_pending_user(connector, session, user, fake_twitter):
    request = await connector.begin_auth(session, user_id=user.id)

    connected = await connector.complete_auth(
        session, code="auth-code", state=request.state, session_token=request.session_token
    )

    assert connected.user_id == user.id
    account = connected.account
    assert account.twitter_user_id == "42"
    assert account.screen_name == "voiceuser"
    assert account.access_token == "new-access"
    assert account.refresh_token == "new-refresh"
    assert account.needs_reauth is False

    token_request = fake_twitter.requests_to("/2/oauth2/token")[0]
    assert b"grant_type=authorization_code" in token_request.content
    assert b"code=auth-code" in token_request.content
    assert f"code_verifier={request.code_verifier}".encode() in token_request.content
    assert token_request.headers["Authorization"].startswith("Basic ")


async def test_complete_auth_creates_user_when_anonymous(connector, session, user):
    request = await connector.begin_auth(session)

    connected = await connector.complete_auth(
        session, code="auth-code", state=request.state, session_token=request.session_token
    )

    assert connected.user_id != user.id
    created = await repositories.get_user(session, connected.user_id)
    assert created.display_name == "Voice User"


async def test_existing_account_owner_wins(connector, session, user, other_user):
    await repositories.upsert_account(
        session,
        user_id=other_user.id,
        twitter_user_id="42",
        screen_name="voiceuser",
        access_token="old",
        refresh_token=None,
        token_expires_at=None,
    )
    request = await connector.begin_auth(session, user_id=user.id)

    connected = await connector.complete_auth(
        session, code="auth-code", state=request.state, session_token=request.session_token
    )

    assert connected.user_id == other_user.id
    assert connected.account.access_token == "new-access"


async def test_state_mismatch_never_exchanges_code(connector, session, fake_twitter):
    request = await connector.begin_auth(session)

    with pytest.raises(errors.StateMismatch):
        await connector.complete_auth(
            session, code="auth-code", state="forged", session_token=request.session_token
        )

    assert fake_twitter.requests_to("/2/oauth2/token") == []
    # the pending session is single use
    with pytest.raises(errors.StateMismatch):
        await connector.complete_auth(
            session, code="auth-code", state=request.state, session_token=request.session_token
        )


async def test_missing_session_is_rejected(connector, session, fake_twitter):
    with pytest.raises(errors.StateMismatch):
        await connector.complete_auth(session, code="c", state="s", session_token=None)
    assert fake_twitter.requests == []


async def test_expired_session_is_rejected(twitter_client, twitter_config, session, fake_twitter):
    early = OAuth2Connector(twitter_client, twitter_config)
    late = OAuth2Connector(
        twitter_client, twitter_config, clock=lambda: utcnow() + timedelta(hours=1)
    )
    request = await early.begin_auth(session)

    with pytest.raises(errors.StateMismatch):
        await late.complete_auth(
            session, code="c", state=request.state, session_token=request.session_token
        )
    assert fake_twitter.requests_to("/2/oauth2/token") == []


async def test_begin_auth_purges_abandoned_sessions(twitter_client, twitter_config, session):
    early = OAuth2Connector(twitter_client, twitter_config)
    for _ in range(3):
        await early.begin_auth(session)
    assert len((await session.execute(select(OAuthSession.token))).scalars().all()) == 3

    late = OAuth2Connector(
        twitter_client, twitter_config, clock=lambda: utcnow() + timedelta(hours=1)
    )
    request = await late.begin_auth(session)

    tokens = (await session.execute(select(OAuthSession.token))).scalars().all()
    assert tokens == [request.session_token]


async def test_pending_session_is_consumed_by_one_caller(connector, session):
    request = await connector.begin_auth(session)

    async with SessionFactory() as first, SessionFactory() as second:
        assert await first.get(OAuthSession, request.session_token) is not None
        await first.commit()

        assert await repositories.pop_oauth_session(second, request.session_token) is not None
        assert await repositories.pop_oauth_session(first, request.session_token) is None


async def test_failed_exchange_is_provider_error(connector, session, fake_twitter):
    fake_twitter.token_status = 400
    request = await connector.begin_auth(session)

    with pytest.raises(errors.ProviderError):
        await connector.complete_auth(
            session, code="bad", state=request.state, session_token=request.session_token
        )


async def test_forbidden_profile_uses_placeholder(connector, session, fake_twitter):
    fake_twitter.me_status = 403
    request = await connector.begin_auth(session)

    connected = await connector.complete_auth(
        session, code="auth-code", state=request.state, session_token=request.session_token
    )

    assert connected.account.twitter_user_id.startswith("twitter_user_")
    assert connected.account.screen_name == "twitter_user"
    assert connected.account.needs_reauth is True


async def test_refresh_replaces_tokens(connector, session, user, fake_twitter):
    account = await repositories.upsert_account(
        session,
        user_id=user.id,
        twitter_user_id="42",
        screen_name="voiceuser",
        access_token="old-access",
        refresh_token="old-refresh",
        token_expires_at=utcnow() - timedelta(minutes=5),
    )

    token = await connector.refresh(session, account)

    assert token == "new-access"
    assert account.refresh_token == "new-refresh"
    assert ensure_utc(account.token_expires_at) > utcnow()


async def test_refresh_without_token_fails(connector, session, user, fake_twitter):
    account = await repositories.upsert_account(
        session,
        user_id=user.id,
        twitter_user_id="42",
        screen_name="voiceuser",
        access_token="old-access",
        refresh_token=None,
        token_expires_at=None,
    )

    with pytest.raises(errors.RefreshFailed):
        await connector.refresh(session, account)

    assert account.needs_reauth is True
    assert fake_twitter.requests == []


async def test_status_resolve_and_disconnect(connector, session, user, other_user):
    status = await connector.status(session, user.id)
    assert status.connected is False
    with pytest.raises(errors.NoAccountConnected):
        await connector.resolve_account_for_user(session, user.id)

    account = await repositories.upsert_account(
        session,
        user_id=user.id,
        twitter_user_id="42",
        screen_name="voiceuser",
        access_token="access",
        refresh_token="refresh",
        token_expires_at=None,
    )

    status = await connector.status(session, user.id)
    assert status.connected is True
    assert status.screen_name == "voiceuser"
    assert (await connector.resolve_account_for_user(session, user.id)).id == account.id
    with pytest.raises(errors.NoAccountConnected):
        await connector.resolve_account_for_user(session, other_user.id)

    assert await connector.disconnect_user(session, user.id) == 1
    assert await connector.disconnect_user(session, user.id) == 0

    await session.refresh(account)
    assert account.access_token == DISCONNECTED_TOKEN
    assert account.refresh_token is None
    assert (await connector.status(session, user.id)).connected is False


async def test_disconnect_single_account(connector, session, user):
    account = await repositories.upsert_account(
        session,
        user_id=user.id,
        twitter_user_id="42",
        screen_name="voiceuser",
        access_token="access",
        refresh_token="refresh",
        token_expires_at=None,
    )

    await connector.disconnect(session, account)

    assert account.is_connected is False
    assert account.refresh_token is None
