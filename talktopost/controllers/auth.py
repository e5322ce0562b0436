"""Twitter sign-in (OAuth2 PKCE), connection status and disconnect."""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from talktopost.config.settings import settings
from talktopost.controllers.dependencies import (
    CurrentUserDep,
    OptionalUserDep,
    ServicesDep,
    SessionDep,
)
from talktopost.services import errors
from talktopost.utils import create_access_token
from talktopost.views import DisconnectResponse, TwitterAccountInfo, TwitterStatusResponse

router = APIRouter(prefix="/auth/twitter", tags=["auth"])

logger = logging.getLogger(__name__)

OAUTH_SESSION_COOKIE = "twitter_oauth_session"


def _frontend_redirect(**params: str) -> RedirectResponse:
    base = settings.twitter.frontend_url.rstrip("/")
    return RedirectResponse(url=f"{base}/?{urlencode(params)}", status_code=302)


@router.get("/login")
async def login(
    session: SessionDep,
    services: ServicesDep,
    current_user: OptionalUserDep,
) -> RedirectResponse:
    """Start the PKCE flow and send the browser to Twitter."""

    auth_request = await services.connector.begin_auth(
        session, user_id=current_user.id if current_user else None
    )
    response = RedirectResponse(url=auth_request.authorization_url, status_code=302)
    response.set_cookie(
        OAUTH_SESSION_COOKIE,
        auth_request.session_token,
        max_age=settings.twitter.oauth_session_ttl_seconds,
        httponly=True,
        secure=settings.security.cookie_secure,
        samesite="lax",
        path="/",
    )
    return response


@router.get("/callback")
async def callback(
    request: Request,
    session: SessionDep,
    services: ServicesDep,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
) -> RedirectResponse:
    if error:
        logger.warning("Twitter authorization denied: %s", error)
        return _frontend_redirect(error="oauth_denied")
    if not code or not state:
        return _frontend_redirect(error="oauth_missing_params")

    try:
        connected = await services.connector.complete_auth(
            session,
            code=code,
            state=state,
            session_token=request.cookies.get(OAUTH_SESSION_COOKIE),
        )
    except errors.StateMismatch as exc:
        logger.warning("OAuth callback rejected: %s", exc.message)
        response = _frontend_redirect(error="oauth_state_mismatch")
        response.delete_cookie(OAUTH_SESSION_COOKIE, path="/")
        return response
    except errors.TalkToPostError as exc:
        logger.error("OAuth callback failed: %s", exc.message)
        response = _frontend_redirect(error="oauth_failed")
        response.delete_cookie(OAUTH_SESSION_COOKIE, path="/")
        return response

    token = create_access_token(str(connected.user_id))
    response = _frontend_redirect(twitter="connected")
    response.delete_cookie(OAUTH_SESSION_COOKIE, path="/")
    response.set_cookie(
        settings.security.session_cookie_name,
        token,
        max_age=settings.security.access_token_expires_minutes * 60,
        httponly=True,
        secure=settings.security.cookie_secure,
        samesite="lax",
        path="/",
    )
    return response


@router.get("/status", response_model=TwitterStatusResponse)
async def connection_status(
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
) -> TwitterStatusResponse:
    result = await services.connector.status(session, current_user.id)
    if not result.connected:
        return TwitterStatusResponse(connected=False)
    return TwitterStatusResponse(
        connected=True,
        account=TwitterAccountInfo(
            screen_name=result.screen_name,
            connected_at=result.connected_at,
            needs_reauth=result.needs_reauth,
        ),
    )


@router.post("/disconnect", response_model=DisconnectResponse)
async def disconnect(
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
) -> DisconnectResponse:
    count = await services.connector.disconnect_user(session, current_user.id)
    return DisconnectResponse(
        success=True,
        message="Twitter account disconnected" if count else "No Twitter account connected",
        disconnected_accounts=count,
    )
