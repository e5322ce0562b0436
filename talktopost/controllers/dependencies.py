"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from talktopost.config.settings import settings
from talktopost.database import get_session
from talktopost.models.user import User as UserModel
from talktopost.pipelines.recording import PipelineOrchestrator
from talktopost.services import repositories
from talktopost.services.container import Services, build_services
from talktopost.utils import AuthenticationError, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)
SessionDep = Annotated[AsyncSession, Depends(get_session)]


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.security.session_cookie_name)


async def _resolve_user(session: AsyncSession, token: str) -> Optional[UserModel]:
    try:
        payload = decode_access_token(token)
        user_id = UUID(payload.sub)
    except (AuthenticationError, ValueError):
        return None
    return await repositories.get_user(session, user_id)


async def get_current_user(
    request: Request,
    session: SessionDep,
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ] = None,
) -> UserModel:
    """Resolve the user from the bearer header or the session cookie."""

    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = await _resolve_user(session, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return user


async def get_optional_user(
    request: Request,
    session: SessionDep,
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ] = None,
) -> Optional[UserModel]:
    token = _extract_token(request, credentials)
    if not token:
        return None
    return await _resolve_user(session, token)


@lru_cache(maxsize=1)
def get_services() -> Services:
    return build_services(settings)


ServicesDep = Annotated[Services, Depends(get_services)]


def get_pipeline(services: ServicesDep) -> PipelineOrchestrator:
    return services.pipeline


CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]
OptionalUserDep = Annotated[Optional[UserModel], Depends(get_optional_user)]
PipelineDep = Annotated[PipelineOrchestrator, Depends(get_pipeline)]


__all__ = [
    "CurrentUserDep",
    "OptionalUserDep",
    "PipelineDep",
    "ServicesDep",
    "SessionDep",
    "bearer_scheme",
    "get_current_user",
    "get_optional_user",
    "get_pipeline",
    "get_services",
]
