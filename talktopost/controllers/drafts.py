"""Draft lookup and single-tweet rewriting."""

from uuid import UUID

from fastapi import APIRouter

from talktopost.controllers.dependencies import CurrentUserDep, ServicesDep, SessionDep
from talktopost.services import repositories
from talktopost.views import DraftResponse, RewriteRequest, RewriteResponse

router = APIRouter(prefix="/drafts", tags=["drafts"])


@router.post("/rewrite", response_model=RewriteResponse)
async def rewrite_tweet(
    payload: RewriteRequest,
    _current_user: CurrentUserDep,
    services: ServicesDep,
) -> RewriteResponse:
    result = await services.drafter.rewrite(payload.text, payload.max_length)
    return RewriteResponse(
        rewritten_text=result.text,
        original_length=result.original_length,
        new_length=result.new_length,
        fallback=result.fallback,
    )


@router.get("/{recording_id}", response_model=DraftResponse)
async def get_draft(
    recording_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
) -> DraftResponse:
    draft = await repositories.get_draft_for_recording(session, recording_id, current_user.id)
    return DraftResponse.from_model(draft)
