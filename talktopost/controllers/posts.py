"""Publish a ready draft to the caller's connected Twitter account."""

from fastapi import APIRouter

from talktopost.controllers.dependencies import CurrentUserDep, PipelineDep, SessionDep
from talktopost.views import ErrorResponse, PostRequest, PostResponse

router = APIRouter(tags=["posts"])


@router.post(
    "/post",
    response_model=PostResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)
async def post_draft(
    payload: PostRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    pipeline: PipelineDep,
) -> PostResponse:
    post, draft = await pipeline.post_draft(session, payload.draft_id, current_user.id)
    return PostResponse(
        post_id=post.id,
        tweet_ids=list(post.twitter_tweet_ids or []),
        mode=draft.mode.value,
        posted_at=post.posted_at,
        retry_count=post.retry_count or 0,
    )
