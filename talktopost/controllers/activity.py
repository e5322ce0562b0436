"""Posting activity for the last 30 days."""

from fastapi import APIRouter

from talktopost.controllers.dependencies import CurrentUserDep, SessionDep
from talktopost.models import utcnow
from talktopost.services import repositories
from talktopost.services.activity import build_activity, window_start
from talktopost.views import ActivityDayResponse, ActivityResponse, DateRange

router = APIRouter(prefix="/twitter", tags=["activity"])


@router.get("/activity", response_model=ActivityResponse)
async def posting_activity(
    current_user: CurrentUserDep,
    session: SessionDep,
) -> ActivityResponse:
    now = utcnow()
    posted_at = await repositories.list_post_times_since(
        session, current_user.id, window_start(now)
    )
    summary = build_activity(posted_at, now)
    return ActivityResponse(
        activity=[
            ActivityDayResponse(date=day.day, count=day.count, level=day.level)
            for day in summary.days
        ],
        total_posts=summary.total_posts,
        date_range=DateRange(start=summary.start, end=summary.end),
    )
