"""Posting activity heatmap over the last 30 days."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from talktopost.models import ensure_utc

WINDOW_DAYS = 30


@dataclass(frozen=True)
class ActivityDay:
    day: date
    count: int
    level: int


@dataclass(frozen=True)
class ActivitySummary:
    days: list[ActivityDay]
    total_posts: int
    start: date
    end: date


def activity_level(count: int) -> int:
    if count <= 0:
        return 0
    if count == 1:
        return 1
    if count <= 3:
        return 2
    if count <= 5:
        return 3
    return 4


def window_start(now: datetime) -> datetime:
    """Midnight UTC of the first day in the window ending at ``now``."""

    first_day = ensure_utc(now).date() - timedelta(days=WINDOW_DAYS - 1)
    return datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)


def build_activity(posted_at: Iterable[datetime], now: datetime) -> ActivitySummary:
    """Bucket post timestamps per UTC day, oldest day first."""

    end = ensure_utc(now).date()
    start = end - timedelta(days=WINDOW_DAYS - 1)
    counts = Counter(ensure_utc(value).date() for value in posted_at if value is not None)

    days = []
    for offset in range(WINDOW_DAYS):
        day = start + timedelta(days=offset)
        count = counts.get(day, 0)
        days.append(ActivityDay(day=day, count=count, level=activity_level(count)))

    return ActivitySummary(
        days=days,
        total_posts=sum(day.count for day in days),
        start=start,
        end=end,
    )


__all__ = ["ActivityDay", "ActivitySummary", "activity_level", "build_activity", "window_start"]
