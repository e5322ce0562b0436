"""Schemas for the posting activity heatmap."""

from __future__ import annotations

from datetime import date
from typing import List

from pydantic import BaseModel


class ActivityDayResponse(BaseModel):
    date: date
    count: int
    level: int


class DateRange(BaseModel):
    start: date
    end: date


class ActivityResponse(BaseModel):
    activity: List[ActivityDayResponse]
    total_posts: int
    date_range: DateRange
