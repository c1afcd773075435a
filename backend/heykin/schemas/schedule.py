"""Schedule schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ScheduleRequest(BaseModel):
    window_start_hour: int = Field(ge=0, le=23)
    window_start_minute: int = Field(ge=0, le=59, default=0)
    window_end_hour: int = Field(ge=0, le=23)
    window_end_minute: int = Field(ge=0, le=59, default=0)
    timezone_identifier: str = "UTC"
    active_days: list[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4, 5, 6])
    grace_period_minutes: int = Field(ge=0, le=24 * 60, default=30)
    reminder_enabled: bool = True
    reminder_minutes_before: int = Field(ge=0, le=24 * 60, default=30)


class ScheduleResponse(BaseModel):
    id: int
    user_id: int
    window_start_hour: int
    window_start_minute: int
    window_end_hour: int
    window_end_minute: int
    timezone_identifier: str
    active_days: list[int]
    grace_period_minutes: int
    reminder_enabled: bool
    reminder_minutes_before: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ScheduleStatus(ScheduleResponse):
    """Schedule plus where "now" sits relative to it."""

    in_window: bool = False
    in_grace_period: bool = False
    next_window_opens_at: datetime | None = None
    next_window_closes_at: datetime | None = None
    next_reminder_at: datetime | None = None
