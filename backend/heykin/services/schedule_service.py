"""Schedule service."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from heykin.models.schedule import ALL_DAYS, Schedule
from heykin.services.window_service import ScheduleConfigError, validate_schedule

logger = logging.getLogger(__name__)


def get_active_schedule(db: Session, user_id: int) -> Schedule | None:
    """The user's current schedule, if any."""
    result = db.execute(
        select(Schedule)
        .where(Schedule.user_id == user_id, Schedule.is_active.is_(True))
        .order_by(Schedule.created_at.desc(), Schedule.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def save_schedule(
    db: Session,
    user_id: int,
    *,
    window_start_hour: int,
    window_start_minute: int,
    window_end_hour: int,
    window_end_minute: int,
    timezone_identifier: str,
    active_days: list[int] | None = None,
    grace_period_minutes: int = 30,
    reminder_enabled: bool = True,
    reminder_minutes_before: int = 30,
) -> Schedule:
    """Store a new active schedule and deactivate the previous one.

    Raises ScheduleConfigError (a ValueError) for windows that cannot be evaluated.
    """
    schedule = Schedule(
        user_id=user_id,
        window_start_hour=window_start_hour,
        window_start_minute=window_start_minute,
        window_end_hour=window_end_hour,
        window_end_minute=window_end_minute,
        timezone_identifier=timezone_identifier,
        active_days=sorted(set(active_days if active_days is not None else ALL_DAYS)),
        grace_period_minutes=grace_period_minutes,
        reminder_enabled=reminder_enabled,
        reminder_minutes_before=reminder_minutes_before,
        is_active=True,
    )
    validate_schedule(schedule)
    if not schedule.active_days:
        raise ScheduleConfigError("At least one active day is required")

    db.execute(
        update(Schedule)
        .where(Schedule.user_id == user_id, Schedule.is_active.is_(True))
        .values(is_active=False)
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    logger.info("Saved schedule %s for user %s (%s)", schedule.id, user_id, timezone_identifier)
    return schedule
