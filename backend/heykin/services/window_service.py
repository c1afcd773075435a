"""Check-in window evaluation.

Pure functions over a schedule and an instant. Every evaluation happens in the
schedule's own timezone; instants passed in must be timezone-aware.

Weekdays use 0 = Sunday .. 6 = Saturday, matching the stored ``active_days``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class ScheduleConfigError(ValueError):
    """Raised when a schedule cannot be evaluated (bad timezone or window)."""


class ScheduleLike(Protocol):
    window_start_hour: int
    window_start_minute: int
    window_end_hour: int
    window_end_minute: int
    timezone_identifier: str
    active_days: list[int]
    grace_period_minutes: int
    reminder_enabled: bool
    reminder_minutes_before: int


@dataclass(frozen=True)
class WindowBounds:
    """Wall-clock bounds of one day's window, naive in the schedule's timezone."""

    day: date
    start: datetime
    end: datetime
    grace_end: datetime


def schedule_zone(schedule: ScheduleLike) -> ZoneInfo:
    try:
        return ZoneInfo(schedule.timezone_identifier)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as exc:
        raise ScheduleConfigError(f"Unknown timezone '{schedule.timezone_identifier}'") from exc


def validate_schedule(schedule: ScheduleLike) -> None:
    """Raise ScheduleConfigError unless the window math is well-defined."""
    schedule_zone(schedule)
    for hour in (schedule.window_start_hour, schedule.window_end_hour):
        if not 0 <= hour <= 23:
            raise ScheduleConfigError(f"Hour out of range: {hour}")
    for minute in (schedule.window_start_minute, schedule.window_end_minute):
        if not 0 <= minute <= 59:
            raise ScheduleConfigError(f"Minute out of range: {minute}")
    if _end_time(schedule) <= _start_time(schedule):
        raise ScheduleConfigError("Window end must be after window start")
    if schedule.grace_period_minutes < 0:
        raise ScheduleConfigError("Grace period cannot be negative")
    if any(d not in range(7) for d in schedule.active_days or []):
        raise ScheduleConfigError(f"Active days must be within 0-6: {schedule.active_days}")


def _start_time(schedule: ScheduleLike) -> time:
    return time(schedule.window_start_hour, schedule.window_start_minute)


def _end_time(schedule: ScheduleLike) -> time:
    return time(schedule.window_end_hour, schedule.window_end_minute)


def _require_aware(instant: datetime) -> None:
    if instant.tzinfo is None:
        raise ValueError("instant must be timezone-aware")


def to_local(schedule: ScheduleLike, instant: datetime) -> datetime:
    """Convert an instant to wall-clock time in the schedule's timezone."""
    _require_aware(instant)
    return instant.astimezone(schedule_zone(schedule))


def local_day(schedule: ScheduleLike, instant: datetime) -> date:
    return to_local(schedule, instant).date()


def weekday_index(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def is_active_day(schedule: ScheduleLike, day: date) -> bool:
    return weekday_index(day) in (schedule.active_days or [])


def window_bounds(schedule: ScheduleLike, day: date) -> WindowBounds:
    """Window for a local calendar day. Grace past midnight is clamped to the same day."""
    start = datetime.combine(day, _start_time(schedule))
    end = datetime.combine(day, _end_time(schedule))
    end_of_day = datetime.combine(day, time.max)
    grace_end = min(end + timedelta(minutes=schedule.grace_period_minutes), end_of_day)
    return WindowBounds(day=day, start=start, end=end, grace_end=grace_end)


def _wall(local: datetime) -> datetime:
    return local.replace(tzinfo=None)


def _to_instant(schedule: ScheduleLike, wall: datetime) -> datetime:
    return wall.replace(tzinfo=schedule_zone(schedule)).astimezone(timezone.utc)


def is_within_window(schedule: ScheduleLike, instant: datetime) -> bool:
    """True on an active day between window start and end, both inclusive."""
    local = to_local(schedule, instant)
    if not is_active_day(schedule, local.date()):
        return False
    bounds = window_bounds(schedule, local.date())
    return bounds.start <= _wall(local) <= bounds.end


def is_in_grace_period(schedule: ScheduleLike, instant: datetime) -> bool:
    """True strictly after window end and up to end + grace. Window end itself is not grace."""
    local = to_local(schedule, instant)
    bounds = window_bounds(schedule, local.date())
    return bounds.end < _wall(local) <= bounds.grace_end


def window_start_at(schedule: ScheduleLike, day: date) -> datetime:
    """Absolute instant the window opens on a local day."""
    return _to_instant(schedule, window_bounds(schedule, day).start)


def missed_window_at(schedule: ScheduleLike, day: date) -> datetime:
    """Absolute instant the window plus grace closes on a local day."""
    return _to_instant(schedule, window_bounds(schedule, day).grace_end)


def has_window_closed(schedule: ScheduleLike, instant: datetime) -> bool:
    """True once today's window and grace period are both over on an active day."""
    local = to_local(schedule, instant)
    if not is_active_day(schedule, local.date()):
        return False
    return _wall(local) > window_bounds(schedule, local.date()).grace_end


def latest_closed_day(schedule: ScheduleLike, now: datetime, carryover: timedelta = timedelta(0)) -> date | None:
    """Active day whose window and grace are over and still due a missed-check-in decision.

    Today counts once its grace period has ended. Yesterday counts while ``now``
    is at most ``carryover`` past its close, so a grace period clamped to (or
    ending just before) local midnight is still seen by the next day's scans.
    """
    today = local_day(schedule, now)
    if has_window_closed(schedule, now):
        return today
    yesterday = today - timedelta(days=1)
    if not is_active_day(schedule, yesterday):
        return None
    closed_at = missed_window_at(schedule, yesterday)
    if closed_at < now <= closed_at + carryover:
        return yesterday
    return None


def qualifies_for_day(schedule: ScheduleLike, checkin_at: datetime, day: date) -> bool:
    """A check-in satisfies a day when made within or after that day's window."""
    return checkin_at >= window_start_at(schedule, day)


def _next_active_instant(schedule: ScheduleLike, now: datetime, pick) -> datetime | None:
    local = to_local(schedule, now)
    for offset in range(8):
        day = local.date() + timedelta(days=offset)
        if not is_active_day(schedule, day):
            continue
        candidate = _to_instant(schedule, pick(window_bounds(schedule, day)))
        if candidate > now:
            return candidate
    return None


def next_window_opens_at(schedule: ScheduleLike, now: datetime) -> datetime | None:
    return _next_active_instant(schedule, now, lambda b: b.start)


def next_window_closes_at(schedule: ScheduleLike, now: datetime) -> datetime | None:
    """Next close of window plus grace."""
    return _next_active_instant(schedule, now, lambda b: b.grace_end)


def next_reminder_at(schedule: ScheduleLike, now: datetime) -> datetime | None:
    """When the pre-deadline reminder should fire, or None if reminders are off."""
    if not schedule.reminder_enabled:
        return None
    before = timedelta(minutes=schedule.reminder_minutes_before)
    return _next_active_instant(schedule, now, lambda b: max(b.end - before, b.start))
