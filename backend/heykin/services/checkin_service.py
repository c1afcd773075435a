"""Check-in service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from heykin.core.clock import Clock, system_clock
from heykin.models.checkin import CheckIn
from heykin.models.schedule import Schedule
from heykin.models.user import User
from heykin.services import window_service
from heykin.services.alert_service import resolve_all_for_checker
from heykin.services.poke_service import mark_responded
from heykin.services.schedule_service import get_active_schedule

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = (
    "mental_score",
    "body_score",
    "mood_score",
    "latitude",
    "longitude",
    "location_name",
    "address",
)


def _zone(schedule: Schedule | None) -> ZoneInfo | timezone:
    return window_service.schedule_zone(schedule) if schedule else timezone.utc


def local_day_bounds(schedule: Schedule | None, day: date) -> tuple[datetime, datetime]:
    """UTC instants bounding a local calendar day, end exclusive."""
    zone = _zone(schedule)
    start = datetime.combine(day, time.min).replace(tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min).replace(tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def today_for(schedule: Schedule | None, clock: Clock = system_clock) -> date:
    return clock.now().astimezone(_zone(schedule)).date()


def get_today_checkin(db: Session, user_id: int, clock: Clock = system_clock) -> CheckIn | None:
    """Most recent check-in on the user's current local day."""
    schedule = get_active_schedule(db, user_id)
    start, end = local_day_bounds(schedule, today_for(schedule, clock))
    result = db.execute(
        select(CheckIn)
        .where(CheckIn.user_id == user_id, CheckIn.timestamp >= start, CheckIn.timestamp < end)
        .order_by(CheckIn.timestamp.desc(), CheckIn.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def latest_checkin(db: Session, user_id: int) -> CheckIn | None:
    result = db.execute(
        select(CheckIn)
        .where(CheckIn.user_id == user_id)
        .order_by(CheckIn.timestamp.desc(), CheckIn.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def qualifying_checkin(db: Session, schedule: Schedule, day: date) -> CheckIn | None:
    """A check-in at or after ``day``'s window start, if any."""
    window_start = window_service.window_start_at(schedule, day)
    result = db.execute(
        select(CheckIn)
        .where(CheckIn.user_id == schedule.user_id, CheckIn.timestamp >= window_start)
        .order_by(CheckIn.timestamp.asc(), CheckIn.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def list_checkins(db: Session, user_id: int, limit: int = 30) -> list[CheckIn]:
    result = db.execute(
        select(CheckIn)
        .where(CheckIn.user_id == user_id)
        .order_by(CheckIn.timestamp.desc(), CheckIn.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


def record_checkin(
    db: Session,
    user: User,
    mental_score: int,
    body_score: int,
    mood_score: int,
    latitude: float | None = None,
    longitude: float | None = None,
    location_name: str | None = None,
    address: str | None = None,
    clock: Clock = system_clock,
) -> tuple[CheckIn, int]:
    """Store a check-in, close the checker's open alerts and answer pending pokes.

    Returns the check-in and the number of alerts it resolved.
    """
    checkin = CheckIn(
        user_id=user.id,
        timestamp=clock.now(),
        mental_score=mental_score,
        body_score=body_score,
        mood_score=mood_score,
        latitude=latitude,
        longitude=longitude,
        location_name=location_name,
        address=address,
        is_manual=True,
    )
    db.add(checkin)
    if address:
        user.last_known_address = address
    db.commit()
    db.refresh(checkin)

    resolved = resolve_all_for_checker(db, user.id, clock)
    mark_responded(db, user.id, clock)
    logger.info("Check-in %s from user %s resolved %s alert(s)", checkin.id, user.id, resolved)
    return checkin, resolved


def update_today_checkin(db: Session, user: User, changes: dict, clock: Clock = system_clock) -> CheckIn:
    """Edit today's check-in in place. Earlier days are read-only."""
    checkin = get_today_checkin(db, user.id, clock)
    if checkin is None:
        raise ValueError("No check-in today")
    for key, value in changes.items():
        if key in _EDITABLE_FIELDS:
            setattr(checkin, key, value)
    if changes.get("address"):
        user.last_known_address = changes["address"]
    db.commit()
    db.refresh(checkin)
    return checkin


@dataclass(frozen=True)
class CheckInStats:
    total: int
    current_streak: int
    average_mental: float | None
    average_body: float | None
    average_mood: float | None


def checkin_stats(db: Session, user_id: int, days: int = 30, clock: Clock = system_clock) -> CheckInStats:
    """Streak of consecutive local days with a check-in, plus score averages over ``days``."""
    schedule = get_active_schedule(db, user_id)
    zone = _zone(schedule)
    today = today_for(schedule, clock)
    since, _ = local_day_bounds(schedule, today - timedelta(days=days - 1))

    result = db.execute(select(CheckIn).where(CheckIn.user_id == user_id).order_by(CheckIn.timestamp.desc()))
    checkins = list(result.scalars().all())
    recent = [c for c in checkins if c.timestamp >= since]
    checked_days = {c.timestamp.astimezone(zone).date() for c in checkins}

    streak = 0
    day = today if today in checked_days else today - timedelta(days=1)
    while day in checked_days:
        streak += 1
        day -= timedelta(days=1)

    def _avg(values: list[int]) -> float | None:
        return round(sum(values) / len(values), 2) if values else None

    return CheckInStats(
        total=len(checkins),
        current_streak=streak,
        average_mental=_avg([c.mental_score for c in recent]),
        average_body=_avg([c.body_score for c in recent]),
        average_mood=_avg([c.mood_score for c in recent]),
    )
