"""Alert lifecycle: creation, escalation, acknowledgement, resolution.

Status moves pending -> sent -> acknowledged -> resolved/cancelled (any open
status may jump straight to resolved or cancelled). Level only ever rises while
the alert is open. Every write is a compare-and-set on "still open" so a
supporter's resolve and a concurrent scanner escalation cannot clobber each
other, and ``resolved_at`` is set exactly once.

Illegal transitions are no-ops, never errors: callers retry freely.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from heykin.core.clock import Clock, system_clock
from heykin.models.alert_event import AlertEvent
from heykin.models.enums import OPEN_STATUSES, AlertLevel, AlertStatus, Resolution
from heykin.models.notification_attempt import NotificationAttempt
from heykin.models.user import User
from heykin.services import window_service
from heykin.services.schedule_service import get_active_schedule

logger = logging.getLogger(__name__)

_ACKNOWLEDGEABLE = (AlertStatus.PENDING, AlertStatus.SENT)


class DuplicateAlertError(ValueError):
    """An open alert already exists for this checker and missed day."""

    def __init__(self, checker_id: int, day: date, existing: AlertEvent | None = None) -> None:
        super().__init__(f"Open alert already exists for checker {checker_id} on {day.isoformat()}")
        self.checker_id = checker_id
        self.day = day
        self.existing = existing


def get_alert(db: Session, alert_id: int) -> AlertEvent | None:
    return db.get(AlertEvent, alert_id)


def missed_day_for(db: Session, checker_id: int, missed_window_at: datetime) -> date:
    """Calendar day of the missed instant in the checker's schedule timezone (UTC if none)."""
    schedule = get_active_schedule(db, checker_id)
    if schedule is None:
        return missed_window_at.astimezone(timezone.utc).date()
    return window_service.local_day(schedule, missed_window_at)


def find_open_alert(db: Session, checker_id: int, day: date) -> AlertEvent | None:
    stmt = select(AlertEvent).where(
        AlertEvent.checker_id == checker_id,
        AlertEvent.open_day == day,
    )
    return db.execute(stmt).scalar_one_or_none()


def latest_alert_for_day(db: Session, checker_id: int, day: date) -> AlertEvent | None:
    """Most recent alert of any status raised for a checker's missed day."""
    stmt = (
        select(AlertEvent)
        .where(AlertEvent.checker_id == checker_id, AlertEvent.missed_day == day)
        .order_by(AlertEvent.triggered_at.desc(), AlertEvent.id.desc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def create_alert(
    db: Session,
    checker: User,
    missed_window_at: datetime,
    level: AlertLevel,
    last_checkin_at: datetime | None = None,
    last_known_location: str | None = None,
    *,
    missed_day: date | None = None,
    clock: Clock = system_clock,
) -> AlertEvent:
    """Open a new alert. Raises DuplicateAlertError if one is already open for the day.

    The (checker_id, open_day) unique constraint makes the insert atomic: of two
    concurrent creators exactly one commits.
    """
    day = missed_day or missed_day_for(db, checker.id, missed_window_at)
    existing = find_open_alert(db, checker.id, day)
    if existing is not None:
        raise DuplicateAlertError(checker.id, day, existing)

    alert = AlertEvent(
        checker_id=checker.id,
        checker_name=checker.full_name,
        level=level,
        status=AlertStatus.PENDING,
        triggered_at=clock.now(),
        missed_window_at=missed_window_at,
        missed_day=day,
        open_day=day,
        last_checkin_at=last_checkin_at,
        last_known_location=(last_known_location or None) and last_known_location[:255],
        notified_supporter_ids=[],
    )
    db.add(alert)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateAlertError(checker.id, day, find_open_alert(db, checker.id, day)) from None
    db.refresh(alert)
    logger.info("Created %s alert %s for checker %s (missed %s)", level.value, alert.id, checker.id, day)
    return alert


def escalate_alert(db: Session, alert: AlertEvent, new_level: AlertLevel) -> bool:
    """Raise the alert's level. Returns True if the level changed.

    No-op when ``new_level`` is not above the current level or the alert is
    closed. Status is left as it is.
    """
    if not alert.is_open or new_level <= alert.level:
        return False
    previous = alert.level
    result = db.execute(
        update(AlertEvent)
        .where(
            AlertEvent.id == alert.id,
            AlertEvent.status.in_(OPEN_STATUSES),
            AlertEvent.level == previous,
        )
        .values(level=new_level)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(alert)
    if result.rowcount != 1:
        return False
    logger.info("Escalated alert %s from %s to %s", alert.id, previous.value, new_level.value)
    return True


def mark_sent(db: Session, alert: AlertEvent) -> bool:
    """Pending -> sent once something was delivered."""
    result = db.execute(
        update(AlertEvent)
        .where(AlertEvent.id == alert.id, AlertEvent.status == AlertStatus.PENDING)
        .values(status=AlertStatus.SENT)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(alert)
    return result.rowcount == 1


def acknowledge_alert(db: Session, alert: AlertEvent, by: int, clock: Clock = system_clock) -> AlertEvent:
    """Supporter has seen the alert. Legal from pending/sent; otherwise a no-op."""
    result = db.execute(
        update(AlertEvent)
        .where(AlertEvent.id == alert.id, AlertEvent.status.in_(_ACKNOWLEDGEABLE))
        .values(status=AlertStatus.ACKNOWLEDGED, acknowledged_at=clock.now(), acknowledged_by=by)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(alert)
    if result.rowcount:
        logger.info("Alert %s acknowledged by %s", alert.id, by)
    return alert


def resolve_alert(
    db: Session,
    alert: AlertEvent,
    by: int | None,
    resolution: Resolution,
    notes: str | None = None,
    clock: Clock = system_clock,
) -> AlertEvent:
    """Close the alert as resolved. Resolving twice keeps the first resolved_at."""
    result = db.execute(
        update(AlertEvent)
        .where(AlertEvent.id == alert.id, AlertEvent.status.in_(OPEN_STATUSES))
        .values(
            status=AlertStatus.RESOLVED,
            resolved_at=clock.now(),
            resolved_by=by,
            resolution=resolution,
            resolution_notes=notes,
            open_day=None,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(alert)
    if result.rowcount:
        logger.info("Alert %s resolved by %s (%s)", alert.id, by, resolution.value)
    return alert


def cancel_alert(db: Session, alert: AlertEvent, by: int | None = None, clock: Clock = system_clock) -> AlertEvent:
    """Administrative close. Counts as a terminal resolution for queries."""
    result = db.execute(
        update(AlertEvent)
        .where(AlertEvent.id == alert.id, AlertEvent.status.in_(OPEN_STATUSES))
        .values(status=AlertStatus.CANCELLED, resolved_at=clock.now(), resolved_by=by, open_day=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(alert)
    if result.rowcount:
        logger.info("Alert %s cancelled by %s", alert.id, by)
    return alert


def resolve_all_for_checker(db: Session, checker_id: int, clock: Clock = system_clock) -> int:
    """Resolve every open alert for a checker who just checked in. Returns the count."""
    result = db.execute(
        update(AlertEvent)
        .where(AlertEvent.checker_id == checker_id, AlertEvent.status.in_(OPEN_STATUSES))
        .values(
            status=AlertStatus.RESOLVED,
            resolved_at=clock.now(),
            resolved_by=checker_id,
            resolution=Resolution.CHECKED_IN,
            open_day=None,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount:
        logger.info("Resolved %s open alert(s) for checker %s after check-in", result.rowcount, checker_id)
    return result.rowcount


def record_notified(db: Session, alert: AlertEvent, supporter_ids: list[int]) -> list[int]:
    """Union ``supporter_ids`` into the alert's notified set."""
    current = list(alert.notified_supporter_ids or [])
    added = [sid for sid in supporter_ids if sid not in current]
    if not added:
        return current
    alert.notified_supporter_ids = current + added
    db.commit()
    db.refresh(alert)
    return list(alert.notified_supporter_ids)


def active_alerts(db: Session, checker_id: int) -> list[AlertEvent]:
    """Open alerts about a checker, most recent first."""
    result = db.execute(
        select(AlertEvent)
        .where(AlertEvent.checker_id == checker_id, AlertEvent.status.in_(OPEN_STATUSES))
        .order_by(AlertEvent.triggered_at.desc(), AlertEvent.id.desc())
    )
    return list(result.scalars().all())


def alerts_needing_attention(db: Session, supporter_id: int) -> list[AlertEvent]:
    """Open alerts this supporter has been notified about, most recent first."""
    result = db.execute(
        select(AlertEvent)
        .where(AlertEvent.status.in_(OPEN_STATUSES))
        .order_by(AlertEvent.triggered_at.desc(), AlertEvent.id.desc())
    )
    return [
        a
        for a in result.scalars().all()
        if supporter_id in (a.notified_supporter_ids or []) and a.checker_id != supporter_id
    ]


def checker_ids_with_open_alerts(db: Session) -> list[int]:
    result = db.execute(
        select(AlertEvent.checker_id)
        .where(AlertEvent.status.in_(OPEN_STATUSES), AlertEvent.checker_id.is_not(None))
        .distinct()
    )
    return list(result.scalars().all())


def list_attempts(db: Session, alert_id: int) -> list[NotificationAttempt]:
    """Notification log for an alert, oldest first."""
    result = db.execute(
        select(NotificationAttempt)
        .where(NotificationAttempt.alert_id == alert_id)
        .order_by(NotificationAttempt.created_at.asc(), NotificationAttempt.id.asc())
    )
    return list(result.scalars().all())
