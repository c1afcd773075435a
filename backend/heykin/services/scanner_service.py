"""Missed check-in scanner.

One pass looks at every checker with an active schedule or an open alert,
opens an alert when the latest window closed without a check-in, escalates open
alerts to the level their age calls for, and notifies the level's audience.

Checkers are independent: each runs in its own session on a worker thread, and
a failure for one is logged and counted without stopping the pass. Concurrent
passes cannot open two alerts for the same checker and day because creation
goes through the (checker_id, open_day) unique constraint.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, fields
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from heykin.core.clock import Clock, system_clock
from heykin.core.config import settings
from heykin.db.session import SessionLocal
from heykin.models.alert_event import AlertEvent
from heykin.models.enums import AttemptOutcome
from heykin.models.schedule import Schedule
from heykin.models.user import User
from heykin.services import window_service
from heykin.services.alert_service import (
    DuplicateAlertError,
    active_alerts,
    checker_ids_with_open_alerts,
    create_alert,
    escalate_alert,
    latest_alert_for_day,
    mark_sent,
    record_notified,
)
from heykin.services.checkin_service import latest_checkin, qualifying_checkin
from heykin.services.circle_service import recipients_for_level
from heykin.services.escalation_service import classify_level, next_escalation_at
from heykin.services.notification_service import NotificationDispatcher
from heykin.services.providers import ProviderSet, get_providers
from heykin.services.schedule_service import get_active_schedule

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    checkers_evaluated: int = 0
    alerts_created: int = 0
    alerts_escalated: int = 0
    notifications_attempted: int = 0
    errors: int = 0

    def merge(self, other: ScanReport) -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))


class MissedCheckinScanner:
    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        clock: Clock = system_clock,
        providers: ProviderSet | None = None,
        max_workers: int | None = None,
        voice_enabled: bool | None = None,
        carryover: timedelta | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock
        self.providers = providers or get_providers()
        self.max_workers = max_workers or settings.scan_max_workers
        self.voice_enabled = voice_enabled
        # How long after its close yesterday's window is still decided
        self.carryover = carryover or timedelta(minutes=2 * settings.scan_interval_minutes)

    def run_once(self) -> ScanReport:
        """One full pass. Never raises for a single checker's failure."""
        with self.session_factory() as db:
            checker_ids = self.work_units(db)

        report = ScanReport()
        if not checker_ids:
            return report

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="scan") as pool:
            futures = [pool.submit(self._scan_isolated, checker_id) for checker_id in checker_ids]
            for future in as_completed(futures):
                report.merge(future.result())

        logger.info(
            "Scan pass: %s checkers, %s created, %s escalated, %s notifications, %s errors",
            report.checkers_evaluated,
            report.alerts_created,
            report.alerts_escalated,
            report.notifications_attempted,
            report.errors,
        )
        return report

    def work_units(self, db: Session) -> list[int]:
        """Checkers with an active schedule or an open alert."""
        scheduled = db.execute(select(Schedule.user_id).where(Schedule.is_active.is_(True)).distinct()).scalars().all()
        return sorted(set(scheduled) | set(checker_ids_with_open_alerts(db)))

    def _scan_isolated(self, checker_id: int) -> ScanReport:
        db = self.session_factory()
        try:
            return self.scan_checker(db, checker_id)
        except Exception:
            db.rollback()
            logger.exception("Scan failed for checker %s", checker_id)
            return ScanReport(checkers_evaluated=1, errors=1)
        finally:
            db.close()

    def scan_checker(self, db: Session, checker_id: int) -> ScanReport:
        report = ScanReport(checkers_evaluated=1)
        checker = db.get(User, checker_id)
        if checker is None or not checker.is_active:
            return report
        now = self.clock.now()

        created: AlertEvent | None = None
        schedule = get_active_schedule(db, checker_id)
        if schedule is not None:
            window_service.validate_schedule(schedule)
            created = self._detect_missed(db, checker, schedule)
            if created is not None:
                report.alerts_created += 1

        for alert in active_alerts(db, checker_id):
            level = classify_level(now - alert.missed_window_at)
            level_changed = created is not None and alert.id == created.id
            if escalate_alert(db, alert, level):
                report.alerts_escalated += 1
                level_changed = True
            if alert.is_open:
                report.notifications_attempted += self._fan_out(db, checker, alert, level_changed)
            logger.debug(
                "Alert %s at %s; next escalation due %s",
                alert.id,
                alert.level.value,
                next_escalation_at(alert.missed_window_at, alert.level),
            )
        return report

    def _detect_missed(self, db: Session, checker: User, schedule: Schedule) -> AlertEvent | None:
        """Open an alert for the latest closed window that passed without a qualifying check-in."""
        now = self.clock.now()
        # Inactive day, before or inside the window, or still in grace
        day = window_service.latest_closed_day(schedule, now, self.carryover)
        if day is None:
            return None
        if qualifying_checkin(db, schedule, day) is not None:
            return None
        # A still-open alert from an earlier day is the same ongoing absence
        if active_alerts(db, checker.id):
            return None
        # Already raised and closed by a supporter
        if latest_alert_for_day(db, checker.id, day) is not None:
            return None

        missed_at = window_service.missed_window_at(schedule, day)
        last = latest_checkin(db, checker.id)
        location = (last.address or last.location_name) if last else None
        try:
            return create_alert(
                db,
                checker,
                missed_at,
                classify_level(now - missed_at),
                last_checkin_at=last.timestamp if last else None,
                last_known_location=location or checker.last_known_address,
                missed_day=day,
                clock=self.clock,
            )
        except DuplicateAlertError as e:
            # Another pass won the race; its alert is escalated by the caller
            logger.info("Alert for checker %s on %s already opened elsewhere", e.checker_id, e.day)
            return None

    def _fan_out(self, db: Session, checker: User, alert: AlertEvent, level_changed: bool) -> int:
        dispatcher = NotificationDispatcher(db, self.providers, self.clock, voice_enabled=self.voice_enabled)
        return fan_out(db, checker, alert, dispatcher, level_changed)


def fan_out(
    db: Session,
    checker: User,
    alert: AlertEvent,
    dispatcher: NotificationDispatcher,
    level_changed: bool = True,
) -> int:
    """Notify the audience for the alert's level. Returns the number of attempts.

    On an unchanged level only recipients not yet reached are retried. A
    recipient counts as reached once any attempt to them succeeded.
    """
    level = alert.level
    recipients = recipients_for_level(db, checker, level)
    if not level_changed:
        notified = set(alert.notified_supporter_ids or [])
        recipients = [r for r in recipients if r.user_id not in notified]
    if not recipients:
        return 0

    attempted = 0
    reached: list[int] = []
    for recipient in recipients:
        attempts = dispatcher.notify(alert, recipient, level)
        if level_changed:
            call = dispatcher.call(alert, recipient, level)
            if call is not None:
                attempts.append(call)
        attempted += len(attempts)
        if any(a.outcome == AttemptOutcome.SENT for a in attempts) and recipient.user_id is not None:
            reached.append(recipient.user_id)

    if reached:
        record_notified(db, alert, reached)
        mark_sent(db, alert)
    return attempted
