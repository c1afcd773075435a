"""Missed check-in scanner tests.

Checker in America/New_York with a 07:00-10:00 window and 30 minutes of
grace. On 2026-03-10 (EDT) the window plus grace closes at 14:30 UTC.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from heykin.models.alert_event import AlertEvent
from heykin.models.checkin import CheckIn
from heykin.models.enums import AlertLevel, AlertStatus, Channel, Resolution
from heykin.models.notification_attempt import NotificationAttempt
from heykin.models.user import User
from heykin.services import alert_service, scanner_service
from heykin.services.alert_service import active_alerts, create_alert, latest_alert_for_day, resolve_alert
from heykin.services.checkin_service import record_checkin
from heykin.services.providers import SendResult
from heykin.services.scanner_service import MissedCheckinScanner

UTC = timezone.utc
MISSED = datetime(2026, 3, 10, 14, 30, tzinfo=UTC)


@pytest.fixture
def scanner(session_factory, clock, providers):
    return MissedCheckinScanner(session_factory, clock, providers, max_workers=1, voice_enabled=True)


@pytest.fixture
def circle(make_user, make_schedule, link):
    checker = make_user("Maria Lopez", phone="+15550000000")
    make_schedule(checker)
    first = make_user("First", phone="+15550001111")
    second = make_user("Second")
    emergency = make_user("Emergency", phone="+15550003333")
    link(checker, first, alert_priority=1, alert_via_sms=True)
    link(checker, second, alert_priority=2)
    link(checker, emergency, alert_priority=3, is_emergency_contact=True)
    return checker, first, second, emergency


def _alerts(db, checker):
    db.expire_all()
    return db.query(AlertEvent).filter(AlertEvent.checker_id == checker.id).all()


def test_no_alert_while_window_or_grace_open(db, scanner, clock, circle):
    checker = circle[0]
    for instant in (datetime(2026, 3, 10, 12, 0, tzinfo=UTC), MISSED - timedelta(minutes=5), MISSED):
        clock.set(instant)
        report = scanner.scan_checker(db, checker.id)
        assert report.alerts_created == 0
    assert _alerts(db, checker) == []


def test_checkin_inside_window_prevents_alert(db, scanner, clock, circle):
    checker = circle[0]
    db.add(
        CheckIn(user_id=checker.id, timestamp=datetime(2026, 3, 10, 11, 30, tzinfo=UTC), mental_score=4, body_score=4, mood_score=4)
    )
    db.commit()
    clock.set(MISSED + timedelta(hours=1))
    scanner.scan_checker(db, checker.id)
    assert _alerts(db, checker) == []


def test_late_checkin_after_window_still_counts(db, scanner, clock, circle):
    checker = circle[0]
    db.add(CheckIn(user_id=checker.id, timestamp=MISSED + timedelta(minutes=10), mental_score=3, body_score=3, mood_score=3))
    db.commit()
    clock.set(MISSED + timedelta(hours=1))
    scanner.scan_checker(db, checker.id)
    assert _alerts(db, checker) == []


def test_checkin_before_window_does_not_count(db, scanner, clock, circle):
    checker = circle[0]
    # 06:00 EDT
    db.add(CheckIn(user_id=checker.id, timestamp=datetime(2026, 3, 10, 10, 0, tzinfo=UTC), mental_score=3, body_score=3, mood_score=3))
    db.commit()
    clock.set(MISSED + timedelta(hours=1))
    report = scanner.scan_checker(db, checker.id)
    assert report.alerts_created == 1
    alert = _alerts(db, checker)[0]
    assert alert.last_checkin_at == datetime(2026, 3, 10, 10, 0, tzinfo=UTC)


def test_inactive_day_never_alerts(db, scanner, clock, make_user, make_schedule):
    checker = make_user("Weekender")
    make_schedule(checker, active_days=[0, 6])
    clock.set(MISSED + timedelta(hours=3))
    scanner.scan_checker(db, checker.id)
    assert _alerts(db, checker) == []


def test_full_escalation_ladder(db, scanner, clock, providers, circle):
    checker, first, second, emergency = circle

    # +1h: reminder to the checker only
    clock.set(MISSED + timedelta(hours=1))
    report = scanner.scan_checker(db, checker.id)
    assert report.alerts_created == 1
    (alert,) = _alerts(db, checker)
    assert alert.level == AlertLevel.REMINDER
    assert alert.status == AlertStatus.SENT
    assert alert.missed_window_at == MISSED
    assert alert.missed_day.isoformat() == "2026-03-10"
    assert providers.push.recipients() == [checker.id]
    assert providers.email.recipients() == [checker.id]
    assert providers.sms.calls == []

    # +25h: soft alert to priority-one supporters, no SMS
    clock.set(MISSED + timedelta(hours=25))
    report = scanner.scan_checker(db, checker.id)
    assert report.alerts_created == 0
    assert report.alerts_escalated == 1
    (alert,) = _alerts(db, checker)
    assert alert.level == AlertLevel.SOFT_ALERT
    assert providers.push.recipients() == [checker.id, first.id]
    assert providers.sms.calls == []
    assert providers.voice.calls == []

    # +37h: hard alert to every non-emergency supporter, SMS and a call where possible
    clock.set(MISSED + timedelta(hours=37))
    scanner.scan_checker(db, checker.id)
    (alert,) = _alerts(db, checker)
    assert alert.level == AlertLevel.HARD_ALERT
    assert providers.push.recipients()[2:] == [first.id, second.id]
    assert providers.sms.recipients() == [first.id]
    assert providers.voice.recipients() == [first.id]
    assert emergency.id not in providers.push.recipients()

    # +49h: escalation reaches emergency contacts too, across every channel
    clock.set(MISSED + timedelta(hours=49))
    scanner.scan_checker(db, checker.id)
    (alert,) = _alerts(db, checker)
    assert alert.level == AlertLevel.ESCALATION
    assert providers.push.recipients()[4:] == [first.id, second.id, emergency.id]
    assert providers.email.recipients()[-3:] == [first.id, second.id, emergency.id]
    assert set(alert.notified_supporter_ids) == {checker.id, first.id, second.id, emergency.id}


def test_repeated_passes_do_not_duplicate(db, scanner, clock, providers, circle):
    checker = circle[0]
    clock.set(MISSED + timedelta(hours=1))
    scanner.scan_checker(db, checker.id)
    pushes = len(providers.push.calls)

    clock.advance(timedelta(minutes=15))
    report = scanner.scan_checker(db, checker.id)
    assert report.alerts_created == 0
    assert report.notifications_attempted == 0
    assert len(providers.push.calls) == pushes
    assert len(_alerts(db, checker)) == 1


def test_ongoing_absence_escalates_existing_alert(db, scanner, clock, circle):
    checker = circle[0]
    clock.set(MISSED + timedelta(hours=1))
    scanner.scan_checker(db, checker.id)
    # Next day's window has also closed without a check-in
    clock.set(MISSED + timedelta(days=1, hours=1))
    scanner.scan_checker(db, checker.id)
    alerts = _alerts(db, checker)
    assert len(alerts) == 1
    assert alerts[0].level == AlertLevel.SOFT_ALERT


def test_unreached_recipients_retried_next_pass(db, scanner, clock, providers, circle):
    checker = circle[0]
    providers.push.queue(SendResult.failure("no-destination"))
    providers.email.queue(SendResult.failure("timeout"))
    clock.set(MISSED + timedelta(hours=1))
    scanner.scan_checker(db, checker.id)
    (alert,) = _alerts(db, checker)
    assert alert.status == AlertStatus.PENDING
    assert alert.notified_supporter_ids == []

    clock.advance(timedelta(minutes=15))
    scanner.scan_checker(db, checker.id)
    (alert,) = _alerts(db, checker)
    assert alert.status == AlertStatus.SENT
    assert alert.notified_supporter_ids == [checker.id]
    assert len(providers.push.calls) == 2


def test_checkin_resolves_and_stops_alerts(db, scanner, clock, providers, circle):
    checker = circle[0]
    clock.set(MISSED + timedelta(hours=1))
    scanner.scan_checker(db, checker.id)

    clock.advance(timedelta(hours=1))
    _, resolved = record_checkin(db, checker, 4, 4, 4, clock=clock)
    assert resolved == 1
    assert active_alerts(db, checker.id) == []

    clock.advance(timedelta(hours=5))
    pushes = len(providers.push.calls)
    report = scanner.scan_checker(db, checker.id)
    assert report.alerts_created == 0
    assert len(providers.push.calls) == pushes


def test_attempts_logged_per_channel(db, scanner, clock, circle):
    checker, first = circle[0], circle[1]
    clock.set(MISSED + timedelta(hours=1))
    scanner.scan_checker(db, checker.id)
    # Straight from reminder to hard alert
    clock.set(MISSED + timedelta(hours=37))
    scanner.scan_checker(db, checker.id)
    rows = db.query(NotificationAttempt).filter(NotificationAttempt.recipient_id == first.id).all()
    assert {r.channel for r in rows} == {Channel.PUSH, Channel.SMS, Channel.VOICE}
    assert all(r.created_at == clock.now() for r in rows)


def test_run_once_isolates_bad_schedule(db, scanner, clock, circle, make_user, make_schedule):
    checker = circle[0]
    broken = make_user("Broken")
    make_schedule(broken, timezone_identifier="Mars/Olympus_Mons")

    clock.set(MISSED + timedelta(hours=1))
    report = scanner.run_once()
    assert report.checkers_evaluated == 2
    assert report.errors == 1
    assert report.alerts_created == 1
    assert len(_alerts(db, checker)) == 1
    assert _alerts(db, broken) == []


def test_run_once_with_nothing_to_do(scanner):
    report = scanner.run_once()
    assert report.checkers_evaluated == 0
    assert report.errors == 0


@pytest.mark.parametrize("grace", [60, 20])
def test_late_window_miss_detected_after_midnight(db, scanner, clock, make_user, make_schedule, grace):
    # Grace runs to (or close to) midnight, so no scan on Tuesday sees it over
    checker = make_user("Night Owl")
    make_schedule(
        checker,
        window_start_hour=20,
        window_end_hour=23,
        window_end_minute=30,
        timezone_identifier="UTC",
        grace_period_minutes=grace,
    )
    clock.set(datetime(2026, 3, 10, 23, 45, tzinfo=UTC))
    while clock.now() <= datetime(2026, 3, 11, 12, 0, tzinfo=UTC):
        scanner.scan_checker(db, checker.id)
        clock.advance(timedelta(minutes=15))

    (alert,) = _alerts(db, checker)
    assert alert.missed_day == date(2026, 3, 10)
    assert alert.missed_window_at.date() == date(2026, 3, 10)
    assert alert.level == AlertLevel.REMINDER
    assert alert.is_open


def test_late_window_checkin_before_midnight_counts(db, scanner, clock, make_user, make_schedule):
    checker = make_user("Night Owl")
    make_schedule(
        checker,
        window_start_hour=20,
        window_end_hour=23,
        window_end_minute=30,
        timezone_identifier="UTC",
        grace_period_minutes=60,
    )
    db.add(CheckIn(user_id=checker.id, timestamp=datetime(2026, 3, 10, 23, 50, tzinfo=UTC), mental_score=3, body_score=3, mood_score=3))
    db.commit()
    clock.set(datetime(2026, 3, 11, 0, 0, tzinfo=UTC))
    scanner.scan_checker(db, checker.id)
    assert _alerts(db, checker) == []


def test_long_past_yesterday_not_alerted(db, scanner, clock, make_user, make_schedule):
    checker = make_user("Night Owl")
    make_schedule(
        checker,
        window_start_hour=20,
        window_end_hour=23,
        window_end_minute=30,
        timezone_identifier="UTC",
        grace_period_minutes=60,
    )
    # Schedule set up mid-morning; Monday's window is not this schedule's business
    clock.set(datetime(2026, 3, 10, 10, 0, tzinfo=UTC))
    assert scanner.scan_checker(db, checker.id).alerts_created == 0
    assert _alerts(db, checker) == []


def test_day_closed_by_supporter_is_not_reopened(db, scanner, clock, circle):
    checker, first = circle[0], circle[1]
    clock.set(MISSED + timedelta(hours=1))
    scanner.scan_checker(db, checker.id)
    (alert,) = _alerts(db, checker)
    resolve_alert(db, alert, first.id, Resolution.CONTACTED, clock=clock)

    clock.advance(timedelta(minutes=15))
    report = scanner.scan_checker(db, checker.id)
    assert report.alerts_created == 0
    assert len(_alerts(db, checker)) == 1


def test_losing_a_creation_race_notifies_through_the_winner(db, session_factory, scanner, clock, circle, monkeypatch):
    checker = circle[0]
    with session_factory() as other:
        winner = create_alert(
            other,
            other.get(User, checker.id),
            MISSED,
            AlertLevel.REMINDER,
            missed_day=date(2026, 3, 10),
            clock=clock,
        )
        winner_id = winner.id

    # This pass made its pre-checks before the other writer committed
    def stale_once(real, stale_value):
        calls = []

        def lookup(*args):
            calls.append(args)
            return stale_value if len(calls) == 1 else real(*args)

        return lookup

    monkeypatch.setattr(scanner_service, "active_alerts", stale_once(active_alerts, []))
    monkeypatch.setattr(scanner_service, "latest_alert_for_day", stale_once(latest_alert_for_day, None))
    monkeypatch.setattr(alert_service, "find_open_alert", stale_once(alert_service.find_open_alert, None))

    clock.set(MISSED + timedelta(hours=1))
    report = scanner.scan_checker(db, checker.id)
    assert report.alerts_created == 0
    assert report.notifications_attempted > 0

    (alert,) = _alerts(db, checker)
    assert alert.id == winner_id
    assert alert.status == AlertStatus.SENT
    assert alert.notified_supporter_ids == [checker.id]
