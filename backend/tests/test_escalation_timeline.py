"""Escalation timeline and level classification tests."""

from datetime import datetime, timedelta, timezone

import pytest

from heykin.core.alert_policies import policy_for
from heykin.models.enums import AlertLevel
from heykin.services.escalation_service import classify_level, escalation_times, next_escalation_at

MISSED = datetime(2026, 3, 10, 14, 30, tzinfo=timezone.utc)


def test_timeline_offsets():
    timeline = escalation_times(MISSED)
    assert timeline.reminder == MISSED + timedelta(hours=1)
    assert timeline.soft_alert == MISSED + timedelta(hours=24)
    assert timeline.hard_alert == MISSED + timedelta(hours=36)
    assert timeline.escalation == MISSED + timedelta(hours=48)
    assert timeline.at(AlertLevel.HARD_ALERT) == timeline.hard_alert


@pytest.mark.parametrize(
    "elapsed,level",
    [
        (timedelta(0), AlertLevel.REMINDER),
        (timedelta(hours=23, minutes=59), AlertLevel.REMINDER),
        (timedelta(hours=24), AlertLevel.SOFT_ALERT),
        (timedelta(hours=35, minutes=59), AlertLevel.SOFT_ALERT),
        (timedelta(hours=36), AlertLevel.HARD_ALERT),
        (timedelta(hours=47, minutes=59), AlertLevel.HARD_ALERT),
        (timedelta(hours=48), AlertLevel.ESCALATION),
        (timedelta(days=10), AlertLevel.ESCALATION),
    ],
)
def test_classify_level(elapsed, level):
    assert classify_level(elapsed) == level


def test_levels_are_ordered_by_severity():
    assert AlertLevel.REMINDER < AlertLevel.SOFT_ALERT < AlertLevel.HARD_ALERT < AlertLevel.ESCALATION
    assert max([AlertLevel.HARD_ALERT, AlertLevel.SOFT_ALERT]) == AlertLevel.HARD_ALERT


def test_next_escalation_at():
    assert next_escalation_at(MISSED, AlertLevel.REMINDER) == MISSED + timedelta(hours=24)
    assert next_escalation_at(MISSED, AlertLevel.HARD_ALERT) == MISSED + timedelta(hours=48)
    assert next_escalation_at(MISSED, AlertLevel.ESCALATION) is None


def test_level_policies():
    assert policy_for(AlertLevel.REMINDER).audience == "checker"
    assert not policy_for(AlertLevel.SOFT_ALERT).sms
    assert policy_for(AlertLevel.HARD_ALERT).voice
    assert policy_for(AlertLevel.ESCALATION).all_channels
