"""Escalation timeline and level classification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from heykin.core.alert_policies import (
    ESCALATION_AFTER,
    HARD_ALERT_AFTER,
    REMINDER_AFTER,
    SOFT_ALERT_AFTER,
)
from heykin.models.enums import AlertLevel


@dataclass(frozen=True)
class EscalationTimeline:
    """When each level's notifications fall due for one missed window."""

    reminder: datetime
    soft_alert: datetime
    hard_alert: datetime
    escalation: datetime

    def at(self, level: AlertLevel) -> datetime:
        return {
            AlertLevel.REMINDER: self.reminder,
            AlertLevel.SOFT_ALERT: self.soft_alert,
            AlertLevel.HARD_ALERT: self.hard_alert,
            AlertLevel.ESCALATION: self.escalation,
        }[level]


def escalation_times(missed_at: datetime) -> EscalationTimeline:
    """Absolute offsets from the missed instant; no timezone conversion involved."""
    return EscalationTimeline(
        reminder=missed_at + REMINDER_AFTER,
        soft_alert=missed_at + SOFT_ALERT_AFTER,
        hard_alert=missed_at + HARD_ALERT_AFTER,
        escalation=missed_at + ESCALATION_AFTER,
    )


def classify_level(elapsed: timedelta) -> AlertLevel:
    """Severity an alert should be at after ``elapsed`` since the missed window.

    Lower bounds are inclusive: exactly 24h is a soft alert.
    """
    if elapsed >= ESCALATION_AFTER:
        return AlertLevel.ESCALATION
    if elapsed >= HARD_ALERT_AFTER:
        return AlertLevel.HARD_ALERT
    if elapsed >= SOFT_ALERT_AFTER:
        return AlertLevel.SOFT_ALERT
    return AlertLevel.REMINDER


def next_escalation_at(missed_at: datetime, level: AlertLevel) -> datetime | None:
    """Instant the next level above ``level`` becomes due, or None at the top."""
    timeline = escalation_times(missed_at)
    for candidate in (AlertLevel.SOFT_ALERT, AlertLevel.HARD_ALERT, AlertLevel.ESCALATION):
        if candidate > level:
            return timeline.at(candidate)
    return None
