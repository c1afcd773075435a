"""SQLAlchemy models."""

from __future__ import annotations

from heykin.models.alert_event import AlertEvent
from heykin.models.checkin import CheckIn
from heykin.models.circle_link import CircleLink
from heykin.models.notification_attempt import NotificationAttempt
from heykin.models.poke import Poke
from heykin.models.push_token import PushToken
from heykin.models.schedule import Schedule
from heykin.models.user import User

__all__ = [
    "User",
    "AlertEvent",
    "CheckIn",
    "CircleLink",
    "NotificationAttempt",
    "Poke",
    "PushToken",
    "Schedule",
]
