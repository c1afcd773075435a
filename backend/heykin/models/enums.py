"""Enumerations shared by models, services and schemas."""

from __future__ import annotations

from enum import Enum


class AlertLevel(str, Enum):
    """Alert severity. Ordering follows ``rank``, never declaration order."""

    REMINDER = "reminder"
    SOFT_ALERT = "soft"
    HARD_ALERT = "hard"
    ESCALATION = "escalation"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.rank >= other.rank


_LEVEL_RANK = {
    AlertLevel.REMINDER: 0,
    AlertLevel.SOFT_ALERT: 1,
    AlertLevel.HARD_ALERT: 2,
    AlertLevel.ESCALATION: 3,
}


class AlertStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


OPEN_STATUSES = frozenset({AlertStatus.PENDING, AlertStatus.SENT, AlertStatus.ACKNOWLEDGED})
TERMINAL_STATUSES = frozenset({AlertStatus.RESOLVED, AlertStatus.CANCELLED})


class Resolution(str, Enum):
    CHECKED_IN = "checked_in"
    CONTACTED = "contacted"
    SAFE_CONFIRMED = "safe_confirmed"
    FALSE_ALARM = "false_alarm"
    OTHER = "other"


class Channel(str, Enum):
    PUSH = "push"
    SMS = "sms"
    EMAIL = "email"
    VOICE = "voice"


class AttemptOutcome(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class SmsErrorCode(str, Enum):
    """Provider-neutral SMS failure codes."""

    UNREACHABLE_DESTINATION = "unreachable-destination"
    BLOCKED_MESSAGE = "blocked-message"
    INVALID_NUMBER = "invalid-number"
    LANDLINE_NUMBER = "landline-number"
    RATE_LIMITED = "rate-limited"
    TIMEOUT = "timeout"
    NO_DESTINATION = "no-destination"
    NOT_CONFIGURED = "not-configured"
    PROVIDER_ERROR = "provider-error"


# SMS failures that mean the channel cannot succeed for this recipient;
# these switch to email within the same dispatch.
FALLBACK_ELIGIBLE_SMS_ERRORS = frozenset(
    {
        SmsErrorCode.UNREACHABLE_DESTINATION,
        SmsErrorCode.BLOCKED_MESSAGE,
        SmsErrorCode.INVALID_NUMBER,
        SmsErrorCode.LANDLINE_NUMBER,
    }
)
