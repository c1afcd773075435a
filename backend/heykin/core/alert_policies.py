"""Alert escalation policy constants."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from heykin.models.enums import AlertLevel

# Offsets from the missed instant at which each level becomes due
REMINDER_AFTER = timedelta(hours=1)
SOFT_ALERT_AFTER = timedelta(hours=24)
HARD_ALERT_AFTER = timedelta(hours=36)
ESCALATION_AFTER = timedelta(hours=48)

# Audience names used by LevelPolicy
AUDIENCE_CHECKER = "checker"
AUDIENCE_PRIORITY_ONE = "priority_one"
AUDIENCE_ALL_SUPPORTERS = "all_supporters"
AUDIENCE_EVERYONE = "all_supporters_and_emergency_contacts"


@dataclass(frozen=True)
class LevelPolicy:
    """Who is told about an alert at a level, and over which channels."""

    audience: str
    sms: bool
    voice: bool
    all_channels: bool = False


LEVEL_POLICIES: dict[AlertLevel, LevelPolicy] = {
    AlertLevel.REMINDER: LevelPolicy(audience=AUDIENCE_CHECKER, sms=False, voice=False),
    AlertLevel.SOFT_ALERT: LevelPolicy(audience=AUDIENCE_PRIORITY_ONE, sms=False, voice=False),
    AlertLevel.HARD_ALERT: LevelPolicy(audience=AUDIENCE_ALL_SUPPORTERS, sms=True, voice=True),
    AlertLevel.ESCALATION: LevelPolicy(audience=AUDIENCE_EVERYONE, sms=True, voice=True, all_channels=True),
}


def policy_for(level: AlertLevel) -> LevelPolicy:
    return LEVEL_POLICIES[level]
