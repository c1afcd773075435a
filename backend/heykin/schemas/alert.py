"""Alert schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from heykin.models.enums import AlertLevel, AlertStatus, AttemptOutcome, Channel, Resolution


class AlertResponse(BaseModel):
    id: int
    checker_id: int | None
    checker_name: str
    level: AlertLevel
    status: AlertStatus
    triggered_at: datetime
    missed_window_at: datetime
    missed_day: date
    last_checkin_at: datetime | None = None
    last_known_location: str | None = None
    acknowledged_at: datetime | None = None
    acknowledged_by: int | None = None
    resolved_at: datetime | None = None
    resolved_by: int | None = None
    resolution: Resolution | None = None
    resolution_notes: str | None = None
    notified_supporter_ids: list[int] = []

    model_config = {"from_attributes": True}


class AlertTriggerRequest(BaseModel):
    """Manually raise an alert about a checker (supporter or the checker themself)."""

    checker_id: int | None = None
    level: AlertLevel = AlertLevel.SOFT_ALERT


class AlertResolveRequest(BaseModel):
    resolution: Resolution
    notes: str | None = Field(default=None, max_length=2000)


class NotificationAttemptResponse(BaseModel):
    id: int
    alert_id: int
    recipient_id: int | None
    channel: Channel
    outcome: AttemptOutcome
    error_code: str | None = None
    provider_message_id: str | None = None
    is_fallback: bool
    created_at: datetime

    model_config = {"from_attributes": True}
