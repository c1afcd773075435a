"""Notification dispatch with push -> SMS -> email fallback."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from heykin.core.alert_policies import policy_for
from heykin.core.clock import Clock, system_clock
from heykin.core.config import settings
from heykin.models.alert_event import AlertEvent
from heykin.models.enums import (
    FALLBACK_ELIGIBLE_SMS_ERRORS,
    AlertLevel,
    AttemptOutcome,
    Channel,
    SmsErrorCode,
)
from heykin.models.notification_attempt import NotificationAttempt
from heykin.services.providers import (
    NotificationContent,
    NotificationProvider,
    ProviderSet,
    Recipient,
    SendResult,
    get_providers,
    classify_sms_error,
)

logger = logging.getLogger(__name__)

# Twilio status callback values that mean the message will never arrive
_UNDELIVERED_STATUSES = {"failed", "undelivered"}


def is_fallback_eligible(error_code: str | None) -> bool:
    try:
        return SmsErrorCode(error_code) in FALLBACK_ELIGIBLE_SMS_ERRORS
    except ValueError:
        return False


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def _hours_since(alert: AlertEvent, clock: Clock) -> int:
    return max(0, round((clock.now() - alert.missed_window_at).total_seconds() / 3600))


def build_content(
    alert: AlertEvent,
    level: AlertLevel,
    recipient: Recipient,
    clock: Clock = system_clock,
    base_url: str | None = None,
) -> NotificationContent:
    """Wording for one recipient at one level. SMS bodies aim for a single segment."""
    name = alert.checker_name
    short_name = _truncate(name, 15)
    hours = _hours_since(alert, clock)
    ack_url = f"{base_url or settings.public_base_url}/alerts/{alert.id}"
    data = {"type": "alert", "alertId": alert.id, "alertLevel": level.value, "checkerName": name}

    if recipient.is_checker:
        return NotificationContent(
            title="Time to Check In",
            body="Don't forget to log how you're feeling today!",
            sms_body="HeyKin: you haven't checked in yet today. Open the app to let your circle know you're okay.",
            email_subject="You haven't checked in yet today",
            email_text=(
                f"Hi {name},\n\nWe haven't seen your check-in today. "
                "Open HeyKin and log how you're feeling so your circle knows you're okay."
            ),
            data=data,
        )

    location = alert.last_known_location
    last_seen = alert.last_checkin_at.strftime("%a %b %d %H:%M UTC") if alert.last_checkin_at else None

    if level == AlertLevel.ESCALATION:
        sms = f"EMERGENCY: {short_name} - 48H NO CHECK-IN\n"
        if last_seen:
            sms += f"Last seen: {last_seen}\n"
        if location:
            sms += f"At: {_truncate(location, 40)}\n"
        sms += f"Ack: {ack_url}"
        subject = f"URGENT: {name} hasn't checked in for 48+ hours"
        message = f"{name} hasn't responded in over 48 hours. Please try to contact them or someone who can check on them."
    elif level == AlertLevel.HARD_ALERT:
        sms = f"URGENT HeyKin: {short_name} missed 36h.\n"
        if location:
            sms += f"Location: {_truncate(location, 40)}\n"
        sms += f"Ack: {ack_url}"
        subject = f"{name} hasn't checked in for 36+ hours"
        message = f"{name} hasn't checked in for over 36 hours. You may want to reach out to them."
    elif level == AlertLevel.SOFT_ALERT:
        sms = f"HeyKin: {short_name} hasn't checked in for 24h."
        if location:
            sms += f" Last seen: {_truncate(location, 25)}."
        subject = f"{name} missed their check-in window"
        message = f"{name} has missed their scheduled check-in window. They may be busy, but we wanted to let you know."
    else:
        sms = f"HeyKin: {short_name} hasn't checked in yet today."
        subject = f"Reminder: {name} hasn't checked in yet"
        message = f"{name} hasn't completed their check-in for today. This is just a friendly heads up."

    critical = level == AlertLevel.ESCALATION
    email_text = f"{message}\n\nLast check-in: {last_seen or 'No recent check-ins'}\n"
    if location:
        email_text += f"Last known location: {location}\n"
    email_text += f"\nAcknowledge: {ack_url}\n"

    return NotificationContent(
        title=f"URGENT: {name} needs help" if critical else f"Alert: {name} hasn't checked in",
        body=f"It's been {hours} hours since their last check-in",
        sms_body=sms,
        email_subject=subject,
        email_text=email_text,
        voice_message=(
            f"This is Hey Kin. {name} has not checked in for {hours} hours. "
            "Please try to reach them, then acknowledge the alert in the app."
        ),
        critical=critical,
        data=data,
    )


class NotificationDispatcher:
    """Sends one alert to one recipient and logs every attempt.

    No retries happen inside a call; the next scanner pass is the retry.
    """

    def __init__(
        self,
        db: Session,
        providers: ProviderSet | None = None,
        clock: Clock = system_clock,
        voice_enabled: bool | None = None,
    ) -> None:
        self.db = db
        self.providers = providers or get_providers()
        self.clock = clock
        self.voice_enabled = settings.voice_calls_enabled if voice_enabled is None else voice_enabled

    def notify(self, alert: AlertEvent, recipient: Recipient, level: AlertLevel) -> list[NotificationAttempt]:
        policy = policy_for(level)
        content = build_content(alert, level, recipient, self.clock)
        attempts: list[NotificationAttempt] = []

        # Push is best-effort and never drives fallback
        if recipient.push_enabled:
            attempts.append(self._attempt(alert, recipient, Channel.PUSH, self.providers.push, content))

        sms_attempted = False
        sms_ok = False
        if recipient.sms_enabled and policy.sms:
            sms_attempted = True
            sms = self._attempt(alert, recipient, Channel.SMS, self.providers.sms, content)
            attempts.append(sms)
            sms_ok = sms.outcome == AttemptOutcome.SENT
            if not sms_ok:
                if is_fallback_eligible(sms.error_code):
                    logger.info(
                        "SMS to %s failed with %s; falling back to email for alert %s",
                        recipient.user_id,
                        sms.error_code,
                        alert.id,
                    )
                    attempts.append(
                        self._attempt(alert, recipient, Channel.EMAIL, self.providers.email, content, is_fallback=True)
                    )
                else:
                    logger.warning(
                        "SMS to %s failed with %s for alert %s; no fallback",
                        recipient.user_id,
                        sms.error_code,
                        alert.id,
                    )

        if not sms_attempted or (sms_ok and (recipient.email_enabled or policy.all_channels)):
            attempts.append(self._attempt(alert, recipient, Channel.EMAIL, self.providers.email, content))

        self.db.commit()
        return attempts

    def call(self, alert: AlertEvent, recipient: Recipient, level: AlertLevel) -> NotificationAttempt | None:
        """Voice call for HardAlert and above. A failed call is final for this pass."""
        if not self.voice_enabled or not policy_for(level).voice or recipient.is_checker:
            return None
        if not recipient.phone:
            return None
        content = build_content(alert, level, recipient, self.clock)
        attempt = self._attempt(alert, recipient, Channel.VOICE, self.providers.voice, content)
        self.db.commit()
        return attempt

    def _attempt(
        self,
        alert: AlertEvent,
        recipient: Recipient,
        channel: Channel,
        provider: NotificationProvider,
        content: NotificationContent,
        is_fallback: bool = False,
    ) -> NotificationAttempt:
        try:
            result = provider.send(recipient, content)
        except Exception:
            logger.exception("%s provider raised for alert %s recipient %s", channel.value, alert.id, recipient.user_id)
            result = SendResult.failure(SmsErrorCode.PROVIDER_ERROR)

        attempt = NotificationAttempt(
            alert_id=alert.id,
            recipient_id=recipient.user_id,
            channel=channel,
            outcome=AttemptOutcome.SENT if result.ok else AttemptOutcome.FAILED,
            error_code=None if result.ok else result.error_code,
            provider_message_id=result.provider_message_id,
            is_fallback=is_fallback,
            created_at=self.clock.now(),
        )
        self.db.add(attempt)
        self.db.flush()
        return attempt


def record_delivery_receipt(
    db: Session,
    provider_message_id: str,
    message_status: str,
    error_code: str | None = None,
    clock: Clock = system_clock,
) -> NotificationAttempt | None:
    """Append a receipt row for a provider status callback.

    Returns None for unknown message ids and for interim statuses (queued, sent).
    """
    original = db.execute(
        select(NotificationAttempt)
        .where(NotificationAttempt.provider_message_id == provider_message_id)
        .order_by(NotificationAttempt.id.asc())
        .limit(1)
    ).scalar_one_or_none()
    if original is None:
        logger.info("Delivery receipt for unknown message %s", provider_message_id)
        return None

    if message_status == "delivered":
        outcome = AttemptOutcome.DELIVERED
        code = None
    elif message_status in _UNDELIVERED_STATUSES:
        outcome = AttemptOutcome.FAILED
        code = classify_sms_error(error_code).value
    else:
        return None

    receipt = NotificationAttempt(
        alert_id=original.alert_id,
        recipient_id=original.recipient_id,
        channel=original.channel,
        outcome=outcome,
        error_code=code,
        provider_message_id=provider_message_id,
        is_fallback=original.is_fallback,
        created_at=clock.now(),
    )
    db.add(receipt)
    db.commit()
    db.refresh(receipt)
    return receipt
