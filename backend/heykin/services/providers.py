"""Delivery providers for push, SMS, email and voice.

Every provider exposes ``send(recipient, content) -> SendResult`` and never
raises for delivery problems; failures come back as an error code. Calls go
through httpx with an explicit timeout, and a timeout is reported as the
``timeout`` code.
"""

from __future__ import annotations

import base64
import logging
import time
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol
from xml.sax.saxutils import escape

import httpx
from jose import jwt

from heykin.core.config import Settings, settings
from heykin.models.enums import SmsErrorCode

logger = logging.getLogger(__name__)

TWILIO_API = "https://api.twilio.com/2010-04-01"
RESEND_API = "https://api.resend.com/emails"
APNS_HOST = "https://api.push.apple.com"
APNS_SANDBOX_HOST = "https://api.sandbox.push.apple.com"

# Twilio numeric error codes -> provider-neutral codes
TWILIO_ERROR_CODES: dict[int, SmsErrorCode] = {
    21211: SmsErrorCode.INVALID_NUMBER,
    21614: SmsErrorCode.LANDLINE_NUMBER,
    30006: SmsErrorCode.LANDLINE_NUMBER,
    30003: SmsErrorCode.UNREACHABLE_DESTINATION,
    30005: SmsErrorCode.UNREACHABLE_DESTINATION,
    30004: SmsErrorCode.BLOCKED_MESSAGE,
    21610: SmsErrorCode.BLOCKED_MESSAGE,
    20429: SmsErrorCode.RATE_LIMITED,
    14107: SmsErrorCode.RATE_LIMITED,
}


@dataclass
class Recipient:
    """Someone to notify, with the channels they accept."""

    user_id: int | None
    name: str
    email: str | None = None
    phone: str | None = None
    push_tokens: list[str] = field(default_factory=list)
    push_enabled: bool = True
    sms_enabled: bool = False
    email_enabled: bool = False
    is_checker: bool = False


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str
    sms_body: str
    email_subject: str
    email_text: str
    voice_message: str = ""
    critical: bool = False
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SendResult:
    ok: bool
    error_code: str | None = None
    provider_message_id: str | None = None

    @classmethod
    def success(cls, provider_message_id: str | None = None) -> SendResult:
        return cls(ok=True, provider_message_id=provider_message_id)

    @classmethod
    def failure(cls, error_code: str | SmsErrorCode) -> SendResult:
        code = error_code.value if isinstance(error_code, SmsErrorCode) else str(error_code)
        return cls(ok=False, error_code=code)


class NotificationProvider(Protocol):
    def send(self, recipient: Recipient, content: NotificationContent) -> SendResult: ...


def classify_sms_error(twilio_code: int | str | None) -> SmsErrorCode:
    """Map a Twilio error code to our closed set; unknown codes are provider errors."""
    try:
        return TWILIO_ERROR_CODES.get(int(twilio_code), SmsErrorCode.PROVIDER_ERROR)
    except (TypeError, ValueError):
        return SmsErrorCode.PROVIDER_ERROR


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class LocalProvider:
    """Logs instead of delivering. Used when a channel has no credentials."""

    def __init__(self, channel: str) -> None:
        self.channel = channel
        self.sent: list[tuple[Recipient, NotificationContent]] = []

    def send(self, recipient: Recipient, content: NotificationContent) -> SendResult:
        self.sent.append((recipient, content))
        logger.info("[local %s] to=%s title=%s", self.channel, recipient.user_id, content.title)
        return SendResult.success(f"local-{uuid.uuid4().hex[:12]}")


class _HttpProvider:
    def __init__(self, timeout: float, transport: httpx.BaseTransport | None = None) -> None:
        self.timeout = timeout
        self.transport = transport

    def _client(self, **kwargs) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport, **kwargs)


class TwilioSmsProvider(_HttpProvider):
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str = "",
        messaging_service_sid: str = "",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(timeout, transport)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid

    def send(self, recipient: Recipient, content: NotificationContent) -> SendResult:
        if not recipient.phone:
            return SendResult.failure(SmsErrorCode.NO_DESTINATION)
        data = {"To": recipient.phone, "Body": content.sms_body}
        if self.messaging_service_sid:
            data["MessagingServiceSid"] = self.messaging_service_sid
        else:
            data["From"] = self.from_number

        url = f"{TWILIO_API}/Accounts/{self.account_sid}/Messages.json"
        try:
            with self._client(auth=(self.account_sid, self.auth_token)) as client:
                response = client.post(url, data=data)
        except httpx.TimeoutException:
            logger.warning("Twilio SMS to user %s timed out", recipient.user_id)
            return SendResult.failure(SmsErrorCode.TIMEOUT)
        except httpx.HTTPError as e:
            logger.warning("Twilio SMS to user %s failed: %s", recipient.user_id, e)
            return SendResult.failure(SmsErrorCode.PROVIDER_ERROR)

        if response.is_success:
            return SendResult.success(_error_body(response).get("sid"))
        twilio_code = _error_body(response).get("code")
        if twilio_code is None and response.status_code == 429:
            twilio_code = 20429
        code = classify_sms_error(twilio_code)
        logger.warning("Twilio SMS to user %s rejected: %s (%s)", recipient.user_id, twilio_code, code.value)
        return SendResult.failure(code)


class TwilioVoiceProvider(_HttpProvider):
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(timeout, transport)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    def send(self, recipient: Recipient, content: NotificationContent) -> SendResult:
        if not recipient.phone:
            return SendResult.failure(SmsErrorCode.NO_DESTINATION)
        twiml = f'<Response><Say voice="alice">{escape(content.voice_message or content.body)}</Say></Response>'
        url = f"{TWILIO_API}/Accounts/{self.account_sid}/Calls.json"
        try:
            with self._client(auth=(self.account_sid, self.auth_token)) as client:
                response = client.post(url, data={"To": recipient.phone, "From": self.from_number, "Twiml": twiml})
        except httpx.TimeoutException:
            return SendResult.failure(SmsErrorCode.TIMEOUT)
        except httpx.HTTPError as e:
            logger.warning("Twilio call to user %s failed: %s", recipient.user_id, e)
            return SendResult.failure(SmsErrorCode.PROVIDER_ERROR)

        if response.is_success:
            return SendResult.success(_error_body(response).get("sid"))
        return SendResult.failure(classify_sms_error(_error_body(response).get("code")))


class ResendEmailProvider(_HttpProvider):
    def __init__(
        self,
        api_key: str,
        from_email: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(timeout, transport)
        self.api_key = api_key
        self.from_email = from_email

    def send(self, recipient: Recipient, content: NotificationContent) -> SendResult:
        if not recipient.email:
            return SendResult.failure("no-destination")
        payload = {
            "from": self.from_email,
            "to": [recipient.email],
            "subject": content.email_subject,
            "text": content.email_text,
        }
        try:
            with self._client(headers={"Authorization": f"Bearer {self.api_key}"}) as client:
                response = client.post(RESEND_API, json=payload)
        except httpx.TimeoutException:
            return SendResult.failure("timeout")
        except httpx.HTTPError as e:
            logger.warning("Email to user %s failed: %s", recipient.user_id, e)
            return SendResult.failure("provider-error")

        if response.is_success:
            return SendResult.success(_error_body(response).get("id"))
        logger.warning("Email to user %s rejected: HTTP %s", recipient.user_id, response.status_code)
        return SendResult.failure(_error_body(response).get("name") or f"http-{response.status_code}")


class ApnsPushProvider(_HttpProvider):
    """APNs over HTTP/2 with a provider token (ES256), cached for 50 minutes."""

    TOKEN_TTL_SECONDS = 50 * 60

    def __init__(
        self,
        key_id: str,
        team_id: str,
        bundle_id: str,
        key_base64: str,
        use_sandbox: bool = True,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(timeout, transport)
        self.key_id = key_id
        self.team_id = team_id
        self.bundle_id = bundle_id
        self.private_key = base64.b64decode(key_base64).decode() if key_base64 else ""
        self.host = APNS_SANDBOX_HOST if use_sandbox else APNS_HOST
        self._token: tuple[str, float] | None = None

    def _auth_token(self) -> str:
        now = time.time()
        if self._token and self._token[1] > now:
            return self._token[0]
        token = jwt.encode(
            {"iss": self.team_id, "iat": int(now)},
            self.private_key,
            algorithm="ES256",
            headers={"kid": self.key_id},
        )
        self._token = (token, now + self.TOKEN_TTL_SECONDS)
        return token

    def _payload(self, content: NotificationContent) -> dict[str, Any]:
        aps: dict[str, Any] = {
            "alert": {"title": content.title, "body": content.body},
            "category": "ALERT",
            "interruption-level": "critical" if content.critical else "time-sensitive",
            "sound": {"critical": 1, "name": "alert.caf", "volume": 1.0} if content.critical else "default",
        }
        return {"aps": aps, **content.data}

    def send(self, recipient: Recipient, content: NotificationContent) -> SendResult:
        if not recipient.push_tokens:
            return SendResult.failure("no-destination")
        headers = {
            "authorization": f"bearer {self._auth_token()}",
            "apns-topic": self.bundle_id,
            "apns-push-type": "alert",
            "apns-priority": "10",
        }
        payload = self._payload(content)
        last_error = "provider-error"
        with self._client(http2=True, headers=headers) as client:
            for device_token in recipient.push_tokens:
                try:
                    response = client.post(f"{self.host}/3/device/{device_token}", json=payload)
                except httpx.TimeoutException:
                    last_error = "timeout"
                    continue
                except httpx.HTTPError as e:
                    logger.warning("APNs push to user %s failed: %s", recipient.user_id, e)
                    continue
                if response.is_success:
                    return SendResult.success(response.headers.get("apns-id"))
                last_error = _error_body(response).get("reason") or f"http-{response.status_code}"
        return SendResult.failure(last_error)


@dataclass
class ProviderSet:
    push: NotificationProvider
    sms: NotificationProvider
    email: NotificationProvider
    voice: NotificationProvider


def build_providers(config: Settings) -> ProviderSet:
    """Real providers where credentials are configured, local ones elsewhere."""
    timeout = config.provider_timeout_seconds
    twilio_ready = bool(config.twilio_account_sid and config.twilio_auth_token)

    if config.apns_key_id and config.apns_team_id and config.apns_key_base64:
        push: NotificationProvider = ApnsPushProvider(
            config.apns_key_id,
            config.apns_team_id,
            config.apns_bundle_id,
            config.apns_key_base64,
            use_sandbox=config.apns_use_sandbox,
            timeout=timeout,
        )
    else:
        push = LocalProvider("push")

    if twilio_ready:
        sms: NotificationProvider = TwilioSmsProvider(
            config.twilio_account_sid,
            config.twilio_auth_token,
            from_number=config.twilio_phone_number,
            messaging_service_sid=config.twilio_messaging_service_sid,
            timeout=timeout,
        )
        voice: NotificationProvider = TwilioVoiceProvider(
            config.twilio_account_sid,
            config.twilio_auth_token,
            config.twilio_phone_number,
            timeout=timeout,
        )
    else:
        sms = LocalProvider("sms")
        voice = LocalProvider("voice")

    if config.resend_api_key:
        email: NotificationProvider = ResendEmailProvider(config.resend_api_key, config.from_email, timeout=timeout)
    else:
        email = LocalProvider("email")

    return ProviderSet(push=push, sms=sms, email=email, voice=voice)


@lru_cache
def get_providers() -> ProviderSet:
    """Dependency for FastAPI to get the configured providers."""
    return build_providers(settings)
