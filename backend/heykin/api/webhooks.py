"""Provider webhooks."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from heykin.core.clock import Clock, get_clock
from heykin.core.config import settings
from heykin.db.session import get_db
from heykin.services.notification_service import record_delivery_receipt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def twilio_signature(auth_token: str, url: str, params: dict[str, str]) -> str:
    """X-Twilio-Signature: base64 HMAC-SHA1 of the URL followed by sorted key/value pairs."""
    payload = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode(), payload.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


async def form_params(request: Request) -> dict[str, str]:
    """Form-encoded callback body as plain strings."""
    form = await request.form()
    return {key: str(value) for key, value in form.items()}


@router.post("/twilio/sms-status")
def twilio_sms_status(
    request: Request,
    params: dict[str, str] = Depends(form_params),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Twilio status callback. Appends a delivery receipt to the notification log."""
    if settings.twilio_auth_token:
        expected = twilio_signature(settings.twilio_auth_token, str(request.url), params)
        if not hmac.compare_digest(expected, request.headers.get("X-Twilio-Signature", "")):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    message_sid = params.get("MessageSid")
    message_status = params.get("MessageStatus")
    if not message_sid or not message_status:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="MessageSid and MessageStatus required")

    receipt = record_delivery_receipt(db, message_sid, message_status, params.get("ErrorCode"), clock)
    logger.info("Twilio status %s for %s (recorded=%s)", message_status, message_sid, receipt is not None)
    return {"received": True, "recorded": receipt is not None}
