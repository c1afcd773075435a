"""Pokes: a supporter nudging a checker to check in.

Allowed only along an active circle link with ``can_poke`` set. The checker is
told by push, plus SMS and email where that link enables them. Delivery
problems are logged; the poke is stored either way.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from heykin.core.clock import Clock, system_clock
from heykin.models.circle_link import CircleLink
from heykin.models.enums import Channel
from heykin.models.poke import Poke
from heykin.models.user import User
from heykin.services.circle_service import checker_recipient
from heykin.services.providers import NotificationContent, ProviderSet, Recipient

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 50


def _poke_link(db: Session, sender_id: int, checker_id: int) -> CircleLink | None:
    return db.execute(
        select(CircleLink).where(
            CircleLink.checker_id == checker_id,
            CircleLink.supporter_id == sender_id,
            CircleLink.is_active.is_(True),
            CircleLink.can_poke.is_(True),
        )
    ).scalar_one_or_none()


def build_poke_content(poke: Poke, sender_name: str) -> NotificationContent:
    note = poke.message or "Thinking of you. Tap to check in."
    return NotificationContent(
        title=f"{sender_name} sent you a poke",
        body=note,
        sms_body=f"HeyKin: {sender_name} poked you: {note}"[:320],
        email_subject=f"{sender_name} is checking on you",
        email_text=f"{sender_name} sent you a poke.\n\n{note}\n\nOpen HeyKin to check in.",
        data={"type": "poke", "poke_id": poke.id},
    )


def _deliver(channel: Channel, provider, recipient: Recipient, content: NotificationContent, poke_id: int) -> bool:
    try:
        result = provider.send(recipient, content)
    except Exception:
        logger.exception("%s provider raised for poke %s", channel.value, poke_id)
        return False
    if not result.ok:
        logger.warning("Poke %s %s delivery failed: %s", poke_id, channel.value, result.error_code)
    return result.ok


def send_poke(
    db: Session,
    sender: User,
    checker_id: int,
    message: str | None,
    providers: ProviderSet,
    clock: Clock = system_clock,
) -> tuple[Poke, list[Channel]]:
    """Store a poke and notify the checker. Returns the poke and the channels that took it.

    Raises PermissionError unless the sender supports the checker with poking allowed.
    """
    link = _poke_link(db, sender.id, checker_id)
    checker = db.get(User, checker_id)
    if link is None or checker is None:
        raise PermissionError("You cannot poke this user")

    poke = Poke(from_user_id=sender.id, to_user_id=checker_id, message=message or None, sent_at=clock.now())
    db.add(poke)
    db.commit()
    db.refresh(poke)

    recipient = checker_recipient(db, checker)
    content = build_poke_content(poke, link.supporter_display_name or sender.full_name)
    channels = [(Channel.PUSH, providers.push)]
    if link.alert_via_sms and recipient.phone:
        channels.append((Channel.SMS, providers.sms))
    if link.alert_via_email and recipient.email:
        channels.append((Channel.EMAIL, providers.email))

    delivered = [
        channel for channel, provider in channels if _deliver(channel, provider, recipient, content, poke.id)
    ]
    logger.info("Poke %s from %s to %s via %s", poke.id, sender.id, checker_id, [c.value for c in delivered])
    return poke, delivered


def list_pokes(db: Session, user_id: int, limit: int = 20) -> list[Poke]:
    """Pokes received, newest first."""
    result = db.execute(
        select(Poke)
        .where(Poke.to_user_id == user_id)
        .order_by(Poke.sent_at.desc(), Poke.id.desc())
        .limit(min(max(limit, 1), MAX_LIST_LIMIT))
    )
    return list(result.scalars().all())


def unseen_count(db: Session, user_id: int) -> int:
    return db.execute(
        select(func.count(Poke.id)).where(Poke.to_user_id == user_id, Poke.seen_at.is_(None))
    ).scalar_one()


def mark_seen(db: Session, poke_id: int, user_id: int, clock: Clock = system_clock) -> Poke:
    """Mark a received poke seen. Keeps the first seen_at."""
    poke = db.get(Poke, poke_id)
    if poke is None or poke.to_user_id != user_id:
        raise ValueError("Poke not found")
    if poke.seen_at is None:
        poke.seen_at = clock.now()
        db.commit()
        db.refresh(poke)
    return poke


def mark_all_seen(db: Session, user_id: int, clock: Clock = system_clock) -> int:
    result = db.execute(
        update(Poke)
        .where(Poke.to_user_id == user_id, Poke.seen_at.is_(None))
        .values(seen_at=clock.now())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount


def mark_responded(db: Session, user_id: int, clock: Clock = system_clock) -> int:
    """A check-in answers every outstanding poke."""
    result = db.execute(
        update(Poke)
        .where(Poke.to_user_id == user_id, Poke.responded_at.is_(None))
        .values(responded_at=clock.now())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount
