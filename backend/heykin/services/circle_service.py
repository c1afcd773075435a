"""Circle (checker -> supporter) service."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from heykin.core.alert_policies import (
    AUDIENCE_ALL_SUPPORTERS,
    AUDIENCE_CHECKER,
    AUDIENCE_EVERYONE,
    AUDIENCE_PRIORITY_ONE,
    policy_for,
)
from heykin.models.circle_link import CircleLink
from heykin.models.enums import AlertLevel
from heykin.models.user import User
from heykin.services.auth_service import get_user_by_email, push_tokens_for
from heykin.services.providers import Recipient

_EDITABLE_FIELDS = {
    "supporter_display_name",
    "alert_priority",
    "alert_via_push",
    "alert_via_sms",
    "alert_via_email",
    "is_emergency_contact",
    "can_poke",
    "can_see_mood",
    "can_see_location",
    "can_see_selfie",
}


def add_member(
    db: Session,
    checker_id: int,
    supporter_email: str | None = None,
    supporter_id: int | None = None,
    contact_phone: str | None = None,
    contact_email: str | None = None,
    **fields,
) -> CircleLink:
    """Add a supporter to a checker's circle by email or user id.

    A previously removed link is reactivated with the new settings.
    """
    supporter: User | None = None
    if supporter_email:
        supporter = get_user_by_email(db, supporter_email)
    elif supporter_id:
        supporter = db.get(User, supporter_id)

    if not supporter:
        raise ValueError("User not found")
    if supporter.id == checker_id:
        raise ValueError("Cannot add yourself to your circle")

    link = db.execute(
        select(CircleLink).where(CircleLink.checker_id == checker_id, CircleLink.supporter_id == supporter.id)
    ).scalar_one_or_none()
    if link and link.is_active:
        raise ValueError("Already in your circle")
    if link is None:
        link = CircleLink(checker_id=checker_id, supporter_id=supporter.id)
        db.add(link)

    link.is_active = True
    link.supporter_phone = contact_phone
    link.supporter_email = contact_email
    for key, value in fields.items():
        if key in _EDITABLE_FIELDS:
            setattr(link, key, value)
    if not link.supporter_display_name:
        link.supporter_display_name = supporter.full_name
    db.commit()
    db.refresh(link)
    return link


def _owned_link(db: Session, link_id: int, checker_id: int) -> CircleLink:
    link = db.get(CircleLink, link_id)
    if not link or not link.is_active:
        raise ValueError("Link not found")
    if link.checker_id != checker_id:
        raise PermissionError("Only the checker can change their circle")
    return link


def update_member(db: Session, link_id: int, checker_id: int, changes: dict) -> CircleLink:
    """Apply a partial update. ``contact_phone``/``contact_email`` set the overrides."""
    link = _owned_link(db, link_id, checker_id)
    for key, value in changes.items():
        if key == "contact_phone":
            link.supporter_phone = value
        elif key == "contact_email":
            link.supporter_email = value
        elif key in _EDITABLE_FIELDS:
            setattr(link, key, value)
    db.commit()
    db.refresh(link)
    return link


def remove_member(db: Session, link_id: int, checker_id: int) -> CircleLink:
    """Soft-remove; alert history keeps pointing at the supporter."""
    link = _owned_link(db, link_id, checker_id)
    link.is_active = False
    db.commit()
    db.refresh(link)
    return link


def list_circle(db: Session, checker_id: int) -> list[CircleLink]:
    """Active supporters of a checker, first-contacted first."""
    result = db.execute(
        select(CircleLink)
        .where(CircleLink.checker_id == checker_id, CircleLink.is_active.is_(True))
        .order_by(CircleLink.alert_priority.asc(), CircleLink.id.asc())
    )
    return list(result.scalars().all())


def list_supporting(db: Session, supporter_id: int) -> list[CircleLink]:
    """Checkers this user supports."""
    result = db.execute(
        select(CircleLink)
        .where(CircleLink.supporter_id == supporter_id, CircleLink.is_active.is_(True))
        .order_by(CircleLink.created_at.desc(), CircleLink.id.desc())
    )
    return list(result.scalars().all())


def is_supporter_of(db: Session, supporter_id: int, checker_id: int) -> bool:
    return any(link.checker_id == checker_id for link in list_supporting(db, supporter_id))


def checker_recipient(db: Session, checker: User) -> Recipient:
    return Recipient(
        user_id=checker.id,
        name=checker.full_name,
        email=checker.email,
        phone=checker.phone_number,
        push_tokens=push_tokens_for(db, checker.id),
        is_checker=True,
    )


def supporter_recipient(db: Session, link: CircleLink) -> Recipient:
    supporter = db.get(User, link.supporter_id)
    return Recipient(
        user_id=link.supporter_id,
        name=link.supporter_display_name or (supporter.full_name if supporter else ""),
        email=link.supporter_email or (supporter.email if supporter else None),
        phone=link.supporter_phone or (supporter.phone_number if supporter else None),
        push_tokens=push_tokens_for(db, link.supporter_id),
        push_enabled=link.alert_via_push,
        sms_enabled=link.alert_via_sms,
        email_enabled=link.alert_via_email,
    )


def recipients_for_level(db: Session, checker: User, level: AlertLevel) -> list[Recipient]:
    """Who hears about an alert at ``level``.

    Reminder goes to the checker only; emergency contacts only hear at Escalation.
    """
    audience = policy_for(level).audience
    if audience == AUDIENCE_CHECKER:
        return [checker_recipient(db, checker)]

    links = list_circle(db, checker.id)
    if audience == AUDIENCE_PRIORITY_ONE:
        links = [l for l in links if l.alert_priority == 1 and not l.is_emergency_contact]
    elif audience == AUDIENCE_ALL_SUPPORTERS:
        links = [l for l in links if not l.is_emergency_contact]
    elif audience != AUDIENCE_EVERYONE:
        raise ValueError(f"Unknown audience {audience}")
    return [supporter_recipient(db, link) for link in links]
