"""Alerts API.

Acknowledge, resolve and cancel are idempotent: acting on an alert that is
already closed returns it unchanged with 200.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from heykin.core.clock import Clock, get_clock
from heykin.core.deps import get_current_user
from heykin.db.session import get_db
from heykin.models.alert_event import AlertEvent
from heykin.models.user import User
from heykin.schemas.alert import (
    AlertResolveRequest,
    AlertResponse,
    AlertTriggerRequest,
    NotificationAttemptResponse,
)
from heykin.services.alert_service import (
    DuplicateAlertError,
    acknowledge_alert,
    active_alerts,
    alerts_needing_attention,
    cancel_alert,
    create_alert,
    get_alert,
    list_attempts,
    resolve_alert,
)
from heykin.services.checkin_service import latest_checkin
from heykin.services.circle_service import is_supporter_of
from heykin.services.notification_service import NotificationDispatcher
from heykin.services.providers import ProviderSet, get_providers
from heykin.services.scanner_service import fan_out

router = APIRouter(prefix="/alerts", tags=["alerts"])


def _get_visible_alert(db: Session, alert_id: int, user: User) -> AlertEvent:
    """Alert the user is the subject of or supports; 404/403 otherwise."""
    alert = get_alert(db, alert_id)
    if not alert:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    if alert.checker_id != user.id and not is_supporter_of(db, user.id, alert.checker_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not in this checker's circle")
    return alert


@router.get("/mine", response_model=list[AlertResponse])
def list_mine(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Open alerts about the current user."""
    return active_alerts(db, current_user.id)


@router.get("", response_model=list[AlertResponse])
def list_for_supporter(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Open alerts the current user was notified about."""
    return alerts_needing_attention(db, current_user.id)


@router.post("/trigger", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
def trigger(
    data: AlertTriggerRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    providers: ProviderSet = Depends(get_providers),
    current_user: User = Depends(get_current_user),
):
    """Raise an alert now and notify the level's audience. For testing a circle end to end."""
    checker_id = data.checker_id or current_user.id
    checker = db.get(User, checker_id)
    if not checker:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Checker not found")
    if checker.id != current_user.id and not is_supporter_of(db, current_user.id, checker.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not in this checker's circle")

    last = latest_checkin(db, checker.id)
    try:
        alert = create_alert(
            db,
            checker,
            clock.now(),
            data.level,
            last_checkin_at=last.timestamp if last else None,
            last_known_location=checker.last_known_address,
            clock=clock,
        )
    except DuplicateAlertError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    fan_out(db, checker, alert, NotificationDispatcher(db, providers, clock))
    db.refresh(alert)
    return alert


@router.get("/{alert_id}", response_model=AlertResponse)
def get_one(
    alert_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _get_visible_alert(db, alert_id, current_user)


@router.get("/{alert_id}/attempts", response_model=list[NotificationAttemptResponse])
def get_attempts(
    alert_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Notification log for the alert, oldest first."""
    _get_visible_alert(db, alert_id, current_user)
    return list_attempts(db, alert_id)


@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
def acknowledge(
    alert_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """Supporter has seen the alert."""
    alert = _get_visible_alert(db, alert_id, current_user)
    return acknowledge_alert(db, alert, current_user.id, clock)


@router.post("/{alert_id}/resolve", response_model=AlertResponse)
def resolve(
    alert_id: int,
    data: AlertResolveRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    alert = _get_visible_alert(db, alert_id, current_user)
    return resolve_alert(db, alert, current_user.id, data.resolution, data.notes, clock)


@router.post("/{alert_id}/cancel", response_model=AlertResponse)
def cancel(
    alert_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """Close the alert without a resolution, e.g. after a test trigger."""
    alert = _get_visible_alert(db, alert_id, current_user)
    return cancel_alert(db, alert, current_user.id, clock)
