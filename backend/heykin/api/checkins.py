"""Check-ins API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from heykin.core.clock import Clock, get_clock
from heykin.core.deps import get_current_user, require_checker
from heykin.db.session import get_db
from heykin.models.user import User
from heykin.schemas.checkin import CheckInCreate, CheckInResponse, CheckInResult, CheckInStatsResponse, CheckInUpdate
from heykin.services.checkin_service import (
    checkin_stats,
    get_today_checkin,
    list_checkins,
    record_checkin,
    update_today_checkin,
)

router = APIRouter(prefix="/checkins", tags=["checkins"])


@router.post("", response_model=CheckInResult, status_code=status.HTTP_201_CREATED)
def create_checkin(
    data: CheckInCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_checker),
):
    """Check in. Any open alerts about the current user are resolved."""
    checkin, resolved = record_checkin(db, current_user, clock=clock, **data.model_dump())
    return CheckInResult(**CheckInResponse.model_validate(checkin).model_dump(), alerts_resolved=resolved)


@router.put("/today", response_model=CheckInResponse)
def update_today(
    data: CheckInUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_checker),
):
    """Edit today's check-in. Only today's record can change."""
    try:
        return update_today_checkin(db, current_user, data.model_dump(exclude_unset=True), clock)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/today", response_model=CheckInResponse | None)
def get_today(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """Today's check-in in the user's schedule timezone, or null."""
    return get_today_checkin(db, current_user.id, clock)


@router.get("/stats", response_model=CheckInStatsResponse)
def get_stats(
    days: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """Streak and score averages."""
    return checkin_stats(db, current_user.id, days, clock)


@router.get("", response_model=list[CheckInResponse])
def get_my_checkins(
    limit: int = Query(default=30, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Current user's check-ins, newest first."""
    return list_checkins(db, current_user.id, limit)
