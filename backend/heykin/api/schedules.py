"""Check-in schedule API."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from heykin.core.clock import Clock, get_clock
from heykin.core.deps import require_checker
from heykin.db.session import get_db
from heykin.models.schedule import Schedule
from heykin.models.user import User
from heykin.schemas.schedule import ScheduleRequest, ScheduleResponse, ScheduleStatus
from heykin.services import window_service
from heykin.services.schedule_service import get_active_schedule, save_schedule

router = APIRouter(prefix="/users/me/schedule", tags=["schedules"])


def _with_status(schedule: Schedule, clock: Clock) -> ScheduleStatus:
    now = clock.now()
    return ScheduleStatus(
        **ScheduleResponse.model_validate(schedule).model_dump(),
        in_window=window_service.is_within_window(schedule, now),
        in_grace_period=window_service.is_in_grace_period(schedule, now),
        next_window_opens_at=window_service.next_window_opens_at(schedule, now),
        next_window_closes_at=window_service.next_window_closes_at(schedule, now),
        next_reminder_at=window_service.next_reminder_at(schedule, now),
    )


@router.get("", response_model=ScheduleStatus)
def get_my_schedule(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_checker),
):
    """Current schedule and where now falls in it."""
    schedule = get_active_schedule(db, current_user.id)
    if not schedule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No schedule set")
    try:
        return _with_status(schedule, clock)
    except window_service.ScheduleConfigError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("", response_model=ScheduleStatus)
def put_my_schedule(
    data: ScheduleRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_checker),
):
    """Replace the schedule. The previous one is kept, deactivated."""
    try:
        schedule = save_schedule(db, current_user.id, **data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _with_status(schedule, clock)
