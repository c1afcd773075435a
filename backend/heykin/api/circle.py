"""Circle API."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from heykin.core.deps import get_current_user
from heykin.db.session import get_db
from heykin.models.circle_link import CircleLink
from heykin.models.user import User
from heykin.schemas.circle import CircleLinkResponse, CircleLinkWithUser, CircleMemberCreate, CircleMemberUpdate
from heykin.services.circle_service import (
    add_member,
    list_circle,
    list_supporting,
    remove_member,
    update_member,
)

router = APIRouter(prefix="/circle", tags=["circle"])


def _enrich_link(link: CircleLink, db: Session, current_user_id: int) -> CircleLinkWithUser:
    """Add the other person's name and email."""
    other_id = link.supporter_id if link.checker_id == current_user_id else link.checker_id
    other = db.get(User, other_id)
    return CircleLinkWithUser(
        **CircleLinkResponse.model_validate(link).model_dump(),
        other_email=other.email if other else "",
        other_name=other.full_name if other else "",
    )


@router.get("", response_model=list[CircleLinkWithUser])
def get_my_circle(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Supporters in the current user's circle, first-contacted first."""
    return [_enrich_link(link, db, current_user.id) for link in list_circle(db, current_user.id)]


@router.get("/supporting", response_model=list[CircleLinkWithUser])
def get_supporting(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Checkers the current user supports."""
    return [_enrich_link(link, db, current_user.id) for link in list_supporting(db, current_user.id)]


@router.post("/members", response_model=CircleLinkWithUser, status_code=status.HTTP_201_CREATED)
def add(
    data: CircleMemberCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a supporter by email or user id."""
    if not data.supporter_email and not data.supporter_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide supporter_email or supporter_id",
        )
    try:
        link = add_member(db, checker_id=current_user.id, **data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _enrich_link(link, db, current_user.id)


@router.patch("/members/{link_id}", response_model=CircleLinkWithUser)
def update(
    link_id: int,
    data: CircleMemberUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        link = update_member(db, link_id, current_user.id, data.model_dump(exclude_unset=True))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _enrich_link(link, db, current_user.id)


@router.delete("/members/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove(
    link_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Remove a supporter from the circle."""
    try:
        remove_member(db, link_id, current_user.id)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
