"""Pokes API."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from heykin.core.clock import Clock, get_clock
from heykin.core.deps import get_current_user
from heykin.db.session import get_db
from heykin.models.poke import Poke
from heykin.models.user import User
from heykin.schemas.poke import PokeCreate, PokeResponse, PokeSent, PokeWithSender, UnseenCount
from heykin.services.poke_service import list_pokes, mark_all_seen, mark_seen, send_poke, unseen_count
from heykin.services.providers import ProviderSet, get_providers

router = APIRouter(prefix="/pokes", tags=["pokes"])


def _with_sender(poke: Poke, db: Session) -> PokeWithSender:
    sender = db.get(User, poke.from_user_id)
    return PokeWithSender(
        **PokeResponse.model_validate(poke).model_dump(),
        from_name=sender.full_name if sender else "",
    )


@router.post("", response_model=PokeSent, status_code=status.HTTP_201_CREATED)
def poke(
    data: PokeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    providers: ProviderSet = Depends(get_providers),
):
    """Nudge a checker you support."""
    try:
        sent, channels = send_poke(db, current_user, data.to_user_id, data.message, providers, clock)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return PokeSent(
        **PokeResponse.model_validate(sent).model_dump(),
        notified_via=[c.value for c in channels],
    )


@router.get("", response_model=list[PokeWithSender])
def received(
    limit: int = Query(default=20, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pokes the current user received, newest first."""
    return [_with_sender(p, db) for p in list_pokes(db, current_user.id, limit)]


@router.get("/unseen/count", response_model=UnseenCount)
def unseen(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return UnseenCount(count=unseen_count(db, current_user.id))


@router.post("/seen/all", response_model=UnseenCount)
def seen_all(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Mark every received poke seen. Returns the remaining unseen count."""
    mark_all_seen(db, current_user.id, clock)
    return UnseenCount(count=unseen_count(db, current_user.id))


@router.post("/{poke_id}/seen", response_model=PokeWithSender)
def seen(
    poke_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    try:
        poke = mark_seen(db, poke_id, current_user.id, clock)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _with_sender(poke, db)
