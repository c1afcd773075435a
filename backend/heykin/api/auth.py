"""Auth API."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from heykin.core.deps import get_current_user
from heykin.core.security import create_access_token
from heykin.db.session import get_db
from heykin.models.user import User
from heykin.schemas.auth import (
    LoginRequest,
    PushTokenRequest,
    PushTokenResponse,
    RegisterRequest,
    TokenResponse,
    UserMe,
)
from heykin.services.auth_service import authenticate_user, create_user, register_push_token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserMe, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account."""
    try:
        return create_user(db, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    user = authenticate_user(db, data.email, data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    return TokenResponse(access_token=create_access_token(user.id, {"email": user.email}))


@router.get("/me", response_model=UserMe)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/me/push-tokens", response_model=PushTokenResponse, status_code=status.HTTP_201_CREATED)
def add_push_token(
    data: PushTokenRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Register a device for push alerts."""
    return register_push_token(db, current_user.id, data.token, data.platform)
