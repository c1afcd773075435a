"""Auth service."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from heykin.core.security import hash_password, verify_password
from heykin.models.push_token import PushToken
from heykin.models.user import User
from heykin.schemas.auth import RegisterRequest


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email."""
    return db.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()


def create_user(db: Session, data: RegisterRequest) -> User:
    """Create a new user."""
    if get_user_by_email(db, data.email):
        raise ValueError("Email already registered")
    user = User(
        email=data.email.lower(),
        hashed_password=hash_password(data.password),
        full_name=data.full_name,
        phone_number=data.phone_number,
        is_checker=data.is_checker,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Authenticate user by email and password."""
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user


def register_push_token(db: Session, user_id: int, token: str, platform: str = "ios") -> PushToken:
    """Store a device token; re-registering the same token is a no-op."""
    existing = db.execute(
        select(PushToken).where(PushToken.user_id == user_id, PushToken.token == token)
    ).scalar_one_or_none()
    if existing:
        return existing
    push_token = PushToken(user_id=user_id, token=token, platform=platform)
    db.add(push_token)
    db.commit()
    db.refresh(push_token)
    return push_token


def push_tokens_for(db: Session, user_id: int) -> list[str]:
    result = db.execute(select(PushToken.token).where(PushToken.user_id == user_id).order_by(PushToken.id))
    return list(result.scalars().all())
