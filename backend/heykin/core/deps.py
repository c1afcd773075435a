"""FastAPI dependencies for authentication."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from heykin.core.security import token_user_id
from heykin.db.session import get_db
from heykin.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    user_id = token_user_id(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


def require_checker(current_user: User = Depends(get_current_user)) -> User:
    """Only users who check in themselves."""
    if not current_user.is_checker:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Checker role required")
    return current_user
