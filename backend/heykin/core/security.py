"""Password hashing and bearer tokens."""

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from heykin.core.config import settings

TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user_id: int, extra: dict[str, Any] | None = None) -> str:
    """Signed token whose subject is the user id."""
    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = dict(extra or {})
    claims.update(
        sub=str(user_id),
        iss=settings.app_name,
        typ=TOKEN_TYPE,
        iat=now,
        exp=now + timedelta(minutes=settings.jwt_expire_minutes),
    )
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def token_user_id(token: str) -> int | None:
    """User id from a valid access token; None if expired, forged or malformed."""
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.app_name,
        )
    except JWTError:
        return None
    if claims.get("typ") != TOKEN_TYPE:
        return None
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
