from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config
from backend.models.user import User

REQUIRED_CLAIMS = ["sub", "role", "exp"]


def create_access_token(subject: str | int, role: str, expires_minutes: int | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES)
    claims = {
        "sub": str(subject),
        "role": role,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def token_for_user(user: User, expires_minutes: int | None = None) -> str:
    return create_access_token(user.id, user.role, expires_minutes)


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry; tokens missing a required claim are rejected."""
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )
