"""Password hashing, JWT issue/verify and the current-user dependency.

Missing bearer token → 401; expired or tampered token → 403.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import get_settings
from errors.exceptions import AuthError
from models.user import User
from services.user_store import get_user_store

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_token(user: User, expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    expires_at = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    payload = {"id": user.id, "name": user.name, "exp": expires_at}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> str:
    """Return the user id carried by *token*.

    Raises:
        AuthError: (403) when the token is expired, malformed or unsigned.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthError("Session expired", status_code=403) from None
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token", status_code=403) from None

    user_id = payload.get("id")
    if not user_id:
        raise AuthError("Invalid token", status_code=403)
    return user_id


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    """FastAPI dependency resolving the bearer token to a stored user."""
    if credentials is None or not credentials.credentials:
        raise AuthError("Access denied", status_code=401)
    user_id = decode_token(credentials.credentials)
    user = await get_user_store().get_by_id(user_id)
    if user is None:
        logger.warning("Token for unknown user %s", user_id)
        raise AuthError("User not found", status_code=401)
    return user
