"""Signed session tokens handed to dashboard clients."""

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from zenmedix.config import settings
from zenmedix.core.clock import utc_now


def create_session_token(
    session_id: str,
    user_id: str,
    issued_at: datetime | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT identifying a server-side session.

    The token only carries identifiers; inactivity expiry is enforced against
    the stored session, not the token.

    Args:
        session_id: Server-side session identifier
        user_id: Record store user id
        issued_at: Issue time, defaults to now
        expires_delta: Optional absolute lifetime

    Returns:
        Encoded JWT token
    """
    issued_at = issued_at or utc_now()
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.session_max_age_hours)
    expire = issued_at + expires_delta

    payload = {
        "sub": user_id,
        "sid": session_id,
        "iat": issued_at,
        "exp": expire,
        "type": "session",
    }

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a session token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != "session" or not payload.get("sid"):
        return None

    return payload
