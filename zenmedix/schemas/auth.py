"""Authentication and session schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from zenmedix.schemas.users import UserProfile


class LoginRequest(BaseModel):
    """Credentials checked against the record store ``users`` collection."""

    email: str = Field(..., min_length=1, description="Email or username")
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Session token and profile returned after a successful login."""

    access_token: str
    token_type: str = "bearer"
    expires_in_minutes: int = Field(..., description="Inactivity window before the session ends")
    user: UserProfile


class Session(BaseModel):
    """Server-side session record kept in local storage."""

    session_id: str
    user: UserProfile
    record_store_token: str
    created_at: datetime
    last_activity: datetime


class SessionInfo(BaseModel):
    """Session details for the signed-in user."""

    user: UserProfile
    created_at: datetime
    last_activity: datetime
    expires_at: datetime
    last_access: str | None = None


class LockoutStatus(BaseModel):
    """Login throttling state for a client."""

    locked: bool
    remaining_minutes: int = 0
    attempts_remaining: int
