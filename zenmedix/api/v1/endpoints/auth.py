"""Authentication endpoints: login, logout, session and lockout status."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from zenmedix.dependencies import (
    ClientKey,
    CurrentSession,
    get_auth_service,
    get_session_service,
)
from zenmedix.schemas.auth import LockoutStatus, LoginRequest, LoginResponse, SessionInfo
from zenmedix.services.auth_service import AuthService
from zenmedix.services.session_service import SessionService
from zenmedix.services.user_service import visible_menus

router = APIRouter()

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with email and password",
    responses={
        401: {"description": "Invalid credentials"},
        423: {"description": "Too many failed attempts"},
    },
)
async def login(data: LoginRequest, client: ClientKey, auth: AuthServiceDep) -> LoginResponse:
    """
    Authenticate against the record store.

    Three consecutive failures lock the caller out for five minutes.
    """
    return await auth.login(data.email, data.password, client)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End the current session",
)
async def logout(session: CurrentSession, auth: AuthServiceDep) -> None:
    """Log out and audit the session duration."""
    await auth.logout(session)


@router.get(
    "/session",
    response_model=SessionInfo,
    status_code=status.HTTP_200_OK,
    summary="Current session details",
)
async def get_session(session: CurrentSession, sessions: SessionServiceDep) -> SessionInfo:
    """Return the signed-in user and when the session will expire."""
    return sessions.info(session)


@router.get(
    "/menus",
    status_code=status.HTTP_200_OK,
    summary="Menu entries visible to the current user",
)
async def get_menus(session: CurrentSession) -> dict[str, list[str]]:
    """List the dashboard sections the user's role may open."""
    return {"menus": visible_menus(session.user.role)}


@router.get(
    "/lockout",
    response_model=LockoutStatus,
    status_code=status.HTTP_200_OK,
    summary="Login lockout status for this client",
)
async def get_lockout_status(client: ClientKey, auth: AuthServiceDep) -> LockoutStatus:
    """Report whether the caller is locked out and how many attempts remain."""
    return auth.lockout_status(client)
