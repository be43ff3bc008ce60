"""FastAPI dependencies."""

from collections.abc import Callable
from typing import Annotated

import redis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from zenmedix.config import settings
from zenmedix.core.clock import Clock, utc_now
from zenmedix.core.exceptions import ForbiddenException, UnauthorizedException
from zenmedix.core.record_store import RecordStore, get_record_store
from zenmedix.core.redis_client import LocalStorage, get_redis_client
from zenmedix.core.security import decode_session_token
from zenmedix.schemas.auth import Session
from zenmedix.services.appointment_service import AppointmentService
from zenmedix.services.audit_service import AuditService
from zenmedix.services.auth_service import AuthService, LoginThrottle
from zenmedix.services.backup_service import BackupService
from zenmedix.services.clinic_service import ClinicService
from zenmedix.services.config_service import ConfigService
from zenmedix.services.consultation_service import ConsultationService
from zenmedix.services.dashboard_service import DashboardService
from zenmedix.services.patient_service import PatientService
from zenmedix.services.reminder_service import ReminderService
from zenmedix.services.session_service import SessionService
from zenmedix.services.user_service import UserService, can_access

# Security
security = HTTPBearer(auto_error=False)


def get_clock() -> Clock:
    """Time source for lockout and session expiry."""
    return utc_now


def get_storage(
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> LocalStorage:
    """Namespaced local storage."""
    return LocalStorage(redis_client)


def get_store() -> RecordStore:
    """Anonymous record store handle."""
    return get_record_store()


def get_client_key(request: Request) -> str:
    """Key identifying the caller for login throttling."""
    return request.client.host if request.client else "unknown"


def get_session_service(
    storage: Annotated[LocalStorage, Depends(get_storage)],
    store: Annotated[RecordStore, Depends(get_store)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> SessionService:
    """Session service bound to the request's storage and clock."""
    return SessionService(storage, store, clock=clock)


def get_auth_service(
    storage: Annotated[LocalStorage, Depends(get_storage)],
    store: Annotated[RecordStore, Depends(get_store)],
    clock: Annotated[Clock, Depends(get_clock)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> AuthService:
    """Authentication service with login throttling."""
    return AuthService(store, sessions, LoginThrottle(storage, clock=clock), clock=clock)


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> Session:
    """
    Resolve the caller's session and register the request as activity.

    Raises:
        UnauthorizedException: If the token is missing or invalid
        SessionExpiredException: If the session was idle too long
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    payload = decode_session_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Could not validate credentials")

    return await sessions.touch(payload["sid"])


def get_user_store(
    session: Annotated[Session, Depends(get_current_session)],
    store: Annotated[RecordStore, Depends(get_store)],
) -> RecordStore:
    """Record store handle acting as the signed-in user."""
    return store.with_token(session.record_store_token)


def get_service_store(store: Annotated[RecordStore, Depends(get_store)]) -> RecordStore:
    """Record store handle for work done without a user session."""
    return store.with_token(settings.record_store_service_token)


def get_audit(
    request: Request,
    session: Annotated[Session, Depends(get_current_session)],
    store: Annotated[RecordStore, Depends(get_user_store)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AuditService:
    """Audit service attributing entries to the signed-in user."""
    return AuditService(store, user=session.user, ip_address=get_client_key(request), clock=clock)


def require_menu(menu: str) -> Callable[[Session], Session]:
    """
    Build a dependency restricting a route to roles that can see ``menu``.

    Args:
        menu: Menu entry name, e.g. ``"patients"``

    Returns:
        Dependency returning the session when access is allowed
    """

    def dependency(session: Annotated[Session, Depends(get_current_session)]) -> Session:
        if not can_access(session.user.role, menu):
            raise ForbiddenException("No tienes permiso para acceder a esta sección")
        return session

    return dependency


def get_appointment_service(
    store: Annotated[RecordStore, Depends(get_user_store)],
    audit: Annotated[AuditService, Depends(get_audit)],
    storage: Annotated[LocalStorage, Depends(get_storage)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AppointmentService:
    """Appointment service for the signed-in user."""
    return AppointmentService(store, audit=audit, cache=storage, clock=clock)


def get_patient_service(
    store: Annotated[RecordStore, Depends(get_user_store)],
    audit: Annotated[AuditService, Depends(get_audit)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> PatientService:
    """Patient service for the signed-in user."""
    return PatientService(store, audit=audit, clock=clock)


def get_consultation_service(
    store: Annotated[RecordStore, Depends(get_user_store)],
    audit: Annotated[AuditService, Depends(get_audit)],
    patients: Annotated[PatientService, Depends(get_patient_service)],
) -> ConsultationService:
    """Consultation service for the signed-in user."""
    return ConsultationService(store, patients, audit=audit)


def get_clinic_service(
    store: Annotated[RecordStore, Depends(get_user_store)],
    audit: Annotated[AuditService, Depends(get_audit)],
) -> ClinicService:
    """Clinic service for the signed-in user."""
    return ClinicService(store, audit=audit)


def get_config_service(
    store: Annotated[RecordStore, Depends(get_user_store)],
    audit: Annotated[AuditService, Depends(get_audit)],
) -> ConfigService:
    """Config service for the signed-in user."""
    return ConfigService(store, audit=audit)


def get_user_service(
    store: Annotated[RecordStore, Depends(get_user_store)],
    audit: Annotated[AuditService, Depends(get_audit)],
) -> UserService:
    """User service for the signed-in user."""
    return UserService(store, audit=audit)


def get_dashboard_service(
    appointments: Annotated[AppointmentService, Depends(get_appointment_service)],
) -> DashboardService:
    """Dashboard statistics service."""
    return DashboardService(appointments)


def get_backup_service(
    storage: Annotated[LocalStorage, Depends(get_storage)],
    audit: Annotated[AuditService, Depends(get_audit)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> BackupService:
    """Local storage backup service."""
    return BackupService(storage, audit=audit, clock=clock)


def get_reminder_service(
    store: Annotated[RecordStore, Depends(get_service_store)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ReminderService:
    """Reminder service acting with the service token."""
    return ReminderService(store, clock=clock)


# Type aliases for dependency injection
Storage = Annotated[LocalStorage, Depends(get_storage)]
ClientKey = Annotated[str, Depends(get_client_key)]
CurrentSession = Annotated[Session, Depends(get_current_session)]
Audit = Annotated[AuditService, Depends(get_audit)]
