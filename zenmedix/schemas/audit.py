"""Audit log schemas."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from zenmedix.schemas.base import RecordSchema


class AuditAction(str, Enum):
    """Security-relevant events recorded in ``audit_logs``."""

    # Authentication
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGIN_FAILED = "LOGIN_FAILED"
    SESSION_EXPIRED = "SESSION_EXPIRED"

    # Patients
    PATIENT_CREATE = "PATIENT_CREATE"
    PATIENT_UPDATE = "PATIENT_UPDATE"
    PATIENT_DELETE = "PATIENT_DELETE"
    PATIENT_VIEW = "PATIENT_VIEW"

    # Consultations
    CONSULTATION_CREATE = "CONSULTATION_CREATE"
    CONSULTATION_UPDATE = "CONSULTATION_UPDATE"
    CONSULTATION_VIEW = "CONSULTATION_VIEW"

    # Prescriptions
    RECIPE_PRINT = "RECIPE_PRINT"
    RECIPE_UPDATE = "RECIPE_UPDATE"

    # Lab results
    LAB_RESULT_CREATE = "LAB_RESULT_CREATE"
    LAB_RESULT_DELETE = "LAB_RESULT_DELETE"
    STUDY_REQUEST_CREATE = "STUDY_REQUEST_CREATE"

    # Appointments
    APPOINTMENT_CREATE = "APPOINTMENT_CREATE"
    APPOINTMENT_DELETE = "APPOINTMENT_DELETE"

    # Settings
    SETTINGS_UPDATE = "SETTINGS_UPDATE"

    # Backup
    BACKUP_EXPORT = "BACKUP_EXPORT"
    BACKUP_IMPORT = "BACKUP_IMPORT"


class AuditLogCreate(RecordSchema):
    """Client-reported audit event (e.g. a prescription was printed)."""

    action: AuditAction
    entity: str | None = None
    entity_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class AuditLogFilters(BaseModel):
    """Filters for listing audit entries."""

    action: str | None = None
    entity: str | None = None
    user_id: str | None = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=50, ge=1, le=500)


class AuditStats(BaseModel):
    """Summary of the most recent audit entries."""

    total_entries: int
    today_entries: int
    action_counts: dict[str, int]
    oldest_entry: str | None = None
    newest_entry: str | None = None
