"""Appointment schemas for request/response validation."""

import datetime
from enum import Enum

from pydantic import BaseModel, Field

from zenmedix.schemas.base import RecordSchema

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentStatus(str, Enum):
    """Status values written to the ``appointments`` collection."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    ATTENDED = "attended"
    CANCELLED = "cancelled"


class DisplayStatus(str, Enum):
    """Status derived at read time from the clock and completion flags."""

    SCHEDULED = "scheduled"
    ATTENDED = "attended"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentSource(str, Enum):
    """Where an appointment was booked."""

    MANUAL = "manual"
    WHATSAPP = "whatsapp"


class AppointmentCreate(RecordSchema):
    """Schema for booking an appointment."""

    patient_name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    date: datetime.date
    time: str = Field(..., pattern=TIME_PATTERN)
    reason: str = Field(default="Consulta General", max_length=200)
    notes: str | None = Field(None, max_length=1000)
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    source: AppointmentSource = AppointmentSource.MANUAL
    patient_id: str | None = None
    doctor_id: str | None = None
    clinic_id: str | None = None


class AppointmentUpdate(RecordSchema):
    """Schema for editing an appointment."""

    patient_name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    date: datetime.date | None = None
    time: str | None = Field(None, pattern=TIME_PATTERN)
    reason: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=1000)
    status: AppointmentStatus | None = None
    consultation_completed: bool | None = None
    patient: str | None = None
    doctor: str | None = None
    clinic: str | None = None


class AvailabilityResponse(BaseModel):
    """Result of an availability check."""

    available: bool
    reason: str | None = None
