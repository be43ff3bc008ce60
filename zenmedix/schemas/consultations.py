"""Consultation schemas."""

from pydantic import Field

from zenmedix.schemas.base import RecordSchema


class ConsultationCreate(RecordSchema):
    """
    Schema for recording a consultation.

    ``patientId`` / ``appointmentId`` are accepted as aliases of the relation
    fields; clinical fields beyond these are passed through untouched.
    """

    patient: str | None = None
    patient_id: str | None = None
    appointment: str | None = None
    appointment_id: str | None = None
    doctor: str | None = None
    type: str = "consultation"
    reason: str | None = None
    diagnosis: str | None = None
    notes: str | None = None


class ConsultationUpdate(RecordSchema):
    """Schema for amending a consultation."""

    type: str | None = None
    reason: str | None = None
    diagnosis: str | None = None
    notes: str | None = None
