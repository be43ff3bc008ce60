"""Patient schemas."""

from datetime import date

from pydantic import Field

from zenmedix.schemas.base import RecordSchema


class PatientBase(RecordSchema):
    """Demographic fields shared by create and response models."""

    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    dni: str | None = Field(None, max_length=40)
    phone: str | None = Field(None, max_length=30)
    email: str | None = None
    dob: date | None = None
    gender: str | None = None
    address: str | None = None
    blood_type: str | None = None
    allergies: str | None = None
    notes: str | None = None


class PatientCreate(PatientBase):
    """Schema for registering a patient."""


class PatientUpdate(RecordSchema):
    """Schema for updating a patient; every field optional."""

    first_name: str | None = Field(None, min_length=1, max_length=120)
    last_name: str | None = Field(None, min_length=1, max_length=120)
    dni: str | None = Field(None, max_length=40)
    phone: str | None = Field(None, max_length=30)
    email: str | None = None
    dob: date | None = None
    gender: str | None = None
    address: str | None = None
    blood_type: str | None = None
    allergies: str | None = None
    notes: str | None = None


class PatientResponse(RecordSchema):
    """Patient record as returned to the dashboard."""

    id: str
    first_name: str | None = None
    last_name: str | None = None
    dob: str | None = None
    last_visit: str | None = None
    created: str | None = None
    age: int | None = None
