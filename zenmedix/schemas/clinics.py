"""Clinic schemas for request/response validation."""

from pydantic import BaseModel, Field

from zenmedix.schemas.appointments import TIME_PATTERN
from zenmedix.schemas.base import RecordSchema


class DaySchedule(BaseModel):
    """Opening hours for one weekday."""

    open: bool = True
    start: str = Field(default="09:00", pattern=TIME_PATTERN)
    end: str = Field(default="18:00", pattern=TIME_PATTERN)


# Weekday index as a string, "0" = Sunday ... "6" = Saturday
WeeklySchedule = dict[str, DaySchedule | None]


class ClinicCreate(RecordSchema):
    """Schema for creating a clinic."""

    name: str = Field(..., min_length=1, max_length=255)
    subtitle: str | None = None
    phone: str | None = Field(None, max_length=30)
    address: str | None = None
    logo: str | None = None
    schedule: WeeklySchedule | None = Field(
        None, description="Opening hours by weekday: {'1': {open, start, end}, ...}"
    )


class ClinicUpdate(RecordSchema):
    """Schema for updating a clinic."""

    name: str | None = Field(None, min_length=1, max_length=255)
    subtitle: str | None = None
    phone: str | None = Field(None, max_length=30)
    address: str | None = None
    logo: str | None = None
    schedule: WeeklySchedule | None = None
