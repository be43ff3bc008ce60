"""Dashboard statistics schemas."""

from pydantic import BaseModel, Field


class StatusCounts(BaseModel):
    """Appointments per derived status."""

    scheduled: int = 0
    attended: int = 0
    cancelled: int = 0
    no_show: int = 0


class ClinicTrend(BaseModel):
    """Appointments per day for one clinic."""

    name: str
    data: list[int]


class WeeklyTrend(BaseModel):
    """Appointment counts for the next seven days, per clinic."""

    days: list[str]
    clinics: list[ClinicTrend]


class DashboardStats(BaseModel):
    """Aggregates shown on the dashboard landing page."""

    today: int = 0
    week: int = 0
    month: int = 0
    by_status: StatusCounts = Field(default_factory=StatusCounts)
    by_hour: dict[str, int] = Field(default_factory=dict)
    by_clinic: dict[str, int] = Field(default_factory=dict)
    by_doctor: dict[str, int] = Field(default_factory=dict)
    by_reason: dict[str, int] = Field(default_factory=dict)
    today_appointments: list[dict] = Field(default_factory=list)
    weekly_trend: WeeklyTrend | None = None
