"""Dashboard statistics computed from the appointment list."""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any

from zenmedix.schemas.dashboard import ClinicTrend, DashboardStats, StatusCounts, WeeklyTrend
from zenmedix.services.appointment_service import (
    AppointmentService,
    derive_status,
    is_pending_whatsapp,
    normalize_date,
    weekday_index,
)

NO_CLINIC = "Sin clínica"
NO_DOCTOR = "Sin asignar"
DEFAULT_REASON = "Consulta General"
DEFAULT_HOUR = "09"

TREND_DAYS = 7
TREND_MAX_CLINICS = 5


def _relation_name(appointment: dict[str, Any], relation: str, fallback: str) -> str:
    """Name of an expanded relation, else its raw value, else the ``<relation>Name`` field."""
    value = appointment.get(relation)
    if isinstance(value, dict):
        return value.get("name") or fallback
    if isinstance(value, str) and value:
        return value
    return appointment.get(f"{relation}Name") or fallback


def clinic_name(appointment: dict[str, Any]) -> str:
    """Clinic label used for grouping."""
    return _relation_name(appointment, "clinic", NO_CLINIC)


def doctor_name(appointment: dict[str, Any]) -> str:
    """Doctor label used for grouping."""
    return _relation_name(appointment, "doctor", NO_DOCTOR)


def reason_label(appointment: dict[str, Any]) -> str:
    """Service or reason label used for grouping."""
    return appointment.get("service") or appointment.get("reason") or DEFAULT_REASON


def appointment_day(appointment: dict[str, Any]) -> date | None:
    """Calendar day of an appointment."""
    day = normalize_date(appointment.get("date"))
    if not day:
        return None
    try:
        return date.fromisoformat(day)
    except ValueError:
        return None


def compute_stats(appointments: list[dict[str, Any]], now: datetime) -> DashboardStats:
    """
    Aggregate appointments for the dashboard.

    Pending WhatsApp bookings appear in today's list and in the hourly
    occupation, but are left out of every other figure.

    Args:
        appointments: Appointments with relations expanded
        now: Current wall-clock time in the clinic's timezone (naive)

    Returns:
        Dashboard statistics
    """
    today = now.date()
    week_start = today - timedelta(days=weekday_index(today))
    month_start = today.replace(day=1)

    stats = DashboardStats()
    status_counts: Counter[str] = Counter()
    by_hour: Counter[str] = Counter()
    by_clinic: Counter[str] = Counter()
    by_doctor: Counter[str] = Counter()
    by_reason: Counter[str] = Counter()
    today_appointments: list[dict[str, Any]] = []

    for apt in appointments:
        day = appointment_day(apt)
        pending = is_pending_whatsapp(apt)

        if day == today:
            today_appointments.append(apt)
            hour = (apt.get("time") or "").split(":")[0] or DEFAULT_HOUR
            by_hour[hour] += 1
            if not pending:
                stats.today += 1

        if pending:
            continue

        if day is not None:
            if day >= week_start:
                stats.week += 1
            if day >= month_start:
                stats.month += 1

        status_counts[derive_status(apt, now).value] += 1
        by_clinic[clinic_name(apt)] += 1
        by_doctor[doctor_name(apt)] += 1
        by_reason[reason_label(apt)] += 1

    stats.by_status = StatusCounts(**status_counts)
    stats.by_hour = dict(by_hour)
    stats.by_clinic = dict(by_clinic)
    stats.by_doctor = dict(by_doctor)
    stats.by_reason = dict(by_reason)
    stats.today_appointments = sorted(today_appointments, key=lambda a: a.get("time") or "")
    return stats


def weekly_trend(appointments: list[dict[str, Any]], today: date) -> WeeklyTrend:
    """
    Appointments per clinic for the seven days starting today.

    At most five clinics are reported, in order of first appearance.
    """
    days = [today + timedelta(days=i) for i in range(TREND_DAYS)]

    names: list[str] = []
    for apt in appointments:
        name = clinic_name(apt)
        if name not in names:
            names.append(name)
    names = names[:TREND_MAX_CLINICS]

    counts: Counter[tuple[str, date]] = Counter()
    for apt in appointments:
        if is_pending_whatsapp(apt):
            continue
        day = appointment_day(apt)
        if day is not None:
            counts[(clinic_name(apt), day)] += 1

    return WeeklyTrend(
        days=[d.isoformat() for d in days],
        clinics=[ClinicTrend(name=n, data=[counts[(n, d)] for d in days]) for n in names],
    )


class DashboardService:
    """Builds dashboard statistics from the current appointment list."""

    def __init__(self, appointments: AppointmentService):
        """Initialize with the appointment service."""
        self.appointments = appointments

    async def get_stats(self) -> DashboardStats:
        """Compute statistics for the dashboard landing page."""
        now = self.appointments.local_now()
        appointments = await self.appointments.list_all()

        stats = compute_stats(appointments, now)
        stats.weekly_trend = weekly_trend(appointments, now.date())
        return stats
