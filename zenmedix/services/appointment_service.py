"""Appointment service: collection façade, derived status and availability."""

from datetime import date, datetime
from typing import Any

import structlog

from zenmedix.config import settings
from zenmedix.core.clock import Clock, to_local, utc_now
from zenmedix.core.exceptions import AppException
from zenmedix.core.record_store import RecordCollection, RecordStore, build_filter, join_filters
from zenmedix.core.redis_client import LocalStorage, StorageKeys
from zenmedix.schemas.appointments import (
    AppointmentCreate,
    AppointmentSource,
    AppointmentStatus,
    AppointmentUpdate,
    AvailabilityResponse,
    DisplayStatus,
)
from zenmedix.schemas.audit import AuditAction
from zenmedix.services.audit_service import AuditService

logger = structlog.get_logger(__name__)

RELATIONS = "patient,doctor,clinic"

# Used when an appointment has no time: it only becomes a no-show at day end
END_OF_DAY = "23:59"

REASON_OCCUPIED = "Horario ocupado"
REASON_CLOSED = "Clínica cerrada este día"
REASON_OUT_OF_HOURS = "Fuera de horario de atención"
REASON_ERROR = "Error al verificar disponibilidad"


def normalize_date(value: Any) -> str | None:
    """
    Return the ``YYYY-MM-DD`` part of a stored date.

    Stored dates may carry a time part separated by ``T`` or a space.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).replace("T", " ").split(" ")[0]


def appointment_datetime(appointment: dict[str, Any]) -> datetime | None:
    """Combine an appointment's date and time into a naive wall-clock datetime."""
    day = normalize_date(appointment.get("date"))
    if not day:
        return None
    time = appointment.get("time") or END_OF_DAY
    try:
        return datetime.fromisoformat(f"{day} {time}")
    except ValueError:
        return None


def derive_status(appointment: dict[str, Any], now: datetime) -> DisplayStatus:
    """
    Compute the status shown for an appointment.

    Args:
        appointment: Appointment record
        now: Current wall-clock time in the clinic's timezone (naive)

    Returns:
        Derived display status
    """
    stored = appointment.get("status")
    if stored == AppointmentStatus.CANCELLED.value:
        return DisplayStatus.CANCELLED

    if appointment.get("consultationCompleted") or stored in (
        AppointmentStatus.COMPLETED.value,
        AppointmentStatus.ATTENDED.value,
    ):
        return DisplayStatus.ATTENDED

    when = appointment_datetime(appointment)
    if when is not None and when < now:
        return DisplayStatus.NO_SHOW

    return DisplayStatus.SCHEDULED


def is_pending_whatsapp(appointment: dict[str, Any]) -> bool:
    """Bot-booked appointment not yet linked to a patient record."""
    return (
        appointment.get("source") == AppointmentSource.WHATSAPP.value
        and not appointment.get("consultationCompleted")
        and not appointment.get("patient")
    )


def expand_relations(record: dict[str, Any]) -> dict[str, Any]:
    """Replace relation ids with their expanded records where available."""
    expanded = record.get("expand") or {}
    flat = dict(record)
    for relation in RELATIONS.split(","):
        if relation in expanded:
            flat[relation] = expanded[relation]
    return flat


def day_range(day: str) -> tuple[str, str]:
    """Inclusive bounds of one day in the record store's datetime format."""
    return f"{day} 00:00:00", f"{day} 23:59:59"


def weekday_index(day: date) -> int:
    """Weekday with Sunday as 0, matching clinic schedules."""
    return (day.weekday() + 1) % 7


def schedule_for_day(schedule: Any, weekday: int) -> dict[str, Any] | None:
    """Look up a weekday in a clinic schedule keyed by int, str or list position."""
    found = None
    if isinstance(schedule, list):
        found = schedule[weekday] if weekday < len(schedule) else None
    elif isinstance(schedule, dict):
        found = schedule.get(str(weekday))
        if found is None:
            found = schedule.get(weekday)
    # Malformed entries count as closed
    return found if isinstance(found, dict) else None


class AppointmentService:
    """Service for managing appointments."""

    COLLECTION = "appointments"

    def __init__(
        self,
        store: RecordStore,
        audit: AuditService | None = None,
        cache: LocalStorage | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize with a record store handle and optional audit and cache."""
        self.store = store
        self.audit = audit
        self.cache = cache
        self.clock = clock

    @property
    def records(self) -> RecordCollection:
        return self.store.collection(self.COLLECTION)

    def local_now(self) -> datetime:
        """Current wall-clock time in the clinic timezone."""
        return to_local(self.clock(), settings.default_timezone)

    def _invalidate(self) -> None:
        if self.cache:
            self.cache.delete(StorageKeys.APPOINTMENTS)

    async def list_all(self, use_cache: bool = True) -> list[dict[str, Any]]:
        """
        List every appointment, newest first, with relations expanded.

        Results are cached in local storage for a short time.
        """
        if self.cache and use_cache:
            cached = self.cache.get_json(StorageKeys.APPOINTMENTS)
            if cached is not None:
                return cached

        records = await self.records.get_full_list(sort="-created", expand=RELATIONS)
        appointments = [expand_relations(r) for r in records]

        if self.cache:
            self.cache.set_json(
                StorageKeys.APPOINTMENTS, appointments, ttl=settings.appointment_cache_ttl
            )
        return appointments

    async def list_with_status(self) -> list[dict[str, Any]]:
        """List appointments annotated with their derived status."""
        now = self.local_now()
        appointments = await self.list_all()
        return [
            {**apt, "displayStatus": derive_status(apt, now).value} for apt in appointments
        ]

    async def list_by_date(self, day: date) -> list[dict[str, Any]]:
        """List the appointments of one day, ordered by time."""
        start, end = day_range(day.isoformat())
        records = await self.records.get_full_list(
            filter=build_filter("date >= {:start} && date <= {:end}", start=start, end=end),
            sort="time",
            expand=RELATIONS,
        )
        return [expand_relations(r) for r in records]

    async def get(self, appointment_id: str) -> dict[str, Any]:
        """Fetch one appointment with relations expanded."""
        record = await self.records.get_one(appointment_id, expand=RELATIONS)
        return expand_relations(record)

    async def create(self, data: AppointmentCreate) -> dict[str, Any]:
        """
        Book an appointment.

        Relation ids are optional; absent ones are simply not sent.
        """
        payload = data.to_record()
        for field, relation in (
            ("patientId", "patient"),
            ("doctorId", "doctor"),
            ("clinicId", "clinic"),
        ):
            relation_id = payload.pop(field, None)
            if relation_id:
                payload[relation] = relation_id

        record = await self.records.create(payload)
        self._invalidate()
        logger.info("appointment_created", appointment_id=record.get("id"), source=data.source)

        if self.audit:
            await self.audit.log(
                AuditAction.APPOINTMENT_CREATE,
                {
                    "patientName": data.patient_name,
                    "date": data.date.isoformat(),
                    "time": data.time,
                },
                entity="appointment",
                entity_id=record.get("id"),
            )
        return record

    async def update(self, appointment_id: str, data: AppointmentUpdate) -> dict[str, Any]:
        """Patch an appointment with the fields that were provided."""
        record = await self.records.update(appointment_id, data.to_record(exclude_unset=True))
        self._invalidate()
        logger.info("appointment_updated", appointment_id=appointment_id)
        return record

    async def delete(self, appointment_id: str) -> bool:
        """Delete an appointment."""
        await self.records.delete(appointment_id)
        self._invalidate()
        logger.info("appointment_deleted", appointment_id=appointment_id)

        if self.audit:
            await self.audit.log(
                AuditAction.APPOINTMENT_DELETE,
                {"appointmentId": appointment_id},
                entity="appointment",
                entity_id=appointment_id,
            )
        return True

    async def check_availability(
        self,
        clinic_id: str | None,
        doctor_id: str | None,
        day: date,
        time: str,
    ) -> AvailabilityResponse:
        """
        Check whether a slot can be booked.

        A slot is unavailable when a non-cancelled appointment already holds
        the same date and time (for the same doctor and clinic when given), or
        when the clinic's schedule has it closed.

        Args:
            clinic_id: Clinic to check, optional
            doctor_id: Doctor to check, optional
            day: Appointment date
            time: Appointment time as HH:MM

        Returns:
            Availability with a reason when unavailable
        """
        start, end = day_range(day.isoformat())
        filter_expr = join_filters(
            build_filter(
                "date >= {:start} && date <= {:end} && time = {:time} && status != {:cancelled}",
                start=start,
                end=end,
                time=time,
                cancelled=AppointmentStatus.CANCELLED.value,
            ),
            build_filter("doctor = {:doctor}", doctor=doctor_id) if doctor_id else None,
            build_filter("clinic = {:clinic}", clinic=clinic_id) if clinic_id else None,
        )

        try:
            existing = await self.records.get_list(page=1, per_page=1, filter=filter_expr)
        except AppException as e:
            logger.error("availability_check_failed", error=e.message)
            return AvailabilityResponse(available=False, reason=REASON_ERROR)

        if existing.get("totalItems", 0) > 0:
            return AvailabilityResponse(available=False, reason=REASON_OCCUPIED)

        if clinic_id:
            reason = await self._schedule_conflict(clinic_id, day, time)
            if reason:
                return AvailabilityResponse(available=False, reason=reason)

        return AvailabilityResponse(available=True)

    async def _schedule_conflict(self, clinic_id: str, day: date, time: str) -> str | None:
        try:
            clinic = await self.store.collection("clinics").get_one(clinic_id)
        except AppException as e:
            logger.warning("clinic_schedule_unavailable", clinic_id=clinic_id, error=e.message)
            return None

        schedule = clinic.get("schedule")
        if not schedule:
            return None

        day_schedule = schedule_for_day(schedule, weekday_index(day))
        if not day_schedule or not day_schedule.get("open"):
            return REASON_CLOSED

        # A missing bound leaves that side of the day open
        start, end = day_schedule.get("start"), day_schedule.get("end")
        if (start and time < start) or (end and time > end):
            return REASON_OUT_OF_HOURS

        return None
