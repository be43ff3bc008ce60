"""Clinic service for business logic."""

from typing import Any

import structlog

from zenmedix.core.record_store import RecordCollection, RecordStore
from zenmedix.schemas.audit import AuditAction
from zenmedix.schemas.clinics import ClinicCreate, ClinicUpdate, DaySchedule
from zenmedix.services.audit_service import AuditService

logger = structlog.get_logger(__name__)


def normalize_schedule(schedule: Any) -> dict[str, DaySchedule | None]:
    """
    Read a stored clinic schedule into a weekday-keyed mapping.

    Schedules may be stored as a dict keyed by int or str weekday, or as a
    seven-item list starting on Sunday.
    """
    if isinstance(schedule, list):
        items = enumerate(schedule)
    elif isinstance(schedule, dict):
        items = schedule.items()
    else:
        return {}

    normalized: dict[str, DaySchedule | None] = {}
    for day, hours in items:
        normalized[str(day)] = DaySchedule.model_validate(hours) if hours else None
    return normalized


class ClinicService:
    """Service for clinic operations."""

    COLLECTION = "clinics"

    def __init__(self, store: RecordStore, audit: AuditService | None = None):
        """Initialize with a record store handle and optional audit."""
        self.store = store
        self.audit = audit

    @property
    def records(self) -> RecordCollection:
        return self.store.collection(self.COLLECTION)

    async def list_clinics(self) -> list[dict[str, Any]]:
        """List clinics sorted by name."""
        return await self.records.get_full_list(sort="name")

    async def get(self, clinic_id: str) -> dict[str, Any]:
        """Get a clinic by id."""
        return await self.records.get_one(clinic_id)

    async def create(self, data: ClinicCreate) -> dict[str, Any]:
        """Create a clinic."""
        record = await self.records.create(data.to_record())
        logger.info("clinic_created", clinic_id=record.get("id"), name=data.name)
        await self._audit_settings({"clinic": record.get("id"), "change": "create"})
        return record

    async def update(self, clinic_id: str, data: ClinicUpdate) -> dict[str, Any]:
        """Update the provided fields of a clinic."""
        changes = data.to_record(exclude_unset=True)
        record = await self.records.update(clinic_id, changes)
        logger.info("clinic_updated", clinic_id=clinic_id)
        await self._audit_settings({"clinic": clinic_id, "fields": sorted(changes)})
        return record

    async def delete(self, clinic_id: str) -> bool:
        """Delete a clinic."""
        await self.records.delete(clinic_id)
        logger.info("clinic_deleted", clinic_id=clinic_id)
        await self._audit_settings({"clinic": clinic_id, "change": "delete"})
        return True

    async def get_schedule(self, clinic_id: str) -> dict[str, DaySchedule | None]:
        """Read a clinic's weekly opening hours."""
        clinic = await self.get(clinic_id)
        return normalize_schedule(clinic.get("schedule"))

    async def update_schedule(
        self, clinic_id: str, schedule: dict[str, DaySchedule | None]
    ) -> dict[str, DaySchedule | None]:
        """Replace a clinic's weekly opening hours."""
        payload = {
            day: hours.model_dump() if hours else None for day, hours in schedule.items()
        }
        record = await self.records.update(clinic_id, {"schedule": payload})
        logger.info("clinic_schedule_updated", clinic_id=clinic_id)
        await self._audit_settings({"clinic": clinic_id, "fields": ["schedule"]})
        return normalize_schedule(record.get("schedule"))

    async def _audit_settings(self, details: dict[str, Any]) -> None:
        if self.audit:
            await self.audit.log(
                AuditAction.SETTINGS_UPDATE,
                details,
                entity="clinic",
                entity_id=details.get("clinic"),
            )
