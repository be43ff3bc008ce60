"""Patient service for business logic."""

from datetime import date
from typing import Any

import structlog

from zenmedix.core.clock import Clock, utc_now
from zenmedix.core.exceptions import AppException
from zenmedix.core.record_store import RecordCollection, RecordStore, build_filter
from zenmedix.schemas.audit import AuditAction
from zenmedix.schemas.patients import PatientCreate, PatientUpdate
from zenmedix.services.audit_service import AuditService

logger = structlog.get_logger(__name__)

SEARCH_LIMIT = 50


def calculate_age(dob: Any, today: date) -> int | None:
    """
    Whole years between a birth date and ``today``.

    Args:
        dob: Birth date as a date or an ISO string (time part ignored)
        today: Reference date

    Returns:
        Age in years, or None when the birth date is missing or unreadable
    """
    if not dob:
        return None
    if not isinstance(dob, date):
        try:
            dob = date.fromisoformat(str(dob).replace("T", " ").split(" ")[0])
        except ValueError:
            return None

    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


class PatientService:
    """Service for patient records."""

    COLLECTION = "patients"

    def __init__(
        self,
        store: RecordStore,
        audit: AuditService | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize with a record store handle and optional audit."""
        self.store = store
        self.audit = audit
        self.clock = clock

    @property
    def records(self) -> RecordCollection:
        return self.store.collection(self.COLLECTION)

    def _with_age(self, record: dict[str, Any]) -> dict[str, Any]:
        return {**record, "age": calculate_age(record.get("dob"), self.clock().date())}

    async def _audit(self, action: AuditAction, patient_id: str, **details: Any) -> None:
        if self.audit:
            await self.audit.log(action, details, entity="patient", entity_id=patient_id)

    async def list_patients(self) -> list[dict[str, Any]]:
        """List every patient, newest first."""
        records = await self.records.get_full_list(sort="-created")
        return [self._with_age(r) for r in records]

    async def get(self, patient_id: str, audit_view: bool = True) -> dict[str, Any]:
        """
        Get a patient by id.

        Raises:
            NotFoundException: If the patient does not exist
        """
        record = await self.records.get_one(patient_id)
        if audit_view:
            await self._audit(
                AuditAction.PATIENT_VIEW,
                patient_id,
                patientName=_full_name(record),
            )
        return self._with_age(record)

    async def search(self, query: str) -> list[dict[str, Any]]:
        """Search by first name, last name, DNI or phone (at most 50 results)."""
        result = await self.records.get_list(
            page=1,
            per_page=SEARCH_LIMIT,
            filter=build_filter(
                "firstName ~ {:q} || lastName ~ {:q} || dni ~ {:q} || phone ~ {:q}",
                q=query,
            ),
            sort="-created",
        )
        return [self._with_age(r) for r in result.get("items", [])]

    async def create(self, data: PatientCreate) -> dict[str, Any]:
        """Register a patient."""
        record = await self.records.create(data.to_record())
        logger.info("patient_created", patient_id=record.get("id"))
        await self._audit(
            AuditAction.PATIENT_CREATE,
            record.get("id", ""),
            patientName=f"{data.first_name} {data.last_name}",
        )
        return self._with_age(record)

    async def update(self, patient_id: str, data: PatientUpdate) -> dict[str, Any]:
        """Update the provided fields of a patient."""
        changes = data.to_record(exclude_unset=True)
        record = await self.records.update(patient_id, changes)
        logger.info("patient_updated", patient_id=patient_id)
        await self._audit(
            AuditAction.PATIENT_UPDATE,
            patient_id,
            fields=sorted(changes),
        )
        return self._with_age(record)

    async def delete(self, patient_id: str) -> bool:
        """Delete a patient."""
        await self.records.delete(patient_id)
        logger.info("patient_deleted", patient_id=patient_id)
        await self._audit(AuditAction.PATIENT_DELETE, patient_id)
        return True

    async def touch_last_visit(self, patient_id: str) -> bool:
        """
        Set the patient's last visit to now.

        Best effort: failures are logged and reported as False.
        """
        try:
            await self.records.update(patient_id, {"lastVisit": self.clock().isoformat()})
        except AppException as e:
            logger.warning(
                "patient_last_visit_update_failed", patient_id=patient_id, error=e.message
            )
            return False
        return True


def _full_name(record: dict[str, Any]) -> str:
    return " ".join(p for p in (record.get("firstName"), record.get("lastName")) if p)
