"""Consultation service."""

from typing import Any

import structlog

from zenmedix.core.record_store import RecordCollection, RecordStore, build_filter
from zenmedix.schemas.audit import AuditAction
from zenmedix.schemas.consultations import ConsultationCreate, ConsultationUpdate
from zenmedix.services.audit_service import AuditService
from zenmedix.services.patient_service import PatientService

logger = structlog.get_logger(__name__)


class ConsultationService:
    """Service for consultation records."""

    COLLECTION = "consultations"

    def __init__(
        self,
        store: RecordStore,
        patients: PatientService,
        audit: AuditService | None = None,
    ):
        """Initialize with a record store handle, the patient service and optional audit."""
        self.store = store
        self.patients = patients
        self.audit = audit

    @property
    def records(self) -> RecordCollection:
        return self.store.collection(self.COLLECTION)

    async def list_by_patient(self, patient_id: str) -> list[dict[str, Any]]:
        """List a patient's consultations, newest first."""
        return await self.records.get_full_list(
            filter=build_filter("patient = {:patient}", patient=patient_id),
            sort="-created",
            expand="doctor,appointment",
        )

    async def get(self, consultation_id: str) -> dict[str, Any]:
        """Get a consultation with its relations expanded."""
        record = await self.records.get_one(consultation_id, expand="patient,doctor,appointment")
        if self.audit:
            await self.audit.log(
                AuditAction.CONSULTATION_VIEW,
                {"patient": record.get("patient")},
                entity="consultation",
                entity_id=consultation_id,
            )
        return record

    async def create(self, data: ConsultationCreate) -> dict[str, Any]:
        """
        Record a consultation.

        ``patientId`` / ``appointmentId`` fill the relations when these are
        not given directly. The patient's last visit is then moved to now.
        """
        payload = data.to_record()
        patient_id = payload.pop("patientId", None)
        appointment_id = payload.pop("appointmentId", None)
        if patient_id and not payload.get("patient"):
            payload["patient"] = patient_id
        if appointment_id and not payload.get("appointment"):
            payload["appointment"] = appointment_id

        record = await self.records.create(payload)
        logger.info(
            "consultation_created",
            consultation_id=record.get("id"),
            patient_id=payload.get("patient"),
        )

        if payload.get("patient"):
            await self.patients.touch_last_visit(payload["patient"])

        if self.audit:
            await self.audit.log(
                AuditAction.CONSULTATION_CREATE,
                {"patient": payload.get("patient"), "type": payload.get("type")},
                entity="consultation",
                entity_id=record.get("id"),
            )
        return record

    async def update(self, consultation_id: str, data: ConsultationUpdate) -> dict[str, Any]:
        """Amend a consultation."""
        changes = data.to_record(exclude_unset=True)
        record = await self.records.update(consultation_id, changes)
        logger.info("consultation_updated", consultation_id=consultation_id)

        if self.audit:
            await self.audit.log(
                AuditAction.CONSULTATION_UPDATE,
                {"fields": sorted(changes)},
                entity="consultation",
                entity_id=consultation_id,
            )
        return record
