"""Patient endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from zenmedix.dependencies import get_consultation_service, get_patient_service, require_menu
from zenmedix.schemas.patients import PatientCreate, PatientUpdate
from zenmedix.services.consultation_service import ConsultationService
from zenmedix.services.patient_service import PatientService

router = APIRouter(dependencies=[Depends(require_menu("patients"))])

PatientServiceDep = Annotated[PatientService, Depends(get_patient_service)]


@router.get(
    "/",
    status_code=status.HTTP_200_OK,
    summary="List or search patients",
)
async def list_patients(
    service: PatientServiceDep,
    q: str | None = Query(None, min_length=1, description="Name, DNI or phone"),
) -> list[dict[str, Any]]:
    """List patients newest first, or search them when ``q`` is given."""
    if q:
        return await service.search(q)
    return await service.list_patients()


@router.get(
    "/{patient_id}",
    status_code=status.HTTP_200_OK,
    summary="Get patient",
)
async def get_patient(patient_id: str, service: PatientServiceDep) -> dict[str, Any]:
    """Get a patient; the access is audited."""
    return await service.get(patient_id)


@router.get(
    "/{patient_id}/consultations",
    status_code=status.HTTP_200_OK,
    summary="List a patient's consultations",
)
async def list_patient_consultations(
    patient_id: str,
    service: Annotated[ConsultationService, Depends(get_consultation_service)],
) -> list[dict[str, Any]]:
    """Consultation history, newest first."""
    return await service.list_by_patient(patient_id)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Register patient",
)
async def create_patient(data: PatientCreate, service: PatientServiceDep) -> dict[str, Any]:
    """Register a patient."""
    return await service.create(data)


@router.patch(
    "/{patient_id}",
    status_code=status.HTTP_200_OK,
    summary="Update patient",
)
async def update_patient(
    patient_id: str, data: PatientUpdate, service: PatientServiceDep
) -> dict[str, Any]:
    """Update a patient."""
    return await service.update(patient_id, data)


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete patient",
)
async def delete_patient(patient_id: str, service: PatientServiceDep) -> None:
    """Delete a patient."""
    await service.delete(patient_id)
