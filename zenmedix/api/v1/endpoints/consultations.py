"""Consultation endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from zenmedix.dependencies import get_consultation_service, require_menu
from zenmedix.schemas.consultations import ConsultationCreate, ConsultationUpdate
from zenmedix.services.consultation_service import ConsultationService

router = APIRouter(dependencies=[Depends(require_menu("patients"))])

ConsultationServiceDep = Annotated[ConsultationService, Depends(get_consultation_service)]


@router.get(
    "/{consultation_id}",
    status_code=status.HTTP_200_OK,
    summary="Get consultation",
)
async def get_consultation(
    consultation_id: str, service: ConsultationServiceDep
) -> dict[str, Any]:
    """Get a consultation with patient, doctor and appointment expanded."""
    return await service.get(consultation_id)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Record consultation",
)
async def create_consultation(
    data: ConsultationCreate, service: ConsultationServiceDep
) -> dict[str, Any]:
    """Record a consultation and move the patient's last visit to now."""
    return await service.create(data)


@router.patch(
    "/{consultation_id}",
    status_code=status.HTTP_200_OK,
    summary="Update consultation",
)
async def update_consultation(
    consultation_id: str, data: ConsultationUpdate, service: ConsultationServiceDep
) -> dict[str, Any]:
    """Amend a consultation."""
    return await service.update(consultation_id, data)
