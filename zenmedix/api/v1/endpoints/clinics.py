"""Clinic endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from zenmedix.dependencies import get_clinic_service, require_menu
from zenmedix.schemas.clinics import ClinicCreate, ClinicUpdate, DaySchedule
from zenmedix.services.clinic_service import ClinicService

router = APIRouter()

ClinicServiceDep = Annotated[ClinicService, Depends(get_clinic_service)]

# Clinics are listed wherever appointments are booked, but only edited from settings
can_view = [Depends(require_menu("appointments"))]
can_edit = [Depends(require_menu("settings"))]


@router.get(
    "/",
    status_code=status.HTTP_200_OK,
    summary="List clinics",
    dependencies=can_view,
)
async def list_clinics(service: ClinicServiceDep) -> list[dict[str, Any]]:
    """List clinics sorted by name."""
    return await service.list_clinics()


@router.get(
    "/{clinic_id}",
    status_code=status.HTTP_200_OK,
    summary="Get clinic",
    dependencies=can_view,
)
async def get_clinic(clinic_id: str, service: ClinicServiceDep) -> dict[str, Any]:
    """Get a clinic."""
    return await service.get(clinic_id)


@router.get(
    "/{clinic_id}/schedule",
    status_code=status.HTTP_200_OK,
    summary="Get clinic opening hours",
    dependencies=can_view,
)
async def get_clinic_schedule(
    clinic_id: str, service: ClinicServiceDep
) -> dict[str, DaySchedule | None]:
    """Weekly opening hours keyed by weekday ("0" = Sunday)."""
    return await service.get_schedule(clinic_id)


@router.put(
    "/{clinic_id}/schedule",
    status_code=status.HTTP_200_OK,
    summary="Replace clinic opening hours",
    dependencies=can_edit,
)
async def update_clinic_schedule(
    clinic_id: str,
    schedule: dict[str, DaySchedule | None],
    service: ClinicServiceDep,
) -> dict[str, DaySchedule | None]:
    """Replace the weekly opening hours."""
    return await service.update_schedule(clinic_id, schedule)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create clinic",
    dependencies=can_edit,
)
async def create_clinic(data: ClinicCreate, service: ClinicServiceDep) -> dict[str, Any]:
    """Create a clinic."""
    return await service.create(data)


@router.patch(
    "/{clinic_id}",
    status_code=status.HTTP_200_OK,
    summary="Update clinic",
    dependencies=can_edit,
)
async def update_clinic(
    clinic_id: str, data: ClinicUpdate, service: ClinicServiceDep
) -> dict[str, Any]:
    """Update a clinic."""
    return await service.update(clinic_id, data)


@router.delete(
    "/{clinic_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete clinic",
    dependencies=can_edit,
)
async def delete_clinic(clinic_id: str, service: ClinicServiceDep) -> None:
    """Delete a clinic."""
    await service.delete(clinic_id)
