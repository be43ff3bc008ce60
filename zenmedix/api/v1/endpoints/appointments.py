"""Appointment endpoints."""

from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from zenmedix.dependencies import get_appointment_service, require_menu
from zenmedix.schemas.appointments import (
    TIME_PATTERN,
    AppointmentCreate,
    AppointmentUpdate,
    AvailabilityResponse,
)
from zenmedix.services.appointment_service import AppointmentService

router = APIRouter(dependencies=[Depends(require_menu("appointments"))])

AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]


@router.get(
    "/",
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    service: AppointmentServiceDep,
    day: date | None = Query(None, alias="date", description="Only this day, ordered by time"),
) -> list[dict[str, Any]]:
    """
    List appointments with their derived status.

    Without ``date`` every appointment is returned, newest first.
    """
    if day is not None:
        return await service.list_by_date(day)
    return await service.list_with_status()


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Check whether a slot is free",
)
async def check_availability(
    service: AppointmentServiceDep,
    day: date = Query(..., alias="date"),
    time: str = Query(..., pattern=TIME_PATTERN),
    clinic_id: str | None = Query(None, alias="clinicId"),
    doctor_id: str | None = Query(None, alias="doctorId"),
) -> AvailabilityResponse:
    """Check for a conflicting booking and the clinic's opening hours."""
    return await service.check_availability(clinic_id, doctor_id, day, time)


@router.get(
    "/{appointment_id}",
    status_code=status.HTTP_200_OK,
    summary="Get appointment",
)
async def get_appointment(appointment_id: str, service: AppointmentServiceDep) -> dict[str, Any]:
    """Get an appointment with patient, doctor and clinic expanded."""
    return await service.get(appointment_id)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create appointment",
)
async def create_appointment(
    data: AppointmentCreate, service: AppointmentServiceDep
) -> dict[str, Any]:
    """Book an appointment."""
    return await service.create(data)


@router.patch(
    "/{appointment_id}",
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: str, data: AppointmentUpdate, service: AppointmentServiceDep
) -> dict[str, Any]:
    """Update an appointment."""
    return await service.update(appointment_id, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete appointment",
)
async def delete_appointment(appointment_id: str, service: AppointmentServiceDep) -> None:
    """Delete an appointment."""
    await service.delete(appointment_id)
