"""Dashboard statistics endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from zenmedix.dependencies import get_dashboard_service, require_menu
from zenmedix.schemas.dashboard import DashboardStats
from zenmedix.services.dashboard_service import DashboardService

router = APIRouter(dependencies=[Depends(require_menu("dashboard"))])


@router.get(
    "/stats",
    response_model=DashboardStats,
    status_code=status.HTTP_200_OK,
    summary="Dashboard statistics",
)
async def get_dashboard_stats(
    service: Annotated[DashboardService, Depends(get_dashboard_service)],
) -> DashboardStats:
    """Appointment counts by period, status, hour, clinic, doctor and reason."""
    return await service.get_stats()
