"""Local storage backup endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, status

from zenmedix.dependencies import get_backup_service, require_menu
from zenmedix.schemas.backup import BackupDocument, BackupImportResult, StorageStats
from zenmedix.services.backup_service import BackupService

router = APIRouter(dependencies=[Depends(require_menu("settings"))])

BackupServiceDep = Annotated[BackupService, Depends(get_backup_service)]


@router.get(
    "/export",
    response_model=BackupDocument,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Export local storage",
)
async def export_backup(service: BackupServiceDep) -> BackupDocument:
    """Snapshot every application entry in local storage."""
    return await service.export_backup()


@router.post(
    "/import",
    response_model=BackupImportResult,
    status_code=status.HTTP_200_OK,
    summary="Import a backup",
)
async def import_backup(
    service: BackupServiceDep,
    backup: Annotated[dict[str, Any], Body()],
    overwrite: bool = Query(False, description="Replace keys that already exist"),
) -> BackupImportResult:
    """Restore entries from an exported backup document."""
    return await service.import_backup(backup, overwrite=overwrite)


@router.get(
    "/info",
    status_code=status.HTTP_200_OK,
    summary="Last backup",
)
async def get_backup_info(service: BackupServiceDep) -> dict[str, Any]:
    """When the last backup was taken and how many keys it held."""
    return service.backup_info() or {}


@router.get(
    "/stats",
    response_model=StorageStats,
    status_code=status.HTTP_200_OK,
    summary="Local storage usage",
)
async def get_storage_stats(service: BackupServiceDep) -> StorageStats:
    """Key count and bytes used, per category."""
    return service.storage_stats()
