"""Audit log endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status

from zenmedix.dependencies import Audit, require_menu
from zenmedix.schemas.audit import AuditLogCreate, AuditLogFilters, AuditStats
from zenmedix.schemas.base import PageResponse

router = APIRouter()

can_view = [Depends(require_menu("audit"))]


@router.get(
    "/",
    response_model=PageResponse,
    status_code=status.HTTP_200_OK,
    summary="List audit entries",
    dependencies=can_view,
)
async def list_audit_logs(
    audit: Audit,
    filters: Annotated[AuditLogFilters, Depends()],
) -> PageResponse:
    """List audit entries newest first, filtered by action, entity or user."""
    return await audit.list_entries(filters)


@router.get(
    "/stats",
    response_model=AuditStats,
    status_code=status.HTTP_200_OK,
    summary="Audit statistics",
    dependencies=can_view,
)
async def get_audit_stats(
    audit: Audit,
    limit: int = Query(500, ge=1, le=1000, description="Entries to summarize"),
) -> AuditStats:
    """Totals and per-action counts over the most recent entries."""
    return await audit.stats(limit)


@router.get(
    "/export",
    status_code=status.HTTP_200_OK,
    summary="Export audit log as CSV",
    dependencies=can_view,
    response_class=Response,
)
async def export_audit_logs(audit: Audit) -> Response:
    """Download every audit entry as CSV."""
    content = await audit.export_csv()
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="audit_log.csv"'},
    )


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Record a client-side event",
)
async def create_audit_log(
    data: AuditLogCreate,
    audit: Audit,
) -> dict[str, Any]:
    """
    Record an event that happens in the browser, such as printing a prescription.

    Returns the stored entry, or ``{"logged": false}`` when it could not be saved.
    """
    record = await audit.log(
        data.action, data.details, entity=data.entity, entity_id=data.entity_id
    )
    return record if record is not None else {"logged": False}
