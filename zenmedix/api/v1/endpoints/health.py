"""Liveness and readiness probes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from zenmedix.config import settings
from zenmedix.core.record_store import RecordStore
from zenmedix.dependencies import Storage, get_store

router = APIRouter()


class HealthResponse(BaseModel):
    """Service health, with backend checks on readiness probes."""

    status: str
    version: str
    environment: str
    checks: dict[str, bool] | None = None


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health_check() -> HealthResponse:
    """Answer as long as the process is serving requests."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get("/health/ready", response_model=HealthResponse, summary="Readiness probe")
async def readiness_check(
    response: Response,
    store: Annotated[RecordStore, Depends(get_store)],
    storage: Storage,
) -> HealthResponse:
    """
    Check the record store and local storage.

    Answers 503 with ``status="degraded"`` when either backend is down.
    """
    checks = {"record_store": await store.health(), "local_storage": storage.ping()}
    healthy = all(checks.values())
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        checks=checks,
    )
