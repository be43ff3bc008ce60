"""API v1 router configuration."""

from fastapi import APIRouter

from zenmedix.api.v1.endpoints import (
    appointments,
    audit,
    auth,
    backup,
    clinics,
    config,
    consultations,
    dashboard,
    health,
    patients,
    users,
    webhooks,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(patients.router, prefix="/patients", tags=["Patients"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(consultations.router, prefix="/consultations", tags=["Consultations"])
api_router.include_router(clinics.router, prefix="/clinics", tags=["Clinics"])
api_router.include_router(config.router, prefix="/config", tags=["Config"])
api_router.include_router(audit.router, prefix="/audit-logs", tags=["Audit"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(backup.router, prefix="/backup", tags=["Backup"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
