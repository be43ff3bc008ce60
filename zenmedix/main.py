"""ZenMedix dashboard API application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from zenmedix.api.v1.router import api_router
from zenmedix.config import settings
from zenmedix.core.record_store import close_record_store, get_record_store
from zenmedix.core.redis_client import LocalStorage, close_redis_connection, get_redis_client
from zenmedix.middleware.error_handler import register_exception_handlers
from zenmedix.middleware.logging import RequestLogMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Report backend reachability on startup and release clients on shutdown.

    Neither backend being down stops the API from starting: the record store
    may come up later and local storage degrades to empty reads.
    """
    logger.info("application_startup", environment=settings.environment)

    store_ok = await get_record_store().health()
    storage_ok = LocalStorage(get_redis_client()).ping()
    log = logger.info if store_ok and storage_ok else logger.error
    log(
        "backends_checked",
        record_store=store_ok,
        record_store_url=settings.record_store_url,
        local_storage=storage_ok,
    )

    yield

    await close_record_store()
    close_redis_connection()
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """Build the application with middleware, error handlers, routes and metrics."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Clinic dashboard API: appointments, patients, audit trail and reminders",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "Content-Disposition"],
    )
    application.add_middleware(RequestLogMiddleware)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.api_v1_prefix)

    Instrumentator(
        should_group_status_codes=True,
        excluded_handlers=["/metrics", "/docs", "/openapi.json"],
    ).instrument(application).expose(application, endpoint="/metrics", include_in_schema=False)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "zenmedix.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
