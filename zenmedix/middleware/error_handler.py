"""JSON error responses for the dashboard API."""

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zenmedix.core.exceptions import (
    AccountLockedException,
    AppException,
    MessagingError,
    RecordStoreError,
)

logger = structlog.get_logger(__name__)


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: Any,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    """Render the common ``{error, message, path}`` body plus any extra fields."""
    content = {"error": error, "message": message, "path": request.url.path, **extra}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render application exceptions.

    A lockout carries ``remaining_minutes`` and a ``Retry-After`` header; 401
    responses ask for a bearer token; upstream failures report the status the
    remote service answered with.
    """
    extra: dict[str, Any] = {}
    headers = None

    if isinstance(exc, AccountLockedException):
        extra["remaining_minutes"] = exc.remaining_minutes
        headers = {"Retry-After": str(exc.remaining_minutes * 60)}
    elif exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(exc, RecordStoreError | MessagingError):
        extra["upstream_status"] = exc.upstream_status
        logger.warning(
            "upstream_failure",
            error=exc.__class__.__name__,
            upstream_status=exc.upstream_status,
            path=request.url.path,
        )

    return error_response(
        request, exc.status_code, exc.__class__.__name__, exc.message, headers=headers, **extra
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Render framework HTTP errors such as unknown routes."""
    return error_response(
        request,
        exc.status_code,
        "HTTPException",
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation failures with the offending fields."""
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler to the application."""
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)
