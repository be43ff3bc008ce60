"""Structured logging setup and per-request access log."""

import logging
import sys
import time
import uuid
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from zenmedix.config import settings

REQUEST_ID_HEADER = "X-Request-ID"

# Probes and scrapes would drown the access log
QUIET_PATHS = frozenset({"/metrics", f"{settings.api_v1_prefix}/health"})


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Route structlog through the stdlib logging module.

    Args:
        level: Log level name, defaults to ``LOG_LEVEL``
        log_format: ``"json"`` or ``"console"``, defaults to ``LOG_FORMAT``
    """
    level = (level or settings.log_level).upper()
    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if (log_format or settings.log_format) == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level))


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    Access log with a request id.

    The id comes from the caller's ``X-Request-ID`` header or is generated, is
    bound to the structlog context for everything logged while the request is
    handled, and is echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger = structlog.get_logger("zenmedix.access")
        path = request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            raise

        if path not in QUIET_PATHS:
            logger.info(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                client=request.client.host if request.client else None,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
