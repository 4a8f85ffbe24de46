"""Structured logging setup and per-request access logging."""

import logging
import sys
import time
from collections.abc import Callable
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings

# Third-party loggers that drown out scheduling events at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "urllib3", "google.auth")

# Load balancer probes and scrapes
QUIET_PATHS = frozenset(
    {"/metrics", f"{settings.api_v1_prefix}/health", f"{settings.api_v1_prefix}/ping"}
)


def configure_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """Route structlog through stdlib logging, rendering JSON or console lines."""
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    renderer = (
        structlog.processors.JSONRenderer()
        if (log_format or settings.log_format) == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag every log line of a request with its request id and log the outcome.

    The id comes from ``X-Request-ID`` when the gateway sets one and is
    echoed back so client reports can be matched to server logs. The user id
    is added to the same context once authentication resolves it.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        logger = structlog.get_logger("app.access")

        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=self._elapsed_ms(started))
            raise

        duration_ms = self._elapsed_ms(started)
        status_code = response.status_code

        if status_code >= 500:
            log = logger.error
        elif status_code >= 400:
            log = logger.warning
        elif request.url.path in QUIET_PATHS:
            log = logger.debug
        else:
            log = logger.info
        log("request_completed", status_code=status_code, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms / 1000:.4f}"
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
