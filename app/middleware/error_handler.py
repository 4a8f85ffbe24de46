"""Exception handlers producing the API's error envelope.

Every error leaves the service as ``{"error", "message", "details", "path"}``
so clients can branch on ``error`` (for example ``SchedulingConflictException``
to offer another slot) without parsing messages, which are in Portuguese.
"""

from typing import Any

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException

logger = structlog.get_logger(__name__)


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: Any,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": jsonable_encoder(details or {}),
            "path": str(request.url),
        },
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render domain exceptions.

    Rejections a client can fix (conflicts, bad transitions, missing rows)
    are routine and logged at info; a 5xx AppException is an error.
    """
    error = exc.__class__.__name__
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_rejected",
        error=error,
        status_code=exc.status_code,
        message=exc.message,
        details=exc.details or None,
    )
    return error_response(request, exc.status_code, error, exc.message, exc.details)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Routing-level errors such as unknown paths and wrong methods."""
    return error_response(
        request,
        exc.status_code,
        "HTTPException",
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


def _field_errors(errors: list[dict[str, Any]]) -> dict[str, str]:
    """Map ``body.scheduled_start`` style locations to their first message."""
    fields: dict[str, str] = {}
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()))
        fields.setdefault(location or "request", err.get("msg", "Invalid value"))
    return fields


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = exc.errors()
    fields = _field_errors(list(errors))
    logger.info("request_validation_failed", fields=sorted(fields))
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        {"errors": errors, "fields": fields},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log with traceback, answer without leaking internals."""
    logger.error("unhandled_exception", error=str(exc), exc_info=exc)
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
    )
