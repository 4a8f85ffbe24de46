"""Custom application exceptions."""

from typing import Any
from uuid import UUID


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and optional details."""
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found", details: dict[str, Any] | None = None):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404, details=details)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict", details: dict[str, Any] | None = None):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, details=details)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", details: dict[str, Any] | None = None):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, details=details)


class SchedulingConflictException(ConflictException):
    """The doctor already has an active appointment overlapping the requested slot."""

    def __init__(
        self,
        conflicting_appointment_id: UUID,
        message: str = "Conflito de horário - já existe consulta agendada neste período",
    ):
        """Initialize with the id of the overlapping appointment."""
        self.conflicting_appointment_id = conflicting_appointment_id
        super().__init__(
            message,
            details={"conflicting_appointment_id": str(conflicting_appointment_id)},
        )


class InvalidTransitionException(ConflictException):
    """Requested state change is not legal from the appointment's current state."""

    def __init__(
        self,
        message: str = "Invalid appointment transition",
        details: dict[str, Any] | None = None,
    ):
        """Initialize with 409 status code."""
        super().__init__(message, details=details)


class StaleStateException(ConflictException):
    """The appointment changed between read and guarded write."""

    def __init__(self, appointment_id: UUID, message: str = "Appointment was modified concurrently"):
        """Initialize with the id of the contended appointment."""
        super().__init__(message, details={"appointment_id": str(appointment_id)})
