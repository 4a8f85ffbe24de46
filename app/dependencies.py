"""FastAPI dependencies."""

from collections.abc import Callable, Coroutine
from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token, token_subject
from app.database import get_db
from app.schemas.users import Principal, UserRole
from app.services.appointment_service import AppointmentService
from app.services.notification_service import NotificationService
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)

# Missing credentials are reported as 401 by get_current_principal, not 403
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        UnauthorizedException: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Could not validate credentials")

    user_id = token_subject(payload)
    if user_id is None:
        raise UnauthorizedException("Invalid token subject")

    structlog.contextvars.bind_contextvars(user_id=str(user_id))
    return user_id


async def get_current_principal(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Principal:
    """
    Resolve the acting principal from the users table.

    Raises:
        UnauthorizedException: If the user is unknown or deactivated
    """
    user = await UserService(db).get_user_by_id(user_id)

    if not user:
        raise UnauthorizedException("User not found")

    if not user["is_active"]:
        logger.info("inactive_user_rejected", user_id=str(user_id))
        raise UnauthorizedException("User account is deactivated")

    structlog.contextvars.bind_contextvars(role=user["role"])
    return Principal.model_validate(user)


def require_role(*roles: UserRole) -> Callable[..., Coroutine[Any, Any, Principal]]:
    """Build a dependency that only lets the given roles through."""

    async def dependency(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        if principal.role not in roles:
            raise ForbiddenException("Acesso não permitido para este perfil")
        return principal

    return dependency


def get_cache_manager() -> CacheManager | None:
    """Cache manager over the shared Redis client."""
    return CacheManager(get_redis_client())


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
) -> AppointmentService:
    return AppointmentService(db, cache_manager=cache_manager)


def get_notification_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationService:
    return NotificationService(db)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
PatientPrincipal = Annotated[Principal, Depends(require_role(UserRole.PATIENT))]
DoctorPrincipal = Annotated[Principal, Depends(require_role(UserRole.DOCTOR))]
HospitalPrincipal = Annotated[Principal, Depends(require_role(UserRole.HOSPITAL_ADMIN))]
PatientOrDoctorPrincipal = Annotated[
    Principal, Depends(require_role(UserRole.PATIENT, UserRole.DOCTOR))
]
CacheManagerDep = Annotated[CacheManager | None, Depends(get_cache_manager)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
