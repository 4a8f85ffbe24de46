"""User lookups and doctor-hospital affiliation checks."""

from typing import Any
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, NotFoundException
from app.models.doctor_hospitals import doctor_hospitals
from app.models.users import users
from app.schemas.users import UserRole


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> dict[str, Any] | None:
        """Get user by internal ID."""
        result = await self.db.execute(select(users).where(users.c.id == user_id))
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        result = await self.db.execute(select(users).where(users.c.email == email))
        user = result.mappings().first()
        return dict(user) if user else None

    async def _get_with_role(
        self,
        user_id: UUID,
        role: UserRole,
        not_found_message: str,
    ) -> dict[str, Any]:
        result = await self.db.execute(
            select(users).where(
                and_(
                    users.c.id == user_id,
                    users.c.role == role.value,
                    users.c.is_active == True,  # noqa: E712
                )
            )
        )
        user = result.mappings().first()
        if not user:
            raise NotFoundException(not_found_message, details={"id": str(user_id)})
        return dict(user)

    async def get_patient(self, patient_id: UUID) -> dict[str, Any]:
        """
        Get an active patient.

        Raises:
            NotFoundException: If no active patient has this id
        """
        return await self._get_with_role(patient_id, UserRole.PATIENT, "Paciente não encontrado")

    async def get_doctor(self, doctor_id: UUID) -> dict[str, Any]:
        """
        Get an active doctor.

        Raises:
            NotFoundException: If no active doctor has this id
        """
        return await self._get_with_role(doctor_id, UserRole.DOCTOR, "Médico não encontrado")

    async def get_hospital(self, hospital_id: UUID) -> dict[str, Any]:
        """
        Get an active hospital (its administrator account).

        Raises:
            NotFoundException: If no active hospital has this id
        """
        return await self._get_with_role(
            hospital_id, UserRole.HOSPITAL_ADMIN, "Hospital não encontrado"
        )

    async def is_affiliated(self, doctor_id: UUID, hospital_id: UUID) -> bool:
        """Check for an active doctor-hospital affiliation."""
        result = await self.db.execute(
            select(doctor_hospitals.c.id).where(
                and_(
                    doctor_hospitals.c.doctor_id == doctor_id,
                    doctor_hospitals.c.hospital_id == hospital_id,
                    doctor_hospitals.c.status == "active",
                )
            )
        )
        return result.first() is not None

    async def ensure_affiliated(self, doctor_id: UUID, hospital_id: UUID) -> None:
        """
        Require the doctor to work at the hospital.

        Raises:
            BadRequestException: If there is no active affiliation
        """
        if not await self.is_affiliated(doctor_id, hospital_id):
            raise BadRequestException("Médico não está associado a este hospital")
