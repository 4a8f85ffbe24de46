"""User and principal schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class UserRole(str, Enum):
    """Roles a principal may act under."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    HOSPITAL_ADMIN = "hospital_admin"


class Principal(BaseModel):
    """Authenticated actor resolved from the bearer token and the users table."""

    id: UUID
    role: UserRole
    email: str
    full_name: str | None = None
    hospital_name: str | None = None

    model_config = {"from_attributes": True}

    @property
    def display_name(self) -> str:
        """Name used in emails, falling back to the email local part."""
        return self.full_name or self.email.split("@")[0]
