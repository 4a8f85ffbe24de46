"""Database models."""

from app.models.appointments import appointments
from app.models.doctor_hospitals import doctor_hospitals
from app.models.notifications import NOTIFICATION_TYPES, notifications, push_tokens
from app.models.users import metadata, users

__all__ = [
    "NOTIFICATION_TYPES",
    "appointments",
    "doctor_hospitals",
    "metadata",
    "notifications",
    "push_tokens",
    "users",
]
