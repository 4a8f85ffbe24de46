"""Shared test helpers."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token
from app.models import notifications
from app.schemas.users import Principal
from app.services.email_service import AppointmentConfirmation


def principal_for(user: dict[str, Any]) -> Principal:
    return Principal.model_validate(user)


def headers_for(user: dict[str, Any]) -> dict[str, str]:
    token = create_access_token(user["id"], expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


def at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    """Timestamp in June 2024, the month every scheduling scenario uses."""
    return datetime(2024, 6, day, hour, minute)


async def notifications_for(
    db_session: AsyncSession,
    user_id: UUID,
    related_id: UUID | None = None,
) -> list[dict[str, Any]]:
    query = select(notifications).where(notifications.c.user_id == user_id)
    if related_id is not None:
        query = query.where(notifications.c.related_id == related_id)
    result = await db_session.execute(query.order_by(notifications.c.created_at))
    return [dict(row) for row in result.mappings().all()]


class RecordingDelivery:
    """Push delivery double that remembers what it was asked to send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.delivered: list[dict[str, Any]] = []

    async def deliver(self, db: AsyncSession, notification: dict[str, Any]) -> tuple[int, int]:
        if self.fail:
            raise ConnectionError("push gateway unreachable")
        self.delivered.append(notification)
        return 1, 0


class FakeEmailService:
    """Email double returning a fixed result."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent: list[AppointmentConfirmation] = []

    async def send_appointment_confirmation(self, data: AppointmentConfirmation) -> bool:
        self.sent.append(data)
        return self.result
