"""Notification schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


Platform = Literal["android", "ios", "web"]


class PushTokenRegister(BaseModel):
    """A device asking to receive appointment pushes."""

    fcm_token: str = Field(..., min_length=1, max_length=4096)
    platform: Platform


class PushTokenResponse(BaseModel):
    """A registered device token; one active token per user and platform."""

    id: UUID
    user_id: UUID
    fcm_token: str
    platform: Platform
    is_active: bool
    last_used_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationRecord(BaseModel):
    """In-app notification as stored."""

    id: UUID
    user_id: UUID
    type: str = Field(
        description=(
            "One of the lifecycle types (appointment_approved, appointment_rejected, "
            "appointment_rescheduled, appointment_completed, appointment_reminder, exam_*, "
            "medication_reminder) or a booking type: appointment_scheduled for a new "
            "booking, appointment_request for a hospital request awaiting review, "
            "appointment_cancelled for a cancellation"
        ),
        examples=["appointment_approved"],
    )
    content: str
    related_id: UUID | None = None
    read: bool
    read_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Paginated notifications of the current user."""

    total: int
    unread: int
    page: int
    page_size: int
    items: list[NotificationRecord]


class MarkAllReadResponse(BaseModel):
    """Result of marking every notification as read."""

    updated: int
