"""Notification models: in-app notification rows and push tokens for delivery."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    true,
)

from app.core.timerange import utcnow
from app.models.users import metadata

# Appointment lifecycle decisions plus the reminder and exam feeds
LIFECYCLE_NOTIFICATION_TYPES = (
    "appointment_reminder",
    "appointment_approved",
    "appointment_rejected",
    "appointment_rescheduled",
    "appointment_completed",
    "exam_requested",
    "exam_result_available",
    "exam_approved",
    "exam_rejected",
    "medication_reminder",
)

# Booking events with no decision type of their own
BOOKING_NOTIFICATION_TYPES = (
    "appointment_scheduled",
    "appointment_request",
    "appointment_cancelled",
)

NOTIFICATION_TYPES = LIFECYCLE_NOTIFICATION_TYPES + BOOKING_NOTIFICATION_TYPES

notifications = Table(
    "notifications",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("type", String(50), nullable=False),
    Column("content", Text, nullable=False),
    # Appointment (or exam) the notification is about
    Column("related_id", Uuid, nullable=True),
    Column("read", Boolean, nullable=False, default=False, server_default=false()),
    Column("read_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint(
        "type IN (" + ", ".join(f"'{t}'" for t in NOTIFICATION_TYPES) + ")",
        name="notifications_type_check",
    ),
    Index("idx_notifications_user_read", "user_id", "read"),
    Index("idx_notifications_related_id", "related_id"),
)

push_tokens = Table(
    "push_tokens",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("fcm_token", Text, nullable=False),
    Column("platform", String(20), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("last_used_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint(
        "platform IN ('android', 'ios', 'web')",
        name="push_tokens_platform_check",
    ),
    UniqueConstraint("user_id", "fcm_token", name="unique_user_fcm_token"),
    Index("idx_push_tokens_user_active", "user_id", "is_active"),
)
