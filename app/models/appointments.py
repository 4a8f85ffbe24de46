"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    false,
)

from app.core.timerange import utcnow
from app.models.users import metadata

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column("patient_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("doctor_id", Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    Column("hospital_id", Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    Column("requested_by", Uuid, nullable=True),
    # Slot; scheduled_end is derived from start + duration and kept for range queries
    Column("scheduled_start", DateTime, nullable=False),
    Column("scheduled_end", DateTime, nullable=False),
    Column("duration_minutes", Integer, nullable=False, server_default="60"),
    # Status management
    Column("status", String(20), nullable=False, server_default="scheduled"),
    Column("approval_status", String(20), nullable=True),
    # Descriptive metadata
    Column("specialty", Text),
    Column("appointment_type", Text),
    Column("location", Text),
    Column("notes", Text),
    # Clinical record, written on completion
    Column("diagnosis", Text),
    Column("prescription", Text),
    Column("medical_notes", Text),
    Column("completed_at", DateTime),
    # Cancellation
    Column("cancelled_at", DateTime),
    Column("cancelled_by", Uuid),
    Column("cancellation_reason", Text),
    # Reschedule chain
    Column("rescheduled_from_id", Uuid, ForeignKey("appointments.id"), nullable=True),
    Column("rescheduled_to_id", Uuid, ForeignKey("appointments.id"), nullable=True),
    Column("reschedule_reason", Text),
    # Approval audit
    Column("approved_by", Uuid),
    Column("approved_at", DateTime),
    Column("approval_notes", Text),
    Column("rejection_reason", Text),
    # Patient confirmation email
    Column("confirmation_sent", Boolean, nullable=False, default=False, server_default=false()),
    Column("confirmation_sent_at", DateTime),
    # Audit fields
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'completed', 'cancelled', 'rescheduled')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "approval_status IS NULL OR approval_status IN ('pending', 'approved', 'rejected')",
        name="appointments_approval_status_check",
    ),
    CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
    CheckConstraint("scheduled_end > scheduled_start", name="appointments_range_check"),
    Index("idx_appointments_doctor_slot", "doctor_id", "status", "scheduled_start"),
    Index("idx_appointments_patient_id", "patient_id"),
    Index("idx_appointments_hospital_id", "hospital_id"),
)
