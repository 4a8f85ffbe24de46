"""Doctor-Hospital affiliation table."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    UniqueConstraint,
    Uuid,
)

from app.core.timerange import utcnow
from app.models.users import metadata

doctor_hospitals = Table(
    "doctor_hospitals",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "hospital_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("department", String(200)),
    # active, inactive
    Column("status", String(20), nullable=False, server_default="active"),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint(
        "status IN ('active', 'inactive')",
        name="doctor_hospitals_status_check",
    ),
    UniqueConstraint("doctor_id", "hospital_id", name="unique_doctor_hospital"),
    Index("idx_doctor_hospitals_hospital_status", "hospital_id", "status"),
)
