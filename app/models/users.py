"""User model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    true,
)

from app.core.timerange import utcnow

# Metadata for all tables
metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("email", Text, nullable=False, unique=True, index=True),
    # Profile info
    Column("full_name", Text),
    Column("phone", String(20)),
    Column("date_of_birth", Date),
    # patient, doctor or hospital_admin; a hospital admin's id is its hospital id
    Column("role", String(20), nullable=False, server_default="patient", index=True),
    Column("hospital_name", Text),
    Column("specialty", String(200)),
    # Account state
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    # Audit
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint(
        "role IN ('patient', 'doctor', 'hospital_admin')",
        name="users_role_check",
    ),
)
