"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.timerange import DEFAULT_DURATION_MINUTES, TimeRange, normalize_timestamp


class AppointmentStatus(str, Enum):
    """Appointment lifecycle state."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class ApprovalStatus(str, Enum):
    """Hospital sign-off state, independent of the lifecycle state."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SlotRequest(BaseModel):
    """Start time and duration of a requested slot."""

    scheduled_start: datetime
    duration_minutes: int = Field(default=DEFAULT_DURATION_MINUTES, gt=0, le=24 * 60)

    @field_validator("scheduled_start")
    @classmethod
    def normalize_start(cls, v: datetime) -> datetime:
        """Store every timestamp in the single implicit timezone."""
        return normalize_timestamp(v)

    def time_range(self) -> TimeRange:
        """Slot occupied by the requested appointment."""
        return TimeRange.from_duration(self.scheduled_start, self.duration_minutes)


class AppointmentDetails(BaseModel):
    """Descriptive metadata shared by every creation path."""

    specialty: str | None = Field(None, max_length=200)
    appointment_type: str | None = Field(None, max_length=100)
    notes: str | None = Field(None, max_length=2000)


class PatientAppointmentCreate(AppointmentDetails):
    """
    Self-service booking with a chosen doctor.

    The slot is either a timestamp or the form's date + ``HH:MM`` time. A
    patient without a doctor in mind files a hospital request instead, so
    the hospital can assign one.
    """

    specialty: str = Field(..., min_length=1, max_length=200)
    appointment_type: str = Field(..., min_length=1, max_length=100)
    doctor_id: UUID
    scheduled_start: datetime | None = None
    appointment_date: date | None = None
    appointment_time: str | None = Field(None, pattern=r"^\d{2}:\d{2}$")

    @model_validator(mode="after")
    def require_slot(self) -> "PatientAppointmentCreate":
        """A timestamp wins over the form fields when both are sent."""
        has_form_fields = self.appointment_date is not None and self.appointment_time is not None
        if self.scheduled_start is None and not has_form_fields:
            raise ValueError("Provide scheduled_start or appointment_date and appointment_time")
        return self

    def time_range(self) -> TimeRange:
        """Slot occupied by the requested appointment."""
        if self.scheduled_start is not None:
            return TimeRange.from_duration(self.scheduled_start, DEFAULT_DURATION_MINUTES)
        return TimeRange.from_date_and_time(
            self.appointment_date,  # type: ignore[arg-type]
            self.appointment_time,  # type: ignore[arg-type]
            DEFAULT_DURATION_MINUTES,
        )


class AppointmentRequestCreate(SlotRequest, AppointmentDetails):
    """Request addressed to a hospital; becomes actionable once approved.

    ``patient_id`` is required when a doctor files the request and ignored when
    the patient files it.
    """

    hospital_id: UUID
    doctor_id: UUID | None = None
    patient_id: UUID | None = None


class DoctorAppointmentCreate(SlotRequest, AppointmentDetails):
    """Appointment booked by a doctor in their own agenda."""

    patient_id: UUID
    location: str | None = Field(None, max_length=500)


class HospitalAppointmentCreate(SlotRequest, AppointmentDetails):
    """Appointment booked by a hospital administrator, auto-approved."""

    patient_id: UUID
    doctor_id: UUID | None = None
    location: str | None = Field(None, max_length=500)
    requested_by: UUID | None = None


class AppointmentDetailsUpdate(BaseModel):
    """Mutable metadata of a scheduled appointment."""

    notes: str | None = Field(None, max_length=2000)
    location: str | None = Field(None, max_length=500)
    specialty: str | None = Field(None, max_length=200)
    appointment_type: str | None = Field(None, max_length=100)
    medical_notes: str | None = Field(None, max_length=5000)


class AppointmentComplete(BaseModel):
    """Clinical record written when a doctor completes an appointment."""

    diagnosis: str | None = Field(None, max_length=5000)
    prescription: str | None = Field(None, max_length=5000)
    medical_notes: str | None = Field(None, max_length=5000)


class AppointmentCancel(BaseModel):
    """Cancellation request."""

    reason: str | None = Field(None, max_length=1000)


class AppointmentReschedule(BaseModel):
    """Move an appointment to a new slot."""

    scheduled_start: datetime
    duration_minutes: int | None = Field(None, gt=0, le=24 * 60)
    reason: str | None = Field(None, max_length=1000)

    @field_validator("scheduled_start")
    @classmethod
    def normalize_start(cls, v: datetime) -> datetime:
        """Store every timestamp in the single implicit timezone."""
        return normalize_timestamp(v)


class DoctorAssignment(BaseModel):
    """Bind (or rebind) a doctor to a hospital appointment."""

    doctor_id: UUID


class ApprovalDecision(BaseModel):
    """Hospital sign-off; ``notes`` on approval, ``reason`` on rejection."""

    notes: str | None = Field(None, max_length=1000)
    reason: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID | None
    hospital_id: UUID | None
    requested_by: UUID | None = None
    scheduled_start: datetime
    scheduled_end: datetime
    duration_minutes: int
    status: AppointmentStatus
    approval_status: ApprovalStatus | None = None
    specialty: str | None = None
    appointment_type: str | None = None
    location: str | None = None
    notes: str | None = None
    diagnosis: str | None = None
    prescription: str | None = None
    medical_notes: str | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: UUID | None = None
    cancellation_reason: str | None = None
    rescheduled_from_id: UUID | None = None
    rescheduled_to_id: UUID | None = None
    reschedule_reason: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    approval_notes: str | None = None
    rejection_reason: str | None = None
    confirmation_sent: bool = False
    confirmation_sent_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentStatistics(BaseModel):
    """Counts per lifecycle state and per approval state."""

    total: int
    by_status: dict[str, int]
    by_approval: dict[str, int]


class HospitalAppointmentListResponse(AppointmentListResponse):
    """Hospital listing with its statistics rollup."""

    statistics: AppointmentStatistics


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    approval_status: ApprovalStatus | None = None
    doctor_id: UUID | None = None
    patient_id: UUID | None = None
    specialty: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
