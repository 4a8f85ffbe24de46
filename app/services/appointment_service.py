"""Appointment service: creation, lifecycle transitions and the hospital approval workflow."""

from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    StaleStateException,
    ValidationException,
)
from app.core.locks import doctor_schedule_lock
from app.core.redis_client import CacheManager
from app.core.timerange import TimeRange, utcnow
from app.schemas.appointments import (
    AppointmentComplete,
    AppointmentDetailsUpdate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentRequestCreate,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatistics,
    AppointmentStatus,
    ApprovalStatus,
    DoctorAppointmentCreate,
    HospitalAppointmentCreate,
    HospitalAppointmentListResponse,
    PatientAppointmentCreate,
)
from app.schemas.users import Principal, UserRole
from app.services.appointment_store import AppointmentStore
from app.services.conflict_checker import ConflictChecker
from app.services.email_service import AppointmentConfirmation, EmailService
from app.services.lifecycle import (
    Transition,
    approval_is_settled,
    ensure_actor_allowed,
    ensure_transition,
    ownership_scope,
)
from app.services.notification_fanout import plan_notifications
from app.services.notification_service import NotificationService
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)

DEFAULT_APPOINTMENT_TYPE = "primeira-consulta"
DOCTOR_OFFICE_LOCATION = "Consultório Médico"
HOSPITAL_LOCATION = "Hospital"


class AppointmentService:
    """Service for managing appointments."""

    def __init__(
        self,
        db: AsyncSession,
        cache_manager: CacheManager | None = None,
        notification_service: NotificationService | None = None,
        email_service: EmailService | None = None,
    ):
        """
        Initialize service.

        Args:
            db: Database session
            cache_manager: Optional cache for hospital statistics
            notification_service: Notification persistence and delivery
            email_service: Sender of the self-service booking confirmation
        """
        self.db = db
        self.store = AppointmentStore(db)
        self.conflicts = ConflictChecker(self.store)
        self.users = UserService(db)
        self.cache = cache_manager
        self.notifications = notification_service or NotificationService(db)
        self.email = email_service or EmailService()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _atomic(self, doctor_id: UUID | None = None) -> AsyncIterator[None]:
        """Run a check+write unit, committed before the doctor's schedule is released."""
        async with AsyncExitStack() as stack:
            if doctor_id is not None:
                await stack.enter_async_context(doctor_schedule_lock(self.db, doctor_id))
            try:
                yield
                await self.db.commit()
            except BaseException:
                await self.db.rollback()
                raise

    async def _load(self, appointment_id: UUID, principal: Principal) -> dict[str, Any]:
        """Fetch an appointment the principal owns; other parties' rows look missing."""
        row = await self.store.get_by_id(appointment_id, scope=ownership_scope(principal))
        if row is None:
            raise NotFoundException(
                "Consulta não encontrada",
                details={"appointment_id": str(appointment_id)},
            )
        return row

    async def _guarded_update(
        self,
        row: dict[str, Any],
        patch: dict[str, Any],
        principal: Principal,
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Write ``patch`` only if the row is still in the state it was read in."""
        if expected is None:
            expected = {"status": AppointmentStatus.SCHEDULED}

        updated = await self.store.update_where(
            row["id"],
            patch,
            scope=ownership_scope(principal),
            expected=expected,
        )
        if updated is None:
            logger.warning(
                "appointment_stale_write",
                appointment_id=str(row["id"]),
                expected={k: str(getattr(v, "value", v)) for k, v in expected.items()},
            )
            raise StaleStateException(row["id"])
        return updated

    async def _after_transition(
        self,
        row: dict[str, Any],
        transition: Transition,
        principal: Principal,
        *,
        reason: str | None = None,
        previous: dict[str, Any] | None = None,
    ) -> None:
        """Invalidate derived caches and fan out notifications for a committed change."""
        self._invalidate_statistics(row.get("hospital_id"))
        if previous is not None and previous.get("hospital_id") != row.get("hospital_id"):
            self._invalidate_statistics(previous.get("hospital_id"))

        planned = plan_notifications(
            row,
            transition,
            principal.role,
            actor_id=principal.id,
            reason=reason,
            previous=previous,
        )
        await self.notifications.dispatch(planned)

    def _invalidate_statistics(self, hospital_id: UUID | None) -> None:
        if self.cache and hospital_id is not None:
            self.cache.invalidate_statistics(hospital_id)

    @staticmethod
    def _slot_values(time_range: TimeRange) -> dict[str, Any]:
        return {
            "scheduled_start": time_range.start,
            "scheduled_end": time_range.end,
            "duration_minutes": time_range.duration_minutes,
        }

    async def _insert_checked(self, values: dict[str, Any], time_range: TimeRange) -> dict[str, Any]:
        """Conflict-check the slot when a doctor is bound, then insert, atomically."""
        doctor_id = values.get("doctor_id")
        async with self._atomic(doctor_id):
            if doctor_id is not None:
                await self.conflicts.ensure_available(doctor_id, time_range)
            row = await self.store.insert(values)

        logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            patient_id=str(row["patient_id"]),
            doctor_id=str(doctor_id) if doctor_id else None,
            hospital_id=str(row["hospital_id"]) if row["hospital_id"] else None,
            approval_status=row["approval_status"],
            scheduled_start=row["scheduled_start"].isoformat(),
        )
        return row

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_patient_appointment(
        self,
        principal: Principal,
        data: PatientAppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book an appointment through patient self-service.

        No approval is involved. A confirmation email is sent after the booking
        is committed; its outcome is stored but never fails the booking.

        Args:
            principal: Patient booking for themselves
            data: Booking form

        Returns:
            Created appointment
        """
        if principal.role != UserRole.PATIENT:
            raise ForbiddenException("Apenas pacientes podem agendar pelo autoatendimento")

        doctor = await self.users.get_doctor(data.doctor_id)
        time_range = data.time_range()

        values = {
            "patient_id": principal.id,
            "doctor_id": data.doctor_id,
            "hospital_id": None,
            "requested_by": principal.id,
            **self._slot_values(time_range),
            "status": AppointmentStatus.SCHEDULED.value,
            "approval_status": None,
            "specialty": data.specialty,
            "appointment_type": data.appointment_type,
            "location": settings.default_location,
            "notes": data.notes,
        }
        row = await self._insert_checked(values, time_range)

        sent = await self.email.send_appointment_confirmation(
            AppointmentConfirmation(
                patient_name=principal.display_name,
                patient_email=principal.email,
                scheduled_start=row["scheduled_start"],
                specialty=data.specialty,
                appointment_type=data.appointment_type,
                doctor_name=doctor["full_name"],
                location=row["location"],
                notes=data.notes,
            )
        )
        if sent:
            row = await self._mark_confirmation_sent(row)

        await self._after_transition(row, Transition.CREATE, principal)
        return AppointmentResponse.model_validate(row)

    async def _mark_confirmation_sent(self, row: dict[str, Any]) -> dict[str, Any]:
        """Record the sent email; the booking is already committed, so a failure only logs."""
        try:
            updated = await self.store.update_where(
                row["id"],
                {"confirmation_sent": True, "confirmation_sent_at": utcnow()},
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "confirmation_flag_update_failed",
                appointment_id=str(row["id"]),
                error=str(e),
            )
            return row
        return updated or row

    async def create_appointment_request(
        self,
        principal: Principal,
        data: AppointmentRequestCreate,
    ) -> AppointmentResponse:
        """
        File an appointment request with a hospital.

        The appointment occupies its slot immediately but stays ``pending``
        until a hospital administrator approves or rejects it.

        Args:
            principal: Patient requesting for themselves, or a doctor for a patient
            data: Request data

        Returns:
            Created appointment with ``approval_status = pending``
        """
        if principal.role not in (UserRole.PATIENT, UserRole.DOCTOR):
            raise ForbiddenException("Apenas pacientes e médicos podem solicitar consultas")

        hospital = await self.users.get_hospital(data.hospital_id)

        if principal.role == UserRole.PATIENT:
            patient_id = principal.id
            doctor_id = data.doctor_id
        else:
            if data.patient_id is None:
                raise ValidationException(
                    "Paciente é obrigatório",
                    details={"patient_id": None},
                )
            await self.users.get_patient(data.patient_id)
            patient_id = data.patient_id
            doctor_id = principal.id

        if doctor_id is not None:
            await self.users.get_doctor(doctor_id)
            await self.users.ensure_affiliated(doctor_id, hospital["id"])

        time_range = data.time_range()
        values = {
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "hospital_id": hospital["id"],
            "requested_by": principal.id,
            **self._slot_values(time_range),
            "status": AppointmentStatus.SCHEDULED.value,
            "approval_status": ApprovalStatus.PENDING.value,
            "specialty": data.specialty,
            "appointment_type": data.appointment_type or DEFAULT_APPOINTMENT_TYPE,
            "location": hospital["hospital_name"] or HOSPITAL_LOCATION,
            "notes": data.notes,
        }
        row = await self._insert_checked(values, time_range)

        await self._after_transition(row, Transition.CREATE, principal)
        return AppointmentResponse.model_validate(row)

    async def create_doctor_appointment(
        self,
        principal: Principal,
        data: DoctorAppointmentCreate,
    ) -> AppointmentResponse:
        """Book an appointment in the acting doctor's own agenda."""
        if principal.role != UserRole.DOCTOR:
            raise ForbiddenException("Apenas médicos podem agendar na própria agenda")

        await self.users.get_patient(data.patient_id)

        time_range = data.time_range()
        values = {
            "patient_id": data.patient_id,
            "doctor_id": principal.id,
            "hospital_id": None,
            "requested_by": principal.id,
            **self._slot_values(time_range),
            "status": AppointmentStatus.SCHEDULED.value,
            "approval_status": None,
            "specialty": data.specialty,
            "appointment_type": data.appointment_type or DEFAULT_APPOINTMENT_TYPE,
            "location": data.location or DOCTOR_OFFICE_LOCATION,
            "notes": data.notes,
        }
        row = await self._insert_checked(values, time_range)

        await self._after_transition(row, Transition.CREATE, principal)
        return AppointmentResponse.model_validate(row)

    async def create_hospital_appointment(
        self,
        principal: Principal,
        data: HospitalAppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book an appointment on behalf of a hospital.

        The hospital is the approving authority, so the appointment starts
        ``approved``. The doctor may be left unassigned and bound later with
        ``assign_doctor``.

        Args:
            principal: Hospital administrator
            data: Appointment data

        Returns:
            Created appointment
        """
        if principal.role != UserRole.HOSPITAL_ADMIN:
            raise ForbiddenException("Apenas hospitais podem criar consultas hospitalares")

        await self.users.get_patient(data.patient_id)
        if data.doctor_id is not None:
            await self.users.get_doctor(data.doctor_id)
            await self.users.ensure_affiliated(data.doctor_id, principal.id)

        now = utcnow()
        time_range = data.time_range()
        values = {
            "patient_id": data.patient_id,
            "doctor_id": data.doctor_id,
            "hospital_id": principal.id,
            "requested_by": data.requested_by or principal.id,
            **self._slot_values(time_range),
            "status": AppointmentStatus.SCHEDULED.value,
            "approval_status": ApprovalStatus.APPROVED.value,
            "approved_by": principal.id,
            "approved_at": now,
            "specialty": data.specialty,
            "appointment_type": data.appointment_type or DEFAULT_APPOINTMENT_TYPE,
            "location": data.location or principal.hospital_name or HOSPITAL_LOCATION,
            "notes": data.notes,
        }
        row = await self._insert_checked(values, time_range)

        await self._after_transition(row, Transition.CREATE, principal)
        return AppointmentResponse.model_validate(row)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def complete(
        self,
        appointment_id: UUID,
        principal: Principal,
        data: AppointmentComplete,
    ) -> AppointmentResponse:
        """
        Mark an appointment as completed and record the clinical outcome.

        Raises:
            NotFoundException: If the appointment is not the doctor's
            InvalidTransitionException: If it is not completable
            StaleStateException: If it changed since it was read
        """
        row = await self._load(appointment_id, principal)
        ensure_transition(row, Transition.COMPLETE, principal.role)

        patch: dict[str, Any] = {
            "status": AppointmentStatus.COMPLETED,
            "completed_at": utcnow(),
        }
        patch.update(data.model_dump(exclude_none=True))

        async with self._atomic():
            updated = await self._guarded_update(
                row,
                patch,
                principal,
                expected={
                    "status": AppointmentStatus.SCHEDULED,
                    "approval_status": row["approval_status"],
                },
            )

        logger.info("appointment_completed", appointment_id=str(appointment_id))
        await self._after_transition(updated, Transition.COMPLETE, principal)
        return AppointmentResponse.model_validate(updated)

    async def cancel(
        self,
        appointment_id: UUID,
        principal: Principal,
        reason: str | None = None,
    ) -> AppointmentResponse:
        """
        Cancel a scheduled appointment, freeing its slot.

        Args:
            appointment_id: Appointment ID
            principal: Patient, doctor or hospital owning the appointment
            reason: Optional cancellation reason shown to the other parties

        Returns:
            Cancelled appointment
        """
        row = await self._load(appointment_id, principal)
        ensure_transition(row, Transition.CANCEL, principal.role)

        async with self._atomic():
            updated = await self._guarded_update(
                row,
                {
                    "status": AppointmentStatus.CANCELLED,
                    "cancelled_at": utcnow(),
                    "cancelled_by": principal.id,
                    "cancellation_reason": reason,
                },
                principal,
            )

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            cancelled_by=str(principal.id),
            role=principal.role.value,
        )
        await self._after_transition(updated, Transition.CANCEL, principal, reason=reason)
        return AppointmentResponse.model_validate(updated)

    async def reschedule(
        self,
        appointment_id: UUID,
        principal: Principal,
        data: AppointmentReschedule,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new slot.

        The original row is kept for history as ``rescheduled`` and a new
        ``scheduled`` row takes the new slot; the two are linked both ways.
        The conflict scan ignores the original row, so moving within its own
        slot is allowed.

        Args:
            appointment_id: Appointment ID
            principal: Doctor or hospital owning the appointment
            data: New start, optional new duration and reason

        Returns:
            The new appointment row
        """
        row = await self._load(appointment_id, principal)
        ensure_transition(row, Transition.RESCHEDULE, principal.role)

        duration = data.duration_minutes or row["duration_minutes"]
        time_range = TimeRange.from_duration(data.scheduled_start, duration)
        doctor_id = row["doctor_id"]

        async with self._atomic(doctor_id):
            if doctor_id is not None:
                await self.conflicts.ensure_available(
                    doctor_id, time_range, exclude_appointment_id=row["id"]
                )

            new_row = await self.store.insert(
                {
                    "patient_id": row["patient_id"],
                    "doctor_id": doctor_id,
                    "hospital_id": row["hospital_id"],
                    "requested_by": row["requested_by"],
                    **self._slot_values(time_range),
                    "status": AppointmentStatus.SCHEDULED.value,
                    "approval_status": row["approval_status"],
                    "approved_by": row["approved_by"],
                    "approved_at": row["approved_at"],
                    "approval_notes": row["approval_notes"],
                    "specialty": row["specialty"],
                    "appointment_type": row["appointment_type"],
                    "location": row["location"],
                    "notes": row["notes"],
                    "medical_notes": row["medical_notes"],
                    "rescheduled_from_id": row["id"],
                    "reschedule_reason": data.reason,
                }
            )
            retired: dict[str, Any] = {
                "status": AppointmentStatus.RESCHEDULED,
                "rescheduled_to_id": new_row["id"],
                "reschedule_reason": data.reason,
            }
            # A pending decision moves with the slot; only the new row can be settled
            if row["approval_status"] == ApprovalStatus.PENDING:
                retired["approval_status"] = None
            await self._guarded_update(
                row,
                retired,
                principal,
                expected={"status": AppointmentStatus.SCHEDULED, "doctor_id": doctor_id},
            )

        logger.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            new_appointment_id=str(new_row["id"]),
            old_start=row["scheduled_start"].isoformat(),
            new_start=new_row["scheduled_start"].isoformat(),
        )
        await self._after_transition(
            new_row,
            Transition.RESCHEDULE,
            principal,
            reason=data.reason,
            previous=row,
        )
        return AppointmentResponse.model_validate(new_row)

    async def update_details(
        self,
        appointment_id: UUID,
        principal: Principal,
        data: AppointmentDetailsUpdate,
    ) -> AppointmentResponse:
        """Edit descriptive metadata of a scheduled appointment. Notifies nobody."""
        row = await self._load(appointment_id, principal)
        ensure_transition(row, Transition.UPDATE_DETAILS, principal.role)

        patch = data.model_dump(exclude_unset=True)
        if "medical_notes" in patch and principal.role != UserRole.DOCTOR:
            raise ForbiddenException("Apenas o médico pode editar as notas médicas")
        if not patch:
            return AppointmentResponse.model_validate(row)

        async with self._atomic():
            updated = await self._guarded_update(row, patch, principal)

        logger.info(
            "appointment_details_updated",
            appointment_id=str(appointment_id),
            fields=sorted(patch),
        )
        self._invalidate_statistics(updated.get("hospital_id"))
        return AppointmentResponse.model_validate(updated)

    async def assign_doctor(
        self,
        appointment_id: UUID,
        principal: Principal,
        doctor_id: UUID,
    ) -> AppointmentResponse:
        """
        Bind a doctor to a hospital appointment, or swap the bound doctor.

        The slot is conflict-checked against the new doctor's agenda now;
        an appointment created without a doctor was never checked.

        Raises:
            NotFoundException: Appointment or doctor missing
            BadRequestException: Doctor not affiliated with the hospital
            SchedulingConflictException: Doctor is busy in that slot
        """
        row = await self._load(appointment_id, principal)
        ensure_transition(row, Transition.ASSIGN_DOCTOR, principal.role)

        if row["doctor_id"] == doctor_id:
            return AppointmentResponse.model_validate(row)

        await self.users.get_doctor(doctor_id)
        await self.users.ensure_affiliated(doctor_id, principal.id)

        time_range = TimeRange(row["scheduled_start"], row["scheduled_end"])
        async with self._atomic(doctor_id):
            await self.conflicts.ensure_available(
                doctor_id, time_range, exclude_appointment_id=row["id"]
            )
            updated = await self._guarded_update(
                row,
                {"doctor_id": doctor_id},
                principal,
                expected={"status": AppointmentStatus.SCHEDULED, "doctor_id": row["doctor_id"]},
            )

        logger.info(
            "appointment_doctor_assigned",
            appointment_id=str(appointment_id),
            doctor_id=str(doctor_id),
            previous_doctor_id=str(row["doctor_id"]) if row["doctor_id"] else None,
        )
        await self._after_transition(updated, Transition.ASSIGN_DOCTOR, principal, previous=row)
        return AppointmentResponse.model_validate(updated)

    # ------------------------------------------------------------------
    # Approval workflow
    # ------------------------------------------------------------------

    async def _decide(
        self,
        appointment_id: UUID,
        principal: Principal,
        transition: Transition,
        patch: dict[str, Any],
        reason: str | None = None,
    ) -> AppointmentResponse:
        row = await self._load(appointment_id, principal)
        ensure_actor_allowed(transition, principal.role)

        # A repeated decision is a successful no-op, not an error.
        if row["status"] != AppointmentStatus.COMPLETED.value and approval_is_settled(row):
            logger.info(
                "appointment_approval_noop",
                appointment_id=str(appointment_id),
                transition=transition.value,
                approval_status=row["approval_status"],
            )
            return AppointmentResponse.model_validate(row)

        ensure_transition(row, transition, principal.role)

        scope = ownership_scope(principal)
        current: dict[str, Any] | None = None
        async with self._atomic():
            updated = await self.store.update_where(
                row["id"],
                patch,
                scope=scope,
                expected={
                    "status": AppointmentStatus.SCHEDULED,
                    "approval_status": ApprovalStatus.PENDING,
                },
            )
            if updated is None:
                current = await self.store.get_by_id(row["id"], scope=scope)
                if current is None or current["status"] == AppointmentStatus.COMPLETED.value:
                    raise StaleStateException(row["id"])
                if not approval_is_settled(current):
                    raise StaleStateException(row["id"])

        if updated is None and current is not None:
            # A concurrent decision won; report it without notifying again.
            logger.info(
                "appointment_approval_noop",
                appointment_id=str(appointment_id),
                transition=transition.value,
                approval_status=current["approval_status"],
            )
            return AppointmentResponse.model_validate(current)

        logger.info(
            f"appointment_{updated['approval_status']}",
            appointment_id=str(appointment_id),
            hospital_id=str(principal.id),
        )
        await self._after_transition(updated, transition, principal, reason=reason)
        return AppointmentResponse.model_validate(updated)

    async def approve(
        self,
        appointment_id: UUID,
        principal: Principal,
        notes: str | None = None,
    ) -> AppointmentResponse:
        """
        Approve a pending appointment request.

        Idempotent: an appointment already approved or rejected is returned
        unchanged and nobody is notified again.
        """
        return await self._decide(
            appointment_id,
            principal,
            Transition.APPROVE,
            {
                "approval_status": ApprovalStatus.APPROVED,
                "approved_by": principal.id,
                "approved_at": utcnow(),
                "approval_notes": notes,
            },
        )

    async def reject(
        self,
        appointment_id: UUID,
        principal: Principal,
        reason: str | None = None,
    ) -> AppointmentResponse:
        """
        Reject a pending appointment request; a rejected request is cancelled.

        Idempotent in the same way as ``approve``.
        """
        now = utcnow()
        return await self._decide(
            appointment_id,
            principal,
            Transition.REJECT,
            {
                "approval_status": ApprovalStatus.REJECTED,
                "status": AppointmentStatus.CANCELLED,
                "rejection_reason": reason,
                "cancelled_at": now,
                "cancelled_by": principal.id,
                "cancellation_reason": reason,
            },
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_appointment(
        self,
        appointment_id: UUID,
        principal: Principal,
    ) -> AppointmentResponse:
        """Get one of the principal's appointments."""
        return AppointmentResponse.model_validate(await self._load(appointment_id, principal))

    async def list_appointments(
        self,
        principal: Principal,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List the principal's appointments with filters and pagination.

        Args:
            principal: Acting principal; scopes the listing to their own rows
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments
        """
        total, rows = await self.store.find_page(ownership_scope(principal), filters)
        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[AppointmentResponse.model_validate(row) for row in rows],
        )

    async def get_statistics(self, hospital_id: UUID) -> AppointmentStatistics:
        """Counts per status and approval status of a hospital, cached briefly."""
        if self.cache:
            cached = self.cache.get_statistics(hospital_id)
            if cached:
                return AppointmentStatistics.model_validate(cached)

        stats = await self.store.statistics({"hospital_id": hospital_id})

        if self.cache:
            self.cache.set_statistics(hospital_id, stats)
        return AppointmentStatistics.model_validate(stats)

    async def list_hospital_appointments(
        self,
        principal: Principal,
        filters: AppointmentFilters,
    ) -> HospitalAppointmentListResponse:
        """Hospital listing plus its statistics rollup."""
        if principal.role != UserRole.HOSPITAL_ADMIN:
            raise ForbiddenException("Apenas hospitais podem acessar esta listagem")

        page = await self.list_appointments(principal, filters)
        statistics = await self.get_statistics(principal.id)
        return HospitalAppointmentListResponse(
            **page.model_dump(),
            statistics=statistics,
        )
