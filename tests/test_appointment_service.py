"""Tests for appointment creation and lifecycle transitions."""

import asyncio
from itertools import combinations
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    SchedulingConflictException,
    StaleStateException,
    ValidationException,
)
from app.core.timerange import TimeRange
from app.models import appointments
from app.schemas.appointments import (
    AppointmentComplete,
    AppointmentDetailsUpdate,
    AppointmentFilters,
    AppointmentRequestCreate,
    AppointmentReschedule,
    DoctorAppointmentCreate,
    HospitalAppointmentCreate,
    PatientAppointmentCreate,
)
from app.services.appointment_service import AppointmentService
from helpers import at, notifications_for, principal_for


def doctor_booking(patient, start, duration=60, **extra) -> DoctorAppointmentCreate:
    return DoctorAppointmentCreate(
        patient_id=patient["id"],
        scheduled_start=start,
        duration_minutes=duration,
        specialty="Cardiologia",
        **extra,
    )


def hospital_booking(patient, start, doctor=None, duration=60) -> HospitalAppointmentCreate:
    return HospitalAppointmentCreate(
        patient_id=patient["id"],
        doctor_id=doctor["id"] if doctor else None,
        scheduled_start=start,
        duration_minutes=duration,
        specialty="Clínica Geral",
    )


async def load_row(db_session: AsyncSession, appointment_id) -> dict:
    result = await db_session.execute(select(appointments).where(appointments.c.id == appointment_id))
    return dict(result.mappings().one())


# ---------------------------------------------------------------------------
# Double-booking
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_overlapping_booking_is_rejected(service: AppointmentService, doctor, patient):
    """09:00-10:00 is booked; 09:30 for 30 minutes collides."""
    existing = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(9))
    )

    with pytest.raises(SchedulingConflictException) as exc_info:
        await service.create_doctor_appointment(
            principal_for(doctor), doctor_booking(patient, at(9, 30), duration=30)
        )

    assert exc_info.value.conflicting_appointment_id == existing.id


@pytest.mark.asyncio
async def test_adjacent_booking_is_accepted(service: AppointmentService, doctor, patient):
    """09:00-10:00 is booked; 10:00 for 30 minutes only touches it."""
    await service.create_doctor_appointment(principal_for(doctor), doctor_booking(patient, at(9)))

    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10), duration=30)
    )

    assert created.status == "scheduled"
    assert created.scheduled_end == at(10, 30)


@pytest.mark.asyncio
async def test_concurrent_bookings_for_same_slot(
    session_factory, make_service, doctor, patient, other_patient
):
    """Two racing bookings of one slot: exactly one wins."""
    async with session_factory() as first_session, session_factory() as second_session:
        first = make_service(first_session)
        second = make_service(second_session)

        results = await asyncio.gather(
            first.create_doctor_appointment(principal_for(doctor), doctor_booking(patient, at(14))),
            second.create_doctor_appointment(
                principal_for(doctor), doctor_booking(other_patient, at(14, 15))
            ),
            return_exceptions=True,
        )

    conflicts = [r for r in results if isinstance(r, SchedulingConflictException)]
    created = [r for r in results if not isinstance(r, BaseException)]
    assert len(conflicts) == 1
    assert len(created) == 1


@pytest.mark.asyncio
async def test_cancelled_slot_is_free_again(
    service: AppointmentService, doctor, hospital, patient, other_patient
):
    booked = await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(patient, at(11), doctor)
    )
    await service.cancel(booked.id, principal_for(patient), reason="Imprevisto")

    rebooked = await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(other_patient, at(11), doctor)
    )

    assert rebooked.doctor_id == doctor["id"]
    assert rebooked.patient_id == other_patient["id"]


@pytest.mark.asyncio
async def test_doctor_agenda_never_overlaps(
    service: AppointmentService, doctor, hospital, patient, other_patient
):
    """Scheduled appointments of one doctor stay disjoint through a mix of operations."""
    doctor_principal = principal_for(doctor)
    rejected = 0
    for start in [at(8), at(8, 30), at(9), at(9, 45), at(10, 15), at(12)]:
        try:
            await service.create_doctor_appointment(doctor_principal, doctor_booking(patient, start))
        except SchedulingConflictException:
            rejected += 1
    assert rejected == 2

    listing = await service.list_appointments(
        doctor_principal, AppointmentFilters(status="scheduled")
    )
    first = listing.items[0]
    assert first.scheduled_start == at(8)

    # 11:30-12:30 runs into the 12:00 appointment
    with pytest.raises(SchedulingConflictException):
        await service.reschedule(
            first.id, doctor_principal, AppointmentReschedule(scheduled_start=at(11, 30))
        )
    await service.reschedule(first.id, doctor_principal, AppointmentReschedule(scheduled_start=at(14)))

    # 08:00 was freed by the reschedule
    await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(other_patient, at(8), doctor)
    )

    result = await service.db.execute(
        select(appointments).where(
            appointments.c.doctor_id == doctor["id"],
            appointments.c.status == "scheduled",
        )
    )
    slots = [
        TimeRange(row["scheduled_start"], row["scheduled_end"]) for row in result.mappings().all()
    ]
    assert len(slots) == 5
    for a, b in combinations(slots, 2):
        assert not a.overlaps(b)


# ---------------------------------------------------------------------------
# Creation paths
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_patient_self_service_booking(
    service: AppointmentService, db_session: AsyncSession, patient, doctor, email_service
):
    created = await service.create_patient_appointment(
        principal_for(patient),
        PatientAppointmentCreate(
            specialty="Dermatologia",
            appointment_type="primeira-consulta",
            doctor_id=doctor["id"],
            appointment_date="2024-06-01",
            appointment_time="15:00",
        ),
    )

    assert created.patient_id == patient["id"]
    assert created.scheduled_start == at(15)
    assert created.duration_minutes == 60
    assert created.approval_status is None
    assert created.confirmation_sent is True
    assert created.confirmation_sent_at is not None

    assert len(email_service.sent) == 1
    confirmation = email_service.sent[0]
    assert confirmation.patient_email == patient["email"]
    assert confirmation.doctor_name == "Dra. Ana Costa"

    # Confirmed by email only
    assert await notifications_for(db_session, doctor["id"]) == []


@pytest.mark.asyncio
async def test_failed_confirmation_email_keeps_booking(
    db_session: AsyncSession, make_service, email_service, patient, doctor
):
    email_service.result = False
    service = make_service(db_session)

    created = await service.create_patient_appointment(
        principal_for(patient),
        PatientAppointmentCreate(
            specialty="Pediatria",
            appointment_type="retorno",
            doctor_id=doctor["id"],
            scheduled_start=at(16),
        ),
    )

    assert created.status == "scheduled"
    assert created.confirmation_sent is False
    assert (await load_row(db_session, created.id))["confirmation_sent"] is False


@pytest.mark.asyncio
async def test_confirmation_flag_write_failure_keeps_booking(
    db_session: AsyncSession, make_service, email_service, patient, doctor, monkeypatch
):
    service = make_service(db_session)
    monkeypatch.setattr(
        service.store, "update_where", AsyncMock(side_effect=SQLAlchemyError("connection reset"))
    )

    created = await service.create_patient_appointment(
        principal_for(patient),
        PatientAppointmentCreate(
            specialty="Pediatria",
            appointment_type="retorno",
            doctor_id=doctor["id"],
            scheduled_start=at(16),
        ),
    )

    assert len(email_service.sent) == 1
    assert created.status == "scheduled"
    assert created.confirmation_sent is False
    stored = await load_row(db_session, created.id)
    assert stored["status"] == "scheduled"
    assert stored["confirmation_sent"] is False


def test_self_service_requires_a_doctor():
    with pytest.raises(PydanticValidationError):
        PatientAppointmentCreate(
            specialty="Pediatria", appointment_type="retorno", scheduled_start=at(16)
        )


@pytest.mark.asyncio
async def test_patient_request_waits_for_hospital(
    service: AppointmentService, db_session: AsyncSession, patient, doctor, hospital
):
    created = await service.create_appointment_request(
        principal_for(patient),
        AppointmentRequestCreate(
            hospital_id=hospital["id"],
            doctor_id=doctor["id"],
            scheduled_start=at(10),
            specialty="Cardiologia",
        ),
    )

    assert created.status == "scheduled"
    assert created.approval_status == "pending"
    assert created.location == "Hospital Central"
    assert created.appointment_type == "primeira-consulta"
    assert created.requested_by == patient["id"]

    hospital_notifications = await notifications_for(db_session, hospital["id"], created.id)
    assert [n["type"] for n in hospital_notifications] == ["appointment_request"]
    assert await notifications_for(db_session, patient["id"]) == []


@pytest.mark.asyncio
async def test_pending_request_holds_its_slot(service: AppointmentService, patient, doctor, hospital):
    await service.create_appointment_request(
        principal_for(patient),
        AppointmentRequestCreate(
            hospital_id=hospital["id"], doctor_id=doctor["id"], scheduled_start=at(10)
        ),
    )

    with pytest.raises(SchedulingConflictException):
        await service.create_doctor_appointment(principal_for(doctor), doctor_booking(patient, at(10)))


@pytest.mark.asyncio
async def test_doctor_request_requires_patient(service: AppointmentService, doctor, hospital):
    with pytest.raises(ValidationException):
        await service.create_appointment_request(
            principal_for(doctor),
            AppointmentRequestCreate(hospital_id=hospital["id"], scheduled_start=at(10)),
        )


@pytest.mark.asyncio
async def test_doctor_request_notifies_patient_and_hospital(
    service: AppointmentService, db_session: AsyncSession, doctor, patient, hospital
):
    created = await service.create_appointment_request(
        principal_for(doctor),
        AppointmentRequestCreate(
            hospital_id=hospital["id"], patient_id=patient["id"], scheduled_start=at(13)
        ),
    )

    assert created.doctor_id == doctor["id"]
    assert len(await notifications_for(db_session, hospital["id"], created.id)) == 1
    assert len(await notifications_for(db_session, patient["id"], created.id)) == 1
    assert await notifications_for(db_session, doctor["id"]) == []


@pytest.mark.asyncio
async def test_request_with_unaffiliated_doctor_rejected(
    service: AppointmentService, patient, doctor, other_hospital
):
    with pytest.raises(BadRequestException):
        await service.create_appointment_request(
            principal_for(patient),
            AppointmentRequestCreate(
                hospital_id=other_hospital["id"], doctor_id=doctor["id"], scheduled_start=at(10)
            ),
        )


@pytest.mark.asyncio
async def test_request_to_unknown_hospital(service: AppointmentService, patient, doctor):
    with pytest.raises(NotFoundException):
        await service.create_appointment_request(
            principal_for(patient),
            AppointmentRequestCreate(hospital_id=doctor["id"], scheduled_start=at(10)),
        )


@pytest.mark.asyncio
async def test_doctor_booking_for_unknown_patient(service: AppointmentService, doctor, other_doctor):
    with pytest.raises(NotFoundException):
        await service.create_doctor_appointment(
            principal_for(doctor), doctor_booking(other_doctor, at(10))
        )


@pytest.mark.asyncio
async def test_doctor_booking_defaults(
    service: AppointmentService, db_session: AsyncSession, doctor, patient
):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10), duration=30)
    )

    assert created.doctor_id == doctor["id"]
    assert created.hospital_id is None
    assert created.approval_status is None
    assert created.location == "Consultório Médico"
    assert created.duration_minutes == 30

    patient_notifications = await notifications_for(db_session, patient["id"], created.id)
    assert [n["type"] for n in patient_notifications] == ["appointment_scheduled"]


@pytest.mark.asyncio
async def test_hospital_booking_without_doctor_then_assign(
    service: AppointmentService, db_session: AsyncSession, hospital, doctor, other_doctor, patient
):
    """Unassigned bookings skip the conflict check until a doctor is bound."""
    created = await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(patient, at(9))
    )
    assert created.status == "scheduled"
    assert created.approval_status == "approved"
    assert created.approved_by == hospital["id"]
    assert created.doctor_id is None
    assert created.location == "Hospital Central"

    await service.create_doctor_appointment(principal_for(doctor), doctor_booking(patient, at(9, 30)))

    with pytest.raises(SchedulingConflictException):
        await service.assign_doctor(created.id, principal_for(hospital), doctor["id"])
    assert (await load_row(db_session, created.id))["doctor_id"] is None

    assigned = await service.assign_doctor(created.id, principal_for(hospital), other_doctor["id"])
    assert assigned.doctor_id == other_doctor["id"]

    doctor_notifications = await notifications_for(db_session, other_doctor["id"], created.id)
    assert [n["type"] for n in doctor_notifications] == ["appointment_scheduled"]


@pytest.mark.asyncio
async def test_reassigning_doctor_tells_previous_one(
    service: AppointmentService, db_session: AsyncSession, hospital, doctor, other_doctor, patient
):
    created = await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(patient, at(9), doctor)
    )

    await service.assign_doctor(created.id, principal_for(hospital), other_doctor["id"])

    previous = await notifications_for(db_session, doctor["id"], created.id)
    assert [n["type"] for n in previous] == ["appointment_scheduled", "appointment_cancelled"]


@pytest.mark.asyncio
async def test_assigning_same_doctor_is_noop(
    service: AppointmentService, db_session: AsyncSession, hospital, doctor, patient
):
    created = await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(patient, at(9), doctor)
    )
    before = await notifications_for(db_session, doctor["id"])

    result = await service.assign_doctor(created.id, principal_for(hospital), doctor["id"])

    assert result.updated_at == created.updated_at
    assert await notifications_for(db_session, doctor["id"]) == before


@pytest.mark.asyncio
async def test_hospital_booking_with_unaffiliated_doctor(
    service: AppointmentService, other_hospital, doctor, patient
):
    with pytest.raises(BadRequestException):
        await service.create_hospital_appointment(
            principal_for(other_hospital), hospital_booking(patient, at(9), doctor)
        )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_complete_records_clinical_outcome(
    service: AppointmentService, db_session: AsyncSession, doctor, patient
):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )

    completed = await service.complete(
        created.id,
        principal_for(doctor),
        AppointmentComplete(diagnosis="Hipertensão leve", prescription="Losartana 50mg"),
    )

    assert completed.status == "completed"
    assert completed.completed_at is not None
    assert completed.diagnosis == "Hipertensão leve"

    patient_notifications = await notifications_for(db_session, patient["id"], created.id)
    assert patient_notifications[-1]["type"] == "appointment_completed"
    assert "Diagnóstico e prescrição disponíveis." in patient_notifications[-1]["content"]


@pytest.mark.asyncio
async def test_completed_appointment_is_frozen(
    service: AppointmentService, db_session: AsyncSession, doctor, patient
):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )
    await service.complete(created.id, principal_for(doctor), AppointmentComplete(diagnosis="Ok"))
    frozen = await load_row(db_session, created.id)

    attempts = [
        service.complete(created.id, principal_for(doctor), AppointmentComplete()),
        service.cancel(created.id, principal_for(patient)),
        service.reschedule(
            created.id, principal_for(doctor), AppointmentReschedule(scheduled_start=at(15))
        ),
        service.update_details(
            created.id, principal_for(doctor), AppointmentDetailsUpdate(notes="Tarde demais")
        ),
    ]
    for attempt in attempts:
        with pytest.raises(InvalidTransitionException):
            await attempt

    assert await load_row(db_session, created.id) == frozen


@pytest.mark.asyncio
async def test_complete_by_another_doctor_is_not_found(
    service: AppointmentService, doctor, other_doctor, patient
):
    """Rows outside the caller's scope look missing rather than forbidden."""
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )

    with pytest.raises(NotFoundException):
        await service.complete(created.id, principal_for(other_doctor), AppointmentComplete())

    assert (await service.get_appointment(created.id, principal_for(doctor))).status == "scheduled"


@pytest.mark.asyncio
async def test_patient_cannot_see_other_patients_appointment(
    service: AppointmentService, doctor, patient, other_patient
):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )

    with pytest.raises(NotFoundException):
        await service.get_appointment(created.id, principal_for(other_patient))
    with pytest.raises(NotFoundException):
        await service.cancel(created.id, principal_for(other_patient))


@pytest.mark.asyncio
async def test_complete_blocked_while_pending(
    service: AppointmentService, patient, doctor, hospital
):
    created = await service.create_appointment_request(
        principal_for(patient),
        AppointmentRequestCreate(
            hospital_id=hospital["id"], doctor_id=doctor["id"], scheduled_start=at(10)
        ),
    )

    with pytest.raises(InvalidTransitionException):
        await service.complete(created.id, principal_for(doctor), AppointmentComplete())


@pytest.mark.asyncio
async def test_patient_cannot_complete(service: AppointmentService, doctor, patient):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )
    with pytest.raises(ForbiddenException):
        await service.complete(created.id, principal_for(patient), AppointmentComplete())


@pytest.mark.asyncio
async def test_cancel_notifies_other_parties(
    service: AppointmentService, db_session: AsyncSession, hospital, doctor, patient
):
    created = await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(patient, at(10), doctor)
    )

    cancelled = await service.cancel(created.id, principal_for(patient), reason="Viagem")

    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_by == patient["id"]
    assert cancelled.cancellation_reason == "Viagem"

    for user in (doctor, hospital):
        received = await notifications_for(db_session, user["id"], created.id)
        assert received[-1]["type"] == "appointment_cancelled"
        assert "Motivo: Viagem" in received[-1]["content"]
    assert [
        n["type"] for n in await notifications_for(db_session, patient["id"], created.id)
    ] == ["appointment_scheduled"]


@pytest.mark.asyncio
async def test_cancelling_twice_is_invalid(service: AppointmentService, doctor, patient):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )
    await service.cancel(created.id, principal_for(doctor))

    with pytest.raises(InvalidTransitionException):
        await service.cancel(created.id, principal_for(doctor))


@pytest.mark.asyncio
async def test_reschedule_creates_linked_appointment(
    service: AppointmentService, db_session: AsyncSession, doctor, patient
):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )

    moved = await service.reschedule(
        created.id,
        principal_for(doctor),
        AppointmentReschedule(scheduled_start=at(14), reason="Cirurgia de urgência"),
    )

    assert moved.id != created.id
    assert moved.status == "scheduled"
    assert moved.scheduled_start == at(14)
    assert moved.duration_minutes == 60
    assert moved.rescheduled_from_id == created.id

    original = await load_row(db_session, created.id)
    assert original["status"] == "rescheduled"
    assert original["rescheduled_to_id"] == moved.id
    assert original["scheduled_start"] == at(10)

    received = await notifications_for(db_session, patient["id"], moved.id)
    assert received[-1]["type"] == "appointment_rescheduled"
    assert "Motivo: Cirurgia de urgência" in received[-1]["content"]


@pytest.mark.asyncio
async def test_reschedule_within_own_slot(service: AppointmentService, doctor, patient):
    """Moving 30 minutes later only overlaps the appointment being moved."""
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )

    moved = await service.reschedule(
        created.id, principal_for(doctor), AppointmentReschedule(scheduled_start=at(10, 30))
    )

    assert moved.scheduled_start == at(10, 30)
    assert moved.scheduled_end == at(11, 30)


@pytest.mark.asyncio
async def test_reschedule_into_taken_slot(
    service: AppointmentService, db_session: AsyncSession, doctor, patient, other_patient
):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )
    blocker = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(other_patient, at(14))
    )

    with pytest.raises(SchedulingConflictException) as exc_info:
        await service.reschedule(
            created.id, principal_for(doctor), AppointmentReschedule(scheduled_start=at(14, 30))
        )

    assert exc_info.value.conflicting_appointment_id == blocker.id
    assert (await load_row(db_session, created.id))["status"] == "scheduled"


@pytest.mark.asyncio
async def test_patient_cannot_reschedule(service: AppointmentService, doctor, patient):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )
    with pytest.raises(ForbiddenException):
        await service.reschedule(
            created.id, principal_for(patient), AppointmentReschedule(scheduled_start=at(12))
        )


@pytest.mark.asyncio
async def test_update_details_is_silent(
    service: AppointmentService, db_session: AsyncSession, doctor, patient
):
    created = await service.create_doctor_appointment(
        principal_for(doctor), doctor_booking(patient, at(10))
    )
    before = await notifications_for(db_session, patient["id"])

    updated = await service.update_details(
        created.id,
        principal_for(doctor),
        AppointmentDetailsUpdate(notes="Trazer exames", medical_notes="Histórico familiar"),
    )

    assert updated.notes == "Trazer exames"
    assert updated.medical_notes == "Histórico familiar"
    assert await notifications_for(db_session, patient["id"]) == before


@pytest.mark.asyncio
async def test_only_doctor_edits_medical_notes(
    service: AppointmentService, hospital, doctor, patient
):
    created = await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(patient, at(10), doctor)
    )

    with pytest.raises(ForbiddenException):
        await service.update_details(
            created.id, principal_for(hospital), AppointmentDetailsUpdate(medical_notes="x")
        )

    updated = await service.update_details(
        created.id, principal_for(hospital), AppointmentDetailsUpdate(location="Sala 3")
    )
    assert updated.location == "Sala 3"


@pytest.mark.asyncio
async def test_stale_read_is_not_overwritten(
    session_factory, make_service, doctor, patient, monkeypatch
):
    """A write based on an outdated read fails instead of clobbering the newer state."""
    async with session_factory() as first_session, session_factory() as second_session:
        first = make_service(first_session)
        second = make_service(second_session)

        created = await first.create_doctor_appointment(
            principal_for(doctor), doctor_booking(patient, at(10))
        )
        stale = await first._load(created.id, principal_for(doctor))

        await second.cancel(created.id, principal_for(patient), reason="Desistiu")

        monkeypatch.setattr(first, "_load", AsyncMock(return_value=stale))
        with pytest.raises(StaleStateException):
            await first.complete(created.id, principal_for(doctor), AppointmentComplete())

        current = await second.get_appointment(created.id, principal_for(doctor))
        assert current.status == "cancelled"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_listing_is_scoped_and_filtered(
    service: AppointmentService, doctor, patient, other_patient
):
    doctor_principal = principal_for(doctor)
    first = await service.create_doctor_appointment(doctor_principal, doctor_booking(patient, at(9)))
    await service.create_doctor_appointment(doctor_principal, doctor_booking(other_patient, at(11)))
    await service.create_doctor_appointment(
        doctor_principal, doctor_booking(patient, at(9, day=2))
    )
    await service.cancel(first.id, doctor_principal)

    mine = await service.list_appointments(principal_for(patient), AppointmentFilters())
    assert mine.total == 2
    assert {item.patient_id for item in mine.items} == {patient["id"]}

    agenda = await service.list_appointments(doctor_principal, AppointmentFilters())
    assert agenda.total == 3
    assert [item.scheduled_start for item in agenda.items] == sorted(
        item.scheduled_start for item in agenda.items
    )

    scheduled_today = await service.list_appointments(
        doctor_principal,
        AppointmentFilters(status="scheduled", date_from="2024-06-01", date_to="2024-06-01"),
    )
    assert scheduled_today.total == 1
    assert scheduled_today.items[0].patient_id == other_patient["id"]

    paged = await service.list_appointments(doctor_principal, AppointmentFilters(page=2, page_size=2))
    assert paged.total == 3
    assert len(paged.items) == 1


@pytest.mark.asyncio
async def test_hospital_statistics(service: AppointmentService, patient, doctor, hospital):
    hospital_principal = principal_for(hospital)
    booked = await service.create_hospital_appointment(
        hospital_principal, hospital_booking(patient, at(9), doctor)
    )
    await service.create_appointment_request(
        principal_for(patient),
        AppointmentRequestCreate(hospital_id=hospital["id"], scheduled_start=at(15)),
    )
    await service.cancel(booked.id, hospital_principal)

    listing = await service.list_hospital_appointments(hospital_principal, AppointmentFilters())

    assert listing.total == 2
    assert listing.statistics.total == 2
    assert listing.statistics.by_status["cancelled"] == 1
    assert listing.statistics.by_status["scheduled"] == 1
    assert listing.statistics.by_approval == {"pending": 1, "approved": 1, "rejected": 0}



@pytest.mark.asyncio
async def test_rescheduled_request_leaves_one_pending_decision(
    service: AppointmentService, db_session: AsyncSession, patient, doctor, hospital
):
    hospital_principal = principal_for(hospital)
    request = await service.create_appointment_request(
        principal_for(patient),
        AppointmentRequestCreate(
            hospital_id=hospital["id"], doctor_id=doctor["id"], scheduled_start=at(10)
        ),
    )

    moved = await service.reschedule(
        request.id, principal_for(doctor), AppointmentReschedule(scheduled_start=at(15))
    )

    old = await load_row(db_session, request.id)
    assert old["status"] == "rescheduled"
    assert old["approval_status"] is None
    assert moved.approval_status == "pending"

    queue = await service.list_hospital_appointments(
        hospital_principal, AppointmentFilters(approval_status="pending")
    )
    assert [item.id for item in queue.items] == [moved.id]
    assert queue.statistics.by_approval["pending"] == 1

    approved = await service.approve(moved.id, hospital_principal)
    assert approved.approval_status == "approved"


@pytest.mark.asyncio
async def test_rescheduling_approved_booking_keeps_approval_history(
    service: AppointmentService, db_session: AsyncSession, patient, doctor, hospital
):
    booked = await service.create_hospital_appointment(
        principal_for(hospital), hospital_booking(patient, at(9), doctor)
    )

    moved = await service.reschedule(
        booked.id, principal_for(hospital), AppointmentReschedule(scheduled_start=at(11))
    )

    assert (await load_row(db_session, booked.id))["approval_status"] == "approved"
    assert moved.approval_status == "approved"
