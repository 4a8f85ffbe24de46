"""Tests for double-booking detection."""

from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import SchedulingConflictException
from app.core.timerange import TimeRange
from app.services.appointment_store import AppointmentStore
from app.services.conflict_checker import ConflictChecker
from helpers import at


async def book(
    store: AppointmentStore,
    doctor: dict[str, Any],
    patient: dict[str, Any],
    start,
    duration: int = 60,
    status: str = "scheduled",
) -> dict[str, Any]:
    slot = TimeRange.from_duration(start, duration)
    row = await store.insert(
        {
            "patient_id": patient["id"],
            "doctor_id": doctor["id"],
            "scheduled_start": slot.start,
            "scheduled_end": slot.end,
            "duration_minutes": duration,
            "status": status,
        }
    )
    await store.db.commit()
    return row


@pytest.mark.asyncio
async def test_free_agenda_has_no_conflict(db_session: AsyncSession, doctor):
    checker = ConflictChecker(AppointmentStore(db_session))
    assert await checker.find_conflict(doctor["id"], TimeRange.from_duration(at(10), 60)) is None


@pytest.mark.asyncio
async def test_overlap_is_reported(db_session: AsyncSession, doctor, patient):
    store = AppointmentStore(db_session)
    existing = await book(store, doctor, patient, at(10))
    checker = ConflictChecker(store)

    conflict = await checker.find_conflict(doctor["id"], TimeRange.from_duration(at(10, 30), 60))
    assert conflict is not None
    assert conflict["id"] == existing["id"]
    assert await checker.has_conflict(doctor["id"], TimeRange.from_duration(at(9, 30), 45))


@pytest.mark.asyncio
async def test_back_to_back_slots_do_not_conflict(db_session: AsyncSession, doctor, patient):
    store = AppointmentStore(db_session)
    await book(store, doctor, patient, at(10))
    checker = ConflictChecker(store)

    assert not await checker.has_conflict(doctor["id"], TimeRange.from_duration(at(11), 60))
    assert not await checker.has_conflict(doctor["id"], TimeRange.from_duration(at(9), 60))


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["cancelled", "rescheduled", "completed"])
async def test_inactive_appointments_free_their_slot(
    db_session: AsyncSession, doctor, patient, status
):
    store = AppointmentStore(db_session)
    await book(store, doctor, patient, at(10), status=status)

    checker = ConflictChecker(store)
    assert not await checker.has_conflict(doctor["id"], TimeRange.from_duration(at(10), 60))


@pytest.mark.asyncio
async def test_other_doctors_agenda_is_ignored(db_session: AsyncSession, doctor, other_doctor, patient):
    store = AppointmentStore(db_session)
    await book(store, other_doctor, patient, at(10))

    checker = ConflictChecker(store)
    assert not await checker.has_conflict(doctor["id"], TimeRange.from_duration(at(10), 60))


@pytest.mark.asyncio
async def test_excluded_appointment_is_skipped(db_session: AsyncSession, doctor, patient):
    store = AppointmentStore(db_session)
    existing = await book(store, doctor, patient, at(10))
    checker = ConflictChecker(store)

    slot = TimeRange.from_duration(at(10, 15), 60)
    assert await checker.has_conflict(doctor["id"], slot)
    assert not await checker.has_conflict(doctor["id"], slot, exclude_appointment_id=existing["id"])


@pytest.mark.asyncio
async def test_ensure_available_raises_with_conflicting_id(db_session: AsyncSession, doctor, patient):
    store = AppointmentStore(db_session)
    existing = await book(store, doctor, patient, at(10))
    checker = ConflictChecker(store)

    with pytest.raises(SchedulingConflictException) as exc_info:
        await checker.ensure_available(doctor["id"], TimeRange.from_duration(at(10, 59), 30))

    assert exc_info.value.status_code == 409
    assert exc_info.value.conflicting_appointment_id == existing["id"]
    assert exc_info.value.details == {"conflicting_appointment_id": str(existing["id"])}


@pytest.mark.asyncio
async def test_conflict_check_requires_doctor(db_session: AsyncSession):
    checker = ConflictChecker(AppointmentStore(db_session))
    with pytest.raises(ValueError):
        await checker.find_conflict(None, TimeRange.from_duration(at(10), 60))


@pytest.mark.asyncio
async def test_unknown_doctor_has_free_agenda(db_session: AsyncSession):
    checker = ConflictChecker(AppointmentStore(db_session))
    assert not await checker.has_conflict(uuid4(), TimeRange.from_duration(at(10), 60))
