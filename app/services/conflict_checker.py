"""Double-booking detection for a doctor's agenda."""

from typing import Any
from uuid import UUID

import structlog

from app.core.exceptions import SchedulingConflictException
from app.core.timerange import TimeRange
from app.services.appointment_store import AppointmentStore

logger = structlog.get_logger(__name__)


class ConflictChecker:
    """Answers whether a candidate slot collides with a doctor's active appointments.

    Only ``scheduled`` rows take part; cancelled and rescheduled-away rows free
    their slot. Intervals are half-open, so back-to-back appointments never clash.
    """

    def __init__(self, store: AppointmentStore):
        """Initialize checker on top of an appointment store."""
        self.store = store

    async def find_conflict(
        self,
        doctor_id: UUID | None,
        candidate: TimeRange,
        exclude_appointment_id: UUID | None = None,
    ) -> dict[str, Any] | None:
        """
        Find the first active appointment overlapping ``candidate``.

        Args:
            doctor_id: Doctor whose agenda is checked; must not be None
            candidate: Requested slot
            exclude_appointment_id: Appointment ignored by the scan (the one being moved)

        Returns:
            The conflicting appointment row, or None when the slot is free

        Raises:
            ValueError: If doctor_id is None
        """
        if doctor_id is None:
            raise ValueError("Conflict check requires a doctor")

        rows = await self.store.query_by_doctor_and_range(
            doctor_id,
            candidate,
            exclude_id=exclude_appointment_id,
            limit=1,
        )
        return rows[0] if rows else None

    async def has_conflict(
        self,
        doctor_id: UUID | None,
        candidate: TimeRange,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        return await self.find_conflict(doctor_id, candidate, exclude_appointment_id) is not None

    async def ensure_available(
        self,
        doctor_id: UUID | None,
        candidate: TimeRange,
        exclude_appointment_id: UUID | None = None,
    ) -> None:
        """Raise ``SchedulingConflictException`` if the slot is taken."""
        conflict = await self.find_conflict(doctor_id, candidate, exclude_appointment_id)
        if conflict is None:
            return

        logger.info(
            "scheduling_conflict",
            doctor_id=str(doctor_id),
            requested_start=candidate.start.isoformat(),
            requested_end=candidate.end.isoformat(),
            conflicting_appointment_id=str(conflict["id"]),
        )
        raise SchedulingConflictException(conflict["id"])
