"""Appointment persistence on top of the ``appointments`` table."""

from collections.abc import Iterable
from datetime import datetime, time, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.core.timerange import TimeRange, utcnow
from app.models.appointments import appointments
from app.schemas.appointments import AppointmentFilters, AppointmentStatus, ApprovalStatus


def _equality_conditions(values: dict[str, Any] | None) -> list[ColumnElement[bool]]:
    if not values:
        return []
    conditions: list[ColumnElement[bool]] = []
    for column, value in values.items():
        if isinstance(value, AppointmentStatus | ApprovalStatus):
            value = value.value
        if value is None:
            conditions.append(appointments.c[column].is_(None))
        else:
            conditions.append(appointments.c[column] == value)
    return conditions


class AppointmentStore:
    """Reads and writes appointments. Never commits; callers own the transaction."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def insert(self, values: dict[str, Any]) -> dict[str, Any]:
        """Insert an appointment and return the stored row."""
        stmt = insert(appointments).values(**values).returning(appointments)
        result = await self.db.execute(stmt)
        return dict(result.mappings().one())

    async def get_by_id(
        self,
        appointment_id: UUID,
        scope: dict[str, UUID] | None = None,
    ) -> dict[str, Any] | None:
        """
        Fetch one appointment, optionally restricted by an ownership scope.

        Args:
            appointment_id: Appointment ID
            scope: Column/value equality filter, e.g. ``{"doctor_id": ...}``

        Returns:
            Row as a dict, or None when nothing matches
        """
        stmt = select(appointments).where(
            and_(appointments.c.id == appointment_id, *_equality_conditions(scope))
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    async def update_where(
        self,
        appointment_id: UUID,
        patch: dict[str, Any],
        *,
        scope: dict[str, UUID] | None = None,
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """
        Apply ``patch`` only if the row still matches scope and expected state.

        The compound WHERE is both the ownership check and the optimistic
        concurrency guard. ``updated_at`` always advances.

        Returns:
            Updated row, or None when zero rows matched
        """
        values = {
            key: value.value if isinstance(value, AppointmentStatus | ApprovalStatus) else value
            for key, value in patch.items()
        }
        values["updated_at"] = utcnow()

        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment_id,
                    *_equality_conditions(scope),
                    *_equality_conditions(expected),
                )
            )
            .values(**values)
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    async def query_by_doctor_and_range(
        self,
        doctor_id: UUID,
        time_range: TimeRange,
        *,
        exclude_id: UUID | None = None,
        statuses: Iterable[AppointmentStatus] = (AppointmentStatus.SCHEDULED,),
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Appointments of a doctor whose slot overlaps ``time_range``."""
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.status.in_([s.value for s in statuses]),
            appointments.c.scheduled_start < time_range.end,
            appointments.c.scheduled_end > time_range.start,
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.scheduled_start.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    @staticmethod
    def _filter_conditions(
        scope: dict[str, UUID],
        filters: AppointmentFilters,
    ) -> list[ColumnElement[bool]]:
        conditions = _equality_conditions(scope)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)
        if filters.approval_status:
            conditions.append(appointments.c.approval_status == filters.approval_status.value)
        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)
        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)
        if filters.specialty:
            conditions.append(appointments.c.specialty == filters.specialty)
        if filters.date_from:
            conditions.append(
                appointments.c.scheduled_start >= datetime.combine(filters.date_from, time.min)
            )
        if filters.date_to:
            # date_to is inclusive of the whole day
            day_after = datetime.combine(filters.date_to, time.min) + timedelta(days=1)
            conditions.append(appointments.c.scheduled_start < day_after)

        return conditions

    async def find_page(
        self,
        scope: dict[str, UUID],
        filters: AppointmentFilters,
    ) -> tuple[int, list[dict[str, Any]]]:
        """
        Paginated appointments within an ownership scope.

        Returns:
            Tuple of (total matching rows, rows of the requested page)
        """
        conditions = self._filter_conditions(scope, filters)

        count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.scheduled_start.asc())
            .limit(filters.page_size)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return total, [dict(row) for row in result.mappings().all()]

    async def statistics(self, scope: dict[str, UUID]) -> dict[str, Any]:
        """Counts per status and per approval status within a scope."""
        stmt = (
            select(
                appointments.c.status,
                appointments.c.approval_status,
                func.count().label("n"),
            )
            .where(and_(*_equality_conditions(scope)))
            .group_by(appointments.c.status, appointments.c.approval_status)
        )
        result = await self.db.execute(stmt)

        by_status = {s.value: 0 for s in AppointmentStatus}
        by_approval = {s.value: 0 for s in ApprovalStatus}
        total = 0
        for row in result.all():
            total += row.n
            by_status[row.status] = by_status.get(row.status, 0) + row.n
            if row.approval_status:
                by_approval[row.approval_status] = (
                    by_approval.get(row.approval_status, 0) + row.n
                )

        return {"total": total, "by_status": by_status, "by_approval": by_approval}
