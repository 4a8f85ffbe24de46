"""Per-doctor scheduling locks.

A conflict check and the write that depends on it must be atomic. Within a
worker process coroutines are serialized on an ``asyncio.Lock`` per doctor;
on PostgreSQL a transaction-scoped advisory lock serializes across workers.
Callers commit before leaving the context so the advisory lock is released
with the transaction.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger(__name__)

# Entries live only while some coroutine holds or waits for the lock
_doctor_locks: dict[UUID, asyncio.Lock] = {}
_lock_users: dict[UUID, int] = {}


@asynccontextmanager
async def _hold_doctor_lock(doctor_id: UUID) -> AsyncIterator[None]:
    lock = _doctor_locks.setdefault(doctor_id, asyncio.Lock())
    _lock_users[doctor_id] = _lock_users.get(doctor_id, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _lock_users[doctor_id] -= 1
        if not _lock_users[doctor_id]:
            del _lock_users[doctor_id]
            del _doctor_locks[doctor_id]


def advisory_lock_key(doctor_id: UUID) -> int:
    """Fold a UUID into a signed 64-bit advisory lock key."""
    key = (doctor_id.int >> 64) ^ (doctor_id.int & 0xFFFFFFFFFFFFFFFF)
    if key >= 1 << 63:
        key -= 1 << 64
    return key


@asynccontextmanager
async def doctor_schedule_lock(db: AsyncSession, doctor_id: UUID) -> AsyncIterator[None]:
    """Hold the doctor's schedule exclusively for a check+write sequence."""
    async with _hold_doctor_lock(doctor_id):
        if db.bind is not None and db.bind.dialect.name == "postgresql":
            await db.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": advisory_lock_key(doctor_id)},
            )
        logger.debug("doctor_schedule_locked", doctor_id=str(doctor_id))
        yield
