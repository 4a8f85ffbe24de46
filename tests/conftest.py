import os
from collections.abc import AsyncGenerator
from typing import Any
from uuid import uuid4

# Settings are read at import time; give the app a throwaway configuration.
os.environ.setdefault("DATABASE_URL", "sqlite:///./alertmed.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ["EMAIL_ENABLED"] = "false"
os.environ["TIMEZONE"] = "America/Sao_Paulo"

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# Load environment variables from .env file
load_dotenv()

from app.database import build_engine, get_db
from app.dependencies import get_cache_manager
from app.main import app
from app.models import doctor_hospitals, metadata, users
from app.services.appointment_service import AppointmentService
from app.services.notification_service import NotificationService
from helpers import FakeEmailService, RecordingDelivery


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh database per test: TEST_DATABASE_URL if set, else a SQLite file."""
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = build_engine(url)

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client; every request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def _create_user(db_session: AsyncSession, role: str, **values: Any) -> dict[str, Any]:
    user_id = uuid4()
    data = {
        "id": user_id,
        "email": f"{role}-{user_id.hex[:8]}@alertmed.test",
        "full_name": values.pop("full_name", f"Test {role}"),
        "role": role,
        "is_active": True,
        **values,
    }
    await db_session.execute(insert(users).values(**data))
    await db_session.commit()
    return data


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession) -> dict[str, Any]:
    return await _create_user(db_session, "patient", full_name="Maria Souza")


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> dict[str, Any]:
    return await _create_user(db_session, "patient", full_name="João Lima")


@pytest_asyncio.fixture
async def doctor(db_session: AsyncSession) -> dict[str, Any]:
    return await _create_user(
        db_session, "doctor", full_name="Dra. Ana Costa", specialty="Cardiologia"
    )


@pytest_asyncio.fixture
async def other_doctor(db_session: AsyncSession) -> dict[str, Any]:
    return await _create_user(db_session, "doctor", full_name="Dr. Pedro Alves")


@pytest_asyncio.fixture
async def hospital(db_session: AsyncSession, doctor, other_doctor) -> dict[str, Any]:
    """Hospital admin with both test doctors affiliated."""
    data = await _create_user(db_session, "hospital_admin", hospital_name="Hospital Central")
    for affiliated in (doctor, other_doctor):
        await db_session.execute(
            insert(doctor_hospitals).values(
                id=uuid4(),
                doctor_id=affiliated["id"],
                hospital_id=data["id"],
                status="active",
            )
        )
    await db_session.commit()
    return data


@pytest_asyncio.fixture
async def other_hospital(db_session: AsyncSession) -> dict[str, Any]:
    return await _create_user(db_session, "hospital_admin", hospital_name="Hospital Norte")


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
def make_service(delivery: RecordingDelivery, email_service: FakeEmailService):
    """Build an AppointmentService on a given session with test collaborators."""

    def _make(session: AsyncSession, cache_manager=None) -> AppointmentService:
        return AppointmentService(
            session,
            cache_manager=cache_manager,
            notification_service=NotificationService(session, delivery=delivery),
            email_service=email_service,
        )

    return _make


@pytest.fixture
def service(db_session: AsyncSession, make_service) -> AppointmentService:
    return make_service(db_session)


