"""Database configuration and connection management."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import pool, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings


def get_async_database_url(url: str) -> str:
    """Convert a sync database URL to its async driver variant."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """Create an async engine with settings suited to the target dialect."""
    async_url = get_async_database_url(url)

    if async_url.startswith("postgresql+asyncpg://"):
        options: dict[str, Any] = {
            "pool_pre_ping": True,
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
            "pool_recycle": 3600,
            "connect_args": {
                "server_settings": {
                    "application_name": settings.app_name,
                },
            },
        }
    else:
        # SQLite connections are cheap and must not be shared across event loops
        options = {"poolclass": pool.NullPool}

    options.update(overrides)
    return create_async_engine(async_url, echo=settings.debug, **options)


engine: AsyncEngine = build_engine(settings.database_url)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
