"""Script to create every table directly from the models (development only).

Use ``scripts/migrate.py`` for databases that must keep a migration history.
"""

import asyncio

from app.database import engine
from app.models import metadata


async def init_db(drop: bool = False) -> None:
    """Create all tables, optionally dropping existing ones first."""
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(metadata.drop_all)
            print("✓ Existing tables dropped")

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print(f"✓ Database initialized ({len(metadata.tables)} tables)")


if __name__ == "__main__":
    import sys

    asyncio.run(init_db(drop="--drop" in sys.argv[1:]))
