"""Script to run database migrations."""

import sys

from alembic import command
from alembic.config import Config


def _config() -> Config:
    return Config("alembic.ini")


def upgrade(revision: str = "head") -> None:
    """Upgrade the schema to ``revision``."""
    try:
        print(f"Upgrading database to {revision}...")
        command.upgrade(_config(), revision)
        print("✓ Migrations completed successfully!")
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        sys.exit(1)


def downgrade(revision: str) -> None:
    """Downgrade the schema to ``revision``."""
    try:
        print(f"Downgrading database to {revision}...")
        command.downgrade(_config(), revision)
        print("✓ Downgrade completed successfully!")
    except Exception as e:
        print(f"✗ Downgrade failed: {e}", file=sys.stderr)
        sys.exit(1)


def create_migration(message: str) -> None:
    """Autogenerate a migration from the difference between models and database."""
    try:
        print(f"Creating migration: {message}")
        command.revision(_config(), message=message, autogenerate=True)
        print("✓ Migration created successfully!")
    except Exception as e:
        print(f"✗ Migration creation failed: {e}", file=sys.stderr)
        sys.exit(1)


USAGE = "Usage: python scripts/migrate.py [upgrade [rev] | downgrade <rev> | create <message>]"

if __name__ == "__main__":
    args = sys.argv[1:]
    if not args or args[0] == "upgrade":
        upgrade(args[1] if len(args) > 1 else "head")
    elif args[0] == "downgrade" and len(args) == 2:
        downgrade(args[1])
    elif args[0] == "create" and len(args) > 1:
        create_migration(" ".join(args[1:]))
    else:
        print(USAGE)
        sys.exit(2)
