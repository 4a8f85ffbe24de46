#!/usr/bin/env python3
"""
Issue a bearer token for an existing user, for local development.

Usage:
    python scripts/issue_token.py ana.costa@alertmed.test
    python scripts/issue_token.py ana.costa@alertmed.test --minutes 240
"""

import argparse
import asyncio
import sys
from datetime import timedelta

import dotenv

dotenv.load_dotenv()

from app.core.security import create_access_token  # noqa: E402
from app.database import AsyncSessionLocal, engine  # noqa: E402
from app.services.user_service import UserService  # noqa: E402


async def issue_token(email: str, minutes: int) -> int:
    async with AsyncSessionLocal() as session:
        user = await UserService(session).get_user_by_email(email)
    await engine.dispose()

    if user is None:
        print(f"Error: no user with email {email}", file=sys.stderr)
        return 1
    if not user["is_active"]:
        print(f"Error: {email} is deactivated", file=sys.stderr)
        return 1

    token = create_access_token(user["id"], expires_delta=timedelta(minutes=minutes))
    label = user["full_name"] or user["email"]
    print(f"# {label} ({user['role']}), valid for {minutes} minutes", file=sys.stderr)
    print(token)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a development access token")
    parser.add_argument("email", help="Email of the user the token is for")
    parser.add_argument("--minutes", type=int, default=60, help="Token lifetime (default: 60)")
    args = parser.parse_args()

    sys.exit(asyncio.run(issue_token(args.email, args.minutes)))


if __name__ == "__main__":
    main()
