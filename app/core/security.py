"""Bearer token verification.

Access tokens are signed with the shared ``JWT_SECRET_KEY``. The service only
needs the subject claim: role and active flag are always re-read from the
users table, so a token minted before a role change cannot keep old rights.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from app.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    subject: UUID | str,
    expires_delta: timedelta | None = None,
    **claims: Any,
) -> str:
    """
    Sign an access token for ``subject``.

    Used by the token script for local work and by the test suite; in
    production tokens come from the identity provider with the same secret.
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        **claims,
        "sub": str(subject),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified claims of an access token, or None when it is unusable."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return payload


def token_subject(payload: dict[str, Any]) -> UUID | None:
    """User id carried in ``sub``; None if absent or not a UUID."""
    subject = payload.get("sub")
    if not isinstance(subject, str):
        return None
    try:
        return UUID(subject)
    except ValueError:
        return None
