"""Bearer tokens for signed-in accounts (HS256 JWT, subject = account id)."""

import os
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

SECRET_KEY = os.environ.get("UHUB_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"


def create_access_token(account_id: UUID, ttl: timedelta, now_utc: datetime | None = None) -> str:
    issued_at = now_utc if now_utc is not None else datetime.now(UTC)
    claims: dict[str, Any] = {"sub": str(account_id), "iat": issued_at, "exp": issued_at + ttl}
    return str(jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM))


def account_id_from_token(token: str) -> UUID | None:
    """Subject of a valid, unexpired token. None for anything else."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return UUID(str(payload.get("sub")))
    except (JWTError, ValueError):
        return None
