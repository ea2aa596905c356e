"""Test doubles shared across the suite."""

import hashlib
from datetime import UTC, datetime, timedelta


class MockClock:
    """Fixed clock for deterministic tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now or datetime(2025, 3, 10, 9, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


class FakeHasher:
    """Cheap stand-in for argon2 so tests that create many accounts stay fast."""

    def hash_password(self, password: str) -> str:
        return f"hashed:{password}"

    def verify_password(self, plain: str, hashed: str) -> bool:
        return hashed == f"hashed:{plain}"

    def hash_token(self, token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()
