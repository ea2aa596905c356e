"""
Role administration component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from uhub.domain.entities import Principal, Profile
from uhub.domain.errors import ServiceError

# --- Input Models ---


@dataclass(frozen=True)
class ListAccountsInput:
    requester: Principal


@dataclass(frozen=True)
class ChangeRoleInput:
    requester: Principal
    profile_id: UUID
    role: str


# --- Output Models ---


@dataclass(frozen=True)
class AccountListOutput:
    profiles: list[Profile]
    success: bool
    error: ServiceError | None = None


@dataclass(frozen=True)
class ChangeRoleOutput:
    profile: Profile | None
    success: bool
    error: ServiceError | None = None
