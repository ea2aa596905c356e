"""
Provisioning component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass

from uhub.domain.entities import Account, ProfileFields, Role
from uhub.domain.errors import ServiceError

# --- Input Models ---


@dataclass(frozen=True)
class ProvisionInput:
    email: str
    password: str
    profile: ProfileFields
    role: Role
    department: str | None = None


@dataclass(frozen=True)
class RollbackInput:
    account: Account
    reason: str


# --- Output Models ---


@dataclass(frozen=True)
class ProvisionOutput:
    account: Account | None
    success: bool
    error: ServiceError | None = None


@dataclass(frozen=True)
class RollbackOutput:
    success: bool
    error: ServiceError | None = None
