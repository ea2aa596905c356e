"""
Invitations component ports.
"""

from __future__ import annotations

from typing import Protocol

from uhub.domain.entities import Account, ProfileFields, Role
from uhub.ports.auth import PasswordHasherPort
from uhub.ports.clock import ClockPort
from uhub.ports.repo import InvitationRepoPort


class ProvisionerPort(Protocol):
    def provision(
        self,
        email: str,
        password: str,
        fields: ProfileFields,
        *,
        role: Role,
        department: str | None = None,
    ) -> Account:
        ...

    def rollback(self, account: Account, reason: Exception) -> None:
        ...

    def has_account(self, email: str) -> bool:
        ...


class TokenHasherPort(Protocol):
    def hash_token(self, token: str) -> str:
        ...


__all__ = [
    "ClockPort",
    "InvitationRepoPort",
    "PasswordHasherPort",
    "ProvisionerPort",
    "TokenHasherPort",
]
