"""
Ports for the two external account stores.

Both stores fail independently. Every call takes the caller's timeout;
adapters raise StoreTimeout when it elapses and StoreRejected when the
store answers with a refusal.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Protocol
from uuid import UUID

from uhub.domain.entities import IdentityRef, Profile, ProfileRef, Role


class IdentityStorePort(Protocol):
    def create_identity(
        self, email: str, password: str, *, metadata: Mapping[str, str], timeout: float
    ) -> IdentityRef:
        ...

    def get_identity(self, identity_id: UUID, *, timeout: float) -> IdentityRef | None:
        ...

    def delete_identity(self, identity_id: UUID, *, timeout: float) -> None:
        """Idempotent: deleting a missing identity is not an error."""
        ...

    def authenticate(self, email: str, password: str, *, timeout: float) -> IdentityRef | None:
        ...


class ProfileStorePort(Protocol):
    def create_profile(self, profile: Profile, *, timeout: float) -> ProfileRef:
        ...

    def get_profile(self, profile_id: UUID, *, timeout: float) -> Profile | None:
        ...

    def get_by_email(self, email: str, *, timeout: float) -> Profile | None:
        ...

    def delete_profile(self, profile_id: UUID, *, timeout: float) -> None:
        """Idempotent: deleting a missing profile is not an error."""
        ...

    def list_profiles(self, *, timeout: float) -> list[Profile]:
        """All profiles, oldest first."""
        ...

    def update_role(
        self, profile_id: UUID, role: Role, updated_at: datetime, *, timeout: float
    ) -> Profile | None:
        """Set the profile's role. Returns the updated profile, None if it does not exist."""
        ...
