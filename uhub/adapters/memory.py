"""
In-memory stores for development and tests.

Each store guards its dict with a lock so that the conditional updates
behave like the SQL ones when several threads share an instance.
"""

import threading
from collections.abc import Mapping
from datetime import datetime
from uuid import UUID, uuid4

from uhub.domain.entities import (
    IdentityRef,
    Invitation,
    InvitationStatus,
    Profile,
    ProfileRef,
    Role,
)
from uhub.domain.errors import DuplicatePendingInvitation, DuplicateToken, StoreRejected
from uhub.ports.auth import PasswordHasherPort


class InMemoryInvitationRepo:
    def __init__(self) -> None:
        self._rows: dict[UUID, Invitation] = {}
        self._lock = threading.Lock()

    def create(self, invitation: Invitation) -> Invitation:
        with self._lock:
            for row in self._rows.values():
                if row.token_hash == invitation.token_hash:
                    raise DuplicateToken()
                if (
                    invitation.status == InvitationStatus.PENDING
                    and row.status == InvitationStatus.PENDING
                    and row.email == invitation.email
                ):
                    raise DuplicatePendingInvitation(invitation.email)
            self._rows[invitation.id] = invitation
            return invitation

    def get_by_id(self, invitation_id: UUID) -> Invitation | None:
        with self._lock:
            return self._rows.get(invitation_id)

    def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        with self._lock:
            for row in self._rows.values():
                if row.token_hash == token_hash:
                    return row
            return None

    def list_invitations(
        self,
        status: InvitationStatus | None = None,
        invited_by: UUID | None = None,
    ) -> list[Invitation]:
        with self._lock:
            rows = [
                r
                for r in self._rows.values()
                if (status is None or r.status == status)
                and (invited_by is None or r.invited_by == invited_by)
            ]
        return sorted(rows, key=lambda r: r.issued_at, reverse=True)

    def try_claim(
        self, invitation_id: UUID, claim_id: UUID, now: datetime, stale_before: datetime
    ) -> bool:
        with self._lock:
            row = self._rows.get(invitation_id)
            if row is None or row.status != InvitationStatus.PENDING or row.is_overdue(now):
                return False
            if row.claim_id is not None and row.claimed_at and row.claimed_at >= stale_before:
                return False
            self._rows[invitation_id] = row.model_copy(
                update={"claim_id": claim_id, "claimed_at": now}
            )
            return True

    def release_claim(self, invitation_id: UUID, claim_id: UUID) -> None:
        with self._lock:
            row = self._rows.get(invitation_id)
            if row is not None and row.claim_id == claim_id:
                self._rows[invitation_id] = row.model_copy(
                    update={"claim_id": None, "claimed_at": None}
                )

    def mark_accepted(
        self, invitation_id: UUID, claim_id: UUID, account_id: UUID, now: datetime
    ) -> bool:
        with self._lock:
            row = self._rows.get(invitation_id)
            if row is None or row.status != InvitationStatus.PENDING or row.claim_id != claim_id:
                return False
            self._rows[invitation_id] = row.model_copy(
                update={
                    "status": InvitationStatus.ACCEPTED,
                    "accepted_at": now,
                    "account_id": account_id,
                    "claim_id": None,
                    "claimed_at": None,
                }
            )
            return True

    def transition_pending(
        self, invitation_id: UUID, new_status: InvitationStatus, now: datetime
    ) -> bool:
        with self._lock:
            row = self._rows.get(invitation_id)
            if row is None or row.status != InvitationStatus.PENDING:
                return False
            update: dict[str, object] = {"status": new_status, "claim_id": None, "claimed_at": None}
            if new_status == InvitationStatus.REVOKED:
                update["revoked_at"] = now
            self._rows[invitation_id] = row.model_copy(update=update)
            return True

    def expire_overdue(self, now: datetime, email: str | None = None) -> int:
        with self._lock:
            count = 0
            for row_id, row in list(self._rows.items()):
                if row.status != InvitationStatus.PENDING or not row.is_overdue(now):
                    continue
                if email is not None and row.email != email:
                    continue
                self._rows[row_id] = row.model_copy(
                    update={
                        "status": InvitationStatus.EXPIRED,
                        "claim_id": None,
                        "claimed_at": None,
                    }
                )
                count += 1
            return count

    def delete(self, invitation_id: UUID) -> bool:
        with self._lock:
            return self._rows.pop(invitation_id, None) is not None

    def delete_expired(self, now: datetime) -> int:
        removable = {InvitationStatus.PENDING, InvitationStatus.EXPIRED}
        with self._lock:
            doomed = [
                row_id
                for row_id, row in self._rows.items()
                if row.status in removable and row.is_overdue(now)
            ]
            for row_id in doomed:
                del self._rows[row_id]
            return len(doomed)


class InMemoryIdentityStore:
    def __init__(self, hasher: PasswordHasherPort):
        self.hasher = hasher
        self._rows: dict[UUID, tuple[IdentityRef, str, dict[str, str]]] = {}
        self._lock = threading.Lock()

    def create_identity(
        self, email: str, password: str, *, metadata: Mapping[str, str], timeout: float
    ) -> IdentityRef:
        with self._lock:
            if any(ref.email == email for ref, _, _ in self._rows.values()):
                raise StoreRejected("identities", f"email already registered: {email}")
            ref = IdentityRef(id=uuid4(), email=email)
            self._rows[ref.id] = (ref, self.hasher.hash_password(password), dict(metadata))
            return ref

    def get_identity(self, identity_id: UUID, *, timeout: float) -> IdentityRef | None:
        with self._lock:
            entry = self._rows.get(identity_id)
            return entry[0] if entry else None

    def delete_identity(self, identity_id: UUID, *, timeout: float) -> None:
        with self._lock:
            self._rows.pop(identity_id, None)

    def authenticate(self, email: str, password: str, *, timeout: float) -> IdentityRef | None:
        with self._lock:
            match = next((e for e in self._rows.values() if e[0].email == email), None)
        if match is None or not self.hasher.verify_password(password, match[1]):
            return None
        return match[0]

    def __len__(self) -> int:
        return len(self._rows)


class InMemoryProfileStore:
    def __init__(self) -> None:
        self._rows: dict[UUID, Profile] = {}
        self._lock = threading.Lock()

    def create_profile(self, profile: Profile, *, timeout: float) -> ProfileRef:
        with self._lock:
            if profile.id in self._rows:
                raise StoreRejected("profiles", f"profile {profile.id} already exists")
            if any(p.email == profile.email for p in self._rows.values()):
                raise StoreRejected("profiles", f"email already has a profile: {profile.email}")
            self._rows[profile.id] = profile
            return ProfileRef(id=profile.id)

    def get_profile(self, profile_id: UUID, *, timeout: float) -> Profile | None:
        with self._lock:
            return self._rows.get(profile_id)

    def get_by_email(self, email: str, *, timeout: float) -> Profile | None:
        with self._lock:
            return next((p for p in self._rows.values() if p.email == email), None)

    def delete_profile(self, profile_id: UUID, *, timeout: float) -> None:
        with self._lock:
            self._rows.pop(profile_id, None)

    def list_profiles(self, *, timeout: float) -> list[Profile]:
        with self._lock:
            return sorted(self._rows.values(), key=lambda p: (p.created_at, p.email))

    def update_role(
        self, profile_id: UUID, role: Role, updated_at: datetime, *, timeout: float
    ) -> Profile | None:
        with self._lock:
            current = self._rows.get(profile_id)
            if current is None:
                return None
            updated = current.model_copy(update={"role": role, "updated_at": updated_at})
            self._rows[profile_id] = updated
            return updated

    def __len__(self) -> int:
        return len(self._rows)
