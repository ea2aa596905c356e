from datetime import datetime
from typing import Protocol
from uuid import UUID

from uhub.domain.entities import Invitation, InvitationStatus


class InvitationRepoPort(Protocol):
    """
    Persistence for invitation records.

    All state changes are conditional updates evaluated inside the store,
    so several service replicas can share one store without locking.
    """

    def create(self, invitation: Invitation) -> Invitation:
        """
        Insert a new record.
        Raises DuplicateToken if the token hash is taken.
        Raises DuplicatePendingInvitation if the email already has a pending row.
        """
        ...

    def get_by_id(self, invitation_id: UUID) -> Invitation | None:
        ...

    def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        ...

    def list_invitations(
        self,
        status: InvitationStatus | None = None,
        invited_by: UUID | None = None,
    ) -> list[Invitation]:
        """Newest first."""
        ...

    def try_claim(
        self, invitation_id: UUID, claim_id: UUID, now: datetime, stale_before: datetime
    ) -> bool:
        """Claim a live pending row for acceptance. True if this caller holds the claim."""
        ...

    def release_claim(self, invitation_id: UUID, claim_id: UUID) -> None:
        ...

    def mark_accepted(
        self, invitation_id: UUID, claim_id: UUID, account_id: UUID, now: datetime
    ) -> bool:
        """pending -> accepted, only for the claim holder."""
        ...

    def transition_pending(
        self, invitation_id: UUID, new_status: InvitationStatus, now: datetime
    ) -> bool:
        """pending -> revoked/expired. False if the row was not pending."""
        ...

    def expire_overdue(self, now: datetime, email: str | None = None) -> int:
        ...

    def delete(self, invitation_id: UUID) -> bool:
        ...

    def delete_expired(self, now: datetime) -> int:
        """Delete pending/expired rows whose expiry is before ``now``."""
        ...
