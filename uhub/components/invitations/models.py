"""
Invitations component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from uhub.domain.entities import (
    Account,
    Invitation,
    InvitationStatus,
    InvitationView,
    Principal,
    ProfileFields,
)
from uhub.domain.errors import ServiceError

# --- Input Models ---


@dataclass(frozen=True)
class IssueInvitationInput:
    inviter: Principal
    email: str
    role: str
    department: str | None = None


@dataclass(frozen=True)
class GetByTokenInput:
    token: str


@dataclass(frozen=True)
class AcceptInvitationInput:
    token: str
    password: str
    profile: ProfileFields


@dataclass(frozen=True)
class RevokeInvitationInput:
    invitation_id: UUID
    requester: Principal


@dataclass(frozen=True)
class BulkDeleteInput:
    invitation_ids: tuple[UUID, ...]
    requester: Principal


@dataclass(frozen=True)
class ListInvitationsInput:
    requester: Principal
    status: InvitationStatus | None = None


# --- Output Models ---


@dataclass(frozen=True)
class IssueOutput:
    invitation: Invitation | None
    token: str | None
    success: bool
    error: ServiceError | None = None


@dataclass(frozen=True)
class InvitationViewOutput:
    view: InvitationView | None
    success: bool
    error: ServiceError | None = None


@dataclass(frozen=True)
class AcceptOutput:
    account: Account | None
    success: bool
    error: ServiceError | None = None


@dataclass(frozen=True)
class RevokeOutput:
    invitation: Invitation | None
    success: bool
    error: ServiceError | None = None


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of deleting one invitation in a bulk request."""

    invitation_id: UUID
    ok: bool
    error: ServiceError | None = None


@dataclass(frozen=True)
class BulkDeleteOutput:
    results: tuple[DeleteResult, ...]
    partial_failure: bool
    error: ServiceError | None = None

    @property
    def deleted(self) -> int:
        return sum(1 for r in self.results if r.ok)


@dataclass(frozen=True)
class CleanupOutput:
    deleted_count: int
    success: bool
    error: ServiceError | None = None


@dataclass(frozen=True)
class InvitationListOutput:
    invitations: list[Invitation] = field(default_factory=list)
    total: int = 0
    success: bool = True
    error: ServiceError | None = None
