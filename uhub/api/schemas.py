from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from uhub.domain.entities import (
    Feature,
    Invitation,
    InvitationStatus,
    NavigationItem,
    Profile,
    QuickAction,
    Role,
)

# --- Invitations ---


class IssueInvitationRequest(BaseModel):
    email: str
    role: str
    department: str | None = None


class IssueInvitationResponse(BaseModel):
    id: UUID
    token: str
    expires_at: datetime


class AcceptInvitationRequest(BaseModel):
    token: str
    password: str
    full_name: str
    phone: str | None = None
    location: str | None = None


class AcceptInvitationResponse(BaseModel):
    account_id: UUID


class InvitationSummary(BaseModel):
    """Invitation as shown to managers. Never includes the token."""

    id: UUID
    email: str
    role: Role
    department: str | None
    status: InvitationStatus
    issued_at: datetime
    expires_at: datetime
    invited_by: UUID
    accepted_at: datetime | None
    revoked_at: datetime | None

    @classmethod
    def from_invitation(cls, invitation: Invitation) -> "InvitationSummary":
        return cls(
            id=invitation.id,
            email=invitation.email,
            role=invitation.role,
            department=invitation.department,
            status=invitation.status,
            issued_at=invitation.issued_at,
            expires_at=invitation.expires_at,
            invited_by=invitation.invited_by,
            accepted_at=invitation.accepted_at,
            revoked_at=invitation.revoked_at,
        )


class InvitationListResponse(BaseModel):
    items: list[InvitationSummary]
    total: int


class BulkDeleteRequest(BaseModel):
    ids: list[UUID] = Field(min_length=1, max_length=500)


class ErrorDetail(BaseModel):
    code: str
    message: str
    retryable: bool = False
    details: dict[str, Any] = Field(default_factory=dict)


class BulkDeleteItem(BaseModel):
    id: UUID
    ok: bool
    error: ErrorDetail | None = None


class BulkDeleteResponse(BaseModel):
    results: list[BulkDeleteItem]
    deleted: int
    partial_failure: bool


class CleanupResponse(BaseModel):
    deleted_count: int


# --- Access ---


class FeatureAccessResponse(BaseModel):
    role: str
    feature: str
    allowed: bool


class AccessProfileResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: Role
    level: int
    features: list[Feature]
    navigation: list[NavigationItem]
    landing_page: str
    quick_actions: list[QuickAction]


class AccountSummary(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: Role
    department: str | None
    status: str
    updated_at: datetime

    @classmethod
    def from_profile(cls, profile: Profile) -> "AccountSummary":
        return cls(
            id=profile.id,
            email=profile.email,
            full_name=profile.full_name,
            role=profile.role,
            department=profile.department,
            status=profile.status,
            updated_at=profile.updated_at,
        )


class AccountListResponse(BaseModel):
    items: list[AccountSummary]
    total: int


class ChangeRoleRequest(BaseModel):
    role: str


# --- Auth ---


class LoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str
