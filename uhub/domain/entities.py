from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(UTC)


# --- Enums ---

class Role(StrEnum):
    ADMIN = "admin"
    DATA_OPERATOR = "data_operator"
    FINANCE = "finance"
    IT_MANAGEMENT = "it_management"
    EMPLOYEE = "employee"
    CS_MANAGER = "cs_manager"
    DRIVER_MANAGEMENT = "driver_management"
    MANAGER = "manager"
    HR_MANAGER = "hr_manager"
    VIEWER = "viewer"


class Feature(StrEnum):
    # Admin
    ADMIN_DASHBOARD = "admin_dashboard"
    USER_MANAGEMENT = "user_management"
    SYSTEM_SETTINGS = "system_settings"
    ROLE_MANAGEMENT = "role_management"
    INVITATION_MANAGER = "invitation_manager"
    ACCESS_MANAGEMENT = "access_management"
    ACCESS_REQUESTS = "access_requests"
    CSV_IMPORTER = "csv_importer"
    # Main panel
    HOME = "home"
    DASHBOARD = "dashboard"
    CALENDAR_VIEW = "calendar_view"
    # Slice of life / communication / profile
    EVENTS = "events"
    MEMORIES = "memories"
    COMMUNICATION = "communication"
    USER_PROFILE = "user_profile"
    # HR
    EMPLOYEES = "employees"
    EMPLOYEES_VIEW_ONLY = "employees_view_only"
    COMPLAINTS = "complaints"
    COMPLAINTS_INBOX = "complaints_inbox"
    SUGGESTIONS = "suggestions"
    ATTENDANCE = "attendance"
    PAYROLL = "payroll"
    EPR = "epr"
    # IT services
    IT_REQUESTS = "it_requests"
    IT_ASSETS = "it_assets"
    IT_TICKETS = "it_tickets"
    REQUEST_INBOX = "request_inbox"
    # Todo
    TODO_LIST = "todo_list"
    TASK_MANAGEMENT = "task_management"
    MY_TASKS = "my_tasks"
    # Customer service
    CSPA = "cspa"
    CS_TICKETS = "cs_tickets"
    CS_REQUESTS = "cs_requests"
    # Drivers & fleet
    DRIVERS = "drivers"
    DRIVER_RECORDS = "driver_records"
    FLEET_MANAGEMENT = "fleet_management"
    FLEET_RECORDS = "fleet_records"
    BREAKDOWNS = "breakdowns"
    # Assets & finance
    ASSETS = "assets"
    SIMCARDS = "simcards"
    VOUCHERS = "vouchers"
    EXPENSE_TRACKER = "expense_tracker"
    PAYMENT_CALENDAR = "payment_calendar"
    UPCOMING_PAYMENTS = "upcoming_payments"
    # Reporting
    ANALYTICS = "analytics"
    REPORTS = "reports"


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


ProfileStatus = Literal["active", "disabled"]


# --- Roles & navigation ---

class RoleDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Role
    level: int = Field(ge=1)
    label: str
    description: str = ""


class NavigationItem(BaseModel):
    """
    A navigable screen. Exactly one of ``feature``, ``role`` or
    ``min_level`` gates it.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    path: str
    label: str
    feature: Feature | None = None
    role: Role | None = None
    min_level: int | None = None

    @model_validator(mode="after")
    def _one_gating_mode(self) -> "NavigationItem":
        modes = [m for m in (self.feature, self.role, self.min_level) if m is not None]
        if len(modes) != 1:
            raise ValueError(
                f"navigation item '{self.key}' must set exactly one of "
                f"feature, role or min_level (got {len(modes)})"
            )
        return self


class QuickAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    path: str


# --- Principals & accounts ---

class Principal(BaseModel):
    """An authenticated caller. ``role`` is whatever the profile store holds."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: str


class IdentityRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str


class ProfileRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID


class Account(BaseModel):
    """Linked identity/profile pair; both halves share ``id``."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    identity: IdentityRef
    profile: ProfileRef


class ProfileFields(BaseModel):
    full_name: str
    phone: str | None = None
    location: str | None = None


class Profile(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: Role
    department: str | None = None
    phone: str | None = None
    location: str | None = None
    status: ProfileStatus = "active"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# --- Invitations ---

class Invitation(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    role: Role
    department: str | None = None
    token_hash: str
    status: InvitationStatus = InvitationStatus.PENDING
    issued_at: datetime
    expires_at: datetime
    invited_by: UUID
    accepted_at: datetime | None = None
    account_id: UUID | None = None
    revoked_at: datetime | None = None
    claim_id: UUID | None = None
    claimed_at: datetime | None = None

    @model_validator(mode="after")
    def _expiry_after_issue(self) -> "Invitation":
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be later than issued_at")
        return self

    def is_overdue(self, now: datetime) -> bool:
        return now > self.expires_at

    def effective_status(self, now: datetime) -> InvitationStatus:
        """Pending rows past their expiry read as expired; other states are final."""
        if self.status == InvitationStatus.PENDING and self.is_overdue(now):
            return InvitationStatus.EXPIRED
        return self.status


class InvitationView(BaseModel):
    """What an unauthenticated holder of a token is allowed to see."""

    email: str
    role: Role
    department: str | None = None
    expires_at: datetime


class IssuedInvitation(BaseModel):
    invitation: Invitation
    token: str
