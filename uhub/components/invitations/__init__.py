"""
Invitations component - issue, accept, revoke and clean up invitations.
"""

from ._impl import InvitationService, normalize_email, validate_acceptance
from .component import (
    run_accept,
    run_bulk_delete,
    run_cleanup_expired,
    run_get_by_token,
    run_issue,
    run_list,
    run_revoke,
)
from .models import (
    AcceptInvitationInput,
    AcceptOutput,
    BulkDeleteInput,
    BulkDeleteOutput,
    CleanupOutput,
    DeleteResult,
    GetByTokenInput,
    InvitationListOutput,
    InvitationViewOutput,
    IssueInvitationInput,
    IssueOutput,
    ListInvitationsInput,
    RevokeInvitationInput,
    RevokeOutput,
)
from .ports import InvitationRepoPort, ProvisionerPort, TokenHasherPort

__all__ = [
    # Entry points
    "run_issue",
    "run_get_by_token",
    "run_accept",
    "run_revoke",
    "run_bulk_delete",
    "run_cleanup_expired",
    "run_list",
    # Input models
    "IssueInvitationInput",
    "GetByTokenInput",
    "AcceptInvitationInput",
    "RevokeInvitationInput",
    "BulkDeleteInput",
    "ListInvitationsInput",
    # Output models
    "IssueOutput",
    "InvitationViewOutput",
    "AcceptOutput",
    "RevokeOutput",
    "DeleteResult",
    "BulkDeleteOutput",
    "CleanupOutput",
    "InvitationListOutput",
    # Ports
    "InvitationRepoPort",
    "ProvisionerPort",
    "TokenHasherPort",
    # Service
    "InvitationService",
    "normalize_email",
    "validate_acceptance",
]
