"""
Invitations component - Shell layer.

Each run_* function calls the service and converts typed errors into the
``error`` field of its output model.
"""

from __future__ import annotations

from uhub.domain.errors import PartialFailureError, ServiceError, UHubError

from ._impl import InvitationService
from .models import (
    AcceptInvitationInput,
    AcceptOutput,
    BulkDeleteInput,
    BulkDeleteOutput,
    CleanupOutput,
    GetByTokenInput,
    InvitationListOutput,
    InvitationViewOutput,
    IssueInvitationInput,
    IssueOutput,
    ListInvitationsInput,
    RevokeInvitationInput,
    RevokeOutput,
)


def run_issue(inp: IssueInvitationInput, service: InvitationService) -> IssueOutput:
    try:
        issued = service.issue(inp.inviter, inp.email, inp.role, inp.department)
    except UHubError as e:
        return IssueOutput(
            invitation=None, token=None, success=False, error=ServiceError.from_exception(e)
        )

    return IssueOutput(invitation=issued.invitation, token=issued.token, success=True)


def run_get_by_token(inp: GetByTokenInput, service: InvitationService) -> InvitationViewOutput:
    try:
        view = service.get_by_token(inp.token)
    except UHubError as e:
        return InvitationViewOutput(view=None, success=False, error=ServiceError.from_exception(e))

    return InvitationViewOutput(view=view, success=True)


def run_accept(inp: AcceptInvitationInput, service: InvitationService) -> AcceptOutput:
    try:
        account = service.accept(inp.token, inp.password, inp.profile)
    except UHubError as e:
        return AcceptOutput(account=None, success=False, error=ServiceError.from_exception(e))

    return AcceptOutput(account=account, success=True)


def run_revoke(inp: RevokeInvitationInput, service: InvitationService) -> RevokeOutput:
    try:
        invitation = service.revoke(inp.invitation_id, inp.requester)
    except UHubError as e:
        return RevokeOutput(invitation=None, success=False, error=ServiceError.from_exception(e))

    return RevokeOutput(invitation=invitation, success=True)


def run_bulk_delete(inp: BulkDeleteInput, service: InvitationService) -> BulkDeleteOutput:
    results = tuple(service.bulk_delete(inp.invitation_ids, inp.requester))
    failed = sum(1 for r in results if not r.ok)
    if not failed:
        return BulkDeleteOutput(results=results, partial_failure=False)

    return BulkDeleteOutput(
        results=results,
        partial_failure=True,
        error=ServiceError.from_exception(PartialFailureError(failed, len(results))),
    )


def run_cleanup_expired(service: InvitationService) -> CleanupOutput:
    try:
        deleted = service.cleanup_expired()
    except UHubError as e:
        return CleanupOutput(deleted_count=0, success=False, error=ServiceError.from_exception(e))

    return CleanupOutput(deleted_count=deleted, success=True)


def run_list(inp: ListInvitationsInput, service: InvitationService) -> InvitationListOutput:
    try:
        invitations = service.list_invitations(inp.requester, inp.status)
    except UHubError as e:
        return InvitationListOutput(success=False, error=ServiceError.from_exception(e))

    return InvitationListOutput(invitations=invitations, total=len(invitations))
