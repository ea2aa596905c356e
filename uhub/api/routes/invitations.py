from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from uhub.api.deps import (
    get_current_principal,
    get_invitation_service,
    require_manager,
)
from uhub.api.schemas import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    BulkDeleteItem,
    BulkDeleteRequest,
    BulkDeleteResponse,
    CleanupResponse,
    ErrorDetail,
    InvitationListResponse,
    InvitationSummary,
    IssueInvitationRequest,
    IssueInvitationResponse,
)
from uhub.components.invitations import (
    BulkDeleteInput,
    InvitationService,
    run_bulk_delete,
)
from uhub.domain.entities import InvitationStatus, InvitationView, Principal, ProfileFields

router = APIRouter()


@router.post("", response_model=IssueInvitationResponse, status_code=status.HTTP_201_CREATED)
def issue_invitation(
    req: IssueInvitationRequest,
    inviter: Principal = Depends(require_manager),
    service: InvitationService = Depends(get_invitation_service),
) -> IssueInvitationResponse:
    """Issue an invitation. The token is only ever returned here."""
    issued = service.issue(inviter, req.email, req.role, req.department)
    return IssueInvitationResponse(
        id=issued.invitation.id,
        token=issued.token,
        expires_at=issued.invitation.expires_at,
    )


@router.get("", response_model=InvitationListResponse)
def list_invitations(
    status_filter: InvitationStatus | None = Query(default=None, alias="status"),
    requester: Principal = Depends(require_manager),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationListResponse:
    rows = service.list_invitations(requester, status_filter)
    return InvitationListResponse(
        items=[InvitationSummary.from_invitation(r) for r in rows],
        total=len(rows),
    )


@router.get("/by-token/{token}", response_model=InvitationView)
def get_invitation_by_token(
    token: str,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationView:
    """Public: what the acceptance form needs to render."""
    return service.get_by_token(token)


@router.post("/accept", response_model=AcceptInvitationResponse)
def accept_invitation(
    req: AcceptInvitationRequest,
    service: InvitationService = Depends(get_invitation_service),
) -> AcceptInvitationResponse:
    account = service.accept(
        req.token,
        req.password,
        ProfileFields(full_name=req.full_name, phone=req.phone, location=req.location),
    )
    return AcceptInvitationResponse(account_id=account.id)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete_invitations(
    req: BulkDeleteRequest,
    requester: Principal = Depends(get_current_principal),
    service: InvitationService = Depends(get_invitation_service),
) -> BulkDeleteResponse:
    out = run_bulk_delete(
        BulkDeleteInput(invitation_ids=tuple(req.ids), requester=requester), service
    )
    return BulkDeleteResponse(
        results=[
            BulkDeleteItem(
                id=r.invitation_id,
                ok=r.ok,
                error=(
                    ErrorDetail(
                        code=r.error.code,
                        message=r.error.message,
                        retryable=r.error.retryable,
                        details=r.error.details,
                    )
                    if r.error
                    else None
                ),
            )
            for r in out.results
        ],
        deleted=out.deleted,
        partial_failure=out.partial_failure,
    )


@router.post("/cleanup-expired", response_model=CleanupResponse)
def cleanup_expired_invitations(
    _: Principal = Depends(require_manager),
    service: InvitationService = Depends(get_invitation_service),
) -> CleanupResponse:
    return CleanupResponse(deleted_count=service.cleanup_expired())


@router.post("/{invitation_id}/revoke", response_model=InvitationSummary)
def revoke_invitation(
    invitation_id: UUID,
    requester: Principal = Depends(get_current_principal),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationSummary:
    return InvitationSummary.from_invitation(service.revoke(invitation_id, requester))
