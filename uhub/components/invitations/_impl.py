"""
InvitationService - invitation lifecycle.

issue -> (get_by_token) -> accept | revoke | expire, plus bulk delete and
cleanup of stale rows.

Concurrency: the service holds no state between calls. Every status change
is a conditional update evaluated by the store, so several replicas can
serve the same store. Accept is claim -> provision -> compare-and-set:

1. try_claim marks a live pending row as owned by this request.
2. The provisioner creates the identity/profile pair.
3. mark_accepted flips pending -> accepted only for the claim holder.

A provisioning failure releases the claim. Losing step 3 (the row was
revoked or deleted meanwhile) rolls the new account back, and so does a
store error from step 3 unless a re-read shows the row accepted for it.
"""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from uhub.domain.entities import (
    Account,
    Invitation,
    InvitationStatus,
    InvitationView,
    IssuedInvitation,
    Principal,
    ProfileFields,
)
from uhub.domain.errors import (
    AlreadyAcceptedError,
    ConflictError,
    DuplicatePendingInvitation,
    DuplicateToken,
    ExpiredError,
    InvalidEmailError,
    InvalidPasswordError,
    InvalidProfileError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
    StoreError,
    TokenGenerationExhaustedError,
    UHubError,
    UnauthorizedError,
    UnknownRoleError,
    translate_store_errors,
)
from uhub.domain.policy import AccessResolver
from uhub.domain.state import ensure_transition
from uhub.rules.models import AccountRules, InvitationRules

from .models import DeleteResult
from .ports import ClockPort, InvitationRepoPort, ProvisionerPort, TokenHasherPort

logger = logging.getLogger(__name__)

EMAIL_MAX_LENGTH = 254
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# --- Validation Functions ---


def normalize_email(email: str | None) -> str:
    """Strip and lowercase; raise InvalidEmailError if it is not an address."""
    if email is None or not email.strip():
        raise InvalidEmailError("", "email is required")

    normalized = email.strip().lower()
    if len(normalized) > EMAIL_MAX_LENGTH:
        raise InvalidEmailError(normalized, f"longer than {EMAIL_MAX_LENGTH} characters")
    if not EMAIL_PATTERN.match(normalized):
        raise InvalidEmailError(normalized, "not a valid address")
    return normalized


def validate_acceptance(password: str, fields: ProfileFields, rules: AccountRules) -> None:
    if password is None or len(password) < rules.password_min_length:
        raise InvalidPasswordError(rules.password_min_length)
    if not fields.full_name or not fields.full_name.strip():
        raise InvalidProfileError("full_name", "is required")


# --- Service ---


class InvitationService:
    def __init__(
        self,
        repo: InvitationRepoPort,
        provisioner: ProvisionerPort,
        resolver: AccessResolver,
        token_hasher: TokenHasherPort,
        clock: ClockPort,
        rules: InvitationRules | None = None,
        account_rules: AccountRules | None = None,
        token_factory: Callable[[int], str] = secrets.token_urlsafe,
    ):
        self.repo = repo
        self.provisioner = provisioner
        self.resolver = resolver
        self.token_hasher = token_hasher
        self.clock = clock
        self.rules = rules or InvitationRules()
        self.account_rules = account_rules or AccountRules()
        self.token_factory = token_factory

    # --- Authorization helpers ---

    def can_manage(self, principal: Principal) -> bool:
        return self.resolver.has_role_level(principal.role, self.rules.manage_min_level)

    def is_admin(self, principal: Principal) -> bool:
        return self.resolver.has_role_level(principal.role, self.rules.admin_level)

    def _can_modify(self, principal: Principal, invitation: Invitation) -> bool:
        return invitation.invited_by == principal.id or self.is_admin(principal)

    def _ensure_no_account(self, email: str) -> None:
        # An invitation for a registered email could never be accepted
        if self.provisioner.has_account(email):
            raise ConflictError(f"An account already exists for {email}", email=email)

    # --- Issue ---

    def issue(
        self,
        inviter: Principal,
        email: str,
        role: str,
        department: str | None = None,
    ) -> IssuedInvitation:
        if not self.can_manage(inviter):
            raise UnauthorizedError(
                "Your role cannot issue invitations", requester=str(inviter.id)
            )

        target = self.resolver.catalog.get_role(role)
        if target is None:
            raise UnknownRoleError(role)

        email = normalize_email(email)

        # Lower level is more privileged
        inviter_level = self.resolver.catalog.level_of(inviter.role)
        if inviter_level is None or target.level < inviter_level:
            raise UnauthorizedError(
                f"Cannot invite to role '{target.name.value}', which outranks your own",
                role=target.name.value,
            )

        department = department.strip() if department and department.strip() else None

        with translate_store_errors("issue invitation"):
            self._ensure_no_account(email)
            now = self.clock.now_utc()
            # Frees the one-pending-per-email slot held by an overdue row
            self.repo.expire_overdue(now, email=email)

            for attempt in range(1, self.rules.max_token_attempts + 1):
                token = self.token_factory(self.rules.token_bytes)
                invitation = Invitation(
                    id=uuid4(),
                    email=email,
                    role=target.name,
                    department=department,
                    token_hash=self.token_hasher.hash_token(token),
                    status=InvitationStatus.PENDING,
                    issued_at=now,
                    expires_at=now + timedelta(days=self.rules.ttl_days),
                    invited_by=inviter.id,
                )
                try:
                    saved = self.repo.create(invitation)
                except DuplicateToken:
                    logger.warning("Token collision on attempt %d; regenerating", attempt)
                    continue
                except DuplicatePendingInvitation as e:
                    raise ConflictError(
                        f"A pending invitation already exists for {email}", email=email
                    ) from e

                logger.info(
                    "Invitation %s issued to %s as %s by %s",
                    saved.id,
                    email,
                    saved.role.value,
                    inviter.id,
                )
                return IssuedInvitation(invitation=saved, token=token)

        raise TokenGenerationExhaustedError(self.rules.max_token_attempts)

    # --- Read ---

    def _find_by_token(self, token: str) -> Invitation:
        if not token or not token.strip():
            raise NotFoundError("Invitation not found")
        invitation = self.repo.get_by_token_hash(self.token_hasher.hash_token(token.strip()))
        if invitation is None:
            raise NotFoundError("Invitation not found")
        return invitation

    def get_by_token(self, token: str) -> InvitationView:
        with translate_store_errors("fetch invitation"):
            invitation = self._find_by_token(token)

        status = invitation.effective_status(self.clock.now_utc())
        if status == InvitationStatus.ACCEPTED:
            # Acceptance is final; never reported as expired afterwards
            raise AlreadyAcceptedError()
        if status == InvitationStatus.EXPIRED:
            raise ExpiredError()
        if status == InvitationStatus.REVOKED:
            raise NotFoundError("Invitation not found")

        return InvitationView(
            email=invitation.email,
            role=invitation.role,
            department=invitation.department,
            expires_at=invitation.expires_at,
        )

    def list_invitations(
        self, requester: Principal, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        """Admins see every row, other managers their own. Status is the effective one."""
        if not self.can_manage(requester):
            raise UnauthorizedError("Your role cannot list invitations")

        invited_by = None if self.is_admin(requester) else requester.id
        with translate_store_errors("list invitations"):
            rows = self.repo.list_invitations(invited_by=invited_by)

        now = self.clock.now_utc()
        result = []
        for row in rows:
            effective = row.effective_status(now)
            if status is not None and effective != status:
                continue
            if effective != row.status:
                row = row.model_copy(update={"status": effective})
            result.append(row)
        return result

    # --- Accept ---

    def _raise_for_state(self, invitation: Invitation, now: datetime) -> None:
        status = invitation.effective_status(now)
        if status == InvitationStatus.ACCEPTED:
            raise AlreadyAcceptedError()
        if status == InvitationStatus.EXPIRED:
            raise ExpiredError()
        ensure_transition(status, InvitationStatus.ACCEPTED)

    def accept(self, token: str, password: str, fields: ProfileFields) -> Account:
        validate_acceptance(password, fields, self.account_rules)
        fields = ProfileFields(
            full_name=fields.full_name.strip(),
            phone=(fields.phone or "").strip() or None,
            location=(fields.location or "").strip() or None,
        )

        with translate_store_errors("accept invitation"):
            invitation = self._find_by_token(token)
            now = self.clock.now_utc()
            self._raise_for_state(invitation, now)
            self._ensure_no_account(invitation.email)

            claim_id = uuid4()
            stale_before = now - timedelta(seconds=self.rules.claim_ttl_seconds)
            if not self.repo.try_claim(invitation.id, claim_id, now, stale_before):
                current = self.repo.get_by_id(invitation.id)
                if current is None:
                    raise NotFoundError("Invitation not found")
                self._raise_for_state(current, now)
                raise ConflictError(
                    "Invitation is already being accepted", invitation_id=str(invitation.id)
                )

            try:
                account = self.provisioner.provision(
                    invitation.email,
                    password,
                    fields,
                    role=invitation.role,
                    department=invitation.department,
                )
            except Exception:
                self._release(invitation.id, claim_id)
                raise

            try:
                marked = self.repo.mark_accepted(
                    invitation.id, claim_id, account.id, self.clock.now_utc()
                )
            except StoreError as e:
                return self._recover_unconfirmed_accept(invitation.id, claim_id, account, e)

            if not marked:
                conflict = ConflictError(
                    "Invitation changed while the account was being created",
                    invitation_id=str(invitation.id),
                )
                self.provisioner.rollback(account, conflict)
                raise conflict

        logger.info("Invitation %s accepted; account %s", invitation.id, account.id)
        return account

    def _recover_unconfirmed_accept(
        self, invitation_id: UUID, claim_id: UUID, account: Account, error: StoreError
    ) -> Account:
        """
        mark_accepted raised, so the write may or may not have landed.

        If the row shows this account, the accept went through. Otherwise the
        account is rolled back (an inconsistency is escalated by the
        provisioner), the claim released and the store error re-raised.
        """
        try:
            current = self.repo.get_by_id(invitation_id)
        except StoreError:
            logger.warning(
                "Could not re-read invitation %s after a failed accept",
                invitation_id,
                exc_info=True,
            )
            current = None

        if (
            current is not None
            and current.status == InvitationStatus.ACCEPTED
            and current.account_id == account.id
        ):
            logger.info("Invitation %s accepted; account %s", invitation_id, account.id)
            return account

        self.provisioner.rollback(account, error)
        self._release(invitation_id, claim_id)
        raise error

    def _release(self, invitation_id: UUID, claim_id: UUID) -> None:
        try:
            self.repo.release_claim(invitation_id, claim_id)
        except StoreError:
            # The claim goes stale after claim_ttl_seconds and can be retaken
            logger.warning("Could not release claim on invitation %s", invitation_id)

    # --- Revoke / delete ---

    def revoke(self, invitation_id: UUID, requester: Principal) -> Invitation:
        with translate_store_errors("revoke invitation"):
            invitation = self.repo.get_by_id(invitation_id)
            if invitation is None:
                raise NotFoundError("Invitation not found", invitation_id=str(invitation_id))
            if not self._can_modify(requester, invitation):
                raise UnauthorizedError(
                    "Only the inviter or an administrator can revoke this invitation",
                    invitation_id=str(invitation_id),
                )

            now = self.clock.now_utc()
            ensure_transition(invitation.effective_status(now), InvitationStatus.REVOKED)

            if not self.repo.transition_pending(invitation_id, InvitationStatus.REVOKED, now):
                current = self.repo.get_by_id(invitation_id)
                if current is None:
                    raise NotFoundError("Invitation not found", invitation_id=str(invitation_id))
                raise InvalidStateError(current.status.value, InvitationStatus.REVOKED.value)

            revoked = self.repo.get_by_id(invitation_id)

        logger.info("Invitation %s revoked by %s", invitation_id, requester.id)
        return revoked or invitation.model_copy(
            update={"status": InvitationStatus.REVOKED, "revoked_at": now}
        )

    def _delete_one(self, invitation_id: UUID, requester: Principal) -> None:
        with translate_store_errors("delete invitation"):
            invitation = self.repo.get_by_id(invitation_id)
            if invitation is None:
                raise NotFoundError("Invitation not found", invitation_id=str(invitation_id))
            if not self._can_modify(requester, invitation):
                raise UnauthorizedError(
                    "Only the inviter or an administrator can delete this invitation",
                    invitation_id=str(invitation_id),
                )
            if not self.repo.delete(invitation_id):
                raise NotFoundError("Invitation not found", invitation_id=str(invitation_id))

    def bulk_delete(self, ids: Iterable[UUID], requester: Principal) -> list[DeleteResult]:
        """Each id is authorized and deleted on its own; one failure does not stop the rest."""
        results: list[DeleteResult] = []
        for invitation_id in ids:
            try:
                self._delete_one(invitation_id, requester)
            except UHubError as e:
                results.append(
                    DeleteResult(
                        invitation_id=invitation_id,
                        ok=False,
                        error=ServiceError.from_exception(e),
                    )
                )
            else:
                results.append(DeleteResult(invitation_id=invitation_id, ok=True))

        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.warning("Bulk delete by %s: %d of %d failed", requester.id, failed, len(results))
        return results

    # --- Maintenance ---

    def cleanup_expired(self, now: datetime | None = None) -> int:
        """Delete pending/expired rows past expiry. Accepted and revoked rows are kept."""
        with translate_store_errors("cleanup expired invitations"):
            deleted = self.repo.delete_expired(now or self.clock.now_utc())
        if deleted:
            logger.info("Cleaned up %d expired invitations", deleted)
        return deleted

    def expire_overdue(self, now: datetime | None = None) -> int:
        with translate_store_errors("expire invitations"):
            return self.repo.expire_overdue(now or self.clock.now_utc())


