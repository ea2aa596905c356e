"""
AccountProvisioner - two-step saga over the identity and profile stores.

Step 1 creates the identity record. Step 2 creates the profile record
keyed by the identity id. If step 2 fails, the identity is deleted again
(compensation). A failed compensation leaves the stores out of step; that
is reported as ProvisioningInconsistentError and pushed to the alert path
because nothing in the request flow can repair it.

Profile.id == IdentityRef.id == Account.id.
"""

from __future__ import annotations

import logging
from uuid import UUID

from uhub.domain.entities import Account, Profile, ProfileFields, Role
from uhub.domain.errors import (
    OperationTimeoutError,
    ProvisioningFailureError,
    ProvisioningInconsistentError,
    StoreError,
    StoreTimeout,
)

from .ports import AlertPort, ClockPort, IdentityStorePort, ProfileStorePort

logger = logging.getLogger(__name__)

ALERT_EVENT = "provisioning_inconsistent"


class AccountProvisioner:
    def __init__(
        self,
        identities: IdentityStorePort,
        profiles: ProfileStorePort,
        alerts: AlertPort,
        clock: ClockPort,
        timeout: float = 10.0,
    ):
        self.identities = identities
        self.profiles = profiles
        self.alerts = alerts
        self.clock = clock
        self.timeout = timeout

    def provision(
        self,
        email: str,
        password: str,
        fields: ProfileFields,
        *,
        role: Role,
        department: str | None = None,
    ) -> Account:
        # Step 1: identity. Nothing to undo if this fails.
        try:
            identity = self.identities.create_identity(
                email,
                password,
                metadata={"full_name": fields.full_name, "role": role.value},
                timeout=self.timeout,
            )
        except StoreTimeout as e:
            raise OperationTimeoutError("create identity", e.timeout) from e
        except StoreError as e:
            raise ProvisioningFailureError("identity", e) from e

        # Step 2: profile, linked by id
        now = self.clock.now_utc()
        profile = Profile(
            id=identity.id,
            email=email,
            full_name=fields.full_name,
            role=role,
            department=department,
            phone=fields.phone,
            location=fields.location,
            created_at=now,
            updated_at=now,
        )
        try:
            profile_ref = self.profiles.create_profile(profile, timeout=self.timeout)
        except Exception as e:
            logger.warning("Profile creation failed for %s; compensating: %s", identity.id, e)
            self._compensate(identity.id, e)
            if isinstance(e, StoreTimeout):
                raise OperationTimeoutError("create profile", e.timeout) from e
            if isinstance(e, StoreError):
                raise ProvisioningFailureError("profile", e) from e
            raise

        logger.info("Provisioned account %s (%s)", identity.id, role.value)
        return Account(id=identity.id, identity=identity, profile=profile_ref)

    def has_account(self, email: str) -> bool:
        """True if a profile is already registered under ``email``."""
        return self.profiles.get_by_email(email, timeout=self.timeout) is not None

    def rollback(self, account: Account, reason: Exception) -> None:
        """Delete both halves of an account that must not survive."""
        logger.warning("Rolling back account %s: %s", account.id, reason)
        self._compensate(account.id, reason)

    def _compensate(self, account_id: UUID, cause: Exception) -> None:
        # Profile first: a timed-out write may still have landed.
        failures: list[Exception] = []
        try:
            self.profiles.delete_profile(account_id, timeout=self.timeout)
        except Exception as e:
            failures.append(e)
        try:
            self.identities.delete_identity(account_id, timeout=self.timeout)
        except Exception as e:
            failures.append(e)

        if not failures:
            return

        error = ProvisioningInconsistentError(account_id, cause, failures[0])
        logger.error("Compensation failed for %s: %s", account_id, failures)
        self.alerts.raise_alert(ALERT_EVENT, error.details)
        raise error from failures[0]
