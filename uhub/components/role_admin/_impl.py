"""
RoleAdministrator - changes the role stored on an account's profile.

Only roles holding the role_management feature may list accounts or
change roles. A requester can never grant a role that outranks their own,
nor touch an account that already outranks them, nor change their own
role. Requests read the role from the profile store on every call, so a
change takes effect on the account's next request.
"""

from __future__ import annotations

import logging
from uuid import UUID

from uhub.domain.entities import Feature, Principal, Profile, Role
from uhub.domain.errors import (
    NotFoundError,
    UnauthorizedError,
    UnknownRoleError,
    translate_store_errors,
)
from uhub.domain.policy import AccessResolver

from .ports import ClockPort, ProfileStorePort

logger = logging.getLogger(__name__)


class RoleAdministrator:
    def __init__(
        self,
        profiles: ProfileStorePort,
        resolver: AccessResolver,
        clock: ClockPort,
        timeout: float = 10.0,
    ):
        self.profiles = profiles
        self.resolver = resolver
        self.clock = clock
        self.timeout = timeout

    def can_administer(self, requester: Principal) -> bool:
        return self.resolver.has_feature_access(requester.role, Feature.ROLE_MANAGEMENT)

    def _require_admin(self, requester: Principal) -> int:
        level = self.resolver.catalog.level_of(requester.role)
        if level is None or not self.can_administer(requester):
            raise UnauthorizedError("Your role cannot manage roles", role=requester.role)
        return level

    def list_accounts(self, requester: Principal) -> list[Profile]:
        self._require_admin(requester)
        with translate_store_errors("list accounts"):
            return self.profiles.list_profiles(timeout=self.timeout)

    def change_role(self, requester: Principal, profile_id: UUID, role: str) -> Profile:
        """
        Set ``profile_id``'s role to ``role``.

        Setting the role an account already has is a no-op that returns the
        stored profile unchanged.
        """
        requester_level = self._require_admin(requester)

        new_level = self.resolver.catalog.level_of(role)
        if new_level is None:
            raise UnknownRoleError(role)
        if profile_id == requester.id:
            raise UnauthorizedError("You cannot change your own role")
        if new_level < requester_level:
            raise UnauthorizedError(f"Cannot grant '{role}', it outranks your role", role=role)

        with translate_store_errors("change role"):
            profile = self.profiles.get_profile(profile_id, timeout=self.timeout)
            if profile is None:
                raise NotFoundError("Account not found", profile_id=str(profile_id))

            current_level = self.resolver.catalog.level_of(profile.role.value)
            if current_level is not None and current_level < requester_level:
                raise UnauthorizedError(
                    "Cannot change the role of an account that outranks yours",
                    profile_id=str(profile_id),
                )

            new_role = Role(role)
            if profile.role == new_role:
                return profile

            updated = self.profiles.update_role(
                profile_id, new_role, self.clock.now_utc(), timeout=self.timeout
            )
            if updated is None:
                raise NotFoundError("Account not found", profile_id=str(profile_id))

        logger.info(
            "Role of %s changed from %s to %s by %s",
            profile_id,
            profile.role.value,
            new_role.value,
            requester.id,
        )
        return updated
