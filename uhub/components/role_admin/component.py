"""
Role administration component - Shell layer.
"""

from __future__ import annotations

from uhub.domain.errors import ServiceError, UHubError

from ._impl import RoleAdministrator
from .models import AccountListOutput, ChangeRoleInput, ChangeRoleOutput, ListAccountsInput


def run_list_accounts(inp: ListAccountsInput, admin: RoleAdministrator) -> AccountListOutput:
    try:
        profiles = admin.list_accounts(inp.requester)
    except UHubError as e:
        return AccountListOutput(profiles=[], success=False, error=ServiceError.from_exception(e))

    return AccountListOutput(profiles=profiles, success=True)


def run_change_role(inp: ChangeRoleInput, admin: RoleAdministrator) -> ChangeRoleOutput:
    try:
        profile = admin.change_role(inp.requester, inp.profile_id, inp.role)
    except UHubError as e:
        return ChangeRoleOutput(profile=None, success=False, error=ServiceError.from_exception(e))

    return ChangeRoleOutput(profile=profile, success=True)
