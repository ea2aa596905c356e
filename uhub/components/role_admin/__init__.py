"""
Role administration component - lists accounts and changes their role.
"""

from ._impl import RoleAdministrator
from .component import run_change_role, run_list_accounts
from .models import AccountListOutput, ChangeRoleInput, ChangeRoleOutput, ListAccountsInput
from .ports import ClockPort, ProfileStorePort

__all__ = [
    # Entry points
    "run_change_role",
    "run_list_accounts",
    # Input models
    "ChangeRoleInput",
    "ListAccountsInput",
    # Output models
    "AccountListOutput",
    "ChangeRoleOutput",
    # Ports
    "ClockPort",
    "ProfileStorePort",
    # Service
    "RoleAdministrator",
]
