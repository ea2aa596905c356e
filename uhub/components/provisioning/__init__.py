"""
Provisioning component - creates the linked identity/profile pair.
"""

from ._impl import AccountProvisioner
from .component import run_provision, run_rollback
from .models import ProvisionInput, ProvisionOutput, RollbackInput, RollbackOutput
from .ports import AlertPort, ClockPort, IdentityStorePort, ProfileStorePort

__all__ = [
    # Entry points
    "run_provision",
    "run_rollback",
    # Input models
    "ProvisionInput",
    "RollbackInput",
    # Output models
    "ProvisionOutput",
    "RollbackOutput",
    # Ports
    "AlertPort",
    "ClockPort",
    "IdentityStorePort",
    "ProfileStorePort",
    # Service
    "AccountProvisioner",
]
