"""
Provisioning component - Shell layer.

Converts provisioner exceptions into output models.
"""

from __future__ import annotations

from uhub.domain.errors import ServiceError, UHubError

from ._impl import AccountProvisioner
from .models import ProvisionInput, ProvisionOutput, RollbackInput, RollbackOutput


def run_provision(inp: ProvisionInput, provisioner: AccountProvisioner) -> ProvisionOutput:
    try:
        account = provisioner.provision(
            inp.email,
            inp.password,
            inp.profile,
            role=inp.role,
            department=inp.department,
        )
    except UHubError as e:
        return ProvisionOutput(account=None, success=False, error=ServiceError.from_exception(e))

    return ProvisionOutput(account=account, success=True)


def run_rollback(inp: RollbackInput, provisioner: AccountProvisioner) -> RollbackOutput:
    try:
        provisioner.rollback(inp.account, RuntimeError(inp.reason))
    except UHubError as e:
        return RollbackOutput(success=False, error=ServiceError.from_exception(e))

    return RollbackOutput(success=True)
