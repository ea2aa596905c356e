from __future__ import annotations

from dataclasses import dataclass

from uhub.adapters.alerts import LoggingAlertSink
from uhub.adapters.auth.crypto import Argon2AuthAdapter
from uhub.adapters.clock import SystemClock
from uhub.adapters.http_identity import HttpIdentityStore
from uhub.adapters.sqlite.repos import (
    SQLiteIdentityStore,
    SQLiteInvitationRepo,
    SQLiteProfileRepo,
)
from uhub.api.deps import Settings
from uhub.components.invitations import InvitationService
from uhub.components.provisioning import AccountProvisioner
from uhub.domain.policy import AccessResolver
from uhub.ports.stores import IdentityStorePort
from uhub.rules.models import Rules


@dataclass
class ServiceContext:
    """Wired services for the CLI and scripts. The API wires per request instead."""

    rules: Rules
    resolver: AccessResolver
    invitations: InvitationService
    provisioner: AccountProvisioner
    profiles: SQLiteProfileRepo
    identities: IdentityStorePort
    alerts: LoggingAlertSink

    @classmethod
    def create(cls, settings: Settings, rules: Rules) -> ServiceContext:
        clock = SystemClock()
        hasher = Argon2AuthAdapter()
        alerts = LoggingAlertSink()
        resolver = AccessResolver(rules)

        identities: IdentityStorePort
        if settings.identity_url:
            identities = HttpIdentityStore(settings.identity_url, settings.identity_service_key)
        else:
            identities = SQLiteIdentityStore(settings.identity_db_path, hasher)
        profiles = SQLiteProfileRepo(settings.db_path)

        provisioner = AccountProvisioner(
            identities=identities,
            profiles=profiles,
            alerts=alerts,
            clock=clock,
            timeout=rules.provisioning.store_timeout_seconds,
        )
        invitations = InvitationService(
            repo=SQLiteInvitationRepo(settings.db_path, rules.storage.busy_timeout_seconds),
            provisioner=provisioner,
            resolver=resolver,
            token_hasher=hasher,
            clock=clock,
            rules=rules.invitations,
            account_rules=rules.accounts,
        )
        return cls(
            rules=rules,
            resolver=resolver,
            invitations=invitations,
            provisioner=provisioner,
            profiles=profiles,
            identities=identities,
            alerts=alerts,
        )
