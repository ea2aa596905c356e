import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from uhub.adapters.alerts import LoggingAlertSink
from uhub.adapters.auth.crypto import Argon2AuthAdapter
from uhub.adapters.clock import SystemClock
from uhub.adapters.http_identity import HttpIdentityStore
from uhub.adapters.sqlite.repos import (
    SQLiteIdentityStore,
    SQLiteInvitationRepo,
    SQLiteProfileRepo,
)
from uhub.api.auth_utils import account_id_from_token
from uhub.components.invitations import InvitationService
from uhub.components.provisioning import AccountProvisioner
from uhub.components.role_admin import RoleAdministrator
from uhub.domain.entities import Principal, Profile
from uhub.domain.errors import UnauthorizedError
from uhub.domain.policy import AccessResolver
from uhub.ports.stores import IdentityStorePort
from uhub.rules.loader import load_rules
from uhub.rules.models import Rules

logger = logging.getLogger(__name__)


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("UHUB_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "uhub.db")
        self.identity_db_path = str(self.data_dir / "identity.db")
        self.rules_path = Path(
            os.environ.get("UHUB_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.identity_url = os.environ.get("UHUB_IDENTITY_URL") or None
        self.identity_service_key = os.environ.get("UHUB_IDENTITY_SERVICE_KEY", "")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_resolver(rules: Rules = Depends(get_rules)) -> AccessResolver:
    return AccessResolver(rules)


# --- Adapters ---
@lru_cache
def get_clock() -> SystemClock:
    return SystemClock()


@lru_cache
def get_auth_adapter() -> Argon2AuthAdapter:
    return Argon2AuthAdapter()


@lru_cache
def get_alert_sink() -> LoggingAlertSink:
    return LoggingAlertSink()


@lru_cache
def _http_identity_store(base_url: str, service_key: str) -> HttpIdentityStore:
    return HttpIdentityStore(base_url, service_key)


# --- Stores ---
def get_invitation_repo(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> SQLiteInvitationRepo:
    return SQLiteInvitationRepo(settings.db_path, rules.storage.busy_timeout_seconds)


def get_profile_store(settings: Settings = Depends(get_settings)) -> SQLiteProfileRepo:
    return SQLiteProfileRepo(settings.db_path)


def get_identity_store(
    settings: Settings = Depends(get_settings),
    hasher: Argon2AuthAdapter = Depends(get_auth_adapter),
) -> IdentityStorePort:
    if settings.identity_url:
        return _http_identity_store(settings.identity_url, settings.identity_service_key)
    return SQLiteIdentityStore(settings.identity_db_path, hasher)


# --- Component Services ---
def get_provisioner(
    identities: IdentityStorePort = Depends(get_identity_store),
    profiles: SQLiteProfileRepo = Depends(get_profile_store),
    alerts: LoggingAlertSink = Depends(get_alert_sink),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> AccountProvisioner:
    return AccountProvisioner(
        identities=identities,
        profiles=profiles,
        alerts=alerts,
        clock=clock,
        timeout=rules.provisioning.store_timeout_seconds,
    )


def get_invitation_service(
    repo: SQLiteInvitationRepo = Depends(get_invitation_repo),
    provisioner: AccountProvisioner = Depends(get_provisioner),
    resolver: AccessResolver = Depends(get_resolver),
    hasher: Argon2AuthAdapter = Depends(get_auth_adapter),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> InvitationService:
    return InvitationService(
        repo=repo,
        provisioner=provisioner,
        resolver=resolver,
        token_hasher=hasher,
        clock=clock,
        rules=rules.invitations,
        account_rules=rules.accounts,
    )


def get_role_administrator(
    profiles: SQLiteProfileRepo = Depends(get_profile_store),
    resolver: AccessResolver = Depends(get_resolver),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> RoleAdministrator:
    return RoleAdministrator(
        profiles=profiles,
        resolver=resolver,
        clock=clock,
        timeout=rules.provisioning.store_timeout_seconds,
    )


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_profile(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    profiles: SQLiteProfileRepo = Depends(get_profile_store),
    rules: Rules = Depends(get_rules),
) -> Profile:
    # Cookie first (HttpOnly), then the Authorization header
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ")[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account_id = account_id_from_token(token)
    if account_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # The role comes from the profile store, never from the token
    profile = profiles.get_profile(account_id, timeout=rules.provisioning.store_timeout_seconds)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
        )

    if profile.status != "active":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive account",
        )

    return profile


def get_current_principal(profile: Profile = Depends(get_current_profile)) -> Principal:
    return Principal(id=profile.id, role=profile.role.value)


def require_manager(
    principal: Principal = Depends(get_current_principal),
    service: InvitationService = Depends(get_invitation_service),
) -> Principal:
    if not service.can_manage(principal):
        raise UnauthorizedError("Your role cannot manage invitations")
    return principal
