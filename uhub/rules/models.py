from typing import Literal

from pydantic import BaseModel, Field, model_validator

from uhub.domain.entities import Feature, NavigationItem, QuickAction, Role

WILDCARD = "*"


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class RoleRule(BaseModel):
    level: int = Field(ge=1)
    label: str
    description: str = ""


class LandingRules(BaseModel):
    unauthenticated: str = "/login"
    roles: dict[Role, str]


class InvitationRules(BaseModel):
    ttl_days: int = Field(default=7, ge=1)
    token_bytes: int = Field(default=32, ge=16)  # 16 bytes == 128 bits
    max_token_attempts: int = Field(default=5, ge=1, le=20)
    manage_min_level: int = Field(default=1, ge=1)
    admin_level: int = Field(default=1, ge=1)
    claim_ttl_seconds: int = Field(default=300, ge=1)


class AccountRules(BaseModel):
    password_min_length: int = Field(default=8, ge=1)


class ProvisioningRules(BaseModel):
    store_timeout_seconds: float = Field(default=10.0, gt=0)


class AuthRules(BaseModel):
    token_ttl_minutes: int = Field(default=60 * 24, ge=1)


class StorageRules(BaseModel):
    busy_timeout_seconds: float = Field(default=5.0, gt=0)


class Rules(BaseModel):
    project: ProjectRules
    roles: dict[Role, RoleRule]
    features: dict[Feature, list[Role | Literal["*"]]]
    navigation: list[NavigationItem]
    landing: LandingRules
    quick_actions: dict[Role, list[QuickAction]] = Field(default_factory=dict)
    invitations: InvitationRules = Field(default_factory=InvitationRules)
    accounts: AccountRules = Field(default_factory=AccountRules)
    provisioning: ProvisioningRules = Field(default_factory=ProvisioningRules)
    auth: AuthRules = Field(default_factory=AuthRules)
    storage: StorageRules = Field(default_factory=StorageRules)

    @model_validator(mode="after")
    def _complete(self) -> "Rules":
        """Structural completeness of the access matrix."""
        problems: list[str] = []

        missing_roles = [r.value for r in Role if r not in self.roles]
        if missing_roles:
            problems.append(f"roles without a definition: {', '.join(missing_roles)}")

        missing_features = [f.value for f in Feature if f not in self.features]
        if missing_features:
            problems.append(f"features without an access rule: {', '.join(missing_features)}")

        seen_keys: set[str] = set()
        seen_paths: set[str] = set()
        for item in self.navigation:
            if item.key in seen_keys:
                problems.append(f"duplicate navigation key '{item.key}'")
            if item.path in seen_paths:
                problems.append(f"duplicate navigation path '{item.path}'")
            seen_keys.add(item.key)
            seen_paths.add(item.path)

        missing_landing = [r.value for r in Role if r not in self.landing.roles]
        if missing_landing:
            problems.append(f"roles without a landing page: {', '.join(missing_landing)}")

        if problems:
            raise ValueError("; ".join(problems))
        return self
