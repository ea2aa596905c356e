from uuid import UUID

from fastapi import APIRouter, Depends

from uhub.api.deps import (
    get_current_principal,
    get_current_profile,
    get_resolver,
    get_role_administrator,
)
from uhub.api.schemas import (
    AccessProfileResponse,
    AccountListResponse,
    AccountSummary,
    ChangeRoleRequest,
    FeatureAccessResponse,
)
from uhub.components.role_admin import RoleAdministrator
from uhub.domain.entities import NavigationItem, Principal, Profile
from uhub.domain.policy import AccessResolver

router = APIRouter()


@router.get("/navigation", response_model=list[NavigationItem])
def visible_navigation(
    role: str,
    resolver: AccessResolver = Depends(get_resolver),
) -> list[NavigationItem]:
    """Navigation items visible to ``role``, in declaration order. Unknown role: empty."""
    return resolver.visible_navigation(role)


@router.get("/feature", response_model=FeatureAccessResponse)
def feature_access(
    role: str,
    feature: str,
    resolver: AccessResolver = Depends(get_resolver),
) -> FeatureAccessResponse:
    return FeatureAccessResponse(
        role=role, feature=feature, allowed=resolver.has_feature_access(role, feature)
    )


@router.get("/me", response_model=AccessProfileResponse)
def my_access(
    profile: Profile = Depends(get_current_profile),
    resolver: AccessResolver = Depends(get_resolver),
) -> AccessProfileResponse:
    role = profile.role.value
    return AccessProfileResponse(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        role=profile.role,
        level=resolver.catalog.level_of(role) or 0,
        features=resolver.features_for(role),
        navigation=resolver.visible_navigation(role),
        landing_page=resolver.landing_page(role),
        quick_actions=resolver.quick_actions(role),
    )


@router.get("/accounts", response_model=AccountListResponse)
def list_accounts(
    principal: Principal = Depends(get_current_principal),
    admin: RoleAdministrator = Depends(get_role_administrator),
) -> AccountListResponse:
    profiles = admin.list_accounts(principal)
    items = [AccountSummary.from_profile(p) for p in profiles]
    return AccountListResponse(items=items, total=len(items))


@router.post("/accounts/{profile_id}/role", response_model=AccountSummary)
def change_role(
    profile_id: UUID,
    req: ChangeRoleRequest,
    principal: Principal = Depends(get_current_principal),
    admin: RoleAdministrator = Depends(get_role_administrator),
) -> AccountSummary:
    """Set an account's role. The account sees the new role on its next request."""
    return AccountSummary.from_profile(admin.change_role(principal, profile_id, req.role))
