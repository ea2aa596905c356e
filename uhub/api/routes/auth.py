import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Response, status

from uhub.adapters.sqlite.repos import SQLiteProfileRepo
from uhub.api.auth_utils import create_access_token
from uhub.api.deps import get_identity_store, get_profile_store, get_rules
from uhub.api.schemas import LoginRequest, Token
from uhub.ports.stores import IdentityStorePort
from uhub.rules.models import Rules

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=Token)
def login_for_access_token(
    req: LoginRequest,
    response: Response,
    identities: IdentityStorePort = Depends(get_identity_store),
    profiles: SQLiteProfileRepo = Depends(get_profile_store),
    rules: Rules = Depends(get_rules),
) -> Token:
    """Authenticate against the identity store and return an access token."""
    timeout = rules.provisioning.store_timeout_seconds
    identity = identities.authenticate(req.email.strip().lower(), req.password, timeout=timeout)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profile = profiles.get_profile(identity.id, timeout=timeout)
    if profile is None:
        # Identity without a profile: a half-provisioned account
        logger.warning("Login for identity %s without a profile", identity.id)
        raise HTTPException(status_code=403, detail="Account is not provisioned")
    if profile.status != "active":
        raise HTTPException(status_code=400, detail="Account is inactive")

    ttl_minutes = rules.auth.token_ttl_minutes
    access_token = create_access_token(profile.id, timedelta(minutes=ttl_minutes))

    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        max_age=ttl_minutes * 60,
        samesite="lax",
        secure=False,  # Set to True for HTTPS prod
    )

    return Token(access_token=access_token, token_type="bearer")


@router.post("/logout")
def logout(response: Response) -> dict[str, str]:
    response.delete_cookie(key="access_token")
    return {"status": "success"}
