"""Authentication endpoints: Google sign-in and access token issuance."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from spectr.core.security import create_access_token, create_oauth_state, verify_oauth_state
from spectr.models import User
from spectr.repositories.chat_repo import ChatRepository
from spectr.schemas.user import LoginResponse, UserResponse
from spectr.services.oauth import ExternalIdentity, OAuthError, OAuthNotConfiguredError

from ..dependencies import OAuthProviderDep, RepoDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _find_or_create_user(repo: ChatRepository, identity: ExternalIdentity) -> tuple[User, bool]:
    """Return the user for ``identity``, creating it on first sign-in."""
    user = repo.find_user_by_external_id(identity.subject)
    if user is not None:
        return user, False
    if identity.email and repo.find_user_by_email(identity.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already linked to another account",
        )
    user = repo.create_user(
        external_id=identity.subject,
        email=identity.email,
        display_name=identity.name,
        avatar_url=identity.avatar_url,
    )
    logger.info("Created user %s on first sign-in", user.id)
    return user, True


@router.get("/google/login")
async def google_login(provider: OAuthProviderDep) -> dict[str, str]:
    """Return the URL the client should open to start Google sign-in."""
    state = create_oauth_state()
    try:
        url = provider.authorization_url(state)
    except OAuthNotConfiguredError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(err),
        ) from err
    return {"authorization_url": url, "state": state}


@router.get("/google/callback", response_model=LoginResponse)
async def google_callback(
    provider: OAuthProviderDep,
    repo: RepoDep,
    code: str = Query(..., min_length=1),
    state: str | None = Query(None),
) -> LoginResponse:
    """Exchange the authorization code, upsert the user and issue a token."""
    if not verify_oauth_state(state):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired sign-in state",
        )
    try:
        identity = await provider.exchange(code)
    except OAuthNotConfiguredError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(err),
        ) from err
    except OAuthError as err:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(err),
        ) from err

    user, created = _find_or_create_user(repo, identity)
    token = create_access_token(user.id)
    return LoginResponse(
        access_token=token,
        created=created,
        user=UserResponse.model_validate(user),
    )
