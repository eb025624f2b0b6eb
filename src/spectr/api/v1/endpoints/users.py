"""User profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from spectr.schemas.user import ProfileUpdateRequest, UserPublic, UserResponse

from ..dependencies import CurrentUserDep, RepoDep

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: CurrentUserDep) -> UserResponse:
    """Return the authenticated user's profile."""
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    payload: ProfileUpdateRequest,
    current_user: CurrentUserDep,
    repo: RepoDep,
) -> UserResponse:
    """Update display name and/or avatar.

    Messages already sent keep the name and avatar they were sent with.
    """
    user = repo.update_profile(
        current_user,
        display_name=payload.display_name,
        avatar_url=payload.avatar_url,
    )
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserPublic)
async def read_user(user_id: str, current_user: CurrentUserDep, repo: RepoDep) -> UserPublic:
    """Return another user's public profile."""
    user = repo.find_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic.model_validate(user)
