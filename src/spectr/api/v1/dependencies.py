"""Shared API dependencies for authentication and common services."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from spectr.core.errors import UnauthenticatedError
from spectr.core.security import decode_access_token
from spectr.db.session import get_db
from spectr.models import User
from spectr.repositories.chat_repo import ChatRepository
from spectr.services.notifier import ReportNotifier, get_report_notifier
from spectr.services.oauth import GoogleOAuthProvider, get_oauth_provider
from spectr.services.realtime import RealtimeGateway, get_realtime_gateway
from spectr.services.storage import LocalFileStorage, get_file_storage

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_repository(db: SessionDep) -> ChatRepository:
    """Return a repository bound to the request's session."""
    return ChatRepository(db)


RepoDep = Annotated[ChatRepository, Depends(get_repository)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    repo: RepoDep,
) -> User:
    """Get the current authenticated user from the JWT bearer token.

    Raises:
        HTTPException: If the token is invalid or the user no longer exists.
    """
    try:
        user_id = decode_access_token(credentials.credentials)
    except UnauthenticatedError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    user = repo.find_user_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(current_user: CurrentUserDep) -> User:
    """Allow only administrators through."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return current_user


AdminUserDep = Annotated[User, Depends(require_admin)]


def get_gateway_dep() -> RealtimeGateway:
    """Return the shared realtime gateway."""
    return get_realtime_gateway()


def get_oauth_provider_dep() -> GoogleOAuthProvider:
    return get_oauth_provider()


def get_file_storage_dep() -> LocalFileStorage:
    return get_file_storage()


def get_report_notifier_dep() -> ReportNotifier:
    return get_report_notifier()


GatewayDep = Annotated[RealtimeGateway, Depends(get_gateway_dep)]
OAuthProviderDep = Annotated[GoogleOAuthProvider, Depends(get_oauth_provider_dep)]
StorageDep = Annotated[LocalFileStorage, Depends(get_file_storage_dep)]
NotifierDep = Annotated[ReportNotifier, Depends(get_report_notifier_dep)]
