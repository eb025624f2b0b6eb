"""JWT helpers for access tokens and OAuth state values."""
from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from spectr.core.errors import UnauthenticatedError
from spectr.core.settings import settings

OAUTH_STATE_PURPOSE = "oauth_state"


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token for user authentication."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str | None) -> str:
    """Return the user id carried by ``token``.

    Raises:
        UnauthenticatedError: If the token is missing, expired or malformed.
    """
    if not token:
        raise UnauthenticatedError("Missing access token")
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise UnauthenticatedError("Could not validate credentials") from err

    subject = payload.get("sub")
    if not subject or payload.get("purpose") == OAUTH_STATE_PURPOSE:
        raise UnauthenticatedError("Could not validate credentials")
    return str(subject)


def create_oauth_state() -> str:
    """Issue a short-lived signed state value for the OAuth redirect."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.oauth_state_expire_minutes)
    return jwt.encode(
        {
            "purpose": OAUTH_STATE_PURPOSE,
            "nonce": secrets.token_urlsafe(16),
            "exp": expire,
        },
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_oauth_state(state: str | None) -> bool:
    """Return True if ``state`` was issued by :func:`create_oauth_state` and is unexpired."""
    if not state:
        return False
    try:
        payload = jwt.decode(state, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return False
    return payload.get("purpose") == OAUTH_STATE_PURPOSE
