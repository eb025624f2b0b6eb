"""Google OAuth 2.0 exchange for the sign-in flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from spectr.core.settings import settings

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class OAuthError(RuntimeError):
    """Raised when the provider rejects or cannot complete an exchange."""


class OAuthNotConfiguredError(OAuthError):
    """Raised when client credentials are missing from the configuration."""


@dataclass(frozen=True)
class ExternalIdentity:
    """Identity asserted by the provider after a successful exchange."""

    subject: str
    email: str | None
    name: str
    avatar_url: str | None


class GoogleOAuthProvider:
    """Authorization-code flow against Google's OpenID Connect endpoints."""

    def __init__(
        self,
        *,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state: str) -> str:
        """Return the URL the browser is sent to for consent."""
        if not self.configured:
            raise OAuthNotConfiguredError("Google sign-in is not configured")
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": "openid email profile",
                "state": state,
                "prompt": "select_account",
            }
        )
        return f"{GOOGLE_AUTHORIZE_URL}?{query}"

    async def exchange(self, code: str) -> ExternalIdentity:
        """Trade an authorization code for the user's profile.

        Raises:
            OAuthError: If the provider rejects the code or the response is unusable.
        """
        if not self.configured:
            raise OAuthNotConfiguredError("Google sign-in is not configured")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                token_response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise OAuthError("Provider did not return an access token")

                profile_response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                profile_response.raise_for_status()
                profile = profile_response.json()
            except httpx.HTTPStatusError as exc:
                logger.warning(
                    "OAuth provider returned %s for %s",
                    exc.response.status_code,
                    exc.request.url,
                )
                raise OAuthError("Provider rejected the authorization code") from exc
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("OAuth exchange failed: %s", exc)
                raise OAuthError("Could not reach the identity provider") from exc

        subject = profile.get("sub")
        if not subject:
            raise OAuthError("Provider response has no subject")
        return ExternalIdentity(
            subject=str(subject),
            email=profile.get("email"),
            name=profile.get("name") or profile.get("email") or "User",
            avatar_url=profile.get("picture"),
        )


def get_oauth_provider() -> GoogleOAuthProvider:
    """Return a provider configured from settings."""
    return GoogleOAuthProvider(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.oauth_redirect_uri,
        timeout=settings.oauth_http_timeout_seconds,
    )
