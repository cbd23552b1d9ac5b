"""OAuth client — the provider handshake, delegated to Authlib.

Learn: We never speak the OAuth wire protocol ourselves. Authlib's
AsyncOAuth2Client (an httpx client underneath) builds the authorize URL,
exchanges the callback code for a token, and signs the userinfo request.
Our part is only mapping the provider profile to an ExternalIdentity.

Defaults point at Google; any OAuth2/OIDC provider with a userinfo
endpoint works by changing the three URLs in settings.
"""

from typing import Any

import httpx
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.httpx_client import AsyncOAuth2Client

from linkauth.auth.oauth import ExternalIdentity
from linkauth.config import Settings
from linkauth.errors import ConfigurationError, OAuthError


def identity_from_userinfo(info: dict[str, Any]) -> ExternalIdentity:
    """Map a provider profile to an ExternalIdentity.

    Accepts OIDC claims (sub/email/name) and the older profile shape
    (id/emails[0].value/displayName). A missing email is passed through —
    the resolver decides that's unrecoverable. An email the provider
    explicitly marks unverified is rejected here.
    """
    external_id = str(info.get("sub") or info.get("id") or "")
    if not external_id:
        raise OAuthError("Provider profile has no subject id")

    if info.get("email_verified") is False:
        raise OAuthError("Provider reports the email as unverified")

    email = info.get("email")
    if not email and info.get("emails"):
        email = info["emails"][0].get("value")

    full_name = info.get("name") or info.get("displayName") or ""
    return ExternalIdentity(external_id=external_id, email=email, full_name=full_name)


class OAuthClient:
    """Authorization-code flow against a single provider."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        authorize_url: str,
        token_url: str,
        userinfo_url: str,
        scopes: list[str],
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.authorize_url = authorize_url
        self.token_url = token_url
        self.userinfo_url = userinfo_url
        self.scopes = scopes

    @classmethod
    def from_settings(cls, settings: Settings) -> "OAuthClient":
        if not settings.oauth_configured:
            raise ConfigurationError(
                "OAuth client id, secret and callback URL must all be set"
            )
        return cls(
            client_id=settings.oauth_client_id,
            client_secret=settings.oauth_client_secret,
            redirect_uri=settings.oauth_callback_url,
            authorize_url=settings.oauth_authorize_url,
            token_url=settings.oauth_token_url,
            userinfo_url=settings.oauth_userinfo_url,
            scopes=settings.oauth_scopes,
        )

    def _client(self) -> AsyncOAuth2Client:
        return AsyncOAuth2Client(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
            scope=" ".join(self.scopes),
            timeout=10.0,
        )

    async def authorization_url(self, state: str) -> str:
        """URL to send the browser to, carrying our signed state."""
        async with self._client() as client:
            url, _ = client.create_authorization_url(self.authorize_url, state=state)
        return url

    async def fetch_identity(self, code: str) -> ExternalIdentity:
        """Exchange the callback code and read the user's profile."""
        try:
            async with self._client() as client:
                await client.fetch_token(self.token_url, code=code)
                response = await client.get(self.userinfo_url)
                response.raise_for_status()
                info = response.json()
        except (AuthlibBaseError, httpx.HTTPError, ValueError) as e:
            raise OAuthError(f"OAuth handshake failed: {e}") from e

        return identity_from_userinfo(info)
