"""Auth façade — one entry point per authentication attempt.

Learn: Routes never talk to the authenticator, resolver or session
manager directly. They call the façade and get back exactly one of
Success / Rejected / Failed (see outcome.py), which maps 1:1 onto HTTP.

Two guarantees live here:
- Success only ever carries a PublicUser, so no hash leaves the core.
- Expected failures are values. Rejections are logged at info level;
  store/identity failures are logged with detail and returned as Failed.
"""

from typing import Optional

import structlog

from linkauth.auth.local import LocalAuthenticator
from linkauth.auth.oauth import ExternalIdentity, OAuthIdentityResolver
from linkauth.auth.outcome import AuthOutcome, Failed, PublicUser, Rejected, Success
from linkauth.auth.password import PasswordHasher
from linkauth.auth.session import SessionManager
from linkauth.errors import IdentityConflictError, MissingEmailError, StoreError
from linkauth.services.credential_store import CredentialStore

logger = structlog.get_logger()


class AuthFacade:
    """Orchestrates signup, login, OAuth login, logout and session lookup."""

    def __init__(
        self,
        credentials: CredentialStore,
        hasher: PasswordHasher,
        sessions: SessionManager,
        provider_name: str = "Google",
    ):
        self.credentials = credentials
        self.sessions = sessions
        self.local = LocalAuthenticator(credentials, hasher, provider_name)
        self.resolver = OAuthIdentityResolver(credentials)

    async def signup(self, full_name: str, email: str, password: str) -> AuthOutcome:
        try:
            result = await self.local.register(full_name, email, password)
        except StoreError as e:
            logger.exception("auth.store_error", operation="signup", email=email)
            return Failed(e)

        if isinstance(result, Rejected):
            logger.info("auth.signup_rejected", email=email, reason=result.reason.value)
            return result

        logger.info("auth.signup_succeeded", user_id=str(result.id), email=email)
        return Success(user=PublicUser.from_record(result))

    async def login(self, email: str, password: str) -> AuthOutcome:
        try:
            result = await self.local.authenticate(email, password)
            if isinstance(result, Rejected):
                logger.info("auth.login_rejected", email=email, reason=result.reason.value)
                return result
            session_ref = await self.sessions.establish(result)
        except StoreError as e:
            logger.exception("auth.store_error", operation="login", email=email)
            return Failed(e)

        logger.info("auth.login_succeeded", user_id=str(result.id), email=email)
        return Success(user=PublicUser.from_record(result), session_ref=session_ref)

    async def oauth_login(self, identity: ExternalIdentity) -> AuthOutcome:
        """Resolve a provider-verified identity and sign it in.

        Never returns Rejected: a verified identity with an email always
        resolves to some user unless something on our side fails.
        """
        try:
            user = await self.resolver.resolve(identity)
            session_ref = await self.sessions.establish(user)
        except (MissingEmailError, IdentityConflictError) as e:
            logger.warning(
                "auth.oauth_unresolvable",
                external_id=identity.external_id,
                email=identity.email,
                error=str(e),
            )
            return Failed(e)
        except StoreError as e:
            logger.exception(
                "auth.store_error", operation="oauth_login", email=identity.email
            )
            return Failed(e)

        logger.info("auth.oauth_login_succeeded", user_id=str(user.id), email=user.email)
        return Success(user=PublicUser.from_record(user), session_ref=session_ref)

    async def logout(self, session_ref: Optional[str]) -> None:
        await self.sessions.invalidate(session_ref)

    async def current_user(self, session_ref: Optional[str]) -> Optional[PublicUser]:
        user = await self.sessions.restore(session_ref, self.credentials)
        return PublicUser.from_record(user) if user else None
