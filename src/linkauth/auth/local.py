"""Local (email + password) authentication and signup.

Learn: Login walks three checks in a fixed order:
1. No user with that email        → INVALID_CREDENTIALS
2. User exists but has no password → EXTERNAL_ACCOUNT ("log in with Google")
3. Password doesn't verify         → INVALID_CREDENTIALS

(1) and (3) are indistinguishable to the caller, in message and in
timing: (1) still pays for a bcrypt verify against a dummy hash. (2) is
allowed to differ because telling the user which path to use is the
whole point, and the account is theirs anyway.

Rejections are return values, never exceptions. Store failures are
not rejections — they propagate as StoreError.
"""

from typing import Union

import structlog

from linkauth.auth.outcome import Rejected, RejectionReason
from linkauth.auth.password import PasswordHasher
from linkauth.db.models import User
from linkauth.errors import UniqueViolationError
from linkauth.services.credential_store import CredentialStore

logger = structlog.get_logger()


class LocalAuthenticator:
    """Email/password checks against the credential store."""

    def __init__(
        self,
        credentials: CredentialStore,
        hasher: PasswordHasher,
        provider_name: str = "Google",
    ):
        self.credentials = credentials
        self.hasher = hasher
        self.provider_name = provider_name

    def _reject(self, reason: RejectionReason) -> Rejected:
        return Rejected(reason=reason, provider=self.provider_name)

    async def authenticate(self, email: str, password: str) -> Union[User, Rejected]:
        user = await self.credentials.get_by_email(email)
        if user is None:
            await self.hasher.verify_dummy(password)
            return self._reject(RejectionReason.INVALID_CREDENTIALS)

        if not user.password_hash:
            return self._reject(RejectionReason.EXTERNAL_ACCOUNT)

        if not await self.hasher.verify(password, user.password_hash):
            return self._reject(RejectionReason.INVALID_CREDENTIALS)

        return user

    async def register(
        self, full_name: str, email: str, password: str
    ) -> Union[User, Rejected]:
        """Create a local-only user.

        Learn: The early get_by_email is just the fast path for the common
        duplicate case. Correctness comes from the UNIQUE constraint — if
        two signups race past the check, the loser's INSERT fails and is
        reported as the same DUPLICATE_EMAIL rejection.
        """
        if await self.credentials.get_by_email(email) is not None:
            return self._reject(RejectionReason.DUPLICATE_EMAIL)

        password_hash = await self.hasher.hash(password)
        try:
            return await self.credentials.insert(
                full_name=full_name,
                email=email,
                password_hash=password_hash,
            )
        except UniqueViolationError:
            logger.info("auth.signup_race_lost", email=email)
            return self._reject(RejectionReason.DUPLICATE_EMAIL)
