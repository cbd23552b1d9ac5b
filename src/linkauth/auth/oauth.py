"""OAuth identity resolution — external identity → local user.

Learn: The provider has already verified who the user is; our job is
only to find (or make) the matching row. Three steps, in order, each
tried only if the previous one missed:

1. external_id match → already linked, return as-is (repeat logins are no-ops)
2. email match       → local-only user's first OAuth login: link in place
3. no match          → brand-new OAuth-only user

external_id always wins over email, so a linked account is never
re-linked or duplicated even if its email changes upstream.

Races are handled optimistically rather than with locks:
- link is a conditional UPDATE; if we lose, re-read and converge
- insert relies on UNIQUE constraints; on violation, redo the lookups once
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from linkauth.db.models import User
from linkauth.errors import (
    IdentityConflictError,
    MissingEmailError,
    StoreError,
    UniqueViolationError,
)
from linkauth.services.credential_store import CredentialStore

logger = structlog.get_logger()

# One real attempt plus one "retry as a lookup" after a uniqueness race.
MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class ExternalIdentity:
    """A provider-verified (external id, email, display name) triple."""

    external_id: str
    email: Optional[str]
    full_name: str = ""


class OAuthIdentityResolver:
    """Resolve a verified external identity to exactly one User row."""

    def __init__(self, credentials: CredentialStore):
        self.credentials = credentials

    async def resolve(self, identity: ExternalIdentity) -> User:
        """Find, link, or create the user for this identity.

        Raises:
            MissingEmailError: the identity has no email to key linkage on
            IdentityConflictError: the email's owner is linked to another id
            StoreError: the store failed (including a repeated uniqueness race)
        """
        if not identity.email:
            raise MissingEmailError("No email found in provider profile.")

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return await self._resolve_once(identity)
            except UniqueViolationError:
                if attempt == MAX_ATTEMPTS:
                    raise
                logger.info(
                    "auth.oauth_retry_as_lookup",
                    email=identity.email,
                    attempt=attempt,
                )
        raise AssertionError("unreachable")

    async def _resolve_once(self, identity: ExternalIdentity) -> User:
        user = await self.credentials.get_by_external_id(identity.external_id)
        if user is not None:
            return user

        user = await self.credentials.get_by_email(identity.email)
        if user is not None:
            return await self._link(user, identity)

        user = await self.credentials.insert(
            full_name=identity.full_name or identity.email.split("@", 1)[0],
            email=identity.email,
            external_id=identity.external_id,
        )
        logger.info("auth.oauth_user_created", user_id=str(user.id), email=user.email)
        return user

    async def _link(self, user: User, identity: ExternalIdentity) -> User:
        linked = await self.credentials.link_external_id(user.id, identity.external_id)

        current = await self.credentials.get_by_id(user.id)
        if current is None:
            raise StoreError(f"user {user.id} disappeared while linking")

        # Zero rows updated means the row already had an external_id.
        # Same id → a concurrent request linked it first; converge on it.
        if current.external_id != identity.external_id:
            raise IdentityConflictError(
                f"{current.email} is already linked to another external account"
            )

        logger.info(
            "auth.oauth_linked" if linked else "auth.oauth_link_converged",
            user_id=str(current.id),
            email=current.email,
        )
        return current
