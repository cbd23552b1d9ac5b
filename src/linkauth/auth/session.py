"""Session manager — user ↔ opaque session reference.

Learn: A session reference is a random token. It maps to nothing but
{"user_id": ...} in the session store, so no profile data and certainly
no password hash ever ride along with it.

restore() always re-reads the user row: profile changes show up on the
next request, and a user that no longer exists is simply "not found"
(and the dangling reference is dropped).
"""

import secrets
from typing import Optional

import structlog

from linkauth.auth.session_store import SessionStore
from linkauth.db.models import User
from linkauth.services.credential_store import CredentialStore

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 60 * 60 * 24


class SessionManager:
    """Establish, restore and invalidate sessions."""

    def __init__(self, store: SessionStore, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def establish(self, user: User) -> str:
        """anonymous → authenticated. Returns the new session reference."""
        session_ref = secrets.token_urlsafe(32)
        await self.store.put(
            session_ref, {"user_id": str(user.id)}, self.ttl_seconds
        )
        return session_ref

    async def restore(
        self, session_ref: Optional[str], credentials: CredentialStore
    ) -> Optional[User]:
        """Look up the live user behind a session reference, or None."""
        if not session_ref:
            return None

        data = await self.store.get(session_ref)
        if not data or "user_id" not in data:
            return None

        user = await credentials.get_by_id(data["user_id"])
        if user is None:
            logger.info("auth.session_user_missing", user_id=data["user_id"])
            await self.store.delete(session_ref)
        return user

    async def invalidate(self, session_ref: Optional[str]) -> None:
        """authenticated → anonymous (logout)."""
        if session_ref:
            await self.store.delete(session_ref)
