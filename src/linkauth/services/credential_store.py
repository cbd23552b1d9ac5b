"""Credential store — persistence for unified user records.

Learn: Service layer separates business logic from HTTP routing.
This class is the only code that touches the users table. Everything
above it (authenticators, resolver, sessions) works in terms of these
five operations:

- get_by_email / get_by_external_id / get_by_id  (lookups)
- insert                                         (single INSERT)
- link_external_id                               (single conditional UPDATE)

Uniqueness is the database's job. A violated UNIQUE constraint comes
back as UniqueViolationError; any other SQLAlchemy failure becomes a
StoreError so callers never see driver exceptions.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Optional, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth.db.models import User, utcnow
from linkauth.errors import StoreError, UniqueViolationError


PG_UNIQUE_VIOLATION = "23505"


def _is_unique_violation(e: IntegrityError) -> bool:
    """UNIQUE hit, as opposed to a CHECK / NOT NULL / FK failure."""
    if getattr(e.orig, "sqlstate", None) == PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(e.orig)


class CredentialStore:
    """Lookups and writes for User rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str):
        """Translate driver errors and roll back the failed transaction."""
        try:
            yield
        except IntegrityError as e:
            await self.db.rollback()
            if _is_unique_violation(e):
                raise UniqueViolationError(f"{operation}: uniqueness violated") from e
            raise StoreError(f"{operation}: integrity error") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"{operation} failed") from e

    async def _first(self, operation: str, *criteria) -> Optional[User]:
        # populate_existing: always return the row as stored now, not a
        # stale copy from this session's identity map.
        q = select(User).where(*criteria).execution_options(populate_existing=True)
        async with self._guard(operation):
            result = await self.db.execute(q)
            return result.scalars().first()

    # ─── Lookups ────────────────────────────────────────

    async def get_by_email(self, email: str) -> Optional[User]:
        """Exact-match email lookup."""
        return await self._first("get_by_email", User.email == email)

    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        return await self._first(
            "get_by_external_id", User.external_id == external_id
        )

    async def get_by_id(self, user_id: Union[str, uuid.UUID]) -> Optional[User]:
        """Lookup by primary key. Malformed ids are simply not found."""
        if not isinstance(user_id, uuid.UUID):
            try:
                user_id = uuid.UUID(str(user_id))
            except ValueError:
                return None
        return await self._first("get_by_id", User.id == user_id)

    # ─── Writes ─────────────────────────────────────────

    async def insert(
        self,
        *,
        full_name: str,
        email: str,
        password_hash: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> User:
        """Insert a new user in one statement.

        Raises UniqueViolationError if the email (or external id) is taken.
        """
        if password_hash is None and external_id is None:
            raise ValueError("a user needs a password hash or an external id")

        user = User(
            full_name=full_name,
            email=email,
            password_hash=password_hash,
            external_id=external_id,
        )
        async with self._guard("insert"):
            self.db.add(user)
            await self.db.commit()
        return user

    async def link_external_id(
        self, user_id: uuid.UUID, external_id: str
    ) -> bool:
        """Attach an external id to a not-yet-linked user.

        Learn: One conditional UPDATE (... WHERE external_id IS NULL) — no
        read-then-write window. Returns True if this call did the linking,
        False if the row was already linked (e.g. by a concurrent request).
        password_hash, full_name and id are never touched.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.external_id.is_(None))
            .values(external_id=external_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        async with self._guard("link_external_id"):
            result = await self.db.execute(stmt)
            await self.db.commit()
        return result.rowcount == 1
