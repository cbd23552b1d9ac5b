"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Alembic migrations and the `linkauth init-db` command both build from here.

Key concepts:
- UUID primary keys, generated app-side, never reused
- Uniqueness of email and external_id enforced by the database, not by
  read-then-write checks in Python (those race)
- A CHECK constraint makes "no password and no external id" unrepresentable
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class User(Base):
    """The unified identity record.

    Learn: One row per human, whichever way they signed in.
    - Local signup fills password_hash, leaves external_id empty.
    - First OAuth login fills external_id, leaves password_hash empty.
    - Account linking later adds external_id to a local-only row.
    Email is the join key between the two paths.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "password_hash IS NOT NULL OR external_id IS NOT NULL",
            name="ck_users_has_credential",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=new_uuid
    )
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # null → OAuth-only account
    external_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )  # null → never linked to the provider
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
