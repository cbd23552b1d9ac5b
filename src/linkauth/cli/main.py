"""linkauth CLI — run the server and manage the users database.

Usage:
    linkauth serve                         # Run the API with uvicorn
    linkauth init-db                       # Create the users table
    linkauth user jane@example.com         # Show how a user can sign in
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Optional

import click

from linkauth import __version__

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop — normal CLI invocation
        return asyncio.run(coro)
    else:
        # Already inside an event loop (e.g. test runner) — run in a thread
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _database_url(database_url: Optional[str]) -> str:
    if database_url:
        return database_url
    from linkauth.config import settings
    return settings.database_url


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="linkauth")
def main():
    """linkauth — local + OAuth sign-in with unified user identities."""


# ---------------------------------------------------------------------------
# linkauth serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: LINKAUTH_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: LINKAUTH_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from linkauth.config import settings

    uvicorn.run(
        "linkauth.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# linkauth init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
@click.option("--database-url", default=None, help="Override LINKAUTH_DATABASE_URL")
def init_db(database_url: Optional[str]):
    """Create the database schema (idempotent)."""
    url = _database_url(database_url)
    try:
        _run(_init_db_impl(url))
    except Exception as e:
        click.secho(f"Error initializing database: {e}", fg="red", err=True)
        sys.exit(1)
    click.secho("Database schema initialized successfully!", fg="green")


async def _init_db_impl(url: str) -> None:
    from linkauth.db.engine import build_engine
    from linkauth.db.models import Base

    engine = build_engine(url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# linkauth user
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--database-url", default=None, help="Override LINKAUTH_DATABASE_URL")
def user(email: str, database_url: Optional[str]):
    """Show a user and which sign-in paths they have. Never prints the hash."""
    found = _run(_user_impl(_database_url(database_url), email))
    if found is None:
        click.secho(f"No user with email {email}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"{found['full_name']} <{found['email']}>", bold=True)
    click.echo(f"  id:       {found['id']}")
    click.echo(f"  password: {'yes' if found['local'] else 'no'}")
    click.echo(f"  linked:   {'yes' if found['linked'] else 'no'}")


async def _user_impl(url: str, email: str) -> Optional[dict]:
    from sqlalchemy.ext.asyncio import AsyncSession

    from linkauth.db.engine import build_engine
    from linkauth.services.credential_store import CredentialStore

    engine = build_engine(url)
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            record = await CredentialStore(session).get_by_email(email)
            if record is None:
                return None
            return {
                "id": str(record.id),
                "full_name": record.full_name,
                "email": record.email,
                "local": record.password_hash is not None,
                "linked": record.external_id is not None,
            }
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
