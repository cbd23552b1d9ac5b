"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. Instead of a
global middleware stashing `request.user`, each request gets an explicit
AuthContext built from:
- the session cookie (the session reference)
- the SessionManager living on app.state (one instance per app)

Long-lived collaborators (settings, session manager, hasher, OAuth client)
are created once in create_app() and read back from app.state here, so
tests can build an app with their own instances.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth.auth.facade import AuthFacade
from linkauth.auth.oauth_client import OAuthClient
from linkauth.auth.outcome import PublicUser
from linkauth.auth.password import PasswordHasher
from linkauth.auth.session import SessionManager
from linkauth.config import Settings
from linkauth.db.engine import get_db
from linkauth.services.credential_store import CredentialStore


@dataclass(frozen=True)
class AuthContext:
    """Who is making this request. Anonymous when user is None."""

    user: Optional[PublicUser] = None
    session_ref: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_oauth_client(request: Request) -> Optional[OAuthClient]:
    """The configured OAuth client, or None when OAuth isn't set up."""
    return request.app.state.oauth_client


async def get_auth_facade(
    db: AsyncSession = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
) -> AuthFacade:
    """Per-request façade over this request's DB session."""
    return AuthFacade(
        CredentialStore(db),
        hasher,
        sessions,
        provider_name=settings.oauth_provider_name,
    )


async def get_auth_context(
    request: Request,
    facade: AuthFacade = Depends(get_auth_facade),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    """Restore the session (if any) into an AuthContext.

    Learn: This is the "soft" auth dependency — it never fails, it just
    yields an anonymous context. For mandatory auth use require_user.
    """
    session_ref = request.cookies.get(settings.session_cookie_name)
    user = await facade.current_user(session_ref)
    if user is None:
        return AuthContext()
    return AuthContext(user=user, session_ref=session_ref)


async def require_user(
    context: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """The "hard" auth dependency — 401 for anonymous requests."""
    if not context.is_authenticated:
        raise HTTPException(status_code=401, detail="Unauthorized. Please log in.")
    return context
