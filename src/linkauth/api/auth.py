"""Auth API — signup, login, logout, OAuth sign-in, current user.

Learn: Routes for both authentication paths:
- POST /auth/signup          → create a local (email/password) account
- POST /auth/login           → email/password → session cookie
- POST /auth/logout          → drop the session
- GET  /auth/oauth/start     → redirect to the provider
- GET  /auth/oauth/callback  → provider → find/link/create user → session cookie
- GET  /auth/me              → current user info

Every handler is a thin translation of a façade outcome:
Success → 200/201, Rejected → 401/409, Failed → 500 (or, for OAuth,
the failure redirect). The user object in any body is {id, fullName, email}.
"""

import secrets
from typing import Optional, Union

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from linkauth.auth.dependencies import (
    AuthContext,
    get_auth_facade,
    get_oauth_client,
    get_settings,
    require_user,
)
from linkauth.auth.facade import AuthFacade
from linkauth.auth.jwt import TokenError, create_state_token, verify_state_token
from linkauth.auth.oauth_client import OAuthClient
from linkauth.auth.outcome import Failed, Rejected
from linkauth.config import Settings
from linkauth.errors import OAuthError, StoreError
from linkauth.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    SignupRequest,
    UserRead,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")

STATE_COOKIE = "linkauth_oauth_state"


def _json(status_code: int, body) -> JSONResponse:
    if hasattr(body, "model_dump"):
        body = body.model_dump(mode="json", by_alias=True)
    return JSONResponse(status_code=status_code, content=body)


def _set_session_cookie(response: Response, session_ref: str, settings: Settings) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        session_ref,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


# ─── Signup ──────────────────────────────────────────────


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(body: SignupRequest, facade: AuthFacade = Depends(get_auth_facade)):
    """Create a new local account. Does not sign the user in."""
    outcome = await facade.signup(body.full_name, body.email, body.password)

    if isinstance(outcome, Rejected):
        return _json(409, {"message": outcome.message})
    if isinstance(outcome, Failed):
        return _json(500, {"message": "Server error during signup."})

    return AuthResponse(
        message="User registered successfully. Please log in.",
        user=UserRead.from_public(outcome.user),
    )


# ─── Login / logout ──────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    facade: AuthFacade = Depends(get_auth_facade),
    settings: Settings = Depends(get_settings),
):
    """Login with email and password → session cookie."""
    outcome = await facade.login(body.email, body.password)

    if isinstance(outcome, Rejected):
        return _json(401, {"message": outcome.message})
    if isinstance(outcome, Failed):
        return _json(500, {"message": "Server error during login."})

    # Never reuse a session reference from before the login.
    previous = request.cookies.get(settings.session_cookie_name)
    if previous:
        await facade.logout(previous)

    _set_session_cookie(response, outcome.session_ref, settings)
    return AuthResponse(
        message="Logged in successfully!",
        user=UserRead.from_public(outcome.user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    facade: AuthFacade = Depends(get_auth_facade),
    settings: Settings = Depends(get_settings),
):
    """Invalidate the current session (no-op for anonymous requests)."""
    await facade.logout(request.cookies.get(settings.session_cookie_name))
    response.delete_cookie(settings.session_cookie_name)
    return MessageResponse(message="Logged out.")


# ─── OAuth ───────────────────────────────────────────────


def _require_oauth(oauth: Optional[OAuthClient], settings: Settings) -> OAuthClient:
    if oauth is None:
        raise HTTPException(
            status_code=503,
            detail=f"{settings.oauth_provider_name} login is not configured.",
        )
    return oauth


def _oauth_failure(settings: Settings, reason: str) -> Union[JSONResponse, RedirectResponse]:
    """Failed handshake → failure redirect if configured, else 401."""
    logger.info("auth.oauth_failed", reason=reason)
    response: Union[JSONResponse, RedirectResponse]
    if settings.oauth_failure_redirect:
        response = RedirectResponse(settings.oauth_failure_redirect, status_code=302)
    else:
        response = _json(
            401, {"message": f"{settings.oauth_provider_name} login failed."}
        )
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get("/oauth/start")
async def oauth_start(
    settings: Settings = Depends(get_settings),
    oauth: Optional[OAuthClient] = Depends(get_oauth_client),
):
    """Send the browser to the provider with a signed state."""
    client = _require_oauth(oauth, settings)
    state = create_state_token(settings.session_secret, settings.oauth_state_ttl_seconds)
    url = await client.authorization_url(state)

    response = RedirectResponse(url, status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=settings.oauth_state_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    return response


@router.get("/oauth/callback", response_model=AuthResponse)
async def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    facade: AuthFacade = Depends(get_auth_facade),
    settings: Settings = Depends(get_settings),
    oauth: Optional[OAuthClient] = Depends(get_oauth_client),
):
    """Finish the handshake, resolve the identity, start a session.

    Learn: The provider verifies identity, so there's no "wrong password"
    here — every failure is either a broken handshake (→ failure redirect)
    or our own store failing (→ 500).
    """
    client = _require_oauth(oauth, settings)

    if error:
        return _oauth_failure(settings, reason=f"provider error: {error}")
    cookie_state = request.cookies.get(STATE_COOKIE)
    if not code or not state or not cookie_state:
        return _oauth_failure(settings, reason="missing code or state")
    if not secrets.compare_digest(state, cookie_state):
        return _oauth_failure(settings, reason="state mismatch")
    try:
        verify_state_token(state, settings.session_secret)
    except TokenError as e:
        return _oauth_failure(settings, reason=str(e))

    try:
        identity = await client.fetch_identity(code)
    except OAuthError as e:
        return _oauth_failure(settings, reason=str(e))

    outcome = await facade.oauth_login(identity)
    if isinstance(outcome, Failed):
        if isinstance(outcome.cause, StoreError):
            return _json(500, {"message": "Server error during login."})
        return _oauth_failure(settings, reason=str(outcome.cause))

    body = AuthResponse(
        message=f"{settings.oauth_provider_name} login successful!",
        user=UserRead.from_public(outcome.user),
    )
    response = _json(200, body)
    _set_session_cookie(response, outcome.session_ref, settings)
    response.delete_cookie(STATE_COOKIE)
    return response


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(context: AuthContext = Depends(require_user)):
    """Get the current authenticated user's info."""
    return UserRead.from_public(context.user)
