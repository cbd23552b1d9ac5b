"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis session store, database).
Middleware, CORS, exception handlers and routers all registered here.

Long-lived collaborators (settings, session manager, password hasher,
OAuth client) are built once per app and hung on app.state; routes get
them through the dependencies in linkauth.auth.dependencies.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from linkauth import __version__
from linkauth.api import api_router
from linkauth.auth.oauth_client import OAuthClient
from linkauth.auth.password import PasswordHasher
from linkauth.auth.session import SessionManager
from linkauth.auth.session_store import (
    MemorySessionStore,
    RedisSessionStore,
    SessionStore,
)
from linkauth.config import Settings, settings as default_settings
from linkauth.errors import StoreError
from linkauth.schemas.auth import REQUIRED_MESSAGES

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    Redis is optional — without it sessions live in process memory.
    """
    settings: Settings = app.state.settings
    logger.info(
        "linkauth.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    redis_store: Optional[RedisSessionStore] = None
    if not app.state.session_store_pinned and settings.redis_url:
        try:
            redis_store = await RedisSessionStore.connect(settings.redis_url)
            app.state.sessions.store = redis_store
            logger.info("linkauth.redis_connected", url=settings.redis_url)
        except Exception as e:
            logger.warning("linkauth.redis_unavailable", error=str(e))

    yield

    logger.info("linkauth.shutdown")

    if redis_store is not None:
        await redis_store.close()

    from linkauth.db.engine import engine
    await engine.dispose()


# ─── Exception handlers ──────────────────────────────────


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed input → 400 with one message per offending field."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        field = str(loc[-1]) if len(loc) > 1 else "body"
        if err.get("type") == "missing":
            message = REQUIRED_MESSAGES.get(field, err.get("msg", "Field required"))
        elif "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err.get("msg", "Invalid value")
        errors.append({"field": field, "message": message})
    return JSONResponse(status_code=400, content={"errors": errors})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def store_error_handler(request: Request, exc: Exception):
    """Any store failure that escaped a route → generic 500, detail in logs."""
    logger.error("linkauth.unhandled_store_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error."})


def create_app(
    settings: Optional[Settings] = None,
    session_store: Optional[SessionStore] = None,
    oauth_client: Optional[OAuthClient] = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Passing session_store pins it (lifespan won't swap in Redis);
    passing oauth_client replaces the one built from settings.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="linkauth",
        description="Local + OAuth sign-in with unified user identities",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_store_pinned = session_store is not None
    app.state.sessions = SessionManager(
        session_store or MemorySessionStore(),
        ttl_seconds=settings.session_ttl_seconds,
    )
    app.state.hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    if oauth_client is None and settings.oauth_configured:
        oauth_client = OAuthClient.from_settings(settings)
    if oauth_client is None:
        logger.warning(
            "linkauth.oauth_not_configured",
            provider=settings.oauth_provider_name,
        )
    app.state.oauth_client = oauth_client

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from linkauth.middleware.request_id import RequestIdMiddleware
    from linkauth.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: linkauth.main:app)
app = create_app()
