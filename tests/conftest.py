"""Test fixtures — a fresh SQLite database per test, in-memory sessions.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own SQLite file (tmp_path) with the schema created
   from models.py. A file (not :memory:) so several connections — e.g.
   two concurrent signups — see the same database.
2. get_db is overridden so each request opens its own session on that file.
3. The app is built with a MemorySessionStore and a scripted OAuth client,
   so no Redis and no real provider are needed.
"""

from typing import Union
from urllib.parse import parse_qs, urlparse

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from linkauth.auth.oauth import ExternalIdentity
from linkauth.auth.password import PasswordHasher
from linkauth.auth.session import SessionManager
from linkauth.auth.session_store import MemorySessionStore
from linkauth.config import Settings
from linkauth.db.engine import get_db
from linkauth.db.models import Base
from linkauth.errors import OAuthError
from linkauth.main import create_app
from linkauth.services.credential_store import CredentialStore


class FakeOAuthClient:
    """Scripted stand-in for the provider handshake.

    Tests register what each authorization code should resolve to:
    an ExternalIdentity, or an exception to raise.
    """

    def __init__(self):
        self.codes: dict[str, Union[ExternalIdentity, Exception]] = {}

    async def authorization_url(self, state: str) -> str:
        return f"https://provider.test/authorize?client_id=test-client&state={state}"

    async def fetch_identity(self, code: str) -> ExternalIdentity:
        result = self.codes.get(code)
        if result is None:
            raise OAuthError(f"unknown code {code!r}")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture()
def settings():
    return Settings(
        redis_url="",
        bcrypt_rounds=4,  # fast hashing in tests
        session_secret="test-session-secret",
        oauth_client_id="test-client",
        oauth_client_secret="test-secret",
        oauth_callback_url="http://test/api/auth/oauth/callback",
    )


@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'linkauth.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def credentials(db_session):
    return CredentialStore(db_session)


@pytest.fixture()
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture()
def session_store():
    return MemorySessionStore()


@pytest.fixture()
def sessions(session_store):
    return SessionManager(session_store, ttl_seconds=3600)


@pytest.fixture()
def fake_oauth():
    return FakeOAuthClient()


@pytest_asyncio.fixture()
async def app(settings, session_factory, session_store, fake_oauth):
    app = create_app(settings, session_store=session_store, oauth_client=fake_oauth)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client against the app; keeps cookies between requests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def oauth_sign_in(client, fake_oauth, identity, code="auth-code-1"):
    """Drive start → provider → callback the way a browser would."""
    fake_oauth.codes[code] = identity
    r = await client.get("/api/auth/oauth/start")
    assert r.status_code == 302
    state = parse_qs(urlparse(r.headers["location"]).query)["state"][0]
    return await client.get(
        "/api/auth/oauth/callback", params={"code": code, "state": state}
    )


async def sign_up(client, full_name="Jane Doe", email="jane@x.com", password="Abcdef1!"):
    return await client.post(
        "/api/auth/signup",
        json={"fullName": full_name, "email": email, "password": password},
    )
