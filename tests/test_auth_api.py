"""Auth API tests — signup, login, logout, session-protected routes.

Learn: Tests cover:
1. Signup → 201, duplicate → 409, concurrent duplicates → one 201 one 409
2. Field validation → 400 {"errors": [{field, message}]}
3. Login → session cookie; the three rejection messages
4. /me and /protected with and without a session
5. Logout ends the session
6. No password hash or external id in any response body
"""

import asyncio

import pytest
from conftest import oauth_sign_in, sign_up
from httpx import ASGITransport, AsyncClient

from linkauth.auth.oauth import ExternalIdentity

SECRET_KEYS = ("passwordHash", "password_hash", "externalId", "external_id")


def assert_no_secrets(body):
    text = str(body)
    for key in SECRET_KEYS:
        assert key not in text


async def login(client, email="jane@x.com", password="Abcdef1!"):
    return await client.post("/api/auth/login", json={"email": email, "password": password})


# ═══════════════════════════════════════════════════════════
# Signup
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signup(client):
    r = await sign_up(client)
    assert r.status_code == 201
    data = r.json()
    assert data["message"] == "User registered successfully. Please log in."
    assert set(data["user"]) == {"id", "fullName", "email"}
    assert data["user"]["fullName"] == "Jane Doe"
    assert_no_secrets(data)


@pytest.mark.asyncio
async def test_signup_does_not_sign_in(client, settings):
    r = await sign_up(client)
    assert settings.session_cookie_name not in r.cookies
    assert (await client.get("/api/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_signup_duplicate_email(client):
    assert (await sign_up(client)).status_code == 201

    r = await sign_up(client, full_name="Jane Again")
    assert r.status_code == 409
    assert r.json() == {"message": "User with this email already exists."}


@pytest.mark.asyncio
async def test_concurrent_signups_create_one_account(app):
    """Two simultaneous signups for the same email: one 201, one 409."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as a, \
            AsyncClient(transport=transport, base_url="http://test") as b:
        r1, r2 = await asyncio.gather(sign_up(a), sign_up(b))

    assert sorted([r1.status_code, r2.status_code]) == [201, 409]


# ═══════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, field, message",
    [
        ({"fullName": "Jo", "email": "jo@x.com", "password": "Abcdef1!"},
         "fullName", "Full name must be at least 3 characters long."),
        ({"fullName": "   ", "email": "jo@x.com", "password": "Abcdef1!"},
         "fullName", "Full name is required."),
        ({"email": "jo@x.com", "password": "Abcdef1!"},
         "fullName", "Full name is required."),
        ({"fullName": "Jane Doe", "email": "not-an-email", "password": "Abcdef1!"},
         "email", "Invalid email format."),
        ({"fullName": "Jane Doe", "email": "", "password": "Abcdef1!"},
         "email", "Email is required."),
        ({"fullName": "Jane Doe", "email": "jo@x.com", "password": "Ab1!"},
         "password", "Password must be at least 6 characters long."),
        ({"fullName": "Jane Doe", "email": "jo@x.com", "password": "abcdef1!"},
         "password", "Password must contain at least one uppercase letter."),
        ({"fullName": "Jane Doe", "email": "jo@x.com", "password": "ABCDEF1!"},
         "password", "Password must contain at least one lowercase letter."),
        ({"fullName": "Jane Doe", "email": "jo@x.com", "password": "Abcdefg!"},
         "password", "Password must contain at least one number."),
        ({"fullName": "Jane Doe", "email": "jo@x.com", "password": "Abcdef12"},
         "password", "Password must contain at least one special character."),
    ],
)
async def test_signup_validation(client, body, field, message):
    r = await client.post("/api/auth/signup", json=body)
    assert r.status_code == 400
    assert {"field": field, "message": message} in r.json()["errors"]


@pytest.mark.asyncio
async def test_signup_reports_every_bad_field(client):
    r = await client.post("/api/auth/signup", json={})
    assert r.status_code == 400
    fields = {e["field"] for e in r.json()["errors"]}
    assert fields == {"fullName", "email", "password"}


@pytest.mark.asyncio
async def test_login_validation(client):
    r = await client.post("/api/auth/login", json={"email": "nope", "password": ""})
    assert r.status_code == 400
    errors = r.json()["errors"]
    assert {"field": "email", "message": "Invalid email format."} in errors
    assert {"field": "password", "message": "Password is required."} in errors


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_local_login(client, settings):
    signup = await sign_up(client)
    r = await login(client)

    assert r.status_code == 200
    data = r.json()
    assert data["message"] == "Logged in successfully!"
    assert data["user"] == signup.json()["user"]
    assert settings.session_cookie_name in r.cookies
    assert_no_secrets(data)


@pytest.mark.asyncio
async def test_wrong_password_and_unknown_email_look_alike(client):
    await sign_up(client)

    wrong = await login(client, password="Wrong1!!")
    unknown = await login(client, email="nobody@x.com")

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"message": "Incorrect email or password."}


@pytest.mark.asyncio
async def test_oauth_only_user_told_to_use_provider(client, fake_oauth):
    await oauth_sign_in(
        client, fake_oauth, ExternalIdentity("google-123", "g@x.com", "G User")
    )
    client.cookies.clear()

    r = await login(client, email="g@x.com")
    assert r.status_code == 401
    assert r.json() == {"message": "Please log in with Google."}


@pytest.mark.asyncio
async def test_login_replaces_previous_session(client, app, settings, session_store):
    await sign_up(client)
    await login(client)
    first = client.cookies[settings.session_cookie_name]

    await login(client)
    second = client.cookies[settings.session_cookie_name]

    assert first != second
    assert await session_store.get(first) is None


# ═══════════════════════════════════════════════════════════
# Session-protected routes + logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_requires_session(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json() == {"message": "Unauthorized. Please log in."}


@pytest.mark.asyncio
async def test_me_and_protected_with_session(client):
    await sign_up(client)
    await login(client)

    me = await client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "jane@x.com"
    assert_no_secrets(me.json())

    protected = await client.get("/api/protected")
    assert protected.status_code == 200
    assert protected.json()["message"] == "You have access to protected data!"
    assert protected.json()["user"] == me.json()


@pytest.mark.asyncio
async def test_garbage_session_cookie_is_anonymous(client, settings):
    client.cookies.set(settings.session_cookie_name, "forged")
    assert (await client.get("/api/protected")).status_code == 401


@pytest.mark.asyncio
async def test_logout(client):
    await sign_up(client)
    await login(client)

    r = await client.post("/api/auth/logout")
    assert r.status_code == 200
    assert r.json() == {"message": "Logged out."}
    assert (await client.get("/api/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_logout_old_cookie_no_longer_works(client, settings):
    await sign_up(client)
    await login(client)
    ref = client.cookies[settings.session_cookie_name]

    await client.post("/api/auth/logout")
    client.cookies.set(settings.session_cookie_name, ref)
    assert (await client.get("/api/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_logout_anonymous_is_fine(client):
    r = await client.post("/api/auth/logout")
    assert r.status_code == 200
