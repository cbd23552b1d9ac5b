"""OAuth identity resolver tests — find, link, create, and the races."""

import pytest
from sqlalchemy import func, select

from linkauth.auth.local import LocalAuthenticator
from linkauth.auth.oauth import ExternalIdentity, OAuthIdentityResolver
from linkauth.db.models import User
from linkauth.errors import IdentityConflictError, MissingEmailError, UniqueViolationError
from linkauth.services.credential_store import CredentialStore


async def count_users(db) -> int:
    return (await db.execute(select(func.count()).select_from(User))).scalar_one()


@pytest.fixture()
def resolver(credentials):
    return OAuthIdentityResolver(credentials)


JANE = ExternalIdentity(external_id="google-123", email="jane@x.com", full_name="Jane G.")


@pytest.mark.asyncio
async def test_first_oauth_login_creates_user(resolver, db_session):
    user = await resolver.resolve(JANE)
    assert user.external_id == "google-123"
    assert user.email == "jane@x.com"
    assert user.full_name == "Jane G."
    assert user.password_hash is None
    assert await count_users(db_session) == 1


@pytest.mark.asyncio
async def test_repeat_logins_are_idempotent(resolver, db_session):
    first = await resolver.resolve(JANE)
    for _ in range(3):
        again = await resolver.resolve(JANE)
        assert again.id == first.id
    assert await count_users(db_session) == 1


@pytest.mark.asyncio
async def test_links_existing_local_user(resolver, credentials, hasher, db_session):
    local = await LocalAuthenticator(credentials, hasher).register(
        "Jane Doe", "jane@x.com", "Abcdef1!"
    )
    original_id, original_hash = local.id, local.password_hash

    user = await resolver.resolve(JANE)

    assert user.id == original_id
    assert user.external_id == "google-123"
    assert user.password_hash == original_hash
    assert user.full_name == "Jane Doe"  # not overwritten by the provider name
    assert await count_users(db_session) == 1


@pytest.mark.asyncio
async def test_external_id_wins_over_changed_email(resolver, db_session):
    first = await resolver.resolve(JANE)

    moved = ExternalIdentity(external_id="google-123", email="jane@new.com", full_name="Jane")
    again = await resolver.resolve(moved)

    assert again.id == first.id
    assert again.email == "jane@x.com"
    assert await count_users(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("email", [None, ""])
async def test_missing_email_is_an_error(resolver, email):
    with pytest.raises(MissingEmailError):
        await resolver.resolve(ExternalIdentity(external_id="google-1", email=email))


@pytest.mark.asyncio
async def test_empty_display_name_falls_back_to_email_local_part(resolver):
    user = await resolver.resolve(ExternalIdentity(external_id="g-9", email="kim@x.com"))
    assert user.full_name == "kim"


@pytest.mark.asyncio
async def test_email_owned_by_other_external_account_conflicts(resolver, credentials):
    await credentials.insert(full_name="Jane", email="jane@x.com", external_id="google-OTHER")
    with pytest.raises(IdentityConflictError):
        await resolver.resolve(JANE)


# ─── Races ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_link_race_converges_on_winner(db_session):
    """A concurrent request links the same identity between our lookups."""

    class RacingStore(CredentialStore):
        raced = False

        async def get_by_external_id(self, external_id):
            if not self.raced:
                self.raced = True
                winner = await self.get_by_email("jane@x.com")
                await self.link_external_id(winner.id, external_id)
                return None  # we looked before the winner committed
            return await super().get_by_external_id(external_id)

    store = RacingStore(db_session)
    local = await store.insert(full_name="Jane Doe", email="jane@x.com", password_hash="h")
    local_id = local.id

    user = await OAuthIdentityResolver(store).resolve(JANE)

    assert user.id == local_id
    assert user.external_id == "google-123"
    assert user.password_hash == "h"
    assert await count_users(db_session) == 1


@pytest.mark.asyncio
async def test_insert_race_retries_as_lookup(db_session):
    """Both lookups miss, but someone inserts the email before we do."""

    class RacingStore(CredentialStore):
        raced = False

        async def get_by_email(self, email):
            if not self.raced:
                self.raced = True
                await self.insert(full_name="Jane Doe", email=email, password_hash="h")
                return None
            return await super().get_by_email(email)

    store = RacingStore(db_session)
    user = await OAuthIdentityResolver(store).resolve(JANE)

    assert user.email == "jane@x.com"
    assert user.external_id == "google-123"
    assert user.password_hash == "h"
    assert await count_users(db_session) == 1


@pytest.mark.asyncio
async def test_repeated_uniqueness_failure_gives_up(db_session):
    class AlwaysMissing(CredentialStore):
        async def get_by_external_id(self, external_id):
            return None

        async def get_by_email(self, email):
            return None

    store = AlwaysMissing(db_session)
    await store.insert(full_name="Jane", email="jane@x.com", password_hash="h")

    with pytest.raises(UniqueViolationError):
        await OAuthIdentityResolver(store).resolve(JANE)
