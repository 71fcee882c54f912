"""
Tests for AuthSystem: registration, login, lockout and logout.

Runs against the in-memory database with a steppable clock so lockout
expiry can be tested without sleeping.
"""

from datetime import timedelta

import pytest
from sqlalchemy import text

from redline.engine.state import AccountState
from redline.engine.systems.auth import MAX_PASSWORD_BYTES, verify_password
from redline.errors import (
    AccountLocked,
    CorruptRecord,
    InvalidCredentials,
    InvalidUsername,
    SessionClosed,
    UsernameTaken,
    WeakPassword,
)

from conftest import PASSWORD, START

WRONG = "Wr0ng-pass!"


async def fail_login(game, times, username="neo"):
    for _ in range(times):
        with pytest.raises((InvalidCredentials, AccountLocked)):
            await game.login(username, WRONG)


# ============================================================================
# Registration
# ============================================================================


@pytest.mark.systems
class TestRegister:
    async def test_creates_credentials_and_profile(self, game, credential_store, profile_store):
        record = await game.register("neo", PASSWORD)

        assert record.username == "neo"
        assert await credential_store.exists("neo")
        profile = await profile_store.load("neo")
        assert profile.credits == 1000
        assert profile.reputation == 0
        assert profile.heat == 0
        assert profile.login_count == 0
        assert profile.last_heat_update == START

    async def test_password_is_hashed(self, game, credential_store):
        await game.register("neo", PASSWORD)

        record = await credential_store.get("neo")
        assert record.password_hash != PASSWORD
        assert record.password_hash.startswith("$2")

    @pytest.mark.parametrize(
        "username", ["ab", "a" * 21, "neo smith", "neo-1", "n3o!", ""]
    )
    async def test_invalid_usernames(self, game, username):
        with pytest.raises(InvalidUsername):
            await game.register(username, PASSWORD)

    @pytest.mark.parametrize("username", ["neo", "a" * 20, "Agent_007"])
    async def test_valid_usernames(self, game, username):
        record = await game.register(username, PASSWORD)
        assert record.username == username

    async def test_weak_password_lists_every_failure(self, game, credential_store):
        with pytest.raises(WeakPassword) as exc_info:
            await game.register("neo", "abc")

        failures = exc_info.value.failures
        assert len(failures) == 4
        assert any("at least 8 characters" in f for f in failures)
        assert any("uppercase" in f for f in failures)
        assert any("number" in f for f in failures)
        assert any("special character" in f for f in failures)
        assert not await credential_store.exists("neo")

    @pytest.mark.parametrize("password", [PASSWORD + "x" * 80, "Pässw0rd!" + "é" * 32])
    async def test_password_over_bcrypt_limit(self, game, credential_store, password):
        assert len(password.encode("utf-8")) > MAX_PASSWORD_BYTES

        with pytest.raises(WeakPassword) as exc_info:
            await game.register("neo", password)

        assert exc_info.value.failures == ["must be at most 72 bytes long"]
        assert not await credential_store.exists("neo")

    async def test_password_at_bcrypt_limit(self, game):
        password = PASSWORD + "x" * (MAX_PASSWORD_BYTES - len(PASSWORD))

        await game.register("neo", password)

        assert (await game.login("neo", password)).active

    async def test_username_taken(self, game):
        await game.register("neo", PASSWORD)

        with pytest.raises(UsernameTaken):
            await game.register("neo", "An0ther-pass")

    async def test_usernames_are_case_sensitive(self, game):
        await game.register("neo", PASSWORD)
        await game.register("Neo", PASSWORD)

        assert await game.auth.list_usernames() == ["Neo", "neo"]

    async def test_starting_credits_come_from_settings(self, game, profile_store):
        game.ctx.settings = game.ctx.settings.model_copy(update={"starting_credits": 42})

        await game.register("trinity", PASSWORD)

        assert (await profile_store.load("trinity")).credits == 42


# ============================================================================
# Login and lockout
# ============================================================================


@pytest.mark.systems
class TestLogin:
    async def test_login_opens_session(self, game, profile_store, clock):
        await game.register("neo", PASSWORD)
        clock.advance(minutes=5)

        session = await game.login("neo", PASSWORD)

        assert session.active
        assert session.username == "neo"
        assert session.started_at == clock()
        profile = await profile_store.load("neo")
        assert profile.login_count == 1
        assert profile.last_login == clock()
        assert "first_login" in profile.unlocked_achievements

    async def test_unknown_user(self, game):
        with pytest.raises(InvalidCredentials):
            await game.login("ghost", PASSWORD)

    async def test_wrong_password_increments_counter(self, game, credential_store):
        await game.register("neo", PASSWORD)

        await fail_login(game, 2)

        record = await credential_store.get("neo")
        assert record.failed_attempts == 2
        assert record.locked_until is None

    async def test_success_resets_counter(self, game, credential_store):
        await game.register("neo", PASSWORD)
        await fail_login(game, 3)

        await game.login("neo", PASSWORD)

        assert (await credential_store.get("neo")).failed_attempts == 0

    async def test_fifth_failure_locks(self, game, credential_store, clock):
        await game.register("neo", PASSWORD)
        await fail_login(game, 4)

        with pytest.raises(AccountLocked) as exc_info:
            await game.login("neo", WRONG)

        assert exc_info.value.locked_until == clock() + timedelta(minutes=15)
        assert await game.auth.account_state("neo") is AccountState.LOCKED

    async def test_correct_password_while_locked(self, game, clock):
        await game.register("neo", PASSWORD)
        await fail_login(game, 5)
        clock.advance(minutes=14, seconds=59)

        with pytest.raises(AccountLocked):
            await game.login("neo", PASSWORD)

    async def test_attempts_while_locked_do_not_count(self, game, credential_store):
        await game.register("neo", PASSWORD)
        await fail_login(game, 5)

        with pytest.raises(AccountLocked):
            await game.login("neo", WRONG)

        assert (await credential_store.get("neo")).failed_attempts == 5

    async def test_lock_expires(self, game, credential_store, clock):
        await game.register("neo", PASSWORD)
        await fail_login(game, 5)
        clock.advance(minutes=15)

        assert await game.auth.account_state("neo") is AccountState.ACTIVE
        session = await game.login("neo", PASSWORD)

        assert session.active
        record = await credential_store.get("neo")
        assert record.failed_attempts == 0
        assert record.locked_until is None

    async def test_wrong_password_after_expiry_starts_fresh(self, game, credential_store, clock):
        await game.register("neo", PASSWORD)
        await fail_login(game, 5)
        clock.advance(minutes=16)

        with pytest.raises(InvalidCredentials):
            await game.login("neo", WRONG)

        record = await credential_store.get("neo")
        assert record.failed_attempts == 1
        assert record.locked_until is None

    async def test_lockout_is_per_user(self, game):
        await game.register("neo", PASSWORD)
        await game.register("trinity", PASSWORD)
        await fail_login(game, 5, username="neo")

        session = await game.login("trinity", PASSWORD)
        assert session.active

    async def test_over_long_password_is_a_wrong_password(self, game, credential_store):
        await game.register("neo", PASSWORD)

        with pytest.raises(InvalidCredentials):
            await game.login("neo", PASSWORD + "x" * 80)

        assert (await credential_store.get("neo")).failed_attempts == 1

    def test_verify_rejects_over_long_secret(self):
        with pytest.raises(ValueError):
            verify_password("x" * 73, "$2b$04$" + "a" * 53)

    def test_verify_malformed_hash_is_mismatch(self):
        assert verify_password(PASSWORD, "not-a-hash") is False

    async def test_corrupt_profile_blocks_login(self, game, session_factory, credential_store):
        await game.register("neo", PASSWORD)
        async with session_factory() as session:
            await session.execute(
                text("UPDATE agent_profiles SET stats = '{not json' WHERE username = 'neo'")
            )
            await session.commit()

        with pytest.raises(CorruptRecord) as exc_info:
            await game.login("neo", PASSWORD)

        assert exc_info.value.username == "neo"
        assert (await credential_store.get("neo")).failed_attempts == 0

    async def test_account_state_unknown_user(self, game):
        with pytest.raises(InvalidCredentials):
            await game.auth.account_state("ghost")


# ============================================================================
# Logout
# ============================================================================


@pytest.mark.systems
class TestLogout:
    async def test_logout_records_time_played(self, game, neo_session, clock, profile_store):
        clock.advance(minutes=3)

        profile = await game.logout(neo_session)

        assert not neo_session.active
        assert profile.stats.time_played_seconds == 180
        assert (await profile_store.load("neo")).stats.time_played_seconds == 180

    async def test_second_logout_fails(self, game, neo_session):
        await game.logout(neo_session)

        with pytest.raises(SessionClosed):
            await game.logout(neo_session)
