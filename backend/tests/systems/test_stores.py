"""
Tests for CredentialStore and ProfileStore against SQLite.

Covers round trips, timestamp handling, corrupt rows and database failures.
"""

from datetime import timedelta, timezone

import pytest
from sqlalchemy import text

from redline.engine.state import AgentStats, CredentialRecord
from redline.errors import CorruptRecord, PersistenceFailure, UsernameTaken

from conftest import START


def make_record(username="neo", **overrides):
    defaults = dict(username=username, password_hash="$2b$04$hash", created_at=START)
    defaults.update(overrides)
    return CredentialRecord(**defaults)


@pytest.fixture
async def neo_account(credential_store, make_profile):
    await credential_store.create_account(make_record(), make_profile())


# ============================================================================
# Credentials
# ============================================================================


@pytest.mark.systems
class TestCredentialStore:
    async def test_missing_user(self, credential_store):
        assert await credential_store.get("ghost") is None
        assert not await credential_store.exists("ghost")

    async def test_round_trip(self, credential_store, neo_account):
        record = await credential_store.get("neo")

        assert record == make_record()
        assert record.created_at.tzinfo is not None

    async def test_save_lockout_state(self, credential_store, neo_account):
        locked = make_record(failed_attempts=5, locked_until=START + timedelta(minutes=15))

        await credential_store.save(locked)

        assert await credential_store.get("neo") == locked

    async def test_save_unknown_user(self, credential_store):
        with pytest.raises(PersistenceFailure):
            await credential_store.save(make_record("ghost"))

    async def test_duplicate_account(self, credential_store, neo_account, make_profile):
        with pytest.raises(UsernameTaken):
            await credential_store.create_account(make_record(), make_profile())

    async def test_usernames_sorted(self, credential_store, make_profile):
        for name in ["trinity", "morpheus", "neo"]:
            await credential_store.create_account(make_record(name), make_profile(name))

        assert await credential_store.list_usernames() == ["morpheus", "neo", "trinity"]

    async def test_save_with_profile_is_one_transaction(
        self, credential_store, profile_store, neo_account, make_profile
    ):
        await credential_store.save(make_record(failed_attempts=0), make_profile(login_count=3))

        assert (await profile_store.load("neo")).login_count == 3


# ============================================================================
# Profiles
# ============================================================================


@pytest.mark.systems
class TestProfileStore:
    async def test_missing_profile(self, profile_store):
        assert await profile_store.load("ghost") is None

    async def test_round_trip(self, profile_store, neo_account, make_profile):
        stats = AgentStats(
            total_scans=4,
            stealth_ops=2,
            highest_heat=60,
            scanned_targets={"10.0.0.2", "10.0.0.1"},
            discovered_exploits={"log4shell"},
            impossible_breaches={"decrypt"},
        )
        profile = make_profile(
            reputation=320,
            heat=35,
            credits=1250,
            streak=3,
            login_count=2,
            last_login=START + timedelta(hours=1),
            completed_missions={"INIT-001"},
            unlocked_achievements={"first_scan", "first_login"},
            inventory={"zero_day_kit"},
            stats=stats,
        )

        await profile_store.save(profile)
        loaded = await profile_store.load("neo")

        assert loaded == profile
        assert loaded.last_login.tzinfo is not None

    async def test_timestamps_stored_as_naive_utc(self, profile_store, session_factory, neo_account, make_profile):
        offset = timezone(timedelta(hours=2))
        await profile_store.save(make_profile(last_heat_update=START.astimezone(offset)))

        async with session_factory() as session:
            raw = (
                await session.execute(
                    text("SELECT last_heat_update FROM agent_profiles WHERE username = 'neo'")
                )
            ).scalar_one()

        assert str(raw).startswith("2025-01-01 12:00:00")
        assert (await profile_store.load("neo")).last_heat_update == START

    async def test_save_unknown_profile(self, profile_store, make_profile):
        with pytest.raises(PersistenceFailure):
            await profile_store.save(make_profile("ghost"))

    async def test_corrupt_stats_only_affect_that_user(
        self, credential_store, profile_store, session_factory, make_profile
    ):
        await credential_store.create_account(make_record("neo"), make_profile("neo"))
        await credential_store.create_account(make_record("trinity"), make_profile("trinity"))

        async with session_factory() as session:
            await session.execute(
                text("UPDATE agent_profiles SET stats = '\"oops\"' WHERE username = 'neo'")
            )
            await session.commit()

        with pytest.raises(CorruptRecord) as exc_info:
            await profile_store.load("neo")
        assert exc_info.value.username == "neo"

        trinity = await profile_store.load("trinity")
        assert trinity.username == "trinity"

    async def test_out_of_range_heat_is_corrupt(self, profile_store, session_factory, neo_account):
        async with session_factory() as session:
            await session.execute(text("PRAGMA ignore_check_constraints = ON"))
            await session.execute(
                text("UPDATE agent_profiles SET heat = 250 WHERE username = 'neo'")
            )
            await session.commit()

        with pytest.raises(CorruptRecord):
            await profile_store.load("neo")

    async def test_missing_table_is_persistence_failure(self, profile_store, db_engine, neo_account):
        async with db_engine.begin() as conn:
            await conn.execute(text("DROP TABLE agent_profiles"))

        with pytest.raises(PersistenceFailure):
            await profile_store.load("neo")

    async def test_malformed_stats_json_is_corrupt(
        self, credential_store, profile_store, session_factory, make_profile
    ):
        await credential_store.create_account(make_record("neo"), make_profile("neo"))
        await credential_store.create_account(make_record("trinity"), make_profile("trinity"))

        async with session_factory() as session:
            await session.execute(
                text("UPDATE agent_profiles SET stats = '{not json' WHERE username = 'neo'")
            )
            await session.commit()

        with pytest.raises(CorruptRecord) as exc_info:
            await profile_store.load("neo")
        assert exc_info.value.username == "neo"
        with pytest.raises(CorruptRecord):
            await profile_store.save(make_profile("neo"))

        assert (await profile_store.load("trinity")).username == "trinity"

    async def test_unparseable_timestamp_is_corrupt(self, profile_store, session_factory, neo_account):
        async with session_factory() as session:
            await session.execute(
                text("UPDATE agent_profiles SET last_heat_update = 'garbage' WHERE username = 'neo'")
            )
            await session.commit()

        with pytest.raises(CorruptRecord):
            await profile_store.load("neo")


@pytest.mark.systems
class TestMalformedCredentials:
    async def test_unparseable_lock_time_is_corrupt(
        self, credential_store, session_factory, make_profile
    ):
        await credential_store.create_account(make_record("neo"), make_profile("neo"))
        await credential_store.create_account(make_record("trinity"), make_profile("trinity"))

        async with session_factory() as session:
            await session.execute(
                text("UPDATE credentials SET locked_until = 'garbage' WHERE username = 'neo'")
            )
            await session.commit()

        with pytest.raises(CorruptRecord) as exc_info:
            await credential_store.get("neo")
        assert exc_info.value.username == "neo"
        with pytest.raises(CorruptRecord):
            await credential_store.exists("neo")
        with pytest.raises(CorruptRecord):
            await credential_store.save(make_record("neo"))

        assert (await credential_store.get("trinity")).username == "trinity"
