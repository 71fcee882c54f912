"""
Global pytest configuration and shared fixtures.

Provides common test infrastructure for all test suites including:
- In-memory database engine and session factory
- A frozen, steppable clock
- A scripted RandomSource for deterministic outcome rolls
- Profile factories
- A fully wired GameEngine
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# Add backend to path
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from redline.config import Settings  # noqa: E402
from redline.db import create_session_factory  # noqa: E402
from redline.engine.engine import GameEngine  # noqa: E402
from redline.engine.state import AgentProfile, AgentStats  # noqa: E402
from redline.engine.stores import CredentialStore, ProfileStore  # noqa: E402
from redline.models import Base  # noqa: E402

START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

PASSWORD = "Passw0rd!"


# ============================================================================
# Test doubles
# ============================================================================


class SteppableClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, when: datetime) -> None:
        self.current = when


class ScriptedRandomSource:
    """RandomSource that replays queued rolls and fails loudly when empty."""

    def __init__(self, rolls=()) -> None:
        self.rolls = list(rolls)
        self.consumed = 0

    def push(self, *rolls: float) -> None:
        self.rolls.extend(rolls)

    def next_roll(self) -> float:
        if not self.rolls:
            raise AssertionError("ScriptedRandomSource ran out of rolls")
        self.consumed += 1
        return self.rolls.pop(0)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Use StaticPool to share single connection
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def credential_store(session_factory) -> CredentialStore:
    return CredentialStore(session_factory)


@pytest.fixture
def profile_store(session_factory) -> ProfileStore:
    return ProfileStore(session_factory)


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    """Fast hashing, no random events unless a test turns them on."""
    return Settings(bcrypt_rounds=4, enable_random_events=False)


@pytest.fixture
def clock() -> SteppableClock:
    return SteppableClock()


@pytest.fixture
def rolls() -> ScriptedRandomSource:
    return ScriptedRandomSource()


@pytest.fixture
def game(session_factory, settings, rolls, clock) -> GameEngine:
    return GameEngine.from_session_factory(
        session_factory,
        settings=settings,
        random_source=rolls,
        clock=clock,
    )


@pytest.fixture
async def neo_session(game):
    """Registered and logged-in agent 'neo'."""
    await game.register("neo", PASSWORD)
    return await game.login("neo", PASSWORD)


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_profile():
    """Factory for AgentProfile instances anchored at START."""

    def _make(username: str = "neo", **overrides) -> AgentProfile:
        stats = overrides.pop("stats", None) or AgentStats()
        defaults = dict(
            username=username,
            last_heat_update=START,
            created_at=START,
            credits=1000,
        )
        defaults.update(overrides)
        return AgentProfile(stats=stats, **defaults)

    return _make
