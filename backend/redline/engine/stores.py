"""
Credential and profile persistence.

Both stores share one async session factory (one SQLite file). Every write
commits before returning. Rows are decoded through pydantic models so a
damaged row surfaces as CorruptRecord for that user only; SQLAlchemy and OS
errors are wrapped as PersistenceFailure.

Timestamps are stored as naive UTC and come back UTC-aware.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import CorruptRecord, PersistenceFailure, UsernameTaken
from ..models import AgentProfileRow, Credential
from .state import MAX_HEAT, AgentProfile, AgentStats, CredentialRecord

logger = logging.getLogger(__name__)


def to_storage_time(value: datetime | None) -> datetime | None:
    """Aware datetime -> naive UTC for the DateTime column."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_storage_time(value: datetime | None) -> datetime | None:
    """Naive UTC from the database -> aware UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# === Decoding schemas ===


class CredentialSchema(BaseModel):
    username: str = Field(min_length=1)
    password_hash: str = Field(min_length=1)
    failed_attempts: int = Field(ge=0)
    locked_until: datetime | None = None
    created_at: datetime


class StatsSchema(BaseModel):
    total_scans: int = Field(0, ge=0)
    successful_ops: int = Field(0, ge=0)
    failed_ops: int = Field(0, ge=0)
    files_decrypted: int = Field(0, ge=0)
    databases_extracted: int = Field(0, ge=0)
    systems_compromised: int = Field(0, ge=0)
    payloads_injected: int = Field(0, ge=0)
    firewalls_breached: int = Field(0, ge=0)
    traces_run: int = Field(0, ge=0)
    stealth_ops: int = Field(0, ge=0)
    highest_heat: int = Field(0, ge=0, le=MAX_HEAT)
    time_played_seconds: int = Field(0, ge=0)
    scanned_targets: list[str] = Field(default_factory=list)
    discovered_exploits: list[str] = Field(default_factory=list)
    impossible_breaches: list[str] = Field(default_factory=list)


class ProfileSchema(BaseModel):
    username: str = Field(min_length=1)
    reputation: int = Field(ge=0)
    heat: int = Field(ge=0, le=MAX_HEAT)
    credits: int = Field(ge=0)
    streak: int = Field(ge=0)
    login_count: int = Field(ge=0)
    last_login: datetime | None = None
    last_heat_update: datetime
    created_at: datetime
    completed_missions: list[str] = Field(default_factory=list)
    unlocked_achievements: list[str] = Field(default_factory=list)
    inventory: list[str] = Field(default_factory=list)
    stats: StatsSchema = Field(default_factory=StatsSchema)


def _row_dict(row: Any, columns: list[str]) -> dict[str, Any]:
    return {name: getattr(row, name) for name in columns}


def decode_credential(row: Credential) -> CredentialRecord:
    try:
        data = CredentialSchema.model_validate(
            _row_dict(row, list(CredentialSchema.model_fields))
        )
    except ValidationError as e:
        raise CorruptRecord(row.username, str(e)) from e

    return CredentialRecord(
        username=data.username,
        password_hash=data.password_hash,
        created_at=from_storage_time(data.created_at),
        failed_attempts=data.failed_attempts,
        locked_until=from_storage_time(data.locked_until),
    )


def decode_profile(row: AgentProfileRow) -> AgentProfile:
    try:
        data = ProfileSchema.model_validate(
            _row_dict(row, list(ProfileSchema.model_fields))
        )
    except ValidationError as e:
        raise CorruptRecord(row.username, str(e)) from e

    stats = data.stats.model_dump()
    for key in ("scanned_targets", "discovered_exploits", "impossible_breaches"):
        stats[key] = set(stats[key])

    return AgentProfile(
        username=data.username,
        last_heat_update=from_storage_time(data.last_heat_update),
        created_at=from_storage_time(data.created_at),
        reputation=data.reputation,
        heat=data.heat,
        credits=data.credits,
        streak=data.streak,
        login_count=data.login_count,
        last_login=from_storage_time(data.last_login),
        completed_missions=set(data.completed_missions),
        unlocked_achievements=set(data.unlocked_achievements),
        inventory=set(data.inventory),
        stats=AgentStats(**stats),
    )


def encode_stats(stats: AgentStats) -> dict[str, Any]:
    encoded = StatsSchema(
        **{
            name: sorted(value) if isinstance(value, set) else value
            for name, value in vars(stats).items()
        }
    )
    return encoded.model_dump()


def _copy_credential(record: CredentialRecord, row: Credential) -> None:
    row.password_hash = record.password_hash
    row.failed_attempts = record.failed_attempts
    row.locked_until = to_storage_time(record.locked_until)
    row.created_at = to_storage_time(record.created_at)


def _copy_profile(profile: AgentProfile, row: AgentProfileRow) -> None:
    row.reputation = profile.reputation
    row.heat = profile.heat
    row.credits = profile.credits
    row.streak = profile.streak
    row.login_count = profile.login_count
    row.last_login = to_storage_time(profile.last_login)
    row.last_heat_update = to_storage_time(profile.last_heat_update)
    row.created_at = to_storage_time(profile.created_at)
    row.completed_missions = sorted(profile.completed_missions)
    row.unlocked_achievements = sorted(profile.unlocked_achievements)
    row.inventory = sorted(profile.inventory)
    row.stats = encode_stats(profile.stats)


class CredentialStore:
    """Hashed credentials and lockout counters."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, username: str) -> CredentialRecord | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(Credential, username)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read credentials for {username}: {e}")
            raise PersistenceFailure(f"Could not read credentials: {e}") from e
        except (ValueError, TypeError) as e:
            # Column processors reject malformed JSON and datetime text
            logger.error(f"Corrupt credentials for {username}: {e}")
            raise CorruptRecord(username, str(e)) from e
        if row is None:
            return None
        return decode_credential(row)

    async def exists(self, username: str) -> bool:
        try:
            async with self._session_factory() as session:
                row = await session.get(Credential, username)
        except SQLAlchemyError as e:
            logger.error(f"Failed to look up {username}: {e}")
            raise PersistenceFailure(f"Could not read credentials: {e}") from e
        except (ValueError, TypeError) as e:
            logger.error(f"Corrupt credentials for {username}: {e}")
            raise CorruptRecord(username, str(e)) from e
        return row is not None

    async def list_usernames(self) -> list[str]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Credential.username).order_by(Credential.username)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list usernames: {e}")
            raise PersistenceFailure(f"Could not list usernames: {e}") from e

    async def create_account(
        self, record: CredentialRecord, profile: AgentProfile
    ) -> None:
        """
        Insert a credential row and its empty profile in one transaction.

        Raises:
            UsernameTaken: If a row with this username already exists
            PersistenceFailure: On any other database error
        """
        credential_row = Credential(username=record.username)
        _copy_credential(record, credential_row)
        profile_row = AgentProfileRow(username=profile.username)
        _copy_profile(profile, profile_row)

        try:
            async with self._session_factory() as session:
                session.add(credential_row)
                await session.flush()
                session.add(profile_row)
                await session.commit()
        except IntegrityError as e:
            raise UsernameTaken(f"Username '{record.username}' is already taken") from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to create account {record.username}: {e}")
            raise PersistenceFailure(f"Could not create account: {e}") from e

    async def save(
        self, record: CredentialRecord, profile: AgentProfile | None = None
    ) -> None:
        """Update a credential row, plus its profile in the same transaction if given."""
        try:
            async with self._session_factory() as session:
                row = await session.get(Credential, record.username)
                if row is None:
                    raise PersistenceFailure(f"No credentials for '{record.username}'")
                _copy_credential(record, row)
                if profile is not None:
                    profile_row = await session.get(AgentProfileRow, profile.username)
                    if profile_row is None:
                        raise PersistenceFailure(f"No profile for '{profile.username}'")
                    _copy_profile(profile, profile_row)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save credentials for {record.username}: {e}")
            raise PersistenceFailure(f"Could not save credentials: {e}") from e
        except (ValueError, TypeError) as e:
            logger.error(f"Corrupt record for {record.username}: {e}")
            raise CorruptRecord(record.username, str(e)) from e


class ProfileStore:
    """Per-agent progression records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, username: str) -> AgentProfile | None:
        """
        Load a profile.

        Raises:
            CorruptRecord: If the row cannot be decoded or fails validation
            PersistenceFailure: If the database cannot be read
        """
        try:
            async with self._session_factory() as session:
                row = await session.get(AgentProfileRow, username)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load profile {username}: {e}")
            raise PersistenceFailure(f"Could not load profile: {e}") from e
        except (ValueError, TypeError) as e:
            logger.error(f"Corrupt profile for {username}: {e}")
            raise CorruptRecord(username, str(e)) from e
        if row is None:
            return None
        return decode_profile(row)

    async def save(self, profile: AgentProfile) -> None:
        try:
            async with self._session_factory() as session:
                row = await session.get(AgentProfileRow, profile.username)
                if row is None:
                    raise PersistenceFailure(f"No profile for '{profile.username}'")
                _copy_profile(profile, row)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save profile {profile.username}: {e}")
            raise PersistenceFailure(f"Could not save profile: {e}") from e
        except (ValueError, TypeError) as e:
            logger.error(f"Corrupt profile for {profile.username}: {e}")
            raise CorruptRecord(profile.username, str(e)) from e
        logger.debug(f"Saved profile {profile.username}")
