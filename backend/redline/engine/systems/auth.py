"""
Authentication system: registration, login, lockout and logout.

Account state machine:
    ACTIVE --(lockout_threshold consecutive failures)--> LOCKED
    LOCKED --(lockout duration elapses)--> ACTIVE

Passwords are hashed with bcrypt; the cost factor comes from settings.
All side effects are committed before a call returns.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import timedelta
from typing import TYPE_CHECKING

import bcrypt

from ...errors import (
    AccountLocked,
    InvalidCredentials,
    InvalidUsername,
    SessionClosed,
    UsernameTaken,
    WeakPassword,
)
from ..state import AccountState, AgentProfile, CredentialRecord, Session

if TYPE_CHECKING:
    from .context import GameContext

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_]{3,20}")

# bcrypt refuses longer secrets
MAX_PASSWORD_BYTES = 72


def validate_username(username: str) -> None:
    if not USERNAME_PATTERN.fullmatch(username):
        raise InvalidUsername(
            "Username must be 3-20 characters: letters, numbers and underscores only"
        )


def password_failures(password: str, min_length: int = 8) -> list[str]:
    """Every password rule ``password`` breaks (empty when it is acceptable)."""
    failures = []
    if len(password) < min_length:
        failures.append(f"must be at least {min_length} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        failures.append(f"must be at most {MAX_PASSWORD_BYTES} bytes long")
    if not any(c.isupper() for c in password):
        failures.append("must contain at least one uppercase letter")
    if not any(c.islower() for c in password):
        failures.append("must contain at least one lowercase letter")
    if not any(c.isdigit() for c in password):
        failures.append("must contain at least one number")
    if not any(not c.isalnum() and not c.isspace() for c in password):
        failures.append("must contain at least one special character")
    return failures


def hash_password(password: str, rounds: int) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = password.encode("utf-8")
    if len(secret) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
    try:
        return bcrypt.checkpw(secret, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


class AuthSystem:
    """Gates access to sessions and owns the credential fields."""

    def __init__(self, ctx: "GameContext") -> None:
        self.ctx = ctx
        settings = ctx.settings
        self.lockout_threshold = settings.lockout_threshold
        self.lockout_duration = timedelta(minutes=settings.lockout_minutes)
        logger.info(
            f"AuthSystem initialized (lockout after {self.lockout_threshold} "
            f"failures for {settings.lockout_minutes} min)"
        )

    async def register(self, username: str, password: str) -> CredentialRecord:
        """
        Create an account and its empty agent profile.

        Raises:
            InvalidUsername: If the name breaks the username policy
            WeakPassword: If the password breaks any rule (all are listed)
            UsernameTaken: If the name is already registered
        """
        validate_username(username)
        failures = password_failures(password, self.ctx.settings.min_password_length)
        if failures:
            raise WeakPassword(failures)

        store = self.ctx.credential_store
        if await store.exists(username):
            raise UsernameTaken(f"Username '{username}' is already taken")

        password_hash = await asyncio.to_thread(
            hash_password, password, self.ctx.settings.bcrypt_rounds
        )
        now = self.ctx.now()
        record = CredentialRecord(
            username=username,
            password_hash=password_hash,
            created_at=now,
        )
        profile = AgentProfile(
            username=username,
            last_heat_update=now,
            created_at=now,
            credits=self.ctx.settings.starting_credits,
        )
        await store.create_account(record, profile)
        logger.info(f"Registered new agent {username}")
        return record

    async def login(self, username: str, password: str) -> Session:
        """
        Verify credentials and open a session.

        Raises:
            InvalidCredentials: Unknown user or wrong password
            AccountLocked: Account is locked, or this failure locked it
            CorruptRecord: If the stored credentials or profile cannot be decoded
        """
        store = self.ctx.credential_store
        record = await store.get(username)
        if record is None:
            logger.warning(f"Login attempt for unknown user {username!r}")
            raise InvalidCredentials()

        now = self.ctx.now()
        if record.state_at(now) is AccountState.LOCKED:
            logger.warning(f"Login attempt for locked account {username}")
            raise AccountLocked(record.locked_until)

        if record.locked_until is not None:
            # Lock expired
            record.locked_until = None
            record.failed_attempts = 0

        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            # No stored hash can match
            logger.warning(
                f"Over-long password for {username} ({MAX_PASSWORD_BYTES} byte limit)"
            )
            matches = False
        else:
            matches = await asyncio.to_thread(
                verify_password, password, record.password_hash
            )
        if not matches:
            record.failed_attempts += 1
            if record.failed_attempts >= self.lockout_threshold:
                record.locked_until = now + self.lockout_duration
                await store.save(record)
                logger.info(
                    f"Account {username} locked until {record.locked_until:%Y-%m-%d %H:%M} UTC"
                )
                raise AccountLocked(record.locked_until)
            await store.save(record)
            logger.warning(
                f"Failed login for {username} ({record.failed_attempts}/{self.lockout_threshold})"
            )
            raise InvalidCredentials()

        record.failed_attempts = 0
        record.locked_until = None

        profile = await self.ctx.profile_store.load(username)
        if profile is None:
            raise InvalidCredentials(f"No agent profile for {username}")
        result = self.ctx.progression.record_login(profile, now)
        await store.save(record, result.profile)

        logger.info(f"Agent {username} logged in (login #{result.profile.login_count})")
        return Session(username=username, started_at=now)

    async def logout(self, session: Session, profile: AgentProfile) -> AgentProfile:
        """Record time played, persist and close the session."""
        if not session.active:
            raise SessionClosed("Session already closed")
        now = self.ctx.now()
        result = self.ctx.progression.record_logout(profile, session.started_at, now)
        await self.ctx.profile_store.save(result.profile)
        session.active = False
        session.pending_event = None
        logger.info(f"Agent {session.username} logged out")
        return result.profile

    async def account_state(self, username: str) -> AccountState:
        """
        Current lock state (read-only).

        Raises:
            InvalidCredentials: If the user does not exist
        """
        record = await self.ctx.credential_store.get(username)
        if record is None:
            raise InvalidCredentials(f"Unknown user {username}")
        return record.state_at(self.ctx.now())

    async def list_usernames(self) -> list[str]:
        return await self.ctx.credential_store.list_usernames()
