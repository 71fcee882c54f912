"""
Error taxonomy for the Redline engine.

Every error raised to the presentation layer derives from RedlineError and
carries a stable ``code`` tag the terminal front-end uses to pick how to
render it. InvariantViolation is not a RedlineError: it
signals a programming mistake, not a player-facing condition.
"""

from __future__ import annotations

from datetime import datetime


class RedlineError(Exception):
    """Base class for all user-facing engine errors."""

    code = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


# ---------- Authentication ----------


class AuthError(RedlineError):
    code = "auth_error"


class InvalidUsername(AuthError):
    code = "invalid_username"


class WeakPassword(AuthError):
    code = "weak_password"

    def __init__(self, failures: list[str]) -> None:
        self.failures = list(failures)
        super().__init__("Password " + "; ".join(self.failures))


class UsernameTaken(AuthError):
    code = "username_taken"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"

    def __init__(self, message: str = "ACCESS DENIED: Invalid credentials") -> None:
        super().__init__(message)


class AccountLocked(AuthError):
    code = "account_locked"

    def __init__(self, locked_until: datetime | None) -> None:
        self.locked_until = locked_until
        until = f" until {locked_until:%Y-%m-%d %H:%M} UTC" if locked_until else ""
        super().__init__(
            f"Account is locked due to multiple failed login attempts{until}"
        )


class SessionClosed(RedlineError):
    code = "session_closed"


# ---------- Commands ----------


class CommandError(RedlineError):
    code = "command_error"


class UnknownCommand(CommandError):
    code = "unknown_command"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown command: {name}")


class InvalidArguments(CommandError):
    code = "invalid_arguments"

    def __init__(self, usage: str) -> None:
        self.usage = usage
        super().__init__(f"Usage: {usage}")


class InsufficientCredits(CommandError):
    code = "insufficient_credits"

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(f"Insufficient credits: need {required}, have {available}")


class NoPendingEvent(CommandError):
    code = "no_pending_event"


# ---------- Storage ----------


class StorageError(RedlineError):
    code = "storage_error"


class PersistenceFailure(StorageError):
    code = "persistence_failure"


class CorruptRecord(StorageError):
    code = "corrupt_record"

    def __init__(self, username: str, detail: str = "") -> None:
        self.username = username
        message = f"Stored record for '{username}' could not be decoded"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# ---------- Programming errors ----------


class InvariantViolation(AssertionError):
    """A profile left the legal state space (heat, reputation or credits)."""
