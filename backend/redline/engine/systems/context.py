"""
GameContext - explicit dependencies shared by all systems.

Provides:
- Settings (security and progression tunables)
- The clock and the random source (both injectable for tests)
- The credential and profile stores
- Cross-system references (set as systems are initialized)

This avoids module-level globals and keeps every system testable with a
frozen clock and a scripted random source.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from .randomness import RandomSource, SeededRandomSource

if TYPE_CHECKING:
    from ...config import Settings
    from ..stores import CredentialStore, ProfileStore


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GameContext:
    """
    Shared context object passed to all game systems.

    Usage:
        ctx = GameContext(settings, credential_store, profile_store)
        progression = ProgressionEngine(settings.heat_decay_per_minute)
        ctx.progression = progression  # Register for cross-system access
    """

    def __init__(
        self,
        settings: "Settings",
        credential_store: "CredentialStore",
        profile_store: "ProfileStore",
        random_source: RandomSource | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings
        self.credential_store = credential_store
        self.profile_store = profile_store
        self.random_source = random_source or SeededRandomSource()
        self.clock = clock or utc_now

        # System references (set by GameEngine during initialization)
        self.progression: Any = None  # ProgressionEngine
        self.event_manager: Any = None  # EventManager
        self.auth: Any = None  # AuthSystem
        self.router: Any = None  # CommandRouter

    def now(self) -> datetime:
        """Current time, always UTC-aware."""
        now = self.clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now
