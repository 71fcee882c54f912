"""
Core game-state types.

Agent profiles, credential records, sessions and the Action Outcome handed
from the command layer to the progression engine. Level is never stored: it
is derived from reputation through REPUTATION_LEVELS on every access.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ActionKind(Enum):
    """Action categories used by the heat table."""

    SCAN = "scan"
    EXPLOIT = "exploit"
    INJECT = "inject"
    DECRYPT = "decrypt"
    OTHER = "other"


class Difficulty(Enum):
    """Difficulty tiers, easiest first."""

    TRIVIAL = "trivial"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXTREME = "extreme"
    IMPOSSIBLE = "impossible"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    def harder(self, other: "Difficulty") -> "Difficulty":
        """Return whichever of the two tiers is harder."""
        return self if self.rank >= other.rank else other

    def step_up(self) -> "Difficulty":
        """The next tier up (IMPOSSIBLE stays IMPOSSIBLE)."""
        return _DIFFICULTY_ORDER[min(self.rank + 1, len(_DIFFICULTY_ORDER) - 1)]


_DIFFICULTY_ORDER = list(Difficulty)


class ReputationLevel(Enum):
    """The 11 reputation bands."""

    NOBODY = "Nobody"
    WANNABE = "Wannabe"
    SCRIPT_KIDDIE = "Script Kiddie"
    AMATEUR = "Amateur Hacker"
    COMPETENT = "Competent Hacker"
    SKILLED = "Skilled Hacker"
    EXPERT = "Expert Hacker"
    MASTER = "Master Hacker"
    ELITE = "Elite Hacker"
    LEGENDARY = "Legendary Hacker"
    MYTHICAL = "Mythical Hacker"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def requirement(self) -> int:
        """Reputation needed to enter this band."""
        for threshold, level in REPUTATION_LEVELS:
            if level is self:
                return threshold
        raise KeyError(self)

    @property
    def next_requirement(self) -> int | None:
        """Reputation needed for the next band, or None at the top."""
        for index, (_, level) in enumerate(REPUTATION_LEVELS):
            if level is self:
                if index + 1 < len(REPUTATION_LEVELS):
                    return REPUTATION_LEVELS[index + 1][0]
                return None
        raise KeyError(self)

    @classmethod
    def from_reputation(cls, reputation: int) -> "ReputationLevel":
        """
        Map a reputation score to its band.

        Bands are inclusive-lower, exclusive-upper; the top band is unbounded.

        Raises:
            ValueError: If reputation is negative
        """
        if reputation < 0:
            raise ValueError(f"Reputation cannot be negative: {reputation}")
        level = REPUTATION_LEVELS[0][1]
        for threshold, candidate in REPUTATION_LEVELS:
            if reputation < threshold:
                break
            level = candidate
        return level


# Index order = band order; value = reputation needed to enter the band
REPUTATION_LEVELS: list[tuple[int, ReputationLevel]] = [
    (0, ReputationLevel.NOBODY),
    (50, ReputationLevel.WANNABE),
    (150, ReputationLevel.SCRIPT_KIDDIE),
    (300, ReputationLevel.AMATEUR),
    (500, ReputationLevel.COMPETENT),
    (750, ReputationLevel.SKILLED),
    (1000, ReputationLevel.EXPERT),
    (1500, ReputationLevel.MASTER),
    (2000, ReputationLevel.ELITE),
    (3000, ReputationLevel.LEGENDARY),
    (5000, ReputationLevel.MYTHICAL),
]

MAX_HEAT = 100
DANGER_HEAT = 75


class AccountState(Enum):
    ACTIVE = "active"
    LOCKED = "locked"


@dataclass
class CredentialRecord:
    """Hashed credentials and lockout state (timestamps are UTC-aware)."""

    username: str
    password_hash: str
    created_at: datetime
    failed_attempts: int = 0
    locked_until: datetime | None = None

    def state_at(self, now: datetime) -> AccountState:
        if self.locked_until is not None and self.locked_until > now:
            return AccountState.LOCKED
        return AccountState.ACTIVE


@dataclass
class AgentStats:
    """Cumulative counters used by missions, achievements and the status screen."""

    total_scans: int = 0
    successful_ops: int = 0
    failed_ops: int = 0
    files_decrypted: int = 0
    databases_extracted: int = 0
    systems_compromised: int = 0
    payloads_injected: int = 0
    firewalls_breached: int = 0
    traces_run: int = 0
    stealth_ops: int = 0  # successful ops finished below 25 heat
    highest_heat: int = 0
    time_played_seconds: int = 0
    scanned_targets: set[str] = field(default_factory=set)
    discovered_exploits: set[str] = field(default_factory=set)
    impossible_breaches: set[str] = field(default_factory=set)

    @property
    def hacks(self) -> int:
        return self.systems_compromised + self.payloads_injected

    @property
    def success_rate(self) -> float:
        total = self.successful_ops + self.failed_ops
        if total == 0:
            return 0.0
        return self.successful_ops / total * 100.0


@dataclass
class AgentProfile:
    """Persistent progression record for one agent."""

    username: str
    last_heat_update: datetime
    created_at: datetime
    reputation: int = 0
    heat: int = 0
    credits: int = 0
    streak: int = 0
    login_count: int = 0
    last_login: datetime | None = None
    completed_missions: set[str] = field(default_factory=set)
    unlocked_achievements: set[str] = field(default_factory=set)
    inventory: set[str] = field(default_factory=set)
    stats: AgentStats = field(default_factory=AgentStats)

    @property
    def level(self) -> ReputationLevel:
        return ReputationLevel.from_reputation(self.reputation)

    @property
    def reputation_to_next_level(self) -> int | None:
        nxt = self.level.next_requirement
        return None if nxt is None else nxt - self.reputation

    @property
    def level_progress(self) -> float:
        """Percent progress through the current band (0-100)."""
        current = self.level.requirement
        nxt = self.level.next_requirement or current + 1000
        progress = (self.reputation - current) / (nxt - current) * 100.0
        return max(0.0, min(100.0, progress))

    @property
    def is_in_danger(self) -> bool:
        return self.heat > DANGER_HEAT

    def copy(self) -> "AgentProfile":
        return copy.deepcopy(self)


@dataclass(frozen=True)
class ActionOutcome:
    """
    Result of resolving one mutating command.

    ``difficulty`` is None for actions that are not operations (marketplace
    access, firewall analysis): they cost heat but neither earn rewards nor
    touch the streak.
    """

    command: str
    kind: ActionKind
    success: bool
    difficulty: Difficulty | None = None
    target: str | None = None
    detail: str | None = None  # exploit, payload, file, item or firewall mode
    credit_cost: int = 0
    acquired_item: str | None = None

    @property
    def is_operation(self) -> bool:
        return self.difficulty is not None


@dataclass
class Session:
    """Handle for one authenticated run of the terminal."""

    username: str
    started_at: datetime
    active: bool = True
    pending_event: Any = None  # RandomEvent awaiting a choice


@dataclass(frozen=True)
class EventEffect:
    """Net change produced by resolving a random-event choice."""

    description: str
    credits: int = 0
    reputation: int = 0
    heat: int = 0
    item: str | None = None
