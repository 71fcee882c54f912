"""
Progression Engine - pure profile transitions.

Every public method takes a profile and returns a new one inside a
ProgressionResult; the input is never mutated. Given the same profile,
outcome and timestamp the result is always the same.

Order of operations for an outcome:
1. Lazy heat decay up to ``now``
2. Credits spent / items acquired
3. Heat accrual
4. Streak and rewards (operations only)
5. Command stats
6. Missions, then achievements
7. Invariant check
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ...errors import InsufficientCredits, InvariantViolation
from ..state import (
    MAX_HEAT,
    ActionKind,
    ActionOutcome,
    AgentProfile,
    Difficulty,
    EventEffect,
)
from ..targets import find_exploit
from .achievements import ACHIEVEMENTS
from .missions import MISSIONS

logger = logging.getLogger(__name__)


# === Constants ===

HEAT_DECAY_PER_MINUTE = 1

HEAT_BY_KIND: dict[ActionKind, int] = {
    ActionKind.SCAN: 10,
    ActionKind.EXPLOIT: 25,
    ActionKind.INJECT: 20,
    ActionKind.DECRYPT: 5,
    ActionKind.OTHER: 5,
}

# Floor for the heat cost of a failed operation
FAILURE_HEAT = 15

# (minimum streak, multiplier), highest first
STREAK_MULTIPLIERS: list[tuple[int, float]] = [
    (50, 2.0),
    (30, 1.75),
    (20, 1.5),
    (10, 1.25),
    (5, 1.1),
    (0, 1.0),
]

# difficulty -> (reputation, credits) before the streak multiplier
REWARDS: dict[Difficulty, tuple[int, int]] = {
    Difficulty.TRIVIAL: (5, 25),
    Difficulty.EASY: (10, 50),
    Difficulty.MEDIUM: (20, 100),
    Difficulty.HARD: (35, 200),
    Difficulty.EXTREME: (60, 400),
    Difficulty.IMPOSSIBLE: (100, 800),
}

STEALTH_HEAT = 25

FIREWALL_BREACH_MODES = ("bypass", "disable")


def streak_multiplier(streak: int) -> float:
    for minimum, multiplier in STREAK_MULTIPLIERS:
        if streak >= minimum:
            return multiplier
    return 1.0


def heat_cost(kind: ActionKind, success: bool) -> int:
    """Heat added by an action of ``kind``."""
    cost = HEAT_BY_KIND[kind]
    if success:
        return cost
    return max(cost, FAILURE_HEAT)


def clamp_heat(value: int) -> int:
    return max(0, min(MAX_HEAT, value))


@dataclass
class ProgressionResult:
    """New profile plus the events raised while producing it."""

    profile: AgentProfile
    events: list[dict[str, Any]] = field(default_factory=list)

    def events_of(self, event_type: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["type"] == event_type]


class ProgressionEngine:
    """
    Applies outcomes, logins, logouts and event effects to agent profiles.

    The engine holds only configuration (the decay rate); all state lives in
    the profiles passed in and returned.
    """

    def __init__(self, heat_decay_per_minute: int = HEAT_DECAY_PER_MINUTE) -> None:
        if heat_decay_per_minute < 0:
            raise ValueError("heat_decay_per_minute cannot be negative")
        self.heat_decay_per_minute = heat_decay_per_minute
        logger.info(
            f"ProgressionEngine initialized (decay {heat_decay_per_minute}/min)"
        )

    # === Public API ===

    def decay(self, profile: AgentProfile, now: datetime) -> AgentProfile:
        """Return a copy of ``profile`` with heat decayed up to ``now``."""
        updated = profile.copy()
        self._decay_in_place(updated, now)
        return updated

    def apply(
        self, profile: AgentProfile, outcome: ActionOutcome, now: datetime
    ) -> ProgressionResult:
        """
        Apply one action outcome.

        Raises:
            InsufficientCredits: If the outcome spends more than the balance
            InvariantViolation: If the result breaks a numeric invariant
        """
        updated = profile.copy()
        events: list[dict[str, Any]] = []
        self._decay_in_place(updated, now)
        level_before = updated.level

        if outcome.credit_cost:
            if outcome.credit_cost > updated.credits:
                raise InsufficientCredits(outcome.credit_cost, updated.credits)
            updated.credits -= outcome.credit_cost
        if outcome.acquired_item:
            updated.inventory.add(outcome.acquired_item)

        heat_before = updated.heat
        updated.heat = clamp_heat(updated.heat + heat_cost(outcome.kind, outcome.success))
        updated.stats.highest_heat = max(updated.stats.highest_heat, updated.heat)

        reputation_gained = 0
        credits_gained = 0
        if outcome.is_operation:
            if outcome.success:
                updated.streak += 1
                multiplier = streak_multiplier(updated.streak)
                base_reputation, base_credits = REWARDS[outcome.difficulty]
                reputation_gained = int(base_reputation * multiplier)
                credits_gained = int(base_credits * multiplier)
                updated.reputation += reputation_gained
                updated.credits += credits_gained
                updated.stats.successful_ops += 1
                if updated.heat < STEALTH_HEAT:
                    updated.stats.stealth_ops += 1
                if outcome.difficulty is Difficulty.IMPOSSIBLE:
                    updated.stats.impossible_breaches.add(outcome.command)
            else:
                updated.streak = 0
                updated.stats.failed_ops += 1

        self._update_command_stats(updated, outcome)

        events.append(
            {
                "type": "outcome",
                "command": outcome.command,
                "success": outcome.success,
                "heat_delta": updated.heat - heat_before,
                "reputation_gained": reputation_gained,
                "credits_gained": credits_gained,
                "streak": updated.streak,
            }
        )
        self._finish(updated, events, level_before)
        return ProgressionResult(updated, events)

    def record_login(self, profile: AgentProfile, now: datetime) -> ProgressionResult:
        updated = profile.copy()
        events: list[dict[str, Any]] = []
        self._decay_in_place(updated, now)
        level_before = updated.level
        updated.login_count += 1
        updated.last_login = now
        self._finish(updated, events, level_before)
        return ProgressionResult(updated, events)

    def record_logout(
        self, profile: AgentProfile, started_at: datetime, now: datetime
    ) -> ProgressionResult:
        """Add the session's duration to time played."""
        updated = profile.copy()
        self._decay_in_place(updated, now)
        elapsed = int((now - started_at).total_seconds())
        updated.stats.time_played_seconds += max(0, elapsed)
        self._check_invariants(updated)
        return ProgressionResult(updated, [])

    def apply_event_effect(
        self, profile: AgentProfile, effect: EventEffect, now: datetime
    ) -> ProgressionResult:
        """
        Apply the effect of a resolved random event.

        Reputation losses here are the only way reputation goes down; it is
        clamped at 0. The streak is not touched.

        Raises:
            InsufficientCredits: If the effect costs more credits than owned
        """
        updated = profile.copy()
        events: list[dict[str, Any]] = []
        self._decay_in_place(updated, now)
        level_before = updated.level

        if effect.credits < 0 and -effect.credits > updated.credits:
            raise InsufficientCredits(-effect.credits, updated.credits)

        updated.credits += effect.credits
        updated.reputation = max(0, updated.reputation + effect.reputation)
        updated.heat = clamp_heat(updated.heat + effect.heat)
        updated.stats.highest_heat = max(updated.stats.highest_heat, updated.heat)
        if effect.item:
            updated.inventory.add(effect.item)

        events.append(
            {
                "type": "event_resolved",
                "description": effect.description,
                "credits": effect.credits,
                "reputation": effect.reputation,
                "heat": effect.heat,
                "item": effect.item,
            }
        )
        self._finish(updated, events, level_before)
        return ProgressionResult(updated, events)

    # === Internals ===

    def _decay_in_place(self, profile: AgentProfile, now: datetime) -> None:
        elapsed = now - profile.last_heat_update
        if elapsed <= timedelta(0):
            return

        if profile.heat == 0:
            profile.last_heat_update = now
            return

        minutes = elapsed // timedelta(minutes=1)
        if minutes == 0 or self.heat_decay_per_minute == 0:
            return

        remaining = profile.heat - self.heat_decay_per_minute * minutes
        if remaining <= 0:
            profile.heat = 0
            profile.last_heat_update = now
        else:
            profile.heat = remaining
            # Keep the partial minute so split reads decay like one long read
            profile.last_heat_update += timedelta(minutes=minutes)

    def _update_command_stats(self, profile: AgentProfile, outcome: ActionOutcome) -> None:
        if not outcome.success:
            return
        stats = profile.stats

        if outcome.command == "scan":
            stats.total_scans += 1
            if outcome.target:
                stats.scanned_targets.add(outcome.target.lower())
        elif outcome.command == "exploit":
            stats.systems_compromised += 1
            exploit = find_exploit(outcome.detail) if outcome.detail else None
            if exploit is not None:
                stats.discovered_exploits.add(exploit.name)
        elif outcome.command == "decrypt":
            stats.files_decrypted += 1
            if outcome.detail == "database":
                stats.databases_extracted += 1
        elif outcome.command == "inject":
            stats.payloads_injected += 1
        elif outcome.command == "trace":
            stats.traces_run += 1
        elif outcome.command == "firewall":
            if outcome.detail in FIREWALL_BREACH_MODES:
                stats.firewalls_breached += 1

    def _finish(
        self,
        profile: AgentProfile,
        events: list[dict[str, Any]],
        level_before,
    ) -> None:
        self._check_missions(profile, events)
        self._check_achievements(profile, events)

        level_after = profile.level
        if level_after is not level_before:
            events.append(
                {
                    "type": "level_up",
                    "old_level": level_before.display_name,
                    "new_level": level_after.display_name,
                }
            )
        self._check_invariants(profile)

    def _check_missions(self, profile: AgentProfile, events: list[dict[str, Any]]) -> None:
        for mission in MISSIONS:
            if mission.id in profile.completed_missions:
                continue
            if not mission.is_satisfied(profile):
                continue
            profile.completed_missions.add(mission.id)
            profile.reputation += mission.reward_reputation
            profile.credits += mission.reward_credits
            events.append(
                {
                    "type": "mission_complete",
                    "mission_id": mission.id,
                    "name": mission.name,
                    "reward_reputation": mission.reward_reputation,
                    "reward_credits": mission.reward_credits,
                }
            )
            logger.info(f"{profile.username} completed mission {mission.id}")

    def _check_achievements(
        self, profile: AgentProfile, events: list[dict[str, Any]]
    ) -> None:
        # Catalog order puts master_hacker last so it sees this pass's unlocks
        for achievement in ACHIEVEMENTS:
            if achievement.id in profile.unlocked_achievements:
                continue
            if not achievement.predicate(profile):
                continue
            profile.unlocked_achievements.add(achievement.id)
            events.append(
                {
                    "type": "achievement_unlocked",
                    "achievement_id": achievement.id,
                    "name": achievement.name,
                    "rarity": achievement.rarity.value,
                    "points": achievement.points,
                }
            )
            logger.info(f"{profile.username} unlocked achievement {achievement.id}")

    def _check_invariants(self, profile: AgentProfile) -> None:
        if not 0 <= profile.heat <= MAX_HEAT:
            raise InvariantViolation(f"heat out of range: {profile.heat}")
        if profile.reputation < 0:
            raise InvariantViolation(f"negative reputation: {profile.reputation}")
        if profile.credits < 0:
            raise InvariantViolation(f"negative credits: {profile.credits}")
