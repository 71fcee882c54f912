"""Achievement catalog. Predicates are evaluated after every profile mutation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..state import AgentProfile
from .missions import MISSIONS


class AchievementRarity(Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


RARITY_POINTS: dict[AchievementRarity, int] = {
    AchievementRarity.COMMON: 10,
    AchievementRarity.UNCOMMON: 25,
    AchievementRarity.RARE: 50,
    AchievementRarity.EPIC: 100,
    AchievementRarity.LEGENDARY: 250,
}

STREAK_ACHIEVEMENT = 10
STEALTH_OPS_REQUIRED = 10
DECRYPTS_REQUIRED = 50


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    rarity: AchievementRarity
    predicate: Callable[[AgentProfile], bool]

    @property
    def points(self) -> int:
        return RARITY_POINTS[self.rarity]


def _all_missions_done(profile: AgentProfile) -> bool:
    return all(m.id in profile.completed_missions for m in MISSIONS)


def _everything_else_unlocked(profile: AgentProfile) -> bool:
    others = {a.id for a in ACHIEVEMENTS if a.id != "master_hacker"}
    return others <= profile.unlocked_achievements


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement(
        "first_login",
        "Welcome to the Grid",
        "Successfully login for the first time",
        AchievementRarity.COMMON,
        lambda p: p.login_count >= 1,
    ),
    Achievement(
        "first_scan",
        "Network Explorer",
        "Complete your first network scan",
        AchievementRarity.COMMON,
        lambda p: p.stats.total_scans >= 1,
    ),
    Achievement(
        "first_exploit",
        "Script Kiddie",
        "Successfully exploit your first vulnerability",
        AchievementRarity.COMMON,
        lambda p: p.stats.systems_compromised >= 1,
    ),
    Achievement(
        "decrypt_master",
        "Codebreaker",
        f"Decrypt {DECRYPTS_REQUIRED} encrypted files",
        AchievementRarity.UNCOMMON,
        lambda p: p.stats.files_decrypted >= DECRYPTS_REQUIRED,
    ),
    Achievement(
        "stealth_master",
        "Ghost in the Machine",
        f"Complete {STEALTH_OPS_REQUIRED} operations with heat level below 25%",
        AchievementRarity.RARE,
        lambda p: p.stats.stealth_ops >= STEALTH_OPS_REQUIRED,
    ),
    Achievement(
        "reputation_100",
        "Notorious",
        "Reach 100 reputation points",
        AchievementRarity.UNCOMMON,
        lambda p: p.reputation >= 100,
    ),
    Achievement(
        "reputation_1000",
        "Elite Hacker",
        "Reach 1000 reputation points",
        AchievementRarity.EPIC,
        lambda p: p.reputation >= 1000,
    ),
    Achievement(
        "perfect_mission",
        "Flawless Victory",
        "Complete a mission without a single failed operation",
        AchievementRarity.RARE,
        lambda p: bool(p.completed_missions) and p.stats.failed_ops == 0,
    ),
    Achievement(
        "speed_demon",
        "Speed Demon",
        f"Chain {STREAK_ACHIEVEMENT} successful operations in a row",
        AchievementRarity.EPIC,
        lambda p: p.streak >= STREAK_ACHIEVEMENT,
    ),
    Achievement(
        "master_hacker",
        "Master of the Digital Domain",
        "Complete all missions and unlock all achievements",
        AchievementRarity.LEGENDARY,
        lambda p: _all_missions_done(p) and _everything_else_unlocked(p),
    ),
)

ACHIEVEMENTS_BY_ID: dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def achievement_points(profile: AgentProfile) -> int:
    """Total points for the achievements an agent has unlocked."""
    return sum(
        ACHIEVEMENTS_BY_ID[a].points
        for a in profile.unlocked_achievements
        if a in ACHIEVEMENTS_BY_ID
    )
