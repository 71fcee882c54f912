"""
Mission catalog.

Missions are fixed. Each is a list of objectives measured against the agent
profile; a mission is complete when every objective reaches its requirement.
Completion is checked by the ProgressionEngine after each outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..state import AgentProfile, Difficulty


@dataclass(frozen=True)
class Objective:
    description: str
    progress: Callable[[AgentProfile], int]
    required: int = 1

    def current(self, profile: AgentProfile) -> int:
        return min(self.progress(profile), self.required)

    def is_complete(self, profile: AgentProfile) -> bool:
        return self.progress(profile) >= self.required


@dataclass(frozen=True)
class Mission:
    id: str
    name: str
    description: str
    difficulty: Difficulty
    reward_reputation: int
    objectives: tuple[Objective, ...]

    @property
    def reward_credits(self) -> int:
        return self.reward_reputation * 10

    def is_satisfied(self, profile: AgentProfile) -> bool:
        return all(obj.is_complete(profile) for obj in self.objectives)

    def completion_percentage(self, profile: AgentProfile) -> float:
        total_required = sum(obj.required for obj in self.objectives)
        if total_required == 0:
            return 0.0
        total_progress = sum(obj.current(profile) for obj in self.objectives)
        return total_progress / total_required * 100.0


def _flag(condition: Callable[[AgentProfile], bool]) -> Callable[[AgentProfile], int]:
    return lambda p: 1 if condition(p) else 0


MISSIONS: tuple[Mission, ...] = (
    Mission(
        id="INIT-001",
        name="First Steps",
        description="Learn the basics of the system",
        difficulty=Difficulty.TRIVIAL,
        reward_reputation=10,
        objectives=(
            Objective("Scan a network", lambda p: p.stats.total_scans),
            Objective("Decrypt a file", lambda p: p.stats.files_decrypted),
        ),
    ),
    Mission(
        id="RECON-001",
        name="Network Reconnaissance",
        description="Map out a corporate network",
        difficulty=Difficulty.EASY,
        reward_reputation=25,
        objectives=(
            Objective("Scan 5 different targets", lambda p: len(p.stats.scanned_targets), 5),
            Objective("Land 3 different exploits", lambda p: len(p.stats.discovered_exploits), 3),
        ),
    ),
    Mission(
        id="DATA-001",
        name="Data Extraction",
        description="Extract sensitive data from a secure server",
        difficulty=Difficulty.MEDIUM,
        reward_reputation=50,
        objectives=(
            Objective("Exploit a vulnerability", lambda p: p.stats.systems_compromised),
            Objective("Decrypt 3 files", lambda p: p.stats.files_decrypted, 3),
            Objective("Maintain heat level below 50%", _flag(lambda p: p.heat < 50)),
        ),
    ),
    Mission(
        id="CORP-001",
        name="Corporate Espionage",
        description="Infiltrate a rival corporation's mainframe",
        difficulty=Difficulty.HARD,
        reward_reputation=100,
        objectives=(
            Objective("Bypass 2 firewalls", lambda p: p.stats.firewalls_breached, 2),
            Objective("Successfully exploit 3 systems", lambda p: p.stats.systems_compromised, 3),
            Objective("Extract a database", lambda p: p.stats.databases_extracted),
        ),
    ),
    Mission(
        id="GHOST-001",
        name="Ghost Protocol",
        description="Complete operations without detection",
        difficulty=Difficulty.EXTREME,
        reward_reputation=200,
        objectives=(
            Objective("Complete 5 hacks", lambda p: p.stats.hacks, 5),
            Objective("Keep heat level at or below 25%", _flag(lambda p: p.heat <= 25)),
            Objective("Leave no traces", _flag(lambda p: p.stats.failed_ops == 0)),
        ),
    ),
    Mission(
        id="IMPOSSIBLE-001",
        name="The Impossible",
        description="Hack the unhackable",
        difficulty=Difficulty.IMPOSSIBLE,
        reward_reputation=500,
        objectives=(
            Objective(
                "Breach quantum encryption",
                _flag(lambda p: "decrypt" in p.stats.impossible_breaches),
            ),
            Objective(
                "Defeat AI defense system",
                _flag(lambda p: "firewall" in p.stats.impossible_breaches),
            ),
            Objective(
                "Extract the crown jewels",
                _flag(lambda p: "exploit" in p.stats.impossible_breaches),
            ),
        ),
    ),
)

MISSIONS_BY_ID: dict[str, Mission] = {m.id: m for m in MISSIONS}


def get_mission(mission_id: str) -> Mission | None:
    return MISSIONS_BY_ID.get(mission_id.strip().upper())
