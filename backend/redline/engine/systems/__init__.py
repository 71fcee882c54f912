# backend/redline/engine/systems/__init__.py
"""
Game systems.

Each system handles a specific part of the game state:
- AuthSystem: Registration, login, lockout
- ProgressionEngine: Heat, reputation, streaks, missions, achievements
- EventManager: Random events and their resolution
- CommandRouter: Command parsing and handler routing
- GameContext: Shared dependencies (settings, clock, randomness, stores)
"""

from .achievements import ACHIEVEMENTS, Achievement, AchievementRarity
from .auth import AuthSystem
from .context import GameContext
from .events import EventManager, RandomEvent
from .missions import MISSIONS, Mission, Objective
from .progression import ProgressionEngine, ProgressionResult
from .randomness import RandomSource, SeededRandomSource
from .router import CommandMeta, CommandResult, CommandRouter, ParsedCommand

__all__ = [
    "ACHIEVEMENTS",
    "Achievement",
    "AchievementRarity",
    "AuthSystem",
    "GameContext",
    "EventManager",
    "RandomEvent",
    "MISSIONS",
    "Mission",
    "Objective",
    "ProgressionEngine",
    "ProgressionResult",
    "RandomSource",
    "SeededRandomSource",
    "CommandMeta",
    "CommandResult",
    "CommandRouter",
    "ParsedCommand",
]
