"""
Randomness source for outcome rolls.

Every random decision in the engine (success rolls, random-event triggers,
event selection, gamble outcomes) goes through a single RandomSource so a
run can be replayed from a seed, or scripted in tests.
"""

from __future__ import annotations

import random
from typing import Protocol, Sequence, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class RandomSource(Protocol):
    """Anything that can produce the next roll in [0.0, 1.0)."""

    def next_roll(self) -> float:
        ...


class SeededRandomSource:
    """RandomSource backed by ``random.Random``; pass a seed for replayable runs."""

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def next_roll(self) -> float:
        return self._rng.random()


def roll_succeeds(source: RandomSource, probability: float) -> bool:
    """True when the next roll lands under ``probability``."""
    return source.next_roll() < probability


def pick(source: RandomSource, options: Sequence[T]) -> T:
    """Choose one element using a single roll."""
    if not options:
        raise ValueError("Cannot pick from an empty sequence")
    index = int(source.next_roll() * len(options))
    return options[min(index, len(options) - 1)]
