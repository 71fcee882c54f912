"""
Random events.

After each mutating command the EventManager may roll an event. The pool
depends on the agent's state: high heat draws threats, high reputation draws
elite opportunities, anything else is an even draw between ordinary
opportunities and threats. Every roll and every gamble goes through the
shared RandomSource.

Resolving a choice produces an EventEffect; applying it is the
ProgressionEngine's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from ...errors import InsufficientCredits, InvalidArguments
from ..state import DANGER_HEAT, AgentProfile, EventEffect
from .randomness import RandomSource, pick, roll_succeeds

logger = logging.getLogger(__name__)

EVENT_CHANCE = 0.10
ELITE_REPUTATION = 1000


class EventType(Enum):
    OPPORTUNITY = "opportunity"
    THREAT = "threat"


class EventSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class OutcomeKind(Enum):
    GAIN_CREDITS = "gain_credits"
    GAIN_REPUTATION = "gain_reputation"
    REDUCE_HEAT = "reduce_heat"
    INCREASE_HEAT = "increase_heat"
    UNLOCK_CONTENT = "unlock_content"
    MAINTAIN_ACCESS = "maintain_access"
    SAFE_EXIT = "safe_exit"
    GAMBLE = "gamble"


@dataclass(frozen=True)
class EventCost:
    credits: int = 0
    reputation: int = 0
    heat: int = 0


@dataclass(frozen=True)
class Gamble:
    """A coin flip: ``win_chance`` of ``win``, otherwise ``lose``."""

    description: str
    win_chance: float
    win: EventEffect
    lose: EventEffect


@dataclass(frozen=True)
class EventOutcome:
    kind: OutcomeKind
    amount: int = 0
    item: str | None = None
    gamble: Gamble | None = None


@dataclass(frozen=True)
class EventChoice:
    label: str
    outcome: EventOutcome
    cost: EventCost | None = None


@dataclass(frozen=True)
class RandomEvent:
    id: str
    title: str
    description: str
    event_type: EventType
    severity: EventSeverity
    choices: tuple[EventChoice, ...] = field(default_factory=tuple)


# === Outcome shorthands ===


def _gain_credits(amount: int) -> EventOutcome:
    return EventOutcome(OutcomeKind.GAIN_CREDITS, amount=amount)


def _gain_reputation(amount: int) -> EventOutcome:
    return EventOutcome(OutcomeKind.GAIN_REPUTATION, amount=amount)


def _reduce_heat(amount: int) -> EventOutcome:
    return EventOutcome(OutcomeKind.REDUCE_HEAT, amount=amount)


def _increase_heat(amount: int) -> EventOutcome:
    return EventOutcome(OutcomeKind.INCREASE_HEAT, amount=amount)


def _unlock(item: str) -> EventOutcome:
    return EventOutcome(OutcomeKind.UNLOCK_CONTENT, item=item)


def _gamble(gamble: Gamble) -> EventOutcome:
    return EventOutcome(OutcomeKind.GAMBLE, gamble=gamble)


MAINTAIN_ACCESS = EventOutcome(OutcomeKind.MAINTAIN_ACCESS)
SAFE_EXIT = EventOutcome(OutcomeKind.SAFE_EXIT)


# === Event pools ===

HIGH_HEAT_EVENTS: tuple[RandomEvent, ...] = (
    RandomEvent(
        "trace_initiated",
        "TRACE INITIATED",
        "Security forces are attempting to trace your location!",
        EventType.THREAT,
        EventSeverity.CRITICAL,
        (
            EventChoice("Deploy countermeasures", _reduce_heat(30), EventCost(credits=100)),
            EventChoice("Go dark immediately", _reduce_heat(50), EventCost(reputation=20)),
            EventChoice("Risk it", _increase_heat(20)),
        ),
    ),
    RandomEvent(
        "system_lockdown",
        "SYSTEM LOCKDOWN",
        "Target system is initiating emergency lockdown procedures!",
        EventType.THREAT,
        EventSeverity.HIGH,
        (
            EventChoice("Force override", MAINTAIN_ACCESS, EventCost(heat=25)),
            EventChoice("Extract and flee", SAFE_EXIT),
        ),
    ),
)

ELITE_EVENTS: tuple[RandomEvent, ...] = (
    RandomEvent(
        "elite_invitation",
        "ELITE INVITATION",
        "You've been invited to join an elite hacker collective",
        EventType.OPPORTUNITY,
        EventSeverity.LOW,
        (
            EventChoice("Accept invitation", _unlock("elite_tools"), EventCost(reputation=50)),
            EventChoice("Decline respectfully", _gain_reputation(10)),
        ),
    ),
    RandomEvent(
        "black_market_deal",
        "BLACK MARKET OPPORTUNITY",
        "A mysterious contact offers rare zero-day exploits",
        EventType.OPPORTUNITY,
        EventSeverity.MEDIUM,
        (
            EventChoice("Purchase exploits", _unlock("zero_day_pack"), EventCost(credits=500)),
            EventChoice(
                "Negotiate better price",
                _gamble(
                    Gamble(
                        "negotiation",
                        0.5,
                        win=EventEffect("Negotiation successful! 50% discount obtained", credits=250),
                        lose=EventEffect("Negotiation failed. Seller vanished"),
                    )
                ),
                EventCost(reputation=10),
            ),
            EventChoice("Report to authorities", _reduce_heat(20), EventCost(reputation=30)),
        ),
    ),
)

OPPORTUNITY_EVENTS: tuple[RandomEvent, ...] = (
    RandomEvent(
        "vulnerable_system",
        "VULNERABLE SYSTEM DETECTED",
        "Scans reveal a highly vulnerable system with valuable data",
        EventType.OPPORTUNITY,
        EventSeverity.LOW,
        (
            EventChoice("Exploit immediately", _gain_credits(200), EventCost(heat=15)),
            EventChoice("Document and save for later", _unlock("saved_target")),
        ),
    ),
    RandomEvent(
        "data_cache",
        "ENCRYPTED DATA CACHE",
        "You've discovered an encrypted data cache during your scan",
        EventType.OPPORTUNITY,
        EventSeverity.LOW,
        (
            EventChoice("Decrypt now", _gain_credits(100)),
            EventChoice("Download for later", _unlock("encrypted_file")),
        ),
    ),
    RandomEvent(
        "backdoor_found",
        "BACKDOOR DISCOVERED",
        "You've found an existing backdoor in the system",
        EventType.OPPORTUNITY,
        EventSeverity.MEDIUM,
        (
            EventChoice("Use the backdoor", MAINTAIN_ACCESS),
            EventChoice("Replace with your own", _unlock("persistent_access"), EventCost(heat=10)),
            EventChoice("Report and patch", _gain_reputation(25)),
        ),
    ),
)

THREAT_EVENTS: tuple[RandomEvent, ...] = (
    RandomEvent(
        "honeypot",
        "HONEYPOT DETECTED",
        "This system appears to be a honeypot trap!",
        EventType.THREAT,
        EventSeverity.HIGH,
        (
            EventChoice("Abort immediately", SAFE_EXIT, EventCost(reputation=5)),
            EventChoice("Leave false trail", _reduce_heat(10), EventCost(credits=50)),
            EventChoice("Turn it to your advantage", _unlock("honeypot_intel"), EventCost(heat=30)),
        ),
    ),
    RandomEvent(
        "rival_hacker",
        "RIVAL HACKER DETECTED",
        "Another hacker is targeting the same system!",
        EventType.THREAT,
        EventSeverity.MEDIUM,
        (
            EventChoice(
                "Race to the prize",
                _gamble(
                    Gamble(
                        "race_rival",
                        0.6,
                        win=EventEffect("Victory! You beat the rival", credits=300, reputation=30),
                        lose=EventEffect("The rival was faster", reputation=-10),
                    )
                ),
                EventCost(heat=20),
            ),
            EventChoice("Collaborate", _gain_reputation(15)),
            EventChoice("Sabotage their attempt", MAINTAIN_ACCESS, EventCost(reputation=10)),
        ),
    ),
    RandomEvent(
        "ai_defense",
        "AI DEFENSE SYSTEM",
        "An advanced AI is defending this system!",
        EventType.THREAT,
        EventSeverity.CRITICAL,
        (
            EventChoice(
                "Engage in cyber warfare",
                _gamble(
                    Gamble(
                        "ai_battle",
                        0.7,
                        win=EventEffect("AI defeated! System compromised", reputation=100, item="ai_slayer"),
                        lose=EventEffect("AI victorious. Connection terminated", heat=50),
                    )
                ),
                EventCost(heat=40),
            ),
            EventChoice("Attempt to confuse it", MAINTAIN_ACCESS, EventCost(credits=150)),
            EventChoice("Tactical retreat", SAFE_EXIT),
        ),
    ),
)


class EventManager:
    """Rolls random events and turns chosen options into EventEffects."""

    def __init__(
        self,
        random_source: RandomSource,
        event_chance: float = EVENT_CHANCE,
        enabled: bool = True,
    ) -> None:
        self.random_source = random_source
        self.event_chance = event_chance
        self.enabled = enabled
        logger.info(f"EventManager initialized (chance {event_chance:.0%}, enabled={enabled})")

    def maybe_trigger(self, profile: AgentProfile) -> RandomEvent | None:
        """Roll for an event after a mutating command."""
        if not self.enabled or self.event_chance <= 0:
            return None
        if not roll_succeeds(self.random_source, self.event_chance):
            return None
        event = self.choose_event(profile)
        logger.info(f"Random event '{event.id}' triggered for {profile.username}")
        return event

    def choose_event(self, profile: AgentProfile) -> RandomEvent:
        return pick(self.random_source, self.pool_for(profile))

    def pool_for(self, profile: AgentProfile) -> tuple[RandomEvent, ...]:
        if profile.heat > DANGER_HEAT:
            return HIGH_HEAT_EVENTS
        if profile.reputation > ELITE_REPUTATION:
            return ELITE_EVENTS
        if roll_succeeds(self.random_source, 0.5):
            return OPPORTUNITY_EVENTS
        return THREAT_EVENTS

    def resolve(
        self, event: RandomEvent, choice_index: int, profile: AgentProfile
    ) -> EventEffect:
        """
        Turn a choice into a single EventEffect.

        Args:
            event: The pending event
            choice_index: Zero-based index into ``event.choices``
            profile: Current profile, used to check the credit cost up front

        Raises:
            InvalidArguments: If the index is out of range
            InsufficientCredits: If the choice costs more credits than owned
        """
        if not 0 <= choice_index < len(event.choices):
            raise InvalidArguments(f"choose <1-{len(event.choices)}>")

        choice = event.choices[choice_index]
        cost = choice.cost or EventCost()
        if cost.credits > profile.credits:
            raise InsufficientCredits(cost.credits, profile.credits)

        credits = -cost.credits
        reputation = -cost.reputation
        heat = cost.heat
        item = None
        description = choice.label

        outcome = choice.outcome
        if outcome.kind is OutcomeKind.GAIN_CREDITS:
            credits += outcome.amount
        elif outcome.kind is OutcomeKind.GAIN_REPUTATION:
            reputation += outcome.amount
        elif outcome.kind is OutcomeKind.REDUCE_HEAT:
            heat -= outcome.amount
        elif outcome.kind is OutcomeKind.INCREASE_HEAT:
            heat += outcome.amount
        elif outcome.kind is OutcomeKind.UNLOCK_CONTENT:
            item = outcome.item
        elif outcome.kind is OutcomeKind.GAMBLE:
            gamble = outcome.gamble
            result = gamble.win if roll_succeeds(self.random_source, gamble.win_chance) else gamble.lose
            credits += result.credits
            reputation += result.reputation
            heat += result.heat
            item = result.item
            description = result.description

        logger.debug(f"Event '{event.id}' resolved with choice {choice_index}: {description}")
        return EventEffect(
            description=description,
            credits=credits,
            reputation=reputation,
            heat=heat,
            item=item,
        )
