"""
Unit tests for the EventManager: triggering, pool selection and resolution.
"""

import pytest

from redline.engine.systems.events import (
    ELITE_EVENTS,
    HIGH_HEAT_EVENTS,
    OPPORTUNITY_EVENTS,
    THREAT_EVENTS,
    EventManager,
)
from redline.errors import InsufficientCredits, InvalidArguments

from conftest import ScriptedRandomSource


def event_by_id(pool, event_id):
    return next(e for e in pool if e.id == event_id)


@pytest.mark.unit
class TestTriggering:
    def test_disabled_manager_consumes_no_rolls(self, make_profile):
        source = ScriptedRandomSource()
        manager = EventManager(source, event_chance=1.0, enabled=False)

        assert manager.maybe_trigger(make_profile()) is None
        assert source.consumed == 0

    def test_zero_chance_consumes_no_rolls(self, make_profile):
        source = ScriptedRandomSource()
        manager = EventManager(source, event_chance=0.0)

        assert manager.maybe_trigger(make_profile()) is None
        assert source.consumed == 0

    def test_roll_above_chance_triggers_nothing(self, make_profile):
        source = ScriptedRandomSource([0.5])
        manager = EventManager(source, event_chance=0.1)

        assert manager.maybe_trigger(make_profile()) is None
        assert source.consumed == 1

    def test_triggered_event_uses_three_rolls(self, make_profile):
        source = ScriptedRandomSource([0.05, 0.0, 0.0])
        manager = EventManager(source, event_chance=0.1)

        event = manager.maybe_trigger(make_profile())

        assert event.id == "vulnerable_system"
        assert source.consumed == 3


@pytest.mark.unit
class TestPoolSelection:
    def test_high_heat_pool(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        assert manager.pool_for(make_profile(heat=80)) == HIGH_HEAT_EVENTS

    def test_heat_at_danger_line_is_not_high_heat(self, make_profile):
        manager = EventManager(ScriptedRandomSource([0.9]))
        assert manager.pool_for(make_profile(heat=75)) == THREAT_EVENTS

    def test_elite_pool(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        assert manager.pool_for(make_profile(reputation=1500)) == ELITE_EVENTS

    def test_heat_takes_priority_over_reputation(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        assert manager.pool_for(make_profile(heat=90, reputation=1500)) == HIGH_HEAT_EVENTS

    def test_even_draw(self, make_profile):
        manager = EventManager(ScriptedRandomSource([0.2, 0.7]))

        assert manager.pool_for(make_profile()) == OPPORTUNITY_EVENTS
        assert manager.pool_for(make_profile()) == THREAT_EVENTS

    def test_pick_uses_last_option_for_high_roll(self, make_profile):
        manager = EventManager(ScriptedRandomSource([0.999]))
        event = manager.choose_event(make_profile(heat=90))
        assert event.id == "system_lockdown"


@pytest.mark.unit
class TestResolve:
    def test_cost_and_outcome_are_combined(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        event = event_by_id(HIGH_HEAT_EVENTS, "trace_initiated")

        effect = manager.resolve(event, 0, make_profile(heat=90))

        assert effect.credits == -100
        assert effect.heat == -30
        assert effect.reputation == 0

    def test_reputation_cost(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        event = event_by_id(HIGH_HEAT_EVENTS, "trace_initiated")

        effect = manager.resolve(event, 1, make_profile(heat=90))

        assert effect.reputation == -20
        assert effect.heat == -50

    def test_heat_cost_with_credit_gain(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        event = event_by_id(OPPORTUNITY_EVENTS, "vulnerable_system")

        effect = manager.resolve(event, 0, make_profile())

        assert effect.credits == 200
        assert effect.heat == 15

    def test_unlock_content(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        event = event_by_id(OPPORTUNITY_EVENTS, "data_cache")

        effect = manager.resolve(event, 1, make_profile())

        assert effect.item == "encrypted_file"

    def test_insufficient_credits(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        event = event_by_id(HIGH_HEAT_EVENTS, "trace_initiated")

        with pytest.raises(InsufficientCredits):
            manager.resolve(event, 0, make_profile(credits=50))

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_choice_out_of_range(self, make_profile, index):
        manager = EventManager(ScriptedRandomSource())
        event = event_by_id(HIGH_HEAT_EVENTS, "trace_initiated")

        with pytest.raises(InvalidArguments):
            manager.resolve(event, index, make_profile())

    def test_gamble_win(self, make_profile):
        source = ScriptedRandomSource([0.1])
        manager = EventManager(source)
        event = event_by_id(THREAT_EVENTS, "ai_defense")

        effect = manager.resolve(event, 0, make_profile())

        assert source.consumed == 1
        assert effect.reputation == 100
        assert effect.item == "ai_slayer"
        assert effect.heat == 40

    def test_gamble_loss(self, make_profile):
        manager = EventManager(ScriptedRandomSource([0.95]))
        event = event_by_id(THREAT_EVENTS, "rival_hacker")

        effect = manager.resolve(event, 0, make_profile())

        assert effect.reputation == -10
        assert effect.credits == 0
        assert effect.heat == 20

    def test_resolve_does_not_touch_profile(self, make_profile):
        manager = EventManager(ScriptedRandomSource())
        event = event_by_id(OPPORTUNITY_EVENTS, "vulnerable_system")
        profile = make_profile()
        snapshot = profile.copy()

        manager.resolve(event, 0, profile)

        assert profile == snapshot
