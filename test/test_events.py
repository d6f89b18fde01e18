"""
Tests for the scenario event catalog and EventSystem.
"""

import pytest

from sanguo.engine.definitions import load_event_catalog
from sanguo.engine.difficulty import apply_difficulty_modifier
from sanguo.engine.event_system import EventSystem
from sanguo.engine.events import ScenarioEvent
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.rng import CountingRng, create_seeded_rng


def _event(event_id, trigger, effects=None, **extra):
    return ScenarioEvent.from_dict({
        "id": event_id,
        "trigger": trigger,
        "description": event_id,
        "effects": effects or [],
        **extra,
    })


def _at_turn(manager, turn):
    while manager.state.turn < turn:
        manager.advance_turn()


def test_catalog_loads():
    events = load_event_catalog("red_cliffs")
    assert len(events) == 10
    assert events[0].id == "cao_advance"


def test_turn_event_fires_once(manager):
    system = EventSystem(load_event_catalog("red_cliffs"), create_seeded_rng(1))
    _at_turn(manager, 2)
    fired = system.process_turn(manager)
    assert [r.event_id for r in fired] == ["cao_advance"]
    assert manager.get_flag("intel_reliability") == "rough"
    assert manager.get_flag("urgency") == 1
    assert fired[0].impact == "threat rising"
    assert system.process_turn(manager) == []


def test_completed_events_never_refire(manager):
    system = EventSystem([_event("always", {"type": "condition", "condition": {"turn_min": 1}})], create_seeded_rng(1))
    assert len(system.process_turn(manager)) == 1
    for _ in range(5):
        manager.advance_turn()
        assert system.process_turn(manager) == []
    assert manager.state.completed_events == ["always"]


def test_condition_on_turn_trigger(manager):
    system = EventSystem(load_event_catalog("red_cliffs"), create_seeded_rng(1))
    manager.set_flag("alliance_started", True)
    _at_turn(manager, 3)
    assert system.process_turn(manager) == []
    assert not manager.is_event_completed("lusu_visit")


def test_advisor_knowledge_flag(manager):
    system = EventSystem(load_event_catalog("red_cliffs"), create_seeded_rng(1))
    _at_turn(manager, 3)
    system.process_turn(manager)
    assert manager.get_flag("knowledge_sunquan_diplomacy") is True
    assert manager.get_flag("diplomacy_bonus") == 20


def test_turn_range_probability(manager):
    certain = _event("sure", {"type": "turn_range", "min": 1, "max": 3, "probability": 1.0})
    never = _event("never", {"type": "turn_range", "min": 1, "max": 3, "probability": 0.0})
    system = EventSystem([certain, never], create_seeded_rng(1))
    assert [r.event_id for r in system.process_turn(manager)] == ["sure"]
    for _ in range(3):
        manager.advance_turn()
        assert system.process_turn(manager) == []


def test_turn_range_draws_only_inside_window(manager):
    calls = []

    def rng():
        calls.append(1)
        return 0.5

    system = EventSystem([_event("late", {"type": "turn_range", "min": 5, "max": 6, "probability": 0.7})], rng)
    system.process_turn(manager)
    assert calls == []
    _at_turn(manager, 5)
    assert len(system.process_turn(manager)) == 1
    assert calls == [1]


def test_later_rule_sees_earlier_flag(manager):
    first = _event("first", {"type": "turn", "turn": 1},
                   [{"type": "weather_change", "weather": "southeast wind"}])
    second = _event("second", {"type": "condition", "condition": {"flag": "weather"}})
    system = EventSystem([first, second], create_seeded_rng(1))
    assert [r.event_id for r in system.process_turn(manager)] == ["first", "second"]


def test_check_triggers_leaves_state_unchanged(manager):
    system = EventSystem(load_event_catalog("red_cliffs"), create_seeded_rng(1))
    _at_turn(manager, 2)
    before = manager.snapshot()
    assert [e.id for e in system.check_triggers(manager.state)] == ["cao_advance"]
    assert manager.state == before


def test_check_triggers_rolls_open_windows_only(manager):
    rng = CountingRng(3)
    system = EventSystem(load_event_catalog("red_cliffs"), rng)
    _at_turn(manager, 9)
    system.check_triggers(manager.state)
    assert rng.draws == 0

    _at_turn(manager, 10)
    before = manager.snapshot()
    system.check_triggers(manager.state)
    # southeast_wind is the only turn_range rule open at turn 10
    assert rng.draws == 1
    assert manager.state == before


def test_decisive_victory_collapses_nanjun(state):
    apply_difficulty_modifier(state, "normal")
    manager = GameStateManager(state)
    before = manager.get_city("nanjun")
    troops_before, morale_before = before.troops.total, before.morale
    manager.set_flag("decisive_victory", True)

    system = EventSystem(load_event_catalog("red_cliffs"), create_seeded_rng(1))
    fired = {r.event_id for r in system.process_turn(manager)}
    assert {"cao_army_collapse", "jingzhou_surrender", "cao_cao_retreat"} <= fired
    # Not allied with Sun: no grain
    assert "sun_food_support" not in fired

    after = manager.get_city("nanjun")
    assert after.troops.total < troops_before * 0.45
    assert after.morale == morale_before - 30
    assert manager.get_flag("pursuit_location") == "huarong"


def test_food_support_needs_alliance_and_preset(state):
    apply_difficulty_modifier(state, "easy")
    manager = GameStateManager(state)
    manager.update_relation("liu", "sun", is_alliance=True)
    manager.set_flag("decisive_victory", True)
    food_before = manager.get_city("hagu").food

    system = EventSystem(load_event_catalog("red_cliffs"), create_seeded_rng(1))
    fired = {r.event_id for r in system.process_turn(manager)}
    assert "sun_food_support" in fired
    assert manager.get_city("hagu").food == food_before + 5000


@pytest.mark.parametrize("bad", [
    {"id": "x", "trigger": {"type": "sometimes"}},
    {"id": "x", "trigger": {"type": "turn", "turn": 1}, "effects": [{"type": "earthquake"}]},
    {"id": "x", "trigger": {"type": "condition"}},
])
def test_malformed_events_rejected(bad):
    with pytest.raises(ValueError):
        ScenarioEvent.from_dict(bad)
