"""
Tests for loading scenario content.
"""

import pytest

from sanguo.engine.definitions import (
    create_scenario_state,
    list_scenarios,
    load_event_catalog,
    load_scenario,
    load_strategies,
)
from sanguo.engine.state import Phase


def test_list_scenarios():
    scenarios = list_scenarios()
    red_cliffs = next(s for s in scenarios if s["id"] == "red_cliffs")
    assert red_cliffs["display_name"] == "The Battle of Red Cliffs"


def test_load_scenario():
    template = load_scenario("red_cliffs")
    assert template["max_turns"] == 20
    assert template["victory_criteria"]["decisive_battlefield"] == "chibi"
    assert len(template["cities"]) == 5
    assert len(template["generals"]) == 15


def test_unknown_scenario():
    with pytest.raises(FileNotFoundError):
        load_scenario("waterloo")


def test_fresh_state():
    state = create_scenario_state("red_cliffs", game_id="g1")
    assert state.game_id == "g1"
    assert state.turn == 1
    assert state.phase == Phase.PREPARATION
    assert state.season == "Autumn, Jian'an 13"
    assert state.actions_remaining == 3
    assert state.flags == {}
    assert state.active_battle is None
    assert [f.id for f in state.factions if f.is_player] == ["liu"]


def test_states_are_independent():
    a = create_scenario_state("red_cliffs")
    b = create_scenario_state("red_cliffs")
    a.cities[0].food = 0
    assert b.cities[0].food == 8000
    assert a.game_id != b.game_id


def test_event_catalog_and_strategies():
    assert len(load_event_catalog("red_cliffs")) == 10
    strategies = load_strategies("red_cliffs")
    assert set(strategies) == {"cao", "sun"}
    assert strategies["cao"].halt_flag == "decisive_victory"
    assert [m["turn"] for m in strategies["cao"].milestones] == [3, 5, 6, 8, 9, 10]
