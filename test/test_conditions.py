"""
Tests for declarative conditions.
"""

import pytest

from sanguo.engine import conditions
from sanguo.engine.state import GeneralCondition


def test_empty_condition_holds(state):
    assert conditions.evaluate(None, state)
    assert conditions.evaluate({}, state)


def test_keys_are_anded(state):
    state.flags["alliance_strong"] = True
    state.turn = 8
    assert conditions.evaluate({"flag": "alliance_strong", "turn_min": 8}, state)
    state.turn = 7
    assert not conditions.evaluate({"flag": "alliance_strong", "turn_min": 8}, state)


def test_phase_matches_enum_value(state):
    assert conditions.evaluate({"phase": "preparation"}, state)
    assert not conditions.evaluate({"phase": "battle"}, state)


def test_general_predicates(state):
    assert conditions.evaluate({"general_active": "caimao"}, state)
    assert conditions.evaluate({"general_at": {"general": "caoren", "location": "jiangling"}}, state)
    assert conditions.evaluate({"faction_fit_at": {"faction": "liu", "location": "hagu"}}, state)
    caimao = next(g for g in state.generals if g.id == "caimao")
    caimao.condition = GeneralCondition.DEAD
    assert not conditions.evaluate({"general_active": "caimao"}, state)


def test_city_thresholds(state):
    assert conditions.evaluate({"city_troops_below": {"city": "hagu", "value": 6000}}, state)
    assert not conditions.evaluate({"city_troops_below": {"city": "hagu", "value": 5000}}, state)
    assert conditions.evaluate({"city_food_above": {"city": "sishang", "value": 11999}}, state)
    assert conditions.evaluate({"city_food_below": {"city": "hagu", "value": 6000}}, state)
    assert conditions.evaluate({"city_training_below": {"city": "hagu", "value": 46}}, state)
    assert not conditions.evaluate({"city_troops_below": {"city": "nowhere", "value": 1}}, state)


def test_threshold_from_flag(state):
    cond = {"city_food_above": {"city": "sishang", "value_flag": "ally_support_floor"}}
    state.flags["ally_support_floor"] = 5000
    assert conditions.evaluate(cond, state)
    state.flags["ally_support_floor"] = 20000
    assert not conditions.evaluate(cond, state)


def test_alliance_predicates(state):
    assert conditions.evaluate({"player_allied": False}, state)
    assert not conditions.evaluate({"allied_with_player": "sun"}, state)
    relation = next(r for r in state.diplomacy.relations if r.involves("liu", "sun"))
    relation.is_alliance = True
    assert conditions.evaluate({"player_allied": True}, state)
    assert conditions.evaluate({"allied_with_player": "sun"}, state)


def test_cooldown(state):
    cond = {"cooldown": {"flag": "cao_last_attack_turn", "turns": 4}}
    assert conditions.evaluate(cond, state)
    state.flags["cao_last_attack_turn"] = 14
    state.turn = 17
    assert not conditions.evaluate(cond, state)
    state.turn = 18
    assert conditions.evaluate(cond, state)


def test_any_and_all(state):
    assert conditions.evaluate({"any": [{"flag": "missing"}, {"turn_max": 5}]}, state)
    assert not conditions.evaluate({"all": [{"flag": "missing"}, {"turn_max": 5}]}, state)


def test_unknown_key_is_rejected(state):
    with pytest.raises(ValueError):
        conditions.evaluate({"moon_phase": "full"}, state)
    with pytest.raises(ValueError):
        conditions.validate({"any": [{"flag": "a"}, {"moon_phase": "full"}]})
