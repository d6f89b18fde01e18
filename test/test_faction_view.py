"""
Tests for the faction-eye view and the external turn response contract.
"""

import pytest
from pydantic import ValidationError

from sanguo.engine.faction_view import (
    build_faction_state_view,
    categorize_food,
    categorize_troops,
    estimate_relative_troops,
    response_to_orders,
)


@pytest.mark.parametrize("total,label", [
    (8000, "plentiful"),
    (7999, "sufficient"),
    (4000, "sufficient"),
    (2000, "short"),
    (1999, "critical"),
    (0, "critical"),
])
def test_troop_bands(total, label):
    assert categorize_troops(total) == label


@pytest.mark.parametrize("food,label", [
    (10000, "plentiful"),
    (5000, "sufficient"),
    (4999, "short"),
    (1999, "critical"),
])
def test_food_bands(food, label):
    assert categorize_food(food) == label


def test_relative_troops(state):
    # cao 35000 against liu 13000
    assert estimate_relative_troops(state, "liu", "cao") == "superior"
    assert estimate_relative_troops(state, "cao", "liu") == "inferior"


def test_view_shows_exact_numbers_only_for_own_side(state):
    view = build_faction_state_view(state, "cao", strategic_goals=["Take Jiangxia"])
    assert {c["id"] for c in view["own_cities"]} == {"nanjun", "jiangling"}
    nanjun = next(c for c in view["own_cities"] if c["id"] == "nanjun")
    assert nanjun["total_troops"] == 23000
    assert all(g["faction"] == "cao" for g in view["own_generals"])

    liu = next(i for i in view["enemy_intel"] if i["faction_id"] == "liu")
    gangha = next(c for c in liu["known_cities"] if c["id"] == "gangha")
    assert gangha == {"id": "gangha", "name": "Jiangxia", "troops_level": "plentiful", "food_level": "sufficient"}
    assert len(liu["known_generals"]) == 5
    assert view["strategic_goals"] == ["Take Jiangxia"]
    assert {r["target"] for r in view["diplomacy"]["relations"]} == {"liu", "sun"}


def test_view_filters_flags(state):
    state.flags.update({
        "cao_m_conscript1": True,
        "sun_chibi_support": True,
        "decisive_victory": False,
        "weather": "southeast wind",
    })
    view = build_faction_state_view(state, "cao")
    assert view["relevant_flags"] == {
        "cao_m_conscript1": True,
        "decisive_victory": False,
        "weather": "southeast wind",
    }


def test_view_is_detached_from_state(state):
    view = build_faction_state_view(state, "cao")
    view["own_cities"][0]["food"] = 0
    view["own_generals"][0]["location"] = "nowhere"
    assert next(c for c in state.cities if c.id == "nanjun").food == 20000
    assert all(g.location != "nowhere" for g in state.generals)


def test_response_to_orders(state):
    response = {
        "actions": [
            {"type": "march", "params": {"from": "nanjun", "to": "gangha",
                                         "generals": "xiahouyuan, caimao", "troops_scale": "small"}},
            {"type": "pass"},
            {"type": "assign", "params": {"general": "zhangyun", "destination": "chibi"}},
        ],
        "message": "Cao Cao strikes",
    }
    actions, deployments, messages = response_to_orders(response, state, "cao")
    assert len(actions) == 1
    assert actions[0].type == "march"
    assert actions[0].faction == "cao"
    assert actions[0].payload["generals"] == ["xiahouyuan", "caimao"]
    assert deployments == [("zhangyun", "chibi")]
    assert messages == ["Cao Cao strikes"]


def test_unknown_action_types_are_dropped(state):
    actions, _, messages = response_to_orders(
        {"actions": [{"type": "feast"}, {"type": "battle_result"}]}, state, "cao",
    )
    assert actions == []
    assert messages == []


def test_assign_to_city_stays_an_action(state):
    actions, deployments, _ = response_to_orders(
        {"actions": [{"type": "assign", "params": {"general": "caoren", "destination": "nanjun"}}]},
        state, "cao",
    )
    assert [a.type for a in actions] == ["assign"]
    assert deployments == []


@pytest.mark.parametrize("response", [
    {"actions": [{"type": "train", "params": {"city": "nanjun"}}] * 4},
    {"actions": [{"type": "train", "confidence": 150}]},
    {"actions": [{"params": {}}]},
])
def test_invalid_responses(state, response):
    with pytest.raises(ValidationError):
        response_to_orders(response, state, "cao")
