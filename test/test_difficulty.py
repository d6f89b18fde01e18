"""
Tests for difficulty presets.
"""

import pytest

from sanguo.engine.difficulty import DIFFICULTIES, DIFFICULTY_PRESETS, apply_difficulty_modifier
from sanguo.engine.state import Troops


def _city(state, city_id):
    return next(c for c in state.cities if c.id == city_id)


def test_easy_scales_contested_city_and_player_food(state):
    _city(state, "nanjun").troops = Troops(10000, 0, 0)
    apply_difficulty_modifier(state, "easy")
    assert _city(state, "nanjun").troops.infantry == 7000
    assert _city(state, "gangha").food == 12000
    assert _city(state, "hagu").food == 6000
    # Neither the player's nor the contested city
    assert _city(state, "sishang").food == 12000
    assert _city(state, "jiangling").troops.total == 12000


def test_thresholds_recorded_as_flags(state):
    apply_difficulty_modifier(state, "normal")
    assert state.flags["difficulty"] == "normal"
    assert state.flags["collapse_ratio"] == 0.6
    assert state.flags["collapse_morale_penalty"] == -30
    assert state.flags["ally_food_support"] == 3000
    assert state.flags["ally_support_floor"] == 5000


def test_hard_keeps_troops(state):
    apply_difficulty_modifier(state, "hard")
    nanjun = _city(state, "nanjun")
    assert (nanjun.troops.infantry, nanjun.troops.cavalry, nanjun.troops.navy) == (15000, 5000, 3000)
    assert _city(state, "gangha").food == 8000


def test_unknown_difficulty(state):
    with pytest.raises(ValueError):
        apply_difficulty_modifier(state, "nightmare")
    assert "difficulty" not in state.flags


@pytest.mark.parametrize("difficulty", DIFFICULTIES)
def test_preset_ranges(difficulty):
    params = DIFFICULTY_PRESETS[difficulty]
    assert 0 < params.collapse_ratio < 1
    assert params.collapse_morale_penalty < 0
    assert params.food_multiplier >= 1.0
