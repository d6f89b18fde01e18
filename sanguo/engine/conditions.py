"""
Declarative conditions used by scenario events and AI rules.

A condition is a JSON object; every key present must hold (keys are ANDed):

    {"flag": "alliance_strong", "turn_min": 8}
    {"city_troops_below": {"city": "nanjun", "value": 15000}}
    {"any": [{"flag": "a"}, {"not_flag": "b"}]}

An empty or missing condition is always true.
"""

from typing import Any, Callable

from sanguo.engine.state import GameState


def _flag(state: GameState, arg: Any) -> bool:
    return bool(state.flags.get(arg))


def _not_flag(state: GameState, arg: Any) -> bool:
    return not state.flags.get(arg)


def _turn_min(state: GameState, arg: Any) -> bool:
    return state.turn >= int(arg)


def _turn_max(state: GameState, arg: Any) -> bool:
    return state.turn <= int(arg)


def _phase(state: GameState, arg: Any) -> bool:
    return state.phase == arg


def _general_active(state: GameState, arg: Any) -> bool:
    general = next((g for g in state.generals if g.id == arg), None)
    return general is not None and not general.is_lost


def _general_at(state: GameState, arg: dict[str, Any]) -> bool:
    return any(g.id == arg["general"] and g.location == arg["location"] for g in state.generals)


def _faction_fit_at(state: GameState, arg: dict[str, Any]) -> bool:
    return any(
        g.faction == arg["faction"] and g.location == arg["location"] and g.condition == "fit"
        for g in state.generals
    )


def _city(state: GameState, city_id: str):
    return next((c for c in state.cities if c.id == city_id), None)


def _city_owned_by(state: GameState, arg: dict[str, Any]) -> bool:
    city = _city(state, arg["city"])
    return city is not None and city.owner == arg["faction"]


def _threshold(state: GameState, arg: dict[str, Any]) -> int:
    """Literal "value", or the number stored in flag "value_flag"."""
    if "value_flag" in arg:
        return int(state.flags.get(arg["value_flag"]) or 0)
    return int(arg["value"])


def _city_troops_below(state: GameState, arg: dict[str, Any]) -> bool:
    city = _city(state, arg["city"])
    return city is not None and city.troops.total < _threshold(state, arg)


def _city_food_above(state: GameState, arg: dict[str, Any]) -> bool:
    city = _city(state, arg["city"])
    return city is not None and city.food > _threshold(state, arg)


def _city_food_below(state: GameState, arg: dict[str, Any]) -> bool:
    city = _city(state, arg["city"])
    return city is not None and city.food < _threshold(state, arg)


def _city_training_below(state: GameState, arg: dict[str, Any]) -> bool:
    city = _city(state, arg["city"])
    return city is not None and city.training < _threshold(state, arg)


def _player_id(state: GameState) -> str | None:
    return next((f.id for f in state.factions if f.is_player), None)


def _allied(state: GameState, a: str | None, b: str) -> bool:
    if a is None:
        return False
    return any(r.involves(a, b) and r.is_alliance for r in state.diplomacy.relations)


def _player_allied(state: GameState, arg: Any) -> bool:
    """True when the player has any alliance (arg=True) or none (arg=False)."""
    player = _player_id(state)
    has_alliance = any(
        r.is_alliance and player in (r.faction_a, r.faction_b)
        for r in state.diplomacy.relations
    )
    return has_alliance == bool(arg)


def _allied_with_player(state: GameState, arg: Any) -> bool:
    return _allied(state, _player_id(state), str(arg))


def _cooldown(state: GameState, arg: dict[str, Any]) -> bool:
    """True when the turn stored under arg["flag"] is at least arg["turns"] ago (or unset)."""
    last = state.flags.get(arg["flag"])
    if last is None:
        return True
    return state.turn - int(last) >= int(arg["turns"])


def _any(state: GameState, arg: list[dict[str, Any]]) -> bool:
    return any(evaluate(c, state) for c in arg)


def _all(state: GameState, arg: list[dict[str, Any]]) -> bool:
    return all(evaluate(c, state) for c in arg)


PREDICATES: dict[str, Callable[[GameState, Any], bool]] = {
    "flag": _flag,
    "not_flag": _not_flag,
    "turn_min": _turn_min,
    "turn_max": _turn_max,
    "phase": _phase,
    "general_active": _general_active,
    "general_at": _general_at,
    "faction_fit_at": _faction_fit_at,
    "city_owned_by": _city_owned_by,
    "city_troops_below": _city_troops_below,
    "city_food_above": _city_food_above,
    "city_food_below": _city_food_below,
    "city_training_below": _city_training_below,
    "player_allied": _player_allied,
    "allied_with_player": _allied_with_player,
    "cooldown": _cooldown,
    "any": _any,
    "all": _all,
}


def validate(condition: dict[str, Any] | None) -> None:
    """Raise ValueError for unknown keys (used when loading scenario content)."""
    if not condition:
        return
    for key, arg in condition.items():
        if key not in PREDICATES:
            raise ValueError(f"Unknown condition key: {key}")
        if key in ("any", "all"):
            for sub in arg:
                validate(sub)


def evaluate(condition: dict[str, Any] | None, state: GameState) -> bool:
    if not condition:
        return True
    for key, arg in condition.items():
        predicate = PREDICATES.get(key)
        if predicate is None:
            raise ValueError(f"Unknown condition key: {key}")
        if not predicate(state, arg):
            return False
    return True
