"""
Difficulty presets.
Applied once to a freshly built scenario state, before the manager takes it over.
"""

from dataclasses import dataclass

from sanguo.engine.flags import DifficultyFlag
from sanguo.engine.state import GameState


@dataclass(frozen=True)
class DifficultyParams:
    collapse_ratio: float  # share of the contested city's troops lost after the decisive battle
    collapse_morale_penalty: int
    ally_food_support: int  # food the ally ships when a food_support event fires (0 = none)
    troop_multiplier: float  # contested city's starting troops
    food_multiplier: float  # player's starting food
    ally_support_floor: int  # ally stops gifting food below this much of its own


DIFFICULTY_PRESETS: dict[str, DifficultyParams] = {
    "easy": DifficultyParams(0.7, -40, 5000, 0.7, 1.5, 5000),
    "medium": DifficultyParams(0.65, -35, 4000, 0.8, 1.35, 5000),
    "normal": DifficultyParams(0.6, -30, 3000, 0.85, 1.25, 5000),
    "hard": DifficultyParams(0.5, -25, 0, 1.0, 1.0, 3000),
    "expert": DifficultyParams(0.3, -15, 0, 1.2, 1.0, 5000),
}

DIFFICULTIES = tuple(DIFFICULTY_PRESETS)


def apply_difficulty_modifier(state: GameState, difficulty: str) -> None:
    """Scale the contested city's troops and the player's food, and record thresholds as flags."""
    params = DIFFICULTY_PRESETS.get(difficulty)
    if params is None:
        raise ValueError(f"Unknown difficulty: {difficulty}. Choose from: {', '.join(DIFFICULTIES)}")

    criteria = state.victory_criteria
    contested_id = criteria.get("contested_city") or criteria.get("primary_objective")
    contested = next((c for c in state.cities if c.id == contested_id), None)
    if contested is not None:
        contested.troops.infantry = int(contested.troops.infantry * params.troop_multiplier)
        contested.troops.cavalry = int(contested.troops.cavalry * params.troop_multiplier)
        contested.troops.navy = int(contested.troops.navy * params.troop_multiplier)

    player_id = next((f.id for f in state.factions if f.is_player), None)
    for city in state.cities:
        if city.owner is not None and city.owner == player_id:
            city.food = int(city.food * params.food_multiplier)

    state.flags[DifficultyFlag.DIFFICULTY.value] = difficulty
    state.flags[DifficultyFlag.COLLAPSE_RATIO.value] = params.collapse_ratio
    state.flags[DifficultyFlag.COLLAPSE_MORALE_PENALTY.value] = params.collapse_morale_penalty
    state.flags[DifficultyFlag.ALLY_FOOD_SUPPORT.value] = params.ally_food_support
    state.flags[DifficultyFlag.ALLY_SUPPORT_FLOOR.value] = params.ally_support_floor
