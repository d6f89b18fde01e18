"""
Typed flag keys.

GameState.flags is a plain str -> JSON value map so scenario content can add its own keys.
Engine subsystems address the keys they own through these enums; GameStateManager
accepts either an enum member or a plain string.
"""

from enum import Enum


class ScenarioFlag(str, Enum):
    """Campaign milestones read by the victory judge, events and AI rules."""
    DECISIVE_VICTORY = "decisive_victory"
    ALLIANCE_STARTED = "alliance_started"
    ALLIANCE_STRONG = "alliance_strong"


class EventFlag(str, Enum):
    """Keys written by event effects."""
    URGENCY = "urgency"
    DIPLOMACY_BONUS = "diplomacy_bonus"
    ENEMY_FORMATION = "enemy_formation"
    WEATHER = "weather"
    PURSUIT_TARGET = "pursuit_target"
    PURSUIT_LOCATION = "pursuit_location"


class DifficultyFlag(str, Enum):
    """Thresholds recorded once by the difficulty modifier."""
    DIFFICULTY = "difficulty"
    COLLAPSE_RATIO = "collapse_ratio"
    COLLAPSE_MORALE_PENALTY = "collapse_morale_penalty"
    ALLY_FOOD_SUPPORT = "ally_food_support"
    ALLY_SUPPORT_FLOOR = "ally_support_floor"


class IntelFlag(str, Enum):
    """Keys written by scouting."""
    RELIABILITY = "intel_reliability"


# Prefixed families: the suffix is content-defined (tactic id, location id, topic...)
KNOWLEDGE_PREFIX = "knowledge_"
INTEL_PREFIX = "intel_"
DEBUFF_PREFIX = "debuff_"
TACTIC_BONUS_PREFIX = "tactic_bonus_"
TACTIC_POWER_PREFIX = "tactic_power_"
SPECIAL_TACTIC_PREFIX = "special_tactic_"
SCOUTED_PREFIX = "scouted_"
THREATEN_PREFIX = "threaten_"
AMBUSH_PREFIX = "ambush_"

# Flags every faction view may see
GLOBAL_FLAGS = (
    ScenarioFlag.DECISIVE_VICTORY.value,
    EventFlag.ENEMY_FORMATION.value,
    EventFlag.WEATHER.value,
)


def flag_key(key: "str | Enum") -> str:
    """Normalize an enum member or raw string to the stored key."""
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)
