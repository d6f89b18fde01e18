"""
Scenario event records.
Events are content: loaded from events.json, evaluated by EventSystem each turn.
"""

from dataclasses import dataclass, field
from typing import Any

from sanguo.engine import conditions


# ===== Trigger Types =====

TRIGGER_TURN = "turn"
TRIGGER_TURN_RANGE = "turn_range"
TRIGGER_CONDITION = "condition"

TRIGGER_TYPES = (TRIGGER_TURN, TRIGGER_TURN_RANGE, TRIGGER_CONDITION)


# ===== Effect Types =====

ENEMY_INTEL_UPDATE = "enemy_intel_update"
URGENCY_INCREASE = "urgency_increase"
DIPLOMACY_OPPORTUNITY = "diplomacy_opportunity"
ENEMY_DEBUFF = "enemy_debuff"
ENEMY_FORMATION = "enemy_formation"
UNLOCK_TACTIC = "unlock_tactic"
WEATHER_CHANGE = "weather_change"
TACTIC_BONUS = "tactic_bonus"
SPECIAL_TACTIC_AVAILABLE = "special_tactic_available"
PURSUIT_OPPORTUNITY = "pursuit_opportunity"
TROOP_LOSS = "troop_loss"
FOOD_SUPPORT = "food_support"
RELATION_DELTA = "relation_delta"
GENERAL_CONDITION = "general_condition"

EFFECT_TYPES = (
    ENEMY_INTEL_UPDATE,
    URGENCY_INCREASE,
    DIPLOMACY_OPPORTUNITY,
    ENEMY_DEBUFF,
    ENEMY_FORMATION,
    UNLOCK_TACTIC,
    WEATHER_CHANGE,
    TACTIC_BONUS,
    SPECIAL_TACTIC_AVAILABLE,
    PURSUIT_OPPORTUNITY,
    TROOP_LOSS,
    FOOD_SUPPORT,
    RELATION_DELTA,
    GENERAL_CONDITION,
)

# First match wins: (effect types, impact label)
IMPACT_CATEGORIES = [
    ((WEATHER_CHANGE, ENEMY_FORMATION), "strategic shift"),
    ((DIPLOMACY_OPPORTUNITY, RELATION_DELTA), "diplomatic opening"),
    ((ENEMY_DEBUFF, TROOP_LOSS), "enemy weakened"),
    ((URGENCY_INCREASE, ENEMY_INTEL_UPDATE), "threat rising"),
    ((SPECIAL_TACTIC_AVAILABLE, UNLOCK_TACTIC, TACTIC_BONUS), "tactical opening"),
    ((PURSUIT_OPPORTUNITY,), "pursuit opening"),
    ((FOOD_SUPPORT,), "supply support"),
]
DEFAULT_IMPACT = "intelligence update"


@dataclass
class EventTrigger:
    type: str
    turn: int | None = None
    min_turn: int | None = None
    max_turn: int | None = None
    probability: float = 1.0
    condition: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.type == TRIGGER_TURN:
            data["turn"] = self.turn
        elif self.type == TRIGGER_TURN_RANGE:
            data["min"] = self.min_turn
            data["max"] = self.max_turn
            data["probability"] = self.probability
        if self.condition:
            data["condition"] = dict(self.condition)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventTrigger":
        trigger_type = data["type"]
        if trigger_type not in TRIGGER_TYPES:
            raise ValueError(f"Unknown trigger type: {trigger_type}")
        condition = data.get("condition")
        conditions.validate(condition)
        if trigger_type == TRIGGER_TURN:
            return cls(type=trigger_type, turn=int(data["turn"]), condition=condition)
        if trigger_type == TRIGGER_TURN_RANGE:
            return cls(
                type=trigger_type,
                min_turn=int(data["min"]),
                max_turn=int(data["max"]),
                probability=float(data["probability"]),
                condition=condition,
            )
        if not condition:
            raise ValueError("condition trigger requires a condition")
        return cls(type=trigger_type, condition=condition)


@dataclass
class EventEffect:
    """One effect; params depend on type (see EventSystem._apply_effect)."""
    type: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **self.params}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventEffect":
        effect_type = data["type"]
        if effect_type not in EFFECT_TYPES:
            raise ValueError(f"Unknown effect type: {effect_type}")
        return cls(type=effect_type, params={k: v for k, v in data.items() if k != "type"})


@dataclass
class ScenarioEvent:
    id: str
    trigger: EventTrigger
    description: str
    effects: list[EventEffect] = field(default_factory=list)
    advisor_knowledge: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "trigger": self.trigger.to_dict(),
            "description": self.description,
            "effects": [e.to_dict() for e in self.effects],
            "advisor_knowledge": self.advisor_knowledge,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScenarioEvent":
        return cls(
            id=str(data["id"]),
            trigger=EventTrigger.from_dict(data["trigger"]),
            description=str(data.get("description") or ""),
            effects=[EventEffect.from_dict(e) for e in data.get("effects") or []],
            advisor_knowledge=data.get("advisor_knowledge"),
        )


@dataclass
class EventResult:
    event_id: str
    description: str
    impact: str
    applied_effects: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "description": self.description,
            "impact": self.impact,
            "applied_effects": list(self.applied_effects),
        }


def categorize_impact(effects: list[EventEffect]) -> str:
    types = {e.type for e in effects}
    for group, label in IMPACT_CATEGORIES:
        if types.intersection(group):
            return label
    return DEFAULT_IMPACT
