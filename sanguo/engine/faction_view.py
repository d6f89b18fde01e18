"""
Faction-eye view of the game and the contract for external faction turns.

The view is what an external decision source gets to see: exact numbers for the faction's own
cities and generals, categorical intel for everyone else. It is built from copies, so a client
can never mutate the live state.

External responses are validated with pydantic before they turn into actions:

    {"actions": [{"type": "march", "params": {"from": "nanjun", "to": "gangha",
                  "generals": "xiahouyuan,caoren", "troops_scale": "small"}}],
     "message": "Cao Cao strikes at Jiangxia"}
"""

from typing import Any

from pydantic import BaseModel, Field

from sanguo.engine.actions import ACTION_CATEGORIES, BATTLE_RESULT, Action
from sanguo.engine.flags import GLOBAL_FLAGS
from sanguo.engine.state import GameState, GeneralCondition

# Relation events shown per relation
RECENT_RELATION_EVENTS = 3
# Enemy generals named per faction
KNOWN_GENERALS_LIMIT = 5

PASS = "pass"


def categorize_troops(total: int) -> str:
    if total >= 8000:
        return "plentiful"
    if total >= 4000:
        return "sufficient"
    if total >= 2000:
        return "short"
    return "critical"


def categorize_food(food: int) -> str:
    if food >= 10000:
        return "plentiful"
    if food >= 5000:
        return "sufficient"
    if food >= 2000:
        return "short"
    return "critical"


def _faction_troops(state: GameState, faction_id: str) -> int:
    return sum(c.troops.total for c in state.cities if c.owner == faction_id)


def estimate_relative_troops(state: GameState, self_id: str, enemy_id: str) -> str:
    """How the enemy's city troops compare to our own."""
    own = _faction_troops(state, self_id)
    ratio = _faction_troops(state, enemy_id) / own if own > 0 else 999
    if ratio >= 3:
        return "overwhelming"
    if ratio >= 1.5:
        return "superior"
    if ratio >= 0.7:
        return "comparable"
    return "inferior"


def _relevant_flags(flags: dict[str, Any], faction_id: str) -> dict[str, Any]:
    prefix = f"{faction_id}_"
    return {
        key: value for key, value in flags.items()
        if key.startswith(prefix) or key in GLOBAL_FLAGS
    }


def build_faction_state_view(
    state: GameState,
    faction_id: str,
    strategic_goals: list[str] | None = None,
) -> dict[str, Any]:
    own_cities = [
        {**c.to_dict(), "total_troops": c.troops.total}
        for c in state.cities if c.owner == faction_id
    ]
    own_generals = [g.to_dict() for g in state.generals if g.faction == faction_id]

    enemy_intel = []
    for faction in state.factions:
        if faction.id == faction_id:
            continue
        enemy_intel.append({
            "faction_id": faction.id,
            "estimated_troops": estimate_relative_troops(state, faction_id, faction.id),
            "known_cities": [
                {
                    "id": c.id,
                    "name": c.name,
                    "troops_level": categorize_troops(c.troops.total),
                    "food_level": categorize_food(c.food),
                }
                for c in state.cities if c.owner == faction.id
            ],
            "known_generals": [
                {"name": g.name, "location": g.location}
                for g in state.generals
                if g.faction == faction.id and g.condition == GeneralCondition.FIT
            ][:KNOWN_GENERALS_LIMIT],
        })

    relations = [
        {
            "target": r.other(faction_id),
            "relation": r.relation,
            "is_alliance": r.is_alliance,
            "recent_events": list(r.events[-RECENT_RELATION_EVENTS:]),
        }
        for r in state.diplomacy.relations
        if faction_id in (r.faction_a, r.faction_b)
    ]

    return {
        "turn": state.turn,
        "max_turns": state.max_turns,
        "phase": state.phase.value,
        "season": state.season,
        "own_cities": own_cities,
        "own_generals": own_generals,
        "enemy_intel": enemy_intel,
        "diplomacy": {"relations": relations},
        "relevant_flags": _relevant_flags(state.flags, faction_id),
        "strategic_goals": list(strategic_goals or []),
    }


# ===== External turn contract =====

class ActionSpec(BaseModel):
    type: str
    params: dict[str, Any] = Field(default_factory=dict)
    confidence: int = Field(default=50, ge=0, le=100)
    description: str = ""


class FactionTurnResponse(BaseModel):
    actions: list[ActionSpec] = Field(default_factory=list, max_length=3)
    message: str | None = None


def _payload(spec: ActionSpec) -> dict[str, Any]:
    payload = dict(spec.params)
    generals = payload.get("generals")
    if isinstance(generals, str):
        payload["generals"] = [g.strip() for g in generals.split(",") if g.strip()]
    if "amount" in payload:
        payload["amount"] = int(payload["amount"])
    return payload


def response_to_orders(
    response: "FactionTurnResponse | dict[str, Any]",
    state: GameState,
    faction_id: str,
) -> tuple[list[Action], list[tuple[str, str]], list[str]]:
    """
    Validate a client response and split it into (actions, deployments, messages).
    Assigning a general to a battlefield becomes a deployment; "pass" and unknown
    action types are dropped. Raises pydantic.ValidationError on a malformed response.
    """
    if not isinstance(response, FactionTurnResponse):
        response = FactionTurnResponse.model_validate(response)

    battlefields = {b.id for b in state.battlefields}
    actions: list[Action] = []
    deployments: list[tuple[str, str]] = []
    for spec in response.actions:
        if spec.type == PASS or spec.type == BATTLE_RESULT or spec.type not in ACTION_CATEGORIES:
            continue
        destination = spec.params.get("destination")
        if spec.type == "assign" and destination in battlefields and spec.params.get("general"):
            deployments.append((str(spec.params["general"]), destination))
            continue
        actions.append(Action(type=spec.type, faction=faction_id, payload=_payload(spec)))

    messages = [response.message] if response.message else []
    return actions, deployments, messages
