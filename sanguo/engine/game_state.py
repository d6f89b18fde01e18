"""
GameStateManager: the single owner and writer of one GameState.

Reads go through `state` (a borrowed reference; callers must not mutate it) or
`snapshot()` (an independent deep copy). Every write goes through a mutator below.
"""

import json
import logging
from enum import Enum
from typing import Any

from sanguo.engine import ACTIONS_PER_TURN
from sanguo.engine.errors import ActionsExhaustedError, NotFoundError, SnapshotError
from sanguo.engine.flags import flag_key
from sanguo.engine.state import (
    ActionLogEntry,
    Battlefield,
    BattleState,
    City,
    DiplomacyRelation,
    Faction,
    GameResult,
    GameState,
    General,
    Phase,
    relation_level,
)

logger = logging.getLogger(__name__)

TROOP_TYPES = ("infantry", "cavalry", "navy")


def _patch(target: Any, updates: dict[str, Any]) -> None:
    for key, value in updates.items():
        if not hasattr(target, key):
            raise AttributeError(f"{type(target).__name__} has no field '{key}'")
        setattr(target, key, value)


class GameStateManager:
    def __init__(self, state: GameState):
        self._state = state.copy()

    # ===== Reads =====

    @property
    def state(self) -> GameState:
        """Live state. Treat as read-only; mutate through the manager."""
        return self._state

    def snapshot(self) -> GameState:
        """Independent deep copy of the current state."""
        return self._state.copy()

    def get_city(self, city_id: str) -> City | None:
        return next((c for c in self._state.cities if c.id == city_id), None)

    def get_battlefield(self, battlefield_id: str) -> Battlefield | None:
        return next((b for b in self._state.battlefields if b.id == battlefield_id), None)

    def get_general(self, general_id: str) -> General | None:
        return next((g for g in self._state.generals if g.id == general_id), None)

    def get_general_by_name(self, name: str) -> General | None:
        return next((g for g in self._state.generals if g.name == name), None)

    def get_faction(self, faction_id: str) -> Faction | None:
        return next((f for f in self._state.factions if f.id == faction_id), None)

    def get_relation(self, a: str, b: str) -> DiplomacyRelation | None:
        return next((r for r in self._state.diplomacy.relations if r.involves(a, b)), None)

    def get_cities_by_faction(self, faction_id: str) -> list[City]:
        return [c for c in self._state.cities if c.owner == faction_id]

    def get_generals_by_faction(self, faction_id: str) -> list[General]:
        return [g for g in self._state.generals if g.faction == faction_id]

    def get_generals_by_location(self, location: str) -> list[General]:
        return [g for g in self._state.generals if g.location == location]

    def get_total_troops(self, faction_id: str) -> int:
        return sum(c.troops.total for c in self.get_cities_by_faction(faction_id))

    def get_player_faction(self) -> Faction:
        faction = next((f for f in self._state.factions if f.is_player), None)
        if faction is None:
            raise NotFoundError("player faction", "*")
        return faction

    def is_ally(self, faction_id: str) -> bool:
        """True if faction_id is allied with the player faction."""
        relation = self.get_relation(self.get_player_faction().id, faction_id)
        return bool(relation and relation.is_alliance)

    def get_flag(self, key: "str | Enum", default: Any = None) -> Any:
        return self._state.flags.get(flag_key(key), default)

    def is_event_completed(self, event_id: str) -> bool:
        return event_id in self._state.completed_events

    # ===== Writes =====

    def update_city(self, city_id: str, **updates: Any) -> None:
        city = self.get_city(city_id)
        if city is None:
            raise NotFoundError("city", city_id)
        _patch(city, updates)

    def update_general(self, general_id: str, **updates: Any) -> None:
        general = self.get_general(general_id)
        if general is None:
            raise NotFoundError("general", general_id)
        _patch(general, updates)

    def update_relation(self, a: str, b: str, **updates: Any) -> None:
        relation = self.get_relation(a, b)
        if relation is None:
            raise NotFoundError("relation", f"{a}-{b}")
        if "relation" in updates:
            raise AttributeError("relation label is derived from value")
        if "value" in updates:
            updates["value"] = max(0, min(100, int(updates["value"])))
        _patch(relation, updates)
        relation.relation = relation_level(relation.value)

    def add_relation_value(self, a: str, b: str, delta: int) -> int:
        """Shift a relation by delta, clamped to [0, 100]. Returns the new value."""
        relation = self.get_relation(a, b)
        if relation is None:
            raise NotFoundError("relation", f"{a}-{b}")
        relation.value = max(0, min(100, relation.value + delta))
        relation.relation = relation_level(relation.value)
        return relation.value

    def record_relation_event(self, a: str, b: str, line: str) -> None:
        relation = self.get_relation(a, b)
        if relation is None:
            raise NotFoundError("relation", f"{a}-{b}")
        relation.record(line)

    def add_city_troops(self, city_id: str, troop_type: str, amount: int) -> None:
        """Add (or with a negative amount, remove) troops of one type, floored at zero."""
        if troop_type not in TROOP_TYPES:
            raise ValueError(f"Unknown troop type: {troop_type}")
        city = self.get_city(city_id)
        if city is None:
            raise NotFoundError("city", city_id)
        setattr(city.troops, troop_type, max(0, getattr(city.troops, troop_type) + amount))

    def use_action(self) -> int:
        """Spend one action. Returns the number remaining."""
        if self._state.actions_remaining <= 0:
            raise ActionsExhaustedError("No actions left this turn.")
        self._state.actions_remaining -= 1
        return self._state.actions_remaining

    def reset_actions(self) -> None:
        self._state.actions_remaining = ACTIONS_PER_TURN

    def advance_turn(self) -> None:
        self._state.turn += 1

    def set_phase(self, phase: Phase) -> None:
        self._state.phase = Phase(phase)

    def set_season(self, season: str) -> None:
        self._state.season = season

    def set_battle(self, battle: BattleState | None) -> None:
        self._state.active_battle = battle

    def add_completed_event(self, event_id: str) -> None:
        if event_id not in self._state.completed_events:
            self._state.completed_events.append(event_id)

    def set_flag(self, key: "str | Enum", value: Any) -> None:
        self._state.flags[flag_key(key)] = value

    def add_action_log(self, entry: ActionLogEntry) -> None:
        self._state.action_log.append(entry)

    def set_game_over(self, result: GameResult) -> None:
        self._state.game_over = True
        self._state.result = result
        logger.info("Game %s over: grade %s", self._state.game_id, result.grade.value)

    # ===== Serialization =====

    def serialize(self) -> str:
        return self._state.to_json(indent=None)

    @classmethod
    def deserialize(cls, data: str) -> "GameStateManager":
        """Build a manager from a serialized snapshot. Raises SnapshotError on any corruption."""
        try:
            state = GameState.from_json(data)
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Corrupt game snapshot: {e!r}") from e
        return cls(state)

    def clone(self) -> "GameStateManager":
        return GameStateManager(self._state)
