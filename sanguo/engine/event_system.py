"""
Catalog-driven scenario events.
check_triggers never mutates state, but turn_range rules draw from the rng while their
window is open; process_turn applies effects through the manager.
"""

import json
import logging
from typing import Any

from sanguo.engine import conditions
from sanguo.engine.events import (
    DIPLOMACY_OPPORTUNITY,
    ENEMY_DEBUFF,
    ENEMY_FORMATION,
    ENEMY_INTEL_UPDATE,
    FOOD_SUPPORT,
    GENERAL_CONDITION,
    PURSUIT_OPPORTUNITY,
    RELATION_DELTA,
    SPECIAL_TACTIC_AVAILABLE,
    TACTIC_BONUS,
    TRIGGER_CONDITION,
    TRIGGER_TURN,
    TRIGGER_TURN_RANGE,
    TROOP_LOSS,
    UNLOCK_TACTIC,
    URGENCY_INCREASE,
    WEATHER_CHANGE,
    EventEffect,
    EventResult,
    ScenarioEvent,
    categorize_impact,
)
from sanguo.engine.flags import (
    DEBUFF_PREFIX,
    INTEL_PREFIX,
    KNOWLEDGE_PREFIX,
    SPECIAL_TACTIC_PREFIX,
    TACTIC_BONUS_PREFIX,
    TACTIC_POWER_PREFIX,
    DifficultyFlag,
    EventFlag,
)
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.rng import Rng
from sanguo.engine.state import GameState, GeneralCondition, Troops

logger = logging.getLogger(__name__)


class EventSystem:
    def __init__(self, events: list[ScenarioEvent], rng: Rng):
        self.events = list(events)
        self.rng = rng

    def process_turn(self, manager: GameStateManager) -> list[EventResult]:
        """
        Fire every event whose trigger holds now.
        Rules are evaluated in catalog order against the live state, so a flag set by an
        earlier rule is visible to later rules in the same call.
        """
        results = []
        for event in self.events:
            if manager.is_event_completed(event.id):
                continue
            if not self._is_triggered(event, manager.state):
                continue
            result = self.apply_effects(event, manager)
            manager.add_completed_event(event.id)
            logger.debug("Turn %s: event %s fired", manager.state.turn, event.id)
            results.append(result)
        return results

    def check_triggers(self, state: GameState) -> list[ScenarioEvent]:
        """
        Events (catalog order) whose condition holds now and which have not fired yet.
        Leaves state untouched, but consumes one rng value per open turn_range window,
        so a later process_turn on the same rng sees a different roll.
        """
        return [
            event for event in self.events
            if event.id not in state.completed_events and self._is_triggered(event, state)
        ]

    def apply_effects(self, event: ScenarioEvent, manager: GameStateManager) -> EventResult:
        applied = [self._apply_effect(effect, manager) for effect in event.effects]
        if event.advisor_knowledge:
            manager.set_flag(f"{KNOWLEDGE_PREFIX}{event.advisor_knowledge}", True)
        return EventResult(
            event_id=event.id,
            description=event.description,
            impact=categorize_impact(event.effects),
            applied_effects=applied,
        )

    def _is_triggered(self, event: ScenarioEvent, state: GameState) -> bool:
        trigger = event.trigger
        if trigger.type == TRIGGER_TURN:
            return state.turn == trigger.turn and conditions.evaluate(trigger.condition, state)
        if trigger.type == TRIGGER_TURN_RANGE:
            if not (trigger.min_turn <= state.turn <= trigger.max_turn):
                return False
            if not conditions.evaluate(trigger.condition, state):
                return False
            # Draw only inside the window so the rng stream does not depend on catalog size
            return self.rng() < trigger.probability
        if trigger.type == TRIGGER_CONDITION:
            return conditions.evaluate(trigger.condition, state)
        return False

    def _apply_effect(self, effect: EventEffect, manager: GameStateManager) -> str:
        p: dict[str, Any] = effect.params

        if effect.type == ENEMY_INTEL_UPDATE:
            for key, value in (p.get("data") or {}).items():
                manager.set_flag(f"{INTEL_PREFIX}{key}", value)
            return f"Enemy intel updated: {json.dumps(p.get('data') or {}, ensure_ascii=False, sort_keys=True)}"

        if effect.type == URGENCY_INCREASE:
            manager.set_flag(EventFlag.URGENCY, (manager.get_flag(EventFlag.URGENCY) or 0) + 1)
            return "Urgency rises"

        if effect.type == DIPLOMACY_OPPORTUNITY:
            bonus = int(p.get("bonus", 0))
            current = manager.get_flag(EventFlag.DIPLOMACY_BONUS) or 0
            manager.set_flag(EventFlag.DIPLOMACY_BONUS, current + bonus)
            return f"Diplomatic opening with {p.get('target')} (bonus +{bonus})"

        if effect.type == ENEMY_DEBUFF:
            target, stat, amount = p["target"], p.get("stat", "morale"), int(p["amount"])
            if stat == "morale":
                for city in manager.get_cities_by_faction(target):
                    manager.update_city(city.id, morale=max(0, city.morale + amount))
            manager.set_flag(f"{DEBUFF_PREFIX}{target}_{stat}", amount)
            return f"{target} {stat} {amount:+d}"

        if effect.type == ENEMY_FORMATION:
            manager.set_flag(EventFlag.ENEMY_FORMATION, p["formation"])
            return f"Enemy formation changed: {p['formation']}"

        if effect.type == UNLOCK_TACTIC:
            multiplier = p.get("bonus_multiplier", 1.0)
            manager.set_flag(f"{TACTIC_BONUS_PREFIX}{p['tactic']}", multiplier)
            return f"Tactic unlocked: {p['tactic']} (x{multiplier})"

        if effect.type == WEATHER_CHANGE:
            manager.set_flag(EventFlag.WEATHER, p["weather"])
            return f"Weather changed: {p['weather']}"

        if effect.type == TACTIC_BONUS:
            tactic, bonus = p["tactic"], p.get("bonus", 0)
            current = manager.get_flag(f"{TACTIC_BONUS_PREFIX}{tactic}") or 0
            manager.set_flag(f"{TACTIC_POWER_PREFIX}{tactic}", current + bonus)
            return f"{tactic} effect +{bonus}%"

        if effect.type == SPECIAL_TACTIC_AVAILABLE:
            manager.set_flag(f"{SPECIAL_TACTIC_PREFIX}{p['tactic']}", True)
            return f"Special tactic available: {p['tactic']}"

        if effect.type == PURSUIT_OPPORTUNITY:
            manager.set_flag(EventFlag.PURSUIT_TARGET, p["target"])
            manager.set_flag(EventFlag.PURSUIT_LOCATION, p["location"])
            return f"Pursuit opening: {p['target']} ({p['location']})"

        if effect.type == TROOP_LOSS:
            return self._apply_troop_loss(p, manager)

        if effect.type == FOOD_SUPPORT:
            amount = int(manager.get_flag(DifficultyFlag.ALLY_FOOD_SUPPORT) or 0)
            if amount <= 0:
                return "No food support"
            city = manager.get_city(p["city"])
            if city is not None and city.owner == p["target"]:
                manager.update_city(city.id, food=city.food + amount)
            return f"{amount} food sent to {p['target']}"

        if effect.type == RELATION_DELTA:
            if manager.get_relation(p["faction_a"], p["faction_b"]) is None:
                return "Relation unchanged"
            value = manager.add_relation_value(p["faction_a"], p["faction_b"], int(p["delta"]))
            return f"Relation {p['faction_a']}-{p['faction_b']} now {value}"

        if effect.type == GENERAL_CONDITION:
            general = manager.get_general(p["general"])
            if general is None or general.is_lost:
                return f"{p['general']} unaffected"
            manager.update_general(general.id, condition=GeneralCondition(p["condition"]))
            return f"{general.name} is now {p['condition']}"

        return "Unknown effect"

    def _apply_troop_loss(self, p: dict[str, Any], manager: GameStateManager) -> str:
        city = manager.get_city(p["city"])
        ratio = float(p["ratio"])
        if city is not None and city.owner == p["target"]:
            # Difficulty thresholds override the content values
            collapse = manager.get_flag(DifficultyFlag.COLLAPSE_RATIO)
            penalty = manager.get_flag(DifficultyFlag.COLLAPSE_MORALE_PENALTY)
            collapse = ratio if collapse is None else float(collapse)
            penalty = int(p.get("morale_penalty", 0)) if penalty is None else int(penalty)
            if city.troops.total > 0:
                keep = 1 - collapse
                manager.update_city(
                    city.id,
                    troops=Troops(
                        infantry=int(city.troops.infantry * keep),
                        cavalry=int(city.troops.cavalry * keep),
                        navy=int(city.troops.navy * keep),
                    ),
                    morale=max(0, city.morale + penalty),
                )
        name = city.name if city is not None else p["city"]
        return f"{p['target']} lost {round(ratio * 100)}% of the troops in {name}"
