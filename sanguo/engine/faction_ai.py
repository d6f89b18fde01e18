"""
Faction AI: turn plans for every non-player faction.

A plan comes from a FactionStrategy (rule-based, driven by the scenario's ai.json) or from an
optional external FactionTurnClient. Plans are applied in a fixed order:
flags, maintenance (training and food upkeep), battlefield deployments, then actions through
ActionExecutor.execute_for so each AI decision lands in the action log with its faction tag.

ai.json shape, per faction id:

    {
      "halt_flag": "decisive_victory",
      "maintenance": {
        "training_bonus": [{"condition": {"phase": "preparation"}, "value": 3}, {"value": 2}],
        "food_bonus": [{"value": 300}]
      },
      "milestones": [
        {"turn": 3, "flag": "cao_m_conscript1",
         "actions": [{"type": "conscript", "payload": {"city": "nanjun", "scale": "large"}}],
         "messages": ["..."]}
      ],
      "rules": [
        {"priority": 70, "condition": {...}, "unless_planned": "conscript",
         "actions": [...], "flags_to_set": {"cao_last_attack_turn": "$turn"}}
      ]
    }
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import ValidationError

from sanguo.engine import conditions
from sanguo.engine.actions import Action
from sanguo.engine.executor import ActionExecutor
from sanguo.engine.faction_view import build_faction_state_view, response_to_orders
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.rng import Rng
from sanguo.engine.state import (
    BattleState,
    GameState,
    GeneralCondition,
    Phase,
    food_consumption,
    food_production,
)

logger = logging.getLogger(__name__)

# Placeholder in flags_to_set values, replaced by the current turn
TURN_PLACEHOLDER = "$turn"


@dataclass
class Deployment:
    general_id: str
    destination: str


@dataclass
class AITurnPlan:
    actions: list[Action] = field(default_factory=list)
    deployments: list[Deployment] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    training_bonus: int = 0
    food_bonus: int = 0
    flags_to_set: dict[str, Any] = field(default_factory=dict)


@dataclass
class AIContext:
    turn: int
    phase: Phase
    is_allied_with_player: bool
    player_total_troops: int
    flags: dict[str, Any]


@dataclass
class AITurnOutcome:
    changes: list[str] = field(default_factory=list)
    battle: BattleState | None = None


class FactionStrategy(Protocol):
    faction_id: str

    def plan_turn(self, state: GameState, ctx: AIContext, rng: Rng) -> AITurnPlan:
        ...


class FactionTurnClient(Protocol):
    """External decision source. Receives a filtered faction view, never the live state."""

    def request_faction_turn(self, faction_id: str, view: dict[str, Any]) -> Any:
        ...


# ===== RuleStrategy =====

def _first_value(entries: list[dict[str, Any]], state: GameState) -> int:
    """First entry whose condition holds wins; no match means 0."""
    for entry in entries:
        if conditions.evaluate(entry.get("condition"), state):
            return int(entry["value"])
    return 0


def _fit(state: GameState, general_id: str, faction_id: str) -> bool:
    return any(
        g.id == general_id and g.faction == faction_id and g.condition == GeneralCondition.FIT
        for g in state.generals
    )


class RuleStrategy:
    """
    Declarative strategy built from one faction's ai.json block.

    General selectors (used in action payloads as "generals" and in deployments as "general"):
        {"generals": ["caimao", "zhangyun"]}     fit generals from the list
        {"reinforcement": {"destination": "chibi"}}
                                                 first fit general not already there
        {"at": "nanjun", "limit": 2}             fit generals at a city
    The last two never pick the faction leader. A rule whose selector comes up empty is skipped
    entirely (no actions, flags or messages).
    """

    def __init__(self, faction_id: str, config: dict[str, Any]):
        self.faction_id = faction_id
        self.halt_flag: str | None = config.get("halt_flag")
        maintenance = config.get("maintenance") or {}
        self.training_bonus: list[dict[str, Any]] = list(maintenance.get("training_bonus") or [])
        self.food_bonus: list[dict[str, Any]] = list(maintenance.get("food_bonus") or [])
        self.milestones: list[dict[str, Any]] = sorted(
            config.get("milestones") or [], key=lambda m: int(m["turn"])
        )
        self.rules: list[dict[str, Any]] = sorted(
            config.get("rules") or [], key=lambda r: -int(r.get("priority", 0))
        )
        for block in self.milestones + self.rules:
            conditions.validate(block.get("condition"))
            conditions.validate(block.get("when"))

    def plan_turn(self, state: GameState, ctx: AIContext, rng: Rng) -> AITurnPlan:
        plan = AITurnPlan(
            training_bonus=_first_value(self.training_bonus, state),
            food_bonus=_first_value(self.food_bonus, state),
        )
        # Offensive planning stops once the halt flag is set; upkeep continues
        if self.halt_flag and state.flags.get(self.halt_flag):
            return plan

        for milestone in self.milestones:
            if ctx.turn < int(milestone["turn"]) or state.flags.get(milestone["flag"]):
                continue
            if not conditions.evaluate(milestone.get("condition"), state):
                continue
            if conditions.evaluate(milestone.get("when"), state):
                self._apply_block(milestone, state, ctx, plan)
            plan.flags_to_set[milestone["flag"]] = True

        for rule in self.rules:
            if not conditions.evaluate(rule.get("condition"), state):
                continue
            unless = rule.get("unless_planned")
            if unless and any(a.type == unless for a in plan.actions):
                continue
            marker = rule.get("unless_message")
            if marker and any(marker in m for m in plan.messages):
                continue
            self._apply_block(rule, state, ctx, plan)
        return plan

    def _apply_block(
        self,
        block: dict[str, Any],
        state: GameState,
        ctx: AIContext,
        plan: AITurnPlan,
    ) -> bool:
        actions: list[Action] = []
        deployments: list[Deployment] = []
        named: list[str] = []

        for spec in block.get("actions") or []:
            payload = dict(spec.get("payload") or {})
            selector = payload.get("generals")
            if isinstance(selector, dict):
                picked = self._select(selector, state, payload.get("from"))
                if not picked:
                    return False
                payload["generals"] = picked
                named.extend(picked)
            actions.append(Action(type=spec["type"], faction=self.faction_id, payload=payload))

        for spec in block.get("deployments") or []:
            picked = self._select(spec["general"], state, None)
            if not picked:
                return False
            for general_id in picked:
                deployments.append(Deployment(general_id, spec["destination"]))
                named.append(general_id)

        plan.actions.extend(actions)
        plan.deployments.extend(deployments)
        for key, value in (block.get("flags_to_set") or {}).items():
            plan.flags_to_set[key] = ctx.turn if value == TURN_PLACEHOLDER else value
        names = ", ".join(self._name(state, gid) for gid in named)
        for message in block.get("messages") or []:
            plan.messages.append(message.replace("{generals}", names))
        return True

    def _select(self, selector: dict[str, Any], state: GameState, origin: str | None) -> list[str]:
        leader = next((f.leader for f in state.factions if f.id == self.faction_id), None)
        if "generals" in selector:
            return [gid for gid in selector["generals"] if _fit(state, gid, self.faction_id)]
        if "reinforcement" in selector:
            destination = selector["reinforcement"]["destination"]
            for g in state.generals:
                if g.faction == self.faction_id and g.condition == GeneralCondition.FIT \
                        and g.location != destination and g.id != leader:
                    return [g.id]
            return []
        at = selector.get("at") or origin
        limit = int(selector.get("limit", 1))
        found = [
            g.id for g in state.generals
            if g.faction == self.faction_id and g.location == at
            and g.condition == GeneralCondition.FIT and g.id != leader
        ]
        return found[:limit]

    @staticmethod
    def _name(state: GameState, general_id: str) -> str:
        general = next((g for g in state.generals if g.id == general_id), None)
        return general.name if general else general_id


# ===== Engine =====

class FactionAIEngine:
    def __init__(
        self,
        manager: GameStateManager,
        executor: ActionExecutor,
        rng: Rng,
        strategies: dict[str, FactionStrategy],
        client: FactionTurnClient | None = None,
    ):
        self.manager = manager
        self.executor = executor
        self.rng = rng
        self.strategies = dict(strategies)
        self.client = client

    def process_all(self) -> AITurnOutcome:
        outcome = AITurnOutcome()
        for faction in list(self.manager.state.factions):
            if faction.is_player:
                continue
            plan = self._plan_for(faction.id)
            if plan is None:
                continue

            for key, value in plan.flags_to_set.items():
                self.manager.set_flag(key, value)

            self._apply_maintenance(faction.id, plan)

            for deployment in plan.deployments:
                general = self.manager.get_general(deployment.general_id)
                if general is not None and general.faction == faction.id \
                        and general.condition == GeneralCondition.FIT:
                    self.manager.update_general(general.id, location=deployment.destination)

            for action in plan.actions:
                try:
                    result = self.executor.execute_for(action, faction.id)
                except ValueError as e:
                    logger.warning("AI %s: malformed action %s: %s", faction.id, action.type, e)
                    continue
                if result.success:
                    outcome.changes.append(result.description)
                    if result.battle_triggered is not None and outcome.battle is None:
                        outcome.battle = result.battle_triggered

            # march sets the active battle; the caller re-installs outcome.battle
            if self.manager.state.active_battle is not None:
                self.manager.set_battle(None)

            outcome.changes.extend(plan.messages)
        return outcome

    def build_context(self, faction_id: str) -> AIContext:
        state = self.manager.state
        player = next((f for f in state.factions if f.is_player), None)
        allied = False
        troops = 0
        if player is not None:
            relation = self.manager.get_relation(faction_id, player.id)
            allied = bool(relation and relation.is_alliance)
            troops = self.manager.get_total_troops(player.id)
        return AIContext(
            turn=state.turn,
            phase=state.phase,
            is_allied_with_player=allied,
            player_total_troops=troops,
            flags=dict(state.flags),
        )

    def _plan_for(self, faction_id: str) -> AITurnPlan | None:
        strategy = self.strategies.get(faction_id)
        if self.client is not None:
            try:
                view = build_faction_state_view(self.manager.state, faction_id)
                response = self.client.request_faction_turn(faction_id, view)
                actions, deployments, messages = response_to_orders(response, self.manager.state, faction_id)
            except ValidationError as e:
                logger.warning("Faction turn for %s failed validation: %s", faction_id, e)
            except Exception as e:
                logger.warning("Faction turn client failed for %s: %s", faction_id, e)
            else:
                plan = AITurnPlan(
                    actions=actions,
                    deployments=[Deployment(gid, dest) for gid, dest in deployments],
                    messages=messages,
                )
                # Upkeep bonuses stay with the scenario strategy
                if strategy is not None:
                    upkeep = strategy.plan_turn(self.manager.state, self.build_context(faction_id), self.rng)
                    plan.training_bonus = upkeep.training_bonus
                    plan.food_bonus = upkeep.food_bonus
                return plan
        if strategy is None:
            return None
        return strategy.plan_turn(self.manager.state, self.build_context(faction_id), self.rng)

    def _apply_maintenance(self, faction_id: str, plan: AITurnPlan) -> None:
        for city in self.manager.get_cities_by_faction(faction_id):
            if plan.training_bonus > 0:
                self.manager.update_city(city.id, training=min(100, city.training + plan.training_bonus))
            net = food_production(city) + plan.food_bonus - food_consumption(city)
            self.manager.update_city(city.id, food=max(0, city.food + net))
