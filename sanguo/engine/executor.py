"""
Action executor.
Applies domestic, diplomatic and military actions through the GameStateManager.
Player actions spend the turn budget; AI actions (execute_for) do not. Both are logged.

Rule failures (not your city, not adjacent, not enough food) come back as
ActionResult(success=False). Malformed actions (missing parameters, unknown scale) raise
ValueError.
"""

import logging
from dataclasses import replace
from typing import Any

from sanguo.engine.actions import (
    CONSCRIPT_SCALES,
    DEVELOP_FOCUSES,
    TRANSFER_TYPES,
    TROOPS_SCALES,
    Action,
)
from sanguo.engine.combat import BattleEngine, BattleInitParams
from sanguo.engine.flags import (
    AMBUSH_PREFIX,
    SCOUTED_PREFIX,
    THREATEN_PREFIX,
    EventFlag,
    IntelFlag,
    ScenarioFlag,
)
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.rng import Rng
from sanguo.engine.state import (
    GRADE_VALUES,
    ActionLogEntry,
    ActionResult,
    City,
    Grade,
    Loyalty,
    Terrain,
    Troops,
    grade_up,
    relation_level,
)

logger = logging.getLogger(__name__)

CONSCRIPT_TABLE = {
    "small": {"troops": 1000, "food": -500, "morale": -5},
    "medium": {"troops": 2500, "food": -1200, "morale": -10},
    "large": {"troops": 5000, "food": -2500, "morale": -20},
}

DEVELOP_SUCCESS_RATE = {
    (Grade.D, Grade.C): 0.95,
    (Grade.C, Grade.B): 0.80,
    (Grade.B, Grade.A): 0.50,
    (Grade.A, Grade.S): 0.20,
}

TRAINING_INCREASE = 15

TRANSFER_RATIOS = {"small": 0.3, "medium": 0.5, "large": 0.7}
FOOD_TRANSFER_AMOUNTS = {"small": 1000, "medium": 2500, "large": 5000}

MARCH_RATIOS = {"main": 0.7, "medium": 0.5, "small": 0.3}

# Share of an enemy faction's city troops assumed present on a battlefield
ENEMY_FIELD_SHARE = 0.3
# Share of an ally's city troops that joins a battlefield attack
ALLY_FIELD_SHARE = 0.2

ALLIANCE_THRESHOLD = 80
STRONG_ALLIANCE_THRESHOLD = 90

RECRUIT_LOYALTY_MODIFIER = {Loyalty.HIGH: -15, Loyalty.NORMAL: 0, Loyalty.UNSTABLE: 10}
PERSUADE_LOYALTY_MODIFIER = {Loyalty.HIGH: -20, Loyalty.NORMAL: 0, Loyalty.UNSTABLE: 15}
PERSUADE_METHOD_MODIFIER = {"righteousness": 10, "profit": 5}

WINTER_WIND = "northwest wind"


def _param(action: Action, key: str) -> Any:
    value = action.payload.get(key)
    if value is None:
        raise ValueError(f"Action '{action.type}' requires '{key}'")
    return value


def _choice(action: Action, key: str, choices: tuple[str, ...], default: str) -> str:
    value = action.payload.get(key) or default
    if value not in choices:
        raise ValueError(f"Invalid {key} '{value}' for '{action.type}'. Allowed: {', '.join(choices)}")
    return value


class ActionExecutor:
    def __init__(self, manager: GameStateManager, battle_engine: BattleEngine, rng: Rng):
        self.manager = manager
        self.battle_engine = battle_engine
        self.rng = rng

    def execute(self, action: Action) -> ActionResult:
        """Player action: spends one action whether or not it succeeds."""
        state = self.manager.state
        if state.game_over:
            return self._fail("The game is over.")
        if state.active_battle is not None:
            return self._fail("A battle is in progress. Resolve it first.")

        if state.actions_remaining <= 0:
            return self._fail("No actions left this turn.")

        player_id = self.manager.get_player_faction().id
        result = self._dispatch(action, player_id)
        result.remaining_actions = self.manager.use_action()
        self.manager.add_action_log(ActionLogEntry(
            turn=state.turn,
            action=Action(type=action.type, faction=player_id, payload=dict(action.payload)),
            result=result,
        ))
        return result

    def execute_for(self, action: Action, faction_id: str) -> ActionResult:
        """AI action for faction_id: no budget, logged with the faction tag."""
        state = self.manager.state
        if state.active_battle is not None:
            return self._fail("A battle is in progress.")
        result = self._dispatch(action, faction_id)
        self.manager.add_action_log(ActionLogEntry(
            turn=state.turn,
            action=Action(type=action.type, faction=faction_id, payload=dict(action.payload)),
            result=result,
        ))
        logger.debug("AI %s %s -> %s", faction_id, action.type, result.success)
        return result

    def _dispatch(self, action: Action, faction_id: str) -> ActionResult:
        action_type = action.type
        if action_type == "conscript":
            return self._handle_conscript(
                faction_id, _param(action, "city"), _choice(action, "scale", CONSCRIPT_SCALES, "small"),
            )
        elif action_type == "develop":
            return self._handle_develop(
                faction_id, _param(action, "city"), _choice(action, "focus", DEVELOP_FOCUSES, ""),
            )
        elif action_type == "train":
            return self._handle_train(faction_id, _param(action, "city"))
        elif action_type == "recruit":
            return self._handle_recruit(faction_id, _param(action, "city"), _param(action, "target_general"))
        elif action_type == "assign":
            return self._handle_assign(faction_id, _param(action, "general"), _param(action, "destination"))
        elif action_type == "transfer":
            return self._handle_transfer(
                faction_id,
                _param(action, "from"),
                _param(action, "to"),
                _choice(action, "transfer_type", TRANSFER_TYPES, "troops"),
                _choice(action, "scale", CONSCRIPT_SCALES, "small"),
            )
        elif action_type == "send_envoy":
            return self._handle_send_envoy(faction_id, _param(action, "target"))
        elif action_type == "persuade":
            return self._handle_persuade(
                faction_id, _param(action, "target_general"), action.payload.get("method") or "",
            )
        elif action_type == "threaten":
            return self._handle_threaten(faction_id, _param(action, "target"))
        elif action_type == "gift":
            return self._handle_gift(faction_id, _param(action, "target"), int(_param(action, "amount")))
        elif action_type == "march":
            return self._handle_march(
                faction_id,
                _param(action, "from"),
                _param(action, "to"),
                list(_param(action, "generals")),
                _choice(action, "troops_scale", TROOPS_SCALES, "medium"),
            )
        elif action_type == "scout":
            return self._handle_scout(faction_id, _param(action, "target"))
        elif action_type == "fortify":
            return self._handle_fortify(faction_id, _param(action, "city"))
        elif action_type == "ambush":
            return self._handle_ambush(faction_id, _param(action, "location"), _param(action, "general"))
        return self._fail(f"Unknown action: {action_type}")

    # ===== Domestic =====

    def _owned_city(self, faction_id: str, city_id: str, verb: str) -> "City | ActionResult":
        city = self.manager.get_city(city_id)
        if city is None:
            return self._fail(f"City not found: {city_id}")
        if city.owner != faction_id:
            return self._fail(f"You can only {verb} in your own cities.")
        return city

    def _handle_conscript(self, faction_id: str, city_id: str, scale: str) -> ActionResult:
        city = self._owned_city(faction_id, city_id, "conscript")
        if isinstance(city, ActionResult):
            return city
        table = CONSCRIPT_TABLE[scale]
        cost = -table["food"]
        if city.food < cost:
            return self._fail(f"Not enough food. Needed: {cost}, available: {city.food}")

        self.manager.add_city_troops(city_id, "infantry", table["troops"])
        morale = max(0, city.morale + table["morale"])
        self.manager.update_city(city_id, food=city.food - cost, morale=morale)

        side_effects = []
        if morale < 30:
            side_effects.append("Morale is very low. There is a risk of revolt.")
        elif morale < 50:
            side_effects.append("Morale dropped slightly.")
        return ActionResult(
            success=True,
            description=f"Held a {scale} conscription in {city.name}. Infantry +{table['troops']}.",
            side_effects=side_effects,
        )

    def _raise_grade(self, city: City, focus: str) -> tuple[Grade, Grade, bool]:
        """Roll for a one-step grade increase. Returns (old, new, succeeded)."""
        current = getattr(city.development, focus)
        target = grade_up(current)
        rate = DEVELOP_SUCCESS_RATE.get((current, target), 0.0)
        if self.rng() < rate:
            self.manager.update_city(city.id, development=replace(city.development, **{focus: target}))
            return current, target, True
        return current, target, False

    def _handle_develop(self, faction_id: str, city_id: str, focus: str) -> ActionResult:
        city = self._owned_city(faction_id, city_id, "develop")
        if isinstance(city, ActionResult):
            return city
        if getattr(city.development, focus) == Grade.S:
            return self._fail(f"{city.name}'s {focus} is already at the top grade.")
        old, new, ok = self._raise_grade(city, focus)
        if ok:
            return ActionResult(
                success=True,
                description=f"{city.name}'s {focus} improved from {old.value} to {new.value}.",
            )
        # The attempt still counts as an action
        return ActionResult(
            success=True,
            description=f"Worked on {city.name}'s {focus}, but there is no result yet ({old.value}).",
        )

    def _handle_train(self, faction_id: str, city_id: str) -> ActionResult:
        city = self._owned_city(faction_id, city_id, "train")
        if isinstance(city, ActionResult):
            return city
        if city.troops.total == 0:
            return self._fail(f"There are no troops to train in {city.name}.")

        old = city.training
        trainers = [
            g for g in self.manager.get_generals_by_location(city_id)
            if g.faction == faction_id and not g.is_lost
        ]
        best_command = max((GRADE_VALUES[g.abilities.command] for g in trainers), default=0)
        bonus = int(best_command * 0.05)
        new = min(100, old + TRAINING_INCREASE + bonus)
        self.manager.update_city(city_id, training=new)
        return ActionResult(
            success=True,
            description=f"Drilled the troops in {city.name}. Training {old} -> {new}.",
            side_effects=[f"Extra training from the commander's leadership (+{bonus})"] if bonus else [],
        )

    def _handle_recruit(self, faction_id: str, city_id: str, target_id: str) -> ActionResult:
        city = self.manager.get_city(city_id)
        if city is None:
            return self._fail(f"City not found: {city_id}")
        target = self.manager.get_general(target_id)
        if target is None:
            return self._fail(f"General not found: {target_id}")
        if target.faction == faction_id:
            return self._fail(f"{target.name} already serves you.")
        if target.is_lost:
            return self._fail(f"{target.name} is {target.condition.value}.")
        if target.loyalty == Loyalty.ABSOLUTE:
            return ActionResult(
                success=True,
                description=f"{target.name} refused; their loyalty is absolute.",
            )

        faction = self.manager.get_faction(faction_id)
        leader = self.manager.get_general(faction.leader) if faction else None
        charisma = GRADE_VALUES[leader.abilities.charisma] * 0.2 if leader else 0
        rate = min(0.8, max(0.05, (20 + charisma + RECRUIT_LOYALTY_MODIFIER[target.loyalty]) / 100))
        if self.rng() < rate:
            self.manager.update_general(target_id, faction=faction_id, location=city_id, loyalty=Loyalty.NORMAL)
            return ActionResult(
                success=True,
                description=f"{target.name} has joined {faction.name if faction else faction_id}!",
                side_effects=["Loyalty is normal; keep an eye on them."],
            )
        return ActionResult(success=True, description=f"{target.name} declined the offer.")

    def _handle_assign(self, faction_id: str, general_id: str, destination: str) -> ActionResult:
        general = self.manager.get_general(general_id)
        if general is None:
            return self._fail(f"General not found: {general_id}")
        if general.faction != faction_id:
            return self._fail("You can only assign your own generals.")
        if general.is_lost:
            return self._fail(f"{general.name} is {general.condition.value}.")
        dest = self.manager.get_city(destination)
        if dest is None:
            return self._fail(f"City not found: {destination}")
        if dest.owner != faction_id:
            return self._fail("You can only assign generals to your own cities.")

        current = self.manager.get_city(general.location)
        if current is not None and destination not in current.adjacent and general.location != destination:
            return self._fail(f"{general.name} is at {current.name}, which is not adjacent to {dest.name}.")

        origin = current.name if current else general.location
        self.manager.update_general(general_id, location=destination)
        return ActionResult(success=True, description=f"Moved {general.name} from {origin} to {dest.name}.")

    def _handle_transfer(
        self,
        faction_id: str,
        from_id: str,
        to_id: str,
        transfer_type: str,
        scale: str,
    ) -> ActionResult:
        from_city = self._owned_city(faction_id, from_id, "send supplies")
        if isinstance(from_city, ActionResult):
            return from_city
        to_city = self.manager.get_city(to_id)
        if to_city is None:
            return self._fail(f"City not found: {to_id}")
        if to_city.owner != faction_id:
            return self._fail("Supplies can only go to your own cities.")
        if from_id == to_id:
            return self._fail("Cannot transfer to the same city.")
        if to_id not in from_city.adjacent:
            return self._fail(f"{from_city.name} is not adjacent to {to_city.name}.")

        if transfer_type == "troops":
            if from_city.troops.total <= 0:
                return self._fail(f"{from_city.name} has no troops to send.")
            ratio = TRANSFER_RATIOS[scale]
            moved = 0
            for troop_type in ("infantry", "cavalry", "navy"):
                amount = int(getattr(from_city.troops, troop_type) * ratio)
                self.manager.add_city_troops(from_id, troop_type, -amount)
                self.manager.add_city_troops(to_id, troop_type, amount)
                moved += amount
            return ActionResult(
                success=True,
                description=f"Sent {moved} troops from {from_city.name} to {to_city.name} ({scale}).",
            )

        amount = FOOD_TRANSFER_AMOUNTS[scale]
        if from_city.food < amount:
            return self._fail(f"{from_city.name} lacks food. Needed: {amount}, available: {from_city.food}")
        self.manager.update_city(from_id, food=from_city.food - amount)
        self.manager.update_city(to_id, food=to_city.food + amount)
        return ActionResult(
            success=True,
            description=f"Sent {amount} food from {from_city.name} to {to_city.name} ({scale}).",
        )

    # ===== Diplomacy =====

    def _handle_send_envoy(self, faction_id: str, target: str) -> ActionResult:
        relation = self.manager.get_relation(faction_id, target)
        if relation is None:
            return self._fail(f"No diplomatic relation with {target}.")

        faction = self.manager.get_faction(faction_id)
        leader = self.manager.get_general(faction.leader) if faction else None
        charisma = GRADE_VALUES[leader.abilities.charisma] * 0.15 if leader else 0
        diplomats = [
            g for g in self.manager.get_generals_by_faction(faction_id)
            if "diplomacy" in g.skills and not g.is_lost
        ]
        rate = 40 + charisma + (15 if diplomats else 0) + relation.value * 0.2
        rate += self.manager.get_flag(EventFlag.DIPLOMACY_BONUS) or 0
        rate = min(95, max(10, rate)) / 100

        old_label = relation.relation
        succeeded = self.rng() < rate
        value = self.manager.add_relation_value(faction_id, target, 15 if succeeded else -5)

        if not succeeded:
            self.manager.record_relation_event(faction_id, target, f"Turn {self._turn}: envoy rebuffed")
            return ActionResult(success=True, description=f"The envoy to {target} achieved little.")

        self.manager.set_flag(ScenarioFlag.ALLIANCE_STARTED, True)
        if value >= ALLIANCE_THRESHOLD and not relation.is_alliance:
            self.manager.update_relation(faction_id, target, is_alliance=True)
            if value >= STRONG_ALLIANCE_THRESHOLD:
                self.manager.set_flag(ScenarioFlag.ALLIANCE_STRONG, True)
            self.manager.record_relation_event(faction_id, target, f"Turn {self._turn}: alliance formed")
            logger.info("Alliance formed: %s-%s (%d)", faction_id, target, value)
            return ActionResult(
                success=True,
                description=f"An alliance with {target} has been concluded!",
                side_effects=["You can count on allied support."],
            )
        self.manager.record_relation_event(faction_id, target, f"Turn {self._turn}: envoy welcomed")
        return ActionResult(
            success=True,
            description=f"Sent an envoy to {target}. Relations improved ({old_label} -> {relation_level(value)}).",
        )

    def _handle_persuade(self, faction_id: str, target_id: str, method: str) -> ActionResult:
        target = self.manager.get_general(target_id)
        if target is None:
            return self._fail(f"General not found: {target_id}")
        if target.faction == faction_id:
            return self._fail(f"{target.name} already serves you.")
        if target.is_lost:
            return self._fail(f"{target.name} is {target.condition.value}.")
        if target.loyalty == Loyalty.ABSOLUTE:
            return ActionResult(
                success=True,
                description=f"{target.name} could not be swayed; their loyalty is unshakable.",
            )

        modifier = PERSUADE_LOYALTY_MODIFIER[target.loyalty] + PERSUADE_METHOD_MODIFIER.get(method, 0)
        rate = min(0.6, max(0.05, (25 + modifier) / 100))
        if self.rng() < rate:
            self.manager.update_general(target_id, loyalty=Loyalty.UNSTABLE)
            return ActionResult(
                success=True,
                description=f"{target.name} is wavering. Their loyalty has weakened.",
                side_effects=["Another attempt might bring them over."],
            )
        return ActionResult(success=True, description=f"Persuading {target.name} failed.")

    def _handle_threaten(self, faction_id: str, target: str) -> ActionResult:
        if self.manager.get_relation(faction_id, target) is None:
            return self._fail(f"No diplomatic relation with {target}.")
        self.manager.add_relation_value(faction_id, target, -15)
        self.manager.set_flag(f"{THREATEN_PREFIX}{target}", True)
        self.manager.record_relation_event(faction_id, target, f"Turn {self._turn}: threatened")
        return ActionResult(
            success=True,
            description=f"Sent a threatening letter to {target}. Relations worsened.",
            side_effects=["They may hold back for a while."],
        )

    def _handle_gift(self, faction_id: str, target: str, amount: int) -> ActionResult:
        if self.manager.get_relation(faction_id, target) is None:
            return self._fail(f"No diplomatic relation with {target}.")
        if amount <= 0:
            raise ValueError("Gift amount must be positive")
        cities = self.manager.get_cities_by_faction(faction_id)
        richest = max(cities, key=lambda c: c.food, default=None)
        if richest is None or richest.food < amount:
            return self._fail("Not enough resources for a gift.")

        self.manager.update_city(richest.id, food=richest.food - amount)
        side_effects = [f"{richest.name}'s food fell by {amount}."]
        target_cities = self.manager.get_cities_by_faction(target)
        if target_cities:
            poorest = min(target_cities, key=lambda c: c.food)
            self.manager.update_city(poorest.id, food=poorest.food + amount)
            side_effects.append(f"{amount} food arrived in {poorest.name}.")
        self.manager.add_relation_value(faction_id, target, amount // 200)
        self.manager.record_relation_event(faction_id, target, f"Turn {self._turn}: gift of {amount} food")
        return ActionResult(
            success=True,
            description=f"Gave {amount} food to {target}. Relations improved.",
            side_effects=side_effects,
        )

    # ===== Military =====

    def _is_ally_of(self, faction_id: str, other: str) -> bool:
        relation = self.manager.get_relation(faction_id, other)
        return bool(relation and relation.is_alliance)

    def _battle_weather(self) -> str:
        weather = self.manager.get_flag(EventFlag.WEATHER)
        if weather:
            return str(weather)
        return WINTER_WIND if "Winter" in self.manager.state.season else "clear"

    def _handle_march(
        self,
        faction_id: str,
        from_id: str,
        to_id: str,
        general_ids: list[str],
        troops_scale: str,
    ) -> ActionResult:
        from_city = self._owned_city(faction_id, from_id, "march out")
        if isinstance(from_city, ActionResult):
            return from_city
        to_city = self.manager.get_city(to_id)
        battlefield = self.manager.get_battlefield(to_id)
        if to_id not in from_city.adjacent:
            name = to_city.name if to_city else battlefield.name if battlefield else to_id
            return self._fail(f"Cannot march directly from {from_city.name} to {name}.")

        generals = [g for g in (self.manager.get_general(gid) for gid in general_ids) if g is not None]
        if not generals:
            return self._fail("No generals to lead the march.")
        for general in generals:
            if general.faction != faction_id or general.is_lost:
                return self._fail(f"{general.name} cannot lead this march.")
            if general.location != from_id:
                return self._fail(f"{general.name} is not in {from_city.name}.")

        total = from_city.troops.total
        march_troops = int(total * MARCH_RATIOS[troops_scale])
        if march_troops <= 0:
            return self._fail("No troops available to march.")

        ratio = march_troops / total
        moved = Troops(
            infantry=int(from_city.troops.infantry * ratio),
            cavalry=int(from_city.troops.cavalry * ratio),
            navy=int(from_city.troops.navy * ratio),
        )
        for troop_type in ("infantry", "cavalry", "navy"):
            self.manager.add_city_troops(from_id, troop_type, -getattr(moved, troop_type))
        marching_ids = [g.id for g in generals]
        for general_id in marching_ids:
            self.manager.update_general(general_id, location=to_id)

        if to_city is not None and to_city.owner and to_city.owner != faction_id \
                and not self._is_ally_of(faction_id, to_city.owner):
            defenders = [
                g for g in self.manager.get_generals_by_location(to_id)
                if g.faction == to_city.owner and not g.is_lost
            ]
            battle = self.battle_engine.init_battle(BattleInitParams(
                location=to_id,
                terrain=Terrain.PLAINS,
                weather=self._battle_weather(),
                attacker_faction=faction_id,
                attacker_generals=marching_ids,
                attacker_troops=moved.total,
                defender_faction=to_city.owner,
                defender_generals=[g.id for g in defenders],
                defender_troops=to_city.troops.total,
            ))
            self.manager.set_battle(battle)
            return ActionResult(
                success=True,
                description=f"Marching from {from_city.name} on {to_city.name}. The enemy engages!",
                side_effects=[f"{moved.total} troops deployed"],
                battle_triggered=battle,
            )

        if battlefield is not None:
            present = [g for g in self.manager.get_generals_by_location(to_id) if not g.is_lost]
            enemies = [
                g for g in present
                if g.faction != faction_id and not self._is_ally_of(faction_id, g.faction)
            ]
            if enemies:
                enemy_faction = enemies[0].faction
                estimated = sum(
                    int(c.troops.total * ENEMY_FIELD_SHARE)
                    for c in self.manager.get_cities_by_faction(enemy_faction)
                )
                allies = [
                    g for g in present
                    if g.faction != faction_id and self._is_ally_of(faction_id, g.faction)
                ]
                allied_troops = 0
                if allies:
                    allied_troops = sum(
                        int(c.troops.total * ALLY_FIELD_SHARE)
                        for c in self.manager.get_cities_by_faction(allies[0].faction)
                    )
                battle = self.battle_engine.init_battle(BattleInitParams(
                    location=to_id,
                    terrain=battlefield.terrain,
                    weather=self._battle_weather(),
                    attacker_faction=faction_id,
                    attacker_generals=marching_ids + [g.id for g in allies],
                    attacker_troops=moved.total + allied_troops,
                    defender_faction=enemy_faction,
                    defender_generals=[g.id for g in enemies],
                    defender_troops=estimated,
                    defender_formation=self.manager.get_flag(EventFlag.ENEMY_FORMATION),
                ))
                self.manager.set_battle(battle)
                side_effect = f"{moved.total} troops deployed"
                if allied_troops:
                    side_effect += f", {allied_troops} allied troops join"
                ally_msg = ""
                if allies:
                    ally_msg = f" Allied forces ({', '.join(g.name for g in allies)}) join the attack!"
                return ActionResult(
                    success=True,
                    description=f"Marching from {from_city.name} to {battlefield.name}. "
                                f"The enemy engages!{ally_msg}",
                    side_effects=[side_effect],
                    battle_triggered=battle,
                )

        if to_city is not None and to_city.owner in (faction_id, None):
            for troop_type in ("infantry", "cavalry", "navy"):
                self.manager.add_city_troops(to_id, troop_type, getattr(moved, troop_type))
        dest_name = to_city.name if to_city else battlefield.name if battlefield else to_id
        return ActionResult(
            success=True,
            description=f"{moved.total} troops moved from {from_city.name} to {dest_name}.",
        )

    def _handle_scout(self, faction_id: str, target: str) -> ActionResult:
        city = self.manager.get_city(target)
        battlefield = self.manager.get_battlefield(target)
        if city is None and battlefield is None:
            return self._fail(f"Scouting target not found: {target}")

        scouts = [
            g for g in self.manager.get_generals_by_faction(faction_id)
            if not g.is_lost and ("stratagem" in g.skills or "raid" in g.skills)
        ]
        rate = 0.7 + (0.15 if scouts else 0)
        if self.rng() >= rate:
            return ActionResult(success=True, description="The scouts brought back nothing useful.")

        self.manager.set_flag(f"{SCOUTED_PREFIX}{target}", True)
        self.manager.set_flag(IntelFlag.RELIABILITY, "rough")
        info = []
        if city is not None and city.owner:
            troops = city.troops.total
            if troops > 15000:
                level = "overwhelming"
            elif troops > 8000:
                level = "superior"
            elif troops > 3000:
                level = "comparable"
            else:
                level = "inferior"
            info.append(f"Troop strength: {level}")
            seen = self.manager.get_generals_by_location(target)
            if seen:
                info.append(f"Generals sighted: {', '.join(g.name for g in seen)}")
        name = city.name if city else battlefield.name
        return ActionResult(success=True, description=f"Scouted {name}. {'. '.join(info)}".rstrip())

    def _handle_fortify(self, faction_id: str, city_id: str) -> ActionResult:
        city = self._owned_city(faction_id, city_id, "fortify")
        if isinstance(city, ActionResult):
            return city
        old, new, ok = self._raise_grade(city, "defense")
        if ok:
            return ActionResult(
                success=True,
                description=f"Strengthened {city.name}'s defenses. Defense {old.value} -> {new.value}.",
            )
        return ActionResult(success=True, description=f"Work on {city.name}'s defenses is not finished yet.")

    def _handle_ambush(self, faction_id: str, location: str, general_id: str) -> ActionResult:
        general = self.manager.get_general(general_id)
        if general is None:
            return self._fail(f"General not found: {general_id}")
        if general.faction != faction_id:
            return self._fail("Only your own generals can lay an ambush.")
        if general.is_lost:
            return self._fail(f"{general.name} is {general.condition.value}.")
        city = self.manager.get_city(location)
        battlefield = self.manager.get_battlefield(location)
        if city is None and battlefield is None:
            return self._fail(f"Location not found: {location}")

        self.manager.set_flag(f"{AMBUSH_PREFIX}{location}", general_id)
        self.manager.update_general(general_id, location=location)
        name = city.name if city else battlefield.name
        return ActionResult(
            success=True,
            description=f"{general.name} laid an ambush at {name}.",
            side_effects=["An enemy marching this way can be struck by surprise."],
        )

    # ===== Utils =====

    @property
    def _turn(self) -> int:
        return self.manager.state.turn

    def _fail(self, description: str) -> ActionResult:
        return ActionResult(
            success=False,
            description=description,
            remaining_actions=self.manager.state.actions_remaining,
        )
