"""
Battle engine: tactic resolution for one clash at a time.
All randomness comes from the injected rng.
"""

import logging
from dataclasses import dataclass, field

from sanguo.engine import MAX_BATTLE_TURNS
from sanguo.engine.errors import BattleError
from sanguo.engine.rng import Rng
from sanguo.engine.state import (
    GRADE_VALUES,
    BattleForce,
    BattleResult,
    BattleState,
    BattleTurnLog,
    General,
    Tactic,
    Terrain,
)

logger = logging.getLogger(__name__)

BATTLE_DEFEAT_TROOP_RATIO = 0.3
BATTLE_DEFEAT_MORALE = 20
STARTING_MORALE = 70
CAPTURE_CHANCE = 0.2
# Past the turn cap, a side must have inflicted 10% more casualties to win
CASUALTY_MARGIN = 1.1

CHAIN_FORMATION = "chain formation"
SOUTHEAST_WIND = "southeast wind"
CLEAR_WEATHER = "clear"

FIRE_TACTICS = ("fire_attack", "fire_ships")


@dataclass(frozen=True)
class TacticData:
    name: str
    description: str
    risk: str
    attack_multiplier: float
    damage_multiplier: float
    morale_effect: int
    requirements: str | None = None


TACTIC_DATA: dict[str, TacticData] = {
    "frontal_assault": TacticData(
        "Frontal Assault", "Heavy exchange of losses; a contest of morale", "medium", 1.0, 1.0, -20,
    ),
    "fire_attack": TacticData(
        "Fire Attack", "Massive damage against packed enemies with a favorable wind", "high",
        1.8, 0.3, -30, "Packed enemy and favorable wind",
    ),
    "ambush": TacticData(
        "Ambush", "Surprise damage and confusion", "medium", 1.5, 0.5, -25, "Ambush laid in advance",
    ),
    "defend": TacticData(
        "Hold Position", "Reduce losses and buy time", "low", 0.5, 0.3, 0, "When defending",
    ),
    "feigned_retreat": TacticData(
        "Feigned Retreat", "Lure the enemy in, then counter", "high", 1.3, 0.7, -15,
        "General with intellect B or better",
    ),
    "charge": TacticData(
        "Charge", "Draw the enemy commander into single combat", "high", 1.4, 0.8, -10,
        "General with martial A or better",
    ),
    "fire_ships": TacticData(
        "Fire Ships", "Burn the enemy fleet", "high", 2.0, 0.2, -35, "Water battle and combustibles",
    ),
}


@dataclass
class BattleInitParams:
    location: str
    terrain: Terrain
    attacker_faction: str
    attacker_generals: list[str]
    attacker_troops: int
    defender_faction: str
    defender_generals: list[str]
    defender_troops: int
    weather: str | None = None
    defender_formation: str | None = None


@dataclass
class BattleTurnResult:
    log: BattleTurnLog
    battle_over: bool
    result: BattleResult | None = None


@dataclass
class BattleEndCheck:
    is_over: bool
    result: BattleResult | None = field(default=None)


def _draw() -> BattleResult:
    return BattleResult(winner=None, loser=None)


def _tactic(tactic_id: str, requirements: str | None) -> Tactic:
    data = TACTIC_DATA[tactic_id]
    return Tactic(
        id=tactic_id,
        name=data.name,
        description=data.description,
        risk=data.risk,
        requirements=requirements,
    )


class BattleEngine:
    def __init__(self, rng: Rng):
        self.rng = rng

    def init_battle(self, params: BattleInitParams) -> BattleState:
        battle_id = f"battle-{params.location}-{int(self.rng() * 1_000_000):06d}"
        battle = BattleState(
            battle_id=battle_id,
            location=params.location,
            terrain=Terrain(params.terrain),
            weather=params.weather or CLEAR_WEATHER,
            attackers=BattleForce(
                faction=params.attacker_faction,
                generals=list(params.attacker_generals),
                troops=params.attacker_troops,
                initial_troops=params.attacker_troops,
                morale=STARTING_MORALE,
            ),
            defenders=BattleForce(
                faction=params.defender_faction,
                generals=list(params.defender_generals),
                troops=params.defender_troops,
                initial_troops=params.defender_troops,
                morale=STARTING_MORALE,
                formation=params.defender_formation,
            ),
            battle_turn=1,
            max_battle_turns=MAX_BATTLE_TURNS,
        )
        battle.available_tactics = self.get_available_tactics(battle)
        logger.debug(
            "Battle %s at %s: %s (%d) vs %s (%d)",
            battle_id, params.location, params.attacker_faction, params.attacker_troops,
            params.defender_faction, params.defender_troops,
        )
        return battle

    def execute_tactic(
        self,
        battle: BattleState,
        tactic_id: str,
        generals: list[General],
        defender_tactic_id: str | None = None,
    ) -> BattleTurnResult:
        """
        Resolve one clash. tactic_id is the attacking side's tactic; the defending side uses
        defender_tactic_id or the defender heuristic. Mutates battle in place.
        """
        if battle.is_over:
            raise BattleError("The battle is already over.")
        tactic = TACTIC_DATA.get(tactic_id)
        if tactic is None:
            raise BattleError(f"Unknown tactic: {tactic_id}")

        def_tactic_id = defender_tactic_id or self._select_defender_tactic(battle)
        def_tactic = TACTIC_DATA.get(def_tactic_id, TACTIC_DATA["frontal_assault"])

        attacker_power = self._calculate_power(
            battle.attackers, tactic.attack_multiplier,
            [g for g in generals if g.faction == battle.attackers.faction], battle.terrain,
        )
        defender_power = self._calculate_power(
            battle.defenders, def_tactic.attack_multiplier,
            [g for g in generals if g.faction == battle.defenders.faction], battle.terrain,
        )

        attacker_bonus = 1.0
        defender_bonus = 1.0
        if tactic_id in FIRE_TACTICS:
            if battle.defenders.formation == CHAIN_FORMATION:
                attacker_bonus *= 2.0
            if battle.weather == SOUTHEAST_WIND:
                attacker_bonus *= 1.5
            # Headwind
            if "north" in battle.weather and tactic_id == "fire_attack":
                attacker_bonus *= 0.3
        if def_tactic_id == "defend":
            defender_bonus *= 1.5

        final_attack = attacker_power * attacker_bonus
        final_defend = defender_power * defender_bonus

        attacker_damage = int(final_defend * tactic.damage_multiplier * (0.8 + self.rng() * 0.4))
        defender_damage = int(final_attack * def_tactic.damage_multiplier * (0.8 + self.rng() * 0.4))

        battle.attackers.troops = max(0, battle.attackers.troops - attacker_damage)
        battle.defenders.troops = max(0, battle.defenders.troops - defender_damage)

        attacker_winning = defender_damage > attacker_damage
        attacker_morale_change = 5 if attacker_winning else tactic.morale_effect
        defender_morale_change = def_tactic.morale_effect if attacker_winning else 5
        battle.attackers.morale = max(0, min(100, battle.attackers.morale + attacker_morale_change))
        battle.defenders.morale = max(0, min(100, battle.defenders.morale + defender_morale_change))

        log = BattleTurnLog(
            battle_turn=battle.battle_turn,
            attacker_tactic=tactic.name,
            defender_tactic=def_tactic.name,
            description=self._describe(
                tactic_id, tactic.name, def_tactic.name, attacker_damage, defender_damage, attacker_winning,
            ),
            attacker_casualties=attacker_damage,
            defender_casualties=defender_damage,
            attacker_morale_change=attacker_morale_change,
            defender_morale_change=defender_morale_change,
        )
        battle.log.append(log)
        battle.battle_turn += 1

        end = self.check_battle_end(battle)
        if end.is_over:
            battle.is_over = True
            battle.result = end.result

        battle.available_tactics = self.get_available_tactics(battle)
        return BattleTurnResult(log=log, battle_over=battle.is_over, result=battle.result)

    def check_battle_end(self, battle: BattleState) -> BattleEndCheck:
        attackers, defenders = battle.attackers, battle.defenders
        attacker_defeated = (
            attackers.troop_ratio <= BATTLE_DEFEAT_TROOP_RATIO
            or attackers.morale <= BATTLE_DEFEAT_MORALE
            or attackers.troops <= 0
        )
        defender_defeated = (
            defenders.troop_ratio <= BATTLE_DEFEAT_TROOP_RATIO
            or defenders.morale <= BATTLE_DEFEAT_MORALE
            or defenders.troops <= 0
        )

        if attacker_defeated and defender_defeated:
            return BattleEndCheck(True, _draw())
        if defender_defeated:
            return BattleEndCheck(True, self._victory(attackers, defenders))
        if attacker_defeated:
            return BattleEndCheck(True, self._victory(defenders, attackers))

        if battle.battle_turn > battle.max_battle_turns:
            attacker_total = sum(entry.attacker_casualties for entry in battle.log)
            defender_total = sum(entry.defender_casualties for entry in battle.log)
            if defender_total > attacker_total * CASUALTY_MARGIN:
                return BattleEndCheck(True, self._victory(attackers, defenders))
            if attacker_total > defender_total * CASUALTY_MARGIN:
                return BattleEndCheck(True, self._victory(defenders, attackers))
            return BattleEndCheck(True, _draw())

        return BattleEndCheck(False)

    def get_available_tactics(self, battle: BattleState) -> list[Tactic]:
        tactics = [_tactic("frontal_assault", None)]
        wind = battle.weather == SOUTHEAST_WIND
        if battle.defenders.formation == CHAIN_FORMATION or wind:
            tactics.append(_tactic("fire_attack", None if wind else "Strongest with a southeast wind"))
        tactics.append(_tactic("ambush", "Stronger with an ambush laid in advance"))
        tactics.append(_tactic("defend", None))
        tactics.append(_tactic("feigned_retreat", "Needs a general with intellect B or better"))
        tactics.append(_tactic("charge", "Needs a general with martial A or better"))
        if battle.terrain == Terrain.WATER:
            tactics.append(_tactic("fire_ships", None if wind else "Strongest with a southeast wind"))
        return tactics

    def select_attacker_tactic(self, battle: BattleState) -> str:
        """Heuristic used when the AI side is attacking."""
        if battle.attackers.troop_ratio < 0.4:
            return "defend"
        if self.rng() < 0.3:
            return "charge"
        return "frontal_assault"

    # ===== Internal =====

    def _select_defender_tactic(self, battle: BattleState) -> str:
        defenders = battle.defenders
        if defenders.troop_ratio < 0.5:
            return "defend"
        if defenders.formation == CHAIN_FORMATION:
            return "frontal_assault"
        if self.rng() < 0.3:
            return "charge"
        return "frontal_assault"

    def _calculate_power(
        self,
        force: BattleForce,
        tactic_multiplier: float,
        generals: list[General],
        terrain: Terrain,
    ) -> float:
        base = force.troops * 0.1
        general_bonus = 0.0
        if generals:
            avg = sum(
                (GRADE_VALUES[g.abilities.command] + GRADE_VALUES[g.abilities.martial]) / 2
                for g in generals
            ) / len(generals)
            general_bonus = avg * force.troops * 0.001
        morale_modifier = force.morale / STARTING_MORALE
        terrain_modifier = 1.0
        if terrain == Terrain.WATER:
            terrain_modifier = 1.2 if any("naval" in g.skills for g in generals) else 0.8
        elif terrain == Terrain.MOUNTAIN:
            terrain_modifier = 0.9
        return (base + general_bonus) * morale_modifier * terrain_modifier * tactic_multiplier

    def _victory(self, winner: BattleForce, loser: BattleForce) -> BattleResult:
        captured = [g for g in loser.generals if self.rng() < CAPTURE_CHANCE]
        spoils = [f"Secured {loser.troops} remaining troops"] if loser.troops > 0 else []
        # territory_change is filled in by the resolver
        return BattleResult(
            winner=winner.faction,
            loser=loser.faction,
            captured_generals=captured,
            spoils=spoils,
        )

    @staticmethod
    def _describe(
        tactic_id: str,
        attacker_tactic: str,
        defender_tactic: str,
        attacker_casualties: int,
        defender_casualties: int,
        attacker_winning: bool,
    ) -> str:
        if tactic_id in FIRE_TACTICS:
            if attacker_winning:
                return f"{attacker_tactic} swept the enemy lines! Defender losses {defender_casualties}."
            return f"{attacker_tactic} had little effect. Attacker losses {attacker_casualties}."
        if attacker_winning:
            return (
                f"The attackers' {attacker_tactic} overwhelmed the defenders' {defender_tactic}. "
                f"Defenders -{defender_casualties}, attackers -{attacker_casualties}."
            )
        return (
            f"The defenders' {defender_tactic} held off the attackers' {attacker_tactic}. "
            f"Attackers -{attacker_casualties}, defenders -{defender_casualties}."
        )
