"""
Game state representation.
GameStateManager owns one GameState and is the only writer; everything else reads.
Includes JSON serialization for save/load functionality.

from_dict is strict about identity fields (ids, names, owners, numbers that define the
world) and lenient about descriptive ones, so a corrupt snapshot fails loudly while older
saves without optional fields still load.
"""

import json
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sanguo.engine import (
    ACTIONS_PER_TURN,
    AGRICULTURE_MULTIPLIER,
    FOOD_CONSUMPTION_PER_TROOP,
    FOOD_PRODUCTION_BASE,
    MAX_BATTLE_TURNS,
)
from sanguo.engine.actions import Action


# ===== Enumerations =====

class Grade(str, Enum):
    """Ability / development rating. Ordered D < C < B < A < S."""
    D = "D"
    C = "C"
    B = "B"
    A = "A"
    S = "S"


GRADE_ORDER = [Grade.D, Grade.C, Grade.B, Grade.A, Grade.S]

GRADE_VALUES = {
    Grade.S: 95,
    Grade.A: 80,
    Grade.B: 65,
    Grade.C: 50,
    Grade.D: 35,
}


def grade_up(grade: Grade) -> Grade:
    """One step up, saturating at S."""
    idx = GRADE_ORDER.index(Grade(grade))
    return GRADE_ORDER[min(idx + 1, len(GRADE_ORDER) - 1)]


def grade_down(grade: Grade) -> Grade:
    """One step down, saturating at D."""
    idx = GRADE_ORDER.index(Grade(grade))
    return GRADE_ORDER[max(idx - 1, 0)]


class OutcomeGrade(str, Enum):
    """Final campaign result assigned by VictoryJudge."""
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class Phase(str, Enum):
    PREPARATION = "preparation"
    BATTLE = "battle"
    AFTERMATH = "aftermath"


class GeneralCondition(str, Enum):
    FIT = "fit"
    TIRED = "tired"
    WOUNDED = "wounded"
    CAPTIVE = "captive"
    DEAD = "dead"


LOST_CONDITIONS = (GeneralCondition.CAPTIVE, GeneralCondition.DEAD)


class Population(str, Enum):
    LARGE = "large"
    MEDIUM = "medium"
    SMALL = "small"


class Terrain(str, Enum):
    WATER = "water"
    PLAINS = "plains"
    MOUNTAIN = "mountain"


class Loyalty(str, Enum):
    ABSOLUTE = "absolute"
    HIGH = "high"
    NORMAL = "normal"
    UNSTABLE = "unstable"


def relation_level(value: int) -> str:
    """Band label for a diplomacy value: 81+ tight, 61+ friendly, 41+ neutral, 21+ cold, else hostile."""
    if value >= 81:
        return "tight"
    if value >= 61:
        return "friendly"
    if value >= 41:
        return "neutral"
    if value >= 21:
        return "cold"
    return "hostile"


RELATION_EVENTS_KEPT = 10


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(x) for x in value]


# ===== City / Battlefield =====

@dataclass
class Troops:
    infantry: int = 0
    cavalry: int = 0
    navy: int = 0

    @property
    def total(self) -> int:
        return self.infantry + self.cavalry + self.navy

    def to_dict(self) -> dict[str, Any]:
        return {"infantry": self.infantry, "cavalry": self.cavalry, "navy": self.navy}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Troops":
        return cls(
            infantry=int(data.get("infantry", 0)),
            cavalry=int(data.get("cavalry", 0)),
            navy=int(data.get("navy", 0)),
        )


@dataclass
class Development:
    agriculture: Grade = Grade.C
    commerce: Grade = Grade.C
    defense: Grade = Grade.C

    def to_dict(self) -> dict[str, Any]:
        return {
            "agriculture": self.agriculture.value,
            "commerce": self.commerce.value,
            "defense": self.defense.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Development":
        return cls(
            agriculture=Grade(data["agriculture"]),
            commerce=Grade(data["commerce"]),
            defense=Grade(data["defense"]),
        )


@dataclass
class City:
    """State of a single city."""
    id: str
    name: str
    owner: str | None  # faction_id or None if unowned
    population: Population
    development: Development
    troops: Troops
    food: int
    morale: int  # 0-100
    training: int  # 0-100
    adjacent: list[str] = field(default_factory=list)  # city / battlefield ids
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner": self.owner,
            "population": self.population.value,
            "development": self.development.to_dict(),
            "troops": self.troops.to_dict(),
            "food": self.food,
            "morale": self.morale,
            "training": self.training,
            "adjacent": list(self.adjacent),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "City":
        owner = data.get("owner")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            owner=str(owner) if owner is not None else None,
            population=Population(data["population"]),
            development=Development.from_dict(data["development"]),
            troops=Troops.from_dict(data["troops"]),
            food=int(data["food"]),
            morale=int(data["morale"]),
            training=int(data.get("training", 0)),
            adjacent=_str_list(data.get("adjacent")),
            description=str(data.get("description") or ""),
        )


def food_production(city: City) -> int:
    base = FOOD_PRODUCTION_BASE[city.population.value]
    return int(base * AGRICULTURE_MULTIPLIER[city.development.agriculture.value])


def food_consumption(city: City) -> int:
    return int(city.troops.total * FOOD_CONSUMPTION_PER_TROOP)


@dataclass
class Battlefield:
    """Combat-only location; adjacent_cities are the return targets after a battle."""
    id: str
    name: str
    terrain: Terrain
    adjacent_cities: list[str] = field(default_factory=list)
    description: str = ""
    special: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "terrain": self.terrain.value,
            "adjacent_cities": list(self.adjacent_cities),
            "description": self.description,
            "special": self.special,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Battlefield":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            terrain=Terrain(data["terrain"]),
            adjacent_cities=_str_list(data.get("adjacent_cities")),
            description=str(data.get("description") or ""),
            special=str(data.get("special") or ""),
        )


# ===== Generals / Factions / Diplomacy =====

@dataclass
class Abilities:
    command: Grade
    martial: Grade
    intellect: Grade
    politics: Grade
    charisma: Grade

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command.value,
            "martial": self.martial.value,
            "intellect": self.intellect.value,
            "politics": self.politics.value,
            "charisma": self.charisma.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Abilities":
        return cls(
            command=Grade(data["command"]),
            martial=Grade(data["martial"]),
            intellect=Grade(data["intellect"]),
            politics=Grade(data["politics"]),
            charisma=Grade(data["charisma"]),
        )


@dataclass
class General:
    id: str
    name: str
    faction: str
    role: str  # "ruler", "warrior", "official", "strategist", ...
    abilities: Abilities
    location: str  # city or battlefield id
    condition: GeneralCondition = GeneralCondition.FIT
    loyalty: Loyalty = Loyalty.NORMAL
    skills: list[str] = field(default_factory=list)
    courtesy_name: str = ""

    @property
    def is_lost(self) -> bool:
        """Dead or captive: never eligible for actions again."""
        return self.condition in LOST_CONDITIONS

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "faction": self.faction,
            "role": self.role,
            "abilities": self.abilities.to_dict(),
            "location": self.location,
            "condition": self.condition.value,
            "loyalty": self.loyalty.value,
            "skills": list(self.skills),
            "courtesy_name": self.courtesy_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "General":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            faction=str(data["faction"]),
            role=str(data.get("role") or ""),
            abilities=Abilities.from_dict(data["abilities"]),
            location=str(data["location"]),
            condition=GeneralCondition(data.get("condition", "fit")),
            loyalty=Loyalty(data.get("loyalty", "normal")),
            skills=_str_list(data.get("skills")),
            courtesy_name=str(data.get("courtesy_name") or ""),
        )


@dataclass
class Faction:
    id: str
    name: str
    leader: str  # general id
    is_player: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "leader": self.leader, "is_player": self.is_player}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Faction":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            leader=str(data["leader"]),
            is_player=bool(data.get("is_player", False)),
        )


@dataclass
class DiplomacyRelation:
    """Unordered faction pair. relation is always relation_level(value)."""
    faction_a: str
    faction_b: str
    value: int
    is_alliance: bool = False
    events: list[str] = field(default_factory=list)
    relation: str = ""

    def __post_init__(self):
        self.relation = relation_level(self.value)

    def involves(self, a: str, b: str) -> bool:
        return {self.faction_a, self.faction_b} == {a, b}

    def other(self, faction_id: str) -> str:
        return self.faction_b if self.faction_a == faction_id else self.faction_a

    def record(self, line: str) -> None:
        """Append to the recent-history log, keeping the last RELATION_EVENTS_KEPT lines."""
        self.events.append(line)
        del self.events[:-RELATION_EVENTS_KEPT]

    def to_dict(self) -> dict[str, Any]:
        return {
            "faction_a": self.faction_a,
            "faction_b": self.faction_b,
            "value": self.value,
            "relation": self.relation,
            "is_alliance": self.is_alliance,
            "events": list(self.events),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiplomacyRelation":
        # relation label is derived, never trusted from input
        return cls(
            faction_a=str(data["faction_a"]),
            faction_b=str(data["faction_b"]),
            value=max(0, min(100, int(data["value"]))),
            is_alliance=bool(data.get("is_alliance", False)),
            events=_str_list(data.get("events"))[-RELATION_EVENTS_KEPT:],
        )


@dataclass
class Diplomacy:
    relations: list[DiplomacyRelation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"relations": [r.to_dict() for r in self.relations]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Diplomacy":
        return cls(relations=[DiplomacyRelation.from_dict(r) for r in data["relations"]])


# ===== Battle =====

@dataclass
class Tactic:
    """A selectable battle move as offered to the commander."""
    id: str
    name: str
    description: str
    risk: str  # "low", "medium", "high"
    requirements: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "risk": self.risk,
            "requirements": self.requirements,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tactic":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            description=str(data.get("description") or ""),
            risk=str(data.get("risk") or "medium"),
            requirements=data.get("requirements"),
        )


@dataclass
class BattleForce:
    faction: str
    generals: list[str]
    troops: int
    initial_troops: int  # troops at battle start (for defeat ratio)
    morale: int = 70
    formation: str | None = None

    @property
    def troop_ratio(self) -> float:
        if self.initial_troops <= 0:
            return 0.0
        return self.troops / self.initial_troops

    def to_dict(self) -> dict[str, Any]:
        return {
            "faction": self.faction,
            "generals": list(self.generals),
            "troops": self.troops,
            "initial_troops": self.initial_troops,
            "morale": self.morale,
            "formation": self.formation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BattleForce":
        return cls(
            faction=str(data["faction"]),
            generals=_str_list(data.get("generals")),
            troops=int(data["troops"]),
            initial_troops=int(data["initial_troops"]),
            morale=int(data.get("morale", 70)),
            formation=data.get("formation"),
        )


@dataclass
class BattleTurnLog:
    """One clash inside a battle (for battle log)."""
    battle_turn: int
    attacker_tactic: str
    defender_tactic: str
    description: str
    attacker_casualties: int
    defender_casualties: int
    attacker_morale_change: int
    defender_morale_change: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "battle_turn": self.battle_turn,
            "attacker_tactic": self.attacker_tactic,
            "defender_tactic": self.defender_tactic,
            "description": self.description,
            "attacker_casualties": self.attacker_casualties,
            "defender_casualties": self.defender_casualties,
            "attacker_morale_change": self.attacker_morale_change,
            "defender_morale_change": self.defender_morale_change,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BattleTurnLog":
        return cls(
            battle_turn=int(data["battle_turn"]),
            attacker_tactic=str(data["attacker_tactic"]),
            defender_tactic=str(data["defender_tactic"]),
            description=str(data.get("description") or ""),
            attacker_casualties=int(data["attacker_casualties"]),
            defender_casualties=int(data["defender_casualties"]),
            attacker_morale_change=int(data.get("attacker_morale_change", 0)),
            defender_morale_change=int(data.get("defender_morale_change", 0)),
        )


@dataclass
class BattleResult:
    winner: str | None  # None = draw / stalemate
    loser: str | None
    captured_generals: list[str] = field(default_factory=list)
    spoils: list[str] = field(default_factory=list)
    territory_change: str | None = None  # set by the resolver for city sieges

    def to_dict(self) -> dict[str, Any]:
        return {
            "winner": self.winner,
            "loser": self.loser,
            "captured_generals": list(self.captured_generals),
            "spoils": list(self.spoils),
            "territory_change": self.territory_change,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BattleResult":
        return cls(
            winner=data.get("winner"),
            loser=data.get("loser"),
            captured_generals=_str_list(data.get("captured_generals")),
            spoils=_str_list(data.get("spoils")),
            territory_change=data.get("territory_change"),
        )


@dataclass
class BattleState:
    """
    A bounded-turn clash at a city or battlefield.
    Created by a march (player or AI); cleared by the resolver once post-processing is done.
    """
    battle_id: str
    location: str
    terrain: Terrain
    weather: str
    attackers: BattleForce
    defenders: BattleForce
    battle_turn: int = 1
    max_battle_turns: int = MAX_BATTLE_TURNS
    available_tactics: list[Tactic] = field(default_factory=list)
    log: list[BattleTurnLog] = field(default_factory=list)
    is_over: bool = False
    result: BattleResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "battle_id": self.battle_id,
            "location": self.location,
            "terrain": self.terrain.value,
            "weather": self.weather,
            "attackers": self.attackers.to_dict(),
            "defenders": self.defenders.to_dict(),
            "battle_turn": self.battle_turn,
            "max_battle_turns": self.max_battle_turns,
            "available_tactics": [t.to_dict() for t in self.available_tactics],
            "log": [entry.to_dict() for entry in self.log],
            "is_over": self.is_over,
            "result": self.result.to_dict() if self.result else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BattleState":
        return cls(
            battle_id=str(data["battle_id"]),
            location=str(data["location"]),
            terrain=Terrain(data["terrain"]),
            weather=str(data.get("weather") or "clear"),
            attackers=BattleForce.from_dict(data["attackers"]),
            defenders=BattleForce.from_dict(data["defenders"]),
            battle_turn=int(data.get("battle_turn", 1)),
            max_battle_turns=int(data.get("max_battle_turns", MAX_BATTLE_TURNS)),
            available_tactics=[Tactic.from_dict(t) for t in data.get("available_tactics") or []],
            log=[BattleTurnLog.from_dict(e) for e in data.get("log") or []],
            is_over=bool(data.get("is_over", False)),
            result=BattleResult.from_dict(data["result"]) if data.get("result") else None,
        )


# ===== Action log / results =====

@dataclass
class ActionResult:
    success: bool
    description: str
    side_effects: list[str] = field(default_factory=list)
    remaining_actions: int = 0
    battle_triggered: BattleState | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "description": self.description,
            "side_effects": list(self.side_effects),
            "remaining_actions": self.remaining_actions,
            "battle_triggered": self.battle_triggered.to_dict() if self.battle_triggered else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionResult":
        battle = data.get("battle_triggered")
        return cls(
            success=bool(data["success"]),
            description=str(data.get("description") or ""),
            side_effects=_str_list(data.get("side_effects")),
            remaining_actions=int(data.get("remaining_actions", 0)),
            battle_triggered=BattleState.from_dict(battle) if battle else None,
        )


@dataclass
class ActionLogEntry:
    """Append-only record of an executed action (player or AI) or a battle outcome."""
    turn: int
    action: Action
    result: ActionResult

    def to_dict(self) -> dict[str, Any]:
        return {"turn": self.turn, "action": self.action.to_dict(), "result": self.result.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionLogEntry":
        return cls(
            turn=int(data["turn"]),
            action=Action.from_dict(data["action"]),
            result=ActionResult.from_dict(data["result"]),
        )


@dataclass
class GameStats:
    total_turns: int = 0
    battles_won: int = 0
    battles_lost: int = 0
    cities_captured: int = 0
    generals_lost: int = 0
    alliance_maintained: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_turns": self.total_turns,
            "battles_won": self.battles_won,
            "battles_lost": self.battles_lost,
            "cities_captured": self.cities_captured,
            "generals_lost": self.generals_lost,
            "alliance_maintained": self.alliance_maintained,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameStats":
        return cls(
            total_turns=int(data.get("total_turns", 0)),
            battles_won=int(data.get("battles_won", 0)),
            battles_lost=int(data.get("battles_lost", 0)),
            cities_captured=int(data.get("cities_captured", 0)),
            generals_lost=int(data.get("generals_lost", 0)),
            alliance_maintained=bool(data.get("alliance_maintained", False)),
        )


@dataclass
class GameResult:
    grade: OutcomeGrade
    title: str
    description: str
    stats: GameStats = field(default_factory=GameStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "grade": self.grade.value,
            "title": self.title,
            "description": self.description,
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameResult":
        return cls(
            grade=OutcomeGrade(data["grade"]),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            stats=GameStats.from_dict(data.get("stats") or {}),
        )


# ===== Aggregate =====

@dataclass
class GameState:
    """Complete game state."""
    game_id: str
    scenario_id: str
    turn: int
    max_turns: int
    phase: Phase
    season: str
    cities: list[City]
    battlefields: list[Battlefield]
    generals: list[General]
    factions: list[Faction]
    diplomacy: Diplomacy
    actions_remaining: int = ACTIONS_PER_TURN
    # Arbitrary JSON annotations shared by events, difficulty and AI (see engine.flags)
    flags: dict[str, Any] = field(default_factory=dict)
    # Event ids that already fired, in firing order; never shrinks
    completed_events: list[str] = field(default_factory=list)
    action_log: list[ActionLogEntry] = field(default_factory=list)
    active_battle: BattleState | None = None
    game_over: bool = False
    result: GameResult | None = None
    # Scenario objectives: {"decisive_battlefield": ..., "primary_objective": ..., ...}
    victory_criteria: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "GameState":
        """Return a deep copy of this game state."""
        return deepcopy(self)

    # ===== Serialization Methods =====

    def to_dict(self) -> dict[str, Any]:
        """Convert GameState to a dictionary for JSON serialization."""
        return {
            "game_id": self.game_id,
            "scenario_id": self.scenario_id,
            "turn": self.turn,
            "max_turns": self.max_turns,
            "phase": self.phase.value,
            "season": self.season,
            "cities": [c.to_dict() for c in self.cities],
            "battlefields": [b.to_dict() for b in self.battlefields],
            "generals": [g.to_dict() for g in self.generals],
            "factions": [f.to_dict() for f in self.factions],
            "diplomacy": self.diplomacy.to_dict(),
            "actions_remaining": self.actions_remaining,
            "flags": deepcopy(self.flags),
            "completed_events": list(self.completed_events),
            "action_log": [entry.to_dict() for entry in self.action_log],
            "active_battle": self.active_battle.to_dict() if self.active_battle else None,
            "game_over": self.game_over,
            "result": self.result.to_dict() if self.result else None,
            "victory_criteria": deepcopy(self.victory_criteria),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        """Create GameState from a dictionary. Raises KeyError/ValueError/TypeError on corrupt input."""
        flags = data.get("flags") or {}
        if not isinstance(flags, dict):
            raise TypeError("flags must be an object")
        criteria = data.get("victory_criteria") or {}
        if not isinstance(criteria, dict):
            raise TypeError("victory_criteria must be an object")
        return cls(
            game_id=str(data["game_id"]),
            scenario_id=str(data["scenario_id"]),
            turn=int(data["turn"]),
            max_turns=int(data["max_turns"]),
            phase=Phase(data["phase"]),
            season=str(data.get("season") or ""),
            cities=[City.from_dict(c) for c in data["cities"]],
            battlefields=[Battlefield.from_dict(b) for b in data["battlefields"]],
            generals=[General.from_dict(g) for g in data["generals"]],
            factions=[Faction.from_dict(f) for f in data["factions"]],
            diplomacy=Diplomacy.from_dict(data["diplomacy"]),
            actions_remaining=max(0, min(ACTIONS_PER_TURN, int(data["actions_remaining"]))),
            flags=dict(flags),
            completed_events=list(dict.fromkeys(_str_list(data.get("completed_events")))),
            action_log=[ActionLogEntry.from_dict(e) for e in data.get("action_log") or []],
            active_battle=BattleState.from_dict(data["active_battle"])
            if data.get("active_battle") else None,
            game_over=bool(data.get("game_over", False)),
            result=GameResult.from_dict(data["result"]) if data.get("result") else None,
            victory_criteria=dict(criteria),
        )

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize GameState to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "GameState":
        """Deserialize GameState from a JSON string."""
        return cls.from_dict(json.loads(json_str))

    def save(self, filepath: str) -> None:
        """Save GameState to a JSON file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, filepath: str) -> "GameState":
        """Load GameState from a JSON file."""
        with open(filepath, "r", encoding="utf-8") as f:
            return cls.from_json(f.read())
