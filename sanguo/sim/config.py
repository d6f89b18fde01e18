"""
Simulation settings and result records.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, field_validator

from sanguo.config import DEFAULT_DIFFICULTY, DEFAULT_SCENARIO_ID, DEFAULT_SEED
from sanguo.engine.actions import Action
from sanguo.engine.difficulty import DIFFICULTIES
from sanguo.engine.state import BattleResult


class SimConfig(BaseModel):
    game_id: str = "sim"
    scenario_id: str = DEFAULT_SCENARIO_ID
    difficulty: str = DEFAULT_DIFFICULTY
    seed: int = DEFAULT_SEED
    # Safety stop for the game loop; the scenario's max_turns normally ends the game first
    turn_limit: int = Field(default=100, ge=1)
    verbose: bool = False

    @field_validator("difficulty")
    @classmethod
    def _known_difficulty(cls, v: str) -> str:
        if v not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty: {v}. Choose from: {', '.join(DIFFICULTIES)}")
        return v


@dataclass
class BattleTurnRecord:
    tactic_used: str
    attacker_troops: int
    defender_troops: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "tactic_used": self.tactic_used,
            "attacker_troops": self.attacker_troops,
            "defender_troops": self.defender_troops,
        }


@dataclass
class BattleLog:
    location: str
    attacker: str
    defender: str
    turns: list[BattleTurnRecord] = field(default_factory=list)
    result: BattleResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location,
            "attacker": self.attacker,
            "defender": self.defender,
            "turns": [t.to_dict() for t in self.turns],
            "result": self.result.to_dict() if self.result else None,
        }


@dataclass
class ActionRecord:
    action: Action
    success: bool
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action.to_dict(), "success": self.success, "description": self.description}


@dataclass
class TurnLog:
    turn: int
    phase: str
    actions: list[ActionRecord] = field(default_factory=list)
    events: list[str] = field(default_factory=list)
    battles: list[BattleLog] = field(default_factory=list)
    ai_actions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn": self.turn,
            "phase": self.phase,
            "actions": [a.to_dict() for a in self.actions],
            "events": list(self.events),
            "battles": [b.to_dict() for b in self.battles],
            "ai_actions": list(self.ai_actions),
        }


@dataclass
class SimResult:
    game_id: str
    seed: int
    difficulty: str
    grade: str
    title: str
    total_turns: int
    duration: float  # seconds
    flags: dict[str, Any] = field(default_factory=dict)
    turn_logs: list[TurnLog] = field(default_factory=list)
    # {"cities": [{id, owner, troops}], "generals": [{id, faction, condition, location}]}
    final_state: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "seed": self.seed,
            "difficulty": self.difficulty,
            "grade": self.grade,
            "title": self.title,
            "total_turns": self.total_turns,
            "duration": self.duration,
            "flags": dict(self.flags),
            "turn_logs": [t.to_dict() for t in self.turn_logs],
            "final_state": self.final_state,
        }


@dataclass
class BatchStats:
    grade_distribution: dict[str, int]
    win_rate: float
    avg_turns: float
    avg_duration: float
    avg_grade: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "grade_distribution": dict(self.grade_distribution),
            "win_rate": self.win_rate,
            "avg_turns": self.avg_turns,
            "avg_duration": self.avg_duration,
            "avg_grade": self.avg_grade,
        }


@dataclass
class BatchResult:
    timestamp: str
    total_games: int
    results: list[SimResult]
    stats: BatchStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "total_games": self.total_games,
            "results": [r.to_dict() for r in self.results],
            "stats": self.stats.to_dict(),
        }
