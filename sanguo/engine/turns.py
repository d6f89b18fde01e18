"""
Turn lifecycle.

start_turn: reset the action budget, derive phase and season from the turn counter.
end_turn:   food upkeep -> scenario events -> faction AI -> game-over check -> next turn.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from sanguo.engine.event_system import EventSystem
from sanguo.engine.events import EventResult
from sanguo.engine.faction_ai import FactionAIEngine
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.state import (
    BattleState,
    GameResult,
    Phase,
    food_consumption,
    food_production,
)
from sanguo.engine.victory import VictoryJudge

logger = logging.getLogger(__name__)

DESERTION_RATE = 0.05
STARVATION_MORALE_PENALTY = 15
# Warn when food left covers fewer turns than this
LOW_FOOD_TURNS = 3

# (last turn, label); turns past the last entry use the final label
SEASONS = [
    (4, "Autumn, Jian'an 13"),
    (8, "Early Winter, Jian'an 13"),
    (13, "Winter, Jian'an 13"),
    (17, "Early Spring, Jian'an 14"),
]
FINAL_SEASON = "Spring, Jian'an 14"


@dataclass
class TurnStartResult:
    turn: int
    phase: Phase
    season: str
    actions_available: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn": self.turn,
            "phase": self.phase.value,
            "season": self.season,
            "actions_available": self.actions_available,
        }


@dataclass
class TurnEndResult:
    events: list[EventResult] = field(default_factory=list)
    state_changes: list[str] = field(default_factory=list)
    next_turn_preview: str = ""
    game_over: bool = False
    result: GameResult | None = None
    ai_initiated_battle: BattleState | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "state_changes": list(self.state_changes),
            "next_turn_preview": self.next_turn_preview,
            "game_over": self.game_over,
            "result": self.result.to_dict() if self.result else None,
            "ai_initiated_battle": self.ai_initiated_battle.to_dict() if self.ai_initiated_battle else None,
        }


def determine_phase(turn: int) -> Phase:
    if turn <= 8:
        return Phase.PREPARATION
    if turn <= 13:
        return Phase.BATTLE
    return Phase.AFTERMATH


def calculate_season(turn: int) -> str:
    for last_turn, label in SEASONS:
        if turn <= last_turn:
            return label
    return FINAL_SEASON


class TurnManager:
    def __init__(
        self,
        manager: GameStateManager,
        event_system: EventSystem,
        judge: VictoryJudge,
        ai_engine: FactionAIEngine | None = None,
    ):
        self.manager = manager
        self.event_system = event_system
        self.judge = judge
        self.ai_engine = ai_engine

    def start_turn(self) -> TurnStartResult:
        state = self.manager.state
        self.manager.reset_actions()
        phase = determine_phase(state.turn)
        season = calculate_season(state.turn)
        self.manager.set_phase(phase)
        self.manager.set_season(season)
        logger.debug("Turn %s started (%s, %s)", state.turn, phase.value, season)
        return TurnStartResult(
            turn=state.turn,
            phase=phase,
            season=season,
            actions_available=state.actions_remaining,
        )

    def end_turn(self) -> TurnEndResult:
        if self.manager.state.game_over:
            raise ValueError("Game is already over")

        state_changes = self._consume_food()
        events = self.event_system.process_turn(self.manager)

        battle = None
        if self.ai_engine is not None:
            outcome = self.ai_engine.process_all()
            state_changes.extend(outcome.changes)
            battle = outcome.battle

        check = self.judge.check_game_over(self.manager.state)
        # Graded on the turn just played
        result = self.judge.judge(self.manager.state) if check.is_over else None
        self.manager.advance_turn()

        if result is not None:
            self.manager.set_game_over(result)
            return TurnEndResult(
                events=events,
                state_changes=state_changes,
                next_turn_preview=f"Game over: {check.reason}",
                game_over=True,
                result=result,
                ai_initiated_battle=battle,
            )

        state = self.manager.state
        return TurnEndResult(
            events=events,
            state_changes=state_changes,
            next_turn_preview=(
                f"Next turn is {calculate_season(state.turn)} (turn {state.turn}/{state.max_turns})"
            ),
            ai_initiated_battle=battle,
        )

    def _consume_food(self) -> list[str]:
        changes = []
        player = self.manager.get_player_faction()
        for city in self.manager.get_cities_by_faction(player.id):
            consumption = food_consumption(city)
            net = food_production(city) - consumption
            new_food = max(0, city.food + net)
            self.manager.update_city(city.id, food=new_food)

            if new_food == 0:
                deserted = int(city.troops.infantry * DESERTION_RATE)
                self.manager.add_city_troops(city.id, "infantry", -deserted)
                self.manager.update_city(city.id, morale=max(0, city.morale - STARVATION_MORALE_PENALTY))
                changes.append(f"{city.name}: food has run out! {deserted} soldiers deserted and morale collapsed.")
            elif new_food < consumption * LOW_FOOD_TURNS:
                changes.append(f"{city.name}: less than {LOW_FOOD_TURNS} turns of food left ({new_food}).")
            else:
                changes.append(f"{city.name}: food {net:+d} this turn ({new_food} in store).")
        return changes
