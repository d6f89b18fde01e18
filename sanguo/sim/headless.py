"""
Headless simulator.
Plays one complete campaign with a seeded rng: player actions from an optional SimPlayer,
battles auto-resolved by a TacticSelector, everything else by the engine itself.
"""

import logging
import time
from typing import Protocol

from sanguo.engine.actions import Action
from sanguo.engine.battle_resolver import execute_battle_turn, process_battle_result
from sanguo.engine.combat import BattleEngine
from sanguo.engine.definitions import create_scenario_state, load_event_catalog, load_strategies
from sanguo.engine.difficulty import apply_difficulty_modifier
from sanguo.engine.event_system import EventSystem
from sanguo.engine.executor import ActionExecutor
from sanguo.engine.faction_ai import FactionAIEngine
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.rng import create_seeded_rng
from sanguo.engine.state import BattleState, GameState
from sanguo.engine.turns import TurnManager
from sanguo.engine.victory import VictoryJudge
from sanguo.sim.config import (
    ActionRecord,
    BattleLog,
    BattleTurnRecord,
    SimConfig,
    SimResult,
    TurnLog,
)

logger = logging.getLogger(__name__)

# Most decisive first
TACTIC_PREFERENCE = ("fire_attack", "fire_ships", "ambush", "feigned_retreat", "charge")
DEFAULT_TACTIC = "frontal_assault"


def select_tactic_by_rule(battle: BattleState) -> str:
    available = {t.id for t in battle.available_tactics}
    for tactic_id in TACTIC_PREFERENCE:
        if tactic_id in available:
            return tactic_id
    return DEFAULT_TACTIC


class TacticSelector(Protocol):
    def __call__(self, battle: BattleState) -> str:
        ...


class SimPlayer(Protocol):
    """Decides the player's actions for a turn. Without one the player passes every turn."""

    def plan_turn(self, state: GameState, config: SimConfig) -> list[Action]:
        ...


def prepare_manager(config: SimConfig) -> GameStateManager:
    """Fresh scenario state with the configured difficulty applied."""
    state = create_scenario_state(config.scenario_id, game_id=f"sim-{config.game_id}")
    apply_difficulty_modifier(state, config.difficulty)
    return GameStateManager(state)


class HeadlessSimulator:
    def __init__(
        self,
        config: SimConfig,
        player: SimPlayer | None = None,
        tactic_selector: TacticSelector | None = None,
    ):
        self.config = config
        self.player = player
        self.tactic_selector = tactic_selector or select_tactic_by_rule

    def run_game(self, manager: GameStateManager | None = None) -> SimResult:
        """Play to the end. A prepared manager (e.g. a clone) may be passed in; it is mutated."""
        started = time.perf_counter()
        config = self.config
        manager = manager or prepare_manager(config)

        rng = create_seeded_rng(config.seed)
        battle_engine = BattleEngine(rng)
        executor = ActionExecutor(manager, battle_engine, rng)
        event_system = EventSystem(load_event_catalog(config.scenario_id), rng)
        ai_engine = FactionAIEngine(manager, executor, rng, load_strategies(config.scenario_id))
        turns = TurnManager(manager, event_system, VictoryJudge(), ai_engine)

        turn_logs: list[TurnLog] = []
        turns.start_turn()
        for _ in range(config.turn_limit):
            state = manager.state
            if state.game_over:
                break
            turn_log = TurnLog(turn=state.turn, phase=state.phase.value)

            if self.player is not None:
                for action in self.player.plan_turn(manager.snapshot(), config):
                    if manager.state.actions_remaining <= 0:
                        break
                    result = executor.execute(action)
                    turn_log.actions.append(ActionRecord(action, result.success, result.description))
                    if result.battle_triggered is not None:
                        turn_log.battles.append(
                            self._resolve_battle(result.battle_triggered, manager, battle_engine)
                        )

            end = turns.end_turn()
            turn_log.events = [e.description or e.event_id for e in end.events]
            turn_log.ai_actions = list(end.state_changes)
            if end.ai_initiated_battle is not None and not end.game_over:
                manager.set_battle(end.ai_initiated_battle)
                turn_log.battles.append(
                    self._resolve_battle(end.ai_initiated_battle, manager, battle_engine)
                )
            turn_logs.append(turn_log)

            if config.verbose:
                grade = end.result.grade.value if end.result else "-"
                logger.info(
                    "turn %s: %d actions, %d battles, %d events%s",
                    turn_log.turn, len(turn_log.actions), len(turn_log.battles), len(turn_log.events),
                    f" [game over: {grade}]" if end.game_over else "",
                )
            if end.game_over:
                break
            turns.start_turn()

        final = manager.state
        result = final.result
        return SimResult(
            game_id=config.game_id,
            seed=config.seed,
            difficulty=config.difficulty,
            grade=result.grade.value if result else "F",
            title=result.title if result else "Unknown",
            total_turns=result.stats.total_turns if result else final.turn,
            duration=time.perf_counter() - started,
            flags=dict(final.flags),
            turn_logs=turn_logs,
            final_state={
                "cities": [
                    {"id": c.id, "owner": c.owner, "troops": c.troops.total} for c in final.cities
                ],
                "generals": [
                    {"id": g.id, "faction": g.faction, "condition": g.condition.value, "location": g.location}
                    for g in final.generals
                ],
            },
        )

    def _resolve_battle(
        self,
        battle: BattleState,
        manager: GameStateManager,
        engine: BattleEngine,
    ) -> BattleLog:
        log = BattleLog(
            location=battle.location,
            attacker=battle.attackers.faction,
            defender=battle.defenders.faction,
        )
        while not battle.is_over:
            tactic = self.tactic_selector(battle)
            over = execute_battle_turn(battle, tactic, manager, engine)
            log.turns.append(BattleTurnRecord(tactic, battle.attackers.troops, battle.defenders.troops))
            if over:
                break
        log.result = battle.result
        process_battle_result(battle, manager)
        return log
