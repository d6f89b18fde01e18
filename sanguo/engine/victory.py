"""
Victory judge: game-over predicate and final grading.
Both functions are pure; they only read the state they are given.

Grading is an ordered cascade, not a score:
    F  player leader dead or captive, or no cities left
    D  decisive battle not won
    C  decisive battle won
    B  ... and the primary objective city is held
    A  ... and the alliance with the scenario's ally holds
    S  ... and the secondary objective is held and no player general was lost
"""

from dataclasses import dataclass

from sanguo.engine.actions import BATTLE_RESULT
from sanguo.engine.flags import ScenarioFlag
from sanguo.engine.state import (
    Faction,
    GameResult,
    GameState,
    GameStats,
    General,
    GeneralCondition,
    OutcomeGrade,
)


@dataclass
class GameOverCheck:
    is_over: bool
    reason: str | None = None


RESULT_TEXT = {
    OutcomeGrade.S: (
        "Foundation of the Three Kingdoms",
        "Decisive victory, both objectives held, the alliance intact and no general lost.",
    ),
    OutcomeGrade.A: (
        "Master of the Province",
        "The decisive battle is won and the primary objective secured, with the alliance intact.",
    ),
    OutcomeGrade.B: (
        "Hero of the Decisive Battle",
        "The decisive battle is won and the primary objective taken. More was within reach.",
    ),
    OutcomeGrade.C: (
        "A Hollow Victory",
        "The decisive battle is won, but the territory that should follow it was not secured.",
    ),
    OutcomeGrade.D: (
        "Survival in Defeat",
        "The decisive battle was not won, but the cause survives to fight again.",
    ),
}


def _player(state: GameState) -> Faction | None:
    return next((f for f in state.factions if f.is_player), None)


def _leader(state: GameState, faction: Faction | None) -> General | None:
    if faction is None:
        return None
    return next((g for g in state.generals if g.id == faction.leader), None)


def _owner(state: GameState, city_id: str | None) -> str | None:
    city = next((c for c in state.cities if c.id == city_id), None)
    return city.owner if city else None


class VictoryJudge:
    def check_game_over(self, state: GameState) -> GameOverCheck:
        player = _player(state)
        leader = _leader(state, player)
        name = leader.name if leader else "The leader"
        if leader is not None and leader.condition == GeneralCondition.DEAD:
            return GameOverCheck(True, f"{name} has fallen in battle. Game over.")
        if leader is not None and leader.condition == GeneralCondition.CAPTIVE:
            return GameOverCheck(True, f"{name} has been taken prisoner. Game over.")
        if player is None or not any(c.owner == player.id for c in state.cities):
            return GameOverCheck(True, "Every stronghold has been lost. Game over.")
        # Checked before the turn counter advances, so the last turn ends the game
        if state.turn >= state.max_turns:
            return GameOverCheck(True, "The final turn has been reached. Game over.")
        return GameOverCheck(False)

    def judge(self, state: GameState) -> GameResult:
        criteria = state.victory_criteria
        player = _player(state)
        player_id = player.id if player else None
        leader = _leader(state, player)
        stats = self.compute_stats(state)

        if leader is not None and leader.is_lost:
            return GameResult(
                OutcomeGrade.F,
                "Downfall",
                f"{leader.name} has fallen. The dream ends here.",
                stats,
            )
        if player_id is None or not any(c.owner == player_id for c in state.cities):
            return GameResult(
                OutcomeGrade.F,
                "Surrender",
                "Every stronghold is lost. The army fades into history.",
                stats,
            )

        decisive = bool(state.flags.get(ScenarioFlag.DECISIVE_VICTORY.value))
        primary = _owner(state, criteria.get("primary_objective")) == player_id
        secondary = _owner(state, criteria.get("secondary_objective")) == player_id

        if not decisive:
            grade = OutcomeGrade.D
        elif not primary:
            grade = OutcomeGrade.C
        elif not stats.alliance_maintained:
            grade = OutcomeGrade.B
        elif secondary and stats.generals_lost == 0:
            grade = OutcomeGrade.S
        else:
            grade = OutcomeGrade.A

        title, description = RESULT_TEXT[grade]
        return GameResult(grade, title, description, stats)

    def compute_stats(self, state: GameState) -> GameStats:
        criteria = state.victory_criteria
        player = _player(state)
        player_id = player.id if player else None
        initial = set(criteria.get("initial_player_cities") or [])
        ally = criteria.get("ally_faction")

        battles = [
            entry.result.battle_triggered for entry in state.action_log
            if entry.action.type == BATTLE_RESULT and entry.result.battle_triggered is not None
        ]
        results = [b.result for b in battles if b.result is not None]

        return GameStats(
            total_turns=state.turn,
            battles_won=sum(1 for r in results if r.winner == player_id),
            battles_lost=sum(1 for r in results if r.loser == player_id),
            cities_captured=sum(
                1 for c in state.cities if c.owner == player_id and c.id not in initial
            ),
            generals_lost=sum(
                1 for g in state.generals if g.faction == player_id and g.is_lost
            ),
            alliance_maintained=any(
                r.is_alliance and r.involves(player_id, ally)
                for r in state.diplomacy.relations
            ) if ally and player_id else False,
        )
