"""
Main entry point for the Red Cliffs campaign engine.
Plays one seeded campaign with a simple scripted player and prints a turn-by-turn summary.

Usage: python main.py [seed] [difficulty]
"""

import logging
import sys

from sanguo.config import DEFAULT_DIFFICULTY, DEFAULT_SEED
from sanguo.engine.actions import Action, assign, conscript, march, send_envoy, train
from sanguo.engine.state import GameState, GeneralCondition
from sanguo.sim.config import SimConfig
from sanguo.sim.headless import HeadlessSimulator

PLAYER = "liu"
ALLY = "sun"
HOME = "gangha"
FRONT = "hagu"
BATTLEFIELD = "chibi"
OBJECTIVE = "nanjun"
FLEET_COMMANDERS = ("guanyu", "zhugeliang")


def _fit_at(state: GameState, location: str) -> list[str]:
    leader = next(f.leader for f in state.factions if f.id == PLAYER)
    return [
        g.id for g in state.generals
        if g.faction == PLAYER and g.location == location
        and g.condition == GeneralCondition.FIT and g.id != leader
    ]


class RedCliffsScript:
    """Alliance first, then the fleet at Red Cliffs, then Nanjun."""

    def plan_turn(self, state: GameState, config: SimConfig) -> list[Action]:
        relation = next(r for r in state.diplomacy.relations if r.involves(PLAYER, ALLY))
        if not relation.is_alliance:
            return [send_envoy(PLAYER, ALLY), send_envoy(PLAYER, ALLY), train(PLAYER, HOME)]

        if not state.flags.get("decisive_victory"):
            actions = [
                assign(PLAYER, gid, FRONT) for gid in FLEET_COMMANDERS if gid in _fit_at(state, HOME)
            ]
            enemy_on_field = any(
                g.faction == "cao" and g.location == BATTLEFIELD for g in state.generals
            )
            at_front = _fit_at(state, FRONT)
            if enemy_on_field and at_front and state.turn >= 10:
                actions.append(march(PLAYER, FRONT, BATTLEFIELD, at_front, "main"))
            actions += [train(PLAYER, FRONT), conscript(PLAYER, HOME, "small")]
            return actions[:3]

        at_home = _fit_at(state, HOME)
        if at_home:
            return [march(PLAYER, HOME, OBJECTIVE, at_home, "main")]
        return [train(PLAYER, HOME)]


def main():
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_SEED
    difficulty = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_DIFFICULTY
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    print("Red Cliffs Campaign Engine - seeded demo")
    print("=" * 60)
    config = SimConfig(game_id="demo", seed=seed, difficulty=difficulty)
    result = HeadlessSimulator(config, player=RedCliffsScript()).run_game()

    for log in result.turn_logs:
        print(f"\n[TURN {log.turn}] ({log.phase})")
        for record in log.actions:
            mark = "+" if record.success else "x"
            print(f"  {mark} {record.action.type}: {record.description}")
        for battle in log.battles:
            winner = battle.result.winner if battle.result else None
            print(
                f"  ! Battle at {battle.location}: {battle.attacker} vs {battle.defender}, "
                f"{len(battle.turns)} rounds, winner: {winner or 'none'}"
            )
        for event in log.events:
            print(f"  * {event}")
        for change in log.ai_actions:
            print(f"  - {change}")

    print("\n" + "=" * 60)
    print(f"Grade {result.grade}: {result.title}")
    print(f"Turns played: {result.total_turns}  (seed {result.seed}, {result.difficulty})")
    for city in result.final_state["cities"]:
        print(f"  {city['id']:<10} owner={str(city['owner']):<5} troops={city['troops']}")


if __name__ == "__main__":
    main()
