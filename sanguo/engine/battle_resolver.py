"""
Battle turn execution and post-battle bookkeeping.
Shared by the API, the headless simulator and the turn pipeline.
"""

import logging

from sanguo.engine.actions import BATTLE_RESULT, Action
from sanguo.engine.combat import BattleEngine
from sanguo.engine.flags import ScenarioFlag
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.state import (
    ActionLogEntry,
    ActionResult,
    BattleState,
    GeneralCondition,
    Troops,
)

logger = logging.getLogger(__name__)


def execute_battle_turn(
    battle: BattleState,
    tactic_id: str,
    manager: GameStateManager,
    engine: BattleEngine,
) -> bool:
    """
    Run one clash. tactic_id is the player's tactic: it drives the attackers when the
    player attacks, the defenders otherwise (the attacker heuristic drives the other side).
    Returns True when the battle is over.
    """
    generals = manager.state.generals
    player_id = manager.get_player_faction().id

    if battle.attackers.faction == player_id:
        engine.execute_tactic(battle, tactic_id, generals)
    else:
        ai_tactic = engine.select_attacker_tactic(battle)
        engine.execute_tactic(battle, ai_tactic, generals, tactic_id)

    if not battle.is_over:
        end = engine.check_battle_end(battle)
        if end.is_over:
            battle.is_over = True
            battle.result = end.result
    return battle.is_over


def _last_march_origin(manager: GameStateManager) -> str | None:
    for entry in reversed(manager.state.action_log):
        if entry.action.type == "march" and entry.result.battle_triggered is not None:
            return entry.action.payload.get("from")
    return None


def _return_from_battlefield(battle: BattleState, manager: GameStateManager) -> None:
    battlefield = manager.get_battlefield(battle.location)
    for force in (battle.attackers, battle.defenders):
        return_city = next(
            (
                city for city in (manager.get_city(cid) for cid in battlefield.adjacent_cities)
                if city is not None and city.owner == force.faction
            ),
            None,
        )
        if return_city is None:
            # No friendly city nearby: generals stay on the field
            continue
        for general_id in force.generals:
            general = manager.get_general(general_id)
            if (
                general is not None
                and general.condition != GeneralCondition.CAPTIVE
                and general.location == battlefield.id
            ):
                manager.update_general(general_id, location=return_city.id)
        if force.troops > 0:
            manager.add_city_troops(return_city.id, "infantry", force.troops)


def process_battle_result(battle: BattleState, manager: GameStateManager) -> None:
    """
    Apply a finished battle to the world and clear the active-battle slot.
    Call exactly once per battle.
    """
    state = manager.state
    player_id = manager.get_player_faction().id
    result = battle.result
    winner = result.winner if result else None
    loser = result.loser if result else None
    battlefield = manager.get_battlefield(battle.location)
    city = manager.get_city(battle.location)

    if battlefield is not None:
        decisive = state.victory_criteria.get("decisive_battlefield")
        if battlefield.id == decisive and winner == player_id:
            manager.set_flag(ScenarioFlag.DECISIVE_VICTORY, True)
        _return_from_battlefield(battle, manager)
    elif city is not None and winner and winner != city.owner:
        result.territory_change = city.name
        # The winner's surviving troops become the new garrison
        manager.update_city(
            city.id, owner=winner, troops=Troops(infantry=battle.attackers.troops),
        )

    if loser == battle.attackers.faction or winner is None:
        origin = _last_march_origin(manager)
        if origin:
            for general_id in battle.attackers.generals:
                general = manager.get_general(general_id)
                if general is not None and general.condition != GeneralCondition.CAPTIVE:
                    manager.update_general(general_id, location=origin)

    if result:
        for general_id in result.captured_generals:
            if manager.get_general(general_id) is not None:
                manager.update_general(general_id, condition=GeneralCondition.CAPTIVE)

    if city is not None and battle.defenders.faction == city.owner:
        current = city.troops
        if current.total > 0 and battle.defenders.initial_troops > 0:
            ratio = battle.defenders.troops / battle.defenders.initial_troops
            manager.update_city(
                city.id,
                troops=Troops(
                    infantry=int(current.infantry * ratio),
                    cavalry=int(current.cavalry * ratio),
                    navy=int(current.navy * ratio),
                ),
            )

    if result:
        location_name = city.name if city else battlefield.name if battlefield else battle.location
        if winner == player_id:
            description = f"Victory at {location_name}!"
        elif winner is None:
            description = f"The battle at {location_name} ended in a stalemate."
        else:
            description = f"Defeat at {location_name}."
        manager.add_action_log(ActionLogEntry(
            turn=state.turn,
            action=Action(type=BATTLE_RESULT, faction=player_id, payload={"location": battle.location}),
            result=ActionResult(
                success=winner == player_id,
                description=description,
                remaining_actions=state.actions_remaining,
                battle_triggered=battle,
            ),
        ))
        logger.info("Battle %s at %s: winner %s", battle.battle_id, battle.location, winner or "none")

    manager.set_battle(None)
