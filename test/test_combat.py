"""
Tests for the battle engine and the battle resolver.
"""

import pytest

from sanguo.engine import actions
from sanguo.engine.battle_resolver import execute_battle_turn, process_battle_result
from sanguo.engine.combat import BattleEngine, BattleInitParams
from sanguo.engine.errors import BattleError
from sanguo.engine.rng import create_seeded_rng
from sanguo.engine.state import BattleResult, GeneralCondition, Terrain


def _params(**overrides):
    params = dict(
        location="chibi",
        terrain=Terrain.WATER,
        attacker_faction="liu",
        attacker_generals=["guanyu"],
        attacker_troops=5000,
        defender_faction="cao",
        defender_generals=["caimao"],
        defender_troops=5000,
    )
    params.update(overrides)
    return BattleInitParams(**params)


def _tactic_ids(battle):
    return [t.id for t in battle.available_tactics]


def test_init_battle(battle_engine):
    battle = battle_engine.init_battle(_params())
    assert battle.battle_id.startswith("battle-chibi-")
    assert battle.battle_turn == 1
    assert battle.max_battle_turns == 4
    assert battle.attackers.initial_troops == 5000
    assert battle.weather == "clear"
    assert not battle.is_over


def test_available_tactics_follow_terrain_and_weather(battle_engine):
    plain = battle_engine.init_battle(_params(terrain=Terrain.PLAINS, location="nanjun"))
    assert "fire_attack" not in _tactic_ids(plain)
    assert "fire_ships" not in _tactic_ids(plain)

    water = battle_engine.init_battle(_params(weather="southeast wind"))
    assert {"fire_attack", "fire_ships", "frontal_assault"} <= set(_tactic_ids(water))

    chained = battle_engine.init_battle(_params(defender_formation="chain formation"))
    assert "fire_attack" in _tactic_ids(chained)


def test_unknown_tactic_rejected(battle_engine, manager):
    battle = battle_engine.init_battle(_params())
    with pytest.raises(BattleError):
        battle_engine.execute_tactic(battle, "summon_dragon", manager.state.generals)


@pytest.mark.parametrize("seed", [1, 2, 3, 42, 777])
def test_battle_always_ends_within_turn_cap(manager, seed):
    engine = BattleEngine(create_seeded_rng(seed))
    battle = engine.init_battle(_params())
    rounds = 0
    while not battle.is_over:
        engine.execute_tactic(battle, "defend", manager.state.generals, "defend")
        rounds += 1
    assert rounds <= battle.max_battle_turns
    assert battle.result is not None
    with pytest.raises(BattleError):
        engine.execute_tactic(battle, "frontal_assault", manager.state.generals)


def test_fire_in_chain_formation_with_wind_beats_fleet(manager):
    engine = BattleEngine(create_seeded_rng(5))
    battle = engine.init_battle(_params(
        attacker_troops=6000,
        defender_troops=6000,
        weather="southeast wind",
        defender_formation="chain formation",
    ))
    turn = engine.execute_tactic(battle, "fire_attack", manager.state.generals, "frontal_assault")
    assert turn.log.defender_casualties > turn.log.attacker_casualties


def test_crushed_side_loses(battle_engine):
    battle = battle_engine.init_battle(_params())
    battle.defenders.troops = 1000  # 20% of initial
    end = battle_engine.check_battle_end(battle)
    assert end.is_over
    assert end.result.winner == "liu"
    assert end.result.loser == "cao"


def test_decisive_field_victory_sets_flag_and_returns_forces(manager, battle_engine):
    manager.update_general("guanyu", location="chibi")
    manager.update_general("caimao", location="chibi")
    battle = battle_engine.init_battle(_params())
    battle.is_over = True
    battle.result = BattleResult(winner="liu", loser="cao")
    battle.attackers.troops = 4000
    manager.set_battle(battle)
    hagu_infantry = manager.get_city("hagu").troops.infantry

    process_battle_result(battle, manager)
    assert manager.get_flag("decisive_victory") is True
    assert manager.state.active_battle is None
    # Survivors go home to the nearest own city next to the battlefield
    assert manager.get_general("guanyu").location == "hagu"
    assert manager.get_city("hagu").troops.infantry == hagu_infantry + 4000
    assert manager.state.action_log[-1].action.type == "battle_result"
    assert manager.state.action_log[-1].result.success


def test_city_capture_changes_owner(manager, battle_engine):
    battle = battle_engine.init_battle(_params(location="jiangling", terrain=Terrain.PLAINS))
    battle.is_over = True
    battle.result = BattleResult(winner="liu", loser="cao", captured_generals=["caoren"])
    battle.attackers.troops = 3500

    process_battle_result(battle, manager)
    city = manager.get_city("jiangling")
    assert city.owner == "liu"
    assert city.troops.infantry == 3500
    assert city.troops.total == 3500
    assert battle.result.territory_change == "Jiangling"
    assert manager.get_general("caoren").condition == GeneralCondition.CAPTIVE


def test_player_defending_drives_defender_tactic(manager, battle_engine):
    battle = battle_engine.init_battle(_params(
        location="gangha", terrain=Terrain.PLAINS,
        attacker_faction="cao", attacker_generals=["xiahouyuan"],
        defender_faction="liu", defender_generals=["zhangfei"],
    ))
    execute_battle_turn(battle, "defend", manager, battle_engine)
    assert battle.log[0].defender_tactic == "Hold Position"


def _march_into_battle(executor, manager, origin, target, generals):
    result = executor.execute(actions.march("liu", origin, target, generals, "small"))
    assert result.battle_triggered is not None
    battle = manager.state.active_battle
    battle.is_over = True
    return battle


@pytest.mark.parametrize("winner, loser", [("cao", "liu"), (None, None)])
def test_beaten_or_stalled_attackers_go_back_to_origin(executor, manager, winner, loser):
    battle = _march_into_battle(executor, manager, "gangha", "nanjun", ["zhangfei"])
    assert manager.get_general("zhangfei").location == "nanjun"
    battle.result = BattleResult(winner=winner, loser=loser)

    process_battle_result(battle, manager)
    assert manager.get_general("zhangfei").location == "gangha"
    assert manager.get_city("nanjun").owner == "cao"
    assert not manager.state.action_log[-1].result.success
    assert manager.state.active_battle is None


def test_defending_city_keeps_surviving_share_of_troops(executor, manager):
    battle = _march_into_battle(executor, manager, "gangha", "nanjun", ["zhangfei"])
    assert battle.defenders.initial_troops == 23000
    battle.defenders.troops = 11500
    battle.result = BattleResult(winner="cao", loser="liu")

    process_battle_result(battle, manager)
    troops = manager.get_city("nanjun").troops
    assert (troops.infantry, troops.cavalry, troops.navy) == (7500, 2500, 1500)


def test_force_without_friendly_city_stays_on_the_field(executor, manager):
    manager.update_general("caimao", location="chibi")
    battle = _march_into_battle(executor, manager, "hagu", "chibi", ["weiyuan"])
    battle.result = BattleResult(winner="liu", loser="cao")
    sishang_troops = manager.get_city("sishang").troops.total

    process_battle_result(battle, manager)
    # chibi borders Xiakou and Chaisang, neither held by Cao
    assert manager.get_general("caimao").location == "chibi"
    assert manager.get_general("weiyuan").location == "hagu"
    assert manager.get_city("sishang").troops.total == sishang_troops


def test_captive_and_unknown_generals_are_skipped(executor, manager):
    battle = _march_into_battle(executor, manager, "gangha", "nanjun", ["zhangfei", "guanyu"])
    manager.update_general("guanyu", condition=GeneralCondition.CAPTIVE)
    battle.attackers.generals.append("nobody")
    battle.result = BattleResult(winner="cao", loser="liu", captured_generals=["zhangfei", "ghost"])

    process_battle_result(battle, manager)
    assert manager.get_general("guanyu").location == "nanjun"
    assert manager.get_general("zhangfei").location == "gangha"
    assert manager.get_general("zhangfei").condition == GeneralCondition.CAPTIVE
    assert manager.get_general("nobody") is None
    assert manager.state.active_battle is None
