"""
Tests for the game-over check and the grading cascade.
"""

from sanguo.engine.state import GeneralCondition, OutcomeGrade
from sanguo.engine.victory import VictoryJudge


def _grade(manager):
    return VictoryJudge().judge(manager.state).grade


def _win_decisive_battle(manager):
    manager.set_flag("decisive_victory", True)


def test_no_decisive_victory_is_d(manager):
    assert _grade(manager) == OutcomeGrade.D


def test_grade_cascade(manager):
    _win_decisive_battle(manager)
    assert _grade(manager) == OutcomeGrade.C

    manager.update_city("nanjun", owner="liu")
    assert _grade(manager) == OutcomeGrade.B

    manager.update_relation("liu", "sun", value=85, is_alliance=True)
    assert _grade(manager) == OutcomeGrade.A

    manager.update_city("jiangling", owner="liu")
    assert _grade(manager) == OutcomeGrade.S


def test_lost_general_blocks_s(manager):
    _win_decisive_battle(manager)
    manager.update_city("nanjun", owner="liu")
    manager.update_city("jiangling", owner="liu")
    manager.update_relation("liu", "sun", value=85, is_alliance=True)
    manager.update_general("weiyuan", condition=GeneralCondition.DEAD)
    result = VictoryJudge().judge(manager.state)
    assert result.grade == OutcomeGrade.A
    assert result.stats.generals_lost == 1


def test_leader_lost_is_f_and_over(manager):
    manager.update_general("liubei", condition=GeneralCondition.CAPTIVE)
    judge = VictoryJudge()
    check = judge.check_game_over(manager.state)
    assert check.is_over
    assert "prisoner" in check.reason
    assert judge.judge(manager.state).grade == OutcomeGrade.F


def test_no_cities_left_is_f(manager):
    manager.update_city("gangha", owner="cao")
    manager.update_city("hagu", owner="cao")
    judge = VictoryJudge()
    assert judge.check_game_over(manager.state).is_over
    assert judge.judge(manager.state).title == "Surrender"


def test_turn_limit(manager):
    judge = VictoryJudge()
    assert not judge.check_game_over(manager.state).is_over
    for _ in range(manager.state.max_turns - 1):
        manager.advance_turn()
    assert manager.state.turn == 20
    assert judge.check_game_over(manager.state).is_over


def test_stats_count_captured_cities_and_alliance(manager):
    manager.update_city("nanjun", owner="liu")
    stats = VictoryJudge().compute_stats(manager.state)
    assert stats.cities_captured == 1
    assert stats.alliance_maintained is False
    assert stats.total_turns == 1
    assert stats.battles_won == 0
