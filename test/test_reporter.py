"""
Tests for batch statistics and result files.
"""

import json
import os

from sanguo.sim.config import BatchResult, SimResult
from sanguo.sim.reporter import compute_stats, format_summary, save_batch_result, save_game_log


def _result(game_id, grade, turns, decisive=False):
    return SimResult(
        game_id=game_id,
        seed=0,
        difficulty="normal",
        grade=grade,
        title="",
        total_turns=turns,
        duration=0.5,
        flags={"decisive_victory": True} if decisive else {},
    )


def test_stats():
    results = [_result("a", "S", 20, decisive=True), _result("b", "D", 10), _result("c", "D", 12)]
    stats = compute_stats(results)
    assert stats.grade_distribution == {"S": 1, "D": 2}
    assert stats.win_rate == 1 / 3
    assert stats.avg_turns == 14
    assert stats.avg_grade == (6 + 2 + 2) / 3
    assert stats.avg_duration == 0.5


def test_stats_for_no_games():
    stats = compute_stats([])
    assert stats.grade_distribution == {}
    assert stats.win_rate == 0.0


def test_truthy_flag_is_not_a_win():
    stats = compute_stats([SimResult("a", 0, "normal", "C", "", 20, 0.1, flags={"decisive_victory": "yes"})])
    assert stats.win_rate == 0.0


def test_save_files(tmp_path):
    results = [_result("x-1", "C", 20, decisive=True)]
    batch = BatchResult("2026-01-02T03:04:05.678+00:00", 1, results, compute_stats(results))
    path = save_batch_result(batch, str(tmp_path))
    assert os.path.basename(path) == "batch-2026-01-02T03-04-05-678+00-00.json"
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["total_games"] == 1
    assert data["stats"]["win_rate"] == 1.0

    game_path = save_game_log(results[0], str(tmp_path / "games"))
    assert game_path.endswith("game-x-1.json")
    with open(game_path, encoding="utf-8") as f:
        assert json.load(f)["grade"] == "C"


def test_summary():
    results = [_result("a", "A", 20, decisive=True), _result("b", "F", 4)]
    text = format_summary(compute_stats(results), 2)
    assert "Games: 2" in text
    assert "  A: # (1)" in text
    assert "  F: # (1)" in text
    assert "Decisive battle won: 50.0%" in text
    assert "  B:" not in text
