"""
Batch statistics and result files.
"""

import json
import os
import re

from sanguo.engine.flags import ScenarioFlag
from sanguo.sim.config import BatchResult, BatchStats, SimResult

GRADE_SCORES = {"S": 6, "A": 5, "B": 4, "C": 3, "D": 2, "F": 1}
GRADE_ORDER = ("S", "A", "B", "C", "D", "F")

DEFAULT_RESULTS_DIR = os.path.join("sim", "results")


def _won_decisive_battle(result: SimResult) -> bool:
    return result.flags.get(ScenarioFlag.DECISIVE_VICTORY.value) is True


def compute_stats(results: list[SimResult]) -> BatchStats:
    distribution: dict[str, int] = {}
    for r in results:
        distribution[r.grade] = distribution.get(r.grade, 0) + 1
    if not results:
        return BatchStats(distribution, 0.0, 0.0, 0.0, 0.0)

    count = len(results)
    return BatchStats(
        grade_distribution=distribution,
        win_rate=sum(1 for r in results if _won_decisive_battle(r)) / count,
        avg_turns=sum(r.total_turns for r in results) / count,
        avg_duration=sum(r.duration for r in results) / count,
        avg_grade=sum(GRADE_SCORES.get(r.grade, 0) for r in results) / count,
    )


def save_batch_result(result: BatchResult, directory: str = DEFAULT_RESULTS_DIR) -> str:
    """Write the batch as JSON and return the file path."""
    os.makedirs(directory, exist_ok=True)
    stamp = re.sub(r"[:.]", "-", result.timestamp)
    path = os.path.join(directory, f"batch-{stamp}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
    return path


def save_game_log(result: SimResult, directory: str = DEFAULT_RESULTS_DIR) -> str:
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"game-{result.game_id}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
    return path


def format_summary(stats: BatchStats, total_games: int) -> str:
    lines = [
        "=" * 40,
        "  Campaign simulation summary",
        "=" * 40,
        "",
        f"Games: {total_games}",
        "",
        "Grades:",
    ]
    for grade in GRADE_ORDER:
        count = stats.grade_distribution.get(grade, 0)
        if count > 0:
            lines.append(f"  {grade}: {'#' * count} ({count})")
    lines += [
        "",
        f"Decisive battle won: {stats.win_rate * 100:.1f}%",
        f"Average grade score: {stats.avg_grade:.2f}",
        f"Average turns: {stats.avg_turns:.1f}",
        f"Average duration: {stats.avg_duration:.2f}s",
    ]
    return "\n".join(lines)
