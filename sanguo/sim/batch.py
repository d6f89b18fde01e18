"""
Batch runner.
Usage: python -m sanguo.sim.batch --count 20 --difficulty hard
"""

import argparse
import logging
from datetime import datetime, timezone

from sanguo.config import DEFAULT_DIFFICULTY, DEFAULT_SCENARIO_ID
from sanguo.sim.config import BatchResult, SimConfig, SimResult
from sanguo.sim.headless import HeadlessSimulator, SimPlayer, TacticSelector, prepare_manager
from sanguo.sim.reporter import compute_stats, format_summary, save_batch_result, save_game_log

logger = logging.getLogger(__name__)


def run_batch(
    config: SimConfig,
    seeds: list[int],
    player: SimPlayer | None = None,
    tactic_selector: TacticSelector | None = None,
) -> BatchResult:
    """
    Play one game per seed. The scenario is loaded and difficulty-adjusted once; every run
    plays on its own clone of that base.
    """
    base = prepare_manager(config)
    results: list[SimResult] = []
    for index, seed in enumerate(seeds, start=1):
        run_config = config.model_copy(update={"seed": seed, "game_id": f"{config.game_id}-{index}"})
        sim = HeadlessSimulator(run_config, player=player, tactic_selector=tactic_selector)
        result = sim.run_game(base.clone())
        logger.info(
            "[%d/%d] seed %d -> %s (%s), %d turns",
            index, len(seeds), seed, result.grade, result.title, result.total_turns,
        )
        results.append(result)

    return BatchResult(
        timestamp=datetime.now(timezone.utc).isoformat(),
        total_games=len(results),
        results=results,
        stats=compute_stats(results),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a batch of headless campaigns")
    parser.add_argument("--count", type=int, default=10)
    parser.add_argument("--seed", type=int, default=0, help="first seed; runs use seed, seed+1, ...")
    parser.add_argument("--scenario", default=DEFAULT_SCENARIO_ID)
    parser.add_argument("--difficulty", default=DEFAULT_DIFFICULTY)
    parser.add_argument("--out", default=None, help="directory for JSON results (not saved if omitted)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    config = SimConfig(
        game_id="batch",
        scenario_id=args.scenario,
        difficulty=args.difficulty,
        verbose=args.verbose,
    )
    batch = run_batch(config, [args.seed + i for i in range(args.count)])
    if args.out:
        for result in batch.results:
            save_game_log(result, args.out)
        print(f"Saved: {save_batch_result(batch, args.out)}")
    print(format_summary(batch.stats, batch.total_games))


if __name__ == "__main__":
    main()
