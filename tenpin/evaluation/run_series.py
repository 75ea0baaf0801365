"""
Series Harness
==============

Plays complete series with an automated bowler on a list of seeds and
summarizes the resulting averages.

Usage:
    python -m tenpin.evaluation.run_series --bowler bowlers/baseline_center --seeds 1 2 3
"""

from __future__ import annotations

import argparse
import importlib.util
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import numpy as np

from tenpin.lane_core.env_gym import BowlingEnv
from tenpin.lane_core.scorekeeper import GameMode

logger = logging.getLogger(__name__)

DEFAULT_SEEDS = [0, 1, 2, 3, 4]

# Far more throws than any series can need (21 per game per player)
MAX_THROWS_PER_SERIES = 1000


@dataclass
class SeriesResult:
    """Result for a single seed."""
    seed: int
    player_averages: List[int]
    game_scores: List[List[int]]
    combined_average: int
    throws: int
    completed: bool
    elapsed_time: float


@dataclass
class SeriesSummary:
    """Summary of series play across all seeds."""
    mean_average: float
    std_average: float
    min_average: int
    max_average: int
    median_average: float
    total_time: float
    results: List[SeriesResult]


def load_bowler(bowler_path: str) -> Callable:
    """
    Load a bowler from a path.

    Args:
        bowler_path: Path to bowler directory or agent.py file.

    Returns:
        Bowler's act function (obs) -> (aim, power).
    """
    bowler_path = Path(bowler_path)

    if bowler_path.is_dir():
        agent_file = bowler_path / "agent.py"
    else:
        agent_file = bowler_path

    if not agent_file.exists():
        raise FileNotFoundError(f"Bowler file not found: {agent_file}")

    spec = importlib.util.spec_from_file_location("bowler_module", agent_file)
    if spec is None or spec.loader is None:
        raise ImportError(f"Failed to load bowler module from {agent_file}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["bowler_module"] = module
    spec.loader.exec_module(module)

    if hasattr(module, "BowlerAgent"):
        bowler = module.BowlerAgent()
        if hasattr(bowler, "act"):
            return bowler.act
        raise AttributeError("BowlerAgent class must have an 'act' method")

    if hasattr(module, "act"):
        return module.act

    raise AttributeError(
        "Bowler module must have either 'BowlerAgent' class with 'act' method "
        "or standalone 'act' function"
    )


def play_series(
    bowler_fn: Callable,
    seed: int,
    mode: GameMode = GameMode.SINGLES,
    verbose: bool = False
) -> SeriesResult:
    """
    Play one complete series.

    Args:
        bowler_fn: Bowler's act function (obs) -> (aim, power).
        seed: Random seed for the lane.
        mode: Roster mode; the same bowler throws for every player.
        verbose: If True, print the per-seed line.

    Returns:
        SeriesResult for this seed.
    """
    env = BowlingEnv(mode=mode)
    obs, info = env.reset(seed=seed)

    start_time = time.time()
    throws = 0
    terminated = False
    while not terminated and throws < MAX_THROWS_PER_SERIES:
        action = np.asarray(bowler_fn(obs), dtype=np.float32)
        obs, _, terminated, truncated, info = env.step(action)
        throws += 1
        if truncated:
            logger.warning("Seed %d: throw %d did not resolve, abandoning series", seed, throws)
            break

    elapsed = time.time() - start_time

    summary = env.game.scorekeeper.summary()
    result = SeriesResult(
        seed=seed,
        player_averages=[row["average"] for row in summary],
        game_scores=[[game["total_score"] for game in row["games"]] for row in summary],
        combined_average=info["combined_average"],
        throws=throws,
        completed=terminated,
        elapsed_time=elapsed
    )

    env.close()

    if verbose:
        print(f"  Seed {seed}: averages={result.player_averages}, "
              f"throws={throws}, time={elapsed:.2f}s")

    return result


def evaluate_bowler(
    bowler_fn: Callable,
    seeds: Optional[Sequence[int]] = None,
    mode: GameMode = GameMode.SINGLES,
    verbose: bool = True
) -> SeriesSummary:
    """
    Play one series per seed and aggregate the player averages.

    Args:
        bowler_fn: Bowler's act function (obs) -> (aim, power).
        seeds: Seeds to play. Uses DEFAULT_SEEDS if None.
        mode: Roster mode.
        verbose: If True, print progress.

    Returns:
        SeriesSummary with aggregate statistics over every player average.
    """
    if seeds is None:
        seeds = DEFAULT_SEEDS
    seeds = list(seeds)
    if not seeds:
        raise ValueError("At least one seed is required")

    if verbose:
        print(f"Playing {GameMode(mode).value} series on {len(seeds)} seeds...")

    results: List[SeriesResult] = []
    total_start = time.time()

    for i, seed in enumerate(seeds):
        if verbose:
            print(f"[{i+1}/{len(seeds)}] Running seed {seed}...")
        results.append(play_series(bowler_fn, seed, mode=mode, verbose=verbose))

    total_time = time.time() - total_start

    averages = [avg for r in results for avg in r.player_averages]

    summary = SeriesSummary(
        mean_average=float(np.mean(averages)),
        std_average=float(np.std(averages)),
        min_average=int(min(averages)),
        max_average=int(max(averages)),
        median_average=float(np.median(averages)),
        total_time=total_time,
        results=results
    )

    if verbose:
        print()
        print("=" * 50)
        print("SERIES SUMMARY")
        print("=" * 50)
        print(f"Seeds played:    {len(seeds)}")
        print(f"Mean average:    {summary.mean_average:.2f}")
        print(f"Std deviation:   {summary.std_average:.2f}")
        print(f"Min average:     {summary.min_average}")
        print(f"Max average:     {summary.max_average}")
        print(f"Median average:  {summary.median_average:.2f}")
        print(f"Total time:      {total_time:.2f}s")
        print("=" * 50)

    return summary


def save_results(
    summary: SeriesSummary,
    bowler_name: str,
    output_path: str
) -> None:
    """Save series results to JSON."""
    data = {
        "bowler": bowler_name,
        "timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        "mean_average": summary.mean_average,
        "std_average": summary.std_average,
        "min_average": summary.min_average,
        "max_average": summary.max_average,
        "median_average": summary.median_average,
        "total_time": summary.total_time,
        "results": [
            {
                "seed": r.seed,
                "player_averages": r.player_averages,
                "game_scores": r.game_scores,
                "combined_average": r.combined_average,
                "throws": r.throws,
                "completed": r.completed,
                "elapsed_time": r.elapsed_time
            }
            for r in summary.results
        ]
    }

    with open(output_path, "w") as f:
        json.dump(data, f, indent=2)

    print(f"Results saved to {output_path}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Play bowling series with an automated bowler")
    parser.add_argument(
        "--bowler",
        type=str,
        required=True,
        help="Path to bowler directory or agent.py file"
    )
    parser.add_argument(
        "--seeds",
        type=int,
        nargs="+",
        default=None,
        help="Seeds to play (default: 0 1 2 3 4)"
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in GameMode],
        default=GameMode.SINGLES.value,
        help="Roster mode"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Path to save results JSON"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce output verbosity"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging from the lane core"
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    print(f"Loading bowler from {args.bowler}...")
    try:
        bowler_fn = load_bowler(args.bowler)
    except (FileNotFoundError, ImportError, AttributeError) as e:
        print(f"Error loading bowler: {e}")
        return 1

    summary = evaluate_bowler(
        bowler_fn,
        seeds=args.seeds,
        mode=GameMode(args.mode),
        verbose=not args.quiet
    )

    if args.output:
        bowler_name = Path(args.bowler).name
        save_results(summary, bowler_name, args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
