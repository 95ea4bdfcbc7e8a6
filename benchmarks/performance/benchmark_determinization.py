"""
Benchmark determinization sampling and ensemble decision throughput.

Measures how the cost of a decision scales with the number of sampled
worlds, with and without biased sampling and parallel Oracle calls. The
Oracle is a cheap one-ply lookahead over the agent's value function so the
numbers reflect sampling, copying and evaluation overhead rather than a
real search.

Usage:
    python benchmarks/performance/benchmark_determinization.py
    python benchmarks/performance/benchmark_determinization.py --players 5 --decisions 200
    python benchmarks/performance/benchmark_determinization.py --quick

Output:
    - Console: Progress updates and results table
    - CSV: benchmark_determinization_results.csv
"""

import argparse
import csv
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Tuple

import psutil

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from sushibot.agent import DeterminizationAgent
from sushibot.config import AgentConfig
from sushibot.game.constants import CardType
from sushibot.game.state import SushiGoState
from sushibot.heuristics.evaluator import PRESETS
from sushibot.mcts import determinization

logger = logging.getLogger(__name__)

# Test configurations: (name, num_determinizations, use_parallel, biased)
DEFAULT_CONFIGS = [
    ("single", 1, False, False),
    ("default", 5, False, False),
    ("default-biased", 5, False, True),
    ("strong", 10, False, False),
    ("strong-parallel", 10, True, False),
    ("max", 20, False, False),
    ("max-parallel", 20, True, False),
]
QUICK_CONFIGS = [
    ("default", 5, False, False),
    ("max-parallel", 20, True, False),
]

BIAS_WEIGHTS = {"Wasabi": 3.0, "Chopsticks": 2.0, "Pudding": 2.0}


class OnePlyOracle:
    """Scores each legal pick by playing it in the world and evaluating."""

    def __init__(self, value_fn, params):
        self.value_fn = value_fn
        self.params = params

    def search(self, world, legal_actions):
        player_id = world.current_player
        best, best_value = legal_actions[0], float("-inf")
        for card in legal_actions:
            after = world.copy()
            hand = list(after.get_hand(player_id))
            hand.remove(card)
            after.set_player_hand(player_id, hand)
            after.played[player_id].append(card)
            value = self.value_fn(after, player_id)
            if value > best_value:
                best, best_value = card, value
        return best


def make_positions(num_players: int, count: int, seed: int) -> List[Tuple[SushiGoState, List[CardType]]]:
    """
    Build observed decision points from freshly dealt rounds.

    Args:
        num_players: Players at the table
        count: Number of positions
        seed: Base deal seed

    Returns:
        List of (observed_state, legal_actions)
    """
    positions = []
    for i in range(count):
        state = SushiGoState.new_round(num_players=num_players, seed=seed + i)
        view = state.observed_by(i % num_players)
        legal = list(dict.fromkeys(view.get_hand(view.current_player)))
        positions.append((view, legal))
    return positions


def benchmark_config(
    config_name: str,
    num_determinizations: int,
    use_parallel: bool,
    biased: bool,
    positions: List[Tuple[SushiGoState, List[CardType]]],
    preset: str,
    max_workers: int = None,
) -> Dict[str, Any]:
    """
    Benchmark one agent configuration over a fixed set of positions.

    Args:
        config_name: Human-readable config name
        num_determinizations: Worlds per decision
        use_parallel: Run Oracle calls on a thread pool
        biased: Use BIAS_WEIGHTS when sampling
        positions: Decision points to play
        preset: Heuristic preset name
        max_workers: Thread pool size for parallel mode

    Returns:
        Dictionary with performance metrics
    """
    print(f"\n{'='*70}")
    print(f"Testing: {config_name}")
    print(f"  - Determinizations: {num_determinizations}")
    print(f"  - Parallel: {use_parallel} (workers={max_workers})")
    print(f"  - Biased sampling: {biased}")
    print(f"  - Decisions: {len(positions)}")
    print(f"{'='*70}")

    config = AgentConfig(
        num_determinizations=num_determinizations,
        bias_weights=dict(BIAS_WEIGHTS) if biased else {},
        heuristic_preset=preset,
        use_parallel=use_parallel,
        max_workers=max_workers,
        seed=0,
    )
    agent = DeterminizationAgent(OnePlyOracle, config)

    determinization.reset_metrics()
    agreements = []

    cpu_percent_before = psutil.cpu_percent(interval=0.5)
    start_time = time.time()

    try:
        for state, legal in positions:
            _, details = agent.ensemble.decide_with_details(state, legal)
            agreements.append(details['agreement'])
    except (ValueError, RuntimeError) as e:
        logger.error(f"{config_name} failed: {e}")
        return {
            "config": config_name,
            "num_determinizations": num_determinizations,
            "error": str(e),
        }

    elapsed_time = time.time() - start_time
    cpu_percent_after = psutil.cpu_percent(interval=0.5)

    sampling = determinization.get_metrics()
    decisions = len(positions)
    metrics = {
        "config": config_name,
        "num_determinizations": num_determinizations,
        "use_parallel": use_parallel,
        "biased": biased,
        "decisions": decisions,
        "elapsed_time_sec": elapsed_time,
        "ms_per_decision": elapsed_time / decisions * 1000.0,
        "decisions_per_sec": decisions / elapsed_time if elapsed_time > 0 else 0.0,
        "avg_sample_ms": sampling['avg_sample_ms'],
        "shortfall_rate": sampling['shortfall_rate'],
        "mean_agreement": sum(agreements) / len(agreements) if agreements else 0.0,
        "cpu_percent": (cpu_percent_before + cpu_percent_after) / 2.0,
        "rss_mb": psutil.Process().memory_info().rss / (1024 * 1024),
    }

    print(f"\nResults:")
    print(f"  - ms/decision: {metrics['ms_per_decision']:.2f}")
    print(f"  - Sampling: {metrics['avg_sample_ms']:.3f} ms/world")
    print(f"  - Mean agreement: {metrics['mean_agreement']:.2f}")
    print(f"  - CPU utilization: {metrics['cpu_percent']:.1f}%")

    return metrics


def save_results_csv(results: List[Dict[str, Any]], filepath: str):
    """
    Save benchmark results to CSV.

    Args:
        results: List of benchmark result dictionaries
        filepath: Output CSV path
    """
    valid_results = [r for r in results if "error" not in r]
    if not valid_results:
        print("No valid results to save")
        return

    with open(filepath, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(valid_results[0].keys()))
        writer.writeheader()
        writer.writerows(valid_results)

    print(f"\nResults saved to: {filepath}")


def print_results_table(results: List[Dict[str, Any]]):
    """
    Print results in a formatted table.

    Args:
        results: List of benchmark result dictionaries
    """
    print(f"\n\n{'='*80}")
    print("BENCHMARK RESULTS SUMMARY")
    print(f"{'='*80}\n")

    valid_results = [r for r in results if "error" not in r]
    if not valid_results:
        print("No valid results to display")
        return

    print(f"{'Config':<18} {'Worlds':<8} {'ms/Dec':<10} {'ms/World':<10} {'Agree':<8} {'CPU%':<8}")
    print("-" * 80)
    for r in valid_results:
        print(f"{r['config']:<18} "
              f"{r['num_determinizations']:<8} "
              f"{r['ms_per_decision']:<10.2f} "
              f"{r['avg_sample_ms']:<10.3f} "
              f"{r['mean_agreement']:<8.2f} "
              f"{r['cpu_percent']:<8.1f}")
    print("-" * 80)

    error_results = [r for r in results if "error" in r]
    if error_results:
        print(f"\n  ERRORS: {len(error_results)} configurations failed")
        for r in error_results:
            print(f"    - {r['config']}: {r['error']}")


def main():
    """Run determinization benchmark."""
    parser = argparse.ArgumentParser(description="Benchmark determinization ensemble performance")
    parser.add_argument(
        "--players",
        type=int,
        default=4,
        choices=[2, 3, 4, 5],
        help="Players at the table (default: 4)",
    )
    parser.add_argument(
        "--decisions",
        type=int,
        default=50,
        help="Decisions per configuration (default: 50)",
    )
    parser.add_argument(
        "--preset",
        type=str,
        default="balanced",
        choices=sorted(PRESETS),
        help="Heuristic preset (default: balanced)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Thread pool size for parallel configs (default: executor default)",
    )
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Quick test with fewer configurations",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Base seed for dealt positions",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="benchmark_determinization_results.csv",
        help="Output CSV path",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    configs = QUICK_CONFIGS if args.quick else DEFAULT_CONFIGS
    decisions = min(args.decisions, 10) if args.quick else args.decisions

    print("\n" + "="*80)
    print("DETERMINIZATION ENSEMBLE BENCHMARK")
    print("="*80)
    print(f"Players: {args.players}")
    print(f"Configs: {[c[0] for c in configs]}")
    print(f"Decisions per config: {decisions}")
    print(f"Preset: {args.preset}")
    print("="*80)

    positions = make_positions(args.players, decisions, args.seed)

    determinization.enable_metrics(True)
    results = []
    for config_name, num_det, use_parallel, biased in configs:
        results.append(
            benchmark_config(
                config_name,
                num_det,
                use_parallel,
                biased,
                positions,
                args.preset,
                max_workers=args.workers,
            )
        )
    determinization.enable_metrics(False)

    save_results_csv(results, args.output)
    print_results_table(results)

    print(f"\n{'='*80}")
    print("BENCHMARK COMPLETE")
    print(f"{'='*80}\n")


if __name__ == "__main__":
    main()
