"""Simulate a batch of expeditions and print a balance report.

Usage:
    python scripts/simulate_runs.py [--runs 1000] [--tier 1] [--level 1] [--agent cautious]
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path

from delve.report import generate_text_report, save_summary, summarize
from delve.sim.play_agents import CautiousAgent, PlayAgent, RandomAgent
from delve.sim.runner import BatchRunner

_AGENTS: dict[str, type[PlayAgent]] = {
    "random": RandomAgent,
    "cautious": CautiousAgent,
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate dungeon expeditions")
    parser.add_argument("--runs", type=int, default=1_000, help="Number of runs")
    parser.add_argument("--tier", type=int, default=1, help="Dungeon tier (1-8)")
    parser.add_argument("--level", type=int, default=1, help="Player level")
    parser.add_argument("--agent", choices=sorted(_AGENTS), default="cautious")
    parser.add_argument("--seed", type=int, default=42, help="Base seed")
    parser.add_argument("--parallel", action="store_true", help="Use all CPU cores")
    parser.add_argument("--output", type=str, default=None, help="Write the summary JSON here")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    runner = BatchRunner(agent_class=_AGENTS[args.agent])

    print(f"Running {args.runs:,} expeditions on tier {args.tier}...")
    t0 = time.perf_counter()
    telemetry = runner.run_batch(
        args.runs, args.tier, args.level, base_seed=args.seed, parallel=args.parallel,
    )
    elapsed = time.perf_counter() - t0
    print(f"Done in {elapsed:.1f}s")

    summary = summarize(telemetry, agent=args.agent, tier=args.tier, player_level=args.level)
    if args.output:
        path = Path(args.output)
        save_summary(summary, path)
        print(f"Saved summary to {path}")

    print()
    print(generate_text_report(summary))


if __name__ == "__main__":
    main()
