"""Batch summaries and report generation for headless expedition runs.

``summarize`` folds a list of :class:`RunTelemetry` into a
:class:`BatchSummary` (a Pydantic model, serializable to/from JSON), and
``generate_text_report`` renders it for the terminal.
"""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path

from pydantic import BaseModel

from delve.sim.telemetry import RunTelemetry


class AffixMetrics(BaseModel):
    """How runs carrying one affix fared."""

    affix: str
    runs: int
    completion_rate: float
    avg_final_gold: float


class BatchSummary(BaseModel):
    """Aggregate statistics of one batch of runs."""

    agent: str
    tier: int
    player_level: int
    total_runs: int
    status_counts: dict[str, int]
    completion_rate: float
    """Share of runs that defeated the boss."""
    goal_completion_rate: float
    avg_rooms_visited: float
    avg_torches_left: float
    avg_exploration_points: float
    avg_multiplier: float
    avg_final_gold: float
    avg_final_exp: float
    avg_items: float
    rank_counts: dict[str, int]
    affix_metrics: list[AffixMetrics] = []


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def summarize(
    telemetry: list[RunTelemetry], agent: str, tier: int, player_level: int,
) -> BatchSummary:
    """Aggregate batch telemetry into a :class:`BatchSummary`."""
    total = len(telemetry)
    completed = [t for t in telemetry if t.status == "completed"]

    by_affix: dict[str, list[RunTelemetry]] = {}
    for t in telemetry:
        for affix in t.affixes:
            by_affix.setdefault(affix, []).append(t)

    affix_metrics = [
        AffixMetrics(
            affix=affix,
            runs=len(runs),
            completion_rate=sum(1 for r in runs if r.status == "completed") / len(runs),
            avg_final_gold=_mean([r.final_gold for r in runs]),
        )
        for affix, runs in sorted(by_affix.items())
    ]

    return BatchSummary(
        agent=agent,
        tier=tier,
        player_level=player_level,
        total_runs=total,
        status_counts=dict(Counter(t.status for t in telemetry)),
        completion_rate=len(completed) / total if total else 0.0,
        goal_completion_rate=(
            sum(1 for t in telemetry if t.goal_completed) / total if total else 0.0
        ),
        avg_rooms_visited=_mean([t.rooms_visited for t in telemetry]),
        avg_torches_left=_mean([t.torches_left for t in telemetry]),
        avg_exploration_points=_mean([t.exploration_points for t in telemetry]),
        avg_multiplier=_mean([t.total_multiplier for t in telemetry]),
        avg_final_gold=_mean([t.final_gold for t in telemetry]),
        avg_final_exp=_mean([t.final_exp for t in telemetry]),
        avg_items=_mean([t.items_collected for t in telemetry]),
        rank_counts=dict(Counter(t.exploration_rank for t in telemetry)),
        affix_metrics=affix_metrics,
    )


def save_summary(summary: BatchSummary, path: Path) -> None:
    """Save summary to JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.model_dump(), indent=2))


def load_summary(path: Path) -> BatchSummary:
    """Load summary from JSON file."""
    data = json.loads(path.read_text())
    return BatchSummary.model_validate(data)


def generate_text_report(summary: BatchSummary) -> str:
    """Generate a human-readable summary of the batch."""
    s = summary
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append(f"Expedition Report: tier {s.tier}, level {s.player_level}, {s.agent} agent")
    lines.append(f"Runs: {s.total_runs:,}")
    lines.append("=" * 60)

    lines.append("")
    lines.append("## Outcomes")
    lines.append(f"  Boss defeated:   {s.completion_rate:.1%}")
    lines.append(f"  Goal completed:  {s.goal_completion_rate:.1%}")
    for status, count in sorted(s.status_counts.items()):
        lines.append(f"  {status:16s} {count}")

    lines.append("")
    lines.append("## Economy")
    lines.append(f"  Avg rooms visited:  {s.avg_rooms_visited:.1f}")
    lines.append(f"  Avg torches left:   {s.avg_torches_left:.1f}")
    lines.append(f"  Avg exploration:    {s.avg_exploration_points:.1f} pts")
    lines.append(f"  Avg multiplier:     x{s.avg_multiplier:.2f}")
    lines.append(f"  Avg gold / exp:     {s.avg_final_gold:.0f} / {s.avg_final_exp:.0f}")
    lines.append(f"  Avg items:          {s.avg_items:.1f}")

    lines.append("")
    lines.append("## Exploration Ranks")
    for rank in ("novice", "explorer", "veteran", "master"):
        lines.append(f"  {rank:10s} {s.rank_counts.get(rank, 0)}")

    if s.affix_metrics:
        lines.append("")
        lines.append("## Affixes")
        for m in s.affix_metrics:
            lines.append(
                f"  {m.affix:20s}  runs={m.runs}"
                f"  boss={m.completion_rate:.1%}  gold={m.avg_final_gold:.0f}"
            )

    return "\n".join(lines)
