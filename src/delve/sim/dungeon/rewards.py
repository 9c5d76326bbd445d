"""Reward calculation for the end of an expedition.

Bonuses compose *additively*::

    total = exploration_multiplier + torch_bonus + goal_bonus
    torch_bonus = (unused torches / max torches) * 0.03
    goal_bonus  = 0.5 if the goal was completed else 0

Final gold and experience are ``base * total`` rounded half up.  Items are
attached by the caller.  :func:`predict_rewards` runs the same math for the
exit screen, and :func:`exit_advice` gives an advisory continue/leave
recommendation that never gates progression.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from delve.catalog.affixes import round_half_up
from delve.sim.core.entities import Item
from delve.sim.dungeon.exploration import ExplorationPoints, exploration_multiplier
from delve.sim.dungeon.resources import ExpeditionResource

TORCH_BONUS_RATE = 0.03
GOAL_COMPLETION_BONUS = 0.5


class DungeonRunRewards(BaseModel):
    """Derived payout snapshot; recomputable from the run state."""

    model_config = ConfigDict(frozen=True)

    base_gold: int
    base_exp: int
    exploration_multiplier: float
    torch_bonus: float
    goal_bonus: float = 0.0
    total_multiplier: float
    final_gold: int
    final_exp: int
    items: tuple[Item, ...] = ()

    def with_items(self, items: Sequence[Item]) -> DungeonRunRewards:
        return self.model_copy(update={"items": self.items + tuple(items)})


class BonusBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    exploration: str
    torches: str
    goal: str


class RewardForecast(BaseModel):
    """Pre-commitment estimate shown before the player decides to leave."""

    model_config = ConfigDict(frozen=True)

    estimated_gold: int
    estimated_exp: int
    total_multiplier: float
    breakdown: BonusBreakdown


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExitRecommendation(str, Enum):
    CONTINUE = "continue"
    CONSIDER_EXIT = "consider_exit"
    EXIT_NOW = "exit_now"


class ExitAdvice(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommendation: ExitRecommendation
    reasoning: str
    risk_level: RiskLevel
    exploration_rate: float
    """Share of the path already visited (``visited / (visited + left)``)."""


# ---------------------------------------------------------------------------
# Final rewards
# ---------------------------------------------------------------------------

def torch_bonus(resource: ExpeditionResource) -> float:
    return resource.torches / resource.max_torches * TORCH_BONUS_RATE


def compose_rewards(
    base_gold: int,
    base_exp: int,
    exploration_mult: float,
    torch_bonus_value: float,
    goal_completed: bool = False,
) -> DungeonRunRewards:
    """Combine already-computed multipliers into a payout."""
    goal_bonus = GOAL_COMPLETION_BONUS if goal_completed else 0.0
    total = exploration_mult + torch_bonus_value + goal_bonus
    return DungeonRunRewards(
        base_gold=base_gold,
        base_exp=base_exp,
        exploration_multiplier=exploration_mult,
        torch_bonus=torch_bonus_value,
        goal_bonus=goal_bonus,
        total_multiplier=total,
        final_gold=round_half_up(base_gold * total),
        final_exp=round_half_up(base_exp * total),
    )


def finalize_rewards(
    base_gold: int,
    base_exp: int,
    points: ExplorationPoints,
    resource: ExpeditionResource,
    goal_completed: bool = False,
) -> DungeonRunRewards:
    """Final payout for a run.  Pure: same inputs, same output."""
    return compose_rewards(
        base_gold,
        base_exp,
        exploration_multiplier(points),
        torch_bonus(resource),
        goal_completed,
    )


def _percent(fraction: float) -> str:
    return f"+{round_half_up(fraction * 100)}%"


def predict_rewards(
    points: ExplorationPoints,
    resource: ExpeditionResource,
    base_gold: int,
    base_exp: int,
    goal_completed: bool = False,
) -> RewardForecast:
    """What :func:`finalize_rewards` would pay right now, with a breakdown."""
    rewards = finalize_rewards(base_gold, base_exp, points, resource, goal_completed)
    return RewardForecast(
        estimated_gold=rewards.final_gold,
        estimated_exp=rewards.final_exp,
        total_multiplier=rewards.total_multiplier,
        breakdown=BonusBreakdown(
            exploration=_percent(rewards.exploration_multiplier - 1),
            torches=_percent(rewards.torch_bonus),
            goal=_percent(rewards.goal_bonus),
        ),
    )


# ---------------------------------------------------------------------------
# Exit advisory
# ---------------------------------------------------------------------------

def risk_level(resource: ExpeditionResource) -> RiskLevel:
    if resource.exhausted:
        return RiskLevel.HIGH
    if resource.fraction < 0.3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def exit_advice(
    resource: ExpeditionResource,
    goal_completed: bool,
    rooms_left: int,
    rooms_visited: int = 0,
) -> ExitAdvice:
    """Advisory recommendation for whether to push on or leave.

    First matching row wins:

    ==================  ===============  ==========  =============
    goal completed      torch fraction   rooms left  advice
    ==================  ===============  ==========  =============
    no (exhausted)      0                any         exit_now
    yes                 < 0.2            any         consider_exit
    yes                 > 0.5            > 5         continue
    no                  > 0.3            any         continue
    otherwise                                        consider_exit
    ==================  ===============  ==========  =============
    """
    fraction = resource.fraction
    explored = rooms_visited + rooms_left
    rate = rooms_visited / explored if explored > 0 else 0.0

    if resource.exhausted and not goal_completed:
        recommendation = ExitRecommendation.EXIT_NOW
        reasoning = "Your torches are gone and the goal is unfinished. The risk of death is high."
    elif goal_completed and fraction < 0.2:
        recommendation = ExitRecommendation.CONSIDER_EXIT
        reasoning = "The goal is done and torches are scarce. Leaving now locks in the reward."
    elif goal_completed and rooms_left > 5 and fraction > 0.5:
        recommendation = ExitRecommendation.CONTINUE
        reasoning = "The goal is done and supplies are plentiful. Explore further for bonuses."
    elif not goal_completed and fraction > 0.3:
        recommendation = ExitRecommendation.CONTINUE
        reasoning = "The goal is unfinished but supplies hold. Keep searching."
    else:
        recommendation = ExitRecommendation.CONSIDER_EXIT
        reasoning = "Weigh the risks against the potential rewards."

    return ExitAdvice(
        recommendation=recommendation,
        reasoning=reasoning,
        risk_level=risk_level(resource),
        exploration_rate=rate,
    )
