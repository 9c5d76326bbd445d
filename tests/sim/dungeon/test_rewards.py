"""Tests for reward composition, forecasts and exit advice."""

import pytest

from delve.sim.core.entities import Item
from delve.sim.dungeon.exploration import ExplorationPoints
from delve.sim.dungeon.resources import ExpeditionResource
from delve.sim.dungeon.rewards import (
    ExitRecommendation,
    RiskLevel,
    compose_rewards,
    exit_advice,
    finalize_rewards,
    predict_rewards,
    risk_level,
    torch_bonus,
)


def _torches(current: int, maximum: int = 10) -> ExpeditionResource:
    return ExpeditionResource(torches=current, max_torches=maximum)


class TestComposeRewards:
    def test_additive_composition_rounds_half_up(self):
        rewards = compose_rewards(100, 50, 1.2, 0.03, True)
        assert rewards.total_multiplier == pytest.approx(1.73)
        assert rewards.final_gold == 173
        assert rewards.final_exp == 87
        assert rewards.goal_bonus == 0.5

    def test_no_goal_bonus_when_incomplete(self):
        rewards = compose_rewards(100, 100, 1.0, 0.0)
        assert rewards.goal_bonus == 0.0
        assert rewards.final_gold == 100

    def test_items_attached_by_caller(self):
        item = Item(id="ember", name="Ember")
        rewards = compose_rewards(10, 10, 1.0, 0.0).with_items([item])
        assert rewards.items == (item,)


class TestFinalizeRewards:
    def test_uses_points_and_torches(self):
        points = ExplorationPoints(current=4, from_dangerous=4)
        rewards = finalize_rewards(200, 60, points, _torches(5), goal_completed=False)
        assert rewards.exploration_multiplier == pytest.approx(1.2)
        assert rewards.torch_bonus == pytest.approx(0.015)
        assert rewards.final_gold == 243
        assert rewards.final_exp == 73

    def test_pure(self):
        points = ExplorationPoints(current=7, from_safe_rooms=1, from_dangerous=6)
        resource = _torches(3)
        first = finalize_rewards(120, 80, points, resource, True)
        second = finalize_rewards(120, 80, points, resource, True)
        assert first == second

    def test_full_torches_give_three_percent(self):
        assert torch_bonus(_torches(6, 6)) == pytest.approx(0.03)


class TestPredictRewards:
    def test_matches_finalize(self):
        points = ExplorationPoints(current=10, from_safe_rooms=3, from_dangerous=4, from_boss=3)
        resource = _torches(5, 5)
        forecast = predict_rewards(points, resource, 100, 50, goal_completed=True)
        final = finalize_rewards(100, 50, points, resource, True)
        assert forecast.estimated_gold == final.final_gold
        assert forecast.estimated_exp == final.final_exp
        assert forecast.breakdown.exploration == "+50%"
        assert forecast.breakdown.torches == "+3%"
        assert forecast.breakdown.goal == "+50%"

    def test_goal_breakdown_zero(self):
        forecast = predict_rewards(ExplorationPoints(), _torches(0), 100, 50)
        assert forecast.breakdown.goal == "+0%"
        assert forecast.estimated_gold == 100


class TestExitAdvice:
    @pytest.mark.parametrize("torches,completed,rooms_left,expected", [
        (0, False, 4, ExitRecommendation.EXIT_NOW),
        (1, True, 8, ExitRecommendation.CONSIDER_EXIT),
        (0, True, 8, ExitRecommendation.CONSIDER_EXIT),
        (8, True, 6, ExitRecommendation.CONTINUE),
        (8, True, 5, ExitRecommendation.CONSIDER_EXIT),
        (4, False, 2, ExitRecommendation.CONTINUE),
        (3, False, 2, ExitRecommendation.CONSIDER_EXIT),
    ])
    def test_table(self, torches, completed, rooms_left, expected):
        advice = exit_advice(_torches(torches), completed, rooms_left)
        assert advice.recommendation == expected
        assert advice.reasoning

    def test_exploration_rate(self):
        assert exit_advice(_torches(5), False, 1, rooms_visited=3).exploration_rate == 0.75
        assert exit_advice(_torches(5), False, 0, rooms_visited=0).exploration_rate == 0.0

    @pytest.mark.parametrize("torches,level", [
        (0, RiskLevel.HIGH),
        (2, RiskLevel.MEDIUM),
        (3, RiskLevel.LOW),
    ])
    def test_risk_level(self, torches, level):
        assert risk_level(_torches(torches)) == level
