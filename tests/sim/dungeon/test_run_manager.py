"""Tests for RunManager -- run lifecycle, gating and payout."""

import pytest

from delve.catalog.goals import GoalType
from delve.catalog.rooms import GoalItemKind, RoomState, RoomType
from delve.sim.core.rng import GameRNG
from delve.sim.dungeon.exploration import ExplorationRank
from delve.sim.dungeon.rewards import ExitRecommendation, finalize_rewards
from delve.sim.dungeon.run_manager import RunManager
from delve.sim.dungeon.state import NextState, RunState, RunStatus


@pytest.fixture
def manager(registry):
    return RunManager(registry)


@pytest.fixture
def key_path(make_manager):
    """``start, combat(key), gate, boss`` with a known goal."""
    manager = make_manager([RoomType.COMBAT], {1: GoalItemKind.KEY})
    run = manager.start_run(1, 1, seed=7, goal_type=GoalType.KEY_BOSS)
    return manager, run.model_copy(update={"affixes": ()})


def _win(manager, run, room_id, player):
    run = manager.enter_room(run, room_id, player).run
    return manager.resolve_battle(run, player, victory=True).run


class TestStartRun:
    def test_new_run_stands_in_start_room(self, manager):
        run = manager.start_run(1, 1, seed=42)
        start = run.rooms[0]
        assert run.status == RunStatus.ACTIVE
        assert run.current_room_id == start.id
        assert start.type == RoomType.START
        assert start.state == RoomState.RESOLVED
        assert run.points.current == 1
        assert run.goal.current == 0
        assert run.resource.torches == run.resource.max_torches
        assert len(run.affixes) == run.tier.affix_count
        assert run.pending is None
        assert run.rooms_remaining == len(run.rooms) - 1

    def test_goal_type_honored(self, manager):
        run = manager.start_run(1, 1, seed=1, goal_type="collect_shards")
        assert run.goal.type == GoalType.COLLECT_SHARDS
        assert sum(r.goal_item is not None for r in run.rooms) == 3

    @pytest.mark.parametrize("kwargs", [
        dict(tier=99, player_level=1),
        dict(tier=1, player_level=0),
        dict(tier=1, player_level=1, goal_type="slay_dragon"),
    ])
    def test_invalid_config_rejected(self, manager, kwargs):
        with pytest.raises(ValueError):
            manager.start_run(**kwargs)

    def test_same_seed_same_run(self, manager):
        assert manager.start_run(3, 6, seed=123) == manager.start_run(3, 6, seed=123)

    def test_unseeded_run_records_seed(self, manager):
        run = manager.start_run(1, 1)
        replay = manager.start_run(1, 1, seed=run.seed)
        assert replay.rooms == run.rooms
        assert replay.affixes == run.affixes

    def test_level_adds_torches(self, make_manager):
        manager = make_manager([RoomType.COMBAT])
        run = manager.start_run(1, 10, seed=3)
        assert run.resource.max_torches in (5, 7)


class TestEnterRoom:
    def test_entry_burns_torch_and_scores(self, key_path, player):
        manager, run = key_path
        result = manager.enter_room(run, "r1", player)
        assert result.effective
        assert result.next_state == NextState.BATTLE
        assert result.run.resource.torches == run.resource.torches - 1
        assert result.run.points.current == 3
        assert result.run.room("r1").state == RoomState.ENTERED
        assert result.run.pending.room_id == "r1"
        assert result.run.pending.enemy == result.enemy
        assert result.run.current_room_id == "r1"

    def test_unknown_room_raises(self, key_path, player):
        manager, run = key_path
        with pytest.raises(KeyError):
            manager.enter_room(run, "r99", player)

    def test_cannot_skip_ahead(self, make_manager, player):
        manager = make_manager([RoomType.ALTAR, RoomType.ALTAR])
        run = manager.start_run(1, 1, seed=1)
        result = manager.enter_room(run, "r2", player)
        assert not result.effective
        assert result.run == run

    def test_one_room_in_flight(self, key_path, player):
        manager, run = key_path
        run = manager.enter_room(run, "r1", player).run
        result = manager.enter_room(run, "r0", player)
        assert not result.effective
        assert result.run.pending.room_id == "r1"

    def test_gate_and_boss_locked_until_goal(self, key_path, player):
        manager, run = key_path
        run = manager.enter_room(run, "r1", player).run
        run = manager.leave_room(run).run
        gate = manager.enter_room(run, "r2", player)
        assert not gate.effective
        assert "sealed" in gate.log[0]
        assert "r2" not in manager.reachable_rooms(run)

    def test_gate_opens_after_goal(self, key_path, player):
        manager, run = key_path
        run = _win(manager, run, "r1", player)
        assert run.goal.completed
        result = manager.enter_room(run, "r2", player)
        assert result.effective
        assert result.next_state == NextState.EXPLORING
        assert result.run.room("r2").state == RoomState.RESOLVED

    def test_backtracking_to_start_is_free(self, key_path, player):
        manager, run = key_path
        run = _win(manager, run, "r1", player)
        result = manager.enter_room(run, "r0", player)
        assert result.effective
        assert result.run.resource.torches == run.resource.torches
        assert result.run.points == run.points

    def test_revisit_scores_nothing_but_costs_torch(self, key_path, player):
        manager, run = key_path
        run = _win(manager, run, "r1", player)
        result = manager.enter_room(run, "r1", player)
        assert result.run.points == run.points
        assert result.run.resource.torches == run.resource.torches - 1
        assert result.changes.health == 10

    def test_run_over_refuses_entry(self, key_path, player):
        manager, run = key_path
        run = manager.enter_room(run, "r1", player).run
        run = manager.resolve_battle(run, player, victory=False).run
        assert not manager.enter_room(run, "r0", player).effective
        assert manager.reachable_rooms(run) == []

    def test_reachable_rooms(self, key_path, player):
        manager, run = key_path
        assert manager.reachable_rooms(run) == ["r0", "r1"]
        run = _win(manager, run, "r1", player)
        assert manager.reachable_rooms(run) == ["r0", "r1", "r2"]

    def test_exhaustion_does_not_block(self, make_manager, player):
        manager = make_manager([RoomType.ALTAR, RoomType.TRAP] * 4)
        run = manager.start_run(1, 1, seed=2)
        for room in run.rooms[1:9]:
            result = manager.enter_room(run, room.id, player)
            assert result.effective
            run = manager.leave_room(result.run).run
        assert run.resource.exhausted
        assert run.status == RunStatus.ACTIVE


class TestEmptyContent:
    def test_silent_key_room_still_opens_gate(self, make_manager, empty_provider, player):
        manager = make_manager([RoomType.COMBAT], {1: GoalItemKind.KEY}, provider=empty_provider)
        run = manager.start_run(1, 1, seed=7, goal_type=GoalType.KEY_BOSS)
        run = run.model_copy(update={"affixes": ()})

        result = manager.enter_room(run, "r1", player)
        run = result.run
        assert result.enemy is None
        assert run.room("r1").defeated
        assert run.room("r1").state == RoomState.RESOLVED
        assert run.goal.completed
        assert manager.reachable_rooms(run) == ["r0", "r1", "r2"]

        again = manager.enter_room(run, "r1", player)
        assert again.run.goal.current == 1
        assert again.changes.health == 10


class TestMerchantRevisit:
    @pytest.fixture
    def shop(self, make_manager, shifting_provider):
        manager = make_manager([RoomType.MERCHANT], provider=shifting_provider)
        run = manager.start_run(1, 1, seed=7, goal_type=GoalType.KEY_BOSS)
        return manager, run.model_copy(update={"affixes": ()})

    def test_revisit_serves_same_wares(self, shop, player):
        manager, run = shop
        first = manager.enter_room(run, "r1", player)
        left = manager.leave_room(first.run, player).run
        second = manager.enter_room(left, "r1", player)
        assert [o.label for o in first.offers] == ["Mat1", "Mat2", "Mat3", "Torch"]
        assert second.offers == first.offers

    def test_bought_item_stays_sold(self, shop, player):
        manager, run = shop
        first = manager.enter_room(run, "r1", player)
        bought = manager.trade(first.run, player, first.offers[0].id)
        left = manager.leave_room(bought.run, player).run
        second = manager.enter_room(left, "r1", player)
        assert [o.label for o in second.offers] == ["Mat2", "Mat3", "Torch"]

    def test_stock_survives_serialization(self, shop, player):
        manager, run = shop
        first = manager.enter_room(run, "r1", player)
        left = manager.leave_room(first.run, player).run
        restored = RunState.model_validate_json(left.model_dump_json())
        assert restored == left
        assert manager.enter_room(restored, "r1", player).offers == first.offers

class TestSerialization:
    def test_round_trip_mid_encounter(self, manager, player):
        run = manager.start_run(2, 4, seed=99)
        run = manager.enter_room(run, "r1", player).run
        restored = RunState.model_validate_json(run.model_dump_json())
        assert restored == run

    def test_restored_run_continues_identically(self, make_manager, registry, player):
        manager = make_manager([RoomType.COMBAT], {1: GoalItemKind.KEY}, provider=registry)
        run = manager.start_run(1, 1, seed=8, goal_type=GoalType.KEY_BOSS)
        run = manager.enter_room(run, "r1", player).run
        restored = RunState.model_validate_json(run.model_dump_json())
        a = manager.resolve_battle(run, player, victory=True)
        b = manager.resolve_battle(restored, player, victory=True)
        assert a.run == b.run
        assert a.banked == b.banked


class TestExit:
    def test_exit_pays_banked_loot_with_bonuses(self, key_path, player):
        manager, run = key_path
        run = _win(manager, run, "r1", player)
        rewards = manager.exit_run(run)
        expected = finalize_rewards(40, 50, run.points, run.resource, goal_completed=True)
        assert rewards.final_gold == expected.final_gold
        assert rewards.final_exp == expected.final_exp
        assert rewards.goal_bonus == 0.5
        assert rewards.items == run.loot

    def test_completed_run_adds_tier_purse(self, key_path, player):
        manager, run = key_path
        run = _win(manager, run, "r1", player)
        run = manager.enter_room(run, "r2", player).run
        run = _win(manager, run, "r3", player)
        assert run.status == RunStatus.COMPLETED
        rewards = manager.exit_run(run)
        assert rewards.base_gold == 80 + run.tier.base_gold
        assert rewards.base_exp == 100 + run.tier.base_exp
        assert len(rewards.items) == 3

    def test_failed_run_pays_nothing(self, key_path, player):
        manager, run = key_path
        run = manager.enter_room(run, "r1", player).run
        run = manager.resolve_battle(run, player, victory=False).run
        rewards = manager.exit_run(run)
        assert rewards.final_gold == 0
        assert rewards.final_exp == 0
        assert rewards.items == ()

    def test_abort(self, key_path, player):
        manager, run = key_path
        run = _win(manager, run, "r1", player)
        aborted = manager.abort_run(run)
        assert aborted.status == RunStatus.ABANDONED
        assert manager.exit_run(aborted).final_gold == 0

    def test_close_discards_pending(self, key_path, player):
        manager, run = key_path
        run = manager.enter_room(run, "r1", player).run
        closed = manager.close_run(run)
        assert closed.status == RunStatus.EXITED
        assert closed.pending is None
        assert manager.close_run(manager.abort_run(run)).status == RunStatus.ABANDONED

    def test_predict_matches_exit(self, key_path, player):
        manager, run = key_path
        run = _win(manager, run, "r1", player)
        forecast = manager.predict(run)
        rewards = manager.exit_run(run)
        assert forecast.estimated_gold == rewards.final_gold
        assert forecast.estimated_exp == rewards.final_exp


class TestQueries:
    def test_advise(self, key_path, player):
        manager, run = key_path
        advice = manager.advise(run)
        assert advice.recommendation == ExitRecommendation.CONTINUE
        assert advice.exploration_rate == pytest.approx(0.25)

    def test_exploration_summary(self, key_path):
        manager, run = key_path
        summary = manager.exploration_summary(run)
        assert summary.total == 1
        assert summary.rank == ExplorationRank.NOVICE

    def test_resource_status(self, key_path):
        manager, run = key_path
        assert manager.resource_status(run).warning is None


class TestDeterminism:
    def test_same_calls_same_outcome(self, manager, player):
        def play(seed):
            run = manager.start_run(2, 3, seed=seed)
            log = []
            for room in run.rooms[1:4]:
                result = manager.enter_room(run, room.id, player)
                log.append(result.log)
                run = result.run
                if run.pending is not None:
                    run = manager.leave_room(run).run
            return run, log

        assert play(17) == play(17)

    def test_entry_stream_keyed_by_visit(self, key_path):
        _, run = key_path
        assert GameRNG(run.seed).fork("room:r1:1").seed != GameRNG(run.seed).fork("room:r1:2").seed
