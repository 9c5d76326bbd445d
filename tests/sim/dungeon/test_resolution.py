"""Tests for battle, altar, trap, chest, event and merchant resolution."""

import pytest

from delve.catalog.affixes import AFFIXES, AffixType
from delve.catalog.goals import GoalType
from delve.catalog.rooms import GoalItemKind, RoomState, RoomType
from delve.sim.dungeon.resolution import AltarBlessing, TrapAction
from delve.sim.dungeon.resources import ExpeditionResource
from delve.sim.dungeon.state import NextState, RunStatus


def _start(make_manager, middle, goal_items=None, goal_type=GoalType.KEY_BOSS,
           affixes=(), torches=5, seed=5):
    """Manager plus a run with controlled affixes and torches."""
    manager = make_manager(middle, goal_items)
    run = manager.start_run(1, 1, seed=seed, goal_type=goal_type)
    run = run.model_copy(update={
        "affixes": tuple(AFFIXES[a] for a in affixes),
        "resource": ExpeditionResource(torches=torches, max_torches=5),
    })
    return manager, run


class TestBattle:
    def test_victory_banks_loot_and_claims_key(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.COMBAT], {1: GoalItemKind.KEY})
        run = manager.enter_room(run, "r1", player).run
        result = manager.resolve_battle(run, player, victory=True)
        run = result.run

        assert result.next_state == NextState.EXPLORING
        assert result.banked.gold == 40
        assert result.banked.exp == 50
        assert len(result.banked.items) == 1
        assert result.changes.is_empty
        assert run.earned_gold == 40
        assert run.earned_exp == 50
        assert len(run.loot) == 1
        assert run.room("r1").defeated
        assert run.room("r1").state == RoomState.RESOLVED
        assert run.pending is None
        assert run.goal.completed
        assert any("Warden's Key" in line for line in result.log)

    def test_blessed_combat_raises_exp(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.COMBAT],
                              affixes=[AffixType.BLESSED_COMBAT])
        run = manager.enter_room(run, "r1", player).run
        assert manager.resolve_battle(run, player, victory=True).banked.exp == 55

    def test_defeat_fails_run(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.COMBAT])
        run = manager.enter_room(run, "r1", player).run
        result = manager.resolve_battle(run, player, victory=False)
        assert result.run.status == RunStatus.FAILED
        assert result.banked.is_empty
        assert not result.run.room("r1").defeated

    def test_boss_victory_completes_run(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.COMBAT], {1: GoalItemKind.KEY})
        run = manager.enter_room(run, "r1", player).run
        run = manager.resolve_battle(run, player, victory=True).run
        run = manager.enter_room(run, "r2", player).run
        run = manager.enter_room(run, "r3", player).run
        result = manager.resolve_battle(run, player, victory=True)

        assert result.run.status == RunStatus.COMPLETED
        assert len(result.banked.items) == 2
        assert result.run.room("r3").defeated

    def test_battle_outcome_without_battle(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.ALTAR])
        run = manager.enter_room(run, "r1", player).run
        result = manager.resolve_battle(run, player, victory=True)
        assert not result.effective
        assert result.run == run


class TestAltar:
    @pytest.mark.parametrize("blessing,health,mana", [
        (AltarBlessing.HEAL, 50, 0),
        (AltarBlessing.MANA, 0, 15),
        (AltarBlessing.BLESSING, 30, 10),
    ])
    def test_blessings(self, make_manager, player, blessing, health, mana):
        manager, run = _start(make_manager, [RoomType.ALTAR])
        run = manager.enter_room(run, "r1", player).run
        result = manager.use_altar(run, player, blessing)
        assert result.changes.health == health
        assert result.changes.mana == mana
        assert result.run.room("r1").used
        assert result.run.pending is None

    def test_cursed_healing(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.ALTAR],
                              affixes=[AffixType.CURSED_HEALING])
        run = manager.enter_room(run, "r1", player).run
        assert manager.use_altar(run, player, "heal").changes.health == 25

    def test_light_restores_torch(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.ALTAR])
        run = manager.enter_room(run, "r1", player).run
        assert run.resource.torches == 4
        result = manager.use_altar(run, player, AltarBlessing.LIGHT)
        assert result.run.resource.torches == 5
        assert result.changes.is_empty

    def test_used_altar_cannot_be_reused(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.ALTAR])
        run = manager.enter_room(run, "r1", player).run
        run = manager.use_altar(run, player, "heal").run
        result = manager.enter_room(run, "r1", player)
        assert result.next_state == NextState.EXPLORING
        assert manager.use_altar(result.run, player, "heal").effective is False


class TestTrap:
    def test_detect_spends_torch(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.TRAP])
        run = manager.enter_room(run, "r1", player).run
        result = manager.handle_trap(run, player, TrapAction.DETECT)
        assert result.run.resource.torches == 3
        assert result.changes.is_empty
        assert result.run.room("r1").used

    def test_detect_without_torch_stays_pending(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.TRAP], torches=1)
        run = manager.enter_room(run, "r1", player).run
        assert run.resource.torches == 0
        result = manager.handle_trap(run, player, "detect")
        assert not result.effective
        assert result.run.pending is not None
        assert not result.run.room("r1").used

    def test_trigger_clumsy_player_takes_damage(self, make_manager, player):
        clumsy = player.model_copy(update={"dexterity": 0})
        for seed in range(20):
            manager, run = _start(make_manager, [RoomType.TRAP], seed=seed)
            run = manager.enter_room(run, "r1", clumsy).run
            result = manager.handle_trap(run, clumsy, TrapAction.TRIGGER)
            assert -29 <= result.changes.health <= -10
            assert result.run.room("r1").used

    def test_trigger_nimble_player_dodges(self, make_manager, player):
        nimble = player.model_copy(update={"dexterity": 100})
        manager, run = _start(make_manager, [RoomType.TRAP])
        run = manager.enter_room(run, "r1", nimble).run
        assert manager.handle_trap(run, nimble, "trigger").changes.health == 0

    def test_disarm_odds(self, make_manager, player):
        expert = player.model_copy(update={"dexterity": 100, "luck": 100})
        novice = player.model_copy(update={"dexterity": 0, "luck": 0})
        manager, run = _start(make_manager, [RoomType.TRAP])
        entered = manager.enter_room(run, "r1", player).run
        assert manager.handle_trap(entered, expert, "disarm").changes.health == 0
        assert -19 <= manager.handle_trap(entered, novice, "disarm").changes.health <= -5

    def test_trap_master(self, make_manager, player):
        clumsy = player.model_copy(update={"dexterity": 0})
        manager, run = _start(make_manager, [RoomType.TRAP], affixes=[AffixType.TRAP_MASTER])
        run = manager.enter_room(run, "r1", clumsy).run
        assert -36 <= manager.handle_trap(run, clumsy, "trigger").changes.health <= -13


class TestChest:
    def test_open_banks_items_and_shard(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.CHEST], {1: GoalItemKind.SHARD},
                              goal_type=GoalType.COLLECT_SHARDS)
        run = manager.enter_room(run, "r1", player).run
        result = manager.open_chest(run, player)
        assert len(result.banked.items) == 2
        assert result.run.loot == result.banked.items
        assert result.run.goal.current == 1
        assert not result.run.goal.completed
        assert result.run.room("r1").looted

    def test_fragile_chests(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.CHEST], {1: GoalItemKind.SHARD},
                              affixes=[AffixType.FRAGILE_CHESTS])
        run = manager.enter_room(run, "r1", player).run
        assert len(manager.open_chest(run, player).banked.items) == 1

    def test_no_double_loot(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.CHEST], {1: GoalItemKind.SHARD},
                              goal_type=GoalType.COLLECT_SHARDS)
        run = manager.enter_room(run, "r1", player).run
        run = manager.open_chest(run, player).run
        again = manager.enter_room(run, "r1", player)
        assert again.next_state == NextState.EXPLORING
        assert again.run.loot == run.loot
        assert again.run.goal.current == 1
        assert manager.open_chest(again.run, player).effective is False


class TestEvent:
    def test_potion(self, make_manager, player):
        for seed in range(20):
            manager, run = _start(make_manager, [RoomType.EVENT], seed=seed)
            run = manager.enter_room(run, "r1", player).run
            result = manager.resolve_event(run, player)
            assert len(result.log) == 2
            assert result.run.room("r1").used
            assert result.run.pending is None
            assert result.run.earned_gold == result.banked.gold
            assert result.run.earned_exp == result.banked.exp

    def test_prisoner_rescue(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.EVENT], {1: GoalItemKind.PRISONER},
                              goal_type=GoalType.RESCUE_PRISONER)
        run = manager.enter_room(run, "r1", player).run
        result = manager.resolve_event(run, player)
        assert result.run.goal.completed
        assert result.changes.is_empty


class TestMerchant:
    @pytest.fixture
    def shop(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.MERCHANT])
        return manager, manager.enter_room(run, "r1", player).run

    def test_buy_item_keeps_shop_open(self, shop, player):
        manager, run = shop
        offer = run.pending.offers[0]
        result = manager.trade(run, player, offer.id)
        assert result.changes.gold == -offer.price
        assert result.changes.items == (offer.item,)
        assert result.banked.is_empty
        assert result.next_state == NextState.EVENT
        assert result.run.pending is not None
        assert offer.id not in [o.id for o in result.run.pending.offers]
        assert offer.id in result.run.sold_offers

    def test_buy_torch(self, shop, player):
        manager, run = shop
        result = manager.trade(run, player, "r1:torch")
        assert result.run.resource.torches == 5
        assert result.changes.gold == -30

    def test_torch_refused_when_full(self, shop, player):
        manager, run = shop
        run = run.model_copy(update={"resource": ExpeditionResource(torches=5, max_torches=5)})
        result = manager.trade(run, player, "r1:torch")
        assert not result.effective
        assert result.run == run

    def test_unaffordable(self, shop, player):
        manager, run = shop
        broke = player.model_copy(update={"gold": 0})
        result = manager.trade(run, broke, "r1:0")
        assert not result.effective
        assert result.changes.is_empty

    def test_unknown_offer(self, shop, player):
        manager, run = shop
        assert not manager.trade(run, player, "r1:99").effective

    def test_sold_items_gone_on_return(self, shop, player):
        manager, run = shop
        run = manager.trade(run, player, "r1:0").run
        run = manager.leave_room(run).run
        assert run.pending is None
        assert run.room("r1").state == RoomState.RESOLVED
        again = manager.enter_room(run, "r1", player)
        assert "r1:0" not in [o.id for o in again.offers]
        assert len(again.offers) == 3


class TestLeaveRoom:
    def test_leave_battle_unrewarded(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.COMBAT])
        run = manager.enter_room(run, "r1", player).run
        result = manager.leave_room(run)
        assert result.run.pending is None
        assert not result.run.room("r1").defeated
        assert result.run.earned_gold == 0

    def test_nothing_to_leave(self, make_manager, player):
        manager, run = _start(make_manager, [RoomType.COMBAT])
        assert not manager.leave_room(run).effective
