"""Headless expedition runner.

Plays complete runs with a :class:`PlayAgent` making every decision and a
small stand-in for the host's combat system, then records
:class:`RunTelemetry`.  Used for balance checks of tiers, affixes and the
reward economy.
"""

from __future__ import annotations

import logging
import math
import multiprocessing

from delve.catalog.rooms import Room, RoomState, RoomType
from delve.sim.content.registry import ContentProvider, ContentRegistry
from delve.sim.core.entities import Enemy, PlayerSnapshot, StateDelta
from delve.sim.core.rng import GameRNG
from delve.sim.dungeon.exploration import exploration_rank
from delve.sim.dungeon.resolution import TrapAction
from delve.sim.dungeon.resources import ExhaustionPenalty
from delve.sim.dungeon.run_manager import RunManager
from delve.sim.dungeon.state import NextState, RoomResult, RunState
from delve.sim.play_agents.base import PlayAgent
from delve.sim.play_agents.random_agent import RandomAgent
from delve.sim.telemetry import RoomTelemetry, RunTelemetry

logger = logging.getLogger(__name__)


def starting_player(level: int) -> PlayerSnapshot:
    """A fresh adventurer of *level* with an average build."""
    health = 100 + 10 * (level - 1)
    return PlayerSnapshot(
        health=health,
        max_health=health,
        mana=50,
        max_mana=50,
        dexterity=10 + level,
        luck=5 + level // 2,
        level=level,
        gold=100,
    )


def auto_battle(
    player: PlayerSnapshot,
    enemy: Enemy,
    rng: GameRNG,
    penalty: ExhaustionPenalty | None = None,
) -> tuple[bool, int]:
    """Resolve a fight by simple attrition.

    Returns ``(victory, damage_taken)``.  Exhaustion penalties are honored:
    the fight starts at the adjusted health and enemy damage is raised.
    """
    health = penalty.adjusted_health if penalty is not None else player.health
    damage_bonus = penalty.enemy_damage_bonus if penalty is not None else 0.0

    player_hit = max(5, 20 + 4 * player.level - enemy.defense)
    rounds = math.ceil(enemy.health / player_hit)
    enemy_hit = max(1, enemy.attack - (5 + player.level))
    damage = math.floor(enemy_hit * rounds * (1 + damage_bonus) * rng.uniform(0.4, 0.8))
    damage += player.health - health
    return damage < player.health, min(damage, player.health)


class _RunPlayer:
    """Plays one run to the end."""

    def __init__(self, manager: RunManager, agent: PlayAgent, seed: int) -> None:
        self.manager = manager
        self.agent = agent
        self.battle_rng = GameRNG(seed).fork("battle")

    def play(self, tier: int, player_level: int, seed: int) -> RunTelemetry:
        manager = self.manager
        run = manager.start_run(tier, player_level, seed=seed)
        player = starting_player(player_level)
        telemetry = RunTelemetry(
            seed=run.seed,
            tier=run.tier_number,
            goal_type=run.goal.type.value,
            affixes=[a.type.value for a in run.affixes],
            rooms_total=len(run.rooms),
        )

        while run.is_active:
            room = self._next_room(run)
            if room is None:
                break
            if not self.agent.should_continue(player, run, manager.advise(run)):
                break

            result = manager.enter_room(run, room.id, player)
            run, player = result.run, player.apply(result.changes)
            outcome = "entered"
            if result.next_state == NextState.BATTLE:
                run, player, outcome = self._battle(run, player, result)
            elif result.next_state == NextState.EVENT:
                run, player, outcome = self._event(run, player, room, result)

            telemetry.rooms.append(RoomTelemetry(
                room_id=room.id,
                room_type=room.type.value,
                outcome=outcome,
                torches_after=run.resource.torches,
                health_after=player.health,
            ))
            if player.is_dead and run.is_active:
                # Killed outside combat; the engine only learns of it this way.
                run = manager.abort_run(run)

        rewards = manager.exit_run(run)
        run = manager.close_run(run)

        telemetry.status = run.status.value
        telemetry.goal_completed = run.goal.completed
        telemetry.torches_left = run.resource.torches
        telemetry.exploration_points = run.points.current
        telemetry.exploration_rank = exploration_rank(run.points).value
        telemetry.final_gold = rewards.final_gold
        telemetry.final_exp = rewards.final_exp
        telemetry.items_collected = len(rewards.items)
        telemetry.total_multiplier = rewards.total_multiplier
        return telemetry

    def _next_room(self, run: RunState) -> Room | None:
        reachable = set(self.manager.reachable_rooms(run))
        candidates = [
            r for r in run.rooms
            if r.id in reachable and r.state == RoomState.UNVISITED
        ]
        return min(candidates, key=lambda r: r.index, default=None)

    def _battle(
        self, run: RunState, player: PlayerSnapshot, result: RoomResult,
    ) -> tuple[RunState, PlayerSnapshot, str]:
        enemy = result.enemy
        if enemy is None or not self.agent.choose_to_fight(enemy, player, run):
            return self.manager.leave_room(run).run, player, "fled"

        victory, damage = auto_battle(player, enemy, self.battle_rng, result.penalty)
        player = player.apply(StateDelta(health=-damage))
        resolved = self.manager.resolve_battle(run, player, victory)
        return resolved.run, player.apply(resolved.changes), "win" if victory else "loss"

    def _event(
        self, run: RunState, player: PlayerSnapshot, room: Room, result: RoomResult,
    ) -> tuple[RunState, PlayerSnapshot, str]:
        manager = self.manager
        agent = self.agent

        if room.type == RoomType.ALTAR:
            blessing = agent.choose_altar_blessing(player, run)
            resolved = manager.use_altar(run, player, blessing)
            outcome = f"altar:{blessing.value}"
        elif room.type == RoomType.TRAP:
            action = agent.choose_trap_action(player, run)
            resolved = manager.handle_trap(run, player, action)
            if not resolved.effective:
                action = TrapAction.DISARM
                resolved = manager.handle_trap(run, player, action)
            outcome = f"trap:{action.value}"
        elif room.type == RoomType.CHEST:
            resolved = manager.open_chest(run, player)
            outcome = "chest"
        elif room.type == RoomType.MERCHANT:
            return self._shop(run, player, result)
        else:
            resolved = manager.resolve_event(run, player)
            outcome = "event"
        return resolved.run, player.apply(resolved.changes), outcome

    def _shop(
        self, run: RunState, player: PlayerSnapshot, result: RoomResult,
    ) -> tuple[RunState, PlayerSnapshot, str]:
        offers = result.offers
        bought = 0
        while offers:
            offer_id = self.agent.choose_purchase(offers, player, run)
            if offer_id is None:
                break
            traded = self.manager.trade(run, player, offer_id)
            if not traded.effective:
                break
            run, player = traded.run, player.apply(traded.changes)
            offers = traded.offers
            bought += 1
        return self.manager.leave_room(run).run, player, f"merchant:{bought}"


def _play_single(
    provider: ContentProvider,
    agent: PlayAgent,
    tier: int,
    player_level: int,
    seed: int,
) -> RunTelemetry:
    manager = RunManager(provider)
    return _RunPlayer(manager, agent, seed).play(tier, player_level, seed)


def _make_agent(agent_class: type[PlayAgent], seed: int) -> PlayAgent:
    agent_rng = GameRNG(seed).fork("agent")
    try:
        return agent_class(rng=agent_rng)  # type: ignore[call-arg]
    except TypeError:
        return agent_class()


def _worker_run_single(args: tuple) -> RunTelemetry:
    """Top-level worker function for multiprocessing (must be picklable)."""
    agent_class, tier, player_level, seed = args
    registry = ContentRegistry.default()
    return _play_single(registry, _make_agent(agent_class, seed), tier, player_level, seed)


class BatchRunner:
    """Runs many expeditions, optionally in parallel.

    Parameters
    ----------
    provider:
        Content provider for every run.  Defaults to the bundled catalogs.
    agent_class:
        Agent type; constructed per run with a forked ``rng`` when it
        accepts one.
    """

    def __init__(
        self,
        provider: ContentProvider | None = None,
        agent_class: type[PlayAgent] = RandomAgent,
    ) -> None:
        self._custom_provider = provider is not None
        self.provider = provider if provider is not None else ContentRegistry.default()
        self.agent_class = agent_class

    def run_batch(
        self,
        n_runs: int,
        tier: int,
        player_level: int,
        base_seed: int = 42,
        parallel: bool = False,
    ) -> list[RunTelemetry]:
        """Play *n_runs* expeditions with seeds ``base_seed .. base_seed + n_runs - 1``.

        Parallel runs reload the bundled catalogs in each worker, so a
        custom provider always runs sequentially.
        """
        seeds = [base_seed + i for i in range(n_runs)]
        logger.info(
            "Running %d expeditions on tier %d at level %d (%s)",
            n_runs, tier, player_level, self.agent_class.__name__,
        )
        if parallel and n_runs > 1 and not self._custom_provider:
            return self._run_parallel(seeds, tier, player_level)
        return self._run_sequential(seeds, tier, player_level)

    def _run_sequential(
        self, seeds: list[int], tier: int, player_level: int,
    ) -> list[RunTelemetry]:
        results: list[RunTelemetry] = []
        for seed in seeds:
            agent = _make_agent(self.agent_class, seed)
            results.append(_play_single(self.provider, agent, tier, player_level, seed))
        return results

    def _run_parallel(
        self, seeds: list[int], tier: int, player_level: int,
    ) -> list[RunTelemetry]:
        work_items = [(self.agent_class, tier, player_level, seed) for seed in seeds]
        n_workers = min(len(seeds), multiprocessing.cpu_count() or 1)
        with multiprocessing.Pool(processes=n_workers) as pool:
            return pool.map(_worker_run_single, work_items)
