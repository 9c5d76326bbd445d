"""Run manager -- drives one expedition from the entrance to the exit.

The manager is stateless between calls: every method takes the current
:class:`RunState` and returns the next one (inside a :class:`RoomResult`
where a room is involved).  Hosts keep the latest snapshot and may
serialize it at any point.

Randomness is derived from the run seed with named forks, so the same seed
and the same sequence of calls always replay identically:

- ``map``: room sequencing
- ``affixes`` / ``goal``: run setup
- ``room:<id>:<visit>``: entry handlers
- ``resolve:<id>:<visit>``: sub-flow resolution
"""

from __future__ import annotations

import logging
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from delve.catalog.affixes import select_affixes
from delve.catalog.goals import GoalType, can_enter_boss_room, create_goal, random_goal_type
from delve.catalog.rooms import RoomState, RoomType
from delve.catalog.tiers import DungeonTier, require_tier
from delve.sim.content.registry import ContentProvider, ContentRegistry
from delve.sim.core.entities import PlayerSnapshot
from delve.sim.core.rng import GameRNG
from delve.sim.dungeon import resolution
from delve.sim.dungeon.exploration import (
    ExplorationPoints,
    ExplorationSummary,
    add_points,
    describe_exploration,
)
from delve.sim.dungeon.handlers import RoomContext, dispatch
from delve.sim.dungeon.map_gen import MapGenerator
from delve.sim.dungeon.resolution import AltarBlessing, TrapAction
from delve.sim.dungeon.resources import (
    ResourceStatus,
    consume,
    create_resource,
    resource_status,
)
from delve.sim.dungeon.rewards import (
    DungeonRunRewards,
    ExitAdvice,
    RewardForecast,
    exit_advice,
    finalize_rewards,
    predict_rewards,
)
from delve.sim.dungeon.state import (
    SUB_FLOWS,
    NextState,
    PendingEncounter,
    RoomResult,
    RunState,
    RunStatus,
)

logger = logging.getLogger(__name__)

Resolver = Callable[[RoomContext, PendingEncounter], tuple[RunState, RoomResult]]


class RunConfig(BaseModel):
    """Validated parameters for :meth:`RunManager.start_run`."""

    model_config = ConfigDict(frozen=True)

    tier: int
    player_level: int = Field(ge=1)
    seed: int | None = None
    goal_type: GoalType | None = None

    @field_validator("tier")
    @classmethod
    def _known_tier(cls, v: int) -> int:
        require_tier(v)
        return v


class RunManager:
    """Drives expeditions.

    Parameters
    ----------
    provider:
        Source of enemies and materials.  Defaults to the bundled
        :class:`ContentRegistry` catalogs.
    map_generator:
        Room sequencer; replaceable for tests.
    """

    def __init__(
        self,
        provider: ContentProvider | None = None,
        map_generator: MapGenerator | None = None,
    ) -> None:
        self.provider = provider if provider is not None else ContentRegistry.default()
        self.map_generator = map_generator or MapGenerator()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_run(
        self,
        tier: int | DungeonTier,
        player_level: int,
        seed: int | None = None,
        goal_type: GoalType | str | None = None,
    ) -> RunState:
        """Create a new run standing in the start room.

        Raises ``ValueError`` for an unknown tier, a bad level or goal type;
        nothing is created in that case.
        """
        tier_number = tier.tier if isinstance(tier, DungeonTier) else tier
        config = RunConfig(
            tier=tier_number, player_level=player_level, seed=seed, goal_type=goal_type,
        )
        dungeon_tier = require_tier(config.tier)
        rng = GameRNG(config.seed) if config.seed is not None else GameRNG.from_entropy()

        affixes = select_affixes(dungeon_tier.affix_count, rng=rng.fork("affixes"))
        goal_kind = config.goal_type or random_goal_type(rng.fork("goal"))
        rooms = self.map_generator.generate(dungeon_tier, goal_kind, affixes, rng.fork("map"))

        start = rooms[0].model_copy(update={"state": RoomState.RESOLVED})
        run = RunState(
            tier_number=dungeon_tier.tier,
            player_level=config.player_level,
            seed=rng.seed,
            affixes=tuple(affixes),
            goal=create_goal(goal_kind),
            resource=create_resource(config.player_level, affixes),
            points=add_points(ExplorationPoints(), RoomType.START),
            rooms=(start, *rooms[1:]),
            current_room_id=start.id,
        )
        logger.info(
            "Run started: tier %d (%s), %d rooms, goal %s, affixes [%s], seed %d",
            dungeon_tier.tier, dungeon_tier.name, len(rooms), goal_kind.value,
            ", ".join(a.type.value for a in affixes), run.seed,
        )
        return run

    def enter_room(self, run: RunState, room_id: str, player: PlayerSnapshot) -> RoomResult:
        """Move into *room_id*, pay a torch and run the room's entry handler.

        Raises ``KeyError`` for an unknown room id.  Every other refusal
        (run over, another room pending, locked or out of reach) comes back
        as an ineffective result with the run unchanged.
        """
        room = run.room(room_id)

        refusal = self._entry_refusal(run, room_id)
        if refusal is not None:
            return RoomResult(log=(refusal,), effective=False, run=run)

        updates: dict = {"visits": run.visits + 1, "current_room_id": room.id}
        if room.type != RoomType.START:
            updates["resource"] = consume(run.resource)
        if room.state == RoomState.UNVISITED:
            updates["points"] = add_points(run.points, room.type)
        run = run.model_copy(update=updates)

        rng = GameRNG(run.seed).fork(f"room:{room.id}:{run.visits}")
        ctx = RoomContext(
            run=run,
            room=run.room(room.id),
            player=player,
            provider=self.provider.bind(rng.fork("content")),
            rng=rng,
        )
        run, result = dispatch(ctx)

        room = run.room(room.id)
        if result.next_state in SUB_FLOWS:
            pending = PendingEncounter(
                room_id=room.id,
                kind=result.next_state,
                enemy=result.enemy,
                offers=result.offers,
            )
            run = run.with_room(room.model_copy(update={"state": RoomState.ENTERED}))
            run = run.model_copy(update={"pending": pending})
        else:
            run = run.with_room(room.model_copy(update={"state": RoomState.RESOLVED}))

        logger.debug(
            "Entered %s (%s), torches %d/%d, next %s",
            room.id, room.type.value, run.resource.torches, run.resource.max_torches,
            result.next_state.value if result.next_state else None,
        )
        return result.model_copy(update={"run": run})

    def _entry_refusal(self, run: RunState, room_id: str) -> str | None:
        room = run.room(room_id)
        if not run.is_active:
            return "The expedition is over."
        if run.pending is not None:
            busy = run.room(run.pending.room_id)
            return f"Finish what you started in room {busy.index + 1} first."
        if room.index > run.furthest_index + 1:
            return "That room lies deeper than you have reached."
        if room.type == RoomType.BOSS and not can_enter_boss_room(run.goal, "boss"):
            return "A dark presence bars the way. Complete your goal first."
        if room.locked and not can_enter_boss_room(run.goal, "gate"):
            return "The gate is sealed. Complete your goal first."
        return None

    # ------------------------------------------------------------------
    # Sub-flow resolution
    # ------------------------------------------------------------------

    def resolve_battle(self, run: RunState, player: PlayerSnapshot, victory: bool) -> RoomResult:
        """Report the host's combat outcome for the pending battle."""
        return self._resolve(
            run, player, {NextState.BATTLE}, None,
            lambda ctx, pending: resolution.resolve_battle(ctx, pending, victory),
        )

    def use_altar(
        self, run: RunState, player: PlayerSnapshot, blessing: AltarBlessing | str,
    ) -> RoomResult:
        return self._resolve(
            run, player, {NextState.EVENT}, RoomType.ALTAR,
            lambda ctx, _: resolution.use_altar(ctx, AltarBlessing(blessing)),
        )

    def handle_trap(
        self, run: RunState, player: PlayerSnapshot, action: TrapAction | str,
    ) -> RoomResult:
        return self._resolve(
            run, player, {NextState.EVENT}, RoomType.TRAP,
            lambda ctx, _: resolution.resolve_trap(ctx, TrapAction(action)),
        )

    def open_chest(self, run: RunState, player: PlayerSnapshot) -> RoomResult:
        return self._resolve(
            run, player, {NextState.EVENT}, RoomType.CHEST,
            lambda ctx, _: resolution.open_chest(ctx),
        )

    def resolve_event(self, run: RunState, player: PlayerSnapshot) -> RoomResult:
        return self._resolve(
            run, player, {NextState.EVENT}, RoomType.EVENT,
            lambda ctx, _: resolution.resolve_event(ctx),
        )

    def trade(self, run: RunState, player: PlayerSnapshot, offer_id: str) -> RoomResult:
        """Buy *offer_id* from the pending merchant; the shop stays open."""
        return self._resolve(
            run, player, {NextState.EVENT}, RoomType.MERCHANT,
            lambda ctx, pending: resolution.trade(ctx, pending, offer_id),
        )

    def leave_room(self, run: RunState, player: PlayerSnapshot | None = None) -> RoomResult:
        """Walk away from the pending room; it counts as resolved, unrewarded."""
        return self._resolve(
            run, player, set(SUB_FLOWS), None, resolution.leave_room,
        )

    def _resolve(
        self,
        run: RunState,
        player: PlayerSnapshot | None,
        kinds: set[NextState],
        room_type: RoomType | None,
        resolver: Resolver,
    ) -> RoomResult:
        pending = run.pending
        if not run.is_active:
            return RoomResult(log=("The expedition is over.",), effective=False, run=run)
        if (
            pending is None
            or pending.kind not in kinds
            or (room_type is not None and run.room(pending.room_id).type != room_type)
        ):
            logger.warning(
                "No matching pending encounter (pending=%s, expected %s)",
                pending.room_id if pending else None,
                room_type.value if room_type else "/".join(sorted(k.value for k in kinds)),
            )
            return RoomResult(log=("There is nothing here to do that with.",),
                              effective=False, run=run)
        room = run.room(pending.room_id)

        rng = GameRNG(run.seed).fork(f"resolve:{room.id}:{run.visits}")
        ctx = RoomContext(
            run=run,
            room=room,
            player=player if player is not None else _NO_PLAYER,
            provider=self.provider.bind(rng.fork("content")),
            rng=rng,
        )
        run, result = resolver(ctx, pending)

        if result.next_state not in SUB_FLOWS:
            room = run.room(room.id)
            run = run.with_room(room.model_copy(update={"state": RoomState.RESOLVED}))
            run = run.model_copy(update={"pending": None})
        if run.status != RunStatus.ACTIVE:
            logger.info("Run ended in room %s: %s", room.id, run.status.value)
        return result.model_copy(update={"run": run})

    # ------------------------------------------------------------------
    # Ending a run
    # ------------------------------------------------------------------

    def exit_run(self, run: RunState) -> DungeonRunRewards:
        """Leave the dungeon and compute the payout.

        Banked loot is paid with the exploration, torch and goal bonuses;
        a completed run adds the tier purse.  Failed or abandoned runs pay
        nothing.  Any pending encounter is abandoned on the way out.
        """
        rewards = self._rewards(run)
        logger.info(
            "Run exited (%s): %d gold, %d exp, %d items, x%.2f",
            run.status.value, rewards.final_gold, rewards.final_exp,
            len(rewards.items), rewards.total_multiplier,
        )
        return rewards

    def close_run(self, run: RunState) -> RunState:
        """Snapshot of *run* after :meth:`exit_run`: active runs become exited."""
        if run.is_active:
            return run.model_copy(update={"status": RunStatus.EXITED, "pending": None})
        return run

    def abort_run(self, run: RunState) -> RunState:
        """Abandon the run.  No rewards are paid for an abandoned run."""
        logger.info("Run abandoned at room %s", run.current_room_id)
        return run.model_copy(update={"status": RunStatus.ABANDONED, "pending": None})

    def _base_rewards(self, run: RunState) -> tuple[int, int]:
        if run.status in (RunStatus.FAILED, RunStatus.ABANDONED):
            return 0, 0
        gold, exp = run.earned_gold, run.earned_exp
        if run.status == RunStatus.COMPLETED:
            gold += run.tier.base_gold
            exp += run.tier.base_exp
        return gold, exp

    def _rewards(self, run: RunState) -> DungeonRunRewards:
        base_gold, base_exp = self._base_rewards(run)
        rewards = finalize_rewards(
            base_gold, base_exp, run.points, run.resource, run.goal.completed,
        )
        if run.status in (RunStatus.FAILED, RunStatus.ABANDONED):
            return rewards
        return rewards.with_items(run.loot)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def predict(self, run: RunState) -> RewardForecast:
        """What :meth:`exit_run` would pay if the player left right now."""
        base_gold, base_exp = self._base_rewards(run)
        return predict_rewards(run.points, run.resource, base_gold, base_exp, run.goal.completed)

    def advise(self, run: RunState) -> ExitAdvice:
        return exit_advice(
            run.resource, run.goal.completed, run.rooms_remaining, run.rooms_visited,
        )

    def resource_status(self, run: RunState) -> ResourceStatus:
        return resource_status(run.resource)

    def exploration_summary(self, run: RunState) -> ExplorationSummary:
        return describe_exploration(run.points)

    def reachable_rooms(self, run: RunState) -> list[str]:
        """Ids of rooms :meth:`enter_room` would currently accept."""
        if not run.is_active or run.pending is not None:
            return []
        return [room.id for room in run.rooms if self._entry_refusal(run, room.id) is None]


# Stand-in for resolvers that never look at the player (leaving a room).
_NO_PLAYER = PlayerSnapshot(health=1, max_health=1)
