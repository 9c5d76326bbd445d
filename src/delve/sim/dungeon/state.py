"""Run state snapshots and room results.

A :class:`RunState` is an immutable snapshot of one expedition.  Every
engine call takes the current snapshot and hands back a new one inside a
:class:`RoomResult`; the host keeps the latest and discards the rest.  The
snapshot round-trips through ``model_dump_json`` / ``model_validate_json``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from delve.catalog.affixes import Affix
from delve.catalog.goals import Goal
from delve.catalog.rooms import Room, RoomState
from delve.catalog.tiers import DungeonTier, require_tier
from delve.sim.core.entities import Enemy, Item, StateDelta
from delve.sim.dungeon.exploration import ExplorationPoints
from delve.sim.dungeon.resources import ExhaustionPenalty, ExpeditionResource


class RunStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    """Boss defeated."""
    FAILED = "failed"
    """Player lost a battle."""
    EXITED = "exited"
    ABANDONED = "abandoned"


class NextState(str, Enum):
    """Sub-flow the host must open before the room counts as resolved."""

    BATTLE = "battle"
    EVENT = "event"
    EXPLORING = "exploring"


SUB_FLOWS = frozenset({NextState.BATTLE, NextState.EVENT})


class MerchantOffer(BaseModel):
    """A single line of a merchant's stock."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    price: int = Field(ge=0)
    item: Item | None = None
    torches: int = 0


class PendingEncounter(BaseModel):
    """The one room currently in flight, awaiting its sub-flow outcome."""

    model_config = ConfigDict(frozen=True)

    room_id: str
    kind: NextState
    enemy: Enemy | None = None
    offers: tuple[MerchantOffer, ...] = ()


class RunState(BaseModel):
    """Complete, serializable state of one expedition."""

    model_config = ConfigDict(frozen=True)

    tier_number: int
    player_level: int = Field(ge=1)
    seed: int
    affixes: tuple[Affix, ...]
    goal: Goal
    resource: ExpeditionResource
    points: ExplorationPoints
    rooms: tuple[Room, ...]
    status: RunStatus = RunStatus.ACTIVE
    current_room_id: str | None = None
    pending: PendingEncounter | None = None
    visits: int = 0
    """Room entries so far; keys the per-entry random streams."""

    earned_gold: int = 0
    earned_exp: int = 0
    loot: tuple[Item, ...] = ()
    sold_offers: tuple[str, ...] = ()
    merchant_stocks: dict[str, tuple[MerchantOffer, ...]] = Field(default_factory=dict)
    """Full stock of each merchant visited, keyed by room id."""

    # -- derived -------------------------------------------------------------

    @property
    def tier(self) -> DungeonTier:
        return require_tier(self.tier_number)

    @property
    def is_active(self) -> bool:
        return self.status == RunStatus.ACTIVE

    def room(self, room_id: str) -> Room:
        """Look up a room by id; raises ``KeyError`` if it does not exist."""
        for room in self.rooms:
            if room.id == room_id:
                return room
        raise KeyError(f"Unknown room id: {room_id!r}")

    @property
    def furthest_index(self) -> int:
        """Deepest room index that has been entered."""
        reached = [r.index for r in self.rooms if r.state != RoomState.UNVISITED]
        return max(reached, default=0)

    @property
    def rooms_visited(self) -> int:
        return sum(1 for r in self.rooms if r.state != RoomState.UNVISITED)

    @property
    def rooms_remaining(self) -> int:
        return sum(1 for r in self.rooms if r.state == RoomState.UNVISITED)

    # -- updates -------------------------------------------------------------

    def with_room(self, room: Room) -> RunState:
        rooms = tuple(room if r.id == room.id else r for r in self.rooms)
        return self.model_copy(update={"rooms": rooms})

    def bank(self, gold: int = 0, exp: int = 0, items: tuple[Item, ...] = ()) -> RunState:
        """Add loot to the run's purse, paid out by the reward calculator."""
        return self.model_copy(update={
            "earned_gold": self.earned_gold + gold,
            "earned_exp": self.earned_exp + exp,
            "loot": self.loot + tuple(items),
        })


class RoomResult(BaseModel):
    """What happened when a room was entered or a sub-flow resolved.

    ``changes`` are immediate effects the host applies to the player
    (health, mana, gold spent, items bought).  ``banked`` is loot added to
    the run purse, paid out with the exploration multiplier on exit.
    """

    model_config = ConfigDict(frozen=True)

    log: tuple[str, ...]
    changes: StateDelta = StateDelta()
    banked: StateDelta = StateDelta()
    next_state: NextState | None = None
    enemy: Enemy | None = None
    offers: tuple[MerchantOffer, ...] = ()
    penalty: ExhaustionPenalty | None = None
    effective: bool = True
    """``False`` when the call had no effect; see ``log`` for why."""

    run: RunState | None = None
