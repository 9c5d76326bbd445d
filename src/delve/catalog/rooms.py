"""Room type tags and the per-run room value type."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RoomType(str, Enum):
    """Encounter kind of a single room on the expedition path."""

    START = "start"
    COMBAT = "combat"
    BOSS = "boss"
    TRAP = "trap"
    ALTAR = "altar"
    MERCHANT = "merchant"
    CHEST = "chest"
    EVENT = "event"


class RoomState(str, Enum):
    """Per-room lifecycle: ``unvisited -> entered -> resolved``."""

    UNVISITED = "unvisited"
    ENTERED = "entered"
    RESOLVED = "resolved"


class GoalItemKind(str, Enum):
    """Collectible that advances the run goal when its room is resolved."""

    KEY = "key"
    SHARD = "shard"
    PRISONER = "prisoner"


class Room(BaseModel):
    """A single node of the expedition path.

    The ``defeated``/``looted``/``used`` flags are one-way: once set they are
    never cleared within a run.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    index: int = Field(ge=0)
    type: RoomType
    state: RoomState = RoomState.UNVISITED
    defeated: bool = False
    looted: bool = False
    used: bool = False
    locked: bool = False
    """Gate rooms stay locked until the run goal is completed."""

    goal_item: GoalItemKind | None = None
    goal_item_claimed: bool = False
    has_loot: bool | None = None
    """Chest contents, decided the first time the chest is entered."""

    threat_level: int = Field(default=1, ge=1, le=3)
    hint: str | None = None

    @property
    def is_cleared(self) -> bool:
        return self.defeated or self.looted or self.used

    def with_flags(self, **flags: bool) -> Room:
        """Return a copy with the given flags raised.  Flags never revert."""
        update = {name: getattr(self, name) or value for name, value in flags.items()}
        return self.model_copy(update=update)
