"""Goal catalog -- the single objective of a run and its progress.

The goal gates the gate and boss rooms: neither can be entered until the
goal is completed.  Each goal type also declares where its collectibles
may be hidden, which the room sequencer consults when placing them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from delve.catalog.rooms import GoalItemKind, RoomType
from delve.sim.core.rng import GameRNG


class GoalType(str, Enum):
    KEY_BOSS = "key_boss"
    RESCUE_PRISONER = "rescue_prisoner"
    COLLECT_SHARDS = "collect_shards"


class Goal(BaseModel):
    """Run objective.  ``current`` only ever grows, up to ``required``."""

    model_config = ConfigDict(frozen=True)

    type: GoalType
    description: str
    icon: str
    required: int = Field(ge=1)
    current: int = Field(default=0, ge=0)
    completed: bool = False

    @model_validator(mode="after")
    def _check_progress(self) -> Goal:
        if self.current > self.required:
            raise ValueError(
                f"Goal progress {self.current} exceeds required {self.required}"
            )
        if self.completed != (self.current >= self.required):
            raise ValueError("Goal 'completed' must match current >= required")
        return self


class GoalRequirements(BaseModel):
    """Where a goal's collectibles live and how many are needed."""

    model_config = ConfigDict(frozen=True)

    item_type: GoalItemKind
    count: int
    room_types: tuple[RoomType, ...]


_GOAL_DEFINITIONS: dict[GoalType, dict[str, object]] = {
    GoalType.KEY_BOSS: {
        "description": "🔑 Find the Warden's Key and open the throne room",
        "icon": "🔑",
        "required": 1,
    },
    GoalType.RESCUE_PRISONER: {
        "description": "👤 Rescue the prisoner from the dungeon cells",
        "icon": "👤",
        "required": 1,
    },
    GoalType.COLLECT_SHARDS: {
        "description": "💎 Collect 3 shards of ancient power",
        "icon": "💎",
        "required": 3,
    },
}

_GOAL_REQUIREMENTS: dict[GoalType, GoalRequirements] = {
    GoalType.KEY_BOSS: GoalRequirements(
        item_type=GoalItemKind.KEY, count=1, room_types=(RoomType.COMBAT,),
    ),
    GoalType.COLLECT_SHARDS: GoalRequirements(
        item_type=GoalItemKind.SHARD,
        count=3,
        room_types=(RoomType.COMBAT, RoomType.CHEST),
    ),
    GoalType.RESCUE_PRISONER: GoalRequirements(
        item_type=GoalItemKind.PRISONER, count=1, room_types=(RoomType.EVENT,),
    ),
}

# Room kinds that stay closed until the goal is completed.
GATED_ROOM_KINDS = frozenset({"boss", "gate"})


def create_goal(goal_type: GoalType | str) -> Goal:
    """Fresh goal of the given type with zero progress."""
    try:
        goal_type = GoalType(goal_type)
    except ValueError:
        raise ValueError(
            f"Unknown goal type {goal_type!r}; "
            f"expected one of {[g.value for g in GoalType]}"
        ) from None
    definition = _GOAL_DEFINITIONS[goal_type]
    return Goal(type=goal_type, current=0, completed=False, **definition)


def advance_goal(goal: Goal, increment: int = 1) -> Goal:
    """Return *goal* advanced by *increment*, clamped at ``required``.

    Negative increments are ignored, so progress never decreases and a
    completed goal stays completed.
    """
    new_current = min(goal.current + max(0, increment), goal.required)
    return goal.model_copy(
        update={"current": new_current, "completed": new_current >= goal.required},
    )


def can_enter_boss_room(goal: Goal, room_kind: str) -> bool:
    """Boss and gate rooms open only once the goal is completed."""
    kind = room_kind.value if isinstance(room_kind, Enum) else room_kind
    if kind in GATED_ROOM_KINDS:
        return goal.completed
    return True


def get_goal_room_requirements(goal_type: GoalType | str) -> GoalRequirements:
    """Collectible placement rules for *goal_type*."""
    return _GOAL_REQUIREMENTS[GoalType(goal_type)]


def random_goal_type(rng: GameRNG) -> GoalType:
    return rng.random_choice(list(GoalType))
