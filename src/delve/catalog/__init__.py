"""Static catalogs: tiers, affixes, goals and room tags."""

from delve.catalog.affixes import (
    AFFIXES,
    Affix,
    AffixContext,
    AffixType,
    apply_affix_effect,
    select_affixes,
)
from delve.catalog.goals import Goal, GoalType, advance_goal, can_enter_boss_room, create_goal
from delve.catalog.rooms import GoalItemKind, Room, RoomState, RoomType
from delve.catalog.tiers import TIERS, Difficulty, DungeonTier, get_tier, require_tier

__all__ = [
    "AFFIXES",
    "Affix",
    "AffixContext",
    "AffixType",
    "Difficulty",
    "DungeonTier",
    "Goal",
    "GoalItemKind",
    "GoalType",
    "Room",
    "RoomState",
    "RoomType",
    "TIERS",
    "advance_goal",
    "apply_affix_effect",
    "can_enter_boss_room",
    "create_goal",
    "get_tier",
    "require_tier",
    "select_affixes",
]
