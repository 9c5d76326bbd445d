"""Dungeon tiers -- named difficulty bands loaded once per process.

Each tier fixes the room count, enemy scaling, reward multiplier and how
many affixes a run rolls.  Tiers above the first are gated behind an
unlock requirement (tiers completed + player level).
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from delve.sim.core.entities import Enemy


class Difficulty(str, Enum):
    """Difficulty band of a tier; scales enemy stats."""

    NORMAL = "normal"
    HEROIC = "heroic"
    MYTHIC = "mythic"


DIFFICULTY_MULTIPLIERS: dict[Difficulty, float] = {
    Difficulty.NORMAL: 1.0,
    Difficulty.HEROIC: 1.3,
    Difficulty.MYTHIC: 1.6,
}

# Completion purse per point of ``base_reward_multiplier``.
BASE_GOLD_PER_MULTIPLIER = 100
BASE_EXP_PER_MULTIPLIER = 50


class UnlockRequirement(BaseModel):
    """Conditions a player must meet before a tier is offered."""

    model_config = ConfigDict(frozen=True)

    completed_tiers: int = Field(ge=0)
    player_level: int = Field(ge=1)


class DungeonTier(BaseModel):
    """Static definition of one dungeon tier."""

    model_config = ConfigDict(frozen=True)

    tier: int = Field(ge=1)
    name: str
    description: str = ""
    min_player_level: int = Field(ge=1)
    room_count: int = Field(ge=6)
    """Path length including the start, gate and boss rooms."""

    difficulty: Difficulty
    base_reward_multiplier: float = Field(gt=0)
    enemy_level_bonus: int = Field(ge=0)
    affix_count: int = Field(ge=0)
    unlock_requirement: UnlockRequirement | None = None

    @property
    def base_gold(self) -> int:
        return round(self.base_reward_multiplier * BASE_GOLD_PER_MULTIPLIER)

    @property
    def base_exp(self) -> int:
        return round(self.base_reward_multiplier * BASE_EXP_PER_MULTIPLIER)


def _tier(
    tier: int,
    name: str,
    description: str,
    min_level: int,
    rooms: int,
    difficulty: Difficulty,
    multiplier: float,
    level_bonus: int,
    affixes: int,
) -> DungeonTier:
    unlock = None
    if tier > 1:
        unlock = UnlockRequirement(completed_tiers=tier - 1, player_level=min_level)
    return DungeonTier(
        tier=tier,
        name=name,
        description=description,
        min_player_level=min_level,
        room_count=rooms,
        difficulty=difficulty,
        base_reward_multiplier=multiplier,
        enemy_level_bonus=level_bonus,
        affix_count=affixes,
        unlock_requirement=unlock,
    )


TIERS: tuple[DungeonTier, ...] = (
    _tier(1, "Novice Catacombs", "Shallow crypts for first-time delvers.",
          1, 8, Difficulty.NORMAL, 1.0, 0, 1),
    _tier(2, "Goblin Mines", "Abandoned shafts crawling with goblins and traps.",
          3, 12, Difficulty.NORMAL, 1.2, 1, 1),
    _tier(3, "Cursed Ruins", "Ancient ruins steeped in undeath and dark magic.",
          5, 16, Difficulty.NORMAL, 1.5, 2, 2),
    _tier(4, "Dragon's Lair", "The den of a fire drake and its servants.",
          8, 20, Difficulty.HEROIC, 2.0, 3, 2),
    _tier(5, "Abyssal Depths", "Bottomless caverns where demons stir.",
          12, 24, Difficulty.HEROIC, 2.5, 5, 3),
    _tier(6, "Temple of Forgotten Gods", "A sanctum watched by divine wardens.",
          16, 28, Difficulty.MYTHIC, 3.0, 7, 3),
    _tier(7, "Gates of Hell", "A breach into the infernal planes.",
          20, 32, Difficulty.MYTHIC, 4.0, 10, 4),
    _tier(8, "Throne of Darkness", "The final trial before the lord of shadow.",
          25, 36, Difficulty.MYTHIC, 5.0, 15, 5),
)

_TIERS_BY_NUMBER: dict[int, DungeonTier] = {t.tier: t for t in TIERS}


def get_tier(tier_number: int) -> DungeonTier | None:
    """Return the tier with the given number, or ``None``."""
    return _TIERS_BY_NUMBER.get(tier_number)


def require_tier(tier_number: int) -> DungeonTier:
    """Return the tier with the given number or raise ``ValueError``."""
    tier = get_tier(tier_number)
    if tier is None:
        raise ValueError(
            f"Unknown dungeon tier {tier_number!r}; "
            f"expected one of {sorted(_TIERS_BY_NUMBER)}"
        )
    return tier


def is_tier_unlocked(
    tier: DungeonTier, player_level: int, completed_tiers: Iterable[int],
) -> bool:
    """Check level and unlock requirements for *tier*."""
    if player_level < tier.min_player_level:
        return False
    req = tier.unlock_requirement
    if req is None:
        return True
    completed = set(completed_tiers)
    return len(completed) >= req.completed_tiers and player_level >= req.player_level


def get_available_tiers(
    player_level: int, completed_tiers: Iterable[int],
) -> list[DungeonTier]:
    """All tiers the player may currently enter, lowest first."""
    completed = list(completed_tiers)
    return [t for t in TIERS if is_tier_unlocked(t, player_level, completed)]


def get_next_available_tier(
    player_level: int, completed_tiers: Iterable[int],
) -> DungeonTier | None:
    """Lowest available tier the player has not completed yet."""
    completed = list(completed_tiers)
    for tier in get_available_tiers(player_level, completed):
        if tier.tier not in completed:
            return tier
    return None


def scale_enemy(enemy: Enemy, difficulty: Difficulty | str) -> Enemy:
    """Apply the difficulty band's stat multiplier to *enemy*."""
    return enemy.scaled(DIFFICULTY_MULTIPLIERS[Difficulty(difficulty)])
