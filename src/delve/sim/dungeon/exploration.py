"""Exploration score -- points per room visited, converted to a multiplier.

==========  =================================  ======
Category    Room types                         Points
==========  =================================  ======
safe        start, altar, merchant, chest      1
dangerous   combat, event, trap                2
boss        boss                               3
==========  =================================  ======

Unknown room types count as safe.  Each point adds 5% to the reward
multiplier (uncapped).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from delve.catalog.rooms import RoomType

POINTS_MULTIPLIER_RATE = 0.05


class ScoreCategory(str, Enum):
    SAFE = "safe"
    DANGEROUS = "dangerous"
    BOSS = "boss"


class ExplorationRank(str, Enum):
    NOVICE = "novice"
    EXPLORER = "explorer"
    VETERAN = "veteran"
    MASTER = "master"


CATEGORY_POINTS: dict[ScoreCategory, int] = {
    ScoreCategory.SAFE: 1,
    ScoreCategory.DANGEROUS: 2,
    ScoreCategory.BOSS: 3,
}

ROOM_CATEGORIES: dict[str, ScoreCategory] = {
    RoomType.START: ScoreCategory.SAFE,
    RoomType.ALTAR: ScoreCategory.SAFE,
    RoomType.MERCHANT: ScoreCategory.SAFE,
    RoomType.CHEST: ScoreCategory.SAFE,
    RoomType.COMBAT: ScoreCategory.DANGEROUS,
    RoomType.EVENT: ScoreCategory.DANGEROUS,
    RoomType.TRAP: ScoreCategory.DANGEROUS,
    RoomType.BOSS: ScoreCategory.BOSS,
}

# Highest qualifying threshold wins; lower bounds are inclusive.
RANK_THRESHOLDS: tuple[tuple[int, ExplorationRank], ...] = (
    (20, ExplorationRank.MASTER),
    (15, ExplorationRank.VETERAN),
    (10, ExplorationRank.EXPLORER),
)


class ExplorationPoints(BaseModel):
    """Accumulated exploration score of a run.

    ``current`` always equals the sum of the three sub-totals.
    """

    model_config = ConfigDict(frozen=True)

    current: int = Field(default=0, ge=0)
    from_safe_rooms: int = Field(default=0, ge=0)
    from_dangerous: int = Field(default=0, ge=0)
    from_boss: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_total(self) -> ExplorationPoints:
        total = self.from_safe_rooms + self.from_dangerous + self.from_boss
        if self.current != total:
            raise ValueError(
                f"current ({self.current}) must equal the category sum ({total})"
            )
        return self


class ExplorationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    breakdown: str
    multiplier: str
    rank: ExplorationRank


class Achievement(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    icon: str


_CATEGORY_FIELDS: dict[ScoreCategory, str] = {
    ScoreCategory.SAFE: "from_safe_rooms",
    ScoreCategory.DANGEROUS: "from_dangerous",
    ScoreCategory.BOSS: "from_boss",
}


def points_for_room(room_type: RoomType | str) -> tuple[int, ScoreCategory]:
    """Score value and category for a room type."""
    category = ROOM_CATEGORIES.get(room_type, ScoreCategory.SAFE)
    return CATEGORY_POINTS[category], category


def add_points(points: ExplorationPoints, room_type: RoomType | str) -> ExplorationPoints:
    """Credit one visit to a room of *room_type*."""
    value, category = points_for_room(room_type)
    field = _CATEGORY_FIELDS[category]
    return points.model_copy(update={
        "current": points.current + value,
        field: getattr(points, field) + value,
    })


def exploration_multiplier(points: ExplorationPoints) -> float:
    return 1 + points.current * POINTS_MULTIPLIER_RATE


def exploration_rank(points: ExplorationPoints) -> ExplorationRank:
    for threshold, rank in RANK_THRESHOLDS:
        if points.current >= threshold:
            return rank
    return ExplorationRank.NOVICE


def describe_exploration(points: ExplorationPoints) -> ExplorationSummary:
    """Total, per-category breakdown, multiplier label and rank."""
    parts = []
    if points.from_safe_rooms > 0:
        parts.append(f"Safe: {points.from_safe_rooms}")
    if points.from_dangerous > 0:
        parts.append(f"Dangerous: {points.from_dangerous}")
    if points.from_boss > 0:
        parts.append(f"Boss: {points.from_boss}")

    bonus = round(points.current * POINTS_MULTIPLIER_RATE * 100)
    return ExplorationSummary(
        total=points.current,
        breakdown=", ".join(parts),
        multiplier=f"+{bonus}%",
        rank=exploration_rank(points),
    )


def exploration_achievements(points: ExplorationPoints) -> list[Achievement]:
    achievements: list[Achievement] = []
    if points.from_safe_rooms >= 5:
        achievements.append(Achievement(
            name="Cautious Explorer",
            description="Visit 5+ safe rooms",
            icon="🛡️",
        ))
    if points.from_dangerous >= 8:
        achievements.append(Achievement(
            name="Daredevil",
            description="Visit 4+ dangerous rooms",
            icon="⚔️",
        ))
    if points.from_boss >= 3:
        achievements.append(Achievement(
            name="Boss Slayer",
            description="Defeat the boss",
            icon="👑",
        ))
    if points.current >= 20:
        achievements.append(Achievement(
            name="Dungeon Master",
            description="Earn 20+ exploration points",
            icon="🏆",
        ))
    return achievements
