"""Entity models consumed and produced by the expedition engine.

The engine never owns the player: it reads a :class:`PlayerSnapshot` and
reports :class:`StateDelta` changes for the host to apply.  Enemies and
items come from a content provider.

All data classes use Pydantic v2 BaseModel for validation and
serialization.
"""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------

class PlayerSnapshot(BaseModel):
    """Read-only view of the player at the moment a room is entered."""

    model_config = ConfigDict(frozen=True)

    health: int = Field(ge=0)
    max_health: int = Field(ge=1)
    mana: int = Field(default=0, ge=0)
    max_mana: int = Field(default=0, ge=0)
    dexterity: int = 0
    luck: int = 0
    level: int = Field(default=1, ge=1)
    gold: int = Field(default=0, ge=0)

    @property
    def is_dead(self) -> bool:
        return self.health <= 0

    def apply(self, delta: StateDelta) -> PlayerSnapshot:
        """Return the snapshot after *delta*, clamped to valid ranges."""
        return self.model_copy(update={
            "health": min(self.max_health, max(0, self.health + delta.health)),
            "mana": min(self.max_mana, max(0, self.mana + delta.mana)),
            "gold": max(0, self.gold + delta.gold),
        })


# ---------------------------------------------------------------------------
# Enemy
# ---------------------------------------------------------------------------

class Enemy(BaseModel):
    """A combat opponent handed to the host's combat system."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    level: int = Field(ge=1)
    description: str = ""
    health: int = Field(ge=1)
    max_health: int = Field(ge=1)
    attack: int = Field(ge=0)
    defense: int = Field(ge=0)
    experience: int = Field(ge=0)
    gold: int = Field(ge=0)
    is_boss: bool = False

    def scaled(self, multiplier: float) -> Enemy:
        """Scale health, attack, defense, exp and gold, flooring each."""
        return self.model_copy(update={
            "health": max(1, math.floor(self.health * multiplier)),
            "max_health": max(1, math.floor(self.max_health * multiplier)),
            "attack": math.floor(self.attack * multiplier),
            "defense": math.floor(self.defense * multiplier),
            "experience": math.floor(self.experience * multiplier),
            "gold": math.floor(self.gold * multiplier),
        })


# ---------------------------------------------------------------------------
# Item
# ---------------------------------------------------------------------------

class ItemRarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class Item(BaseModel):
    """A loot item (crafting material or goal collectible)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str = "material"
    rarity: ItemRarity = ItemRarity.COMMON
    price: int = Field(default=0, ge=0)
    description: str = ""
    quantity: int = Field(default=1, ge=1)
    weight: float = Field(default=0.0, ge=0)


# ---------------------------------------------------------------------------
# StateDelta
# ---------------------------------------------------------------------------

class StateDelta(BaseModel):
    """Numeric changes a room asks the host to apply to the player."""

    model_config = ConfigDict(frozen=True)

    health: int = 0
    mana: int = 0
    gold: int = 0
    exp: int = 0
    items: tuple[Item, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.health or self.mana or self.gold or self.exp or self.items)
