"""Core simulation primitives for the expedition engine."""

from delve.sim.core.entities import Enemy, Item, ItemRarity, PlayerSnapshot, StateDelta
from delve.sim.core.rng import GameRNG

__all__ = [
    # rng
    "GameRNG",
    # entities
    "PlayerSnapshot",
    "Enemy",
    "Item",
    "ItemRarity",
    "StateDelta",
]
