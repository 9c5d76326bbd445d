"""Content registry -- serves enemies and loot materials to the engine.

The engine only talks to the :class:`ContentProvider` interface; hosts may
plug in their own catalogs.  :class:`ContentRegistry` is the default
provider, loading the bundled JSON catalogs from ``data/``.

Enemy pools by room number (``room_index + 1``):

- 1-3: easy, 4-6: medium, 7+: hard, boss rooms draw from the boss pool.

Material pools by room number:

- 1-2: common, 3-4: common + rare, 5+: everything but legendary,
  boss rooms: everything.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from delve.catalog.tiers import Difficulty, scale_enemy
from delve.sim.core.entities import Enemy, Item, ItemRarity
from delve.sim.core.rng import GameRNG

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).resolve().parent / "data"
_DEFAULT_ENEMIES_PATH = _DATA_DIR / "enemies.json"
_DEFAULT_MATERIALS_PATH = _DATA_DIR / "materials.json"

EXP_PER_ENEMY_LEVEL = 25
GOLD_PER_ENEMY_LEVEL = 15


class ContentProvider(ABC):
    """Source of enemies and materials for room handlers.

    Returning ``None`` (or an empty list) is always allowed; the engine
    turns it into a harmless empty room.
    """

    @abstractmethod
    def generate_enemy(
        self, room_index: int, is_boss: bool, difficulty: Difficulty,
    ) -> Enemy | None:
        """Enemy for the room at *room_index*, already scaled for *difficulty*."""

    @abstractmethod
    def generate_material(self, room_index: int, is_boss: bool) -> Item | None:
        """A single loot material appropriate for the room depth."""

    def generate_materials(self, room_index: int, is_boss: bool, count: int) -> list[Item]:
        materials: list[Item] = []
        for _ in range(count):
            material = self.generate_material(room_index, is_boss)
            if material is not None:
                materials.append(material)
        return materials

    def bind(self, rng: GameRNG) -> ContentProvider:
        """Return a provider drawing its randomness from *rng*.

        Providers without internal randomness may return ``self``.
        """
        return self


def _parse_enemy(raw: dict[str, Any], is_boss: bool) -> Enemy:
    level = raw["level"]
    return Enemy(
        id=raw["id"],
        name=raw["name"],
        level=level,
        description=raw.get("description", ""),
        health=raw["health"],
        max_health=raw.get("max_health", raw["health"]),
        attack=raw["attack"],
        defense=raw["defense"],
        experience=raw.get("experience", level * EXP_PER_ENEMY_LEVEL),
        gold=raw.get("gold", level * GOLD_PER_ENEMY_LEVEL),
        is_boss=is_boss,
    )


class ContentRegistry(ContentProvider):
    """JSON-backed default content provider.

    Usage::

        registry = ContentRegistry()
        registry.load_enemies()
        registry.load_materials()

        enemy = registry.bind(GameRNG(7)).generate_enemy(2, False, Difficulty.NORMAL)
    """

    def __init__(self, rng: GameRNG | None = None) -> None:
        self.enemy_pools: dict[str, list[Enemy]] = {}
        self.materials: list[Item] = []
        self._rng = rng or GameRNG(seed=0)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_enemies(self, path: str | Path | None = None) -> None:
        """Load enemy pools (``easy``/``medium``/``hard``/``boss``) from JSON."""
        path = Path(path) if path is not None else _DEFAULT_ENEMIES_PATH
        raw_pools = json.loads(path.read_text(encoding="utf-8"))
        for pool, entries in raw_pools.items():
            self.enemy_pools[pool] = [
                _parse_enemy(entry, is_boss=pool == "boss") for entry in entries
            ]
        logger.debug("Loaded %d enemy pools from %s", len(self.enemy_pools), path)

    def load_materials(self, path: str | Path | None = None) -> None:
        path = Path(path) if path is not None else _DEFAULT_MATERIALS_PATH
        raw_items = json.loads(path.read_text(encoding="utf-8"))
        self.materials = [Item(**raw) for raw in raw_items]
        logger.debug("Loaded %d materials from %s", len(self.materials), path)

    @classmethod
    def default(cls) -> ContentRegistry:
        """Registry with the bundled catalogs loaded."""
        registry = cls()
        registry.load_enemies()
        registry.load_materials()
        return registry

    def bind(self, rng: GameRNG) -> ContentRegistry:
        bound = ContentRegistry(rng=rng)
        bound.enemy_pools = self.enemy_pools
        bound.materials = self.materials
        return bound

    # ------------------------------------------------------------------
    # ContentProvider interface
    # ------------------------------------------------------------------

    def generate_enemy(
        self,
        room_index: int,
        is_boss: bool = False,
        difficulty: Difficulty = Difficulty.NORMAL,
    ) -> Enemy | None:
        pool = self.enemy_pools.get(self._enemy_pool_name(room_index, is_boss), [])
        if not pool:
            return None
        return scale_enemy(self._rng.random_choice(pool), difficulty)

    def generate_material(self, room_index: int, is_boss: bool = False) -> Item | None:
        candidates = self._material_pool(room_index, is_boss)
        if not candidates:
            return None
        chosen = self._rng.random_choice(candidates)
        # Each drop is a distinct inventory entry.
        suffix = f"{self._rng.random_int(0, 0xFFFFFFFF):08x}"
        return chosen.model_copy(update={"id": f"{chosen.id}_{suffix}"})

    # ------------------------------------------------------------------
    # Pools
    # ------------------------------------------------------------------

    @staticmethod
    def _enemy_pool_name(room_index: int, is_boss: bool) -> str:
        if is_boss:
            return "boss"
        room_number = room_index + 1
        if room_number <= 3:
            return "easy"
        if room_number <= 6:
            return "medium"
        return "hard"

    def _material_pool(self, room_index: int, is_boss: bool) -> list[Item]:
        if is_boss:
            return list(self.materials)
        room_number = room_index + 1
        if room_number <= 2:
            allowed = {ItemRarity.COMMON}
        elif room_number <= 4:
            allowed = {ItemRarity.COMMON, ItemRarity.RARE}
        else:
            allowed = {ItemRarity.COMMON, ItemRarity.RARE, ItemRarity.EPIC}
        return [m for m in self.materials if m.rarity in allowed]
