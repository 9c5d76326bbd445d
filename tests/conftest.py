"""Shared fixtures and helpers for engine tests."""

from __future__ import annotations

from typing import Callable

import pytest

from delve.catalog.rooms import GoalItemKind, Room, RoomType
from delve.catalog.tiers import Difficulty, scale_enemy
from delve.sim.content.registry import ContentProvider, ContentRegistry
from delve.sim.core.entities import Enemy, Item, ItemRarity, PlayerSnapshot
from delve.sim.dungeon.map_gen import MapGenerator
from delve.sim.dungeon.run_manager import RunManager


class StubProvider(ContentProvider):
    """Always serves the same enemy and material."""

    def __init__(self) -> None:
        self.enemy_calls: list[tuple[int, bool, Difficulty]] = []
        self.material_calls = 0

    def generate_enemy(self, room_index, is_boss, difficulty):
        self.enemy_calls.append((room_index, is_boss, difficulty))
        enemy = Enemy(
            id="boss" if is_boss else "rat",
            name="Rat King" if is_boss else "Giant Rat",
            level=5 if is_boss else 1,
            health=100,
            max_health=100,
            attack=10,
            defense=2,
            experience=50,
            gold=40,
            is_boss=is_boss,
        )
        return scale_enemy(enemy, difficulty)

    def generate_material(self, room_index, is_boss):
        self.material_calls += 1
        return Item(
            id=f"bone_{self.material_calls}",
            name="Old Bone",
            rarity=ItemRarity.COMMON,
            price=20,
        )


class EmptyProvider(ContentProvider):
    """A provider whose catalogs have run dry."""

    def generate_enemy(self, room_index, is_boss, difficulty):
        return None

    def generate_material(self, room_index, is_boss):
        return None


class ShiftingProvider(StubProvider):
    """Keeps a counter across calls and ignores ``bind``: every material differs."""

    def generate_material(self, room_index, is_boss):
        self.material_calls += 1
        n = self.material_calls
        return Item(id=f"mat_{n}", name=f"Mat{n}", rarity=ItemRarity.COMMON, price=20)


class FixedMapGenerator(MapGenerator):
    """Returns a hand-written path: start, *middle*, gate, boss."""

    def __init__(
        self,
        middle: list[RoomType],
        goal_items: dict[int, GoalItemKind] | None = None,
    ) -> None:
        self.middle = middle
        self.goal_items = goal_items or {}

    def generate(self, tier, goal_type, affixes, rng):
        types = [RoomType.START, *self.middle, RoomType.EVENT, RoomType.BOSS]
        gate_index = len(types) - 2
        return [
            Room(
                id=f"r{i}",
                index=i,
                type=room_type,
                locked=i == gate_index,
                goal_item=self.goal_items.get(i),
            )
            for i, room_type in enumerate(types)
        ]


@pytest.fixture(scope="session")
def registry() -> ContentRegistry:
    """Registry with the bundled catalogs loaded once."""
    return ContentRegistry.default()


@pytest.fixture
def player() -> PlayerSnapshot:
    return PlayerSnapshot(
        health=100,
        max_health=100,
        mana=50,
        max_mana=50,
        dexterity=10,
        luck=10,
        level=1,
        gold=200,
    )


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def empty_provider() -> EmptyProvider:
    return EmptyProvider()


@pytest.fixture
def shifting_provider() -> ShiftingProvider:
    return ShiftingProvider()


@pytest.fixture
def make_manager(stub_provider) -> Callable[..., RunManager]:
    """Build a manager over a fixed path.

    ``make_manager([RoomType.COMBAT], {1: GoalItemKind.KEY})`` yields the
    path ``start, combat(key), gate, boss``.
    """

    def _make(
        middle: list[RoomType],
        goal_items: dict[int, GoalItemKind] | None = None,
        provider: ContentProvider | None = None,
    ) -> RunManager:
        return RunManager(
            provider or stub_provider,
            map_generator=FixedMapGenerator(middle, goal_items),
        )

    return _make
