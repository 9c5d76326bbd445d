"""Room sequencer for expedition runs.

Builds a linear path of ``tier.room_count`` rooms:

- Room 0: always the start room
- Middle rooms: weighted random (combat 40%, event 20%, chest 10%,
  trap 10%, altar 10%, merchant 10%)
- Second to last: the locked gate (an event room that opens with the goal)
- Last: the boss

Constraints:
- No consecutive altar/merchant/trap of the same type
- The goal always has enough host rooms; rolled rooms are converted if short
- Goal items are placed deepest first, preferring rooms at index >= 4
"""

from __future__ import annotations

from typing import Sequence

from delve.catalog.affixes import Affix, AffixType, has_affix
from delve.catalog.goals import GoalRequirements, GoalType, get_goal_room_requirements
from delve.catalog.rooms import GoalItemKind, Room, RoomType
from delve.catalog.tiers import Difficulty, DungeonTier
from delve.sim.core.rng import GameRNG

# Weighted pool for middle rooms (weights sum to 100)
_RANDOM_WEIGHTS: list[tuple[RoomType, int]] = [
    (RoomType.COMBAT, 40),
    (RoomType.EVENT, 20),
    (RoomType.CHEST, 10),
    (RoomType.TRAP, 10),
    (RoomType.ALTAR, 10),
    (RoomType.MERCHANT, 10),
]

# Room types that cannot appear twice in a row
_NO_CONSECUTIVE = {RoomType.ALTAR, RoomType.MERCHANT, RoomType.TRAP}

GOAL_ITEM_MIN_INDEX = 4
HINT_CHANCE = 0.3

_BASE_THREAT: dict[RoomType, int] = {
    RoomType.START: 1,
    RoomType.ALTAR: 1,
    RoomType.MERCHANT: 1,
    RoomType.CHEST: 1,
    RoomType.EVENT: 1,
    RoomType.TRAP: 2,
    RoomType.COMBAT: 2,
    RoomType.BOSS: 3,
}

_DIFFICULTY_THREAT: dict[Difficulty, int] = {
    Difficulty.NORMAL: 0,
    Difficulty.HEROIC: 1,
    Difficulty.MYTHIC: 2,
}

ROOM_HINTS: dict[RoomType, tuple[str, ...]] = {
    RoomType.COMBAT: (
        "You hear growling beyond the door",
        "Fresh claw marks scar the floor",
    ),
    RoomType.TRAP: (
        "The flagstones ahead look uneven",
        "A faint click echoes down the corridor",
    ),
    RoomType.ALTAR: ("A soft glow seeps from the doorway",),
    RoomType.MERCHANT: ("Someone is humming a trader's tune",),
    RoomType.CHEST: ("Something glints in the dark",),
    RoomType.EVENT: (
        "A strange smell drifts from the room",
        "You hear muffled voices",
    ),
    RoomType.BOSS: ("The air grows heavy and cold",),
}


class MapGenerator:
    """Generates the linear room path of one expedition."""

    def generate(
        self,
        tier: DungeonTier,
        goal_type: GoalType,
        affixes: Sequence[Affix],
        rng: GameRNG,
    ) -> list[Room]:
        """Generate the ordered room list for a run.

        Parameters
        ----------
        tier:
            Sets the room count and the difficulty band used for threat.
        goal_type:
            Decides which rooms must exist and where goal items go.
        affixes:
            ``treasure_call`` adds a chest to the path.
        rng:
            Dedicated map stream; the same stream always yields the same path.
        """
        requirements = get_goal_room_requirements(goal_type)

        # Index 0 is the start, the last two are the gate and the boss.
        types: list[RoomType] = [RoomType.START]
        for _ in range(tier.room_count - 3):
            types.append(self._roll_room_type(rng, types[-1]))

        self._ensure_goal_hosts(types, requirements)
        goal_slots = self._place_goal_items(types, requirements)

        if has_affix(affixes, AffixType.TREASURE_CALL):
            self._add_treasure_chest(types, goal_slots, rng)

        gate_index = len(types)
        types += [RoomType.EVENT, RoomType.BOSS]

        rooms: list[Room] = []
        for index, room_type in enumerate(types):
            rooms.append(Room(
                id=f"r{index}",
                index=index,
                type=room_type,
                locked=index == gate_index,
                goal_item=goal_slots.get(index),
                threat_level=self._threat_level(room_type, index, tier.difficulty),
                hint=self._roll_hint(rng, room_type),
            ))
        return rooms

    def _roll_room_type(self, rng: GameRNG, prev_type: RoomType) -> RoomType:
        """Roll a weighted random room type with constraints."""
        available = [
            (room_type, weight)
            for room_type, weight in _RANDOM_WEIGHTS
            if not (room_type in _NO_CONSECUTIVE and room_type == prev_type)
        ]

        # Weighted random selection
        total = sum(w for _, w in available)
        roll = rng.random_float() * total
        cumulative = 0
        for room_type, weight in available:
            cumulative += weight
            if roll < cumulative:
                return room_type

        return available[-1][0]

    @staticmethod
    def _ensure_goal_hosts(types: list[RoomType], requirements: GoalRequirements) -> None:
        """Convert rolled rooms (deepest first) until the goal has enough hosts."""
        hosts = [i for i in range(1, len(types)) if types[i] in requirements.room_types]
        missing = requirements.count - len(hosts)
        for index in range(len(types) - 1, 0, -1):
            if missing <= 0:
                break
            if types[index] not in requirements.room_types:
                types[index] = requirements.room_types[0]
                missing -= 1

    @staticmethod
    def _place_goal_items(
        types: list[RoomType], requirements: GoalRequirements,
    ) -> dict[int, GoalItemKind]:
        hosts = [
            i for i in range(len(types) - 1, 0, -1)
            if types[i] in requirements.room_types
        ]
        deep = [i for i in hosts if i >= GOAL_ITEM_MIN_INDEX]
        shallow = [i for i in hosts if i < GOAL_ITEM_MIN_INDEX]
        chosen = (deep + shallow)[: requirements.count]
        return {index: requirements.item_type for index in chosen}

    @staticmethod
    def _add_treasure_chest(
        types: list[RoomType], goal_slots: dict[int, GoalItemKind], rng: GameRNG,
    ) -> None:
        candidates = [
            i for i, room_type in enumerate(types)
            if room_type == RoomType.COMBAT and i not in goal_slots
        ]
        if candidates:
            types[rng.random_choice(candidates)] = RoomType.CHEST
        else:
            # Appended rooms sit directly before the gate.
            types.append(RoomType.CHEST)

    @staticmethod
    def _threat_level(room_type: RoomType, index: int, difficulty: Difficulty) -> int:
        threat = _BASE_THREAT[room_type] + index // 3 + _DIFFICULTY_THREAT[difficulty]
        return min(3, threat)

    @staticmethod
    def _roll_hint(rng: GameRNG, room_type: RoomType) -> str | None:
        hints = ROOM_HINTS.get(room_type)
        if not hints or not rng.chance(HINT_CHANCE):
            return None
        return rng.random_choice(hints)
