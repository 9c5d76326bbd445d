"""Affix catalog -- run-wide modifiers and the effect pipeline.

A run rolls ``tier.affix_count`` affixes.  Each affix acts on exactly one
:class:`AffixContext`; :func:`apply_affix_effect` threads a value through
every affix of the run in order, and affixes whose context does not match
leave the value untouched.

==================  ========  ===================  =========================
Affix               Polarity  Context              Effect
==================  ========  ===================  =========================
strong_enemies      negative  enemy_stats          x1.15
fragile_chests      negative  chest_loot           -1, min 1
dark_paths          negative  torch_count          -2, min 1
treasure_call       positive  legendary_chance     +0.05 (and an extra chest)
cursed_healing      negative  altar_heal           x0.5
blessed_combat      positive  combat_exp           x1.1
merchant_discount   positive  merchant_price       x0.8
trap_master         negative  trap_damage          x1.25
==================  ========  ===================  =========================
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Callable, Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from delve.sim.core.rng import GameRNG


class AffixType(str, Enum):
    STRONG_ENEMIES = "strong_enemies"
    FRAGILE_CHESTS = "fragile_chests"
    DARK_PATHS = "dark_paths"
    TREASURE_CALL = "treasure_call"
    CURSED_HEALING = "cursed_healing"
    BLESSED_COMBAT = "blessed_combat"
    MERCHANT_DISCOUNT = "merchant_discount"
    TRAP_MASTER = "trap_master"


class AffixContext(str, Enum):
    """The kind of value an affix may transform."""

    ENEMY_STATS = "enemy_stats"
    CHEST_LOOT = "chest_loot"
    ALTAR_HEAL = "altar_heal"
    MERCHANT_PRICE = "merchant_price"
    TRAP_DAMAGE = "trap_damage"
    COMBAT_EXP = "combat_exp"
    TORCH_COUNT = "torch_count"
    LEGENDARY_CHANCE = "legendary_chance"


# Probability contexts are returned unrounded; the caller decides.
FLOAT_CONTEXTS = frozenset({AffixContext.LEGENDARY_CHANCE})


class Affix(BaseModel):
    """Immutable catalog entry for a single affix."""

    model_config = ConfigDict(frozen=True)

    type: AffixType
    name: str
    description: str
    icon: str
    positive: bool


AFFIXES: dict[AffixType, Affix] = {
    AffixType.STRONG_ENEMIES: Affix(
        type=AffixType.STRONG_ENEMIES,
        name="Hardened Foes",
        description="Enemies have 15% more health",
        icon="💪",
        positive=False,
    ),
    AffixType.FRAGILE_CHESTS: Affix(
        type=AffixType.FRAGILE_CHESTS,
        name="Fragile Chests",
        description="Every chest yields one item fewer",
        icon="📦",
        positive=False,
    ),
    AffixType.DARK_PATHS: Affix(
        type=AffixType.DARK_PATHS,
        name="Dark Paths",
        description="Start with 2 fewer torches",
        icon="🌑",
        positive=False,
    ),
    AffixType.TREASURE_CALL: Affix(
        type=AffixType.TREASURE_CALL,
        name="Call of Treasure",
        description="An extra chest and +5% chance of legendary loot",
        icon="✨",
        positive=True,
    ),
    AffixType.CURSED_HEALING: Affix(
        type=AffixType.CURSED_HEALING,
        name="Cursed Healing",
        description="Altars restore 50% less health",
        icon="🩸",
        positive=False,
    ),
    AffixType.BLESSED_COMBAT: Affix(
        type=AffixType.BLESSED_COMBAT,
        name="Blessed Combat",
        description="Gain 10% more experience from battles",
        icon="⚔️",
        positive=True,
    ),
    AffixType.MERCHANT_DISCOUNT: Affix(
        type=AffixType.MERCHANT_DISCOUNT,
        name="Trader's Luck",
        description="Merchant prices are 20% lower",
        icon="💰",
        positive=True,
    ),
    AffixType.TRAP_MASTER: Affix(
        type=AffixType.TRAP_MASTER,
        name="Trap Master",
        description="Traps deal 25% more damage",
        icon="🪤",
        positive=False,
    ),
}


_AFFIX_EFFECTS: dict[AffixType, tuple[AffixContext, Callable[[float], float]]] = {
    AffixType.STRONG_ENEMIES: (AffixContext.ENEMY_STATS, lambda v: v * 1.15),
    AffixType.FRAGILE_CHESTS: (AffixContext.CHEST_LOOT, lambda v: max(1, v - 1)),
    AffixType.DARK_PATHS: (AffixContext.TORCH_COUNT, lambda v: max(1, v - 2)),
    AffixType.TREASURE_CALL: (AffixContext.LEGENDARY_CHANCE, lambda v: v + 0.05),
    AffixType.CURSED_HEALING: (AffixContext.ALTAR_HEAL, lambda v: v * 0.5),
    AffixType.BLESSED_COMBAT: (AffixContext.COMBAT_EXP, lambda v: v * 1.1),
    AffixType.MERCHANT_DISCOUNT: (AffixContext.MERCHANT_PRICE, lambda v: v * 0.8),
    AffixType.TRAP_MASTER: (AffixContext.TRAP_DAMAGE, lambda v: v * 1.25),
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Unlike the builtin ``round`` this never rounds 86.5 down to 86.
    """
    return math.floor(value + 0.5)


def affix_context(affix_type: AffixType) -> AffixContext:
    """The single context the given affix acts on."""
    return _AFFIX_EFFECTS[affix_type][0]


def select_affixes(
    count: int,
    seed: int | None = None,
    rng: GameRNG | None = None,
) -> list[Affix]:
    """Pick *count* affixes, balancing negative and positive entries.

    The catalog is shuffled, then ``count // 2`` negative affixes are taken,
    the remaining slots are filled with positive ones, and any shortfall is
    backfilled with whatever is left.  Asking for more than the catalog
    holds returns the whole catalog.

    Parameters
    ----------
    count:
        Number of affixes to select (must be >= 0).
    seed:
        Seed for a reproducible selection.  Ignored when *rng* is given.
    rng:
        Explicit generator to draw from.  When neither *seed* nor *rng* is
        provided the selection is unpredictable.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ValueError(f"Affix count must be a non-negative integer, got {count!r}")

    if rng is None:
        rng = GameRNG(seed) if seed is not None else GameRNG.from_entropy()

    shuffled = rng.shuffled(list(AFFIXES.values()))
    negative = [a for a in shuffled if not a.positive]
    positive = [a for a in shuffled if a.positive]

    selected: list[Affix] = negative[: count // 2]
    selected += positive[: count - len(selected)]

    for affix in shuffled:
        if len(selected) >= count:
            break
        if affix not in selected:
            selected.append(affix)

    return selected


def apply_affix_effect(
    affixes: Iterable[Affix],
    context: AffixContext,
    value: float,
) -> float:
    """Pass *value* through every affix acting on *context*, in list order.

    Returns an ``int`` (rounded half up) for count and stat contexts, and
    the raw ``float`` for probability contexts in :data:`FLOAT_CONTEXTS`.
    """
    modified = value
    for affix in affixes:
        affix_ctx, effect = _AFFIX_EFFECTS[affix.type]
        if affix_ctx == context:
            modified = effect(modified)

    if context in FLOAT_CONTEXTS:
        return modified
    return round_half_up(modified)


def has_affix(affixes: Iterable[Affix], affix_type: AffixType) -> bool:
    return any(a.type == affix_type for a in affixes)


def describe_affixes(affixes: Sequence[Affix]) -> str:
    """One-line summary for the run header."""
    if not affixes:
        return "No active affixes"
    return "Active affixes: " + ", ".join(f"{a.icon} {a.name}" for a in affixes)
