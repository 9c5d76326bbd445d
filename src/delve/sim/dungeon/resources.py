"""Expedition resource -- the torch supply that gates room-to-room travel.

Starting torches: ``min(10, 5 + level // 5)``, then passed through the
``torch_count`` affix pipeline (never below 1).  Every room entry after
the start room burns one torch.  At zero torches the expedition is
*exhausted*: the combat system should start each fight with 10% of max
health removed and give enemies +10% damage.  Those penalties are exposed
here as constants and as :func:`exhaustion_penalties`, never applied
internally.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from delve.catalog.affixes import Affix, AffixContext, apply_affix_effect
from delve.sim.core.entities import PlayerSnapshot

logger = logging.getLogger(__name__)

BASE_TORCHES = 5
MAX_BASE_TORCHES = 10
LEVELS_PER_BONUS_TORCH = 5

EXHAUSTION_HEALTH_PENALTY = 0.10
"""Fraction of max health removed on combat entry while exhausted."""

EXHAUSTION_ENEMY_DAMAGE_BONUS = 0.10
"""Flat enemy damage modifier while exhausted."""

LOW_TORCH_FRACTION = 0.25
MODERATE_TORCH_FRACTION = 0.5


class TorchAction(str, Enum):
    """Special actions that cost torches on top of movement."""

    HEAVY_MOVEMENT = "heavy_movement"
    LIGHT_SOURCE = "light_source"
    TRAP_DETECTION = "trap_detection"


class TorchEvent(str, Enum):
    FIND_TORCH = "find_torch"
    LOSE_TORCH = "lose_torch"
    DOUBLE_COST = "double_cost"
    FREE_MOVEMENT = "free_movement"


class ResourceLevel(str, Enum):
    ABUNDANT = "abundant"
    MODERATE = "moderate"
    LOW = "low"
    EXHAUSTED = "exhausted"


class ExpeditionResource(BaseModel):
    """Torch supply of one run.  ``0 <= torches <= max_torches``."""

    model_config = ConfigDict(frozen=True)

    torches: int = Field(ge=0)
    max_torches: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> ExpeditionResource:
        if self.torches > self.max_torches:
            raise ValueError(
                f"torches ({self.torches}) cannot exceed max_torches ({self.max_torches})"
            )
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def exhausted(self) -> bool:
        return self.torches == 0

    @property
    def fraction(self) -> float:
        """Remaining torches as a fraction of the maximum."""
        return self.torches / self.max_torches


class ExhaustionPenalty(BaseModel):
    """Advisory combat penalties for the host's combat system."""

    model_config = ConfigDict(frozen=True)

    health_reduction: int = 0
    adjusted_health: int
    enemy_damage_bonus: float = 0.0


class ResourceStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ResourceLevel
    description: str
    warning: str | None = None


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def initial_torches(player_level: int, affixes: Iterable[Affix] = ()) -> int:
    """Starting torch count for a player of *player_level*."""
    base = min(MAX_BASE_TORCHES, BASE_TORCHES + player_level // LEVELS_PER_BONUS_TORCH)
    return max(1, int(apply_affix_effect(affixes, AffixContext.TORCH_COUNT, base)))


def create_resource(player_level: int, affixes: Iterable[Affix] = ()) -> ExpeditionResource:
    """Full torch supply for a new run."""
    torches = initial_torches(player_level, affixes)
    return ExpeditionResource(torches=torches, max_torches=torches)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def consume(resource: ExpeditionResource) -> ExpeditionResource:
    """Burn one torch (never below zero)."""
    return resource.model_copy(update={"torches": max(0, resource.torches - 1)})


def restore(resource: ExpeditionResource, amount: int = 1) -> ExpeditionResource:
    """Add *amount* torches, capped at ``max_torches``."""
    new_torches = min(resource.max_torches, resource.torches + max(0, amount))
    return resource.model_copy(update={"torches": new_torches})


def can_afford(resource: ExpeditionResource, cost: int) -> bool:
    return resource.torches >= cost


def spend_for_action(
    resource: ExpeditionResource,
    cost: int,
    action: TorchAction = TorchAction.LIGHT_SOURCE,
) -> ExpeditionResource | None:
    """Spend *cost* torches on a special action.

    Returns ``None`` (and leaves *resource* untouched) when the supply is
    short; callers are expected to check :func:`can_afford` first.
    """
    if cost < 0:
        raise ValueError(f"Torch cost must be >= 0, got {cost}")
    action = TorchAction(action)
    if not can_afford(resource, cost):
        logger.debug(
            "Cannot afford %s: %d torch(es) needed, %d left",
            action.value, cost, resource.torches,
        )
        return None
    logger.debug("Spent %d torch(es) on %s", cost, action.value)
    return resource.model_copy(update={"torches": resource.torches - cost})


def apply_torch_event(
    resource: ExpeditionResource, event: TorchEvent,
) -> tuple[ExpeditionResource, str]:
    """Apply a torch-related event and return the new supply and a log line."""
    event = TorchEvent(event)
    if event is TorchEvent.FIND_TORCH:
        updated = restore(resource, 1)
        return updated, f"You found a torch! (+1 torch, {updated.torches} total)"
    if event is TorchEvent.LOSE_TORCH:
        updated = consume(resource)
        return updated, f"A gust of wind snuffs a torch (-1 torch, {updated.torches} left)"
    if event is TorchEvent.DOUBLE_COST:
        updated = consume(consume(resource))
        return updated, f"The dark corridor demands more light (-2 torches, {updated.torches} left)"
    return resource, "Natural light lets you pass without burning a torch"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def exhaustion_penalties(
    player: PlayerSnapshot, resource: ExpeditionResource,
) -> ExhaustionPenalty:
    """Combat-entry penalties the host should honor while exhausted."""
    if not resource.exhausted:
        return ExhaustionPenalty(adjusted_health=player.health)

    reduction = math.floor(player.max_health * EXHAUSTION_HEALTH_PENALTY)
    return ExhaustionPenalty(
        health_reduction=reduction,
        adjusted_health=max(1, player.health - reduction),
        enemy_damage_bonus=EXHAUSTION_ENEMY_DAMAGE_BONUS,
    )


def resource_status(resource: ExpeditionResource) -> ResourceStatus:
    """Player-facing status descriptor for the torch supply."""
    counts = f"({resource.torches}/{resource.max_torches})"
    if resource.exhausted:
        return ResourceStatus(
            status=ResourceLevel.EXHAUSTED,
            description="Your torches have burned out",
            warning="Every battle starts at -10% health and enemies deal +10% damage!",
        )
    if resource.fraction <= LOW_TORCH_FRACTION:
        return ResourceStatus(
            status=ResourceLevel.LOW,
            description=f"Torches are running low {counts}",
            warning="The light will fail soon. Consider leaving the dungeon.",
        )
    if resource.fraction <= MODERATE_TORCH_FRACTION:
        return ResourceStatus(
            status=ResourceLevel.MODERATE,
            description=f"Enough torches for now {counts}",
        )
    return ResourceStatus(
        status=ResourceLevel.ABUNDANT,
        description=f"Plenty of torches {counts}",
    )
