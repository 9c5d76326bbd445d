"""Cautious agent -- follows the exit advisory and guards its health.

A hand-written policy that plays the way a careful player would:

- **Fights**: always fights the boss; flees ordinary fights below
  ``flee_threshold`` health.
- **Altars**: heals when hurt, rekindles a torch when light runs low,
  otherwise takes the blessing.
- **Traps**: spends a torch to detect while it can spare one, else
  disarms (never triggers on purpose).
- **Merchant**: buys a torch when the supply is below half, otherwise the
  cheapest affordable material if gold is plentiful.
- **Leaving**: leaves on ``exit_now`` advice or low health; once the goal
  is complete it heads for the boss while healthy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from delve.sim.dungeon.resolution import AltarBlessing, TrapAction
from delve.sim.dungeon.rewards import ExitRecommendation
from delve.sim.play_agents.base import PlayAgent

if TYPE_CHECKING:
    from delve.sim.core.entities import Enemy, PlayerSnapshot
    from delve.sim.dungeon.rewards import ExitAdvice
    from delve.sim.dungeon.state import MerchantOffer, RunState

# Keep this much gold in reserve before buying materials
_GOLD_RESERVE = 100


class CautiousAgent(PlayAgent):
    """Agent that plays it safe and listens to the exit advisory.

    Parameters
    ----------
    flee_threshold:
        Health fraction below which ordinary fights are avoided.
    leave_threshold:
        Health fraction below which the agent leaves the dungeon.
    """

    def __init__(self, flee_threshold: float = 0.35, leave_threshold: float = 0.25) -> None:
        self._flee_threshold = flee_threshold
        self._leave_threshold = leave_threshold

    @staticmethod
    def _health_fraction(player: PlayerSnapshot) -> float:
        return player.health / player.max_health

    # ------------------------------------------------------------------
    # PlayAgent interface
    # ------------------------------------------------------------------

    def choose_to_fight(self, enemy: Enemy, player: PlayerSnapshot, run: RunState) -> bool:
        if enemy.is_boss:
            return True
        return self._health_fraction(player) >= self._flee_threshold

    def choose_altar_blessing(self, player: PlayerSnapshot, run: RunState) -> AltarBlessing:
        if self._health_fraction(player) < 0.5:
            return AltarBlessing.HEAL
        if run.resource.fraction < 0.5 and run.resource.torches < run.resource.max_torches:
            return AltarBlessing.LIGHT
        return AltarBlessing.BLESSING

    def choose_trap_action(self, player: PlayerSnapshot, run: RunState) -> TrapAction:
        if run.resource.torches > 2:
            return TrapAction.DETECT
        return TrapAction.DISARM

    def choose_purchase(
        self,
        offers: tuple[MerchantOffer, ...],
        player: PlayerSnapshot,
        run: RunState,
    ) -> str | None:
        affordable = [o for o in offers if o.price <= player.gold]
        if run.resource.fraction < 0.5:
            for offer in affordable:
                if offer.torches:
                    return offer.id
        materials = [o for o in affordable if o.item is not None]
        if materials and player.gold - _GOLD_RESERVE >= min(o.price for o in materials):
            return min(materials, key=lambda o: o.price).id
        return None

    def should_continue(
        self, player: PlayerSnapshot, run: RunState, advice: ExitAdvice,
    ) -> bool:
        health = self._health_fraction(player)
        if health < self._leave_threshold:
            return False
        if run.goal.completed:
            # The boss pays the tier purse; worth the risk while healthy.
            return health >= 0.5
        return advice.recommendation != ExitRecommendation.EXIT_NOW
