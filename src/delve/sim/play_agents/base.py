"""Base class for autopilot agents that play expeditions headlessly.

All play agents must subclass ``PlayAgent`` and implement its abstract
methods.  The batch runner calls these at decision points: whether to
take on a fight, how to use an altar or a trap, what to buy, and whether
to push on to the next room or leave the dungeon.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from delve.sim.core.entities import Enemy, PlayerSnapshot
    from delve.sim.dungeon.resolution import AltarBlessing, TrapAction
    from delve.sim.dungeon.rewards import ExitAdvice
    from delve.sim.dungeon.state import MerchantOffer, RunState


class PlayAgent(ABC):
    """Base class for agents that make expedition decisions."""

    @abstractmethod
    def choose_to_fight(self, enemy: Enemy, player: PlayerSnapshot, run: RunState) -> bool:
        """Fight *enemy* (``True``) or slip away and leave the room (``False``)."""

    @abstractmethod
    def choose_altar_blessing(self, player: PlayerSnapshot, run: RunState) -> AltarBlessing:
        """Pick the altar's gift: heal, mana, blessing or light."""

    @abstractmethod
    def choose_trap_action(self, player: PlayerSnapshot, run: RunState) -> TrapAction:
        """Trigger, disarm or detect (detection costs one torch)."""

    @abstractmethod
    def choose_purchase(
        self,
        offers: tuple[MerchantOffer, ...],
        player: PlayerSnapshot,
        run: RunState,
    ) -> str | None:
        """Return the id of the offer to buy, or ``None`` to leave the shop.

        Parameters
        ----------
        offers:
            What the merchant still has for sale.
        player:
            Current player snapshot; ``player.gold`` bounds what is affordable.
        run:
            Current run, for torch and goal context.
        """

    @abstractmethod
    def should_continue(
        self, player: PlayerSnapshot, run: RunState, advice: ExitAdvice,
    ) -> bool:
        """Decide whether to enter the next room or leave the dungeon.

        Parameters
        ----------
        player:
            Current player snapshot.
        run:
            Current run state with no room pending.
        advice:
            The engine's advisory recommendation.  Agents may ignore it.
        """
