"""Random decision agent -- makes every expedition choice uniformly at random.

The ``RandomAgent`` is the simplest possible play agent.  It is the
baseline for batch simulation: it exercises every room sub-flow and gives
a lower bound on what a careless player takes home.

Behaviour:
    - Fights are accepted with ``fight_chance`` (default 90 %).
    - Altar gifts, trap actions and purchases are picked at random; about
      half the shop visits end without buying anything.
    - After each room it keeps going with ``continue_chance`` (default 85 %).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from delve.sim.core.rng import GameRNG
from delve.sim.dungeon.resolution import AltarBlessing, TrapAction
from delve.sim.play_agents.base import PlayAgent

if TYPE_CHECKING:
    from delve.sim.core.entities import Enemy, PlayerSnapshot
    from delve.sim.dungeon.rewards import ExitAdvice
    from delve.sim.dungeon.state import MerchantOffer, RunState


class RandomAgent(PlayAgent):
    """Agent that decides everything with a coin flip.

    Parameters
    ----------
    rng:
        Seeded RNG for deterministic randomness.  If ``None``, a default
        ``GameRNG(seed=0)`` is created.
    fight_chance:
        Probability (0.0 -- 1.0) of accepting a fight instead of fleeing.
    continue_chance:
        Probability of entering the next room after each resolved room.
    """

    def __init__(
        self,
        rng: GameRNG | None = None,
        fight_chance: float = 0.90,
        continue_chance: float = 0.85,
    ) -> None:
        self._rng = rng or GameRNG(seed=0)
        self._fight_chance = fight_chance
        self._continue_chance = continue_chance

    # ------------------------------------------------------------------
    # PlayAgent interface
    # ------------------------------------------------------------------

    def choose_to_fight(self, enemy: Enemy, player: PlayerSnapshot, run: RunState) -> bool:
        return self._rng.chance(self._fight_chance)

    def choose_altar_blessing(self, player: PlayerSnapshot, run: RunState) -> AltarBlessing:
        return self._rng.random_choice(list(AltarBlessing))

    def choose_trap_action(self, player: PlayerSnapshot, run: RunState) -> TrapAction:
        return self._rng.random_choice(list(TrapAction))

    def choose_purchase(
        self,
        offers: tuple[MerchantOffer, ...],
        player: PlayerSnapshot,
        run: RunState,
    ) -> str | None:
        affordable = [o for o in offers if o.price <= player.gold]
        if not affordable or self._rng.chance(0.5):
            return None
        return self._rng.random_choice(affordable).id

    def should_continue(
        self, player: PlayerSnapshot, run: RunState, advice: ExitAdvice,
    ) -> bool:
        return self._rng.chance(self._continue_chance)
