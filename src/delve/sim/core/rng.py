"""Seedable, forkable random source for expeditions.

A run is fully described by one integer seed.  Every consumer (affix
draw, goal draw, the room sequencer, each room entry) takes its own named
child stream via :meth:`GameRNG.fork`, so drawing extra loot in one room
never shifts the layout of the map or the outcome of the next trap.
"""

from __future__ import annotations

import hashlib
import random
from typing import Sequence, TypeVar

T = TypeVar("T")

# Child seeds stay non-negative and fit a signed 64-bit column.
_SEED_BITS = 63


class GameRNG:
    """Mersenne Twister stream keyed by an integer seed.

    Parameters
    ----------
    seed:
        Stream seed.  Two generators built from the same seed produce the
        same values in the same order.
    """

    def __init__(self, seed: int) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    @classmethod
    def from_entropy(cls) -> GameRNG:
        """Generator for an unseeded run.

        The drawn seed is kept on :attr:`seed`, so the run can still be
        replayed once the host has stored it.
        """
        return cls(random.SystemRandom().getrandbits(_SEED_BITS))

    @property
    def seed(self) -> int:
        return self._seed

    # -- draws ---------------------------------------------------------------

    def random_int(self, low: int, high: int) -> int:
        """Integer in ``[low, high]``, both ends included."""
        return self._rng.randint(low, high)

    def random_float(self) -> float:
        """Float in ``[0.0, 1.0)``."""
        return self._rng.random()

    def uniform(self, low: float, high: float) -> float:
        return self._rng.uniform(low, high)

    def chance(self, probability: float) -> bool:
        """``True`` with *probability*; 0 never hits and 1 always does."""
        return self._rng.random() < probability

    def random_choice(self, seq: Sequence[T]) -> T:
        """One element of the non-empty *seq*."""
        return self._rng.choice(seq)

    def shuffled(self, seq: Sequence[T]) -> list[T]:
        """A shuffled copy of *seq*; the input is left untouched."""
        items = list(seq)
        self._rng.shuffle(items)
        return items

    # -- sub-streams ---------------------------------------------------------

    def fork(self, name: str) -> GameRNG:
        """Named child stream, e.g. ``fork("map")`` or ``fork("room:r3:2")``.

        The child seed is a hash of this generator's seed and *name*; it
        does not depend on how many values were drawn here already.
        """
        digest = hashlib.sha256(f"{self._seed}:{name}".encode()).digest()
        return GameRNG(int.from_bytes(digest[:8], "big") >> (64 - _SEED_BITS))

    def __repr__(self) -> str:
        return f"GameRNG(seed={self._seed})"
