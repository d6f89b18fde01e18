"""
Deterministic random source (Mulberry32).
Same seed -> same sequence. Every random draw in the engine goes through one of these.
"""

from typing import Callable

Rng = Callable[[], float]

_MASK = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit integer multiply, result as unsigned."""
    return (a * b) & _MASK


def create_seeded_rng(seed: int) -> Rng:
    """Return a generator closure producing floats in [0, 1)."""
    state = seed & _MASK

    def rng() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK
        t = _imul(state ^ (state >> 15), 1 | state)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK) ^ t
        return ((t ^ (t >> 14)) & _MASK) / 4294967296

    return rng


class CountingRng:
    """
    Seeded rng that remembers how many values it has produced.
    Used where a run must be resumed later (saved games): re-create with the same seed
    and skip `draws` values.
    """

    def __init__(self, seed: int, draws: int = 0):
        self.seed = seed
        self.draws = 0
        self._rng = create_seeded_rng(seed)
        for _ in range(draws):
            self()

    def __call__(self) -> float:
        self.draws += 1
        return self._rng()
