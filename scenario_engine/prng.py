"""
PURPOSE: Deterministic, seedable pseudo-random generator (mulberry32).

The generator is a 32-bit counter hashed through a short mixing function, so
the k-th draw depends only on the seed and k. That lets ``random(size)``
produce a whole block with numpy while staying bit-identical to ``size``
successive ``next()`` calls.

SINGLE RESPONSIBILITY:
- Uniform draws in [0, 1) from an explicit generator value
- No global state: every consumer receives the generator as a parameter
"""

import numpy as np

_MASK = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


class Mulberry32:
    """Seedable mulberry32 generator producing floats in [0, 1).

    Example:
        >>> gen = Mulberry32(42)
        >>> u = gen.next()
        >>> block = gen.random(1000)  # continues the same stream
    """

    def __init__(self, seed: int):
        self.state = seed & _MASK

    def next(self) -> float:
        """Advance the stream by one and return a uniform draw in [0, 1)."""
        self.state = (self.state + _INCREMENT) & _MASK
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
        return ((t ^ (t >> 14)) & _MASK) / _TWO_32

    def random(self, size: int) -> np.ndarray:
        """Return the next ``size`` draws as a float64 array."""
        if size <= 0:
            return np.empty(0, dtype=np.float64)

        steps = np.arange(1, size + 1, dtype=np.uint64)
        counters = ((self.state + steps * _INCREMENT) & _MASK).astype(np.uint32)
        self.state = int(counters[-1])

        t = counters
        t = (t ^ (t >> np.uint32(15))) * (t | np.uint32(1))
        t = t ^ (t + (t ^ (t >> np.uint32(7))) * (t | np.uint32(61)))
        out = t ^ (t >> np.uint32(14))
        return out.astype(np.float64) / _TWO_32

    def snapshot(self) -> int:
        return self.state

    def restore(self, state: int) -> None:
        self.state = state & _MASK
