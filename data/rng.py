"""Seeded 64-bit linear-congruential generator.

One instance per grid cell: the generator is cheap to construct and holds a
single integer of state, so every coordinate gets its own reproducible
stream instead of sharing a global generator across threads.
"""

import math

from config import ZERO_SEED_REPLACEMENT

MASK64 = 0xFFFF_FFFF_FFFF_FFFF

_LCG_MULTIPLIER = 6_364_136_223_846_793_005
_LCG_INCREMENT = 1_442_695_040_888_963_407

_FRACTION_SHIFT = 11
_FRACTION_BITS = 21
_FRACTION_MASK = (1 << _FRACTION_BITS) - 1
_FRACTION_SCALE = float(1 << _FRACTION_BITS)

_LOG_FLOOR = 1e-12


def normalize_seed(seed: int) -> int:
    """Reduce `seed` to 64 bits, replacing 0 with a fixed non-zero constant."""
    seed = int(seed) & MASK64
    return ZERO_SEED_REPLACEMENT if seed == 0 else seed


class SeededRNG:
    """Reproducible uniform and Gaussian draws from a 64-bit seed."""

    def __init__(self, seed: int):
        self.seed = normalize_seed(seed)
        self._state = self.seed

    def fork(self, offset: int) -> "SeededRNG":
        """Fresh generator seeded from this one's seed plus `offset` (mod 2**64)."""
        return SeededRNG((self.seed + offset) & MASK64)

    def next_uniform01(self) -> float:
        """Advance the state and return a value in [0, 1) from 21 state bits."""
        self._state = (self._state * _LCG_MULTIPLIER + _LCG_INCREMENT) & MASK64
        return ((self._state >> _FRACTION_SHIFT) & _FRACTION_MASK) / _FRACTION_SCALE

    def next_gaussian(self, mean: float = 0.0, sigma: float = 1.0) -> float:
        """Box–Muller normal draw; consumes exactly two uniforms."""
        u1 = max(_LOG_FLOOR, self.next_uniform01())
        u2 = self.next_uniform01()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return z0 * sigma + mean
