"""Coordinate → 64-bit seed perturbation.

Both hashes work on the raw IEEE-754 bit patterns of the latitude and
longitude, so they are exact functions of the float values (``-0.0`` and
``0.0`` hash differently). Collisions are possible and accepted.
"""

import numpy as np

from data.rng import MASK64

GOLDEN64 = 0x9E37_79B9_7F4A_7C15
_SPATIAL_INCREMENT = 0x0123_4567_89AB_CDEF
_SPATIAL_HALF_RANGE = 0.08


def float_bits(value: float) -> int:
    """Raw 64-bit pattern of a float64."""
    return int(np.float64(value).view(np.uint64))


def seed_offset(coord) -> int:
    """Per-coordinate seed perturbation, combined with the run seed by wrapping addition."""
    lat_bits = float_bits(coord.lat)
    lon_bits = float_bits(coord.lon)
    mix_a = (lat_bits * GOLDEN64) & MASK64
    mix_b = ((lon_bits << 13) & MASK64) ^ (lon_bits >> 7)
    return mix_a ^ mix_b


def spatial_offset(lat: float, lon: float) -> float:
    """Deterministic vegetation baseline perturbation in [-0.08, 0.08]."""
    h = (float_bits(lat) + float_bits(lon)) & MASK64
    h = (h * GOLDEN64 + _SPATIAL_INCREMENT) & MASK64
    frac = ((h >> 10) & 0xFFFF) / 0xFFFF
    return (frac - 0.5) * 2 * _SPATIAL_HALF_RANGE
