"""Random sampling utilities for photon transport.

Every helper takes an explicit ``numpy.random.Generator`` so stages can own
independently seeded streams.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray


def random_direction(rng: np.random.Generator) -> NDArray[np.float64]:
    """Generate a random unit vector isotropically distributed on the sphere."""
    z = 2.0 * rng.random() - 1.0
    phi = 2.0 * math.pi * rng.random()
    r_xy = math.sqrt(max(0.0, 1.0 - z * z))
    return np.array([r_xy * math.cos(phi), r_xy * math.sin(phi), z], dtype=float)


def exp_rand(rng: np.random.Generator) -> float:
    """Exponentially distributed random number with unit mean."""
    return float(rng.exponential(1.0))


def point_between(
    p0: NDArray[np.float64],
    p1: NDArray[np.float64],
    frac: float,
) -> NDArray[np.float64]:
    """Point a fraction *frac* of the way from *p0* to *p1*."""
    return p0 + frac * (p1 - p0)
