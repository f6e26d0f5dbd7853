"""Region shapes for the specimen hierarchy.

Each shape answers two questions: does it contain a point, and where along a
segment ``p0 → p1`` does the segment first cross its surface. The crossing is
reported as the fraction ``u`` of the segment (``p0 + u·(p1 − p0)``);
``math.inf`` means no crossing in the forward direction. Values above 1
mean the crossing lies beyond ``p1``.

All lengths in m (core units).
"""

from __future__ import annotations

import math
from typing import Protocol

import numpy as np
from numpy.typing import ArrayLike, NDArray


class Shape(Protocol):
    def contains(self, pos: NDArray[np.float64]) -> bool: ...

    def first_intersection(
        self, p0: NDArray[np.float64], p1: NDArray[np.float64],
    ) -> float: ...


class Sphere:
    """Solid sphere.

    Args:
        center: Sphere center [m].
        radius: Sphere radius [m].
    """

    def __init__(self, center: ArrayLike, radius: float) -> None:
        self.center = np.asarray(center, dtype=float)
        self.radius = float(radius)

    def contains(self, pos: NDArray[np.float64]) -> bool:
        d = pos - self.center
        return float(np.dot(d, d)) <= self.radius * self.radius

    def first_intersection(
        self, p0: NDArray[np.float64], p1: NDArray[np.float64],
    ) -> float:
        d = p1 - p0
        m = p0 - self.center
        ma2 = -2.0 * float(np.dot(d, d))
        if ma2 == 0.0:
            return math.inf
        b = 2.0 * float(np.dot(m, d))
        c2 = 2.0 * (float(np.dot(m, m)) - self.radius * self.radius)
        f = b * b + ma2 * c2
        if f < 0.0:
            return math.inf
        sf = math.sqrt(f)
        up = (b + sf) / ma2
        un = (b - sf) / ma2
        if up < 0.0:
            up = math.inf
        if un < 0.0:
            un = math.inf
        return min(up, un)

    def __repr__(self) -> str:
        return f"Sphere(center={self.center.tolist()}, radius={self.radius:g})"


class HalfSpace:
    """Half-space bounded by a plane; the outward normal points away from it.

    Args:
        normal: Outward normal of the bounding plane.
        point: Any point on the bounding plane [m].
    """

    def __init__(self, normal: ArrayLike, point: ArrayLike) -> None:
        n = np.asarray(normal, dtype=float)
        self.normal = n / np.linalg.norm(n)
        self.point = np.asarray(point, dtype=float)

    def contains(self, pos: NDArray[np.float64]) -> bool:
        return float(np.dot(pos - self.point, self.normal)) <= 0.0

    def first_intersection(
        self, p0: NDArray[np.float64], p1: NDArray[np.float64],
    ) -> float:
        den = float(np.dot(p1 - p0, self.normal))
        if den == 0.0:
            return math.inf
        u = float(np.dot(self.point - p0, self.normal)) / den
        return u if u >= 0.0 else math.inf

    def __repr__(self) -> str:
        return f"HalfSpace(normal={self.normal.tolist()}, point={self.point.tolist()})"


class Box:
    """Axis-aligned rectangular block.

    Args:
        lower: Minimum corner [m].
        upper: Maximum corner [m].
    """

    def __init__(self, lower: ArrayLike, upper: ArrayLike) -> None:
        lo = np.asarray(lower, dtype=float)
        hi = np.asarray(upper, dtype=float)
        self.lower = np.minimum(lo, hi)
        self.upper = np.maximum(lo, hi)

    def contains(self, pos: NDArray[np.float64]) -> bool:
        return bool(np.all(pos >= self.lower) and np.all(pos <= self.upper))

    def first_intersection(
        self, p0: NDArray[np.float64], p1: NDArray[np.float64],
    ) -> float:
        d = p1 - p0
        t_near = -math.inf
        t_far = math.inf
        for axis in range(3):
            if d[axis] == 0.0:
                if p0[axis] < self.lower[axis] or p0[axis] > self.upper[axis]:
                    return math.inf
                continue
            t1 = (self.lower[axis] - p0[axis]) / d[axis]
            t2 = (self.upper[axis] - p0[axis]) / d[axis]
            if t1 > t2:
                t1, t2 = t2, t1
            t_near = max(t_near, t1)
            t_far = min(t_far, t2)
        if t_near > t_far or t_far < 0.0:
            return math.inf
        # Outside → entry point; inside → exit point
        return float(t_near) if t_near >= 0.0 else float(t_far)

    def __repr__(self) -> str:
        return f"Box(lower={self.lower.tolist()}, upper={self.upper.tolist()})"
