"""Running descriptive statistics."""

from __future__ import annotations

import math


class DescriptiveStatistics:
    """Streaming mean / variance / extrema (Welford's algorithm)."""

    def __init__(self) -> None:
        self.clear()

    def clear(self) -> None:
        self._n = 0
        self._mean = 0.0
        self._m2 = 0.0
        self._min = math.inf
        self._max = -math.inf

    def add(self, value: float) -> None:
        self._n += 1
        delta = value - self._mean
        self._mean += delta / self._n
        self._m2 += delta * (value - self._mean)
        self._min = min(self._min, value)
        self._max = max(self._max, value)

    @property
    def count(self) -> int:
        return self._n

    @property
    def average(self) -> float:
        return self._mean if self._n > 0 else math.nan

    @property
    def variance(self) -> float:
        """Sample variance; NaN with fewer than two values."""
        return self._m2 / (self._n - 1) if self._n > 1 else math.nan

    @property
    def standard_deviation(self) -> float:
        return math.sqrt(self.variance) if self._n > 1 else math.nan

    @property
    def minimum(self) -> float:
        return self._min

    @property
    def maximum(self) -> float:
        return self._max

    def __repr__(self) -> str:
        return (
            f"DescriptiveStatistics(n={self._n}, mean={self.average:.6g}, "
            f"std={self.standard_deviation:.6g})"
        )
