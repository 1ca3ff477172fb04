"""Descriptive statistics shared by the simulation and risk services.

Pure numpy helpers: no I/O, no logging.  Every function accepts any
sequence of floats (lists, tuples, numpy arrays) and returns plain Python
floats so results serialise without a numpy-aware JSON encoder.

Empty input returns 0.0 rather than NaN; numpy's own reductions warn and
return NaN on empty arrays, which is never what a dashboard wants to show.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

#: Points kept by :func:`sample_distribution` for chart rendering.
DISTRIBUTION_SAMPLE_SIZE: int = 100


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def median(values: Sequence[float]) -> float:
    """Median (average of the two middle values for even lengths)."""
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation with Bessel's correction (``n − 1``).

    Returns 0.0 for fewer than two points.
    """
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def population_std(values: Sequence[float]) -> float:
    """Population standard deviation (``n`` denominator)."""
    if len(values) == 0:
        return 0.0
    return float(np.std(values))


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Linearly interpolated percentile of an already sorted sequence.

    The rank is ``pct / 100 × (n − 1)``; the result interpolates between the
    neighbouring order statistics.  ``pct`` outside ``[0, 100]`` is clamped
    to the minimum / maximum.

    Examples::

        percentile([1, 2, 3, 4], 50) → 2.5
        percentile([1, 2, 3, 4], 5)  → 1.15
    """
    if len(sorted_values) == 0:
        return 0.0
    if pct <= 0:
        return float(sorted_values[0])
    if pct >= 100:
        return float(sorted_values[-1])
    return float(np.percentile(sorted_values, pct, method="linear"))


def sample_distribution(
    sorted_values: Sequence[float],
    sample_size: int = DISTRIBUTION_SAMPLE_SIZE,
) -> list[float]:
    """Fixed-stride subsample of a sorted outcome array.

    Keeps ``values[i * step]`` for ``i < sample_size`` where
    ``step = n // sample_size``.  This is a structural thinning of the
    sorted outcomes for charting, not a random sample.  Sequences of
    ``sample_size`` points or fewer are returned whole.
    """
    n = len(sorted_values)
    if n <= sample_size:
        return [float(v) for v in sorted_values]
    step = n // sample_size
    return [float(sorted_values[i * step]) for i in range(sample_size)]


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero.

    Python's :func:`round` uses banker's rounding (``round(2.5) == 2``);
    ratings are reported with the conventional schoolbook rule instead.
    """
    return int(math.copysign(math.floor(abs(value) + 0.5), value))
