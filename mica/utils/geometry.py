"""Leaf-node coordinate helpers. No engine imports."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def weighted_mean(a: float, wa: float, b: float, wb: float) -> float:
    """Weighted mean of two values; the weights must not both be zero."""
    return (a * wa + b * wb) / (wa + wb)


def relative_positions(x: NDArray[np.float64], anchor: float) -> NDArray[np.float64]:
    return x - anchor


def length_ratios(x1: NDArray[np.float64], x2: NDArray[np.float64]) -> NDArray[np.float64]:
    """(x1[i]-x1[0]) / (x2[i]-x2[0]) for every i; ratio[0] is 1 by definition."""
    if x1.shape != x2.shape:
        raise ValueError("Coordinate arrays differ in length")
    ratio = np.ones_like(x1)
    ratio[1:] = (x1[1:] - x1[0]) / (x2[1:] - x2[0])
    return ratio


def locate(sorted_x: NDArray[np.float64], value: float, tolerance: float) -> int:
    """Index of ``value`` in ``sorted_x``, matching entries within ``tolerance``.

    Returns ``-(insert_position) - 1`` when no entry is close enough.
    """
    pos = int(np.searchsorted(sorted_x, value, side="left"))
    if pos < sorted_x.size and abs(sorted_x[pos] - value) <= tolerance:
        return pos
    if pos > 0 and abs(sorted_x[pos - 1] - value) <= tolerance:
        return pos - 1
    return -pos - 1
