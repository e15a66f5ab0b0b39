"""Shared x-precision policy. Every "same position" test goes through here."""

from __future__ import annotations

PRECISION_FRACTION = 1e-4  # 1/10000 of the relevant curve length


def precision_delta(length: float) -> float:
    if length <= 0:
        raise ValueError(f"Length must be positive, got {length}")
    return length * PRECISION_FRACTION


def same_x(a: float, b: float, length: float) -> bool:
    """True if two x positions coincide within the precision of ``length``."""
    return abs(a - b) <= precision_delta(length)
