"""Consensus curve synthesis for a set of compatible decompositions."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.decomposition import IntervalDecomposition
from mica.engine.precision import precision_delta
from mica.utils.geometry import locate

logger = logging.getLogger(__name__)

LENGTH_TOLERANCE = 0.01  # absolute floor for "equal length" checks


def consensus_name(decompositions: Sequence[IntervalDecomposition]) -> str:
    if not decompositions:
        return ""
    if len(decompositions) == 1:
        return decompositions[0].name
    return "[" + ",".join(d.name for d in decompositions) + "]"


def _check_lengths(decompositions: Sequence[IntervalDecomposition]) -> None:
    first = decompositions[0]
    tolerance = max(LENGTH_TOLERANCE, 10 * precision_delta(first.curve.length))
    for dec in decompositions[1:]:
        if abs(dec.curve.length - first.curve.length) > tolerance:
            raise ValueError(
                f"Curves are not of equal length ({dec.name}: {dec.curve.length}, "
                f"{first.name}: {first.curve.length})"
            )
        for i in range(first.size):
            if abs(dec.interval_length(i) - first.interval_length(i)) > tolerance:
                raise ValueError(f"Interval {i} of {dec.name} differs in length from {first.name}")


def consensus_of(decompositions: Sequence[IntervalDecomposition]) -> IntervalDecomposition:
    """Mean-shape curve over the union of all members' x-positions.

    Boundary landmarks are taken from the first member; every other landmark
    of the consensus is derived afresh. Only filters shared by all members
    are attached.
    """
    if not decompositions:
        raise ValueError("Consensus needs at least one curve")
    if len(decompositions) == 1:
        return decompositions[0].copy()

    first = decompositions[0]
    if not all(first.is_compatible(dec) for dec in decompositions):
        raise ValueError("Curves are incompatible")
    _check_lengths(decompositions)

    tolerance = precision_delta(first.curve.length)
    grid = first.curve.x - first.curve.xmin
    boundaries = [(b, b.index) for b in first.boundaries if b.kind.is_interval_boundary]
    for dec in decompositions[1:]:
        for rel in dec.curve.x[1:-1] - dec.curve.xmin:
            pos = locate(grid, float(rel), tolerance)
            if pos >= 0:
                continue
            insert_at = -pos - 1
            grid = np.insert(grid, insert_at, rel)
            boundaries = [(b, i + 1 if i >= insert_at else i) for b, i in boundaries]

    ys = np.zeros_like(grid)
    for dec in decompositions:
        curve = dec.curve
        ys += curve.values(np.minimum(grid + curve.xmin, curve.xmax))
    ys /= len(decompositions)
    grid += float(np.mean([dec.curve.xmin for dec in decompositions]))

    consensus = AnnotatedCurve(consensus_name(decompositions), ys, grid)
    for mark, index in boundaries:
        if mark.kind.is_manual:
            consensus.set_landmark(index, mark.kind)
    for flt in first.source.filters:
        if all(dec.source.has_filter(flt) for dec in decompositions[1:]):
            consensus.add_filter(flt)
    logger.debug("Consensus %s over %d grid points", consensus.name, grid.size)
    return IntervalDecomposition(consensus)
