"""Interval decomposition: a warpable working copy of an annotated curve.

The source curve is never modified. All warping happens on ``curve``, a
plain :class:`Curve` owned by the decomposition, while ``boundaries`` lists
the landmarks that currently split it into intervals.
"""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right

from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.curve import Curve
from mica.engine.errors import InvariantViolation, OutOfRangeError
from mica.engine.landmarks import END, START, Category, Landmark, alignable
from mica.engine.precision import same_x

logger = logging.getLogger(__name__)


class IntervalDecomposition:
    def __init__(self, source: AnnotatedCurve, length: float | None = None) -> None:
        marks = source.filtered_landmarks()
        if len(marks) < 2 or marks[0].kind != START or marks[-1].kind != END:
            raise ValueError(
                f"Curve {source.name!r} must start with START and end with END landmarks"
            )
        self.source = source
        self.curve = Curve(source.name + "'", source.y, source.x)
        self._boundaries: list[Landmark] = [marks[0], marks[-1]]
        if length is not None:
            self._rescale(length)
            self.curve.geometry_changed()
        for mark in marks:
            if mark.kind.category is Category.SPLIT:
                pos = self.interval_of(float(self.curve.x[mark.index])) + 1
                self._boundaries.insert(pos, mark)

    @property
    def name(self) -> str:
        return self.source.name

    def __repr__(self) -> str:
        return f"IntervalDecomposition({self.name!r}, {self.describe()})"

    # -- copying ----------------------------------------------------------

    def copy(self, length: float | None = None) -> IntervalDecomposition:
        """Independent value copy, optionally rescaled to ``length``."""
        dup = object.__new__(IntervalDecomposition)
        dup.source = self.source
        dup.curve = Curve(self.source.name + "'", self.curve.y, self.curve.x)
        dup._boundaries = list(self._boundaries)
        if length is not None:
            dup._rescale(length)
            dup.curve.geometry_changed()
        return dup

    def copy_from(self, other: IntervalDecomposition, length: float | None = None) -> None:
        """Overwrite coordinates and boundaries in place with ``other``'s."""
        if other.source is not self.source and other.source != self.source:
            raise ValueError("Cannot copy from a decomposition of a different curve")
        if other.curve.size != self.curve.size:
            raise ValueError("Working curves differ in size")
        self.curve.x[:] = other.curve.x
        self.curve.y[:] = other.curve.y
        if length is not None:
            self._rescale(length)
        self.curve.geometry_changed()
        self._boundaries = list(other._boundaries)

    def _rescale(self, length: float) -> None:
        if length <= 0:
            raise ValueError(f"Length must be positive, got {length}")
        current = self.curve.length
        if same_x(current, length, length):
            return
        x = self.curve.x
        x[1:] = x[0] + (x[1:] - x[0]) * (length / current)

    # -- intervals --------------------------------------------------------

    @property
    def boundaries(self) -> tuple[Landmark, ...]:
        return tuple(self._boundaries)

    @property
    def size(self) -> int:
        """Number of intervals."""
        return len(self._boundaries) - 1

    def _check_interval(self, i: int) -> None:
        if i < 0 or i >= self.size:
            raise OutOfRangeError(f"Interval {i} outside [0, {self.size - 1}]")

    def interval_start(self, i: int) -> Landmark:
        self._check_interval(i)
        return self._boundaries[i]

    def interval_end(self, i: int) -> Landmark:
        self._check_interval(i)
        return self._boundaries[i + 1]

    def interval_length(self, i: int) -> float:
        x = self.curve.x
        return float(x[self.interval_end(i).index] - x[self.interval_start(i).index])

    def interval_point_count(self, i: int) -> int:
        return self.interval_end(i).index - self.interval_start(i).index + 1

    def interval_landmarks(self, i: int) -> list[Landmark]:
        """Filtered source landmarks strictly inside interval ``i``."""
        start, end = self.interval_start(i).index, self.interval_end(i).index
        marks = self.source.filtered_landmarks()
        indices = [m.index for m in marks]
        return list(marks[bisect_right(indices, start) : bisect_left(indices, end)])

    def interval_of(self, x: float) -> int:
        """Index of the interval containing ``x``; the last one is right-inclusive."""
        if x < self.curve.xmin or x > self.curve.xmax:
            raise OutOfRangeError(
                f"x={x} outside [{self.curve.xmin}, {self.curve.xmax}] of {self.name!r}"
            )
        so_far = self.curve.xmin
        for i in range(self.size):
            so_far += self.interval_length(i)
            if x <= so_far:
                return i
        raise InvariantViolation(
            f"x={x} not covered by intervals ending at {so_far} (xmax={self.curve.xmax})"
        )

    def is_compatible(self, other: IntervalDecomposition) -> bool:
        if self.size != other.size:
            return False
        return all(
            alignable(a.kind, b.kind) for a, b in zip(self._boundaries, other._boundaries)
        )

    # -- warping ----------------------------------------------------------

    def warp_left(self, i: int, factor: float) -> None:
        """Scale interval ``i`` around its left boundary. Call geometry_changed after."""
        self._check_interval(i)
        if factor <= 0:
            raise ValueError(f"Warp factor must be positive, got {factor}")
        s, e = self._boundaries[i].index, self._boundaries[i + 1].index
        if e - s < 1:
            return
        x = self.curve.x
        left = x[s]
        x[s + 1 : e + 1] = left + (x[s + 1 : e + 1] - left) * factor

    def warp_right(self, i: int, factor: float) -> None:
        """Scale the interior of interval ``i`` around its right boundary."""
        self._check_interval(i)
        if factor <= 0:
            raise ValueError(f"Warp factor must be positive, got {factor}")
        s, e = self._boundaries[i].index, self._boundaries[i + 1].index
        if e - s < 1:
            return
        x = self.curve.x
        right = x[e]
        x[s + 1 : e] = right - (right - x[s + 1 : e]) * factor

    def decompose(self, i: int, landmark: Landmark, rel_pos: float) -> None:
        """Split interval ``i`` at ``landmark`` placed at ``rel_pos`` of its length."""
        self._check_interval(i)
        if rel_pos <= 0.0 or rel_pos >= 1.0:
            raise ValueError(f"Relative split position must be in (0, 1), got {rel_pos}")
        if landmark not in self.source.filtered_landmarks():
            raise ValueError(f"{landmark} is not a filtered landmark of {self.name!r}")
        s, e = self._boundaries[i].index, self._boundaries[i + 1].index
        if not s < landmark.index < e:
            raise ValueError(f"{landmark} is not inside interval {i} [{s}, {e}]")

        full = self.interval_length(i)
        self._boundaries.insert(i + 1, landmark)
        left = self.interval_length(i)
        right = full - left
        self.warp_left(i, rel_pos / (left / full))
        self.warp_right(i + 1, (1.0 - rel_pos) / (right / full))
        self.curve.geometry_changed()
        logger.debug("Split %s interval %d at %s (rel=%.4f)", self.name, i, landmark, rel_pos)

    def describe(self) -> str:
        return " ".join(str(b) for b in self._boundaries)
