"""Curves with per-point landmark classification and a filter chain."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from mica.engine import landmarks as lmk
from mica.engine.curve import Curve
from mica.engine.filters import AnnotationFilter
from mica.engine.landmarks import Landmark, LandmarkType

logger = logging.getLogger(__name__)


def _mark_extrema(
    kinds: list[LandmarkType],
    values: NDArray[np.float64],
    minimum: LandmarkType,
    maximum: LandmarkType,
) -> None:
    """Label local extrema of ``values`` back to front, keeping existing labels.

    A flat run is labelled at its midpoint (rounded toward the earlier index)
    and only if both flanks confirm the extremum.
    """
    i = len(kinds) - 2
    while i > 0:
        here = values[i]
        if here > values[i + 1] or here < values[i + 1]:
            is_max = here > values[i + 1]
            label = maximum if is_max else minimum
            before = values[i - 1]
            if (before < here) if is_max else (before > here):
                if kinds[i].is_point:
                    kinds[i] = label
            elif before == here and i > 1:
                nxt = i - 2
                while nxt > 0 and values[nxt] == here:
                    nxt -= 1
                mid = i - (i - nxt) // 2
                confirmed = values[nxt] < here if is_max else values[nxt] > here
                if confirmed and kinds[mid].is_point:
                    kinds[mid] = label
                i = nxt
        i -= 1


def _relabel_inflections(kinds: list[LandmarkType], slopes: NDArray[np.float64]) -> None:
    for i in range(1, len(kinds) - 1):
        kind = kinds[i]
        if kind.is_manual or not kind.is_extremum_slope:
            continue
        if slopes[i] > 0 and kind == lmk.SLOPE_MAXIMUM:
            kinds[i] = lmk.INFLECTION_ASCENDING
        elif slopes[i] < 0 and kind == lmk.SLOPE_MINIMUM:
            kinds[i] = lmk.INFLECTION_DESCENDING
        else:
            kinds[i] = lmk.POINT


class AnnotatedCurve(Curve):
    """A curve whose points carry landmark types.

    Index 0 is always START and the last index END. Without explicit
    ``landmarks`` the curve classifies itself. Slopes at y-extrema are
    reported as 0.
    """

    def __init__(
        self,
        name: str,
        y: ArrayLike,
        x: ArrayLike | None = None,
        landmarks: Sequence[LandmarkType] | None = None,
    ) -> None:
        super().__init__(name, y, x)
        self._filters: list[AnnotationFilter] = []
        self._version = 0
        self._filtered: tuple[Landmark, ...] | None = None
        self._filtered_key: tuple[int, ...] | None = None
        if landmarks is None:
            self._kinds = [lmk.POINT] * self.size
            self._kinds[0] = lmk.START
            self._kinds[-1] = lmk.END
            self._classify()
        else:
            kinds = list(landmarks)
            if len(kinds) != self.size:
                raise ValueError(
                    f"Expected {self.size} landmark types, got {len(kinds)}"
                )
            if kinds[0] != lmk.START:
                raise ValueError("First landmark must be START")
            if kinds[-1] != lmk.END:
                raise ValueError("Last landmark must be END")
            self._kinds = kinds

    @classmethod
    def from_curve(cls, curve: Curve) -> AnnotatedCurve:
        return cls(curve.name, curve.y, curve.x)

    @classmethod
    def with_landmarks(
        cls,
        name: str,
        y: ArrayLike,
        x: ArrayLike | None = None,
        marks: Sequence[Landmark] = (),
    ) -> AnnotatedCurve:
        """Build from sparse landmarks; every other point is a plain point."""
        size = len(np.asarray(y))
        kinds = [lmk.POINT] * size
        for mark in marks:
            if mark.index < 0 or mark.index >= size:
                raise ValueError(f"Landmark index {mark.index} outside curve of {size} points")
            kinds[mark.index] = mark.kind
        kinds[0] = lmk.START
        kinds[-1] = lmk.END
        return cls(name, y, x, landmarks=kinds)

    # -- classification ---------------------------------------------------

    def _classify(self) -> None:
        kinds = self._kinds
        _mark_extrema(kinds, self.y, lmk.MINIMUM, lmk.MAXIMUM)
        # y-extrema must be in place before slopes are derived
        self.geometry_changed()
        _mark_extrema(kinds, self._ensure_slopes(), lmk.SLOPE_MINIMUM, lmk.SLOPE_MAXIMUM)
        _relabel_inflections(kinds, self._ensure_slopes())
        self._touch()

    def reannotate(self) -> None:
        """Re-derive all automatic landmarks; manual ones stay as they are."""
        self._kinds = [k if k.is_manual else lmk.POINT for k in self._kinds]
        self._kinds[0] = lmk.START
        self._kinds[-1] = lmk.END
        self._classify()
        logger.debug("Re-annotated %s", self.name)

    def _compute_slopes(self) -> NDArray[np.float64]:
        slopes = super()._compute_slopes()
        extrema = np.fromiter(
            (k.is_extremum_y for k in self._kinds), dtype=bool, count=self.size
        )
        slopes[extrema] = 0.0
        return slopes

    # -- landmark access --------------------------------------------------

    @property
    def landmark_types(self) -> tuple[LandmarkType, ...]:
        return tuple(self._kinds)

    def landmark(self, index: int) -> Landmark:
        return Landmark(index, self._kinds[index])

    def set_landmark(self, index: int, kind: LandmarkType) -> None:
        """Place (or with POINT, clear) a manual landmark at an interior index."""
        if index <= 0 or index >= self.size - 1:
            raise ValueError(f"Index {index} is not an interior point of {self.name}")
        if not (kind.is_manual or kind.is_point):
            raise ValueError(f"Only manual landmarks can be placed, got {kind}")
        self._kinds[index] = kind
        self.geometry_changed()

    @property
    def filters(self) -> tuple[AnnotationFilter, ...]:
        return tuple(self._filters)

    def add_filter(self, flt: AnnotationFilter) -> None:
        self._filters.append(flt)
        self._touch()

    def remove_filter(self, flt: AnnotationFilter) -> bool:
        for i, present in enumerate(self._filters):
            if present is flt:
                del self._filters[i]
                self._touch()
                return True
        return False

    def has_filter(self, flt: AnnotationFilter) -> bool:
        return any(present is flt for present in self._filters)

    def _touch(self) -> None:
        self._version += 1

    def geometry_changed(self) -> None:
        super().geometry_changed()
        self._touch()

    def filtered_landmarks(self) -> tuple[Landmark, ...]:
        """All non-point landmarks after every filter, in registration order."""
        key = (self._version, *(f.version for f in self._filters))
        if self._filtered is None or key != self._filtered_key:
            marks = [Landmark(i, k) for i, k in enumerate(self._kinds) if not k.is_point]
            for flt in self._filters:
                marks = flt.apply(marks, self)
            self._filtered = tuple(marks)
            self._filtered_key = key
        return self._filtered

    # -- value semantics --------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, AnnotatedCurve):
            return NotImplemented
        return (
            super().__eq__(other) is True
            and self._kinds == other._kinds
            and len(self._filters) == len(other._filters)
            and all(a is b for a, b in zip(self._filters, other._filters))
        )

    __hash__ = None  # type: ignore[assignment]

    def describe(self, digits: int = 3) -> str:
        labels = ",".join(k.label for k in self._kinds)
        return f"{super().describe(digits)}\n{self.name}.A = {{{labels}}}"
