"""Landmark filters. Each filter narrows a landmark list, never re-derives it."""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING

from mica.engine.errors import OutOfRangeError
from mica.engine.landmarks import Landmark, opposite

if TYPE_CHECKING:
    from mica.engine.annotated_curve import AnnotatedCurve

logger = logging.getLogger(__name__)


class AnnotationFilter(abc.ABC):
    """Base class for relative-threshold landmark filters.

    ``version`` is bumped whenever the threshold changes so that curves
    holding the filter know their memoised landmark list is stale.
    """

    def __init__(self, threshold: float) -> None:
        self._threshold = 0.0
        self.version = 0
        self.threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    @threshold.setter
    def threshold(self, value: float) -> None:
        if value < 0.0 or value > 1.0:
            raise OutOfRangeError(f"Filter threshold must be in [0, 1], got {value}")
        if value != self._threshold:
            self._threshold = value
            self.version += 1

    @abc.abstractmethod
    def apply(self, landmarks: list[Landmark], curve: AnnotatedCurve) -> list[Landmark]:
        """Return the landmarks that survive this filter, in order."""

    @property
    @abc.abstractmethod
    def description(self) -> str: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(threshold={self._threshold})"


def _next_opposite(landmarks: list[Landmark], current: int) -> int:
    kind = landmarks[current].kind
    for i in range(current + 1, len(landmarks)):
        if opposite(kind, landmarks[i].kind):
            return i
    return len(landmarks)


class ExtremaFilter(AnnotationFilter):
    """Drops neighbouring opposite extrema whose height difference is small."""

    description = (
        "Iteratively removes the pair of neighboured extrema of opposite type "
        "with the smallest y-difference while that difference is below the "
        "threshold; inflection points enclosed by a removed pair go as well."
    )

    def apply(self, landmarks: list[Landmark], curve: AnnotatedCurve) -> list[Landmark]:
        result = list(landmarks)
        if len(result) < 2:
            return result
        y = curve.y
        min_delta = self.threshold * (curve.y_max - curve.y_min)

        while True:
            first = next((i for i, lm in enumerate(result) if lm.kind.is_extremum_y), None)
            if first is None:
                break
            best: tuple[int, int] | None = None
            best_delta = float("inf")
            a1 = first
            a2 = _next_opposite(result, a1)
            while a2 < len(result):
                delta = abs(y[result[a1].index] - y[result[a2].index])
                if delta < best_delta:
                    best, best_delta = (a1, a2), delta
                a1, a2 = a2, _next_opposite(result, a2)
            if best is None or min_delta < best_delta:
                break
            lo, hi = best
            logger.debug(
                "Extrema filter on %s removes %d/%d (dy=%.4g)",
                curve.name,
                result[lo].index,
                result[hi].index,
                best_delta,
            )
            enclosed = [lm for lm in result[lo + 1 : hi] if not lm.kind.is_inflection]
            result = result[:lo] + enclosed + result[hi + 1 :]
        return result


class InflectionFilter(AnnotationFilter):
    """Drops inflection points whose slope is flat relative to the steepest slope."""

    description = (
        "Removes all inflection points whose absolute slope is below the "
        "threshold relative to the largest absolute slope of the curve."
    )

    def apply(self, landmarks: list[Landmark], curve: AnnotatedCurve) -> list[Landmark]:
        if not any(lm.kind.is_inflection for lm in landmarks):
            return list(landmarks)
        slopes = curve.slope_values
        limit = self.threshold * max(abs(curve.slope_max), abs(curve.slope_min))
        return [
            lm
            for lm in landmarks
            if not (lm.kind.is_inflection and abs(slopes[lm.index]) <= limit)
        ]
