"""PICA: pairwise interval-decomposition curve alignment.

Both curves are first warped to common interval lengths, then each interval
is greedily split at the pair of alignable landmarks that lowers the sampled
distance most. A committed split keeps the interval index, so the new left
part is examined again before moving on.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mica.engine.cancellation import CancellationToken, Outcome, check
from mica.engine.decomposition import IntervalDecomposition
from mica.engine.distance import NoWarpPenalty, SampledCurveDistance, WarpPenalty
from mica.engine.errors import AlignmentCancelled, InvariantViolation, OutOfRangeError
from mica.engine.landmarks import Landmark, alignable
from mica.engine.precision import same_x
from mica.utils.geometry import weighted_mean

logger = logging.getLogger(__name__)

MAX_LENGTH_DRIFT = 1.01  # tolerated ratio after the initial interval warp


@dataclass
class PairwiseAlignment:
    first: IntervalDecomposition
    second: IntervalDecomposition
    distance: float


@dataclass
class _Split:
    first: Landmark
    second: Landmark
    rel_pos: float


class PICA:
    def __init__(
        self,
        distance: SampledCurveDistance,
        max_distortion_ratio: float = 2.0,
        max_rel_x_shift: float = 0.2,
        min_rel_interval_length: float = 0.05,
        warp_penalty: WarpPenalty | None = None,
    ) -> None:
        if max_distortion_ratio < 1:
            raise OutOfRangeError(f"max_distortion_ratio must be >= 1, got {max_distortion_ratio}")
        if not 0.0 <= max_rel_x_shift <= 1.0:
            raise OutOfRangeError(f"max_rel_x_shift must be in [0, 1], got {max_rel_x_shift}")
        if not 0.0 <= min_rel_interval_length <= 1.0:
            raise OutOfRangeError(
                f"min_rel_interval_length must be in [0, 1], got {min_rel_interval_length}"
            )
        self.distance = distance
        self.max_distortion_ratio = max_distortion_ratio
        self.max_rel_x_shift = max_rel_x_shift
        self.min_rel_interval_length = min_rel_interval_length
        self.warp_penalty = warp_penalty or NoWarpPenalty()

    # -- public API -------------------------------------------------------

    def align(
        self,
        first: IntervalDecomposition,
        weight1: float,
        second: IntervalDecomposition,
        weight2: float,
        token: CancellationToken | None = None,
    ) -> Outcome[PairwiseAlignment]:
        try:
            return Outcome.of(self.run(first, weight1, second, weight2, token))
        except AlignmentCancelled:
            logger.info("Pairwise alignment of %s and %s cancelled", first.name, second.name)
            return Outcome.cancel()

    def align_to_reference(
        self,
        reference: IntervalDecomposition,
        other: IntervalDecomposition,
        token: CancellationToken | None = None,
    ) -> Outcome[PairwiseAlignment]:
        """Align ``other`` while keeping the reference's interval lengths."""
        return self.align(reference, 1.0, other, 0.0, token)

    # -- algorithm --------------------------------------------------------

    def run(
        self,
        first: IntervalDecomposition,
        weight1: float,
        second: IntervalDecomposition,
        weight2: float,
        token: CancellationToken | None = None,
    ) -> PairwiseAlignment:
        """Like :meth:`align` but raises AlignmentCancelled instead of returning."""
        check(token)
        if not first.is_compatible(second):
            raise ValueError(f"Decompositions of {first.name} and {second.name} are incompatible")
        if weight1 < 0 or weight2 < 0:
            raise ValueError(f"Weights must be non-negative, got {weight1} and {weight2}")
        if weight1 + weight2 <= 0:
            raise ValueError("At least one weight must be positive")
        t0 = time.perf_counter()

        res1, res2 = first.copy(), second.copy()
        mean_length = weighted_mean(first.curve.length, weight1, second.curve.length, weight2)
        cur1, cur2 = res1.copy(mean_length), res2.copy(mean_length)
        self._equalize_intervals(res1, res2, cur1, cur2, weight1, weight2)
        for cur in (cur1, cur2):
            ratio = cur.curve.length / mean_length
            if max(ratio, 1 / ratio) >= MAX_LENGTH_DRIFT:
                raise InvariantViolation(
                    f"Length {cur.curve.length} of {cur.name} after interval warping "
                    f"differs from expected {mean_length}"
                )
        self._align_start(cur1, cur2, weight1, weight2)
        res1.copy_from(cur1)
        res2.copy_from(cur2)

        best = self._full_distance(res1, res2)
        min_length = res1.curve.length * self.min_rel_interval_length
        splits = 0
        i = 0
        while i < res1.size:
            check(token)
            if res1.interval_length(i) < min_length:
                i += 1
                continue
            split = self._best_split(res1, res2, i, weight1, weight2, token)
            if split is None:
                i += 1
                continue
            res1.decompose(i, split.first, split.rel_pos)
            res2.decompose(i, split.second, split.rel_pos)
            best = self._full_distance(res1, res2)
            splits += 1

        logger.debug(
            "PICA %s vs %s: %d splits, distance %.6g in %.1fms",
            first.name,
            second.name,
            splits,
            best,
            (time.perf_counter() - t0) * 1000,
        )
        return PairwiseAlignment(res1, res2, best)

    def _full_distance(self, d1: IntervalDecomposition, d2: IntervalDecomposition) -> float:
        return self.warp_penalty.apply(1.0, self.distance.distance(d1.curve, d2.curve))

    @staticmethod
    def _equalize_intervals(
        res1: IntervalDecomposition,
        res2: IntervalDecomposition,
        cur1: IntervalDecomposition,
        cur2: IntervalDecomposition,
        w1: float,
        w2: float,
    ) -> None:
        """Warp every interval of both working copies to the weighted mean length."""
        for i in range(cur1.size):
            target = weighted_mean(res1.interval_length(i), w1, res2.interval_length(i), w2)
            for cur in (cur1, cur2):
                x = cur.curve.x
                end = cur.interval_end(i).index
                old_right = x[end]
                cur.warp_left(i, target / cur.interval_length(i))
                if end + 1 < x.size:
                    x[end + 1 :] += x[end] - old_right
        cur1.curve.geometry_changed()
        cur2.curve.geometry_changed()

    @staticmethod
    def _align_start(
        cur1: IntervalDecomposition,
        cur2: IntervalDecomposition,
        w1: float,
        w2: float,
    ) -> None:
        length = cur1.curve.length
        if same_x(cur1.curve.xmin, cur2.curve.xmin, length):
            return
        target = weighted_mean(cur1.curve.xmin, w1, cur2.curve.xmin, w2)
        for cur in (cur1, cur2):
            if not same_x(cur.curve.xmin, target, cur.curve.length):
                cur.curve.x += target - cur.curve.xmin
                cur.curve.geometry_changed()

    def _shift_exceeded(self, dec: IntervalDecomposition, warped_x: float, mark: Landmark) -> bool:
        curve, source = dec.curve, dec.source
        rel_warped = (warped_x - curve.xmin) / curve.length
        rel_original = (source.x[mark.index] - source.xmin) / source.length
        return abs(rel_warped - rel_original) > self.max_rel_x_shift

    def _best_split(
        self,
        d1: IntervalDecomposition,
        d2: IntervalDecomposition,
        i: int,
        w1: float,
        w2: float,
        token: CancellationToken | None,
    ) -> _Split | None:
        """Best improving landmark pair for interval ``i``, or None."""
        marks1 = d1.interval_landmarks(i)
        marks2 = d2.interval_landmarks(i)
        if not marks1 or not marks2:
            return None

        c1, c2 = d1.curve, d2.curve
        length = d1.interval_length(i)
        start1, end1 = d1.interval_start(i).index, d1.interval_end(i).index
        start2, end2 = d2.interval_start(i).index, d2.interval_end(i).index
        s1, e1 = float(c1.x[start1]), float(c1.x[end1])
        s2, e2 = float(c2.x[start2]), float(c2.x[end2])
        xs1: NDArray[np.float64] | None = None
        xs2: NDArray[np.float64] | None = None
        local: float | None = None
        best: _Split | None = None

        for a1 in marks1:
            for a2 in marks2:
                if not alignable(a1.kind, a2.kind):
                    continue
                check(token)
                if xs1 is None or xs2 is None:
                    xs1 = self.distance.sample_positions(c1, start1, end1)
                    xs2 = self.distance.sample_positions(c2, start2, end2)
                    # rounding may yield one sample more on one side
                    n = min(xs1.size, xs2.size)
                    xs1, xs2 = xs1[:n], xs2[:n]
                a1x = float(c1.x[a1.index])
                a2x = float(c2.x[a2.index])
                left = weighted_mean(a1x - s1, w1, a2x - s2, w2)
                if self._shift_exceeded(d1, s1 + left, a1) or self._shift_exceeded(
                    d2, s2 + left, a2
                ):
                    continue
                rel = left / length
                factor = max(rel, 1 / rel)
                if factor > self.max_distortion_ratio:
                    continue
                if local is None:
                    local = self.distance.partial_distance(c1, c2, xs1, xs2)

                candidate = self.warp_penalty.apply(
                    factor,
                    self._split_distance(c1, c2, xs1, xs2, (s1, a1x, e1), (s2, a2x, e2), length * rel),
                )
                if candidate < local:
                    local = candidate
                    best = _Split(a1, a2, rel)
        return best

    def _split_distance(self, c1, c2, xs1, xs2, span1, span2, left_length: float) -> float:
        """Distance over the interval if it were split at the given landmarks.

        Samples of the warped layout are mapped back onto the current
        coordinates, so no warped copy has to be built.
        """
        dec1, n_left = _unwarp(xs1, *span1, span1[0] + left_length)
        dec2, _ = _unwarp(xs2, *span2, span2[0] + left_length)
        n = xs1.size
        dist = self.distance
        total = 0.0
        if n_left > 0:
            total += dist.unfinalize(dist.partial_distance(c1, c2, dec1, dec2, 0, n_left), n_left)
        if n_left < n:
            rest = n - n_left
            total += dist.unfinalize(dist.partial_distance(c1, c2, dec1, dec2, n_left, rest), rest)
        return dist.finalize(total, n)


def _unwarp(
    xs: NDArray[np.float64], start: float, mark: float, end: float, warped_mark: float
) -> tuple[NDArray[np.float64], int]:
    """Map positions of the split layout back to the unsplit coordinates."""
    is_left = xs < warped_mark
    with np.errstate(divide="ignore", invalid="ignore"):
        left = start + (xs - start) * (mark - start) / (warped_mark - start)
        right = end - (end - xs) * (end - mark) / (end - warped_mark)
    return np.where(is_left, left, right), int(np.count_nonzero(is_left))
