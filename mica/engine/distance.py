"""Sampled curve distances and warp penalties.

Every metric is registered by name via decorator, so callers choose one
from configuration:

    @distance(name="curve-mae", description="...")
    class CurveMeanAbsoluteDistance(SampledCurveDistance): ...

A metric folds its pointwise terms with ``finalize(total, n)``; ``unfinalize``
recovers the raw sum, which lets PICA combine the partial distances of two
sub-intervals without resampling.
"""

from __future__ import annotations

import abc
import logging
import math
from dataclasses import dataclass
from typing import Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from mica.engine.curve import Curve
from mica.engine.errors import OutOfRangeError
from mica.engine.precision import same_x

logger = logging.getLogger(__name__)


class SampledCurveDistance(abc.ABC):
    """Distance evaluated at a fixed number of equidistant x-positions."""

    def __init__(self, sample_count: int = 100) -> None:
        self.sample_count = sample_count

    @property
    def sample_count(self) -> int:
        return self._sample_count

    @sample_count.setter
    def sample_count(self, value: int) -> None:
        if value < 2:
            raise OutOfRangeError(f"Sample count must be >= 2, got {value}")
        self._sample_count = int(value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sample_count={self._sample_count})"

    @abc.abstractmethod
    def pointwise(
        self,
        c1: Curve,
        c2: Curve,
        xs1: NDArray[np.float64],
        xs2: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Per-sample distance terms."""

    @abc.abstractmethod
    def finalize(self, total: float, n: int) -> float: ...

    @abc.abstractmethod
    def unfinalize(self, value: float, n: int) -> float: ...

    def step_size(self, curve: Curve) -> float:
        return curve.length / (self._sample_count - 1)

    def _grid(self, curve: Curve) -> NDArray[np.float64]:
        xs = curve.xmin + self.step_size(curve) * np.arange(self._sample_count)
        xs[0] = curve.xmin
        xs[-1] = curve.xmax
        return xs

    def distance(self, c1: Curve, c2: Curve) -> float:
        """Distance over the full x-range of both curves."""
        total = float(np.sum(self.pointwise(c1, c2, self._grid(c1), self._grid(c2))))
        return self.finalize(total, self._sample_count)

    def partial_distance(
        self,
        c1: Curve,
        c2: Curve,
        xs1: ArrayLike,
        xs2: ArrayLike,
        start: int = 0,
        count: int | None = None,
    ) -> float:
        """Distance over ``count`` paired samples beginning at ``start``."""
        xs1 = np.asarray(xs1, dtype=np.float64)
        xs2 = np.asarray(xs2, dtype=np.float64)
        if xs1.shape != xs2.shape:
            raise ValueError("Sample position arrays differ in length")
        if count is None:
            count = xs1.size - start
        if start < 0 or count < 0 or start + count > xs1.size:
            raise OutOfRangeError(
                f"Sample range [{start}, {start + count}) outside [0, {xs1.size}]"
            )
        span = slice(start, start + count)
        total = float(np.sum(self.pointwise(c1, c2, xs1[span], xs2[span])))
        return self.finalize(total, count)

    def sample_positions(self, curve: Curve, start: int, end: int) -> NDArray[np.float64]:
        """Grid positions of ``curve`` that fall into the knot range [start, end].

        The grid is anchored at ``curve.xmin``. A grid position that misses
        ``x[end]`` only by precision is snapped onto it.
        """
        if start < 0 or start >= curve.size or end < 0 or end >= curve.size:
            raise OutOfRangeError(f"Knot range [{start}, {end}] outside curve of {curve.size}")
        if start >= end:
            raise ValueError("start has to be smaller than end")
        step = self.step_size(curve)
        length = curve.length
        start_x = float(curve.x[start])
        end_x = float(curve.x[end])

        first = curve.xmin + step * max(0.0, math.floor((start_x - curve.xmin) / step))
        if first < start_x:
            first += step
        if first > end_x:
            if same_x(first, end_x, length):
                return np.array([end_x])
            return np.empty(0, dtype=np.float64)

        count = int(math.floor((end_x - first) / step)) + 1
        xs = first + step * np.arange(count)
        if xs[-1] > end_x:
            if same_x(float(xs[-1]), end_x, length):
                xs[-1] = end_x
            else:
                xs = xs[:-1]
        else:
            following = first + step * count
            if same_x(following, end_x, length) and not same_x(float(xs[-1]), end_x, length):
                xs = np.append(xs, end_x)
        return xs


def _mean_finalize(total: float, n: int) -> float:
    return total / n if n else total


def _rms_finalize(total: float, n: int) -> float:
    return math.sqrt(total / n) if n else total


class _MeanAbsolute:
    def finalize(self, total: float, n: int) -> float:
        return _mean_finalize(total, n)

    def unfinalize(self, value: float, n: int) -> float:
        return value * n


class _RootMeanSquare:
    def finalize(self, total: float, n: int) -> float:
        return _rms_finalize(total, n)

    def unfinalize(self, value: float, n: int) -> float:
        return value * value * n


# -- registry -------------------------------------------------------------


@dataclass
class DistanceSpec:
    name: str
    cls: type[SampledCurveDistance]
    description: str = ""


class DistanceRegistry:
    """Singleton registry of the available distance metrics."""

    def __init__(self) -> None:
        self._specs: dict[str, DistanceSpec] = {}

    def register(self, spec: DistanceSpec) -> None:
        if spec.name in self._specs:
            raise ValueError(f"Duplicate distance name: {spec.name}")
        self._specs[spec.name] = spec
        logger.debug("Registered distance %s (%s)", spec.name, spec.cls.__name__)

    def get(self, name: str) -> DistanceSpec:
        try:
            return self._specs[name]
        except KeyError:
            known = ", ".join(sorted(self._specs))
            raise ValueError(f"Unknown distance {name!r} (known: {known})") from None

    def all(self) -> list[DistanceSpec]:
        return sorted(self._specs.values(), key=lambda s: s.name)

    @property
    def count(self) -> int:
        return len(self._specs)


_registry = DistanceRegistry()


def get_registry() -> DistanceRegistry:
    return _registry


def get_distance(name: str, sample_count: int = 100) -> SampledCurveDistance:
    return _registry.get(name).cls(sample_count)


def distance(*, name: str, description: str = "") -> Callable[[type], type]:
    """Decorator to register a distance metric class."""

    def decorator(cls: type[SampledCurveDistance]) -> type[SampledCurveDistance]:
        _registry.register(DistanceSpec(name=name, cls=cls, description=description))
        return cls

    return decorator


# -- metrics --------------------------------------------------------------


@distance(name="curve-mae", description="Mean absolute difference of y-values")
class CurveMeanAbsoluteDistance(_MeanAbsolute, SampledCurveDistance):
    def pointwise(self, c1, c2, xs1, xs2):
        return np.abs(c1.values(xs1) - c2.values(xs2))


@distance(name="curve-rmsd", description="Root mean square deviation of y-values")
class CurveRmsdDistance(_RootMeanSquare, SampledCurveDistance):
    def pointwise(self, c1, c2, xs1, xs2):
        return (c1.values(xs1) - c2.values(xs2)) ** 2


@distance(name="slope-mae", description="Mean absolute difference of slopes")
class SlopeMeanAbsoluteDistance(_MeanAbsolute, SampledCurveDistance):
    def pointwise(self, c1, c2, xs1, xs2):
        return np.abs(c1.slopes(xs1) - c2.slopes(xs2))


@distance(name="slope-rmsd", description="Root mean square deviation of slopes")
class SlopeRmsdDistance(_RootMeanSquare, SampledCurveDistance):
    def pointwise(self, c1, c2, xs1, xs2):
        return (c1.slopes(xs1) - c2.slopes(xs2)) ** 2


# -- warp penalties -------------------------------------------------------


class WarpPenalty(abc.ABC):
    """Scales a raw distance by how strongly an interval was warped."""

    @abc.abstractmethod
    def apply(self, warp_factor: float, value: float) -> float: ...


class NoWarpPenalty(WarpPenalty):
    def apply(self, warp_factor: float, value: float) -> float:
        return value


class LinearWarpPenalty(WarpPenalty):
    MIN_SCALING = 1e-10

    def __init__(self, scaling: float = 1.0) -> None:
        if scaling < self.MIN_SCALING:
            raise OutOfRangeError(f"Warp scaling must be >= {self.MIN_SCALING}, got {scaling}")
        self.scaling = scaling

    def apply(self, warp_factor: float, value: float) -> float:
        return max(1.0, self.scaling * warp_factor) * value

    def __repr__(self) -> str:
        return f"LinearWarpPenalty(scaling={self.scaling})"
