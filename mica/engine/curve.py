"""Piecewise-linear curve over strictly increasing x-coordinates."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from mica.engine.errors import OutOfRangeError


def format_number(value: float, digits: int) -> str:
    """Grouped fixed-point rendering with trailing zeros stripped."""
    text = f"{value:,.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class Curve:
    """A named sequence of (x, y) points with a linear interpolant.

    The coordinate arrays are owned by the curve. Code that mutates ``x`` or
    ``y`` in place must call :meth:`geometry_changed` afterwards so that the
    slope cache is rebuilt.
    """

    def __init__(self, name: str, y: ArrayLike, x: ArrayLike | None = None) -> None:
        y_arr = np.array(y, dtype=np.float64)
        if y_arr.ndim != 1 or y_arr.size < 2:
            raise ValueError("A curve needs at least 2 points")
        if not np.all(np.isfinite(y_arr)):
            raise ValueError("y-values must be finite")
        if x is None:
            x_arr = np.arange(y_arr.size, dtype=np.float64)
        else:
            x_arr = np.array(x, dtype=np.float64)
            if x_arr.shape != y_arr.shape:
                raise ValueError(
                    f"x and y differ in length ({x_arr.size} != {y_arr.size})"
                )
            if not np.all(np.isfinite(x_arr)):
                raise ValueError("x-coordinates must be finite")
            if not np.all(np.diff(x_arr) > 0):
                raise ValueError("x-coordinates must be strictly increasing")
        self.name = name
        self.x: NDArray[np.float64] = x_arr
        self.y: NDArray[np.float64] = y_arr
        self._slopes: NDArray[np.float64] | None = None
        self._slope_min = float("nan")
        self._slope_max = float("nan")

    # -- identity ---------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if not value:
            raise ValueError("Curve name must not be empty")
        self._name = value

    def copy(self, name: str | None = None) -> Curve:
        return Curve(name or self.name, self.y, self.x)

    def __len__(self) -> int:
        return int(self.y.size)

    @property
    def size(self) -> int:
        return int(self.y.size)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Curve):
            return NotImplemented
        return (
            self.size == other.size
            and self.length == other.length
            and self.name == other.name
            and bool(np.array_equal(self.x, other.x))
            and bool(np.array_equal(self.y, other.y))
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Curve({self.name!r}, size={self.size}, x=[{self.xmin:g}, {self.xmax:g}])"

    # -- ranges -----------------------------------------------------------

    @property
    def xmin(self) -> float:
        return float(self.x[0])

    @property
    def xmax(self) -> float:
        return float(self.x[-1])

    @property
    def length(self) -> float:
        return float(self.x[-1] - self.x[0])

    @property
    def y_min(self) -> float:
        return float(self.y.min())

    @property
    def y_max(self) -> float:
        return float(self.y.max())

    def _check_range(self, xs: NDArray[np.float64]) -> None:
        if xs.size and (xs.min() < self.x[0] or xs.max() > self.x[-1]):
            bad = xs[(xs < self.x[0]) | (xs > self.x[-1])][0]
            raise OutOfRangeError(
                f"x={bad} outside [{self.xmin}, {self.xmax}] of curve {self.name!r}"
            )

    # -- evaluation -------------------------------------------------------

    def value(self, x: float) -> float:
        """Interpolated y at ``x``."""
        return float(self.values(np.array([x], dtype=np.float64))[0])

    def values(self, xs: ArrayLike) -> NDArray[np.float64]:
        xs = np.asarray(xs, dtype=np.float64)
        self._check_range(xs)
        return np.interp(xs, self.x, self.y)

    def slope(self, x: float) -> float:
        """Derivative at ``x``. At a knot the segment to its right is used."""
        return float(self.slopes(np.array([x], dtype=np.float64))[0])

    def slopes(self, xs: ArrayLike) -> NDArray[np.float64]:
        xs = np.asarray(xs, dtype=np.float64)
        self._check_range(xs)
        segment = np.diff(self.y) / np.diff(self.x)
        idx = np.searchsorted(self.x, xs, side="right") - 1
        idx = np.clip(idx, 0, self.size - 2)
        return segment[idx]

    # -- slope cache ------------------------------------------------------

    def _compute_slopes(self) -> NDArray[np.float64]:
        return self.slopes(self.x)

    def _ensure_slopes(self) -> NDArray[np.float64]:
        if self._slopes is None:
            slopes = self._compute_slopes()
            self._slopes = slopes
            self._slope_min = float(slopes.min())
            self._slope_max = float(slopes.max())
        return self._slopes

    @property
    def slope_values(self) -> NDArray[np.float64]:
        """Slope at every knot (read-only view of the cache)."""
        view = self._ensure_slopes().view()
        view.flags.writeable = False
        return view

    @property
    def slope_min(self) -> float:
        self._ensure_slopes()
        return self._slope_min

    @property
    def slope_max(self) -> float:
        self._ensure_slopes()
        return self._slope_max

    def geometry_changed(self) -> None:
        """Drop derived caches after in-place coordinate mutation."""
        self._slopes = None
        self._slope_min = float("nan")
        self._slope_max = float("nan")

    # -- queries ----------------------------------------------------------

    def closest_point(self, x: float) -> int:
        """Index of the knot nearest to ``x``; equidistant ties go to the lower index."""
        i = int(np.searchsorted(self.x, x, side="left"))
        if i < self.size and self.x[i] == x:
            return i
        if 0 < i < self.size and abs(x - self.x[i - 1]) <= abs(self.x[i] - x):
            i -= 1
        return min(i, self.size - 1)

    def resample(self, n: int) -> NDArray[np.float64]:
        """``n`` equidistant y-values; the first and last are copied exactly."""
        if n < 2:
            raise OutOfRangeError(f"Sample count must be >= 2, got {n}")
        step = self.length / (n - 1)
        out = np.empty(n, dtype=np.float64)
        out[0] = self.y[0]
        out[-1] = self.y[-1]
        if n > 2:
            out[1:-1] = np.interp(self.xmin + step * np.arange(1, n - 1), self.x, self.y)
        return out

    def describe(self, digits: int = 3) -> str:
        if digits < 0 or digits > 10:
            raise OutOfRangeError(f"digits must be in [0, 10], got {digits}")
        ys = ",".join(format_number(v, digits) for v in self.y)
        xs = ",".join(format_number(v, digits) for v in self.x)
        return f"{self.name}.Y = {{{ys}}}\n{self.name}.X = {{{xs}}}"
