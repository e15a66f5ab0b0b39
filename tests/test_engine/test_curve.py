"""Tests for the piecewise-linear curve."""

import numpy as np
import pytest

from mica.engine.curve import Curve, format_number
from mica.engine.errors import OutOfRangeError


def test_default_x_is_index():
    c = Curve("c", [0, 1, 0])
    assert c.x.tolist() == [0.0, 1.0, 2.0]
    assert c.length == 2.0
    assert len(c) == 3


def test_rejects_bad_input():
    with pytest.raises(ValueError):
        Curve("c", [1])
    with pytest.raises(ValueError):
        Curve("c", [0, 1], [0, 1, 2])
    with pytest.raises(ValueError):
        Curve("c", [0, 1, 2], [0, 1, 1])
    with pytest.raises(ValueError):
        Curve("", [0, 1])


def test_rejects_non_finite_values():
    with pytest.raises(ValueError):
        Curve("c", [0, 1, 2], [0, np.nan, 2])
    with pytest.raises(ValueError):
        Curve("c", [0, np.nan, 2])
    with pytest.raises(ValueError):
        Curve("c", [0, 1, 2], [0, 1, np.inf])


def test_value_interpolates():
    c = Curve("c", [0, 2, 0], [0, 1, 3])
    assert c.value(0.5) == pytest.approx(1.0)
    assert c.value(2.0) == pytest.approx(1.0)
    assert c.values([0, 1, 3]).tolist() == [0.0, 2.0, 0.0]


def test_value_outside_range_raises():
    c = Curve("c", [0, 1, 0])
    with pytest.raises(OutOfRangeError):
        c.value(2.5)
    with pytest.raises(OutOfRangeError):
        c.slope(-0.1)


def test_slope_at_knot_uses_right_segment():
    c = Curve("c", [0, 1, 0])
    assert c.slope(0.0) == 1.0
    assert c.slope(1.0) == -1.0
    # last knot falls back to the last segment
    assert c.slope(2.0) == -1.0
    assert c.slope_values.tolist() == [1.0, -1.0, -1.0]
    assert c.slope_min == -1.0
    assert c.slope_max == 1.0


def test_slope_cache_refreshes_after_geometry_change():
    c = Curve("c", [0, 1, 2])
    assert c.slope_max == 1.0
    c.y[2] = 5.0
    c.geometry_changed()
    assert c.slope_max == 4.0


def test_slope_values_are_read_only():
    c = Curve("c", [0, 1, 2])
    with pytest.raises(ValueError):
        c.slope_values[0] = 3.0


def test_closest_point_ties_go_left():
    c = Curve("c", [0, 0, 0], [0, 1, 2])
    assert c.closest_point(0.5) == 0
    assert c.closest_point(0.6) == 1
    assert c.closest_point(1.0) == 1
    assert c.closest_point(5.0) == 2
    assert c.closest_point(-1.0) == 0


def test_resample_pins_ends():
    c = Curve("c", [0, 4], [0, 4])
    assert c.resample(5).tolist() == [0.0, 1.0, 2.0, 3.0, 4.0]
    with pytest.raises(OutOfRangeError):
        c.resample(1)


def test_copy_is_independent():
    c = Curve("c", [0, 1, 0])
    dup = c.copy()
    assert dup == c
    dup.y[1] = 3.0
    assert c.y[1] == 1.0
    assert dup != c
    assert c.copy("d").name == "d"


def test_describe():
    c = Curve("c", [0, 1.5, 0])
    assert c.describe(2) == "c.Y = {0,1.5,0}\nc.X = {0,1,2}"
    with pytest.raises(OutOfRangeError):
        c.describe(11)


def test_format_number():
    assert format_number(1234.5, 2) == "1,234.5"
    assert format_number(2.0, 3) == "2"
    assert format_number(np.float64(0.125), 2) == "0.12"
