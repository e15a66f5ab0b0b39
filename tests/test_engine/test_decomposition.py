"""Tests for interval decompositions and warping."""

import numpy as np
import pytest

from mica.engine import landmarks as lmk
from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.decomposition import IntervalDecomposition
from mica.engine.errors import OutOfRangeError


def test_initial_single_interval(max_then_min):
    dec = IntervalDecomposition(max_then_min)
    assert dec.size == 1
    assert dec.describe() == "0(start) 5(end)"
    assert dec.interval_length(0) == 5.0
    assert dec.interval_point_count(0) == 6
    assert [m.index for m in dec.interval_landmarks(0)] == [2, 3]
    assert dec.curve.name == "maxMin'"


def test_split_landmarks_become_boundaries(max_then_min):
    max_then_min.set_landmark(2, lmk.SPLIT)
    dec = IntervalDecomposition(max_then_min)
    assert dec.size == 2
    assert dec.interval_end(0).kind == lmk.SPLIT
    assert dec.interval_landmarks(0) == []
    assert [m.index for m in dec.interval_landmarks(1)] == [3]


def test_initial_length_rescales(max_then_min):
    dec = IntervalDecomposition(max_then_min, length=10.0)
    assert dec.curve.length == pytest.approx(10.0)
    assert dec.curve.x[1] == pytest.approx(2.0)
    assert max_then_min.length == 5.0


def test_decompose_warps_both_sides(max_then_min):
    dec = IntervalDecomposition(max_then_min)
    dec.decompose(0, max_then_min.landmark(2), 0.5)
    assert dec.size == 2
    assert dec.interval_length(0) == pytest.approx(2.5)
    assert dec.interval_length(1) == pytest.approx(2.5)
    assert dec.curve.x[2] == pytest.approx(2.5)
    assert dec.curve.length == pytest.approx(5.0)
    # the source curve is untouched
    assert max_then_min.x.tolist() == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]


def test_decompose_rejects_bad_arguments(max_then_min):
    dec = IntervalDecomposition(max_then_min)
    with pytest.raises(ValueError):
        dec.decompose(0, max_then_min.landmark(2), 1.0)
    with pytest.raises(ValueError):
        dec.decompose(0, max_then_min.landmark(1), 0.5)
    with pytest.raises(OutOfRangeError):
        dec.decompose(1, max_then_min.landmark(2), 0.5)


def test_interval_of(max_then_min):
    dec = IntervalDecomposition(max_then_min)
    dec.decompose(0, max_then_min.landmark(2), 0.5)
    assert dec.interval_of(0.0) == 0
    assert dec.interval_of(2.5) == 0
    assert dec.interval_of(3.0) == 1
    assert dec.interval_of(5.0) == 1
    with pytest.raises(OutOfRangeError):
        dec.interval_of(6.0)


def test_warp_left_and_right(max_then_min):
    dec = IntervalDecomposition(max_then_min)
    dec.warp_left(0, 2.0)
    assert dec.curve.x.tolist() == [0.0, 2.0, 4.0, 6.0, 8.0, 10.0]
    dec.warp_right(0, 0.5)
    assert dec.curve.x.tolist() == [0.0, 6.0, 7.0, 8.0, 9.0, 10.0]


def test_copy_is_independent(max_then_min):
    dec = IntervalDecomposition(max_then_min)
    dup = dec.copy(length=10.0)
    assert dup.curve.length == pytest.approx(10.0)
    assert dec.curve.length == 5.0
    assert dup.source is dec.source
    dec.copy_from(dup)
    assert np.allclose(dec.curve.x, dup.curve.x)
    assert dec.boundaries == dup.boundaries


def test_copy_from_other_curve_raises(max_then_min):
    dec = IntervalDecomposition(max_then_min)
    other = IntervalDecomposition(AnnotatedCurve("other", [0, 5, 0, 5, 0, 5]))
    with pytest.raises(ValueError):
        dec.copy_from(other)


def test_compatibility(max_then_min):
    plain = IntervalDecomposition(AnnotatedCurve("plain", [0, 1, 0]))
    assert plain.is_compatible(IntervalDecomposition(max_then_min))
    max_then_min.set_landmark(2, lmk.SPLIT)
    assert not plain.is_compatible(IntervalDecomposition(max_then_min))
