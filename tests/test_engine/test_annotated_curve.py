"""Tests for automatic landmark classification."""

import pytest

from mica.engine import landmarks as lmk
from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.curve import Curve
from mica.engine.filters import ExtremaFilter
from mica.engine.landmarks import Category, Landmark


def test_single_peak():
    c = AnnotatedCurve("c", [0, 1, 0])
    assert c.landmark_types == (lmk.START, lmk.MAXIMUM, lmk.END)


def test_one_max(one_max):
    kinds = one_max.landmark_types
    assert kinds[5] == lmk.MAXIMUM
    assert all(k.is_point for i, k in enumerate(kinds[1:-1], start=1) if i != 5)


def test_slope_is_zero_at_y_extremum(one_max):
    assert one_max.slope_values[5] == 0.0


def test_max_then_min(max_then_min):
    marks = max_then_min.filtered_landmarks()
    assert [str(m) for m in marks] == ["0(start)", "2(maxYa)", "3(minYa)", "5(end)"]


def test_ascending_inflection():
    c = AnnotatedCurve("c", [0, 1, 3, 4])
    assert c.landmark(1).kind == lmk.INFLECTION_ASCENDING


def test_plateau_marked_at_midpoint():
    c = AnnotatedCurve("c", [0, 1, 1, 1, 0])
    assert c.landmark(2).kind == lmk.MAXIMUM
    assert c.landmark(1).kind.is_point
    assert c.landmark(3).kind.is_point


def test_unconfirmed_plateau_is_ignored():
    c = AnnotatedCurve("c", [0, 1, 1, 2, 3])
    assert not any(k.is_extremum_y for k in c.landmark_types)


def test_explicit_landmarks_are_validated():
    with pytest.raises(ValueError):
        AnnotatedCurve("c", [0, 1, 0], landmarks=[lmk.POINT, lmk.POINT, lmk.END])
    with pytest.raises(ValueError):
        AnnotatedCurve("c", [0, 1, 0], landmarks=[lmk.START, lmk.END])


def test_with_landmarks_fills_points():
    c = AnnotatedCurve.with_landmarks("c", [0, 1, 2, 3], marks=[Landmark(2, lmk.SPLIT)])
    assert c.landmark_types == (lmk.START, lmk.POINT, lmk.SPLIT, lmk.END)


def test_from_curve():
    c = AnnotatedCurve.from_curve(Curve("c", [0, 1, 0]))
    assert c.landmark(1).kind == lmk.MAXIMUM


def test_set_landmark_only_interior_and_manual(max_then_min):
    with pytest.raises(ValueError):
        max_then_min.set_landmark(0, lmk.SPLIT)
    with pytest.raises(ValueError):
        max_then_min.set_landmark(1, lmk.MAXIMUM)
    max_then_min.set_landmark(1, lmk.SPLIT)
    assert lmk.SPLIT in [m.kind for m in max_then_min.filtered_landmarks()]


def test_reannotate_keeps_manual(max_then_min):
    manual_min = lmk.manual(Category.MINIMUM)
    max_then_min.set_landmark(4, manual_min)
    max_then_min.y[2] = 2.0
    max_then_min.reannotate()
    assert max_then_min.landmark(4).kind == manual_min
    assert max_then_min.landmark(2).kind.is_point


def test_filtered_landmarks_follow_threshold_changes(max_then_min):
    flt = ExtremaFilter(0.2)
    max_then_min.add_filter(flt)
    assert len(max_then_min.filtered_landmarks()) == 4
    flt.threshold = 0.5
    assert len(max_then_min.filtered_landmarks()) == 2
    assert max_then_min.remove_filter(flt)
    assert not max_then_min.remove_filter(flt)
    assert len(max_then_min.filtered_landmarks()) == 4


def test_equality_includes_filters():
    a = AnnotatedCurve("c", [0, 1, 0])
    b = AnnotatedCurve("c", [0, 1, 0])
    assert a == b
    a.add_filter(ExtremaFilter(0.1))
    assert a != b


def test_describe_lists_labels():
    c = AnnotatedCurve("c", [0, 1, 0])
    assert c.describe(0).endswith("c.A = {start,maxYa,end}")
