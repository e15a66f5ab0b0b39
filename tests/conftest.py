"""Shared test fixtures."""

from __future__ import annotations

import pytest

from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.decomposition import IntervalDecomposition


# Sample curves

ONE_MAX_Y = [1, 2.5, 4, 4.5, 5, 5.1, 5, 4.5, 4, 2.5, 1]
MAX_THEN_MIN_Y = [1, 2, 3, 2, 3, 4]
EARLY_PEAK_Y = [0, 0, 1, 0, 0, 0, 0]
LATE_PEAK_Y = [0, 0, 0, 0, 1, 0, 0]
ASCENDING_INFLECTION_Y = [0, 1, 3, 4]


@pytest.fixture
def one_max() -> AnnotatedCurve:
    return AnnotatedCurve("oneMax", ONE_MAX_Y)


@pytest.fixture
def max_then_min() -> AnnotatedCurve:
    return AnnotatedCurve("maxMin", MAX_THEN_MIN_Y)


@pytest.fixture
def early_peak() -> IntervalDecomposition:
    return IntervalDecomposition(AnnotatedCurve("early", EARLY_PEAK_Y))


@pytest.fixture
def late_peak() -> IntervalDecomposition:
    return IntervalDecomposition(AnnotatedCurve("late", LATE_PEAK_Y))
