"""Tests for progressive multiple curve alignment."""

import numpy as np
import pytest

from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.cancellation import CancellationToken
from mica.engine.decomposition import IntervalDecomposition
from mica.engine.distance import get_distance
from mica.engine.landmarks import SPLIT
from mica.engine.mica import MICA, AlignmentNode

MID_PEAK_Y = [0, 0, 0, 1, 0, 0, 0]


@pytest.fixture
def mid_peak() -> IntervalDecomposition:
    return IntervalDecomposition(AnnotatedCurve("mid", MID_PEAK_Y))


@pytest.fixture
def mica() -> MICA:
    return MICA(get_distance("curve-mae"))


def test_members_keep_input_order(mica, early_peak, mid_peak, late_peak):
    node = mica.align(early_peak, mid_peak, late_peak).unwrap()
    assert node.names == ["early", "mid", "late"]
    assert node.guide_tree().count("(") == 2
    assert set(node.guide_tree().replace("(", "").replace(")", "").split(",")) == {"early", "mid", "late"}
    assert not node.is_leaf
    assert node.fuse_guide is not None


def test_members_stay_compatible(mica, early_peak, mid_peak, late_peak):
    node = mica.align(early_peak, mid_peak, late_peak).unwrap()
    head = node.members[0]
    for member in node.members:
        assert head.is_compatible(member)
        assert node.consensus.is_compatible(member)
        assert member.curve.length == pytest.approx(6.0)


def test_identical_curves_give_input_as_consensus(mica, one_max):
    a = IntervalDecomposition(one_max)
    b = IntervalDecomposition(AnnotatedCurve("twin", one_max.y))
    node = mica.align(a, b).unwrap()
    assert np.allclose(node.consensus.curve.y, one_max.y)
    assert node.guide_tree() == "(oneMax,twin)"


def test_single_curve(mica, early_peak):
    node = mica.align(early_peak).unwrap()
    assert node.is_leaf
    assert node.names == ["early"]


def test_reference_comes_first_and_keeps_coordinates(mica, early_peak, mid_peak, late_peak):
    node = mica.align_to_reference(mid_peak, early_peak, late_peak).unwrap()
    assert node.names == ["mid", "early", "late"]
    assert np.allclose(node.members[0].curve.x, mid_peak.curve.x)


def test_fuse_callback(mica, early_peak, mid_peak, late_peak):
    fused: list[AlignmentNode] = []
    mica.run([early_peak, mid_peak, late_peak], on_fuse=fused.append)
    assert len(fused) == 2
    assert len(fused[-1].members) == 3


def test_validation(mica, early_peak):
    with pytest.raises(ValueError, match="No curves"):
        mica.align()
    with pytest.raises(ValueError, match="unique"):
        mica.align(early_peak, early_peak.copy())
    split = AnnotatedCurve("split", [0, 1, 2, 1, 0])
    split.set_landmark(2, SPLIT)
    with pytest.raises(ValueError, match="incompatible"):
        mica.align(early_peak, IntervalDecomposition(split))


def test_cancelled_token(mica, early_peak, late_peak):
    token = CancellationToken()
    token.cancel()
    assert mica.align(early_peak, late_peak, token=token).cancelled


def test_reordered_keeps_consensus(mica, early_peak, late_peak):
    node = mica.align(early_peak, late_peak).unwrap()
    consensus = node.consensus
    flipped = node.reordered(["late", "early"])
    assert flipped.names == ["late", "early"]
    assert flipped.consensus is consensus
