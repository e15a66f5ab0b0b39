"""Tests for the alignment runner."""

import pytest

from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.cancellation import CancellationToken
from mica.engine.config import AlignmentConfig
from mica.engine.errors import AlignmentCancelled, OutOfRangeError
from mica.engine.runner import AlignmentRunner, RunStatus


@pytest.fixture
def curves() -> list[AnnotatedCurve]:
    return [
        AnnotatedCurve("early", [0, 0, 1, 0, 0, 0, 0]),
        AnnotatedCurve("mid", [0, 0, 0, 1, 0, 0, 0]),
        AnnotatedCurve("late", [0, 0, 0, 0, 1, 0, 0]),
    ]


@pytest.fixture
def runner() -> AlignmentRunner:
    return AlignmentRunner(AlignmentConfig(distance="curve-mae"))


def test_run(runner, curves):
    statuses = []
    outcome = runner.run(curves, progress=statuses.append)
    report = outcome.unwrap()
    assert report.node.names == ["early", "mid", "late"]
    assert report.mean_distance >= 0.0
    assert report.duration_ms >= 0.0
    assert statuses == [RunStatus.RUNNING, RunStatus.FINISHED]


def test_filters_are_shared(runner, curves):
    runner.run(curves)
    for curve in curves:
        assert all(curve.has_filter(flt) for flt in runner.filters)
        assert len(curve.filters) == 2


def test_reference_index(runner, curves):
    report = runner.run(curves, reference_index=2).unwrap()
    assert report.node.names == ["late", "early", "mid"]
    with pytest.raises(OutOfRangeError):
        runner.run(curves, reference_index=3)


def test_empty_input(runner):
    with pytest.raises(ValueError):
        runner.run([])


def test_pre_cancelled(runner, curves):
    token = CancellationToken()
    token.cancel()
    outcome = runner.run(curves, token=token)
    assert outcome.cancelled
    with pytest.raises(AlignmentCancelled):
        outcome.unwrap()


def test_cancel_during_run(runner, curves):
    token = CancellationToken()
    statuses = []

    def progress(status: RunStatus) -> None:
        statuses.append(status)
        if status is RunStatus.RUNNING:
            token.cancel()

    assert runner.run(curves, token=token, progress=progress).cancelled
    assert statuses == [RunStatus.RUNNING, RunStatus.CANCELLED]


def test_mean_distance_of_single_curve(runner, curves):
    report = runner.run(curves[:1]).unwrap()
    assert report.mean_distance == 0.0


def test_run_streaming(runner, curves):
    events = list(runner.run_streaming(curves))
    assert events[0]["status"] == "running"
    fusions = [e for e in events if "index" in e]
    assert [e["index"] for e in fusions] == [0, 1]
    assert all(e["total"] == 2 for e in events)
    final = events[-1]
    assert final["status"] == "complete"
    assert final["guide_tree"].count("(") == 2
    assert "mean_distance" in final


def test_run_streaming_returns_outcome(runner, curves):
    gen = runner.run_streaming(curves)
    with pytest.raises(StopIteration) as stop:
        while True:
            next(gen)
    assert stop.value.value.unwrap().node.names == ["early", "mid", "late"]
