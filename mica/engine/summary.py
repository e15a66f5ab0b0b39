"""Convert alignment nodes into result models."""

from __future__ import annotations

from mica.engine.decomposition import IntervalDecomposition
from mica.engine.mica import AlignmentNode
from mica.engine.runner import RunReport
from mica.models.results import AlignmentSummary, CurveResult


def curve_result(dec: IntervalDecomposition) -> CurveResult:
    curve = dec.curve
    return CurveResult(
        name=dec.name,
        x=curve.x.tolist(),
        y=curve.y.tolist(),
        slope=curve.slope_values.tolist(),
        boundaries=[str(b) for b in dec.boundaries],
    )


def summarize(node: AlignmentNode, report: RunReport | None = None) -> AlignmentSummary:
    return AlignmentSummary(
        guide_tree=node.guide_tree(),
        curves=[curve_result(m) for m in node.members],
        consensus=curve_result(node.consensus),
        fuse_distance=node.fuse_guide.distance if node.fuse_guide is not None else None,
        mean_distance=report.mean_distance if report is not None else None,
        duration_ms=report.duration_ms if report is not None else 0.0,
    )
