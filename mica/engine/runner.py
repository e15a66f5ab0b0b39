"""Alignment runner: annotated curves in, timed MICA result out."""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass
from itertools import combinations
from typing import Any

from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.cancellation import CancellationToken, Outcome, check
from mica.engine.config import AlignmentConfig
from mica.engine.decomposition import IntervalDecomposition
from mica.engine.errors import AlignmentCancelled, OutOfRangeError
from mica.engine.filters import AnnotationFilter
from mica.engine.mica import MICA, AlignmentNode

logger = logging.getLogger(__name__)


class RunStatus(str, enum.Enum):
    RUNNING = "running"
    FINISHED = "finished"
    CANCELLED = "cancelled"


@dataclass
class RunReport:
    node: AlignmentNode
    mean_distance: float
    duration_ms: float


ProgressCallback = Callable[[RunStatus], None]


class AlignmentRunner:
    """Runs MICA over a list of annotated curves with one set of filters.

    The configured filters are attached to every input curve (the curves are
    modified) so that consensus curves inherit them.
    """

    def __init__(self, config: AlignmentConfig | None = None) -> None:
        self.config = config or AlignmentConfig()
        self.config.validate()
        self.filters: list[AnnotationFilter] = self.config.create_filters()
        self.mica = MICA(
            self.config.create_distance(),
            max_distortion_ratio=self.config.max_distortion_ratio,
            max_rel_x_shift=self.config.max_rel_x_shift,
            min_rel_interval_length=self.config.min_rel_interval_length,
            warp_penalty=self.config.create_warp_penalty(),
        )

    def prepare(self, curves: Sequence[AnnotatedCurve]) -> list[IntervalDecomposition]:
        decompositions = []
        for curve in curves:
            for flt in self.filters:
                if not curve.has_filter(flt):
                    curve.add_filter(flt)
            decompositions.append(IntervalDecomposition(curve))
        return decompositions

    def mean_distance(self, node: AlignmentNode) -> float:
        """Mean full-range distance over all pairs of aligned members."""
        pairs = list(combinations(node.members, 2))
        if not pairs:
            return 0.0
        dist = self.mica.distance
        return sum(dist.distance(a.curve, b.curve) for a, b in pairs) / len(pairs)

    def run(
        self,
        curves: Sequence[AnnotatedCurve],
        reference_index: int | None = None,
        token: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
        on_fuse: Callable[[AlignmentNode], None] | None = None,
    ) -> Outcome[RunReport]:
        if not curves:
            raise ValueError("No curves given to be aligned")
        if reference_index is not None and not 0 <= reference_index < len(curves):
            raise OutOfRangeError(
                f"Reference index {reference_index} outside [0, {len(curves) - 1}]"
            )
        if token is not None and token.cancelled:
            return Outcome.cancel()
        if progress:
            progress(RunStatus.RUNNING)

        decompositions = self.prepare(curves)
        reference = None
        if reference_index is not None:
            reference = decompositions.pop(reference_index)

        start = time.perf_counter()
        try:
            node = self.mica.run(decompositions, reference=reference, token=token, on_fuse=on_fuse)
            duration_ms = (time.perf_counter() - start) * 1000
            check(token)
            mean = self.mean_distance(node)
        except AlignmentCancelled:
            logger.info("Alignment run cancelled after %.0fms", (time.perf_counter() - start) * 1000)
            if progress:
                progress(RunStatus.CANCELLED)
            return Outcome.cancel()

        logger.info(
            "Alignment run complete: %d curves, mean distance %.6g in %.0fms",
            len(curves),
            mean,
            duration_ms,
        )
        if progress:
            progress(RunStatus.FINISHED)
        return Outcome.of(RunReport(node=node, mean_distance=mean, duration_ms=duration_ms))

    def run_streaming(
        self,
        curves: Sequence[AnnotatedCurve],
        reference_index: int | None = None,
        token: CancellationToken | None = None,
    ) -> Generator[dict[str, Any], None, Outcome[RunReport]]:
        """Run, yielding a progress dict per fusion and one per status change.

        The generator's return value is the run's outcome.
        """
        t0 = time.perf_counter()
        total = len(curves) - 1
        events: list[dict[str, Any]] = []

        def _elapsed() -> float:
            return round((time.perf_counter() - t0) * 1000, 1)

        def _on_status(status: RunStatus) -> None:
            events.append({"status": status.value, "elapsed_ms": _elapsed(), "total": total})

        def _on_fuse(node: AlignmentNode) -> None:
            events.append({
                "status": RunStatus.RUNNING.value,
                "elapsed_ms": _elapsed(),
                "total": total,
                "index": sum(1 for e in events if "guide_tree" in e),
                "guide_tree": node.guide_tree(),
            })

        outcome = self.run(curves, reference_index, token, progress=_on_status, on_fuse=_on_fuse)
        yield from events
        if not outcome.cancelled:
            report = outcome.unwrap()
            yield {
                "status": "complete",
                "elapsed_ms": _elapsed(),
                "total": total,
                "guide_tree": report.node.guide_tree(),
                "mean_distance": report.mean_distance,
            }
        return outcome
