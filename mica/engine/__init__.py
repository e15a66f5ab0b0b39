"""MICA curve alignment engine."""

from mica.engine.annotated_curve import AnnotatedCurve
from mica.engine.cancellation import CancellationToken, Outcome
from mica.engine.config import AlignmentConfig
from mica.engine.curve import Curve
from mica.engine.decomposition import IntervalDecomposition
from mica.engine.distance import get_distance
from mica.engine.filters import ExtremaFilter, InflectionFilter
from mica.engine.mica import MICA, AlignmentNode
from mica.engine.pica import PICA, PairwiseAlignment
from mica.engine.runner import AlignmentRunner

__all__ = [
    "AnnotatedCurve",
    "CancellationToken",
    "Outcome",
    "AlignmentConfig",
    "Curve",
    "IntervalDecomposition",
    "get_distance",
    "ExtremaFilter",
    "InflectionFilter",
    "MICA",
    "AlignmentNode",
    "PICA",
    "PairwiseAlignment",
    "AlignmentRunner",
]
