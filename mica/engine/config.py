"""Alignment configuration: every tunable of a MICA run."""

from __future__ import annotations

from dataclasses import dataclass

from mica.engine.distance import (
    LinearWarpPenalty,
    NoWarpPenalty,
    SampledCurveDistance,
    WarpPenalty,
    get_distance,
)
from mica.engine.filters import AnnotationFilter, ExtremaFilter, InflectionFilter


@dataclass
class AlignmentConfig:
    """Controls distance, warping limits and landmark filtering."""

    # Distance
    distance: str = "slope-mae"  # curve-mae, curve-rmsd, slope-mae, slope-rmsd
    sample_count: int = 100

    # Warping limits
    max_distortion_ratio: float = 2.0  # max(new/old, old/new) of a split interval
    max_rel_x_shift: float = 0.2  # 20% of the curve length
    min_rel_interval_length: float = 0.05  # shorter intervals are not split
    warp_scaling: float | None = None  # None: no warp penalty

    # Landmark filters (0 disables)
    extrema_filter: float = 0.01  # fraction of the y-range
    inflection_filter: float = 0.01  # fraction of the max |slope|

    def validate(self) -> None:
        if self.sample_count < 2:
            raise ValueError(f"sample_count must be >= 2, got {self.sample_count}")
        if self.max_distortion_ratio < 1:
            raise ValueError(f"max_distortion_ratio must be >= 1, got {self.max_distortion_ratio}")
        for name in ("max_rel_x_shift", "min_rel_interval_length", "extrema_filter", "inflection_filter"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.warp_scaling is not None and self.warp_scaling < LinearWarpPenalty.MIN_SCALING:
            raise ValueError(f"warp_scaling must be positive, got {self.warp_scaling}")
        get_distance(self.distance, self.sample_count)

    def create_distance(self) -> SampledCurveDistance:
        return get_distance(self.distance, self.sample_count)

    def create_warp_penalty(self) -> WarpPenalty:
        if self.warp_scaling is None:
            return NoWarpPenalty()
        return LinearWarpPenalty(self.warp_scaling)

    def create_filters(self) -> list[AnnotationFilter]:
        filters: list[AnnotationFilter] = []
        if self.extrema_filter > 0:
            filters.append(ExtremaFilter(self.extrema_filter))
        if self.inflection_filter > 0:
            filters.append(InflectionFilter(self.inflection_filter))
        return filters
