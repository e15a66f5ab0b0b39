"""Alignment result models for introspection and export."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CurveResult(BaseModel):
    name: str
    x: list[float] = Field(default_factory=list)
    y: list[float] = Field(default_factory=list)
    slope: list[float] = Field(default_factory=list)
    boundaries: list[str] = Field(default_factory=list)  # e.g. "0(start)", "5(maxYa)"


class AlignmentSummary(BaseModel):
    guide_tree: str
    curves: list[CurveResult] = Field(default_factory=list)
    consensus: CurveResult | None = None
    fuse_distance: float | None = None  # distance of the last pairwise fusion
    mean_distance: float | None = None
    duration_ms: float = 0.0
