"""Error types raised by the alignment engine."""

from __future__ import annotations


class OutOfRangeError(ValueError):
    """A position, threshold or index lies outside its valid range."""


class InvariantViolation(RuntimeError):
    """Geometric or precision inconsistency that should never happen."""


class AlignmentCancelled(Exception):
    """Raised at a suspension point once the run's token was cancelled."""
