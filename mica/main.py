"""Entry point: environment, logging and runner factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from mica.config import settings
from mica.engine.config import AlignmentConfig
from mica.engine.runner import AlignmentRunner

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.mica_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)


def config_from_settings() -> AlignmentConfig:
    return AlignmentConfig(
        distance=settings.mica_distance,
        sample_count=settings.mica_sample_count,
        max_distortion_ratio=settings.mica_max_distortion_ratio,
        max_rel_x_shift=settings.mica_max_rel_x_shift,
        min_rel_interval_length=settings.mica_min_rel_interval_length,
        warp_scaling=settings.mica_warp_scaling,
        extrema_filter=settings.mica_extrema_filter,
        inflection_filter=settings.mica_inflection_filter,
    )


def create_runner(config: AlignmentConfig | None = None) -> AlignmentRunner:
    """Factory function for an alignment runner configured from the environment."""
    return AlignmentRunner(config or config_from_settings())
