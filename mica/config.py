"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    mica_env: str = "development"
    mica_log_level: str = "info"

    # Defaults for AlignmentConfig
    mica_distance: str = "slope-mae"
    mica_sample_count: int = 100
    mica_max_distortion_ratio: float = 2.0
    mica_max_rel_x_shift: float = 0.2
    mica_min_rel_interval_length: float = 0.05
    mica_warp_scaling: float | None = None
    mica_extrema_filter: float = 0.01
    mica_inflection_filter: float = 0.01

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
