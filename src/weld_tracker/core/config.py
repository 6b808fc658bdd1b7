"""Application configuration via Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DetectorSettings(BaseSettings):
    """Square pattern detection parameters."""

    model_config = SettingsConfigDict(env_prefix="DETECTOR_")

    gradient_threshold: float = 100.0
    min_marker_size: float = 20.0
    max_corner_candidates: int = 24
    side_cv_tolerance: float = 0.2
    diagonal_tolerance: float = 0.2
    diagonal_ratio_min: float = 0.8
    diagonal_ratio_max: float = 1.6
    reference_width: int = 640
    reference_height: int = 480


class TrackerSettings(BaseSettings):
    """Marker tracking and smoothing parameters."""

    model_config = SettingsConfigDict(env_prefix="TRACKER_")

    max_age_ms: float = 5000.0
    min_confidence: float = 0.5
    jump_threshold_px: float = 50.0
    smoothing_factor: float = 0.3
    reference_marker_size_px: float = 100.0
    reference_distance_mm: float = 300.0
    max_observation_age_ms: float = 500.0


class ScoringSettings(BaseSettings):
    """Per-sample scoring constants."""

    model_config = SettingsConfigDict(env_prefix="SCORING_")

    angle_penalty: float = 2.0
    distance_std_penalty: float = 20.0
    speed_std_penalty: float = 30.0
    jerk_penalty: float = 20.0
    in_range_threshold: float = 70.0
    history_window: int | None = Field(default=None, ge=1)
    classifier_min_samples: int = 10


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = "INFO"
    file: str | None = None


class Settings(BaseSettings):
    """Root settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    detector: DetectorSettings = Field(default_factory=DetectorSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings instance."""
    return Settings()
