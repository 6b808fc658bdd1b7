"""Core infrastructure: config, types, exceptions, and logging."""

from weld_tracker.core.config import Settings, get_settings
from weld_tracker.core.exceptions import (
    ConfigurationError,
    RecordFormatError,
    SessionStateError,
    UnknownTechniqueError,
    ValidationCodeError,
    WeldTrackerError,
)
from weld_tracker.core.logging import get_logger, setup_logging
from weld_tracker.core.types import (
    AngularRate,
    DetectedPattern,
    Envelope,
    Grade,
    InstantMetrics,
    MarkerObservation,
    MotionSample,
    PixelBuffer,
    ScoringWeights,
    Session,
    SessionPhase,
    Technique,
    TechniqueProfile,
    Vector3,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Types
    "Vector3",
    "AngularRate",
    "MotionSample",
    "MarkerObservation",
    "PixelBuffer",
    "DetectedPattern",
    "Technique",
    "Envelope",
    "ScoringWeights",
    "TechniqueProfile",
    "InstantMetrics",
    "Grade",
    "SessionPhase",
    "Session",
    # Exceptions
    "WeldTrackerError",
    "ConfigurationError",
    "UnknownTechniqueError",
    "SessionStateError",
    "ValidationCodeError",
    "RecordFormatError",
    # Logging
    "setup_logging",
    "get_logger",
]
