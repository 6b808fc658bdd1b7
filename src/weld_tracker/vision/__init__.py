"""Computer vision operations: pattern detection, marker tracking, and filtering."""

from weld_tracker.vision.filters import ExponentialSmoother2D, ScalarKalmanFilter
from weld_tracker.vision.patterns import PatternDetector, detect_square_patterns
from weld_tracker.vision.tracker import MarkerTracker

__all__ = [
    "PatternDetector",
    "detect_square_patterns",
    "MarkerTracker",
    "ExponentialSmoother2D",
    "ScalarKalmanFilter",
]
