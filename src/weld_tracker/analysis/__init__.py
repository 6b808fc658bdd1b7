"""Pure analysis logic: metrics, technique profiles, sessions, and feedback.

This module contains NO I/O operations and NO OpenCV imports.
All functions operate on typed dataclasses and return results.
"""

from weld_tracker.analysis.metrics import MetricCalculator, MetricHistory, summarize_metrics
from weld_tracker.analysis.profiles import TECHNIQUE_PROFILES, classify_technique, get_profile
from weld_tracker.analysis.session import SessionAggregator, calculate_final_score

__all__ = [
    "MetricCalculator",
    "MetricHistory",
    "summarize_metrics",
    "TECHNIQUE_PROFILES",
    "get_profile",
    "classify_technique",
    "SessionAggregator",
    "calculate_final_score",
]
