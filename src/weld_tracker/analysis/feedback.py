"""Coaching feedback derived from session metrics.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

from collections.abc import Sequence

from weld_tracker.core.types import MetricAverages, MotionSample


def generate_improvement_suggestions(
    averages: MetricAverages,
    threshold: float = 70.0,
) -> list[str]:
    """Suggest what to practise next.

    Args:
        averages: Per-metric score averages of a session
        threshold: Averages below this value trigger a suggestion

    Returns:
        One suggestion per weak metric, or a single congratulation
    """
    suggestions: list[str] = []

    if averages.angle < threshold:
        suggestions.append("Hold the torch at the recommended work angle for this technique")
    if averages.distance < threshold:
        suggestions.append("Keep a constant distance from the base material")
    if averages.speed < threshold:
        suggestions.append("Practise a steadier, more uniform travel speed")
    if averages.smoothness < threshold:
        suggestions.append("Avoid abrupt movements and keep the motion smooth")

    if not suggestions:
        suggestions.append("Excellent technique! Keep practising to maintain this level.")

    return suggestions


def calculate_energy_expenditure(
    samples: Sequence[MotionSample],
    duration_ms: float,
) -> float:
    """Relative movement energy per unit time.

    Sums the squared change in acceleration magnitude between consecutive
    samples and normalizes by the session duration.

    Args:
        samples: Motion samples in time order
        duration_ms: Session duration in milliseconds

    Returns:
        Relative energy (0 without samples or duration)
    """
    if not samples or duration_ms <= 0:
        return 0.0

    magnitudes = [s.acceleration.magnitude for s in samples]
    total = sum((b - a) ** 2 for a, b in zip(magnitudes, magnitudes[1:]))
    return total / duration_ms
