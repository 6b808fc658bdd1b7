"""Temporal tracking of a single marker across frames."""

from __future__ import annotations

import math
import time
from collections.abc import Sequence

from weld_tracker.core.config import TrackerSettings
from weld_tracker.core.logging import get_logger
from weld_tracker.core.types import DetectedPattern, MarkerObservation, Vector3
from weld_tracker.vision.filters import ExponentialSmoother2D

logger = get_logger(__name__)


class MarkerTracker:
    """Resolves per-frame pattern candidates into one stable marker estimate.

    Stale and low-confidence candidates are dropped and the best remaining
    one is kept. Small centroid moves are exponentially smoothed; a move
    of ``jump_threshold_px`` or more is treated as a different marker and
    snaps the estimate. Only the position is smoothed.
    """

    def __init__(self, settings: TrackerSettings | None = None) -> None:
        """Initialize tracker with settings.

        Args:
            settings: Tracking parameters (uses defaults if None)
        """
        self.settings = settings or TrackerSettings()
        self._smoother = ExponentialSmoother2D(self.settings.smoothing_factor)
        self._current: MarkerObservation | None = None

    @property
    def current(self) -> MarkerObservation | None:
        """Most recent tracked marker estimate."""
        return self._current

    @property
    def is_tracking(self) -> bool:
        """Check if a marker estimate is retained."""
        return self._current is not None

    def reset(self) -> None:
        """Forget the retained marker estimate."""
        self._smoother.reset()
        self._current = None

    def select(
        self,
        patterns: Sequence[DetectedPattern],
        now: float,
    ) -> DetectedPattern | None:
        """Pick the best fresh, confident candidate.

        Args:
            patterns: Candidates for the current frame
            now: Current time in ms

        Returns:
            Highest-confidence surviving candidate, or None
        """
        candidates = [
            p
            for p in patterns
            if now - p.timestamp < self.settings.max_age_ms
            and p.confidence >= self.settings.min_confidence
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda p: p.confidence)

    def update(
        self,
        patterns: Sequence[DetectedPattern],
        now: float | None = None,
    ) -> MarkerObservation | None:
        """Process one frame's candidates.

        Args:
            patterns: Candidates from the pattern detector
            now: Current time in ms (defaults to the monotonic clock)

        Returns:
            The authoritative observation for this frame, or None if no
            candidate survived (the previous estimate is retained)
        """
        if now is None:
            now = time.monotonic() * 1000.0

        best = self.select(patterns, now)
        if best is None:
            return None

        previous = self._smoother.position
        cx, cy = best.center.x, best.center.y

        if previous is not None and math.dist(previous, (cx, cy)) < self.settings.jump_threshold_px:
            x, y = self._smoother.update(cx, cy)
        else:
            if previous is not None:
                logger.debug(
                    "Marker jumped from (%.1f, %.1f) to (%.1f, %.1f), snapping",
                    previous[0],
                    previous[1],
                    cx,
                    cy,
                )
            x, y = self._smoother.snap(cx, cy)

        observation = MarkerObservation(
            position=Vector3(x=x, y=y, z=self.estimate_distance(best.size)),
            size=best.size,
            confidence=best.confidence,
            timestamp=best.timestamp,
        )
        self._current = observation
        return observation

    def estimate_distance(self, size_px: float) -> float:
        """Estimate standoff distance from apparent marker size.

        Args:
            size_px: Marker size in pixels

        Returns:
            Distance in mm (0 for a degenerate size)
        """
        if size_px <= 0:
            return 0.0
        return (
            self.settings.reference_marker_size_px * self.settings.reference_distance_mm / size_px
        )
