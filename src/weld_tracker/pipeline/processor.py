"""Frame and motion processing pipeline orchestration."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from weld_tracker.analysis.session import SessionAggregator
from weld_tracker.core.config import Settings, get_settings
from weld_tracker.core.logging import get_logger
from weld_tracker.core.types import (
    DetectedPattern,
    InstantMetrics,
    MarkerObservation,
    MotionSample,
    PixelBuffer,
    Session,
    SessionPhase,
    Technique,
)
from weld_tracker.vision.patterns import PatternDetector
from weld_tracker.vision.tracker import MarkerTracker

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    import numpy as np
    from numpy.typing import NDArray

logger = get_logger(__name__)


def pair_recorded_observations(
    samples: Sequence[MotionSample],
    observations: Sequence[MarkerObservation],
    max_observation_age_ms: float,
) -> Iterator[tuple[MotionSample, MarkerObservation | None]]:
    """Pair recorded samples with the latest observation at or before each.

    An observation stays paired with every following sample until a newer
    one arrives or it grows older than ``max_observation_age_ms``. The
    aggregator measures each observation once however many samples carry it.

    Args:
        samples: Motion samples in time order
        observations: Marker observations in time order
        max_observation_age_ms: Oldest observation that may be paired

    Yields:
        (sample, observation or None) in sample order
    """
    idx = 0
    latest: MarkerObservation | None = None

    for sample in samples:
        while idx < len(observations) and observations[idx].timestamp <= sample.timestamp:
            latest = observations[idx]
            idx += 1

        if latest is not None and sample.timestamp - latest.timestamp <= max_observation_age_ms:
            yield sample, latest
        else:
            yield sample, None


@dataclass
class ProcessedFrame:
    """Result of processing a single camera frame."""

    timestamp: float
    observation: MarkerObservation | None
    patterns: list[DetectedPattern] = field(default_factory=list)


class EvaluationPipeline:
    """Orchestrates the full evaluation pipeline.

    Coordinates:
    - Square pattern detection on camera frames
    - Marker tracking and smoothing
    - Pairing the latest marker with each motion sample
    - Session scoring and lifecycle
    """

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize pipeline with settings.

        Args:
            settings: Application settings (uses defaults if None)
            clock: Wall clock in epoch ms for session timestamps
        """
        self.settings = settings or get_settings()

        self._detector = PatternDetector(self.settings.detector)
        self._tracker = MarkerTracker(self.settings.tracker)
        self._aggregator = SessionAggregator(self.settings.scoring, clock)

        self._latest_observation: MarkerObservation | None = None

    @property
    def aggregator(self) -> SessionAggregator:
        """Session aggregator driven by this pipeline."""
        return self._aggregator

    @property
    def phase(self) -> SessionPhase:
        """Get current session phase."""
        return self._aggregator.phase

    @property
    def latest_observation(self) -> MarkerObservation | None:
        """Most recent marker observation."""
        return self._latest_observation

    @property
    def current_session(self) -> Session | None:
        """Snapshot of the current or last session."""
        return self._aggregator.current_session

    def start_session(self, technique: Technique | str) -> Session:
        """Start a new session with a clean tracker.

        Args:
            technique: Technique to evaluate against

        Returns:
            The new session
        """
        session = self._aggregator.start(technique)
        self._tracker.reset()
        self._latest_observation = None
        return session

    def stop_session(self) -> Session | None:
        """Stop the active session.

        Returns:
            The completed session, or None if none was started
        """
        return self._aggregator.stop()

    def process_frame(
        self,
        buffer: PixelBuffer | NDArray[np.uint8],
        timestamp: float | None = None,
    ) -> ProcessedFrame:
        """Detect and track the marker in a single frame.

        Args:
            buffer: RGBA camera frame
            timestamp: Frame time in ms (defaults to the monotonic clock)

        Returns:
            ProcessedFrame with the candidates and tracked observation
        """
        if timestamp is None:
            timestamp = time.monotonic() * 1000.0

        patterns = self._detector.detect(buffer, timestamp)
        observation = self._tracker.update(patterns, now=timestamp)

        if observation is not None:
            self._latest_observation = observation

        return ProcessedFrame(timestamp=timestamp, observation=observation, patterns=patterns)

    def process_motion(self, sample: MotionSample) -> InstantMetrics | None:
        """Score a motion sample against the latest fresh marker.

        Several samples may arrive per frame. They all carry the same
        marker, which the aggregator measures only once.

        Args:
            sample: Motion sample

        Returns:
            Metrics for the sample, or None if no session is recording
        """
        return self._aggregator.update(sample, self._paired_observation(sample))

    def _paired_observation(self, sample: MotionSample) -> MarkerObservation | None:
        """Latest observation if it is recent enough to pair with the sample."""
        observation = self._latest_observation
        if observation is None:
            return None

        age = abs(sample.timestamp - observation.timestamp)
        if age > self.settings.tracker.max_observation_age_ms:
            return None
        return observation

    def reset(self) -> None:
        """Forget tracked marker state."""
        self._tracker.reset()
        self._latest_observation = None
        logger.info("Pipeline reset")

    def __enter__(self) -> EvaluationPipeline:
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        if self._aggregator.is_recording:
            self._aggregator.stop()
