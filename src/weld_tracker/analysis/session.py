"""Session lifecycle state machine and final scoring.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

import dataclasses
import time
import uuid
from collections.abc import Callable, Sequence

from weld_tracker.analysis.metrics import MetricCalculator, MetricHistory, summarize_metrics
from weld_tracker.analysis.profiles import get_profile
from weld_tracker.core.config import ScoringSettings
from weld_tracker.core.exceptions import SessionStateError
from weld_tracker.core.logging import get_logger
from weld_tracker.core.types import (
    Grade,
    InstantMetrics,
    MarkerObservation,
    MotionSample,
    Session,
    SessionPhase,
    Technique,
    TechniqueProfile,
)

logger = get_logger(__name__)


def _epoch_ms() -> float:
    return time.time() * 1000.0


def calculate_final_score(
    metrics: Sequence[InstantMetrics],
    profile: TechniqueProfile,
) -> float:
    """Weighted final score from per-metric averages.

    Args:
        metrics: All per-sample metrics of a session
        profile: Technique profile supplying the weights

    Returns:
        Final score in [0, 100] (0 for an empty session)
    """
    if not metrics:
        return 0.0
    return summarize_metrics(metrics).weighted(profile.weights)


class SessionAggregator:
    """Owns the single active session and its rolling history.

    Transitions:
        IDLE → RECORDING: start()
        RECORDING → COMPLETED: stop()
        COMPLETED → RECORDING: start() with a fresh session

    Starting while RECORDING is rejected with SessionStateError so the
    in-flight session is never overwritten. update() and stop() outside
    RECORDING are rejected without touching state.
    """

    def __init__(
        self,
        settings: ScoringSettings | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize aggregator.

        Args:
            settings: Scoring constants (uses defaults if None)
            clock: Wall clock in epoch milliseconds (defaults to time.time)
        """
        self.settings = settings or ScoringSettings()
        self._calculator = MetricCalculator(self.settings)
        self._clock = clock or _epoch_ms

        self._phase = SessionPhase.IDLE
        self._session: Session | None = None
        self._samples: list[MotionSample] = []
        self._observations: list[MarkerObservation] = []
        self._metrics: list[InstantMetrics] = []
        self._history = MetricHistory.with_window(self.settings.history_window)
        self._latest_metrics: InstantMetrics | None = None

    @property
    def phase(self) -> SessionPhase:
        """Get current lifecycle phase."""
        return self._phase

    @property
    def is_recording(self) -> bool:
        """Check if a session is being recorded."""
        return self._phase == SessionPhase.RECORDING

    @property
    def profile(self) -> TechniqueProfile | None:
        """Profile of the current or last session."""
        return self._session.profile if self._session is not None else None

    @property
    def latest_metrics(self) -> InstantMetrics | None:
        """Metrics of the most recent update."""
        return self._latest_metrics

    @property
    def current_session(self) -> Session | None:
        """Snapshot of the active session, or the completed one."""
        if self._session is None:
            return None
        if self._phase == SessionPhase.COMPLETED:
            return self._session
        return self._snapshot(duration=self._clock() - self._session.start_time)

    def start(self, technique: Technique | str) -> Session:
        """Begin recording a new session.

        Args:
            technique: Technique to evaluate against

        Returns:
            Snapshot of the new, empty session

        Raises:
            SessionStateError: If a session is already recording
            UnknownTechniqueError: If the technique has no profile
        """
        if self._phase == SessionPhase.RECORDING:
            raise SessionStateError(
                f"Session {self._session.id if self._session else '?'} is already recording"
            )

        profile = get_profile(technique)
        start_time = self._clock()

        self._session = Session(
            id=f"session_{int(start_time)}_{uuid.uuid4().hex[:6]}",
            technique=profile.technique,
            profile=profile,
            start_time=start_time,
        )
        self._samples = []
        self._observations = []
        self._metrics = []
        self._history.reset()
        self._latest_metrics = None
        self._phase = SessionPhase.RECORDING

        logger.info("Started session %s (%s)", self._session.id, profile.technique.value)
        return self._session

    def update(
        self,
        sample: MotionSample,
        observation: MarkerObservation | None = None,
    ) -> InstantMetrics | None:
        """Score one sample and append it to the session.

        Args:
            sample: Motion sample
            observation: Marker estimate paired with the sample, if any. An
                observation already paired with the previous sample is
                stored once and not measured again.

        Returns:
            Metrics for the sample, or None if no session is recording
        """
        if self._phase != SessionPhase.RECORDING or self._session is None:
            logger.warning("Ignoring update while %s", self._phase.name)
            return None

        metrics = self._calculator.calculate(
            sample, observation, self._session.profile, self._history
        )

        self._samples.append(sample)
        if observation is not None and not self._is_stored(observation):
            self._observations.append(observation)
        self._metrics.append(metrics)
        self._history.push(sample, observation, metrics)
        self._latest_metrics = metrics

        return metrics

    def stop(self) -> Session | None:
        """Finish the session and compute its final score and grade.

        Returns:
            The completed, immutable session. Repeated calls return the same
            session; None if nothing was ever started.
        """
        if self._phase == SessionPhase.COMPLETED:
            return self._session
        if self._phase == SessionPhase.IDLE or self._session is None:
            logger.warning("Ignoring stop with no active session")
            return None

        end_time = self._clock()
        final_score = calculate_final_score(self._metrics, self._session.profile)
        grade = Grade.from_score(final_score)

        self._session = dataclasses.replace(
            self._snapshot(duration=end_time - self._session.start_time),
            end_time=end_time,
            final_score=final_score,
            grade=grade,
        )
        self._phase = SessionPhase.COMPLETED

        logger.info(
            "Completed session %s: %.1f (%s) over %d samples",
            self._session.id,
            final_score,
            grade.value,
            len(self._metrics),
        )
        return self._session

    def _is_stored(self, observation: MarkerObservation) -> bool:
        """Check if the observation was already recorded with an earlier sample."""
        if not self._observations:
            return False
        return self._observations[-1].timestamp == observation.timestamp

    def _snapshot(self, duration: float) -> Session:
        """Copy the working sequences into an immutable Session.

        Raises:
            SessionStateError: If no session was ever started
        """
        if self._session is None:
            raise SessionStateError("No session to snapshot")
        return dataclasses.replace(
            self._session,
            duration=duration,
            samples=tuple(self._samples),
            observations=tuple(self._observations),
            metrics=tuple(self._metrics),
        )
