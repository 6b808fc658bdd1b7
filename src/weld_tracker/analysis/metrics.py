"""Per-sample welding metrics and scoring.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np

from weld_tracker.core.config import ScoringSettings
from weld_tracker.core.types import (
    Envelope,
    InstantMetrics,
    MarkerObservation,
    MetricAverages,
    MotionSample,
    TechniqueProfile,
    Vector3,
)

PERFECT_SCORE = 100.0


def _clamp_score(value: float) -> float:
    return min(max(value, 0.0), PERFECT_SCORE)


def _std(values: Iterable[float]) -> float:
    """Population standard deviation (0 for an empty series)."""
    data = np.fromiter(values, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.std(data))


def calculate_angle(sample: MotionSample) -> float:
    """Torch angle from the forward/backward tilt (beta) channel.

    Args:
        sample: Motion sample

    Returns:
        Angle in degrees folded into [0, 180] (0 without rotation data)
    """
    if sample.rotation is None:
        return 0.0

    angle = abs(sample.rotation.beta)
    if angle > 180:
        angle = 360 - angle
    return abs(angle)


def calculate_distance(observation: MarkerObservation | None) -> float:
    """Standoff distance from the marker's z component (0 without a marker)."""
    if observation is None:
        return 0.0
    return abs(observation.position.z)


def calculate_speed(
    current: Vector3,
    previous: Vector3 | None,
    elapsed_ms: float,
) -> float:
    """Travel speed between two position estimates.

    Args:
        current: Current marker position
        previous: Previous marker position (None if unknown)
        elapsed_ms: Time between the two positions in milliseconds

    Returns:
        Speed in position units per second (0 if it cannot be computed)
    """
    if previous is None or elapsed_ms <= 0:
        return 0.0
    return current.distance_to(previous) / elapsed_ms * 1000.0


def acceleration_magnitude(sample: MotionSample) -> float:
    """Magnitude of the sample's acceleration vector."""
    return sample.acceleration.magnitude


def score_angle(angle: float, envelope: Envelope, penalty: float = 2.0) -> float:
    """Angle accuracy: linear penalty per degree outside the envelope."""
    return _clamp_score(PERFECT_SCORE - envelope.deviation(angle) * penalty)


def score_distance_stability(
    distance: float,
    previous_distances: Sequence[float],
    envelope: Envelope,
    penalty: float = 20.0,
) -> float:
    """Distance stability: zero out of range, else penalize spread of past distances."""
    if not envelope.contains(distance):
        return 0.0
    if not previous_distances:
        return PERFECT_SCORE
    return _clamp_score(PERFECT_SCORE - _std(previous_distances) * penalty)


def score_speed_consistency(
    speed: float,
    previous_speeds: Sequence[float],
    envelope: Envelope,
    penalty: float = 30.0,
) -> float:
    """Speed consistency: zero out of range, else penalize spread of past speeds.

    Only call this for a measured speed. When there is no previous marker
    position the speed is unmeasured and MetricCalculator scores it 100
    instead of scoring the placeholder 0 against the envelope.
    """
    if not envelope.contains(speed):
        return 0.0
    if not previous_speeds:
        return PERFECT_SCORE
    return _clamp_score(PERFECT_SCORE - _std(previous_speeds) * penalty)


def score_smoothness(
    sample: MotionSample,
    previous_sample: MotionSample | None,
    penalty: float = 20.0,
) -> float:
    """Movement smoothness from jerk between consecutive samples.

    The first sample of a session has no predecessor and scores 100.
    """
    if previous_sample is None:
        return PERFECT_SCORE

    jerk = abs(acceleration_magnitude(sample) - acceleration_magnitude(previous_sample))
    return _clamp_score(PERFECT_SCORE - jerk * penalty)


@dataclass
class MetricHistory:
    """Rolling state carried between consecutive samples of one session."""

    distances: deque[float] = field(default_factory=deque)
    speeds: deque[float] = field(default_factory=deque)
    previous_sample: MotionSample | None = None
    previous_observation: MarkerObservation | None = None
    previous_metrics: InstantMetrics | None = None

    @classmethod
    def with_window(cls, window: int | None = None) -> MetricHistory:
        """Create an empty history keeping at most ``window`` values (None = all)."""
        return cls(distances=deque(maxlen=window), speeds=deque(maxlen=window))

    def push(
        self,
        sample: MotionSample,
        observation: MarkerObservation | None,
        metrics: InstantMetrics,
    ) -> None:
        """Advance the history past one processed sample.

        Distances are kept only when a new marker was observed; speeds only
        when both this and the previous sample had a marker. A repeated
        observation adds nothing, so the histories advance per camera
        frame rather than per motion sample.
        """
        if observation is not None and not self.is_repeat(observation):
            self.distances.append(metrics.distance)
            if self.previous_observation is not None:
                self.speeds.append(metrics.speed)

        self.previous_sample = sample
        self.previous_observation = observation
        self.previous_metrics = metrics

    def is_repeat(self, observation: MarkerObservation | None) -> bool:
        """Check if the observation is the one already paired with the previous sample."""
        previous = self.previous_observation
        return (
            observation is not None
            and previous is not None
            and observation.timestamp == previous.timestamp
        )

    def reset(self) -> None:
        """Clear all rolling state."""
        self.distances.clear()
        self.speeds.clear()
        self.previous_sample = None
        self.previous_observation = None
        self.previous_metrics = None


class MetricCalculator:
    """Converts a (motion sample, marker) pair into InstantMetrics.

    Missing inputs degrade to zero-valued readings rather than errors:
    no rotation data gives angle 0 and no marker gives distance 0.

    Speed is measured between consecutive distinct marker observations,
    over the time between the observations themselves. With no previous
    marker position the speed is unmeasured: it reads 0 and scores 100,
    rather than 0 as scoring the placeholder against the envelope would.
    When motion arrives faster than frames, the same observation can be
    paired with several samples; the repeats carry the distance score and
    speed of the sample that first saw it.
    """

    def __init__(self, settings: ScoringSettings | None = None) -> None:
        """Initialize calculator with settings.

        Args:
            settings: Scoring constants (uses defaults if None)
        """
        self.settings = settings or ScoringSettings()

    def calculate(
        self,
        sample: MotionSample,
        observation: MarkerObservation | None,
        profile: TechniqueProfile,
        history: MetricHistory,
    ) -> InstantMetrics:
        """Compute metrics for one sample.

        Args:
            sample: Current motion sample
            observation: Current marker estimate, if any
            profile: Active technique profile
            history: Rolling history before this sample (not modified)

        Returns:
            InstantMetrics for this sample
        """
        s = self.settings

        angle = calculate_angle(sample)
        distance = calculate_distance(observation)

        angle_score = score_angle(angle, profile.angle, s.angle_penalty)

        carried = history.previous_metrics
        if history.is_repeat(observation) and carried is not None:
            speed = carried.speed
            distance_score = carried.distance_score
            speed_score = carried.speed_score
        else:
            previous = history.previous_observation
            speed = 0.0
            if observation is not None and previous is not None:
                speed = calculate_speed(
                    observation.position,
                    previous.position,
                    observation.timestamp - previous.timestamp,
                )

            distance_score = score_distance_stability(
                distance, history.distances, profile.distance, s.distance_std_penalty
            )
            speed_score = (
                score_speed_consistency(speed, history.speeds, profile.speed, s.speed_std_penalty)
                if previous is not None
                else PERFECT_SCORE
            )

        smoothness_score = score_smoothness(sample, history.previous_sample, s.jerk_penalty)

        weights = profile.weights
        quality_score = (
            angle_score * weights.angle
            + distance_score * weights.distance
            + speed_score * weights.speed
            + smoothness_score * weights.smoothness
        ) / 100
        stability_score = (angle_score + distance_score + speed_score) / 3

        return InstantMetrics(
            timestamp=sample.timestamp,
            angle=angle,
            distance=distance,
            speed=speed,
            angle_score=angle_score,
            distance_score=distance_score,
            speed_score=speed_score,
            smoothness_score=smoothness_score,
            stability_score=stability_score,
            quality_score=quality_score,
            in_range=(
                angle_score > s.in_range_threshold and distance_score > s.in_range_threshold
            ),
        )


def summarize_metrics(metrics: Sequence[InstantMetrics]) -> MetricAverages:
    """Average each per-metric score across a session.

    Args:
        metrics: Per-sample metrics

    Returns:
        MetricAverages (all zero for an empty sequence)
    """
    if not metrics:
        return MetricAverages()

    count = len(metrics)
    return MetricAverages(
        angle=sum(m.angle_score for m in metrics) / count,
        distance=sum(m.distance_score for m in metrics) / count,
        speed=sum(m.speed_score for m in metrics) / count,
        smoothness=sum(m.smoothness_score for m in metrics) / count,
    )
