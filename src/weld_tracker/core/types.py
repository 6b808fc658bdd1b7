"""Core data types and structures."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray

from weld_tracker.core.exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class Vector3:
    """A three-axis reading (acceleration, magnetic field or position)."""

    x: float
    y: float
    z: float

    @property
    def magnitude(self) -> float:
        """Euclidean norm of the vector."""
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def distance_to(self, other: Vector3) -> float:
        """Euclidean distance to another point."""
        return math.sqrt(
            (self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2
        )


@dataclass(frozen=True, slots=True)
class AngularRate:
    """Device rotation in degrees.

    Attributes:
        alpha: Rotation around the z-axis
        beta: Rotation around the x-axis (forward/backward tilt)
        gamma: Rotation around the y-axis
    """

    alpha: float
    beta: float
    gamma: float


@dataclass(frozen=True, slots=True)
class MotionSample:
    """A single device-motion reading.

    Attributes:
        timestamp: Monotonic capture time in milliseconds
        acceleration: Linear acceleration (gravity handling is the caller's choice)
        rotation: Angular rate, or None when the gyroscope reported nothing
        magnetic_field: Optional magnetometer reading
    """

    timestamp: float
    acceleration: Vector3
    rotation: AngularRate | None = None
    magnetic_field: Vector3 | None = None


@dataclass(frozen=True, slots=True)
class Orientation:
    """Marker orientation in degrees."""

    pitch: float
    yaw: float
    roll: float


@dataclass(frozen=True, slots=True)
class MarkerObservation:
    """The single authoritative marker estimate for one processed frame.

    Attributes:
        position: Centroid x/y in pixels, z is standoff distance in mm
        size: Characteristic marker size in pixels
        confidence: Detection confidence [0, 1]
        timestamp: Observation time in milliseconds
        orientation: Marker orientation, unpopulated by the built-in tracker
    """

    position: Vector3
    size: float
    confidence: float
    timestamp: float
    orientation: Orientation | None = None


@dataclass(frozen=True, slots=True)
class PixelBuffer:
    """Raw RGBA camera frame.

    ``data`` is either packed RGBA bytes (row-major, 4 bytes per pixel) or a
    ``(height, width, 4)`` uint8 array.
    """

    width: int
    height: int
    data: bytes | bytearray | memoryview | NDArray[np.uint8]

    def as_array(self) -> NDArray[np.uint8] | None:
        """View the buffer as a ``(height, width, 4)`` array.

        Returns:
            Array view, or None if the buffer does not match its dimensions
        """
        if self.width <= 0 or self.height <= 0:
            return None

        expected = self.width * self.height * 4

        if isinstance(self.data, np.ndarray):
            array = self.data
            if array.size != expected:
                return None
            return np.ascontiguousarray(array, dtype=np.uint8).reshape(
                self.height, self.width, 4
            )

        flat = np.frombuffer(self.data, dtype=np.uint8)
        if flat.size != expected:
            return None
        return flat.reshape(self.height, self.width, 4)


@dataclass(frozen=True, slots=True)
class Corner:
    """A corner candidate in pixel coordinates."""

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class DetectedPattern:
    """A candidate square marker found in a single frame.

    Attributes:
        corners: The four corner points
        center: Centroid of the corners
        size: Mean corner-to-centroid distance in pixels
        confidence: Detection confidence [0, 1]
        timestamp: Frame timestamp in milliseconds
    """

    corners: tuple[Corner, Corner, Corner, Corner]
    center: Corner
    size: float
    confidence: float
    timestamp: float


class Technique(str, Enum):
    """Supported welding techniques."""

    MIG = "MIG"
    TIG = "TIG"
    ELECTRODO = "ELECTRODO"


@dataclass(frozen=True, slots=True)
class Envelope:
    """Ideal [min, max] range for a metric."""

    min: float
    max: float

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ConfigurationError(f"Envelope min {self.min} exceeds max {self.max}")

    def contains(self, value: float) -> bool:
        """Check whether a value lies inside the envelope (inclusive)."""
        return self.min <= value <= self.max

    def deviation(self, value: float) -> float:
        """Distance from the value to the nearest bound, zero when inside."""
        if self.contains(value):
            return 0.0
        return min(abs(value - self.min), abs(value - self.max))


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Percentage weights of each metric in the composite score."""

    angle: float
    distance: float
    speed: float
    smoothness: float

    def __post_init__(self) -> None:
        values = (self.angle, self.distance, self.speed, self.smoothness)
        if any(v < 0 for v in values):
            raise ConfigurationError(f"Scoring weights must be non-negative: {values}")
        if not math.isclose(sum(values), 100.0):
            raise ConfigurationError(f"Scoring weights must sum to 100, got {sum(values)}")

    @property
    def total(self) -> float:
        """Sum of all weights."""
        return self.angle + self.distance + self.speed + self.smoothness


@dataclass(frozen=True, slots=True)
class TechniqueProfile:
    """Target envelope and scoring weights for one technique."""

    technique: Technique
    angle: Envelope
    distance: Envelope
    speed: Envelope
    weights: ScoringWeights


@dataclass(frozen=True, slots=True)
class InstantMetrics:
    """Metrics derived from one (motion sample, marker) pair.

    Attributes:
        timestamp: Sample timestamp in milliseconds
        angle: Torch angle in degrees
        distance: Standoff distance in mm
        speed: Travel speed in units per second
        angle_score: Angle accuracy [0, 100]
        distance_score: Distance stability [0, 100]
        speed_score: Speed consistency [0, 100]
        smoothness_score: Movement smoothness [0, 100]
        stability_score: Mean of angle, distance and speed scores
        quality_score: Weighted composite of all four scores
        in_range: Angle and distance both inside their target envelope
    """

    timestamp: float
    angle: float
    distance: float
    speed: float
    angle_score: float
    distance_score: float
    speed_score: float
    smoothness_score: float
    stability_score: float
    quality_score: float
    in_range: bool


@dataclass(frozen=True, slots=True)
class MetricAverages:
    """Per-metric score averages over a session."""

    angle: float = 0.0
    distance: float = 0.0
    speed: float = 0.0
    smoothness: float = 0.0

    def weighted(self, weights: ScoringWeights) -> float:
        """Combine the averages with percentage weights."""
        return (
            self.angle * weights.angle
            + self.distance * weights.distance
            + self.speed * weights.speed
            + self.smoothness * weights.smoothness
        ) / 100


class Grade(str, Enum):
    """Letter grade for a completed session."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"

    @classmethod
    def from_score(cls, score: float) -> Grade:
        """Map a final score to its letter grade."""
        if score >= 90:
            return cls.A
        if score >= 80:
            return cls.B
        if score >= 70:
            return cls.C
        if score >= 60:
            return cls.D
        return cls.F


class SessionPhase(Enum):
    """States in the session lifecycle."""

    IDLE = auto()
    RECORDING = auto()
    COMPLETED = auto()


@dataclass(frozen=True, slots=True)
class Session:
    """A recording from start to stop.

    Attributes:
        id: Unique session identifier
        technique: Technique being practised
        profile: Technique profile snapshot taken at start
        start_time: Start time in epoch milliseconds
        end_time: Stop time in epoch milliseconds, None while recording
        duration: Session duration in milliseconds
        samples: Motion samples in arrival order
        observations: Marker observations in arrival order
        metrics: Per-sample metrics in arrival order
        final_score: Weighted final score [0, 100]
        grade: Letter grade for the final score
    """

    id: str
    technique: Technique
    profile: TechniqueProfile
    start_time: float
    end_time: float | None = None
    duration: float = 0.0
    samples: tuple[MotionSample, ...] = field(default_factory=tuple)
    observations: tuple[MarkerObservation, ...] = field(default_factory=tuple)
    metrics: tuple[InstantMetrics, ...] = field(default_factory=tuple)
    final_score: float = 0.0
    grade: Grade = Grade.F

    @property
    def is_completed(self) -> bool:
        """Whether the session has been stopped."""
        return self.end_time is not None

    @property
    def sample_count(self) -> int:
        """Number of motion samples recorded."""
        return len(self.samples)
