"""Pytest fixtures for Weld Tracker tests."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pytest

from weld_tracker.analysis.profiles import get_profile
from weld_tracker.core.config import DetectorSettings, ScoringSettings, TrackerSettings
from weld_tracker.core.types import (
    AngularRate,
    MarkerObservation,
    MotionSample,
    PixelBuffer,
    Technique,
    TechniqueProfile,
    Vector3,
)

FRAME_WIDTH = 640
FRAME_HEIGHT = 480

# Black square drawn by square_frame, inclusive pixel bounds
SQUARE_LEFT, SQUARE_TOP = 300, 220
SQUARE_RIGHT, SQUARE_BOTTOM = 349, 269


def make_sample(
    timestamp: float,
    beta: float | None = 75.0,
    acceleration: tuple[float, float, float] = (0.0, 0.0, 9.8),
) -> MotionSample:
    """Build a motion sample with the given tilt."""
    return MotionSample(
        timestamp=timestamp,
        acceleration=Vector3(*acceleration),
        rotation=AngularRate(alpha=0.0, beta=beta, gamma=0.0) if beta is not None else None,
    )


def make_observation(
    timestamp: float,
    x: float = 320.0,
    y: float = 240.0,
    distance: float = 12.0,
    confidence: float = 0.9,
) -> MarkerObservation:
    """Build a marker observation at a given position and standoff."""
    return MarkerObservation(
        position=Vector3(x=x, y=y, z=distance),
        size=50.0,
        confidence=confidence,
        timestamp=timestamp,
    )


def blank_rgba(width: int = FRAME_WIDTH, height: int = FRAME_HEIGHT) -> np.ndarray:
    """Uniformly white, opaque RGBA frame."""
    return np.full((height, width, 4), 255, dtype=np.uint8)


def draw_square(frame: np.ndarray, left: int, top: int, right: int, bottom: int) -> None:
    """Paint a black filled square (inclusive bounds) in place."""
    frame[top : bottom + 1, left : right + 1, :3] = 0


@pytest.fixture
def detector_settings() -> DetectorSettings:
    """Default detector settings."""
    return DetectorSettings()


@pytest.fixture
def tracker_settings() -> TrackerSettings:
    """Default tracker settings."""
    return TrackerSettings()


@pytest.fixture
def scoring_settings() -> ScoringSettings:
    """Default scoring settings."""
    return ScoringSettings()


@pytest.fixture
def mig_profile() -> TechniqueProfile:
    """MIG profile: angle 70-80, distance 10-15, speed 5-15."""
    return get_profile(Technique.MIG)


@pytest.fixture
def blank_frame() -> PixelBuffer:
    """Frame with no gradients at all."""
    return PixelBuffer(FRAME_WIDTH, FRAME_HEIGHT, blank_rgba().tobytes())


def make_square_frame(dx: int = 0, dy: int = 0) -> PixelBuffer:
    """Frame with the 50px black square shifted by (dx, dy) pixels."""
    frame = blank_rgba()
    draw_square(frame, SQUARE_LEFT + dx, SQUARE_TOP + dy, SQUARE_RIGHT + dx, SQUARE_BOTTOM + dy)
    return PixelBuffer(FRAME_WIDTH, FRAME_HEIGHT, frame.tobytes())


@pytest.fixture
def square_frame() -> PixelBuffer:
    """Frame with one 50px black square near the center."""
    return make_square_frame()


@pytest.fixture
def square_frame_factory() -> Callable[..., PixelBuffer]:
    """Factory for frames with a shifted square (see make_square_frame)."""
    return make_square_frame


@pytest.fixture
def fake_clock() -> Callable[[], float]:
    """Wall clock that advances one second per call, starting at 1.7e12 ms."""
    state = {"now": 1_700_000_000_000.0}

    def clock() -> float:
        state["now"] += 1000.0
        return state["now"]

    return clock


@pytest.fixture
def ideal_mig_stream() -> list[tuple[MotionSample, MarkerObservation]]:
    """Twenty samples inside every MIG envelope.

    Angle 75, distance 12, the marker travels 1 unit per 100 ms
    (speed 10), and acceleration never changes.
    """
    stream = []
    for i in range(20):
        t = 1000.0 + i * 100.0
        stream.append((make_sample(t), make_observation(t, x=300.0 + i)))
    return stream


@pytest.fixture
def sample_factory() -> Callable[..., MotionSample]:
    """Factory for motion samples (see make_sample)."""
    return make_sample


@pytest.fixture
def observation_factory() -> Callable[..., MarkerObservation]:
    """Factory for marker observations (see make_observation)."""
    return make_observation
