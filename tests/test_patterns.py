"""Tests for square pattern detection."""

from __future__ import annotations

import numpy as np
import pytest

from weld_tracker.core.config import DetectorSettings
from weld_tracker.core.types import Corner, PixelBuffer
from weld_tracker.vision.patterns import (
    PatternDetector,
    detect_square_patterns,
    find_corner_candidates,
    quad_center,
    quad_size,
    to_grayscale,
)


def _square(left: float, top: float, side: float) -> tuple[Corner, Corner, Corner, Corner]:
    return (
        Corner(left, top),
        Corner(left + side, top),
        Corner(left, top + side),
        Corner(left + side, top + side),
    )


class TestGrayscale:
    """Tests for RGBA to luminance conversion."""

    def test_white_and_black(self) -> None:
        """Pure white and black map to 255 and 0."""
        rgba = np.zeros((2, 2, 4), dtype=np.uint8)
        rgba[0, 0] = (255, 255, 255, 255)

        gray = to_grayscale(rgba)

        assert gray.shape == (2, 2)
        assert gray[0, 0] == 255
        assert gray[1, 1] == 0

    def test_accepts_read_only_buffer(self) -> None:
        """Frames backed by immutable bytes are converted."""
        data = bytes([128, 128, 128, 255] * 9)
        rgba = np.frombuffer(data, dtype=np.uint8).reshape(3, 3, 4)

        gray = to_grayscale(rgba)

        assert int(gray[1, 1]) == pytest.approx(128, abs=1)


class TestCornerCandidates:
    """Tests for the neighbourhood gradient corner finder."""

    def test_uniform_image_has_no_candidates(self) -> None:
        """No gradient means no corners."""
        gray = np.full((50, 50), 200, dtype=np.uint8)

        xs, ys, strengths = find_corner_candidates(gray, 100)

        assert len(xs) == len(ys) == len(strengths) == 0

    def test_square_yields_its_four_corners(self) -> None:
        """Only the convex corners of a filled square exceed the threshold."""
        gray = np.full((40, 40), 255, dtype=np.uint8)
        gray[10:30, 10:30] = 0

        xs, ys, _ = find_corner_candidates(gray, 100)

        assert sorted(zip(xs.tolist(), ys.tolist())) == [(10, 10), (10, 29), (29, 10), (29, 29)]

    def test_tiny_image(self) -> None:
        """Images without interior pixels produce nothing."""
        xs, _, _ = find_corner_candidates(np.zeros((2, 2), dtype=np.uint8))
        assert len(xs) == 0


class TestSquareGeometry:
    """Tests for the square validity checks."""

    def test_accepts_square_in_any_order(self, detector_settings: DetectorSettings) -> None:
        """Corner order does not matter."""
        detector = PatternDetector(detector_settings)
        a, b, c, d = _square(100, 100, 50)

        assert detector.is_valid_square((a, b, c, d))
        assert detector.is_valid_square((d, a, c, b))

    def test_rejects_small_square(self, detector_settings: DetectorSettings) -> None:
        """Squares below the minimum side are rejected."""
        detector = PatternDetector(detector_settings)
        assert not detector.is_valid_square(_square(100, 100, 10))

    def test_rejects_elongated_rectangle(self, detector_settings: DetectorSettings) -> None:
        """A 2:1 rectangle fails the side similarity test."""
        detector = PatternDetector(detector_settings)
        rect = (Corner(0, 0), Corner(100, 0), Corner(0, 50), Corner(100, 50))

        assert not detector.is_valid_square(rect)

    def test_rejects_collinear_points(self, detector_settings: DetectorSettings) -> None:
        """Points on a line are not a square."""
        detector = PatternDetector(detector_settings)
        line = (Corner(0, 0), Corner(30, 0), Corner(60, 0), Corner(90, 0))

        assert not detector.is_valid_square(line)

    def test_center_and_size(self) -> None:
        """Center is the centroid, size the mean corner distance."""
        quad = _square(0, 0, 20)

        assert quad_center(quad) == Corner(10, 10)
        assert quad_size(quad) == pytest.approx(np.hypot(10, 10))


class TestConfidence:
    """Tests for the pattern confidence score."""

    def test_bounded(self, detector_settings: DetectorSettings) -> None:
        """Confidence stays in [0, 1] even far from the frame center."""
        detector = PatternDetector(detector_settings)

        for quad in (_square(295, 215, 50), _square(5000, 5000, 300)):
            assert 0.0 <= detector.confidence(quad) <= 1.0

    def test_prefers_centered_squares(self, detector_settings: DetectorSettings) -> None:
        """Of two equal squares, the one nearer the center scores higher."""
        detector = PatternDetector(detector_settings)

        centered = detector.confidence(_square(295, 215, 50))
        corner = detector.confidence(_square(10, 10, 50))

        assert centered > corner


class TestPatternDetector:
    """Tests for end-to-end detection on pixel buffers."""

    def test_blank_frame_yields_nothing(self, blank_frame: PixelBuffer) -> None:
        """A uniformly bright frame has no patterns and does not raise."""
        assert PatternDetector().detect(blank_frame, timestamp=0.0) == []

    def test_detects_single_square(self, square_frame: PixelBuffer) -> None:
        """One painted square is found with its geometry."""
        patterns = PatternDetector().detect(square_frame, timestamp=123.0)

        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.timestamp == 123.0
        assert pattern.center.x == pytest.approx(324.5)
        assert pattern.center.y == pytest.approx(244.5)
        assert pattern.size == pytest.approx(np.hypot(24.5, 24.5))
        assert pattern.confidence == pytest.approx(0.8006, abs=1e-3)

    def test_accepts_ndarray(self, square_frame: PixelBuffer) -> None:
        """A raw (h, w, 4) array works like a PixelBuffer."""
        frame = np.frombuffer(square_frame.data, dtype=np.uint8).reshape(480, 640, 4)

        patterns = PatternDetector().detect(frame, timestamp=0.0)

        assert len(patterns) == 1

    def test_malformed_buffer_yields_nothing(self) -> None:
        """Buffers that do not match their dimensions are ignored."""
        detector = PatternDetector()

        assert detector.detect(PixelBuffer(10, 10, b"\x00" * 5), timestamp=0.0) == []
        assert detector.detect(PixelBuffer(0, 0, b""), timestamp=0.0) == []
        assert detector.detect(np.zeros((10, 10), dtype=np.uint8), timestamp=0.0) == []

    def test_sorted_by_confidence(self) -> None:
        """Multiple squares come back best first."""
        frame = np.full((480, 640, 4), 255, dtype=np.uint8)
        frame[220:270, 300:350, :3] = 0
        frame[20:90, 20:90, :3] = 0

        patterns = PatternDetector().detect(frame, timestamp=0.0)

        assert len(patterns) >= 2
        confidences = [p.confidence for p in patterns]
        assert confidences == sorted(confidences, reverse=True)

    def test_corner_candidates_are_capped(self) -> None:
        """At most max_corner_candidates corners are combined."""
        frame = np.full((480, 640, 4), 255, dtype=np.uint8)
        for row in range(3):
            for col in range(4):
                top, left = 30 + row * 140, 30 + col * 150
                frame[top : top + 40, left : left + 40, :3] = 0

        settings = DetectorSettings(max_corner_candidates=24)
        detector = PatternDetector(settings)
        gray = to_grayscale(frame)

        assert len(find_corner_candidates(gray, settings.gradient_threshold)[0]) == 48
        assert len(detector.find_corners(gray)) == 24
        assert isinstance(detector.detect(frame, timestamp=0.0), list)

    def test_one_shot_function(self, square_frame: PixelBuffer) -> None:
        """detect_square_patterns honours the minimum size argument."""
        assert len(detect_square_patterns(square_frame, timestamp=0.0)) == 1
        assert detect_square_patterns(square_frame, min_size=60, timestamp=0.0) == []
