"""Square marker pattern detection on raw camera frames."""

from __future__ import annotations

import itertools
import math
import time
from typing import TYPE_CHECKING

import cv2
import numpy as np

from weld_tracker.core.config import DetectorSettings
from weld_tracker.core.logging import get_logger
from weld_tracker.core.types import Corner, DetectedPattern, PixelBuffer

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = get_logger(__name__)

# Normalizer for the Manhattan distance from the reference frame center
CENTER_NORMALIZER = 800.0

Quad = tuple[Corner, Corner, Corner, Corner]


def to_grayscale(rgba: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Convert an RGBA frame to luminance (0.299R + 0.587G + 0.114B).

    Args:
        rgba: ``(height, width, 4)`` uint8 array

    Returns:
        ``(height, width)`` uint8 grayscale image
    """
    if not rgba.flags.writeable or not rgba.flags.c_contiguous:
        rgba = np.array(rgba, dtype=np.uint8, copy=True)
    return cv2.cvtColor(rgba, cv2.COLOR_RGBA2GRAY)


def find_corner_candidates(
    gray: NDArray[np.uint8],
    threshold: float = 100.0,
) -> tuple[NDArray[np.intp], NDArray[np.intp], NDArray[np.float64]]:
    """Flag interior pixels whose mean gradient to their 8 neighbours is high.

    Args:
        gray: Grayscale image
        threshold: Minimum mean absolute gradient (0-255 scale)

    Returns:
        Tuple of (xs, ys, strengths) for every candidate, in raster order
    """
    height, width = gray.shape
    if height < 3 or width < 3:
        empty = np.empty(0, dtype=np.intp)
        return empty, empty, np.empty(0, dtype=np.float64)

    g = gray.astype(np.int16)
    center = g[1:-1, 1:-1]
    total = np.zeros(center.shape, dtype=np.int32)

    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            neighbour = g[1 + dy : height - 1 + dy, 1 + dx : width - 1 + dx]
            total += np.abs(center - neighbour)

    mean_gradient = total / 8.0
    ys, xs = np.nonzero(mean_gradient > threshold)
    strengths = mean_gradient[ys, xs]

    return xs + 1, ys + 1, strengths


def _sorted_pairwise_distances(points: Quad) -> list[float]:
    """All six pairwise distances in ascending order."""
    return sorted(math.dist((a.x, a.y), (b.x, b.y)) for a, b in itertools.combinations(points, 2))


def _side_statistics(distances: list[float]) -> tuple[float, float]:
    """Mean and population variance of the four shortest distances."""
    sides = distances[:4]
    avg_side = sum(sides) / 4
    variance = sum((s - avg_side) ** 2 for s in sides) / 4
    return avg_side, variance


def quad_center(points: Quad) -> Corner:
    """Centroid of four corner points."""
    return Corner(
        x=sum(p.x for p in points) / 4,
        y=sum(p.y for p in points) / 4,
    )


def quad_size(points: Quad) -> float:
    """Mean distance from the centroid to each corner."""
    center = quad_center(points)
    return sum(math.dist((p.x, p.y), (center.x, center.y)) for p in points) / 4


class PatternDetector:
    """Finds candidate square markers in RGBA pixel buffers.

    Corners are pixels with a high mean gradient against their neighbours.
    Every 4-combination of the strongest corners is tested for square
    geometry: four similar sides, two similar diagonals, and a
    diagonal/side ratio near sqrt(2).
    """

    def __init__(self, settings: DetectorSettings | None = None) -> None:
        """Initialize detector with settings.

        Args:
            settings: Detection parameters (uses defaults if None)
        """
        self.settings = settings or DetectorSettings()

    def detect(
        self,
        buffer: PixelBuffer | NDArray[np.uint8],
        timestamp: float | None = None,
    ) -> list[DetectedPattern]:
        """Detect square patterns in a frame.

        Args:
            buffer: RGBA frame, as a PixelBuffer or ``(h, w, 4)`` array
            timestamp: Frame time in ms (defaults to the monotonic clock)

        Returns:
            Detected patterns ordered by descending confidence
        """
        if timestamp is None:
            timestamp = time.monotonic() * 1000.0

        rgba = self._to_array(buffer)
        if rgba is None:
            logger.warning("Ignoring malformed pixel buffer")
            return []

        gray = to_grayscale(rgba)
        corners = self.find_corners(gray)

        if len(corners) < 4:
            return []

        patterns = [
            DetectedPattern(
                corners=quad,
                center=quad_center(quad),
                size=quad_size(quad),
                confidence=min(self.confidence(quad), 1.0),
                timestamp=timestamp,
            )
            for quad in itertools.combinations(corners, 4)
            if self.is_valid_square(quad)
        ]
        patterns.sort(key=lambda p: p.confidence, reverse=True)

        logger.debug("%d corners -> %d square patterns", len(corners), len(patterns))
        return patterns

    def find_corners(self, gray: NDArray[np.uint8]) -> list[Corner]:
        """Find the strongest corner candidates.

        Args:
            gray: Grayscale image

        Returns:
            At most ``max_corner_candidates`` corners, in raster order
        """
        xs, ys, strengths = find_corner_candidates(gray, self.settings.gradient_threshold)

        limit = self.settings.max_corner_candidates
        if len(strengths) > limit:
            strongest = np.argsort(-strengths, kind="stable")[:limit]
            keep = np.sort(strongest)
            xs, ys = xs[keep], ys[keep]

        return [Corner(x=float(x), y=float(y)) for x, y in zip(xs, ys)]

    def is_valid_square(self, points: Quad) -> bool:
        """Check if four points form a square.

        Args:
            points: Four corner candidates in any order

        Returns:
            True if the points pass every geometric test
        """
        distances = _sorted_pairwise_distances(points)
        avg_side, variance = _side_statistics(distances)

        if avg_side <= 0 or avg_side < self.settings.min_marker_size:
            return False

        side_cv = math.sqrt(variance) / avg_side
        if side_cv > self.settings.side_cv_tolerance:
            return False

        d1, d2 = distances[4], distances[5]
        avg_diagonal = (d1 + d2) / 2
        if abs(d1 - d2) / avg_diagonal > self.settings.diagonal_tolerance:
            return False

        ratio = avg_diagonal / (avg_side * math.sqrt(2))
        return self.settings.diagonal_ratio_min < ratio < self.settings.diagonal_ratio_max

    def confidence(self, points: Quad) -> float:
        """Score a square by size, closeness to frame center, and regularity.

        Args:
            points: Four corners of a valid square

        Returns:
            Confidence in [0, 1]
        """
        center = quad_center(points)
        size = quad_size(points)

        size_score = min(size / 100.0, 1.0)

        ref_cx = self.settings.reference_width / 2
        ref_cy = self.settings.reference_height / 2
        offset = abs(center.x - ref_cx) + abs(center.y - ref_cy)
        center_score = min(max(1.0 - offset / CENTER_NORMALIZER, 0.0), 1.0)

        avg_side, variance = _side_statistics(_sorted_pairwise_distances(points))
        regularity_score = max(0.0, 1.0 - variance / avg_side) if avg_side > 0 else 0.0

        score = size_score * 0.3 + center_score * 0.3 + regularity_score * 0.4
        return min(max(score, 0.0), 1.0)

    @staticmethod
    def _to_array(buffer: PixelBuffer | NDArray[np.uint8]) -> NDArray[np.uint8] | None:
        """Normalize supported frame inputs to an RGBA array."""
        if isinstance(buffer, PixelBuffer):
            return buffer.as_array()

        array = np.asarray(buffer)
        if array.ndim != 3 or array.shape[2] != 4 or array.size == 0:
            return None
        return array.astype(np.uint8, copy=False)


def detect_square_patterns(
    buffer: PixelBuffer | NDArray[np.uint8],
    threshold: float = 100.0,
    min_size: float = 20.0,
    timestamp: float | None = None,
) -> list[DetectedPattern]:
    """Pure function for one-shot pattern detection.

    Args:
        buffer: RGBA frame
        threshold: Corner gradient threshold
        min_size: Minimum average side length in pixels
        timestamp: Frame time in ms

    Returns:
        Detected patterns ordered by descending confidence
    """
    settings = DetectorSettings(gradient_threshold=threshold, min_marker_size=min_size)
    return PatternDetector(settings).detect(buffer, timestamp)
