"""Signal filtering utilities for marker and sensor smoothing."""

from __future__ import annotations

from collections.abc import Iterable


class ExponentialSmoother2D:
    """Exponential smoothing for (x, y) position tracking.

    Each update moves the estimate a fixed fraction of the way towards
    the new measurement: ``prev + factor * (new - prev)``.
    """

    def __init__(self, factor: float = 0.3) -> None:
        """Initialize smoother.

        Args:
            factor: Blend factor in (0, 1] (higher = trust measurements more)
        """
        if not 0.0 < factor <= 1.0:
            raise ValueError(f"Smoothing factor must be in (0, 1], got {factor}")

        self.factor = factor
        self._x = 0.0
        self._y = 0.0
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        """Check if the smoother holds an estimate."""
        return self._initialized

    @property
    def position(self) -> tuple[float, float] | None:
        """Current position estimate (x, y)."""
        if not self._initialized:
            return None
        return self._x, self._y

    def reset(self) -> None:
        """Reset filter state."""
        self._x = 0.0
        self._y = 0.0
        self._initialized = False

    def snap(self, x: float, y: float) -> tuple[float, float]:
        """Replace the estimate with a raw measurement.

        Args:
            x: Measured x position
            y: Measured y position

        Returns:
            The new (unsmoothed) position
        """
        self._x = x
        self._y = y
        self._initialized = True
        return self._x, self._y

    def update(self, x: float, y: float) -> tuple[float, float]:
        """Blend a new measurement into the estimate.

        Args:
            x: Measured x position
            y: Measured y position

        Returns:
            Smoothed (x, y) position
        """
        if not self._initialized:
            return self.snap(x, y)

        self._x += self.factor * (x - self._x)
        self._y += self.factor * (y - self._y)
        return self._x, self._y


class ScalarKalmanFilter:
    """One-dimensional Kalman filter with a constant-value model."""

    def __init__(
        self,
        process_noise: float = 0.1,
        measurement_noise: float = 1.0,
    ) -> None:
        """Initialize Kalman filter.

        Args:
            process_noise: Process noise variance (higher = trust measurements more)
            measurement_noise: Measurement noise variance (higher = trust predictions more)
        """
        self.process_noise = process_noise
        self.measurement_noise = measurement_noise
        self.estimate = 0.0
        self.error = 1.0
        self._initialized = False

    def reset(self) -> None:
        """Reset filter state."""
        self.estimate = 0.0
        self.error = 1.0
        self._initialized = False

    def update(self, measurement: float) -> float:
        """Update state with new measurement.

        Args:
            measurement: Raw measured value

        Returns:
            Filtered value
        """
        if not self._initialized:
            self.estimate = measurement
            self._initialized = True

        # Predict
        prediction = self.estimate
        prediction_error = self.error + self.process_noise

        # Update
        gain = prediction_error / (prediction_error + self.measurement_noise)
        self.estimate = prediction + gain * (measurement - prediction)
        self.error = (1 - gain) * prediction_error

        return self.estimate


def apply_kalman_filter(
    measurements: Iterable[float],
    process_noise: float = 0.1,
    measurement_noise: float = 1.0,
) -> list[float]:
    """Filter a whole series of measurements.

    Args:
        measurements: Raw values in time order
        process_noise: Process noise variance
        measurement_noise: Measurement noise variance

    Returns:
        Filtered values, one per measurement
    """
    kf = ScalarKalmanFilter(process_noise, measurement_noise)
    return [kf.update(m) for m in measurements]
