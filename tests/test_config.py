"""Tests for settings and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from weld_tracker.analysis.session import SessionAggregator
from weld_tracker.core.config import ScoringSettings, Settings, TrackerSettings
from weld_tracker.core.logging import get_logger, setup_logging


class TestSettings:
    """Tests for configuration defaults and overrides."""

    def test_defaults(self) -> None:
        """Defaults match the documented constants."""
        settings = Settings()

        assert settings.detector.gradient_threshold == 100.0
        assert settings.detector.max_corner_candidates == 24
        assert settings.tracker.jump_threshold_px == 50.0
        assert settings.tracker.smoothing_factor == 0.3
        assert settings.scoring.angle_penalty == 2.0
        assert settings.scoring.history_window is None

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Sections read their prefixed environment variables."""
        monkeypatch.setenv("TRACKER_JUMP_THRESHOLD_PX", "80")
        monkeypatch.setenv("SCORING_HISTORY_WINDOW", "30")

        assert TrackerSettings().jump_threshold_px == 80.0
        assert ScoringSettings().history_window == 30

    def test_invalid_history_window(self) -> None:
        """History windows must be positive."""
        with pytest.raises(ValidationError):
            ScoringSettings(history_window=0)

    def test_history_window_applied(self) -> None:
        """The aggregator's rolling history honours the window."""
        aggregator = SessionAggregator(ScoringSettings(history_window=5))
        assert aggregator._history.distances.maxlen == 5


class TestLogging:
    """Tests for logger configuration."""

    def test_namespaced_loggers(self) -> None:
        """Module loggers live under the package logger."""
        assert get_logger("weld_tracker.vision.tracker").name == "weld_tracker.vision.tracker"

    def test_setup_sets_level(self) -> None:
        """setup_logging applies the requested level."""
        setup_logging("DEBUG")
        assert logging.getLogger("weld_tracker").level == logging.DEBUG
        setup_logging("INFO")

    def test_third_party_loggers_quieted(self) -> None:
        """Library loggers are capped at WARNING even in debug runs."""
        setup_logging("DEBUG")

        assert logging.getLogger("cv2").level == logging.WARNING
        assert logging.getLogger("numpy").level == logging.WARNING
        setup_logging("INFO")

    def test_custom_quiet_loggers(self) -> None:
        """Callers can choose which loggers to quiet."""
        setup_logging("INFO", quiet_loggers=["weld_tracker_test_dependency"])

        assert logging.getLogger("weld_tracker_test_dependency").level == logging.WARNING

    def test_log_file(self, tmp_path: Path) -> None:
        """A log file gets its own handler, creating parent directories."""
        log_file = tmp_path / "logs" / "weld.log"
        setup_logging("INFO", str(log_file))

        handlers = logging.getLogger("weld_tracker").handlers
        assert log_file.parent.is_dir()
        assert any(isinstance(h, logging.FileHandler) for h in handlers)

        for handler in handlers:
            handler.close()
        setup_logging("INFO")

    def test_rejected_stop_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Ignored calls leave a warning behind."""
        aggregator = SessionAggregator()
        with caplog.at_level(logging.WARNING):
            aggregator.stop()

        assert any("no active session" in r.getMessage() for r in caplog.records)
