#!/usr/bin/env python3
"""Replay a recorded welding session through the evaluation engine.

Reads a JSON recording of motion samples and marker observations,
scores it as a live session would be scored, and writes the results.

Recording format:
    {
        "technique": "MIG",            # optional, classified if absent
        "samples": [MotionSample...],
        "observations": [MarkerObservation...]
    }
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from weld_tracker.analysis.feedback import (
    calculate_energy_expenditure,
    generate_improvement_suggestions,
)
from weld_tracker.analysis.metrics import summarize_metrics
from weld_tracker.analysis.profiles import classify_technique
from weld_tracker.analysis.session import SessionAggregator
from weld_tracker.core.config import get_settings
from weld_tracker.core.exceptions import SessionStateError, WeldTrackerError
from weld_tracker.core.logging import get_logger, setup_logging
from weld_tracker.core.types import MarkerObservation, MotionSample, Session
from weld_tracker.pipeline.processor import pair_recorded_observations
from weld_tracker.reporting.certificate import build_certificate, grade_description
from weld_tracker.reporting.records import (
    format_session_record,
    observation_from_dict,
    sample_from_dict,
    session_to_dict,
)
from weld_tracker.vision.filters import apply_kalman_filter

logger = get_logger(__name__)


def load_recording(path: Path) -> tuple[str | None, list[MotionSample], list[MarkerObservation]]:
    """Load a recording file.

    Args:
        path: JSON recording path

    Returns:
        Tuple of (technique or None, samples, observations), both time-ordered
    """
    with open(path) as f:
        data: dict[str, Any] = json.load(f)

    samples = sorted(
        (sample_from_dict(s) for s in data.get("samples", [])),
        key=lambda s: s.timestamp,
    )
    observations = sorted(
        (observation_from_dict(o) for o in data.get("observations", [])),
        key=lambda o: o.timestamp,
    )
    return data.get("technique"), samples, observations


def replay(
    technique: str,
    samples: list[MotionSample],
    observations: list[MarkerObservation],
    max_observation_age_ms: float,
) -> Session:
    """Feed a recording through a fresh aggregator.

    Each sample is paired with the latest observation at or before it,
    provided that observation is recent enough. An observation shared by
    several samples is measured and stored once.

    Args:
        technique: Technique identifier
        samples: Motion samples in time order
        observations: Marker observations in time order
        max_observation_age_ms: Oldest observation that may be paired

    Returns:
        The completed session
    """
    # Session times follow the recording rather than the wall clock
    now = samples[0].timestamp if samples else 0.0
    aggregator = SessionAggregator(get_settings().scoring, clock=lambda: now)
    aggregator.start(technique)

    for sample, paired in pair_recorded_observations(
        samples, observations, max_observation_age_ms
    ):
        now = sample.timestamp
        aggregator.update(sample, paired)

    session = aggregator.stop()
    if session is None:
        raise SessionStateError("Replay finished without a session")
    return session


def report(session: Session) -> None:
    """Log a human-readable session summary."""
    averages = summarize_metrics(session.metrics)
    filtered_angles = apply_kalman_filter(m.angle for m in session.metrics)

    logger.info("Session %s (%s)", session.id, session.technique.value)
    logger.info(
        "  Duration:   %.1f s over %d samples", session.duration / 1000, session.sample_count
    )
    logger.info(
        "  Score:      %.1f (%s: %s)",
        session.final_score,
        session.grade.value,
        grade_description(session.grade),
    )
    logger.info(
        "  Averages:   angle %.1f | distance %.1f | speed %.1f | smoothness %.1f",
        averages.angle,
        averages.distance,
        averages.speed,
        averages.smoothness,
    )
    if filtered_angles:
        logger.info(
            "  Angle:      %.1f - %.1f deg (filtered)", min(filtered_angles), max(filtered_angles)
        )
    logger.info(
        "  Energy:     %.4f",
        calculate_energy_expenditure(session.samples, session.duration),
    )
    for suggestion in generate_improvement_suggestions(averages):
        logger.info("  * %s", suggestion)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Replay a recorded welding session")
    parser.add_argument("recording", type=Path, help="JSON recording to replay")
    parser.add_argument("--technique", help="Override the technique (MIG, TIG, ELECTRODO)")
    parser.add_argument("--output", type=Path, help="Write the full session as JSON")
    parser.add_argument("--record", type=Path, help="Write the flattened sync record as JSON")
    parser.add_argument("--certificate", metavar="NAME", help="Issue a certificate for NAME")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging("DEBUG" if args.verbose else settings.logging.level, settings.logging.file)

    try:
        recorded_technique, samples, observations = load_recording(args.recording)
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.error("Could not read recording %s: %s", args.recording, e)
        return 1

    technique = args.technique or recorded_technique
    if technique is None:
        technique = classify_technique(
            samples, observations, settings.scoring.classifier_min_samples
        ).value
        logger.info("Classified technique: %s", technique)

    try:
        session = replay(technique, samples, observations, settings.tracker.max_observation_age_ms)
    except WeldTrackerError as e:
        logger.error("Replay failed: %s", e)
        return 1

    report(session)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w") as f:
            json.dump(session_to_dict(session), f, indent=2)
        logger.info("Saved session to %s", args.output)

    if args.record:
        args.record.parent.mkdir(parents=True, exist_ok=True)
        with open(args.record, "w") as f:
            json.dump(format_session_record(session, user_name=args.certificate), f, indent=2)
        logger.info("Saved sync record to %s", args.record)

    if args.certificate:
        certificate = build_certificate(session, args.certificate)
        logger.info("Certificate validation code: %s", certificate.validation_code)

    return 0


if __name__ == "__main__":
    sys.exit(main())
