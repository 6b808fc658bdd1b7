"""Session serialization for storage and sync collaborators.

Produces plain JSON-compatible dictionaries; writing them anywhere is the
caller's job.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from weld_tracker.analysis.metrics import summarize_metrics
from weld_tracker.core.exceptions import ConfigurationError, RecordFormatError
from weld_tracker.core.types import (
    AngularRate,
    Envelope,
    Grade,
    InstantMetrics,
    MarkerObservation,
    MotionSample,
    Orientation,
    ScoringWeights,
    Session,
    Technique,
    TechniqueProfile,
    Vector3,
)

# Column order of the remote session sheet
SESSION_RECORD_FIELDS: tuple[str, ...] = (
    "id",
    "userId",
    "userName",
    "technique",
    "startTime",
    "endTime",
    "duration",
    "finalScore",
    "grade",
    "avgAngleAccuracy",
    "avgDistanceStability",
    "avgSpeedConsistency",
    "avgSmoothness",
    "totalDataPoints",
    "createdAt",
    "updatedAt",
)


def to_iso8601(epoch_ms: float) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC string (``...Z``)."""
    moment = datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_session_record(
    session: Session,
    user_id: str | None = None,
    user_name: str | None = None,
    now: float | None = None,
) -> dict[str, Any]:
    """Flatten a session into the 16-field sync record.

    Args:
        session: Session to flatten (normally completed)
        user_id: Owner id (defaults to "anonymous")
        user_name: Owner display name (defaults to "Anonymous")
        now: Audit timestamp in epoch ms (defaults to the wall clock)

    Returns:
        Dictionary keyed by SESSION_RECORD_FIELDS, in column order
    """
    audit = to_iso8601(time.time() * 1000.0 if now is None else now)
    averages = summarize_metrics(session.metrics)

    return {
        "id": session.id,
        "userId": user_id or "anonymous",
        "userName": user_name or "Anonymous",
        "technique": session.technique.value,
        "startTime": to_iso8601(session.start_time),
        "endTime": to_iso8601(session.end_time) if session.end_time is not None else "",
        "duration": session.duration,
        "finalScore": session.final_score,
        "grade": session.grade.value,
        "avgAngleAccuracy": round(averages.angle, 2),
        "avgDistanceStability": round(averages.distance, 2),
        "avgSpeedConsistency": round(averages.speed, 2),
        "avgSmoothness": round(averages.smoothness, 2),
        "totalDataPoints": session.sample_count,
        "createdAt": audit,
        "updatedAt": audit,
    }


def _vector(v: Vector3) -> dict[str, float]:
    return {"x": v.x, "y": v.y, "z": v.z}


def _sample_to_dict(sample: MotionSample) -> dict[str, Any]:
    rotation = sample.rotation
    return {
        "timestamp": sample.timestamp,
        "acceleration": _vector(sample.acceleration),
        "rotation": (
            {"alpha": rotation.alpha, "beta": rotation.beta, "gamma": rotation.gamma}
            if rotation is not None
            else None
        ),
        "magnetic_field": (
            _vector(sample.magnetic_field) if sample.magnetic_field is not None else None
        ),
    }


def _observation_to_dict(observation: MarkerObservation) -> dict[str, Any]:
    orientation = observation.orientation
    return {
        "position": _vector(observation.position),
        "size": observation.size,
        "confidence": observation.confidence,
        "timestamp": observation.timestamp,
        "orientation": (
            {"pitch": orientation.pitch, "yaw": orientation.yaw, "roll": orientation.roll}
            if orientation is not None
            else None
        ),
    }


def _metrics_to_dict(m: InstantMetrics) -> dict[str, Any]:
    return {
        "timestamp": m.timestamp,
        "angle": m.angle,
        "distance": m.distance,
        "speed": m.speed,
        "angle_score": m.angle_score,
        "distance_score": m.distance_score,
        "speed_score": m.speed_score,
        "smoothness_score": m.smoothness_score,
        "stability_score": m.stability_score,
        "quality_score": m.quality_score,
        "in_range": m.in_range,
    }


def _profile_to_dict(profile: TechniqueProfile) -> dict[str, Any]:
    w = profile.weights
    return {
        "technique": profile.technique.value,
        "angle": {"min": profile.angle.min, "max": profile.angle.max},
        "distance": {"min": profile.distance.min, "max": profile.distance.max},
        "speed": {"min": profile.speed.min, "max": profile.speed.max},
        "weights": {
            "angle": w.angle,
            "distance": w.distance,
            "speed": w.speed,
            "smoothness": w.smoothness,
        },
    }


def session_to_dict(session: Session) -> dict[str, Any]:
    """Serialize every field of a session to JSON-compatible data."""
    return {
        "id": session.id,
        "technique": session.technique.value,
        "profile": _profile_to_dict(session.profile),
        "start_time": session.start_time,
        "end_time": session.end_time,
        "duration": session.duration,
        "samples": [_sample_to_dict(s) for s in session.samples],
        "observations": [_observation_to_dict(o) for o in session.observations],
        "metrics": [_metrics_to_dict(m) for m in session.metrics],
        "final_score": session.final_score,
        "grade": session.grade.value,
    }


def _read_vector(data: Mapping[str, Any]) -> Vector3:
    return Vector3(x=float(data["x"]), y=float(data["y"]), z=float(data["z"]))


def sample_from_dict(data: Mapping[str, Any]) -> MotionSample:
    """Decode a motion sample (raises KeyError/TypeError/ValueError on bad input)."""
    rotation = data.get("rotation")
    magnetic = data.get("magnetic_field")
    return MotionSample(
        timestamp=float(data["timestamp"]),
        acceleration=_read_vector(data["acceleration"]),
        rotation=(
            AngularRate(
                alpha=float(rotation["alpha"]),
                beta=float(rotation["beta"]),
                gamma=float(rotation["gamma"]),
            )
            if rotation is not None
            else None
        ),
        magnetic_field=_read_vector(magnetic) if magnetic is not None else None,
    )


def observation_from_dict(data: Mapping[str, Any]) -> MarkerObservation:
    """Decode a marker observation."""
    orientation = data.get("orientation")
    return MarkerObservation(
        position=_read_vector(data["position"]),
        size=float(data["size"]),
        confidence=float(data["confidence"]),
        timestamp=float(data["timestamp"]),
        orientation=(
            Orientation(
                pitch=float(orientation["pitch"]),
                yaw=float(orientation["yaw"]),
                roll=float(orientation["roll"]),
            )
            if orientation is not None
            else None
        ),
    )


def _read_metrics(data: Mapping[str, Any]) -> InstantMetrics:
    return InstantMetrics(
        timestamp=float(data["timestamp"]),
        angle=float(data["angle"]),
        distance=float(data["distance"]),
        speed=float(data["speed"]),
        angle_score=float(data["angle_score"]),
        distance_score=float(data["distance_score"]),
        speed_score=float(data["speed_score"]),
        smoothness_score=float(data["smoothness_score"]),
        stability_score=float(data["stability_score"]),
        quality_score=float(data["quality_score"]),
        in_range=bool(data["in_range"]),
    )


def _read_envelope(data: Mapping[str, Any]) -> Envelope:
    return Envelope(min=float(data["min"]), max=float(data["max"]))


def _read_profile(data: Mapping[str, Any]) -> TechniqueProfile:
    w = data["weights"]
    return TechniqueProfile(
        technique=Technique(data["technique"]),
        angle=_read_envelope(data["angle"]),
        distance=_read_envelope(data["distance"]),
        speed=_read_envelope(data["speed"]),
        weights=ScoringWeights(
            angle=float(w["angle"]),
            distance=float(w["distance"]),
            speed=float(w["speed"]),
            smoothness=float(w["smoothness"]),
        ),
    )


def session_from_dict(data: Mapping[str, Any]) -> Session:
    """Rebuild a session serialized by session_to_dict.

    Raises:
        RecordFormatError: If a field is missing or has the wrong type
    """
    try:
        end_time = data.get("end_time")
        return Session(
            id=str(data["id"]),
            technique=Technique(data["technique"]),
            profile=_read_profile(data["profile"]),
            start_time=float(data["start_time"]),
            end_time=float(end_time) if end_time is not None else None,
            duration=float(data["duration"]),
            samples=tuple(sample_from_dict(s) for s in data["samples"]),
            observations=tuple(observation_from_dict(o) for o in data["observations"]),
            metrics=tuple(_read_metrics(m) for m in data["metrics"]),
            final_score=float(data["final_score"]),
            grade=Grade(data["grade"]),
        )
    except (KeyError, TypeError, ValueError, ConfigurationError) as e:
        raise RecordFormatError(f"Failed to read session: {e}") from e
