"""Technique profile registry and best-effort technique classification.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

from weld_tracker.core.exceptions import UnknownTechniqueError
from weld_tracker.core.types import (
    Envelope,
    MarkerObservation,
    MotionSample,
    ScoringWeights,
    Technique,
    TechniqueProfile,
)

_DEFAULT_WEIGHTS = ScoringWeights(angle=40, distance=30, speed=20, smoothness=10)

TECHNIQUE_PROFILES: Mapping[Technique, TechniqueProfile] = MappingProxyType(
    {
        Technique.MIG: TechniqueProfile(
            technique=Technique.MIG,
            angle=Envelope(70, 80),
            distance=Envelope(10, 15),
            speed=Envelope(5, 15),
            weights=_DEFAULT_WEIGHTS,
        ),
        Technique.TIG: TechniqueProfile(
            technique=Technique.TIG,
            angle=Envelope(60, 75),
            distance=Envelope(2, 5),
            speed=Envelope(3, 8),
            weights=_DEFAULT_WEIGHTS,
        ),
        Technique.ELECTRODO: TechniqueProfile(
            technique=Technique.ELECTRODO,
            angle=Envelope(60, 80),
            distance=Envelope(5, 12),
            speed=Envelope(8, 20),
            weights=_DEFAULT_WEIGHTS,
        ),
    }
)

DEFAULT_TECHNIQUE = Technique.MIG

# Classifier thresholds
CLOSE_RANGE_DISTANCE = 5.0
ERRATIC_ACCELERATION = 15.0


def get_profile(technique: Technique | str) -> TechniqueProfile:
    """Look up the profile for a technique.

    Args:
        technique: Technique enum member or its identifier string

    Returns:
        The registered TechniqueProfile

    Raises:
        UnknownTechniqueError: If the technique is not registered
    """
    try:
        key = Technique(technique)
    except ValueError as e:
        raise UnknownTechniqueError(technique) from e

    profile = TECHNIQUE_PROFILES.get(key)
    if profile is None:
        raise UnknownTechniqueError(technique)
    return profile


def classify_technique(
    samples: Sequence[MotionSample],
    observations: Sequence[MarkerObservation],
    min_samples: int = 10,
) -> Technique:
    """Guess the technique from movement characteristics.

    TIG is worked very close to the piece; stick electrode work shows
    more erratic movement. Anything else, including too little data,
    falls back to MIG.

    Args:
        samples: Recent motion samples
        observations: Recent marker observations
        min_samples: Samples required before classifying

    Returns:
        The most likely technique (never raises)
    """
    if len(samples) < min_samples:
        return DEFAULT_TECHNIQUE

    if observations:
        avg_distance = sum(abs(o.position.z) for o in observations) / len(observations)
        if avg_distance < CLOSE_RANGE_DISTANCE:
            return Technique.TIG

    avg_acceleration = sum(s.acceleration.magnitude for s in samples) / len(samples)
    if avg_acceleration > ERRATIC_ACCELERATION:
        return Technique.ELECTRODO

    return DEFAULT_TECHNIQUE
