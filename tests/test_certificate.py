"""Tests for certificate validation codes."""

from __future__ import annotations

import random
from collections.abc import Callable
from datetime import date

import pytest

from weld_tracker.analysis.session import SessionAggregator
from weld_tracker.core.exceptions import SessionStateError, ValidationCodeError
from weld_tracker.core.types import Grade, MarkerObservation, MotionSample, Technique
from weld_tracker.reporting.certificate import (
    SCORE_BUCKETS,
    build_certificate,
    generate_validation_code,
    grade_description,
    is_certificate_expired,
    is_valid_code_format,
    parse_validation_code,
    score_bucket,
    technique_code,
    user_hash,
    validate_certificate,
)

ISSUED = date(2024, 5, 1)


class TestCodeGeneration:
    """Tests for building validation codes."""

    def test_format(self) -> None:
        """Generated codes match the published pattern."""
        code = generate_validation_code("Ana Ruiz", "MIG", 88.0, ISSUED, random.Random(1))

        assert is_valid_code_format(code)
        assert code.startswith("WELD-")
        assert "-20240501-" in code

    def test_deterministic_with_seeded_rng(self) -> None:
        """The same inputs and seed give the same code."""
        a = generate_validation_code("Ana", "TIG", 72.0, ISSUED, random.Random(7))
        b = generate_validation_code("Ana", "TIG", 72.0, ISSUED, random.Random(7))

        assert a == b

    def test_user_hash_is_four_characters(self) -> None:
        """Short and empty names are padded."""
        assert user_hash("") == "0000"
        assert len(user_hash("a")) == 4
        assert user_hash("Ana") == user_hash("Ana")

    def test_technique_codes(self) -> None:
        """Each technique has its own letter; unknown ones use U."""
        assert technique_code(Technique.MIG) == "M"
        assert technique_code("TIG") == "T"
        assert technique_code("ELECTRODO") == "E"
        assert technique_code("PLASMA") == "U"

    def test_unknown_technique_still_parses(self) -> None:
        """Codes for unknown techniques are well-formed with no technique."""
        code = generate_validation_code("Ana", "PLASMA", 50.0, ISSUED, random.Random(0))

        assert parse_validation_code(code).technique is None


class TestScoreBuckets:
    """Tests for score bucketing."""

    @pytest.mark.parametrize(
        ("score", "code"),
        [
            (100.0, "S"),
            (95.0, "S"),
            (94.9, "A"),
            (90.0, "A"),
            (85.0, "B"),
            (70.0, "C"),
            (65.0, "D"),
            (59.9, "F"),
            (0.0, "F"),
            (-5.0, "F"),
            (120.0, "S"),
        ],
    )
    def test_bucket_for_score(self, score: float, code: str) -> None:
        """Lower bounds are inclusive; out-of-range scores clamp."""
        assert score_bucket(score).code == code

    def test_buckets_cover_range(self) -> None:
        """Buckets tile [0, 100] without gaps."""
        edges = sorted((b.low, b.high) for b in SCORE_BUCKETS)

        assert edges[0][0] == 0
        assert edges[-1][1] == 100
        for (_, high), (low, _) in zip(edges, edges[1:]):
            assert high == low


class TestParsing:
    """Tests for reading codes back."""

    @pytest.mark.parametrize("technique", list(Technique))
    @pytest.mark.parametrize("score", [12.0, 64.0, 77.5, 88.0, 93.0, 99.0])
    def test_recovers_technique_and_score(self, technique: Technique, score: float) -> None:
        """Technique is exact; score is within its bucket."""
        code = generate_validation_code("Ana", technique, score, ISSUED, random.Random(3))

        parsed = parse_validation_code(code)

        assert parsed.technique == technique
        assert parsed.bucket.contains(score)
        assert abs(parsed.score - score) <= parsed.bucket.width
        assert parsed.issued == ISSUED
        assert parsed.user_hash == user_hash("Ana")

    @pytest.mark.parametrize(
        "code",
        [
            "",
            "WELD-ABCD",
            "WELD-ABCDMA-20240501-XYZ",
            "WELD-abcdMA-20240501-WXYZ",
            "WELD-ABCDXA-20240501-WXYZ",
            "WELD-ABCDMZ-20240501-WXYZ",
            "CERT-ABCDMA-20240501-WXYZ",
        ],
    )
    def test_malformed(self, code: str) -> None:
        """Codes that do not match the pattern are rejected."""
        assert not is_valid_code_format(code)
        with pytest.raises(ValidationCodeError):
            parse_validation_code(code)

    def test_impossible_date(self) -> None:
        """A well-shaped code with a bad date is rejected."""
        with pytest.raises(ValidationCodeError):
            parse_validation_code("WELD-ABCDMA-20241340-WXYZ")


class TestValidation:
    """Tests for checking codes against certificate data."""

    @pytest.fixture
    def code(self) -> str:
        """A MIG code for a score of 88."""
        return generate_validation_code("Ana", "MIG", 88.0, ISSUED, random.Random(5))

    def test_matching_data(self, code: str) -> None:
        """Matching technique and score validate."""
        assert validate_certificate(code, "MIG", 88.0, today=date(2024, 6, 1))

    def test_format_only(self, code: str) -> None:
        """With no expectations, only shape and date are checked."""
        assert validate_certificate(code, today=date(2024, 6, 1))

    def test_wrong_technique(self, code: str) -> None:
        """A different technique fails."""
        assert not validate_certificate(code, Technique.TIG, 88.0, today=date(2024, 6, 1))

    def test_score_too_far(self, code: str) -> None:
        """Scores more than 10 points from the bucket fail."""
        assert not validate_certificate(code, "MIG", 60.0, today=date(2024, 6, 1))

    def test_far_future_date(self, code: str) -> None:
        """Codes issued more than a year ahead fail."""
        assert not validate_certificate(code, today=date(2022, 1, 1))

    def test_garbage(self) -> None:
        """Malformed codes fail without raising."""
        assert not validate_certificate("not a code")


class TestCertificate:
    """Tests for issuing certificates."""

    def test_build_from_completed_session(
        self,
        fake_clock: Callable[[], float],
        ideal_mig_stream: list[tuple[MotionSample, MarkerObservation]],
    ) -> None:
        """Certificates carry the session result and a matching code."""
        aggregator = SessionAggregator(clock=fake_clock)
        aggregator.start("MIG")
        for sample, observation in ideal_mig_stream:
            aggregator.update(sample, observation)
        session = aggregator.stop()
        assert session is not None

        certificate = build_certificate(
            session, "Ana", issued_ms=1_714_521_600_000.0, rng=random.Random(2)
        )

        assert certificate.session_id == session.id
        assert certificate.id == f"cert_{session.id}"
        assert certificate.grade == Grade.A
        assert certificate.technique == Technique.MIG
        assert certificate.score == pytest.approx(100.0)
        assert "-20240501-" in certificate.validation_code
        assert validate_certificate(
            certificate.validation_code, "MIG", session.final_score, today=ISSUED
        )

    def test_rejects_unfinished_session(self, fake_clock: Callable[[], float]) -> None:
        """Sessions still recording cannot be certified."""
        aggregator = SessionAggregator(clock=fake_clock)
        session = aggregator.start("MIG")

        with pytest.raises(SessionStateError):
            build_certificate(session, "Ana")

    def test_expiry(self) -> None:
        """Certificates expire after their validity period."""
        day = 24 * 60 * 60 * 1000

        assert not is_certificate_expired(0.0, now_ms=364 * day)
        assert is_certificate_expired(0.0, now_ms=366 * day)
        assert is_certificate_expired(0.0, expiry_days=30, now_ms=31 * day)

    def test_grade_description(self) -> None:
        """Every grade has a description; unknown input does not raise."""
        for grade in Grade:
            assert grade_description(grade)
        assert grade_description("Z") == "Ungraded"
