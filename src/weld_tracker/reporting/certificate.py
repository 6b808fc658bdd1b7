"""Certificate validation codes.

A validation code encodes who, which technique, which score bucket and
when, in the form ``WELD-<hash4><tech><bucket>-<YYYYMMDD>-<rand4>``. It
is a lookup and sanity token, not a cryptographic signature.
"""

from __future__ import annotations

import random
import re
import secrets
import string
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from weld_tracker.core.exceptions import SessionStateError, ValidationCodeError
from weld_tracker.core.types import Grade, Session, Technique

CODE_PREFIX = "WELD"
CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_PATTERN = re.compile(r"^WELD-([A-Z0-9]{4})([MTEU])([SABCDF])-(\d{8})-([A-Z0-9]{4})$")

TECHNIQUE_CODES: dict[Technique, str] = {
    Technique.MIG: "M",
    Technique.TIG: "T",
    Technique.ELECTRODO: "E",
}
UNKNOWN_TECHNIQUE_CODE = "U"

MAX_SCORE_DEVIATION = 10.0
MAX_FUTURE_DAYS = 365


@dataclass(frozen=True, slots=True)
class ScoreBucket:
    """Score range encoded by one code character.

    ``low`` is inclusive; ``high`` is exclusive except for the top bucket.
    """

    code: str
    low: float
    high: float

    @property
    def midpoint(self) -> float:
        """Representative score for the bucket."""
        return (self.low + self.high) / 2

    @property
    def width(self) -> float:
        """Width of the score range."""
        return self.high - self.low

    def contains(self, score: float) -> bool:
        """Check whether a score falls in this bucket."""
        if self.high >= 100:
            return self.low <= score <= self.high
        return self.low <= score < self.high


SCORE_BUCKETS: tuple[ScoreBucket, ...] = (
    ScoreBucket("S", 95, 100),
    ScoreBucket("A", 90, 95),
    ScoreBucket("B", 80, 90),
    ScoreBucket("C", 70, 80),
    ScoreBucket("D", 60, 70),
    ScoreBucket("F", 0, 60),
)

GRADE_DESCRIPTIONS: dict[Grade, str] = {
    Grade.A: "Excellent - complete command of the technique",
    Grade.B: "Good - solid control of the parameters",
    Grade.C: "Satisfactory - competent basic technique",
    Grade.D: "Needs improvement - additional practice required",
    Grade.F: "Not competent - fundamental training required",
}


@dataclass(frozen=True, slots=True)
class ParsedValidationCode:
    """Fields recovered from a validation code."""

    user_hash: str
    technique: Technique | None
    bucket: ScoreBucket
    issued: date
    random_code: str

    @property
    def score(self) -> float:
        """Representative score (bucket midpoint)."""
        return self.bucket.midpoint


@dataclass(frozen=True, slots=True)
class CertificateData:
    """Certificate for a completed session."""

    id: str
    user_name: str
    technique: Technique
    score: float
    grade: Grade
    duration: float
    date: float
    session_id: str
    validation_code: str


def _string_hash(text: str) -> int:
    """Non-negative 32-bit rolling hash (``h * 31 + c``)."""
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(CODE_ALPHABET[rem])
    return "".join(reversed(digits))


def user_hash(user_name: str) -> str:
    """Four-character identifier derived from a user name."""
    return _to_base36(_string_hash(user_name))[:4].rjust(4, "0")


def score_bucket(score: float) -> ScoreBucket:
    """Find the bucket a score falls in (scores are clamped to [0, 100])."""
    clamped = min(max(score, 0.0), 100.0)
    for bucket in SCORE_BUCKETS:
        if bucket.contains(clamped):
            return bucket
    return SCORE_BUCKETS[-1]


def technique_code(technique: Technique | str) -> str:
    """Single-letter technique code (``U`` for unknown techniques)."""
    try:
        return TECHNIQUE_CODES[Technique(technique)]
    except (ValueError, KeyError):
        return UNKNOWN_TECHNIQUE_CODE


def generate_validation_code(
    user_name: str,
    technique: Technique | str,
    score: float,
    issued: date | None = None,
    rng: random.Random | None = None,
) -> str:
    """Create a validation code for a certificate.

    Args:
        user_name: Certificate holder
        technique: Certified technique
        score: Final session score
        issued: Issue date (defaults to today, UTC)
        rng: Random source for the trailing code (defaults to the system RNG)

    Returns:
        Validation code string
    """
    issued = issued or datetime.now(timezone.utc).date()
    rng = rng or secrets.SystemRandom()
    random_code = "".join(rng.choice(CODE_ALPHABET) for _ in range(4))

    return (
        f"{CODE_PREFIX}-{user_hash(user_name)}{technique_code(technique)}"
        f"{score_bucket(score).code}-{issued:%Y%m%d}-{random_code}"
    )


def is_valid_code_format(code: str) -> bool:
    """Check the shape of a validation code."""
    return CODE_PATTERN.match(code) is not None


def parse_validation_code(code: str) -> ParsedValidationCode:
    """Extract the encoded fields from a validation code.

    Raises:
        ValidationCodeError: If the code is malformed or its date is invalid
    """
    match = CODE_PATTERN.match(code)
    if match is None:
        raise ValidationCodeError(f"Malformed validation code: {code!r}")

    hash_part, tech, bucket_code, date_part, random_code = match.groups()

    try:
        issued = datetime.strptime(date_part, "%Y%m%d").date()
    except ValueError as e:
        raise ValidationCodeError(f"Invalid date in validation code: {date_part}") from e

    technique = next((t for t, c in TECHNIQUE_CODES.items() if c == tech), None)
    bucket = next(b for b in SCORE_BUCKETS if b.code == bucket_code)

    return ParsedValidationCode(
        user_hash=hash_part,
        technique=technique,
        bucket=bucket,
        issued=issued,
        random_code=random_code,
    )


def validate_certificate(
    code: str,
    technique: Technique | str | None = None,
    score: float | None = None,
    today: date | None = None,
) -> bool:
    """Check a validation code against expected certificate data.

    Args:
        code: Validation code to check
        technique: Expected technique, if known
        score: Expected score, if known (must be within 10 points of the bucket)
        today: Reference date (defaults to today, UTC)

    Returns:
        True if the code is well-formed and consistent with the expectations
    """
    try:
        parsed = parse_validation_code(code)
    except ValidationCodeError:
        return False

    if technique is not None and (
        parsed.technique is None or technique_code(technique) != TECHNIQUE_CODES[parsed.technique]
    ):
        return False

    if score is not None and abs(parsed.score - score) > MAX_SCORE_DEVIATION:
        return False

    today = today or datetime.now(timezone.utc).date()
    return parsed.issued <= today + timedelta(days=MAX_FUTURE_DAYS)


def is_certificate_expired(
    issued_ms: float,
    expiry_days: int = 365,
    now_ms: float | None = None,
) -> bool:
    """Check whether a certificate is older than its validity period."""
    now_ms = time.time() * 1000.0 if now_ms is None else now_ms
    return now_ms - issued_ms > expiry_days * 24 * 60 * 60 * 1000


def grade_description(grade: Grade | str) -> str:
    """Human-readable description of a grade."""
    try:
        return GRADE_DESCRIPTIONS[Grade(grade)]
    except ValueError:
        return "Ungraded"


def build_certificate(
    session: Session,
    user_name: str,
    issued_ms: float | None = None,
    rng: random.Random | None = None,
) -> CertificateData:
    """Issue a certificate for a completed session.

    Raises:
        SessionStateError: If the session has not been stopped
    """
    if not session.is_completed:
        raise SessionStateError(f"Session {session.id} is still recording")

    issued_ms = time.time() * 1000.0 if issued_ms is None else issued_ms
    issued = datetime.fromtimestamp(issued_ms / 1000.0, tz=timezone.utc).date()

    return CertificateData(
        id=f"cert_{session.id}",
        user_name=user_name,
        technique=session.technique,
        score=session.final_score,
        grade=session.grade,
        duration=session.duration,
        date=issued_ms,
        session_id=session.id,
        validation_code=generate_validation_code(
            user_name, session.technique, session.final_score, issued, rng
        ),
    )
