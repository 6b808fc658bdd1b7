"""Session records and certificates for storage, sync, and reporting collaborators."""

from weld_tracker.reporting.certificate import (
    CertificateData,
    build_certificate,
    generate_validation_code,
    parse_validation_code,
    validate_certificate,
)
from weld_tracker.reporting.records import (
    SESSION_RECORD_FIELDS,
    format_session_record,
    session_from_dict,
    session_to_dict,
)

__all__ = [
    "SESSION_RECORD_FIELDS",
    "format_session_record",
    "session_to_dict",
    "session_from_dict",
    "CertificateData",
    "build_certificate",
    "generate_validation_code",
    "parse_validation_code",
    "validate_certificate",
]
