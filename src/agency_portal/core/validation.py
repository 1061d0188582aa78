"""Input validation rules for submissions, serials and uploads."""

from __future__ import annotations

import re

from agency_portal.core.errors import ValidationFailure

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SERIAL_PATTERN = re.compile(r"^[0-9]+$")
MIN_YEAR = 1900
MAX_YEAR = 9999
SUBMISSION_STATUSES = ("Pending", "Issued", "Declined")
ALLOWED_UPLOAD_TYPES = ("image/jpeg", "image/png", "application/pdf")
MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def validate_required_text(value: str | None, field_name: str) -> str:
    """Validate non-empty text fields."""
    normalized = (value or "").strip()
    if not normalized:
        raise ValidationFailure(f"{field_name} is required.")
    return normalized


def validate_serial_number(value: str | int | None) -> str:
    """Serial numbers are digit strings; surrounding whitespace is dropped."""
    normalized = str(value if value is not None else "").strip()
    if not normalized:
        raise ValidationFailure("Serial Number is missing.")
    if not SERIAL_PATTERN.match(normalized):
        raise ValidationFailure(f"Serial Number '{normalized}' must contain digits only.")
    return normalized


def validate_optional_email(value: str | None) -> str:
    """Return a trimmed e-mail, or empty when absent."""
    normalized = (value or "").strip()
    if normalized and not EMAIL_PATTERN.match(normalized):
        raise ValidationFailure(f"Invalid e-mail address: {normalized}")
    return normalized


def validate_status(value: str | None) -> str:
    normalized = (value or "").strip()
    if normalized not in SUBMISSION_STATUSES:
        raise ValidationFailure(
            f"Status must be one of {', '.join(SUBMISSION_STATUSES)}."
        )
    return normalized


def validate_upload(file_name: str, content_type: str, size: int) -> None:
    """Only JPEG, PNG and PDF files up to 10 MB are accepted."""
    if content_type not in ALLOWED_UPLOAD_TYPES:
        raise ValidationFailure(f"Invalid file type for {file_name}: {content_type}")
    if size > MAX_UPLOAD_BYTES:
        raise ValidationFailure(f"File {file_name} exceeds the 10 MB limit.")


def validate_month(month: int) -> int:
    if month < 1 or month > 12:
        raise ValidationFailure("Month must be between 1 and 12.")
    return month


def validate_year(year: int) -> int:
    # history reaches back one year and must stay within datetime range
    if year < MIN_YEAR or year > MAX_YEAR:
        raise ValidationFailure(f"Year must be between {MIN_YEAR} and {MAX_YEAR}.")
    return year
