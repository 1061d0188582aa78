"""Tests for validation rules."""

import pytest

from agency_portal.core.errors import ValidationFailure
from agency_portal.core.validation import (
    MAX_UPLOAD_BYTES,
    validate_month,
    validate_year,
    validate_optional_email,
    validate_required_text,
    validate_serial_number,
    validate_status,
    validate_upload,
)


def test_validate_serial_number_digits_only() -> None:
    assert validate_serial_number(" 12345678 ") == "12345678"
    assert validate_serial_number(123456789) == "123456789"
    with pytest.raises(ValidationFailure):
        validate_serial_number("1234-5678")
    with pytest.raises(ValidationFailure):
        validate_serial_number("١٢٣٤٥٦٧٨")
    with pytest.raises(ValidationFailure):
        validate_serial_number(None)


def test_validate_required_text() -> None:
    assert validate_required_text(" Juan ", "Client first name") == "Juan"
    with pytest.raises(ValueError):
        validate_required_text("   ", "Client first name")


def test_validate_optional_email() -> None:
    assert validate_optional_email("") == ""
    assert validate_optional_email(" juan@example.com ") == "juan@example.com"
    with pytest.raises(ValidationFailure):
        validate_optional_email("juan.example.com")


def test_validate_status() -> None:
    assert validate_status("Issued") == "Issued"
    with pytest.raises(ValidationFailure):
        validate_status("Approved")


def test_validate_upload_type_and_size() -> None:
    validate_upload("id.pdf", "application/pdf", 1024)
    with pytest.raises(ValidationFailure):
        validate_upload("notes.html", "text/html", 10)
    with pytest.raises(ValidationFailure):
        validate_upload("scan.png", "image/png", MAX_UPLOAD_BYTES + 1)


def test_validate_month_range() -> None:
    assert validate_month(12) == 12
    with pytest.raises(ValidationFailure):
        validate_month(0)
    with pytest.raises(ValidationFailure):
        validate_month(13)


def test_validate_year_range() -> None:
    assert validate_year(2025) == 2025
    with pytest.raises(ValidationFailure):
        validate_year(1)
    with pytest.raises(ValidationFailure):
        validate_year(10000)
