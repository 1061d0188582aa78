"""Tests for payment cycle scheduling."""

from datetime import date, datetime

import pytest

from agency_portal.core.schedule import next_due_date, parse_reference_date, parse_timestamp


@pytest.mark.parametrize(
    ("reference", "mode", "expected"),
    [
        ("2025-01-31", "Monthly", date(2025, 2, 28)),
        ("2024-01-31", "Monthly", date(2024, 2, 29)),
        ("2025-01-15", "Monthly", date(2025, 2, 15)),
        ("2025-11-30", "Quarterly", date(2026, 2, 28)),
        ("2025-08-31", "Semi-Annual", date(2026, 2, 28)),
        ("2024-02-29", "Annual", date(2025, 2, 28)),
    ],
)
def test_next_due_date_clamps_to_month_end(reference, mode, expected) -> None:
    assert next_due_date(reference, mode) == expected


def test_next_due_date_never_moves_backwards() -> None:
    reference = date(2025, 1, 1)
    for _ in range(40):
        following = next_due_date(reference, "Monthly")
        assert following > reference
        reference = following


def test_unparseable_reference_yields_none() -> None:
    assert next_due_date("", "Monthly") is None
    assert next_due_date(None, "Monthly") is None
    assert next_due_date("31/01/2025", "Monthly") is None


def test_unsupported_mode_keeps_the_date() -> None:
    assert next_due_date("2025-05-10", "Single Pay") == date(2025, 5, 10)
    assert next_due_date("2025-05-10", None) == date(2025, 5, 10)


def test_reference_accepts_datetimes() -> None:
    assert parse_reference_date(datetime(2025, 6, 1, 13, 45)) == date(2025, 6, 1)
    assert parse_reference_date("2025-06-01T13:45:00") == date(2025, 6, 1)
    assert next_due_date(datetime(2025, 6, 1, 13, 45), "Quarterly") == date(2025, 9, 1)


def test_parse_timestamp() -> None:
    assert parse_timestamp("2025-03-01 08:30:00") == datetime(2025, 3, 1, 8, 30)
    assert parse_timestamp(date(2025, 3, 1)) == datetime(2025, 3, 1)
    assert parse_timestamp("2025-03-01T08:30:00Z").tzinfo is None
    assert parse_timestamp("garbage") is None
    assert parse_timestamp(None) is None
