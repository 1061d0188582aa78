"""Payment cycle scheduling."""

from __future__ import annotations

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from agency_portal.core.premium import PaymentMode

_STEPS = {
    PaymentMode.MONTHLY: relativedelta(months=1),
    PaymentMode.QUARTERLY: relativedelta(months=3),
    PaymentMode.SEMI_ANNUAL: relativedelta(months=6),
    PaymentMode.ANNUAL: relativedelta(years=1),
}


def parse_reference_date(value: date | datetime | str | None) -> date | None:
    """Return a calendar date, or None when the value does not parse."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def next_due_date(
    reference: date | datetime | str | None,
    mode: str | PaymentMode | None,
) -> date | None:
    """
    Advance a reference date by one payment period.

    Month arithmetic clamps to the last valid day of the target month, so
    2025-01-31 plus one month is 2025-02-28. Unsupported modes leave the date
    unchanged; an unparseable reference yields None.
    """
    reference_date = parse_reference_date(reference)
    if reference_date is None:
        return None
    if not isinstance(mode, PaymentMode):
        mode = PaymentMode.from_label(mode)
    step = _STEPS.get(mode) if mode else None
    if step is None:
        return reference_date
    return reference_date + step


def parse_timestamp(value: date | datetime | str | None) -> datetime | None:
    """Parse a stored timestamp into a naive local datetime; None when unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
