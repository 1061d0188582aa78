"""Payment history domain models."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class PaymentHistoryEntry:
    id: int
    submission_id: int
    amount: Decimal
    period_covered: str | None
    payment_date: str


@dataclass
class PaymentResult:
    next_date: str | None
    entry: PaymentHistoryEntry
