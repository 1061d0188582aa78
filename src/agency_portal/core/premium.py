"""Premium normalization: installment and annualized premium per payment mode."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")


class PaymentMode(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    SEMI_ANNUAL = "Semi-Annual"
    ANNUAL = "Annual"

    @classmethod
    def from_label(cls, label: str | None) -> "PaymentMode | None":
        """Exact (case and whitespace insensitive) match against the four modes."""
        if not label:
            return None
        normalized = label.strip().lower()
        for mode in cls:
            if mode.value.lower() == normalized:
                return mode
        return None


@dataclass(frozen=True)
class PremiumBreakdown:
    installment_amount: Decimal
    annualized_premium: Decimal


def coerce_amount(value: Any) -> Decimal:
    """Convert a stored or submitted amount to Decimal; anything unusable is 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    text = str(value).replace(",", "").strip()
    if not text:
        return ZERO
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return ZERO
    return amount if amount.is_finite() else ZERO


def periods_per_year(mode: str | PaymentMode | None) -> int:
    """Number of installments per year, matched by substring on the mode label."""
    if isinstance(mode, PaymentMode):
        mode = mode.value
    label = (mode or "").lower()
    if "monthly" in label:
        return 12
    if "quarterly" in label:
        return 4
    if "semi" in label or "half" in label:
        return 2
    return 1


def normalize(total_premium: Any, mode: str | PaymentMode | None) -> PremiumBreakdown:
    """
    Split a stored premium into the amount charged per cycle and its ANP.

    The stored premium is the full annual premium, so the ANP is the premium
    itself and each installment is the premium divided by the periods per year.
    """
    premium = coerce_amount(total_premium)
    return PremiumBreakdown(
        installment_amount=premium / periods_per_year(mode),
        annualized_premium=premium,
    )


def installment_amount(total_premium: Any, mode: str | PaymentMode | None) -> Decimal:
    return normalize(total_premium, mode).installment_amount


def round_money(value: Decimal) -> Decimal:
    """Round to cents for persistence."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
