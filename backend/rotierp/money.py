# Overview: Minor-unit money helpers. Amounts are stored as integer cents and
# rates as integer basis points; JSON carries decimal amounts.

from __future__ import annotations

from decimal import Decimal, InvalidOperation

# Maximum amount: 99,999,999.99 (9,999,999,999 cents)
MAX_AMOUNT_CENTS = 9_999_999_999


def parse_amount_cents(value) -> int:
    """
    Parse a decimal amount ("12.50", 12.5, 12) into integer cents.

    Rejects booleans, non-finite values, negatives and more than two decimal
    places. Raises ValueError with a message suitable for a field error.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("must be a decimal amount")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError("must be a decimal amount")
    if not amount.is_finite():
        raise ValueError("must be a decimal amount")
    if amount < 0:
        raise ValueError("must be >= 0")
    if amount.as_tuple().exponent < -2:
        raise ValueError("must have at most 2 decimal places")
    cents = int(amount * 100)
    if cents > MAX_AMOUNT_CENTS:
        raise ValueError(f"cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    return cents


def cents_to_amount(cents: int | None) -> float | None:
    if cents is None:
        return None
    return round(cents / 100, 2)


def apply_rate_bps(cents: int, rate_bps: int) -> int:
    """Apply a basis-point rate to a non-negative cent amount, rounding half-up."""
    return (cents * rate_bps + 5_000) // 10_000
