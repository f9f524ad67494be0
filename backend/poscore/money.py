# Overview: Integer-cent helpers shared by pricing, checkout and returns.

"""
All authoritative amounts are integer cents. Percentages on promotions are
basis points (1000 bps = 10%). Division rounds to the nearest cent, half-up.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation


def div_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half-up (non-negative operands)."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (numerator + (denominator // 2)) // denominator


def apply_bps(amount_cents: int, bps: int) -> int:
    """Return ``amount_cents * bps / 10000`` rounded to the nearest cent."""
    return div_half_up(amount_cents * bps, 10000)


def apply_percent(amount_cents: int, percent: int) -> int:
    return div_half_up(amount_cents * percent, 100)


def to_cents(value) -> int:
    """
    Convert an API amount to cents.

    Integers are already cents; strings and floats are currency amounts
    ("300.00" -> 30000).
    """
    if value is None:
        raise ValueError("amount is required")
    if isinstance(value, bool):
        raise ValueError("amount must be numeric")
    if isinstance(value, int):
        return value
    try:
        dec = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    return int((dec * 100).quantize(Decimal("1")))


def format_cents(cents: int | None) -> str:
    """12345 -> "123.45"."""
    if cents is None:
        return "0.00"
    sign = "-" if cents < 0 else ""
    cents = abs(int(cents))
    return f"{sign}{cents // 100}.{cents % 100:02d}"
