# common/money.py
"""Decimal helpers for amounts and rates."""

from decimal import Decimal, ROUND_HALF_UP

MONEY_Q = Decimal("0.01")
TOLERANCE = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def within_tolerance(a, b) -> bool:
    """True when two amounts agree to within one cent."""
    return abs(to_money(a) - to_money(b)) < TOLERANCE


def percent_of(part, whole) -> Decimal:
    """part / whole as a percentage; 0 when whole is not positive."""
    whole = to_money(whole)
    if whole <= 0:
        return ZERO
    return (to_money(part) / whole * HUNDRED).quantize(MONEY_Q, rounding=ROUND_HALF_UP)
