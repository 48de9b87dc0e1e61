"""
Decimal helpers shared by every engine.

Money is quantized to cents, rates to 4 places and percentages to 2
places, all with ROUND_HALF_UP. Division goes through ``safe_divide`` so a
zero denominator yields zero instead of an exception, NaN or Infinity.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")
PERCENT_PLACES = Decimal("0.01")

ZERO = Decimal("0")


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantize_rate(value: Decimal) -> Decimal:
    return Decimal(value).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def quantize_percent(value: Decimal) -> Decimal:
    return Decimal(value).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator, or 0 when the denominator is 0."""
    if denominator == 0:
        return ZERO
    return Decimal(numerator) / Decimal(denominator)
