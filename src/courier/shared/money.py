"""Money rounding helpers.

All stored monetary values are rounded half-up to two decimal places, once,
at the point they are stored.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
GRAM = Decimal("0.001")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps 2.675 as 2.675 instead of its binary float expansion
    return Decimal(str(value))


def round_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_weight(value) -> Decimal:
    return to_decimal(value).quantize(GRAM, rounding=ROUND_HALF_UP)
