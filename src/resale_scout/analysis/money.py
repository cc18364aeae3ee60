"""Fixed-point money helpers.

All monetary values in the pipeline are Decimal quantized to cents.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
BASIS_POINT = Decimal("0.0001")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize a value to cents (half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_ratio(value: Decimal) -> Decimal:
    """Quantize a ratio to four decimal places (e.g. 0.4100 = 41%)."""
    return value.quantize(BASIS_POINT, rounding=ROUND_HALF_UP)
