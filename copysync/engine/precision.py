"""Decimal precision helpers.

Venues reject orders whose size precision exceeds the instrument's step
size. When the managed venue does not publish its step size, the
reference value's own precision is used as a proxy for it.
"""

from decimal import ROUND_HALF_UP, Decimal


def decimal_places(value: Decimal) -> int:
    """Number of digits after the decimal point, as written.

    >>> decimal_places(Decimal("0.12"))
    2
    >>> decimal_places(Decimal("28000"))
    0
    >>> decimal_places(Decimal("1.0"))
    1
    """
    exponent = value.as_tuple().exponent
    if not isinstance(exponent, int):
        return 0
    return max(0, -exponent)


def round_to_places(value: Decimal, places: int, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round to exactly ``places`` decimal places (half-up by default)."""
    if places < 0:
        raise ValueError(f"places must be >= 0, got {places}")
    return value.quantize(Decimal(1).scaleb(-places), rounding=rounding)


def scale_preserving_precision(
    value: Decimal,
    factor: Decimal,
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """Multiply by ``factor`` and round back to the precision of ``value``."""
    return round_to_places(value * factor, decimal_places(value), rounding)
