"""Tests for decimal precision helpers at copysync/engine/precision.py."""

from decimal import ROUND_FLOOR, Decimal

import pytest

from copysync.engine.precision import (
    decimal_places,
    round_to_places,
    scale_preserving_precision,
)


@pytest.mark.parametrize(
    "value, places",
    [("0.12", 2), ("28000", 0), ("1.0", 1), ("0.00010", 5), ("1E+3", 0)],
)
def test_decimal_places(value, places):
    assert decimal_places(Decimal(value)) == places


def test_round_half_up():
    assert round_to_places(Decimal("0.25"), 1) == Decimal("0.3")
    assert round_to_places(Decimal("0.16"), 1) == Decimal("0.2")


def test_round_with_explicit_mode():
    assert round_to_places(Decimal("0.29"), 1, ROUND_FLOOR) == Decimal("0.2")


def test_round_negative_places_raises():
    with pytest.raises(ValueError):
        round_to_places(Decimal("1"), -1)


def test_scale_preserving_precision():
    result = scale_preserving_precision(Decimal("0.12"), Decimal("0.5"))
    assert result == Decimal("0.06")
    assert decimal_places(result) == 2
