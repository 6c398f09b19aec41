"""Reconciliation engine: pure scaling and diff functions."""

from copysync.engine.diff import calculate_diff, is_in_sync, normalize_symbol
from copysync.engine.precision import decimal_places, round_to_places
from copysync.engine.scaling import SAFETY_MARGIN, scale_positions
from copysync.engine.trade_scaler import scale_trade_with_margin

__all__ = [
    "SAFETY_MARGIN",
    "calculate_diff",
    "decimal_places",
    "is_in_sync",
    "normalize_symbol",
    "round_to_places",
    "scale_positions",
    "scale_trade_with_margin",
]
