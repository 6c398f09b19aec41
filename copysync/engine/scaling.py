"""Scaling calculator — fits a reference position set into a capital budget.

If the margin the reference positions require exceeds the budget, every
position is scaled by a single factor so that the total lands at 80% of
the budget, leaving headroom for price movement before the next cycle.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Any

import structlog
from pydantic import ValidationError

from copysync.engine.diff import normalize_symbol
from copysync.engine.precision import round_to_places, scale_preserving_precision
from copysync.exceptions import InvalidInputError
from copysync.schemas.position import Position, ScalingResult

logger = structlog.get_logger()

SAFETY_MARGIN = Decimal("0.8")
DEFAULT_LEVERAGE = Decimal("10")
_HUNDRED = Decimal("100")


def _coerce_position(
    raw: Position | Mapping[str, Any],
    default_leverage: Decimal,
) -> Position:
    """Validate a raw position and fill in a missing leverage."""
    if isinstance(raw, Position):
        position = raw
    elif isinstance(raw, Mapping):
        position = Position.model_validate(raw)
    else:
        raise TypeError(f"unsupported position type {type(raw).__name__}")

    if position.leverage is None:
        position = position.model_copy(update={"leverage": default_leverage})
    return position


def scale_positions(
    positions: Sequence[Position | Mapping[str, Any]],
    budget: Decimal,
    *,
    default_leverage: Decimal = DEFAULT_LEVERAGE,
    size_decimals: Mapping[str, int] | None = None,
) -> ScalingResult:
    """Scale reference positions so their required margin fits the budget.

    Args:
        positions: Reference positions, as Position models or raw mappings.
            Malformed entries are skipped with a warning.
        budget: Capital earmarked for copying. Must be positive.
        default_leverage: Leverage assumed when a position does not report one.
        size_decimals: Optional venue size precision keyed by normalized
            symbol. When given, it overrides the source-precision rule and
            positions that round to zero are dropped.

    Returns:
        ScalingResult with the target positions and diagnostics. When the
        positions already fit, the input Position objects are returned as-is.

    Raises:
        InvalidInputError: If budget is not positive or positions is not a list.
    """
    if isinstance(positions, (str, bytes)) or not isinstance(positions, Sequence):
        raise InvalidInputError("positions must be a list", field="positions")
    try:
        budget = Decimal(str(budget)) if not isinstance(budget, Decimal) else budget
    except ArithmeticError as exc:
        raise InvalidInputError(f"budget is not a number: {budget!r}", field="budget") from exc
    if not budget.is_finite() or budget <= 0:
        raise InvalidInputError(f"budget must be positive, got {budget}", field="budget")

    warnings: list[str] = []
    valid: list[Position] = []
    for raw in positions:
        try:
            valid.append(_coerce_position(raw, default_leverage))
        except (ValidationError, TypeError) as exc:
            symbol = raw.get("symbol") if isinstance(raw, Mapping) else None
            warnings.append(f"Skipping invalid position: {symbol or 'unknown'}")
            logger.warning(
                "Skipping invalid reference position",
                symbol=symbol,
                error=str(exc),
            )

    if not valid:
        return ScalingResult(warnings=warnings)

    total_required = sum((p.required_margin for p in valid), Decimal("0"))
    total_value = sum((p.market_value for p in valid), Decimal("0"))

    if total_required <= budget:
        utilization = total_required / budget * _HUNDRED
        if utilization > SAFETY_MARGIN * _HUNDRED:
            warnings.append(
                f"High balance utilization ({utilization:.1f}%). "
                "Consider increasing copy balance for safety margin."
            )
        return ScalingResult(
            positions=valid,
            scaling_factor=Decimal("1"),
            total_estimated_cost=total_required,
            total_market_value=total_value,
            original_total_cost=total_required,
            original_total_value=total_value,
            utilization_pct=utilization,
            warnings=warnings,
        )

    # Floor rounding keeps every aggregate at or below its exact value, so
    # the scaled cost can never exceed budget * SAFETY_MARGIN.
    with localcontext() as ctx:
        ctx.rounding = ROUND_FLOOR
        factor = budget * SAFETY_MARGIN / total_required

    scaled: list[Position] = []
    scaled_cost = Decimal("0")
    scaled_value = Decimal("0")
    for position in valid:
        if size_decimals is not None:
            places = size_decimals.get(normalize_symbol(position.symbol))
        else:
            places = None

        if places is None:
            new_size = scale_preserving_precision(position.size, factor)
        else:
            new_size = round_to_places(position.size * factor, places)
            if new_size == 0:
                warnings.append(
                    f"Dropping {position.symbol}: scaled size rounds to zero "
                    f"at {places} decimals"
                )
                logger.warning(
                    "Scaled position too small to represent",
                    symbol=position.symbol,
                    size=str(position.size),
                    size_decimals=places,
                )
                continue

        with localcontext() as ctx:
            ctx.rounding = ROUND_FLOOR
            scaled_cost += position.required_margin * factor
            scaled_value += position.market_value * factor
        scaled.append(position.model_copy(update={"size": new_size}))

    warnings.append(
        f"Positions scaled down to {factor * _HUNDRED:.1f}% to fit within your "
        f"balance. Original requirement: ${total_required:.2f}."
    )
    logger.info(
        "Reference positions scaled to budget",
        scaling_factor=str(factor),
        original_cost=str(total_required),
        scaled_cost=str(scaled_cost),
        budget=str(budget),
        dropped=len(valid) - len(scaled),
    )

    return ScalingResult(
        positions=scaled,
        scaling_factor=factor,
        total_estimated_cost=scaled_cost,
        total_market_value=scaled_value,
        original_total_cost=total_required,
        original_total_value=total_value,
        utilization_pct=scaled_cost / budget * _HUNDRED,
        warnings=warnings,
    )
