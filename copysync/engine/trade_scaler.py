"""Margin-aware trade scaler.

Applies the session's global scaling factor to a single trade, then
clamps the result to the margin actually free on the managed account.
The clamp only shrinks this trade; the global factor used for every
other position is left untouched.
"""

from decimal import ROUND_FLOOR, Decimal, localcontext

from copysync.engine.precision import scale_preserving_precision
from copysync.exceptions import InsufficientCapitalError, InvalidInputError
from copysync.schemas.position import TradeScaleResult

DEFAULT_SAFETY_BUFFER = Decimal("0.8")


def _require_positive(name: str, value: Decimal) -> None:
    if not value.is_finite() or value <= 0:
        raise InvalidInputError(f"{name} must be positive, got {value}", field=name)


def _require_unit_fraction(name: str, value: Decimal) -> None:
    if not value.is_finite() or value <= 0 or value > 1:
        raise InvalidInputError(f"{name} must be in (0, 1], got {value}", field=name)


def scale_trade_with_margin(
    *,
    amount: Decimal,
    price: Decimal,
    leverage: Decimal,
    free_margin: Decimal,
    scaling_factor: Decimal = Decimal("1"),
    safety_buffer: Decimal = DEFAULT_SAFETY_BUFFER,
) -> TradeScaleResult:
    """Size one trade so it never needs more margin than is available.

    Args:
        amount: Reference trade size in base units.
        price: Execution price, quote per base.
        leverage: Leverage the managed position will use.
        free_margin: Free margin on the managed account.
        scaling_factor: Global factor from the scaling calculator, in (0, 1].
        safety_buffer: Fraction of free margin that may be committed, in (0, 1].

    Returns:
        TradeScaleResult. Both scaling stages keep the precision of ``amount``.

    Raises:
        InvalidInputError: On non-positive amount/price/leverage, negative
            free margin, or a factor outside (0, 1].
        InsufficientCapitalError: If no margin is available at all.
    """
    _require_positive("amount", amount)
    _require_positive("price", price)
    _require_positive("leverage", leverage)
    if not free_margin.is_finite() or free_margin < 0:
        raise InvalidInputError(
            f"free_margin must be >= 0, got {free_margin}", field="free_margin"
        )
    _require_unit_fraction("scaling_factor", scaling_factor)
    _require_unit_fraction("safety_buffer", safety_buffer)

    scaled_amount = scale_preserving_precision(amount, scaling_factor)
    margin_required = scaled_amount * price / leverage
    margin_available = free_margin * safety_buffer

    if margin_required <= margin_available:
        return TradeScaleResult(
            scaled_amount=scaled_amount,
            final_amount=scaled_amount,
            margin_required=margin_required,
            margin_available=margin_available,
            was_adjusted=False,
        )

    if margin_available <= 0:
        raise InsufficientCapitalError(
            f"No free margin for trade requiring {margin_required:.2f}",
            required=margin_required,
            available=margin_available,
        )

    with localcontext() as ctx:
        ctx.rounding = ROUND_FLOOR
        adjustment_factor = margin_available / margin_required

    return TradeScaleResult(
        scaled_amount=scaled_amount,
        final_amount=scale_preserving_precision(
            scaled_amount, adjustment_factor, ROUND_FLOOR
        ),
        margin_required=margin_required,
        margin_available=margin_available,
        was_adjusted=True,
        adjustment_factor=adjustment_factor,
    )
