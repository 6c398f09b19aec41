"""Position schemas: venue-neutral position snapshots and scaling output.

Positions are immutable: a new poll produces a new list of positions,
it never mutates a previous one.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from copysync.schemas.enums import PositionSide


class Position(BaseModel):
    """A single open position on one account.

    ``size`` is unsigned; the direction lives in ``side``. ``leverage`` is
    None when the venue does not report it; the scaling calculator fills
    in the configured default.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1, description="Instrument identifier")
    side: PositionSide = Field(...)
    size: Decimal = Field(..., ge=0, description="Base-asset units, unsigned")
    entry_price: Decimal = Field(..., ge=0, description="Quote per base")
    leverage: Optional[Decimal] = Field(default=None, ge=1)
    external_id: Optional[str] = Field(
        default=None,
        description="Venue handle used to close this position (coin or trade hash)",
    )
    margin: Optional[Decimal] = Field(
        default=None,
        description="Margin the venue reports as locked for this position",
    )

    @field_validator("side", mode="before")
    @classmethod
    def _parse_side(cls, v: object) -> PositionSide:
        return PositionSide.parse(v)  # type: ignore[arg-type]

    @field_validator("size", "entry_price", mode="before")
    @classmethod
    def _reject_booleans(cls, v: object) -> object:
        if isinstance(v, bool):
            raise ValueError("boolean is not a number")
        return v

    @property
    def market_value(self) -> Decimal:
        return self.size * self.entry_price

    @property
    def required_margin(self) -> Decimal:
        """Margin needed to hold the position (market value / leverage)."""
        leverage = self.leverage if self.leverage is not None else Decimal("1")
        return self.market_value / leverage


class ScalingResult(BaseModel):
    """Output of the scaling calculator.

    Invariant: ``total_estimated_cost <= budget``; when ``was_scaled`` is
    True it is also ``<= budget * 0.8``.
    """

    model_config = ConfigDict(frozen=True)

    positions: list[Position] = Field(default_factory=list)
    scaling_factor: Decimal = Field(default=Decimal("1"), gt=0, le=1)
    total_estimated_cost: Decimal = Field(default=Decimal("0"), ge=0)
    total_market_value: Decimal = Field(default=Decimal("0"), ge=0)
    original_total_cost: Decimal = Field(default=Decimal("0"), ge=0)
    original_total_value: Decimal = Field(default=Decimal("0"), ge=0)
    utilization_pct: Decimal = Field(default=Decimal("0"), ge=0)
    warnings: list[str] = Field(default_factory=list)

    @property
    def was_scaled(self) -> bool:
        return self.scaling_factor < 1


class TradeScaleResult(BaseModel):
    """Output of the margin-aware trade scaler for a single trade."""

    model_config = ConfigDict(frozen=True)

    scaled_amount: Decimal = Field(..., ge=0)
    final_amount: Decimal = Field(..., ge=0)
    margin_required: Decimal = Field(..., ge=0)
    margin_available: Decimal = Field(..., ge=0)
    was_adjusted: bool = Field(default=False)
    adjustment_factor: Decimal = Field(default=Decimal("1"), gt=0, le=1)
