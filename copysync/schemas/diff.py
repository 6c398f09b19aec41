"""Diff schemas: the ordered action set between target and actual state."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from copysync.schemas.enums import AdjustAction, PositionSide
from copysync.schemas.position import Position


class Adjustment(BaseModel):
    """Same-side position whose size is outside the tolerance band."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Normalized symbol")
    side: PositionSide = Field(...)
    current_size: Decimal = Field(..., ge=0)
    target_size: Decimal = Field(..., ge=0)
    difference: Decimal = Field(..., description="target_size - current_size")
    action: AdjustAction = Field(...)
    current: Position = Field(..., description="Managed position being resized")
    target: Position = Field(..., description="Desired position")


class Flip(BaseModel):
    """Position held on the opposite side of the target.

    Executed as close-then-open, never as an in-place side change.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Normalized symbol")
    current: Position = Field(...)
    target: Position = Field(...)


class DiffResult(BaseModel):
    """Four disjoint action lists; a symbol appears in at most one."""

    model_config = ConfigDict(frozen=True)

    to_add: list[Position] = Field(default_factory=list)
    to_remove: list[Position] = Field(default_factory=list)
    to_adjust: list[Adjustment] = Field(default_factory=list)
    to_flip: list[Flip] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_remove or self.to_adjust or self.to_flip)

    def counts(self) -> dict[str, int]:
        return {
            "to_add": len(self.to_add),
            "to_remove": len(self.to_remove),
            "to_adjust": len(self.to_adjust),
            "to_flip": len(self.to_flip),
        }
