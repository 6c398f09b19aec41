"""Account-level schemas returned by exchange adapters."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from copysync.schemas.enums import OrderStatus


class Balance(BaseModel):
    """Margin balance of an account, in quote currency."""

    model_config = ConfigDict(frozen=True)

    total: Decimal = Field(default=Decimal("0"))
    free: Decimal = Field(default=Decimal("0"))
    used: Decimal = Field(default=Decimal("0"))


class OrderResult(BaseModel):
    """Adapter response to an open request."""

    model_config = ConfigDict(frozen=True)

    external_id: str = Field(..., description="Handle to close the resulting position")
    status: OrderStatus = Field(...)
    order_id: Optional[str] = Field(default=None, description="Venue order id or tx hash")


class CloseResult(BaseModel):
    """Adapter response to a close request."""

    model_config = ConfigDict(frozen=True)

    status: OrderStatus = Field(...)
    order_id: Optional[str] = Field(default=None, description="Venue order id or tx hash")
