"""Shared enumerations for CopySync schemas.

All enums used across the CopySync system are defined here to ensure
consistency and avoid circular imports.
"""

from enum import Enum


class PositionSide(str, Enum):
    """Direction of an open position."""
    LONG = "LONG"
    SHORT = "SHORT"

    @classmethod
    def parse(cls, value: "str | PositionSide") -> "PositionSide":
        """Accept venue spellings: long/short, buy/sell, B/A."""
        if isinstance(value, PositionSide):
            return value
        normalized = str(value).strip().upper()
        if normalized in ("LONG", "BUY", "B"):
            return cls.LONG
        if normalized in ("SHORT", "SELL", "A", "S"):
            return cls.SHORT
        raise ValueError(f"Unknown position side: {value!r}")

    @property
    def opposite(self) -> "PositionSide":
        return PositionSide.SHORT if self is PositionSide.LONG else PositionSide.LONG

    @property
    def is_buy(self) -> bool:
        return self is PositionSide.LONG


class AdjustAction(str, Enum):
    """Direction of a size adjustment on an existing position."""
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"


class SyncAction(str, Enum):
    """Per-action progress event kinds."""
    ADD = "add"
    REMOVE = "remove"
    ADJUST = "adjust"


class OrderStatus(str, Enum):
    """Status reported by an adapter for an open or close request."""
    PENDING = "PENDING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class CycleStatus(str, Enum):
    """Aggregate outcome of one sync cycle."""
    SUCCEEDED = "SUCCEEDED"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    FAILED = "FAILED"


class Venue(str, Enum):
    """Supported execution venues, chosen at configuration time."""
    HYPERLIQUID = "hyperliquid"
    ONCHAIN = "onchain"
