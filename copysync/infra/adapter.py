"""Exchange adapter interface consumed by the sync service.

Two concrete variants satisfy this contract: a margin-account venue
reached over REST (HyperliquidAdapter) and an on-chain smart-contract
venue (OnChainAdapter). The variant is chosen at configuration time.

Timeouts and retries are the adapter's responsibility; the sync service
treats any AdapterError as an ordinary per-fetch or per-action failure.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from copysync.schemas.account import Balance, CloseResult, OrderResult
from copysync.schemas.enums import PositionSide
from copysync.schemas.position import Position


class ExchangeAdapter(ABC):
    """Capability interface for one trading account on one venue."""

    venue: str = "unknown"

    @abstractmethod
    async def fetch_positions(self) -> list[Position]:
        """Return open positions only; zero-size positions are excluded."""
        ...

    @abstractmethod
    async def fetch_balance(self) -> Balance:
        """Return total, free and used margin for the account."""
        ...

    @abstractmethod
    async def open_position(
        self,
        symbol: str,
        side: PositionSide,
        margin_amount: Decimal,
        size: Decimal,
    ) -> OrderResult:
        """Open a position of ``size`` base units backed by ``margin_amount``."""
        ...

    @abstractmethod
    async def close_position(self, external_id: str) -> CloseResult:
        """Close the position identified by ``external_id``."""
        ...

    async def fetch_size_decimals(self) -> dict[str, int] | None:
        """Size precision per normalized symbol, or None if not published."""
        return None

    async def close(self) -> None:
        """Release network resources."""
        return None
