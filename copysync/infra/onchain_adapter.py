"""Smart-contract adapter for an on-chain perpetuals venue.

Contract access itself (RPC, wallet signing, price-oracle update data) is
behind the ``TradingContractGateway`` protocol, which speaks raw integer
fixed-point units. This adapter owns the venue conventions on top of it:

- pairs are addressed by contract address, mapped to ``BASE/USD`` symbols
- quantities carry 10 decimals, prices 18, margin the token's decimals
- leverage is not stored on chain and is derived as ``value / margin``
- opens are asynchronous: a keeper executes the pending trade later, so
  the trade hash returned at submission is the position's external id
"""

from collections.abc import Mapping
from decimal import ROUND_DOWN, Decimal
from typing import Any, Protocol

import structlog

from copysync.engine.diff import normalize_symbol
from copysync.engine.precision import round_to_places
from copysync.exceptions import AdapterError
from copysync.infra.adapter import ExchangeAdapter
from copysync.schemas.account import Balance, CloseResult, OrderResult
from copysync.schemas.enums import OrderStatus, PositionSide
from copysync.schemas.position import Position

logger = structlog.get_logger()

QTY_DECIMALS = 10
PRICE_DECIMALS = 18
SIZE_DECIMALS = 4

_PERP_SUFFIXES = (":USD", "-PERP")


def to_pair_symbol(symbol: str, overrides: Mapping[str, str] | None = None) -> str:
    """Convert a venue-neutral symbol to the on-chain pair name.

    >>> to_pair_symbol("BTC")
    'BTC/USD'
    >>> to_pair_symbol("ETH/USD:USD")
    'ETH/USD'
    >>> to_pair_symbol("SOLUSD")
    'SOL/USD'
    """
    if overrides and symbol in overrides:
        return overrides[symbol]

    pair = symbol.strip().upper()
    for suffix in _PERP_SUFFIXES:
        if pair.endswith(suffix):
            pair = pair[: -len(suffix)]
    if "/" in pair:
        return pair
    base = normalize_symbol(pair)
    return f"{base}/USD"


def from_units(raw: Any, decimals: int) -> Decimal:
    return Decimal(int(raw)).scaleb(-decimals)


def to_units(value: Decimal, decimals: int) -> int:
    return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


class TradingContractGateway(Protocol):
    """Raw contract calls for one wallet on the on-chain venue.

    Positions are returned as mappings with the keys ``trade_hash``,
    ``pair_base`` (pair contract address), ``is_long``, ``qty``,
    ``entry_price`` and ``margin``, all numeric values in integer units.
    """

    margin_decimals: int

    async def get_positions(self, trader: str) -> list[Mapping[str, Any]]: ...

    async def margin_token_balance(self, trader: str) -> int: ...

    async def open_market_trade(
        self,
        pair_base: str,
        is_long: bool,
        amount_in: int,
        qty: int,
    ) -> str: ...

    async def close_trade(self, trade_hash: str) -> str: ...


class OnChainAdapter(ExchangeAdapter):
    """ExchangeAdapter over a TradingContractGateway for a single wallet."""

    venue = "onchain"

    def __init__(
        self,
        gateway: TradingContractGateway,
        account: str,
        pair_addresses: Mapping[str, str],
        symbol_overrides: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            gateway: Contract access for the wallet.
            account: Wallet address.
            pair_addresses: Pair symbol (``BTC/USD``) to pair contract address.
            symbol_overrides: Explicit symbol to pair-name mappings that
                take precedence over the generic conversion.
        """
        self._gateway = gateway
        self._account = account
        self._pair_addresses = {k.upper(): v for k, v in pair_addresses.items()}
        self._address_to_pair = {v.lower(): k for k, v in self._pair_addresses.items()}
        self._symbol_overrides = dict(symbol_overrides or {})

    @property
    def account(self) -> str:
        return self._account

    def _pair_address(self, symbol: str) -> str:
        pair = to_pair_symbol(symbol, self._symbol_overrides)
        address = self._pair_addresses.get(pair)
        if address is None:
            raise AdapterError(
                message=(
                    f"Pair {pair} not configured; available: "
                    f"{', '.join(sorted(self._pair_addresses))}"
                ),
                account=self._account,
                service="onchain",
            )
        return address

    def _parse_position(self, raw: Mapping[str, Any]) -> Position | None:
        pair_base = str(raw.get("pair_base", ""))
        symbol = self._address_to_pair.get(pair_base.lower())
        if symbol is None:
            logger.warning("Skipping position on unconfigured pair", pair=pair_base)
            return None
        size = from_units(raw.get("qty", 0), QTY_DECIMALS)
        entry_price = from_units(raw.get("entry_price", 0), PRICE_DECIMALS)
        margin = from_units(raw.get("margin", 0), self._gateway.margin_decimals)
        trade_hash = raw.get("trade_hash")

        if not symbol or not trade_hash or size <= 0 or entry_price <= 0:
            return None

        leverage = None
        if margin > 0:
            leverage = max(size * entry_price / margin, Decimal("1"))

        return Position(
            symbol=symbol,
            side=PositionSide.LONG if raw.get("is_long") else PositionSide.SHORT,
            size=size,
            entry_price=entry_price,
            leverage=leverage,
            external_id=str(trade_hash),
            margin=margin,
        )

    async def fetch_positions(self) -> list[Position]:
        try:
            raw_positions = await self._gateway.get_positions(self._account)
        except AdapterError:
            raise
        except Exception as e:
            raise AdapterError(
                message=f"Failed to read on-chain positions: {e}",
                account=self._account,
                service="onchain",
            ) from e

        positions: list[Position] = []
        for raw in raw_positions:
            try:
                position = self._parse_position(raw)
            except (TypeError, ValueError) as e:
                logger.warning("Skipping invalid on-chain position", error=str(e))
                continue
            if position is None:
                logger.debug("Skipping empty on-chain position", raw=str(raw)[:200])
                continue
            positions.append(position)
        return positions

    async def fetch_balance(self) -> Balance:
        positions = await self.fetch_positions()
        try:
            raw_balance = await self._gateway.margin_token_balance(self._account)
        except AdapterError:
            raise
        except Exception as e:
            raise AdapterError(
                message=f"Failed to read margin token balance: {e}",
                account=self._account,
                service="onchain",
            ) from e

        total = from_units(raw_balance, self._gateway.margin_decimals)
        used = sum((p.margin or Decimal("0") for p in positions), Decimal("0"))
        free = total - used
        return Balance(total=total, used=used, free=free if free > 0 else Decimal("0"))

    async def fetch_size_decimals(self) -> dict[str, int] | None:
        return {normalize_symbol(pair): SIZE_DECIMALS for pair in self._pair_addresses}

    async def open_position(
        self,
        symbol: str,
        side: PositionSide,
        margin_amount: Decimal,
        size: Decimal,
    ) -> OrderResult:
        """Submit a market trade; the result stays PENDING until a keeper fills it."""
        pair_base = self._pair_address(symbol)
        qty = round_to_places(size, SIZE_DECIMALS, ROUND_DOWN)
        if qty <= 0:
            raise AdapterError(
                message=f"Size {size} rounds to zero at {SIZE_DECIMALS} decimals",
                account=self._account,
                service="onchain",
            )
        if margin_amount <= 0:
            raise AdapterError(
                message=f"Margin amount must be positive, got {margin_amount}",
                account=self._account,
                service="onchain",
            )

        try:
            trade_hash = await self._gateway.open_market_trade(
                pair_base,
                side.is_buy,
                to_units(margin_amount, self._gateway.margin_decimals),
                to_units(qty, QTY_DECIMALS),
            )
        except AdapterError:
            raise
        except Exception as e:
            raise AdapterError(
                message=f"On-chain open failed for {symbol}: {e}",
                account=self._account,
                service="onchain",
            ) from e

        logger.info(
            "On-chain trade submitted",
            account=self._account,
            symbol=symbol,
            side=side.value,
            qty=str(qty),
            margin=str(margin_amount),
            trade_hash=trade_hash,
        )
        return OrderResult(external_id=trade_hash, status=OrderStatus.PENDING, order_id=trade_hash)

    async def close_position(self, external_id: str) -> CloseResult:
        if not external_id:
            raise AdapterError(
                message="Cannot close position without a trade hash",
                account=self._account,
                service="onchain",
            )
        try:
            tx_hash = await self._gateway.close_trade(external_id)
        except AdapterError:
            raise
        except Exception as e:
            raise AdapterError(
                message=f"On-chain close failed for {external_id}: {e}",
                account=self._account,
                service="onchain",
            ) from e

        logger.info("On-chain close submitted", account=self._account, trade_hash=external_id)
        return CloseResult(status=OrderStatus.PENDING, order_id=tx_hash)
