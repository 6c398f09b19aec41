"""Margin-account adapter for Hyperliquid perpetuals.

Positions and balance come from the clearinghouse state of the account.
Orders are sent as immediate-or-cancel limit orders priced off the mid
with a slippage allowance, which is how the venue emulates market orders.
The external id of a position is its coin, since the venue nets one
position per asset per account.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import structlog

from copysync.engine.diff import normalize_symbol
from copysync.engine.precision import round_to_places
from copysync.exceptions import AdapterError
from copysync.infra.adapter import ExchangeAdapter
from copysync.infra.hyperliquid_client import HyperliquidClient
from copysync.schemas.account import Balance, CloseResult, OrderResult
from copysync.schemas.enums import OrderStatus, PositionSide
from copysync.schemas.position import Position

logger = structlog.get_logger()

DEFAULT_SLIPPAGE = Decimal("0.05")
PRICE_SIGNIFICANT_FIGURES = 5
MAX_PRICE_DECIMALS = 6


def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise AdapterError(
            message=f"Hyperliquid returned non-numeric {field}: {value!r}",
            service="hyperliquid",
        ) from e


def format_price(price: Decimal, sz_decimals: int) -> str:
    """Round a limit price to the venue's tick rules.

    Prices carry at most five significant figures and at most
    ``6 - szDecimals`` decimal places.
    """
    if price <= 0:
        raise AdapterError(message=f"Invalid limit price {price}", service="hyperliquid")
    # Integer prices are always accepted regardless of significant figures.
    if price == price.to_integral_value():
        return str(int(price))
    sig = Decimal(format(price, f".{PRICE_SIGNIFICANT_FIGURES}g"))
    places = max(MAX_PRICE_DECIMALS - sz_decimals, 0)
    rounded = round_to_places(sig, places, ROUND_HALF_UP)
    return format(rounded.normalize(), "f")


def format_size(size: Decimal, sz_decimals: int) -> str:
    rounded = round_to_places(size, sz_decimals, ROUND_DOWN)
    if rounded <= 0:
        raise AdapterError(
            message=f"Size {size} rounds to zero at {sz_decimals} decimals",
            service="hyperliquid",
        )
    return format(rounded.normalize(), "f")


class HyperliquidAdapter(ExchangeAdapter):
    """ExchangeAdapter over the Hyperliquid REST API for a single account."""

    venue = "hyperliquid"

    def __init__(
        self,
        client: HyperliquidClient,
        account: str,
        slippage: Decimal = DEFAULT_SLIPPAGE,
    ) -> None:
        self._client = client
        self._account = account
        self._slippage = slippage
        self._assets: dict[str, tuple[str, int, int]] | None = None

    @property
    def account(self) -> str:
        return self._account

    async def close(self) -> None:
        await self._client.close()

    # Reads
    async def _state(self) -> dict[str, Any]:
        try:
            return await self._client.clearinghouse_state(self._account)
        except AdapterError as e:
            e.account = e.account or self._account
            raise

    async def fetch_positions(self) -> list[Position]:
        """Return the account's open positions.

        Raises:
            AdapterError: If the venue cannot be reached or the payload
                has no ``assetPositions`` list.
        """
        state = await self._state()
        raw_positions = state.get("assetPositions")
        if not isinstance(raw_positions, list):
            raise AdapterError(
                message="Clearinghouse state missing assetPositions",
                account=self._account,
                service="hyperliquid",
            )

        positions: list[Position] = []
        for entry in raw_positions:
            data = entry.get("position", entry) if isinstance(entry, dict) else None
            if not isinstance(data, dict) or not data.get("coin"):
                logger.warning("Skipping malformed asset position", entry=str(entry)[:200])
                continue

            signed_size = _to_decimal(data.get("szi", "0"), "szi")
            if signed_size == 0:
                continue

            leverage_info = data.get("leverage")
            leverage = None
            if isinstance(leverage_info, dict) and leverage_info.get("value") is not None:
                leverage = max(_to_decimal(leverage_info["value"], "leverage"), Decimal("1"))

            margin = data.get("marginUsed")
            positions.append(
                Position(
                    symbol=data["coin"],
                    side=PositionSide.LONG if signed_size > 0 else PositionSide.SHORT,
                    size=abs(signed_size),
                    entry_price=_to_decimal(data.get("entryPx") or "0", "entryPx"),
                    leverage=leverage,
                    external_id=data["coin"],
                    margin=_to_decimal(margin, "marginUsed") if margin is not None else None,
                )
            )

        logger.debug(
            "hyperliquid_positions",
            account=self._account,
            count=len(positions),
        )
        return positions

    async def fetch_balance(self) -> Balance:
        state = await self._state()
        summary = state.get("marginSummary")
        if not isinstance(summary, dict):
            raise AdapterError(
                message="Clearinghouse state missing marginSummary",
                account=self._account,
                service="hyperliquid",
            )
        return Balance(
            total=_to_decimal(summary.get("accountValue", "0"), "accountValue"),
            used=_to_decimal(summary.get("totalMarginUsed", "0"), "totalMarginUsed"),
            free=_to_decimal(state.get("withdrawable", "0"), "withdrawable"),
        )

    async def _asset_table(self) -> dict[str, tuple[str, int, int]]:
        """Map normalized coin to (venue coin, asset index, szDecimals).

        Loaded once per adapter. The venue coin keeps its listed casing
        (``kPEPE``), which is what the mids and orders are keyed by.
        """
        if self._assets is None:
            meta = await self._client.meta()
            table: dict[str, tuple[str, int, int]] = {}
            for index, asset in enumerate(meta.get("universe", [])):
                name = asset.get("name")
                if not name:
                    continue
                table[normalize_symbol(name)] = (name, index, int(asset.get("szDecimals", 0)))
            self._assets = table
        return self._assets

    async def fetch_size_decimals(self) -> dict[str, int] | None:
        table = await self._asset_table()
        return {key: decimals for key, (_, _, decimals) in table.items()}

    async def _resolve_asset(self, symbol: str) -> tuple[str, int, int]:
        key = normalize_symbol(symbol)
        table = await self._asset_table()
        if key not in table:
            raise AdapterError(
                message=f"Unknown Hyperliquid asset {symbol!r}",
                account=self._account,
                service="hyperliquid",
            )
        return table[key]

    async def _limit_price(self, coin: str, is_buy: bool, sz_decimals: int) -> str:
        mids = await self._client.all_mids()
        if coin not in mids:
            raise AdapterError(
                message=f"No mid price for {coin}",
                account=self._account,
                service="hyperliquid",
            )
        mid = _to_decimal(mids[coin], "mid")
        factor = Decimal("1") + self._slippage if is_buy else Decimal("1") - self._slippage
        return format_price(mid * factor, sz_decimals)

    # Writes
    async def _submit_order(
        self,
        asset: int,
        is_buy: bool,
        price: str,
        size: str,
        reduce_only: bool,
    ) -> tuple[OrderStatus, str | None]:
        action = {
            "type": "order",
            "orders": [
                {
                    "a": asset,
                    "b": is_buy,
                    "p": price,
                    "s": size,
                    "r": reduce_only,
                    "t": {"limit": {"tif": "Ioc"}},
                }
            ],
            "grouping": "na",
        }
        try:
            response = await self._client.exchange(action)
        except AdapterError as e:
            e.account = e.account or self._account
            raise

        statuses = response.get("response", {}).get("data", {}).get("statuses", [])
        if not statuses:
            raise AdapterError(
                message="Hyperliquid order response has no statuses",
                account=self._account,
                service="hyperliquid",
            )
        status = statuses[0]
        if "error" in status:
            raise AdapterError(
                message=f"Hyperliquid rejected order: {status['error']}",
                account=self._account,
                service="hyperliquid",
            )
        if "filled" in status:
            return OrderStatus.OPEN, str(status["filled"].get("oid", "")) or None
        if "resting" in status:
            return OrderStatus.PENDING, str(status["resting"].get("oid", "")) or None
        raise AdapterError(
            message=f"Unexpected Hyperliquid order status: {status}",
            account=self._account,
            service="hyperliquid",
        )

    async def _update_leverage(self, asset: int, leverage: int) -> None:
        await self._client.exchange(
            {
                "type": "updateLeverage",
                "asset": asset,
                "isCross": True,
                "leverage": leverage,
            }
        )

    async def open_position(
        self,
        symbol: str,
        side: PositionSide,
        margin_amount: Decimal,
        size: Decimal,
    ) -> OrderResult:
        """Open or extend a position with an IOC limit order.

        The account leverage for the asset is set from ``size * mid /
        margin_amount`` before the order, so the margin locked matches
        the requested amount.

        Raises:
            AdapterError: If the asset is unknown, no signer is configured
                or the order is rejected.
        """
        coin, asset, sz_decimals = await self._resolve_asset(symbol)
        price = await self._limit_price(coin, side.is_buy, sz_decimals)
        size_str = format_size(size, sz_decimals)

        if margin_amount > 0:
            notional = Decimal(size_str) * Decimal(price)
            leverage = int(max((notional / margin_amount).to_integral_value(ROUND_HALF_UP), 1))
            await self._update_leverage(asset, leverage)

        status, order_id = await self._submit_order(
            asset, side.is_buy, price, size_str, reduce_only=False
        )
        logger.info(
            "Hyperliquid order placed",
            account=self._account,
            symbol=coin,
            side=side.value,
            size=size_str,
            price=price,
            status=status.value,
        )
        return OrderResult(external_id=coin, status=status, order_id=order_id)

    async def close_position(self, external_id: str) -> CloseResult:
        """Close the whole position in ``external_id`` with a reduce-only order."""
        if not external_id:
            raise AdapterError(
                message="Cannot close position without an external id",
                account=self._account,
                service="hyperliquid",
            )
        coin, asset, sz_decimals = await self._resolve_asset(external_id)

        current = next(
            (p for p in await self.fetch_positions() if normalize_symbol(p.symbol) == normalize_symbol(coin)),
            None,
        )
        if current is None:
            raise AdapterError(
                message=f"No open Hyperliquid position for {coin}",
                account=self._account,
                service="hyperliquid",
            )

        is_buy = current.side.opposite.is_buy
        price = await self._limit_price(coin, is_buy, sz_decimals)
        size_str = format_size(current.size, sz_decimals)
        status, order_id = await self._submit_order(
            asset, is_buy, price, size_str, reduce_only=True
        )
        logger.info(
            "Hyperliquid position closed",
            account=self._account,
            symbol=coin,
            size=size_str,
            status=status.value,
        )
        return CloseResult(
            status=OrderStatus.CLOSED if status is OrderStatus.OPEN else status,
            order_id=order_id,
        )
