"""Tests for HyperliquidAdapter at copysync/infra/hyperliquid_adapter.py."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from copysync.exceptions import AdapterError
from copysync.infra.hyperliquid_adapter import HyperliquidAdapter, format_price, format_size
from copysync.infra.hyperliquid_client import HyperliquidClient
from copysync.schemas.enums import OrderStatus, PositionSide
from tests.fixtures.hyperliquid_responses import (
    ALL_MIDS,
    CLEARINGHOUSE_STATE,
    LEVERAGE_UPDATED,
    META,
    ORDER_ERROR,
    ORDER_FILLED,
    ORDER_RESTING,
)
from tests.fixtures.positions import MANAGED_ACCOUNT


@pytest.fixture
def client() -> AsyncMock:
    client = AsyncMock(spec=HyperliquidClient)
    client.clearinghouse_state.return_value = CLEARINGHOUSE_STATE
    client.meta.return_value = META
    client.all_mids.return_value = ALL_MIDS
    return client


@pytest.fixture
def adapter(client) -> HyperliquidAdapter:
    return HyperliquidAdapter(client, MANAGED_ACCOUNT)


class TestFormatting:
    """Test venue price and size formatting."""

    @pytest.mark.parametrize(
        "price, sz_decimals, expected",
        [
            (Decimal("52500.00"), 5, "52500"),
            (Decimal("52500.7"), 5, "52501"),
            (Decimal("0.123456789"), 0, "0.12346"),
            (Decimal("0.123456789"), 4, "0.12"),
            (Decimal("157.7625"), 2, "157.76"),
        ],
    )
    def test_format_price(self, price, sz_decimals, expected):
        assert format_price(price, sz_decimals) == expected

    def test_format_price_rejects_non_positive(self):
        with pytest.raises(AdapterError):
            format_price(Decimal("0"), 2)

    def test_format_size_rounds_down(self):
        assert format_size(Decimal("0.123456"), 4) == "0.1234"
        assert format_size(Decimal("0.20000"), 5) == "0.2"

    def test_format_size_zero_raises(self):
        with pytest.raises(AdapterError, match="rounds to zero"):
            format_size(Decimal("0.004"), 2)


class TestReads:
    """Test position, balance and metadata reads."""

    @pytest.mark.asyncio
    async def test_fetch_positions(self, adapter, client):
        positions = await adapter.fetch_positions()

        client.clearinghouse_state.assert_awaited_once_with(MANAGED_ACCOUNT)
        assert [p.symbol for p in positions] == ["BTC", "ETH"]

        btc, eth = positions
        assert btc.side == PositionSide.LONG
        assert btc.size == Decimal("0.5")
        assert btc.entry_price == Decimal("50000.0")
        assert btc.leverage == Decimal("10")
        assert btc.margin == Decimal("2500.0")
        assert btc.external_id == "BTC"

        assert eth.side == PositionSide.SHORT
        assert eth.size == Decimal("2.0")
        assert eth.leverage == Decimal("5")

    @pytest.mark.asyncio
    async def test_fetch_positions_missing_list_raises(self, adapter, client):
        client.clearinghouse_state.return_value = {"marginSummary": {}}
        with pytest.raises(AdapterError, match="assetPositions"):
            await adapter.fetch_positions()

    @pytest.mark.asyncio
    async def test_fetch_positions_skips_malformed(self, adapter, client):
        client.clearinghouse_state.return_value = {
            "assetPositions": [{"position": {"szi": "1"}}, "junk"],
        }
        assert await adapter.fetch_positions() == []

    @pytest.mark.asyncio
    async def test_client_error_carries_account(self, adapter, client):
        client.clearinghouse_state.side_effect = AdapterError("boom", service="hyperliquid")
        with pytest.raises(AdapterError) as exc_info:
            await adapter.fetch_positions()
        assert exc_info.value.account == MANAGED_ACCOUNT

    @pytest.mark.asyncio
    async def test_fetch_balance(self, adapter):
        balance = await adapter.fetch_balance()
        assert balance.total == Decimal("10000.0")
        assert balance.used == Decimal("3700.0")
        assert balance.free == Decimal("6300.0")

    @pytest.mark.asyncio
    async def test_fetch_size_decimals_cached(self, adapter, client):
        decimals = await adapter.fetch_size_decimals()
        await adapter.fetch_size_decimals()

        assert decimals == {"BTC": 5, "ETH": 4, "SOL": 2}
        client.meta.assert_awaited_once()


class TestOpenPosition:
    """Test order placement."""

    @pytest.mark.asyncio
    async def test_open_filled(self, adapter, client):
        client.exchange.side_effect = [LEVERAGE_UPDATED, ORDER_FILLED]

        result = await adapter.open_position(
            "BTC/USD:USD", PositionSide.LONG, Decimal("1050"), Decimal("0.2")
        )

        assert result.status == OrderStatus.OPEN
        assert result.external_id == "BTC"
        assert result.order_id == "77"

        leverage_action = client.exchange.await_args_list[0].args[0]
        assert leverage_action["type"] == "updateLeverage"
        assert leverage_action["asset"] == 0
        assert leverage_action["leverage"] == 10

        order_action = client.exchange.await_args_list[1].args[0]
        order = order_action["orders"][0]
        assert order["a"] == 0
        assert order["b"] is True
        assert order["p"] == "52500"
        assert order["s"] == "0.2"
        assert order["r"] is False
        assert order["t"] == {"limit": {"tif": "Ioc"}}

    @pytest.mark.asyncio
    async def test_open_short_prices_below_mid(self, adapter, client):
        client.exchange.side_effect = [LEVERAGE_UPDATED, ORDER_RESTING]

        result = await adapter.open_position("ETH", PositionSide.SHORT, Decimal("600"), Decimal("1"))

        assert result.status == OrderStatus.PENDING
        order = client.exchange.await_args_list[1].args[0]["orders"][0]
        assert order["b"] is False
        assert order["p"] == "2850"

    @pytest.mark.asyncio
    async def test_open_rejected_raises(self, adapter, client):
        client.exchange.side_effect = [LEVERAGE_UPDATED, ORDER_ERROR]
        with pytest.raises(AdapterError, match="could not immediately match"):
            await adapter.open_position("BTC", PositionSide.LONG, Decimal("1000"), Decimal("0.2"))

    @pytest.mark.asyncio
    async def test_open_unknown_asset_raises(self, adapter, client):
        with pytest.raises(AdapterError, match="Unknown Hyperliquid asset"):
            await adapter.open_position("XYZ", PositionSide.LONG, Decimal("100"), Decimal("1"))
        client.exchange.assert_not_awaited()


class TestClosePosition:
    """Test closing with reduce-only orders."""

    @pytest.mark.asyncio
    async def test_close_short_buys_reduce_only(self, adapter, client):
        client.exchange.return_value = ORDER_FILLED

        result = await adapter.close_position("ETH")

        assert result.status == OrderStatus.CLOSED
        order = client.exchange.await_args.args[0]["orders"][0]
        assert order["a"] == 1
        assert order["b"] is True
        assert order["r"] is True
        assert order["s"] == "2"
        assert order["p"] == "3150"

    @pytest.mark.asyncio
    async def test_close_without_position_raises(self, adapter, client):
        with pytest.raises(AdapterError, match="No open Hyperliquid position"):
            await adapter.close_position("SOL")
        client.exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_empty_id_raises(self, adapter):
        with pytest.raises(AdapterError):
            await adapter.close_position("")


class TestMixedCaseCoins:
    """Test coins the venue lists with lowercase prefixes, such as kPEPE."""

    @pytest.fixture
    def kpepe_client(self, client) -> AsyncMock:
        client.meta.return_value = {
            "universe": [*META["universe"], {"name": "kPEPE", "szDecimals": 0, "maxLeverage": 10}]
        }
        client.all_mids.return_value = {**ALL_MIDS, "kPEPE": "0.0120"}
        client.clearinghouse_state.return_value = {
            "assetPositions": [
                {
                    "type": "oneWay",
                    "position": {
                        "coin": "kPEPE",
                        "szi": "-100000",
                        "entryPx": "0.0118",
                        "leverage": {"type": "cross", "value": 5},
                        "marginUsed": "236.0",
                    },
                }
            ],
            "marginSummary": {"accountValue": "1000.0", "totalMarginUsed": "236.0"},
            "withdrawable": "764.0",
        }
        return client

    @pytest.mark.asyncio
    async def test_size_decimals_keyed_by_normalized_symbol(self, adapter, kpepe_client):
        decimals = await adapter.fetch_size_decimals()
        assert decimals["KPEPE"] == 0

    @pytest.mark.asyncio
    async def test_open_sends_listed_coin(self, adapter, kpepe_client):
        kpepe_client.exchange.side_effect = [LEVERAGE_UPDATED, ORDER_FILLED]

        result = await adapter.open_position(
            "kPEPE", PositionSide.LONG, Decimal("240"), Decimal("100000")
        )

        assert result.external_id == "kPEPE"
        leverage_action = kpepe_client.exchange.await_args_list[0].args[0]
        assert leverage_action["asset"] == 3
        assert leverage_action["leverage"] == 5
        order = kpepe_client.exchange.await_args_list[1].args[0]["orders"][0]
        assert order["a"] == 3
        assert order["p"] == "0.0126"
        assert order["s"] == "100000"

    @pytest.mark.asyncio
    async def test_close_fetched_position(self, adapter, kpepe_client):
        kpepe_client.exchange.return_value = ORDER_FILLED

        (position,) = await adapter.fetch_positions()
        result = await adapter.close_position(position.external_id)

        assert position.symbol == "kPEPE"
        assert result.status == OrderStatus.CLOSED
        order = kpepe_client.exchange.await_args.args[0]["orders"][0]
        assert order["a"] == 3
        assert order["b"] is True
        assert order["r"] is True
        assert order["s"] == "100000"

    @pytest.mark.asyncio
    async def test_uppercase_symbol_resolves(self, adapter, kpepe_client):
        kpepe_client.exchange.side_effect = [LEVERAGE_UPDATED, ORDER_FILLED]

        result = await adapter.open_position(
            "KPEPE-USD", PositionSide.LONG, Decimal("240"), Decimal("100000")
        )

        assert result.external_id == "kPEPE"
