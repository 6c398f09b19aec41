"""Tests for OnChainAdapter at copysync/infra/onchain_adapter.py."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from copysync.exceptions import AdapterError
from copysync.infra.onchain_adapter import (
    OnChainAdapter,
    TradingContractGateway,
    from_units,
    to_pair_symbol,
    to_units,
)
from copysync.schemas.enums import OrderStatus, PositionSide
from tests.fixtures.positions import MANAGED_ACCOUNT

BTC_PAIR = "0x" + "1" * 40
ETH_PAIR = "0x" + "2" * 40
PAIRS = {"BTC/USD": BTC_PAIR, "ETH/USD": ETH_PAIR}


def _raw_position(**overrides):
    raw = {
        "trade_hash": "0xtrade1",
        "pair_base": BTC_PAIR,
        "is_long": True,
        "qty": 5_000_000_000,  # 0.5
        "entry_price": 50_000 * 10**18,
        "margin": 2_500 * 10**6,
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def gateway() -> AsyncMock:
    gateway = AsyncMock(spec=TradingContractGateway)
    gateway.margin_decimals = 6
    gateway.get_positions.return_value = [_raw_position()]
    gateway.margin_token_balance.return_value = 10_000 * 10**6
    gateway.open_market_trade.return_value = "0xtrade9"
    gateway.close_trade.return_value = "0xtx9"
    return gateway


@pytest.fixture
def adapter(gateway) -> OnChainAdapter:
    return OnChainAdapter(gateway, MANAGED_ACCOUNT, PAIRS)


class TestSymbolConversion:
    """Test venue-neutral to pair-name conversion."""

    @pytest.mark.parametrize(
        "symbol, expected",
        [
            ("BTC", "BTC/USD"),
            ("BTC/USD", "BTC/USD"),
            ("ETH/USD:USD", "ETH/USD"),
            ("SOL-PERP", "SOL/USD"),
            ("BTCUSD", "BTC/USD"),
            ("BTC-USD", "BTC/USD"),
            ("eth", "ETH/USD"),
        ],
    )
    def test_to_pair_symbol(self, symbol, expected):
        assert to_pair_symbol(symbol) == expected

    def test_override_wins(self):
        assert to_pair_symbol("WBTC", {"WBTC": "BTC/USD"}) == "BTC/USD"

    def test_unit_round_trip_truncates(self):
        assert from_units(1_600_000_000, 10) == Decimal("0.16")
        assert to_units(Decimal("0.123456789"), 6) == 123456


class TestReads:
    """Test position and balance reads."""

    @pytest.mark.asyncio
    async def test_fetch_positions_converts_units(self, adapter, gateway):
        positions = await adapter.fetch_positions()

        gateway.get_positions.assert_awaited_once_with(MANAGED_ACCOUNT)
        assert len(positions) == 1
        position = positions[0]
        assert position.symbol == "BTC/USD"
        assert position.side == PositionSide.LONG
        assert position.size == Decimal("0.5")
        assert position.entry_price == Decimal("50000")
        assert position.margin == Decimal("2500")
        assert position.leverage == Decimal("10")
        assert position.external_id == "0xtrade1"

    @pytest.mark.asyncio
    async def test_short_position(self, adapter, gateway):
        gateway.get_positions.return_value = [_raw_position(is_long=False)]

        positions = await adapter.fetch_positions()

        assert positions[0].side == PositionSide.SHORT
        assert positions[0].symbol == "BTC/USD"

    @pytest.mark.asyncio
    async def test_unconfigured_pair_dropped(self, adapter, gateway):
        unknown = "0x" + "9" * 40
        gateway.get_positions.return_value = [
            _raw_position(pair_base=unknown, trade_hash="0xstray"),
            _raw_position(pair_base=ETH_PAIR, trade_hash="0xeth"),
        ]

        positions = await adapter.fetch_positions()

        assert [p.external_id for p in positions] == ["0xeth"]
        assert all(not p.symbol.startswith("0x") for p in positions)

    @pytest.mark.asyncio
    async def test_leverage_clamped_to_one(self, adapter, gateway):
        gateway.get_positions.return_value = [_raw_position(margin=50_000 * 10**6)]
        positions = await adapter.fetch_positions()
        assert positions[0].leverage == Decimal("1")

    @pytest.mark.asyncio
    async def test_invalid_positions_filtered(self, adapter, gateway):
        gateway.get_positions.return_value = [
            _raw_position(qty=0),
            _raw_position(entry_price=0),
            _raw_position(trade_hash=None),
            _raw_position(qty="not-a-number"),
            _raw_position(trade_hash="0xok"),
        ]
        positions = await adapter.fetch_positions()
        assert [p.external_id for p in positions] == ["0xok"]

    @pytest.mark.asyncio
    async def test_gateway_failure_raises_adapter_error(self, adapter, gateway):
        gateway.get_positions.side_effect = RuntimeError("rpc down")
        with pytest.raises(AdapterError, match="rpc down"):
            await adapter.fetch_positions()

    @pytest.mark.asyncio
    async def test_fetch_balance(self, adapter):
        balance = await adapter.fetch_balance()
        assert balance.total == Decimal("10000")
        assert balance.used == Decimal("2500")
        assert balance.free == Decimal("7500")

    @pytest.mark.asyncio
    async def test_free_balance_never_negative(self, adapter, gateway):
        gateway.margin_token_balance.return_value = 1_000 * 10**6
        balance = await adapter.fetch_balance()
        assert balance.free == Decimal("0")

    @pytest.mark.asyncio
    async def test_size_decimals_fixed(self, adapter):
        assert await adapter.fetch_size_decimals() == {"BTC": 4, "ETH": 4}


class TestWrites:
    """Test trade submission and closing."""

    @pytest.mark.asyncio
    async def test_open_position_pending(self, adapter, gateway):
        result = await adapter.open_position(
            "BTC", PositionSide.LONG, Decimal("800"), Decimal("0.16")
        )

        gateway.open_market_trade.assert_awaited_once_with(
            BTC_PAIR, True, 800_000_000, 1_600_000_000
        )
        assert result.status == OrderStatus.PENDING
        assert result.external_id == "0xtrade9"

    @pytest.mark.asyncio
    async def test_open_truncates_to_four_decimals(self, adapter, gateway):
        await adapter.open_position("ETH", PositionSide.SHORT, Decimal("100"), Decimal("0.123456"))
        args = gateway.open_market_trade.await_args.args
        assert args[0] == ETH_PAIR
        assert args[1] is False
        assert args[3] == 1_234_000_000

    @pytest.mark.asyncio
    async def test_open_unconfigured_pair_raises(self, adapter, gateway):
        with pytest.raises(AdapterError, match="not configured"):
            await adapter.open_position("DOGE", PositionSide.LONG, Decimal("10"), Decimal("100"))
        gateway.open_market_trade.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_open_size_rounding_to_zero_raises(self, adapter):
        with pytest.raises(AdapterError, match="rounds to zero"):
            await adapter.open_position("BTC", PositionSide.LONG, Decimal("10"), Decimal("0.00001"))

    @pytest.mark.asyncio
    async def test_close_position(self, adapter, gateway):
        result = await adapter.close_position("0xtrade1")
        gateway.close_trade.assert_awaited_once_with("0xtrade1")
        assert result.status == OrderStatus.PENDING
        assert result.order_id == "0xtx9"

    @pytest.mark.asyncio
    async def test_close_without_hash_raises(self, adapter):
        with pytest.raises(AdapterError):
            await adapter.close_position("")
