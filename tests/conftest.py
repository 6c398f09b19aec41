"""Shared test fixtures for CopySync tests.

Provides a session config and mocked exchange adapters that can be
reused across test modules.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from copysync.config.sync_config import SyncConfig
from copysync.infra.adapter import ExchangeAdapter
from copysync.schemas.account import Balance, CloseResult, OrderResult
from copysync.schemas.enums import OrderStatus
from tests.fixtures.positions import MANAGED_ACCOUNT, REFERENCE_ACCOUNT


@pytest.fixture
def sync_config() -> SyncConfig:
    """Dry-run session config with no inter-action delay."""
    return SyncConfig(
        reference_account=REFERENCE_ACCOUNT,
        managed_account=MANAGED_ACCOUNT,
        copy_budget=Decimal("1000"),
        sync_interval_ms=50,
        action_delay_ms=0,
        dry_run=True,
    )


@pytest.fixture
def live_config(sync_config: SyncConfig) -> SyncConfig:
    """Same as sync_config, but placing real orders through the adapter."""
    return sync_config.model_copy(update={"dry_run": False})


@pytest.fixture
def reference_adapter() -> AsyncMock:
    """Reference adapter reporting no positions."""
    adapter = AsyncMock(spec=ExchangeAdapter)
    adapter.fetch_positions.return_value = []
    adapter.fetch_balance.return_value = Balance()
    adapter.fetch_size_decimals.return_value = None
    return adapter


@pytest.fixture
def managed_adapter() -> AsyncMock:
    """Managed adapter with an empty, well-funded account."""
    adapter = AsyncMock(spec=ExchangeAdapter)
    adapter.fetch_positions.return_value = []
    adapter.fetch_balance.return_value = Balance(
        total=Decimal("10000"), free=Decimal("10000"), used=Decimal("0")
    )
    adapter.fetch_size_decimals.return_value = None
    adapter.open_position.return_value = OrderResult(
        external_id="trade-1", status=OrderStatus.PENDING, order_id="tx-1"
    )
    adapter.close_position.return_value = CloseResult(
        status=OrderStatus.CLOSED, order_id="tx-2"
    )
    return adapter
