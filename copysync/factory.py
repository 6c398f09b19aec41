"""Service factory: wires adapters, storage and the sync service from config.

The execution venue is chosen here, at configuration time, from
``SyncConfig.venue``. The reference account is always read from
Hyperliquid's public API; only the managed account's adapter varies.
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from copysync.config.settings import CopySyncSettings
from copysync.config.sync_config import SyncConfig
from copysync.exceptions import InvalidInputError
from copysync.infra.adapter import ExchangeAdapter
from copysync.infra.hyperliquid_adapter import HyperliquidAdapter
from copysync.infra.hyperliquid_client import ActionSigner, HyperliquidClient
from copysync.infra.onchain_adapter import OnChainAdapter, TradingContractGateway
from copysync.schemas.enums import Venue
from copysync.services.observers import ObserverHub
from copysync.services.sync_service import PositionSyncService
from copysync.storage.cycle_journal import CycleJournal

logger = structlog.get_logger()


def build_reference_adapter(
    config: SyncConfig,
    client: HyperliquidClient | None = None,
) -> HyperliquidAdapter:
    """Read-only adapter for the account being copied."""
    client = client or HyperliquidClient(testnet=config.testnet)
    return HyperliquidAdapter(client, config.reference_account)


def build_managed_adapter(
    config: SyncConfig,
    *,
    signer: ActionSigner | None = None,
    gateway: TradingContractGateway | None = None,
    pair_addresses: Mapping[str, str] | None = None,
    client: HyperliquidClient | None = None,
) -> ExchangeAdapter:
    """Build the adapter for the managed account on the configured venue.

    Args:
        config: Session configuration.
        signer: Request signer for live Hyperliquid trading.
        gateway: Contract gateway for the on-chain venue.
        pair_addresses: Pair symbol to contract address for the on-chain venue.
        client: Pre-built Hyperliquid client (tests).

    Raises:
        InvalidInputError: If the venue's required collaborators are missing.
    """
    if config.managed_account is None:
        raise InvalidInputError(
            "managed_account is required to read the managed portfolio",
            field="managed_account",
        )

    if config.venue == Venue.ONCHAIN:
        if gateway is None:
            raise InvalidInputError(
                "The on-chain venue requires a TradingContractGateway",
                field="venue",
            )
        adapter: ExchangeAdapter = OnChainAdapter(
            gateway,
            config.managed_account,
            pair_addresses or {},
        )
    else:
        if not config.dry_run and signer is None and client is None:
            raise InvalidInputError(
                "Live trading on Hyperliquid requires a request signer",
                field="dry_run",
            )
        client = client or HyperliquidClient(testnet=config.testnet, signer=signer)
        adapter = HyperliquidAdapter(client, config.managed_account)

    logger.info(
        "Managed adapter built",
        venue=adapter.venue,
        account=config.managed_account,
        dry_run=config.dry_run,
        testnet=config.testnet,
    )
    return adapter


def build_service(
    config: SyncConfig,
    *,
    settings: CopySyncSettings | None = None,
    reference: ExchangeAdapter | None = None,
    managed: ExchangeAdapter | None = None,
    observers: ObserverHub | None = None,
    signer: ActionSigner | None = None,
    gateway: TradingContractGateway | None = None,
    pair_addresses: Mapping[str, str] | None = None,
) -> PositionSyncService:
    """Build a PositionSyncService with its adapters and journal."""
    journal = None
    if settings is not None and settings.persist_runs:
        journal = CycleJournal(persist_path=settings.runs_path)

    return PositionSyncService(
        reference=reference or build_reference_adapter(config),
        adapter=managed
        or build_managed_adapter(
            config,
            signer=signer,
            gateway=gateway,
            pair_addresses=pair_addresses,
        ),
        config=config,
        observers=observers,
        journal=journal,
    )
