from copysync.infra.adapter import ExchangeAdapter
from copysync.infra.hyperliquid_adapter import HyperliquidAdapter
from copysync.infra.hyperliquid_client import HyperliquidClient
from copysync.infra.onchain_adapter import OnChainAdapter, TradingContractGateway

__all__ = [
    "ExchangeAdapter",
    "HyperliquidAdapter",
    "HyperliquidClient",
    "OnChainAdapter",
    "TradingContractGateway",
]
