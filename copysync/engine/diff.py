"""Diff engine: turns desired vs. actual positions into an action set.

Matching is by normalized symbol, so the same instrument lines up across
venues with different naming conventions (``BTC/USD:USD``, ``BTC-USD``,
``BTCUSDT`` and ``BTC`` all match). Dust is never chased: small target
positions are not opened and small existing positions are not closed.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import Decimal

import structlog

from copysync.schemas.diff import Adjustment, DiffResult, Flip
from copysync.schemas.enums import AdjustAction
from copysync.schemas.position import Position

logger = structlog.get_logger()

DEFAULT_SIZE_THRESHOLD = Decimal("0.05")
DEFAULT_MIN_POSITION_VALUE = Decimal("200")
DEFAULT_MIN_POSITION_SIZE = Decimal("0.0001")

_VENUE_SUFFIX = re.compile(r"[-/:].*$")
_QUOTE_SUFFIX = re.compile(r"(USDT|USDC|USD)$")


def normalize_symbol(symbol: str | None) -> str:
    """Canonicalize an instrument identifier for cross-venue matching.

    >>> normalize_symbol("btc/usd:usd")
    'BTC'
    >>> normalize_symbol("ETHUSDT")
    'ETH'
    """
    if not symbol:
        return ""
    base = _VENUE_SUFFIX.sub("", symbol.strip().upper())
    stripped = _QUOTE_SUFFIX.sub("", base).strip()
    return stripped or base


def _index_by_symbol(
    positions: Iterable[Position],
    label: str,
    warnings: list[str],
) -> dict[str, Position]:
    # First match wins on a normalized-symbol collision.
    indexed: dict[str, Position] = {}
    for position in positions:
        key = normalize_symbol(position.symbol)
        if key in indexed:
            message = (
                f"Duplicate {label} symbol {position.symbol!r} normalizes to "
                f"{key!r}; keeping {indexed[key].symbol!r}"
            )
            warnings.append(message)
            logger.warning(
                "Duplicate normalized symbol ignored",
                collection=label,
                symbol=position.symbol,
                normalized=key,
                kept=indexed[key].symbol,
            )
            continue
        indexed[key] = position
    return indexed


def _as_positions(value: object) -> list[Position]:
    if not isinstance(value, (list, tuple)):
        return []
    return [p for p in value if isinstance(p, Position)]


def calculate_diff(
    target_positions: list[Position],
    actual_positions: list[Position],
    *,
    size_threshold: Decimal = DEFAULT_SIZE_THRESHOLD,
    min_position_value: Decimal = DEFAULT_MIN_POSITION_VALUE,
    min_position_size: Decimal = DEFAULT_MIN_POSITION_SIZE,
) -> DiffResult:
    """Compute the actions that converge ``actual_positions`` to the target.

    Args:
        target_positions: Scaled target positions.
        actual_positions: Freshly polled managed-account positions.
        size_threshold: Tolerated size difference as a fraction of target size.
        min_position_value: Notional floor. Targets below it are not pursued
            and actual positions below it are left alone.
        min_position_size: Absolute size difference below which no
            adjustment is emitted.

    Returns:
        DiffResult whose lists are disjoint over normalized symbol.
        Malformed input is treated as empty.
    """
    warnings: list[str] = []
    targets = _as_positions(target_positions)
    actuals = _as_positions(actual_positions)

    filtered_targets = []
    for target in targets:
        if target.market_value < min_position_value:
            logger.debug(
                "Skipping small target position",
                symbol=target.symbol,
                value=str(target.market_value),
                min_value=str(min_position_value),
            )
            continue
        filtered_targets.append(target)

    target_map = _index_by_symbol(filtered_targets, "target", warnings)
    actual_map = _index_by_symbol(actuals, "actual", warnings)

    to_add: list[Position] = []
    to_adjust: list[Adjustment] = []
    to_flip: list[Flip] = []

    for key, target in target_map.items():
        current = actual_map.get(key)
        if current is None:
            to_add.append(target)
            continue

        if current.side != target.side:
            to_flip.append(Flip(symbol=key, current=current, target=target))
            continue

        size_diff = abs(current.size - target.size)
        if size_diff > target.size * size_threshold and size_diff > min_position_size:
            to_adjust.append(
                Adjustment(
                    symbol=key,
                    side=target.side,
                    current_size=current.size,
                    target_size=target.size,
                    difference=target.size - current.size,
                    action=(
                        AdjustAction.INCREASE
                        if target.size > current.size
                        else AdjustAction.DECREASE
                    ),
                    current=current,
                    target=target,
                )
            )

    to_remove: list[Position] = []
    for key, current in actual_map.items():
        if key in target_map:
            continue
        if current.market_value < min_position_value:
            logger.debug(
                "Ignoring small current position",
                symbol=current.symbol,
                value=str(current.market_value),
                min_value=str(min_position_value),
            )
            continue
        to_remove.append(current)

    return DiffResult(
        to_add=to_add,
        to_remove=to_remove,
        to_adjust=to_adjust,
        to_flip=to_flip,
        warnings=warnings,
    )


def is_in_sync(diff: DiffResult) -> bool:
    """True when the diff requires no action."""
    return diff.is_empty
