"""Position sync service — the control loop that keeps a managed account
converged on a scaled copy of a reference account.

Each cycle polls both accounts, scales the reference set into the copy
budget, diffs it against the managed positions and executes the
resulting actions through the managed account's exchange adapter.
Failures are cycle-scoped: a failed fetch aborts the cycle, a failed
action is counted and skipped, and the next cycle re-attempts whatever
is still out of sync.

Lifecycle:
  - start(): first cycle immediately, then one every sync interval
  - force_sync_now(): an extra cycle without touching the schedule
  - stop(): finishes the in-flight action, then exits and returns stats
  - run_once(): a single cycle outside of any running session
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from typing import Optional
from uuid import UUID, uuid4

import structlog

from copysync.config.sync_config import SyncConfig
from copysync.engine.diff import calculate_diff, normalize_symbol
from copysync.engine.scaling import scale_positions
from copysync.engine.trade_scaler import scale_trade_with_margin
from copysync.exceptions import AdapterError, InsufficientCapitalError
from copysync.infra.adapter import ExchangeAdapter
from copysync.schemas.diff import Adjustment, DiffResult, Flip
from copysync.schemas.enums import CycleStatus, PositionSide, SyncAction
from copysync.schemas.position import Position
from copysync.schemas.sync import ActionEvent, ActionOutcome, SyncReport, SyncStats
from copysync.services.observers import ObserverHub
from copysync.storage.cycle_journal import CycleJournal
from copysync.utils.logging import get_logger

DRY_RUN_OPEN_ID = "DRY-RUN-OPEN"
DRY_RUN_CLOSE_ID = "DRY-RUN-CLOSE"


@dataclass
class SyncerState:
    """Mutable session state, owned by exactly one PositionSyncService.

    Created on start() and discarded on stop(). The cached position maps
    only feed change-detection logging; decisions always use a fresh poll.
    """

    is_running: bool = True
    scaling_factor: Decimal = Decimal("1")
    syncs_completed: int = 0
    positions_added: int = 0
    positions_removed: int = 0
    positions_adjusted: int = 0
    actions_skipped: int = 0
    errors: int = 0
    last_sync_time: Optional[datetime] = None
    last_reference: dict[str, Position] = field(default_factory=dict)
    last_managed: dict[str, Position] = field(default_factory=dict)

    def snapshot(self) -> SyncStats:
        return SyncStats(
            syncs_completed=self.syncs_completed,
            positions_added=self.positions_added,
            positions_removed=self.positions_removed,
            positions_adjusted=self.positions_adjusted,
            actions_skipped=self.actions_skipped,
            errors=self.errors,
            last_sync_time=self.last_sync_time,
            is_running=self.is_running,
            scaling_factor=self.scaling_factor,
        )


@dataclass
class _CycleContext:
    """Per-cycle scratch data: free-margin estimate and action records."""

    cycle_id: UUID
    log: structlog.BoundLogger
    free_margin: Decimal
    outcomes: list[ActionOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    flipped: set[str] = field(default_factory=set)
    interrupted: bool = False

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.succeeded and not o.skipped)


def _index(positions: list[Position]) -> dict[str, Position]:
    indexed: dict[str, Position] = {}
    for position in positions:
        indexed.setdefault(normalize_symbol(position.symbol), position)
    return indexed


class PositionSyncService:
    """Periodic reconciliation of a managed account against a reference account."""

    def __init__(
        self,
        reference: ExchangeAdapter,
        adapter: ExchangeAdapter,
        config: SyncConfig,
        observers: ObserverHub | None = None,
        journal: CycleJournal | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            reference: Read-only adapter for the account being copied.
            adapter: Adapter for the managed account; the only one that trades.
            config: Session configuration.
            observers: Receives cycle reports and action events.
            journal: Journal for cycle reports. Optional.
        """
        self._reference = reference
        self._adapter = adapter
        self._config = config
        self._observers = observers or ObserverHub()
        self._journal = journal
        self._log = get_logger("sync_service", account=config.managed_account)

        self._state: SyncerState | None = None
        self._last_stats = SyncStats()
        self._cycle_lock = asyncio.Lock()
        self._stop_event: asyncio.Event | None = None
        self._loop_task: asyncio.Task | None = None
        self._cycle_task: asyncio.Task | None = None

    @property
    def observers(self) -> ObserverHub:
        return self._observers

    @property
    def is_running(self) -> bool:
        return self._state is not None and self._state.is_running

    @property
    def stats(self) -> SyncStats:
        """Read-only snapshot of the current (or last finished) session stats."""
        if self._state is not None:
            return self._state.snapshot()
        return self._last_stats

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start syncing: one cycle now, then one every sync interval."""
        if self.is_running:
            self._log.warning("Position sync already running")
            return

        self._state = SyncerState(scaling_factor=self._last_stats.scaling_factor)
        self._stop_event = asyncio.Event()
        self._log.info(
            "Starting position sync",
            reference=self._config.reference_account,
            budget=str(self._config.copy_budget),
            interval_seconds=self._config.sync_interval_seconds,
            dry_run=self._config.dry_run,
        )

        await self._safe_cycle(self._state, trigger="start")

        if self._state is not None and self._state.is_running:
            self._loop_task = asyncio.create_task(self._run_loop(self._state, self._stop_event))

    async def stop(self) -> SyncStats:
        """Stop syncing and return the final stats.

        The in-flight action, if any, completes; no further action or
        cycle starts afterwards.
        """
        state = self._state
        if state is None or not state.is_running:
            self._log.warning("Position sync not running")
            return self._last_stats

        self._log.info("Stopping position sync")
        state.is_running = False
        if self._stop_event is not None:
            self._stop_event.set()

        # Wait out an in-flight cycle unless stop was called from inside it.
        if self._cycle_lock.locked() and self._cycle_task is not asyncio.current_task():
            async with self._cycle_lock:
                pass

        task = self._loop_task
        if task is not None and task is not asyncio.current_task():
            await task

        self._last_stats = state.snapshot()
        self._state = None
        self._loop_task = None
        self._stop_event = None
        self._log.info("Position sync stopped", **self._last_stats.model_dump(mode="json"))
        return self._last_stats

    async def force_sync_now(self) -> SyncReport | None:
        """Run one cycle immediately without resetting the schedule."""
        if self._state is None or not self._state.is_running:
            self._log.warning("Force sync requested but position sync is not running")
            return None
        self._log.info("Force sync requested")
        return await self._safe_cycle(self._state, trigger="manual")

    async def run_once(self) -> SyncReport | None:
        """Run a single cycle with a throwaway session state."""
        if self.is_running:
            return await self.force_sync_now()

        state = SyncerState(scaling_factor=self._last_stats.scaling_factor)
        report = await self._safe_cycle(state, trigger="once")
        state.is_running = False
        self._last_stats = state.snapshot()
        return report

    async def close(self) -> None:
        """Stop if running, drain observers and release adapter resources."""
        if self.is_running:
            await self.stop()
        await self._observers.drain()
        await self._reference.close()
        if self._adapter is not self._reference:
            await self._adapter.close()

    async def _run_loop(self, state: SyncerState, stop_event: asyncio.Event) -> None:
        interval = self._config.sync_interval_seconds
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
                break  # Stop requested
            except asyncio.TimeoutError:
                pass  # Timeout = next cycle

            await self._safe_cycle(state, trigger="schedule")

    async def _safe_cycle(self, state: SyncerState, trigger: str) -> SyncReport | None:
        try:
            return await self._run_cycle(state, trigger)
        except Exception as e:
            state.errors += 1
            self._log.error("Sync cycle failed", trigger=trigger, error=str(e))
            return None

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def _run_cycle(self, state: SyncerState, trigger: str) -> SyncReport | None:
        async with self._cycle_lock:
            self._cycle_task = asyncio.current_task()
            try:
                return await self._cycle_body(state, trigger)
            finally:
                self._cycle_task = None

    async def _cycle_body(self, state: SyncerState, trigger: str) -> SyncReport | None:
        if not state.is_running:
            return None

        cycle_id = uuid4()
        started_at = datetime.now(timezone.utc)
        log = self._log.bind(cycle_id=str(cycle_id), trigger=trigger)
        log.info("Sync cycle starting", dry_run=self._config.dry_run)

        try:
            reference_positions = await self._reference.fetch_positions()
            managed_positions = await self._adapter.fetch_positions()
            balance = await self._adapter.fetch_balance()
            size_decimals = await self._adapter.fetch_size_decimals()
        except Exception as e:
            state.errors += 1
            log.error("Sync cycle aborted: fetch failed", error=str(e))
            report = SyncReport(
                cycle_id=cycle_id,
                trigger=trigger,
                status=CycleStatus.FAILED,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
                dry_run=self._config.dry_run,
                scaling_factor=state.scaling_factor,
                stats=state.snapshot(),
                error=str(e),
            )
            self._persist(report)
            return report

        log.info(
            "Positions fetched",
            reference_count=len(reference_positions),
            managed_count=len(managed_positions),
            free_margin=str(balance.free),
        )
        if state.syncs_completed:
            self._log_changes(log, "reference", state.last_reference, reference_positions)
            self._log_changes(log, "managed", state.last_managed, managed_positions)

        scaling = scale_positions(
            reference_positions,
            self._config.copy_budget,
            default_leverage=self._config.default_leverage,
            size_decimals=size_decimals,
        )
        state.scaling_factor = scaling.scaling_factor
        log.info(
            "Target positions computed",
            scaling_factor=str(scaling.scaling_factor),
            original_cost=str(scaling.original_total_cost),
            estimated_cost=str(scaling.total_estimated_cost),
            utilization_pct=f"{scaling.utilization_pct:.1f}",
        )

        changes = calculate_diff(
            scaling.positions,
            managed_positions,
            size_threshold=self._config.size_threshold,
            min_position_value=self._config.min_position_value,
            min_position_size=self._config.min_position_size,
        )
        log.info("Position changes", **changes.counts())

        ctx = _CycleContext(cycle_id=cycle_id, log=log, free_margin=balance.free)
        await self._execute(state, ctx, changes)

        state.syncs_completed += 1
        state.last_sync_time = datetime.now(timezone.utc)
        state.last_reference = _index(reference_positions)
        state.last_managed = _index(managed_positions)

        status = CycleStatus.PARTIAL_FAILURE if ctx.failed else CycleStatus.SUCCEEDED
        report = SyncReport(
            cycle_id=cycle_id,
            trigger=trigger,
            status=status,
            started_at=started_at,
            finished_at=state.last_sync_time,
            dry_run=self._config.dry_run,
            reference_positions=reference_positions,
            managed_positions=managed_positions,
            target_positions=scaling.positions,
            changes=changes,
            outcomes=ctx.outcomes,
            scaling_factor=state.scaling_factor,
            warnings=[*scaling.warnings, *changes.warnings, *ctx.warnings],
            stats=state.snapshot(),
        )
        log.info(
            "Sync cycle complete",
            status=status.value,
            actions=len(ctx.outcomes),
            failed=ctx.failed,
            interrupted=ctx.interrupted,
            duration_ms=round(report.duration_ms, 1),
        )
        self._persist(report)
        self._observers.publish_sync(report)
        return report

    def _persist(self, report: SyncReport) -> None:
        if self._journal is not None:
            self._journal.record(report)

    def _log_changes(
        self,
        log: structlog.BoundLogger,
        account: str,
        previous: dict[str, Position],
        positions: list[Position],
    ) -> None:
        current = _index(positions)
        for key in current.keys() - previous.keys():
            p = current[key]
            log.info("Position opened", account=account, symbol=key, side=p.side.value, size=str(p.size))
        for key in previous.keys() - current.keys():
            log.info("Position closed", account=account, symbol=key)
        for key in current.keys() & previous.keys():
            before, after = previous[key], current[key]
            if before.side != after.side or before.size != after.size:
                log.info(
                    "Position changed",
                    account=account,
                    symbol=key,
                    side=after.side.value,
                    size_before=str(before.size),
                    size_after=str(after.size),
                )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _execute(self, state: SyncerState, ctx: _CycleContext, changes: DiffResult) -> None:
        """Run actions sequentially: remove, then add, then adjust.

        Flips close in the remove phase and reopen in the add phase.
        """
        plan = [
            *(partial(self._remove, state, ctx, p) for p in changes.to_remove),
            *(partial(self._flip_close, state, ctx, f) for f in changes.to_flip),
            *(partial(self._add, state, ctx, p) for p in changes.to_add),
            *(partial(self._flip_open, state, ctx, f) for f in changes.to_flip),
            *(partial(self._adjust, state, ctx, a) for a in changes.to_adjust),
        ]
        for index, step in enumerate(plan):
            if index and self._config.action_delay_ms:
                await asyncio.sleep(self._config.action_delay_seconds)
            if not state.is_running:
                ctx.interrupted = True
                ctx.log.info("Stop requested, deferring remaining actions", remaining=len(plan) - index)
                return
            await step()

    def _margin_of(self, position: Position) -> Decimal:
        if position.margin is not None:
            return position.margin
        leverage = position.leverage or self._config.default_leverage
        return position.market_value / leverage

    async def _close(self, ctx: _CycleContext, position: Position) -> str | None:
        if self._config.dry_run:
            ctx.log.info(
                "Would close position",
                symbol=position.symbol,
                side=position.side.value,
                size=str(position.size),
                dry_run=True,
            )
            return DRY_RUN_CLOSE_ID
        if not position.external_id:
            raise AdapterError(
                message=f"Position {position.symbol} has no external id to close",
                account=self._config.managed_account,
            )
        result = await self._adapter.close_position(position.external_id)
        ctx.log.info(
            "Position closed",
            symbol=position.symbol,
            status=result.status.value,
            order_id=result.order_id,
        )
        return result.order_id

    async def _open(
        self,
        ctx: _CycleContext,
        symbol: str,
        side: PositionSide,
        size: Decimal,
        price: Decimal,
        leverage: Decimal | None,
    ) -> tuple[Decimal, str]:
        """Open a position clamped to the running free-margin estimate."""
        leverage = leverage or self._config.default_leverage
        sizing = scale_trade_with_margin(
            amount=size,
            price=price,
            leverage=leverage,
            free_margin=max(ctx.free_margin, Decimal("0")),
            safety_buffer=self._config.safety_buffer,
        )
        final_size = sizing.final_amount
        if final_size <= 0:
            raise InsufficientCapitalError(
                f"Free margin too small to open {symbol}",
                required=sizing.margin_required,
                available=sizing.margin_available,
            )
        if sizing.was_adjusted:
            message = (
                f"{symbol}: size reduced from {sizing.scaled_amount} to {final_size} "
                "to fit free margin"
            )
            ctx.warnings.append(message)
            ctx.log.warning(
                "Open clamped to free margin",
                symbol=symbol,
                requested=str(sizing.scaled_amount),
                final=str(final_size),
                margin_available=str(sizing.margin_available),
            )

        margin = final_size * price / leverage
        if self._config.dry_run:
            ctx.log.info(
                "Would open position",
                symbol=symbol,
                side=side.value,
                size=str(final_size),
                margin=str(margin),
                dry_run=True,
            )
            external_id = DRY_RUN_OPEN_ID
        else:
            result = await self._adapter.open_position(symbol, side, margin, final_size)
            ctx.log.info(
                "Position opened",
                symbol=symbol,
                side=side.value,
                size=str(final_size),
                margin=str(margin),
                status=result.status.value,
                external_id=result.external_id,
            )
            external_id = result.external_id

        ctx.free_margin -= margin
        return final_size, external_id

    def _record_failure(
        self,
        state: SyncerState,
        ctx: _CycleContext,
        action: SyncAction,
        symbol: str,
        error: Exception,
    ) -> None:
        if isinstance(error, InsufficientCapitalError):
            state.actions_skipped += 1
            message = f"Skipped {action.value} {symbol}: {error.message}"
            ctx.warnings.append(message)
            ctx.log.warning("Action skipped: insufficient capital", action=action.value, symbol=symbol)
            ctx.outcomes.append(
                ActionOutcome(action=action, symbol=symbol, succeeded=False, skipped=True, error=str(error))
            )
            return

        state.errors += 1
        ctx.log.error("Action failed", action=action.value, symbol=symbol, error=str(error))
        ctx.outcomes.append(
            ActionOutcome(action=action, symbol=symbol, succeeded=False, error=str(error))
        )

    def _record_success(
        self,
        ctx: _CycleContext,
        action: SyncAction,
        symbol: str,
        size: Decimal,
        external_id: str | None,
        position: Position | None = None,
        adjustment: Adjustment | None = None,
    ) -> None:
        ctx.outcomes.append(
            ActionOutcome(
                action=action,
                symbol=symbol,
                succeeded=True,
                size=size,
                external_id=external_id,
            )
        )
        self._observers.publish_action(
            ActionEvent(
                action=action,
                position=position,
                adjustment=adjustment,
                dry_run=self._config.dry_run,
            )
        )

    async def _remove(self, state: SyncerState, ctx: _CycleContext, position: Position) -> None:
        try:
            order_id = await self._close(ctx, position)
        except Exception as e:
            self._record_failure(state, ctx, SyncAction.REMOVE, position.symbol, e)
            return
        ctx.free_margin += self._margin_of(position)
        state.positions_removed += 1
        self._record_success(ctx, SyncAction.REMOVE, position.symbol, position.size, order_id, position=position)

    async def _flip_close(self, state: SyncerState, ctx: _CycleContext, flip: Flip) -> None:
        before = len(ctx.outcomes)
        await self._remove(state, ctx, flip.current)
        if ctx.outcomes[before:] and ctx.outcomes[-1].succeeded:
            ctx.flipped.add(flip.symbol)

    async def _add(self, state: SyncerState, ctx: _CycleContext, position: Position) -> None:
        try:
            size, external_id = await self._open(
                ctx,
                position.symbol,
                position.side,
                position.size,
                position.entry_price,
                position.leverage,
            )
        except Exception as e:
            self._record_failure(state, ctx, SyncAction.ADD, position.symbol, e)
            return
        state.positions_added += 1
        opened = position.model_copy(update={"size": size, "external_id": external_id})
        self._record_success(ctx, SyncAction.ADD, position.symbol, size, external_id, position=opened)

    async def _flip_open(self, state: SyncerState, ctx: _CycleContext, flip: Flip) -> None:
        # Opening against a still-open opposite position would net it instead.
        if flip.symbol not in ctx.flipped:
            state.actions_skipped += 1
            ctx.log.warning("Flip reopen skipped: close did not succeed", symbol=flip.symbol)
            ctx.outcomes.append(
                ActionOutcome(
                    action=SyncAction.ADD,
                    symbol=flip.target.symbol,
                    succeeded=False,
                    skipped=True,
                    error="close of opposite-side position failed",
                )
            )
            return
        await self._add(state, ctx, flip.target)

    def _check_reopen_changes_size(self, ctx: _CycleContext, adjustment: Adjustment) -> None:
        """Raise InsufficientCapitalError when margin pins the reopen at the current size.

        The reopen is sized against free margin plus the margin the close
        would release. A clamped size that the diff would still call in sync
        with the current position means closing and reopening changes nothing.
        """
        current = adjustment.current
        sizing = scale_trade_with_margin(
            amount=adjustment.target_size,
            price=current.entry_price,
            leverage=current.leverage or self._config.default_leverage,
            free_margin=max(ctx.free_margin + self._margin_of(current), Decimal("0")),
            safety_buffer=self._config.safety_buffer,
        )
        if not sizing.was_adjusted:
            return
        size_diff = abs(sizing.final_amount - current.size)
        if (
            size_diff <= sizing.final_amount * self._config.size_threshold
            or size_diff <= self._config.min_position_size
        ):
            raise InsufficientCapitalError(
                f"Free margin holds {adjustment.symbol} at {current.size}; "
                f"target {adjustment.target_size} not reachable",
                required=sizing.margin_required,
                available=sizing.margin_available,
            )

    async def _adjust(self, state: SyncerState, ctx: _CycleContext, adjustment: Adjustment) -> None:
        current = adjustment.current
        ctx.log.info(
            "Adjusting position",
            symbol=adjustment.symbol,
            action=adjustment.action.value,
            current_size=str(adjustment.current_size),
            target_size=str(adjustment.target_size),
        )
        try:
            self._check_reopen_changes_size(ctx, adjustment)
            await self._close(ctx, current)
        except Exception as e:
            self._record_failure(state, ctx, SyncAction.ADJUST, adjustment.symbol, e)
            return
        ctx.free_margin += self._margin_of(current)

        # Reopen at the current position's entry price and leverage.
        try:
            size, external_id = await self._open(
                ctx,
                adjustment.target.symbol,
                adjustment.side,
                adjustment.target_size,
                current.entry_price,
                current.leverage,
            )
        except Exception as e:
            self._record_failure(state, ctx, SyncAction.ADJUST, adjustment.symbol, e)
            return
        state.positions_adjusted += 1
        self._record_success(
            ctx, SyncAction.ADJUST, adjustment.symbol, size, external_id, adjustment=adjustment
        )

    # ------------------------------------------------------------------
    # Trade mirroring
    # ------------------------------------------------------------------

    async def mirror_trade(
        self,
        symbol: str,
        side: PositionSide | str,
        amount: Decimal,
        price: Decimal,
        leverage: Decimal | None = None,
    ) -> ActionOutcome:
        """Copy a single reference trade onto the managed account.

        The trade is scaled by the sticky scaling factor, then clamped to
        the managed account's free margin.

        Args:
            symbol: Instrument traded on the reference account.
            side: Trade direction.
            amount: Reference trade size in base units.
            price: Reference execution price.
            leverage: Reference leverage; the configured default when None.

        Returns:
            ActionOutcome of the resulting open. Failures are recorded on
            the outcome and in the stats, not raised.
        """
        side = PositionSide.parse(side)
        leverage = leverage or self._config.default_leverage
        state = self._state
        scaling_factor = state.scaling_factor if state else self._last_stats.scaling_factor
        log = self._log.bind(symbol=symbol, side=side.value, trigger="mirror")

        async with self._cycle_lock:
            try:
                balance = await self._adapter.fetch_balance()
                sizing = scale_trade_with_margin(
                    amount=amount,
                    price=price,
                    leverage=leverage,
                    free_margin=balance.free,
                    scaling_factor=scaling_factor,
                    safety_buffer=self._config.safety_buffer,
                )
                if sizing.final_amount <= 0:
                    raise InsufficientCapitalError(
                        f"Free margin too small to mirror {symbol}",
                        required=sizing.margin_required,
                        available=sizing.margin_available,
                    )
                margin = sizing.final_amount * price / leverage

                if self._config.dry_run:
                    log.info(
                        "Would mirror trade",
                        size=str(sizing.final_amount),
                        margin=str(margin),
                        was_adjusted=sizing.was_adjusted,
                        dry_run=True,
                    )
                    external_id = DRY_RUN_OPEN_ID
                else:
                    result = await self._adapter.open_position(symbol, side, margin, sizing.final_amount)
                    external_id = result.external_id
                    log.info(
                        "Trade mirrored",
                        size=str(sizing.final_amount),
                        margin=str(margin),
                        was_adjusted=sizing.was_adjusted,
                        status=result.status.value,
                    )
            except InsufficientCapitalError as e:
                if state:
                    state.actions_skipped += 1
                log.warning("Mirror skipped: insufficient capital", error=e.message)
                return ActionOutcome(
                    action=SyncAction.ADD, symbol=symbol, succeeded=False, skipped=True, error=str(e)
                )
            except Exception as e:
                if state:
                    state.errors += 1
                log.error("Mirror trade failed", error=str(e))
                return ActionOutcome(action=SyncAction.ADD, symbol=symbol, succeeded=False, error=str(e))

            if state:
                state.positions_added += 1
            position = Position(
                symbol=symbol,
                side=side,
                size=sizing.final_amount,
                entry_price=price,
                leverage=leverage,
                external_id=external_id,
            )
            self._observers.publish_action(
                ActionEvent(action=SyncAction.ADD, position=position, dry_run=self._config.dry_run)
            )
            return ActionOutcome(
                action=SyncAction.ADD,
                symbol=symbol,
                succeeded=True,
                size=sizing.final_amount,
                external_id=external_id,
            )
