"""CopySync CLI — entry point for running the position sync loop.

Usage:
    python -m copysync run         Sync continuously until interrupted
    python -m copysync once        Run a single sync cycle
    python -m copysync history     Print recent sync cycles from the journal
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

import structlog

from copysync.config.settings import CopySyncSettings, get_settings
from copysync.config.sync_config import SyncConfig
from copysync.exceptions import InvalidInputError
from copysync.factory import build_service
from copysync.services.sync_service import PositionSyncService
from copysync.storage.cycle_journal import CycleJournal, success_rate
from copysync.utils.logging import configure_logging

logger = structlog.get_logger()


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="copysync",
        description="CopySync: mirror a reference portfolio into a managed account",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the session YAML file (default: COPYSYNC_CONFIG_PATH)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: COPYSYNC_LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("run", "Sync continuously until interrupted"),
        ("once", "Run a single sync cycle"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--reference", help="Reference account address override")
        sub.add_argument("--managed", help="Managed account address override")
        sub.add_argument("--budget", type=_decimal, help="Copy budget override")
        sub.add_argument(
            "--live",
            action="store_true",
            help="Place real orders (default is dry-run)",
        )

    history = subparsers.add_parser("history", help="Print recent sync cycles")
    history.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of cycles to show (default: 20)",
    )

    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace, settings: CopySyncSettings) -> SyncConfig:
    return SyncConfig.from_yaml(
        args.config or settings.config_path,
        reference_account=args.reference,
        managed_account=args.managed,
        copy_budget=args.budget,
        dry_run=False if args.live else None,
    )


def _build(args: argparse.Namespace, settings: CopySyncSettings) -> PositionSyncService:
    config = _load_config(args, settings)
    if not config.dry_run:
        logger.warning("Live trading enabled", managed=config.managed_account)
    return build_service(config, settings=settings)


async def _cmd_run(args: argparse.Namespace, settings: CopySyncSettings) -> int:
    """Sync continuously with graceful shutdown."""
    service = _build(args, settings)
    stop_requested = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_requested.set)

    try:
        await service.start()
        await stop_requested.wait()
        logger.info("Shutdown requested")
        stats = await service.stop()
    finally:
        await service.close()

    logger.info("Shutdown complete", **stats.model_dump(mode="json"))
    return 0


async def _cmd_once(args: argparse.Namespace, settings: CopySyncSettings) -> int:
    """Run a single sync cycle."""
    service = _build(args, settings)
    try:
        report = await service.run_once()
    finally:
        await service.close()

    if report is None:
        return 1
    logger.info(
        "Cycle complete",
        status=report.status.value,
        scaling_factor=str(report.scaling_factor),
        actions=len(report.outcomes),
        warnings=report.warnings,
        duration_ms=round(report.duration_ms, 1),
        **report.changes.counts(),
    )
    return 0 if report.status.value in ("SUCCEEDED", "PARTIAL_FAILURE") else 1


def _cmd_history(args: argparse.Namespace, settings: CopySyncSettings) -> int:
    """Print recent cycles from the journal."""
    reports = CycleJournal(persist_path=settings.runs_path).tail(args.limit)
    if not reports:
        print(f"No sync cycles recorded in {settings.runs_path}")
        return 0

    print(
        f"\n{'Started (UTC)':<20} {'Trigger':<9} {'Status':<16} "
        f"{'Factor':>8} {'Add':>4} {'Rem':>4} {'Adj':>4} {'Flip':>4} {'Errors':>6}"
    )
    print("-" * 84)
    for report in reports:
        counts = report.changes.counts()
        failed = sum(1 for o in report.outcomes if not o.succeeded and not o.skipped)
        print(
            f"{report.started_at:%Y-%m-%d %H:%M:%S}  {report.trigger:<9} "
            f"{report.status.value:<16} {report.scaling_factor:>8.4f} "
            f"{counts['to_add']:>4} {counts['to_remove']:>4} "
            f"{counts['to_adjust']:>4} {counts['to_flip']:>4} {failed:>6}"
        )

    print(
        f"\n{len(reports)} cycles shown, "
        f"{success_rate(reports):.1%} fully succeeded"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(
        json_output=settings.json_logs,
        level=args.log_level or settings.log_level,
    )

    try:
        if args.command == "history":
            return _cmd_history(args, settings)
        elif args.command == "once":
            return asyncio.run(_cmd_once(args, settings))
        elif args.command == "run":
            return asyncio.run(_cmd_run(args, settings))
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
    except InvalidInputError as exc:
        logger.error("Invalid configuration", error=exc.message, field=exc.field)
        return 2


if __name__ == "__main__":
    sys.exit(main())
