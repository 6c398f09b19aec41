"""CycleJournal: JSON-lines journal of sync cycle reports.

The running service only writes. Each report is appended as one line and
a short window of recent reports is kept in memory for callers in the
same process. Reading history goes back to the file and only keeps the
requested tail.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from pathlib import Path

import structlog
from pydantic import ValidationError

from copysync.schemas.enums import CycleStatus
from copysync.schemas.sync import SyncReport

logger = structlog.get_logger()

DEFAULT_RECENT_REPORTS = 50


class CycleJournal:
    """Append-only journal of SyncReports.

    Thread-safe. Memory use is bounded by ``max_recent`` no matter how
    long the session runs.
    """

    def __init__(
        self,
        persist_path: Path | None = None,
        max_recent: int = DEFAULT_RECENT_REPORTS,
    ) -> None:
        self._lock = threading.RLock()
        self._recent: deque[SyncReport] = deque(maxlen=max_recent)
        self._persist_path = persist_path

    @property
    def persist_path(self) -> Path | None:
        return self._persist_path

    def record(self, report: SyncReport) -> None:
        """Write a cycle report to the journal file and the recent window."""
        with self._lock:
            self._recent.append(report)
            if self._persist_path:
                self._write(report)

        logger.debug(
            "Sync report journaled",
            cycle_id=str(report.cycle_id),
            trigger=report.trigger,
            status=report.status.value,
        )

    def recent(self) -> list[SyncReport]:
        """Reports recorded by this process, newest first."""
        with self._lock:
            return list(reversed(self._recent))

    def latest(self) -> SyncReport | None:
        with self._lock:
            return self._recent[-1] if self._recent else None

    def tail(self, limit: int) -> list[SyncReport]:
        """Read the last ``limit`` reports from the journal file, newest first.

        Corrupt lines are skipped. A missing file reads as empty.
        """
        if not self._persist_path or not self._persist_path.exists():
            return []

        lines: deque[tuple[int, str]] = deque(maxlen=limit)
        with self._lock:
            try:
                with open(self._persist_path) as f:
                    for lineno, line in enumerate(f, start=1):
                        line = line.strip()
                        if line:
                            lines.append((lineno, line))
            except OSError as exc:
                logger.error(
                    "Failed to read sync journal",
                    path=str(self._persist_path),
                    error=str(exc),
                )
                return []

        reports: list[SyncReport] = []
        for lineno, line in reversed(lines):
            try:
                reports.append(SyncReport.model_validate_json(line))
            except ValidationError as exc:
                logger.warning(
                    "Skipping corrupt sync report",
                    path=str(self._persist_path),
                    line=lineno,
                    error=str(exc),
                )
        return reports

    def _write(self, report: SyncReport) -> None:
        try:
            self._persist_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._persist_path, "a") as f:
                f.write(report.model_dump_json() + "\n")
        except OSError as exc:
            logger.error(
                "Failed to persist sync report",
                cycle_id=str(report.cycle_id),
                error=str(exc),
            )


def success_rate(reports: Iterable[SyncReport]) -> float:
    """Fraction of ``reports`` that fully succeeded."""
    statuses = [r.status for r in reports]
    if not statuses:
        return 0.0
    return sum(1 for s in statuses if s == CycleStatus.SUCCEEDED) / len(statuses)
