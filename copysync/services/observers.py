"""Observer hub: fan-out of sync progress to any number of subscribers.

The sync service publishes one SyncReport per completed cycle and one
ActionEvent per executed action. Delivery is fire-and-forget: plain
callables run inline with their exceptions logged and dropped, and
coroutine callables are scheduled as tasks that the service never awaits.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Union

import structlog

from copysync.schemas.sync import ActionEvent, SyncReport

logger = structlog.get_logger()

SyncCallback = Callable[[SyncReport], Union[None, Awaitable[None]]]
ActionCallback = Callable[[ActionEvent], Union[None, Awaitable[None]]]


class ObserverHub:
    """Subscriber list for cycle reports and per-action events."""

    def __init__(self) -> None:
        self._sync_callbacks: list[SyncCallback] = []
        self._action_callbacks: list[ActionCallback] = []
        self._pending: set[asyncio.Task] = set()

    def subscribe(
        self,
        on_sync: SyncCallback | None = None,
        on_action: ActionCallback | None = None,
    ) -> Callable[[], None]:
        """Register callbacks. Returns a function that unsubscribes them."""
        if on_sync is not None:
            self._sync_callbacks.append(on_sync)
        if on_action is not None:
            self._action_callbacks.append(on_action)

        def unsubscribe() -> None:
            if on_sync is not None and on_sync in self._sync_callbacks:
                self._sync_callbacks.remove(on_sync)
            if on_action is not None and on_action in self._action_callbacks:
                self._action_callbacks.remove(on_action)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._sync_callbacks) + len(self._action_callbacks)

    def publish_sync(self, report: SyncReport) -> None:
        for callback in list(self._sync_callbacks):
            self._deliver(callback, report, kind="sync")

    def publish_action(self, event: ActionEvent) -> None:
        for callback in list(self._action_callbacks):
            self._deliver(callback, event, kind="action")

    def _deliver(self, callback: Callable[[Any], Any], payload: Any, kind: str) -> None:
        try:
            result = callback(payload)
        except Exception as exc:
            logger.warning(
                "Observer callback failed",
                kind=kind,
                callback=getattr(callback, "__name__", repr(callback)),
                error=str(exc),
            )
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._pending.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Async observer callback failed", error=str(exc))

    async def drain(self) -> None:
        """Wait for in-flight async callbacks (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
