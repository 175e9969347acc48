"""Post-commit notification dispatch.

Services publish notifications into the current session. Nothing leaves the
process until that session's transaction commits; a rollback discards the
queue. Each sink runs as its own background task so a slow or failing sink
never blocks the request or the other sinks.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_PENDING_KEY = "rwa_ledger.pending_notifications"
_HOOKED_KEY = "rwa_ledger.notification_hooks"


@dataclass
class Notification:
    event_type: str
    title: str
    message: str
    user_id: str | None = None
    email: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class NotificationSink(Protocol):
    async def send(self, notification: Notification) -> None: ...


class NotificationDispatcher:
    """Fans committed notifications out to every registered sink."""

    def __init__(self, sinks: Iterable[NotificationSink] | None = None):
        self.sinks: list[NotificationSink] = list(sinks or [])
        self._tasks: set[asyncio.Task] = set()

    def add_sink(self, sink: NotificationSink) -> None:
        self.sinks.append(sink)

    def publish(self, session: AsyncSession, notification: Notification) -> None:
        """Queue a notification for delivery once ``session`` commits."""
        sync_session = session.sync_session
        info = sync_session.info
        if not info.get(_HOOKED_KEY):
            event.listen(sync_session, "after_commit", self._on_commit)
            event.listen(sync_session, "after_rollback", self._on_rollback)
            info[_HOOKED_KEY] = True
        info.setdefault(_PENDING_KEY, []).append(notification)

    async def drain(self) -> None:
        """Wait for all in-flight deliveries (used by tests and shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Session hooks ──

    def _on_commit(self, sync_session) -> None:
        pending = sync_session.info.pop(_PENDING_KEY, [])
        if not pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; dropping %d notification(s)", len(pending))
            return
        for notification in pending:
            for sink in self.sinks:
                task = loop.create_task(self._deliver(sink, notification))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    def _on_rollback(self, sync_session) -> None:
        dropped = sync_session.info.pop(_PENDING_KEY, [])
        if dropped:
            logger.debug("Discarded %d notification(s) on rollback", len(dropped))

    async def _deliver(self, sink: NotificationSink, notification: Notification) -> None:
        try:
            await sink.send(notification)
        except Exception:
            logger.exception(
                "Notification sink %s failed for %s",
                type(sink).__name__,
                notification.event_type,
            )
