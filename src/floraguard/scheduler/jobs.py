"""Reminder notifications using pure asyncio.

Every tick looks at today's reminders and notifies each one that is still open
and has not been notified today. A per-reminder dispatch marker records the
last notified day; it is written only after the dispatch call returns, so a
crash in between can repeat a notification but never loses one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING

from floraguard.models import Reminder
from floraguard.notifications.base import Capability, Notification

if TYPE_CHECKING:
    from floraguard.notifications.base import Notifier
    from floraguard.reminders import ReminderRegistry
    from floraguard.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

MARKER_PREFIX = "notified_"


class DispatchState(str, Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    INACTIVE = "inactive"


class DispatchMarkers:
    """``notified_<id>`` -> ISO day of the last dispatch for that reminder."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def is_marked(self, reminder_id: str, day: date) -> bool:
        return self._store.get(MARKER_PREFIX + reminder_id) == day.isoformat()

    def mark(self, reminder_id: str, day: date) -> None:
        self._store.set(MARKER_PREFIX + reminder_id, day.isoformat())


def build_notification(reminder: Reminder) -> Notification:
    return Notification(
        title=f"FloraGuard: {reminder.title}",
        body=f"Don't forget to take care of your {reminder.plant_name or 'plants'} today!",
        tag=reminder.id,
    )


class SchedulerHandle:
    """Owns the running scheduler task. ``stop()`` must be awaited on teardown."""

    def __init__(self, task: asyncio.Task, shutdown_event: asyncio.Event) -> None:
        self._task = task
        self._shutdown_event = shutdown_event

    @property
    def running(self) -> bool:
        return not self._task.done()

    async def stop(self) -> None:
        self._shutdown_event.set()
        if self._task.done():
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=5)
        except asyncio.TimeoutError:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


class ReminderScheduler:
    """Polls the reminder registry and notifies reminders due today."""

    def __init__(
        self,
        registry: ReminderRegistry,
        notifier: Notifier,
        markers: DispatchMarkers,
        *,
        interval: float = 60.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._registry = registry
        self._notifier = notifier
        self._markers = markers
        self._interval = interval
        self._clock = clock
        self._handle: SchedulerHandle | None = None

    def today(self) -> date:
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone()
        return now.date()

    def state_of(self, reminder: Reminder, today: date) -> DispatchState:
        if reminder.completed or reminder.day != today:
            return DispatchState.INACTIVE
        if self._markers.is_marked(reminder.id, today):
            return DispatchState.DISPATCHED
        return DispatchState.PENDING

    async def tick(self) -> int:
        """Run one check. Returns the number of notifications dispatched."""
        today = self.today()
        # Read the registry fresh on every tick; reminders may have changed.
        pending = [
            r for r in self._registry.all() if self.state_of(r, today) is DispatchState.PENDING
        ]
        if not pending:
            return 0
        if self._notifier.capability is not Capability.GRANTED:
            logger.debug(
                "Notifications unavailable (%s), %d reminder(s) due",
                self._notifier.capability.value,
                len(pending),
            )
            return 0

        dispatched = 0
        for reminder in pending:
            # An earlier dispatch may have yielded while this one was completed or deleted.
            current = self._registry.get(reminder.id)
            if current is None or self.state_of(current, today) is not DispatchState.PENDING:
                continue
            reminder = current
            try:
                await self._notifier.dispatch(build_notification(reminder))
            except Exception as e:
                logger.error("Failed to dispatch reminder %s: %s", reminder.id, e)
                continue
            self._markers.mark(reminder.id, today)
            dispatched += 1
            logger.info("Notified reminder %s (%s)", reminder.id, reminder.title)
        return dispatched

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Tick immediately, then every ``interval`` seconds until shutdown."""
        logger.info("Reminder scheduler started (interval=%ss)", self._interval)

        while not shutdown_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                logger.error("Reminder check failed: %s", e)

            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self._interval)
                break  # shutdown requested
            except asyncio.TimeoutError:
                pass  # interval elapsed, check again

        logger.info("Reminder scheduler stopped.")

    def start(self) -> SchedulerHandle:
        """Launch the polling loop on the running event loop."""
        if self._handle is not None and self._handle.running:
            raise RuntimeError("Reminder scheduler already running")
        shutdown_event = asyncio.Event()
        task = asyncio.create_task(self.run(shutdown_event), name="reminder-scheduler")
        self._handle = SchedulerHandle(task, shutdown_event)
        return self._handle
