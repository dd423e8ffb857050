"""Local notification channels: the terminal and the log."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from floraguard.notifications.base import Capability, Notification

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """Prints notifications to a terminal stream (stderr by default)."""

    def __init__(self, enabled: bool = True, stream: TextIO | None = None) -> None:
        self._enabled = enabled
        self._stream = stream
        self._capability = Capability.DEFAULT

    @property
    def name(self) -> str:
        return "console"

    @property
    def capability(self) -> Capability:
        return self._capability

    async def request_permission(self) -> Capability:
        if self._capability is Capability.DEFAULT:
            self._capability = Capability.GRANTED if self._enabled else Capability.DENIED
            logger.info("Notification permission (%s): %s", self.name, self._capability.value)
        return self._capability

    async def dispatch(self, notification: Notification) -> None:
        stream = self._stream or sys.stderr
        stream.write(f"\n[notification] {notification.title}\n  {notification.body}\n")
        stream.flush()


class LogNotifier:
    """Writes notifications to the application log, for headless daemons."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._capability = Capability.DEFAULT

    @property
    def name(self) -> str:
        return "log"

    @property
    def capability(self) -> Capability:
        return self._capability

    async def request_permission(self) -> Capability:
        if self._capability is Capability.DEFAULT:
            self._capability = Capability.GRANTED if self._enabled else Capability.DENIED
            logger.info("Notification permission (%s): %s", self.name, self._capability.value)
        return self._capability

    async def dispatch(self, notification: Notification) -> None:
        logger.warning("%s: %s", notification.title, notification.body)
