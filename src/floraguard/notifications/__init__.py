"""Notification channels used by the reminder scheduler."""

from floraguard.notifications.base import Capability, Notification, Notifier
from floraguard.notifications.local import ConsoleNotifier, LogNotifier

__all__ = ["Capability", "ConsoleNotifier", "LogNotifier", "Notification", "Notifier"]
