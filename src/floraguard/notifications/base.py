"""Notifier protocol and shared types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class Capability(str, Enum):
    """Permission state of a notification channel."""

    DEFAULT = "default"  # not yet requested
    GRANTED = "granted"
    DENIED = "denied"


@dataclass(frozen=True)
class Notification:
    title: str
    body: str
    tag: str | None = None


@runtime_checkable
class Notifier(Protocol):
    """Fire-and-forget delivery channel."""

    @property
    def name(self) -> str: ...

    @property
    def capability(self) -> Capability: ...

    async def request_permission(self) -> Capability:
        """Ask for the capability once at startup and remember the answer."""
        ...

    async def dispatch(self, notification: Notification) -> None:
        """Deliver a notification. Raises if the channel failed."""
        ...
