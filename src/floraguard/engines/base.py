"""Engine protocol and shared types."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from floraguard.imaging import ImagePayload


@dataclass(frozen=True)
class Turn:
    """One prior exchange in a conversation."""

    role: Literal["user", "model"]
    text: str


@dataclass
class AgentResponse:
    """Response from an AI engine."""

    text: str
    cost_usd: float | None = None
    model: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@runtime_checkable
class Engine(Protocol):
    """Protocol that all engine backends must implement."""

    @property
    def name(self) -> str: ...

    async def send(
        self,
        message: str,
        *,
        system_prompt: str | None = None,
        history: Sequence[Turn] = (),
        image: ImagePayload | None = None,
    ) -> AgentResponse:
        """Send a message (optionally with an image) and return the response."""
        ...
