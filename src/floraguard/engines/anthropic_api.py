"""Anthropic API engine: text chat plus image input, no tools."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from floraguard.engines.base import AgentResponse, Turn
from floraguard.imaging import ImagePayload

logger = logging.getLogger(__name__)

_ROLES = {"user": "user", "model": "assistant"}


def build_messages(
    history: Sequence[Turn], message: str, image: ImagePayload | None = None
) -> list[dict]:
    """Convert chat turns to Anthropic messages.

    The API wants alternating roles starting with ``user``: leading model
    turns are dropped and consecutive same-role turns are merged.
    """
    messages: list[dict] = []
    for turn in history:
        role = _ROLES[turn.role]
        if not messages and role == "assistant":
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += f"\n\n{turn.text}"
        else:
            messages.append({"role": role, "content": turn.text})

    content: list[dict] = []
    if image:
        content.append(
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.media_type,
                    "data": image.data,
                },
            }
        )
    content.append({"type": "text", "text": message})

    if messages and messages[-1]["role"] == "user":
        previous = messages.pop()
        content.insert(0, {"type": "text", "text": previous["content"]})
    messages.append({"role": "user", "content": content})
    return messages


@dataclass
class AnthropicAPIEngine:
    """Direct Anthropic API via the `anthropic` SDK."""

    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096
    timeout: int = 120

    def __post_init__(self) -> None:
        try:
            import anthropic

            self._client = anthropic.Anthropic(timeout=self.timeout)
        except ImportError:
            raise ImportError(
                "anthropic package required. Install with: pip install anthropic"
            )

    @property
    def name(self) -> str:
        return "anthropic_api"

    async def send(
        self,
        message: str,
        *,
        system_prompt: str | None = None,
        history: Sequence[Turn] = (),
        image: ImagePayload | None = None,
    ) -> AgentResponse:
        kwargs: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": build_messages(history, message, image),
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = await asyncio.to_thread(self._client.messages.create, **kwargs)
        except Exception as e:
            logger.error("Anthropic API error: %s", e)
            return AgentResponse(text="", error=f"Anthropic API error: {e}")

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        )
        cost = None
        if response.usage:
            # Approximate cost (Sonnet pricing)
            cost = (response.usage.input_tokens * 3 + response.usage.output_tokens * 15) / 1e6

        return AgentResponse(text=text, cost_usd=cost, model=response.model)

