"""Completion API contract (the LLM boundary)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from contracts.api import Message, ToolChoice


class ModelAdapter(ABC):
    """Sends a conversation plus tool manifest to a model, returns its reply.

    The reply is an assistant Message carrying either final ``content`` or a
    list of ``tool_calls``.
    """

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> Message:
        ...

    async def stream(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> AsyncIterator[str | Message]:
        """Yield text deltas as they arrive, then the complete reply Message.

        The last item is always the assembled Message, tool calls included.
        Backends without incremental output yield the whole text at once.
        """
        reply = await self.chat(messages, model, tools=tools, tool_choice=tool_choice)
        if reply.content:
            yield reply.content
        yield reply
