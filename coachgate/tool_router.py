"""Tool router — drives the bounded model ↔ tool calling loop for one turn."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from contracts.api import Message, Role, ToolCall, ToolChoice
from contracts.envelope import ErrorKind, ToolFailure, ToolResult
from contracts.model import ModelAdapter

from coachgate.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)

MAX_STEPS = 5

STEP_LIMIT_FALLBACK = (
    "I gathered what I could but couldn't finish working through that. "
    "Could you ask again, maybe a bit more specifically?"
)


class TurnState(str, Enum):
    READY = "ready"
    MODEL_THINKING = "model_thinking"
    TOOL_DISPATCH = "tool_dispatch"
    DONE = "done"


@dataclass
class TurnOutcome:
    message: Message
    messages: list[Message]
    tools_used: list[str] = field(default_factory=list)
    terminal_tools: list[str] = field(default_factory=list)
    steps: int = 0
    finish_reason: str = "stop"
    permission_denied: bool = False


def tool_message_content(result: ToolResult) -> str:
    """Serialise an envelope for the model.

    Non-retryable failures carry ``retryable: false`` so the model stops
    going down that path.
    """
    payload: dict[str, Any] = result.model_dump(mode="json")
    if isinstance(result, ToolFailure):
        if not payload["error"]["details"]:
            del payload["error"]["details"]
        if payload["error"]["reason"] is None:
            del payload["error"]["reason"]
        payload["retryable"] = result.code.retryable
        if result.code == ErrorKind.PERMISSION_DENIED:
            payload["instruction"] = (
                "Tell the user this feature isn't available on their plan. "
                "Do not call this tool again."
            )
    return json.dumps(payload)


class TurnRouter:
    """Runs the model → tool-call → model loop, at most ``max_steps`` model calls."""

    def __init__(
        self,
        adapter: ModelAdapter,
        model: str,
        max_steps: int = MAX_STEPS,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self._adapter = adapter
        self._model = model
        self._max_steps = max_steps
        self._tool_choice = tool_choice
        self._state = TurnState.READY
        self._outcome: TurnOutcome | None = None

    @property
    def state(self) -> TurnState:
        return self._state

    def _transition(self, state: TurnState) -> None:
        logger.debug("Turn state %s -> %s", self._state.value, state.value)
        self._state = state

    @property
    def outcome(self) -> TurnOutcome | None:
        """The finished turn, once ``run`` or ``stream`` has completed."""
        return self._outcome if self._state is TurnState.DONE else None

    async def run(self, messages: list[Message], dispatcher: ToolDispatcher) -> TurnOutcome:
        """Execute one conversational turn."""
        async for _ in self._drive(messages, dispatcher, streaming=False):
            pass
        return self._outcome

    async def stream(self, messages: list[Message], dispatcher: ToolDispatcher) -> AsyncIterator[str]:
        """Execute one turn, yielding model text as it is generated.

        The outcome is available from ``outcome`` once the iterator is exhausted.
        """
        async for chunk in self._drive(messages, dispatcher, streaming=True):
            yield chunk

    async def _drive(
        self, messages: list[Message], dispatcher: ToolDispatcher, streaming: bool
    ) -> AsyncIterator[str]:
        if self._state is not TurnState.READY:
            raise RuntimeError("TurnRouter instances serve a single turn")

        conversation = list(messages)
        outcome = TurnOutcome(message=Message(role=Role.ASSISTANT, content=""), messages=conversation)
        self._outcome = outcome

        for step in range(1, self._max_steps + 1):
            self._transition(TurnState.MODEL_THINKING)
            final_step = step == self._max_steps

            # Terminal tools are dropped from the offer; calling one anyway still goes through the gate.
            functions = dispatcher.function_definitions(exclude=outcome.terminal_tools)
            if not functions:
                tools, choice = None, ToolChoice.NONE
            elif final_step:
                tools, choice = functions, ToolChoice.NONE
            else:
                tools = functions
                choice = self._tool_choice if step == 1 else ToolChoice.AUTO

            if streaming:
                reply = None
                async for part in self._adapter.stream(
                    conversation, self._model, tools=tools, tool_choice=choice
                ):
                    if isinstance(part, Message):
                        reply = part
                    elif part:
                        yield part
                if reply is None:
                    raise RuntimeError("Model stream ended without a reply")
            else:
                reply = await self._adapter.chat(conversation, self._model, tools=tools, tool_choice=choice)
            outcome.steps = step

            if not reply.tool_calls:
                outcome.message = reply
                outcome.finish_reason = "step_limit" if final_step and step > 1 else "stop"
                break

            if final_step:
                logger.warning(
                    "Step limit %d reached; ignoring %d further tool call(s)",
                    self._max_steps,
                    len(reply.tool_calls),
                )
                outcome.message = Message(
                    role=Role.ASSISTANT, content=reply.content or STEP_LIMIT_FALLBACK
                )
                outcome.finish_reason = "step_limit"
                break

            conversation.append(reply)
            self._transition(TurnState.TOOL_DISPATCH)

            results = await asyncio.gather(
                *(self._dispatch_one(dispatcher, tc) for tc in reply.tool_calls)
            )

            for tc, result in zip(reply.tool_calls, results):
                self._record(outcome, tc.function.name, result)
                conversation.append(
                    Message(
                        role=Role.TOOL,
                        content=tool_message_content(result),
                        tool_call_id=tc.id,
                    )
                )

        self._transition(TurnState.DONE)

    @staticmethod
    async def _dispatch_one(dispatcher: ToolDispatcher, tc: ToolCall) -> ToolResult:
        logger.debug("Dispatching %s (call %s)", tc.function.name, tc.id)
        return await dispatcher.dispatch(tc.function.name, tc.function.arguments)

    @staticmethod
    def _record(outcome: TurnOutcome, tool_name: str, result: ToolResult) -> None:
        outcome.tools_used.append(tool_name)
        if not isinstance(result, ToolFailure) or result.code.retryable:
            return
        if tool_name not in outcome.terminal_tools:
            outcome.terminal_tools.append(tool_name)
        if result.code == ErrorKind.PERMISSION_DENIED:
            outcome.permission_denied = True
