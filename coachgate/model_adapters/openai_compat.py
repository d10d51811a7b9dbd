"""OpenAI-compatible chat completions adapter (xAI, OpenAI, vLLM, ...)."""

from __future__ import annotations

import json
import os
from collections.abc import AsyncIterator
from typing import Any

import httpx

from contracts.api import Message, Role, ToolCall, ToolCallFunction, ToolChoice
from contracts.model import ModelAdapter


class OpenAICompatAdapter(ModelAdapter):
    """Async adapter for ``POST {base_url}/chat/completions``."""

    def __init__(
        self,
        base_url: str = "https://api.x.ai/v1",
        api_key: str | None = None,
        api_key_env: str = "XAI_API_KEY",
        timeout: float = 120.0,
        temperature: float | None = 0.7,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key if api_key is not None else os.environ.get(api_key_env, "")
        self._timeout = timeout
        self._temperature = temperature

    async def chat(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> Message:
        payload = self._payload(messages, model, tools, tool_choice)

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(
                f"{self._base_url}/chat/completions", json=payload, headers=self._headers()
            )
            resp.raise_for_status()

        return self._from_openai_response(resp.json())

    async def stream(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> AsyncIterator[str | Message]:
        """Stream a completion over server-sent events."""
        payload = self._payload(messages, model, tools, tool_choice)
        payload["stream"] = True

        content: list[str] = []
        calls: dict[int, dict[str, str]] = {}

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            async with client.stream(
                "POST", f"{self._base_url}/chat/completions", json=payload, headers=self._headers()
            ) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    choices = json.loads(data).get("choices") or []
                    if not choices:
                        continue
                    delta = choices[0].get("delta") or {}

                    if delta.get("content"):
                        content.append(delta["content"])
                        yield delta["content"]

                    # Tool calls arrive in fragments keyed by index.
                    for tc in delta.get("tool_calls") or []:
                        slot = calls.setdefault(
                            tc.get("index", len(calls)), {"id": "", "name": "", "arguments": ""}
                        )
                        slot["id"] = tc.get("id") or slot["id"]
                        fn = tc.get("function") or {}
                        slot["name"] += fn.get("name") or ""
                        slot["arguments"] += fn.get("arguments") or ""

        tool_calls = [
            ToolCall(
                id=slot["id"] or f"call_{i}",
                function=ToolCallFunction(name=slot["name"], arguments=slot["arguments"] or "{}"),
            )
            for i, slot in sorted(calls.items())
        ]
        yield Message(
            role=Role.ASSISTANT,
            content="".join(content) or None,
            tool_calls=tool_calls or None,
        )

    def _payload(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None,
        tool_choice: ToolChoice,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [self._to_openai_message(m) for m in messages],
        }
        if self._temperature is not None:
            payload["temperature"] = self._temperature
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = tool_choice.value
        return payload

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    # ── format helpers ───────────────────────────────────────────────

    @staticmethod
    def _to_openai_message(msg: Message) -> dict[str, Any]:
        m: dict[str, Any] = {"role": msg.role.value, "content": msg.content}
        if msg.tool_calls:
            m["tool_calls"] = [tc.model_dump() for tc in msg.tool_calls]
        if msg.tool_call_id is not None:
            m["tool_call_id"] = msg.tool_call_id
        return m

    @staticmethod
    def _from_openai_response(data: dict[str, Any]) -> Message:
        choices = data.get("choices") or [{}]
        msg_data = choices[0].get("message", {})
        tool_calls = [
            ToolCall(
                id=tc.get("id") or f"call_{i}",
                function=ToolCallFunction(
                    name=tc.get("function", {}).get("name", ""),
                    arguments=tc.get("function", {}).get("arguments") or "{}",
                ),
            )
            for i, tc in enumerate(msg_data.get("tool_calls") or [])
        ]
        return Message(
            role=Role.ASSISTANT,
            content=msg_data.get("content") or None,
            tool_calls=tool_calls or None,
        )
