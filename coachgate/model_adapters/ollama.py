"""Ollama model adapter.

Proxies chat requests to a local Ollama instance via httpx.  Models without
native tool support get the manifest in the system prompt and their JSON
replies are parsed back into tool calls.
"""

from __future__ import annotations

import json
import re
from collections.abc import AsyncIterator
from typing import Any

import httpx

from contracts.api import Message, Role, ToolCall, ToolCallFunction, ToolChoice
from contracts.model import ModelAdapter

# Models known to NOT support Ollama native tool calling
_NO_NATIVE_TOOLS = {"gemma3", "gemma2", "gemma"}

_REQUIRED_TOOL_HINT = "\n\nYou must call at least one tool before answering."

_JSON_BLOCK = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def _model_family(model: str) -> str:
    """Extract model family from model name, e.g. 'gemma3:12b' -> 'gemma3'."""
    return model.split(":")[0].split("/")[-1]


def _build_tool_prompt(tools: list[dict[str, Any]]) -> str:
    """Describe the available tools for models that only speak text."""
    lines = [
        "\n\n## Tools",
        "To call a tool, reply with only a JSON block:",
        '```json\n{"tool_call": {"name": "toolName", "arguments": {"arg": "value"}}}\n```',
        "Available tools:\n",
    ]
    for tool in tools:
        fn = tool.get("function", {})
        params = fn.get("parameters", {})
        required = set(params.get("required", []))
        lines.append(f"- **{fn.get('name', '')}**: {fn.get('description', '')}")
        for pname, pdef in params.get("properties", {}).items():
            req = " (required)" if pname in required else ""
            lines.append(f"    - {pname}: {pdef.get('type', 'any')} {pdef.get('description', '')}{req}")
    return "\n".join(lines)


def _tool_call(name: str, args: Any, call_id: str = "call_0") -> ToolCall:
    return ToolCall(
        id=call_id,
        function=ToolCallFunction(
            name=name,
            arguments=json.dumps(args) if isinstance(args, dict) else str(args),
        ),
    )


def _extract_tool_call_from_text(content: str) -> tuple[ToolCall | None, str | None]:
    """Pull a ``{"tool_call": ...}`` JSON block out of free text.

    Returns (tool_call, text_before_block) or (None, original_content).
    """
    match = _JSON_BLOCK.search(content or "")
    if match:
        try:
            tc = json.loads(match.group(1)).get("tool_call")
        except json.JSONDecodeError:
            tc = None
        if isinstance(tc, dict) and "name" in tc:
            remaining = content[: match.start()].strip() or None
            return _tool_call(tc["name"], tc.get("arguments", {})), remaining
    return None, content


class OllamaAdapter(ModelAdapter):
    """Async adapter for the Ollama /api/chat endpoint."""

    def __init__(self, base_url: str = "http://localhost:11434", timeout: float = 300.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def chat(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> Message:
        """Send messages to Ollama and return the assistant response."""
        payload, prompt_tools = self._prepare(messages, model, tools, tool_choice)

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(f"{self._base_url}/api/chat", json=payload)
            resp.raise_for_status()

        result = self._from_ollama_response(resp.json())

        if prompt_tools and result.content and not result.tool_calls:
            tc, remaining = _extract_tool_call_from_text(result.content)
            if tc:
                result = Message(role=Role.ASSISTANT, content=remaining, tool_calls=[tc])

        return result

    async def stream(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> AsyncIterator[str | Message]:
        """Stream Ollama's newline-delimited JSON chunks."""
        payload, prompt_tools = self._prepare(messages, model, tools, tool_choice)
        if prompt_tools:
            # A text-described tool call is only recognisable in the full reply.
            async for part in super().stream(messages, model, tools=tools, tool_choice=tool_choice):
                yield part
            return

        payload["stream"] = True
        content: list[str] = []
        raw_calls: list[dict[str, Any]] = []

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            async with client.stream("POST", f"{self._base_url}/api/chat", json=payload) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    msg_data = json.loads(line).get("message") or {}
                    if msg_data.get("content"):
                        content.append(msg_data["content"])
                        yield msg_data["content"]
                    raw_calls.extend(msg_data.get("tool_calls") or [])

        yield self._from_ollama_response(
            {"message": {"content": "".join(content), "tool_calls": raw_calls}}
        )

    def _prepare(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None,
        tool_choice: ToolChoice,
    ) -> tuple[dict[str, Any], bool]:
        """Build the /api/chat payload; also report whether tools go in the prompt."""
        # Ollama has no tool_choice; "none" means not offering tools at all.
        if tool_choice == ToolChoice.NONE:
            tools = None
        native = bool(tools) and _model_family(model) not in _NO_NATIVE_TOOLS
        prompt_tools = bool(tools) and not native

        payload: dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(messages, prompt_tools),
            "stream": False,
        }

        extra = ""
        if prompt_tools:
            extra += _build_tool_prompt(tools or [])
        if tools and tool_choice == ToolChoice.REQUIRED:
            extra += _REQUIRED_TOOL_HINT
        if extra:
            self._append_to_system(payload["messages"], extra)

        if native:
            payload["tools"] = tools

        return payload, prompt_tools

    # ── format helpers ───────────────────────────────────────────────

    @staticmethod
    def _append_to_system(messages: list[dict[str, Any]], text: str) -> None:
        for msg in messages:
            if msg["role"] == "system":
                msg["content"] = (msg.get("content") or "") + text
                return
        messages.insert(0, {"role": "system", "content": text.lstrip()})

    @staticmethod
    def _build_messages(messages: list[Message], prompt_tools: bool) -> list[dict[str, Any]]:
        """Convert Messages to Ollama format.

        For text-only tool calling, tool traffic is replayed as plain text:
        tool results become user turns and tool calls become JSON blocks.
        """
        out: list[dict[str, Any]] = []
        for msg in messages:
            m: dict[str, Any] = {"role": msg.role.value, "content": msg.content or ""}

            if prompt_tools and msg.role == Role.TOOL:
                m["role"] = "user"
                m["content"] = f"Tool result: {msg.content}"
            elif prompt_tools and msg.tool_calls:
                calls = "\n".join(
                    "```json\n"
                    + json.dumps({
                        "tool_call": {
                            "name": tc.function.name,
                            "arguments": _loads_or_raw(tc.function.arguments),
                        }
                    })
                    + "\n```"
                    for tc in msg.tool_calls
                )
                m["content"] = f"{msg.content or ''}\n{calls}".strip()
            elif msg.tool_calls:
                m["tool_calls"] = [
                    {
                        "function": {
                            "name": tc.function.name,
                            "arguments": _loads_or_raw(tc.function.arguments),
                        }
                    }
                    for tc in msg.tool_calls
                ]
            out.append(m)

        return out

    @staticmethod
    def _from_ollama_response(data: dict[str, Any]) -> Message:
        """Convert an Ollama chat response into a Message."""
        msg_data = data.get("message", {})
        content = msg_data.get("content") or None
        tool_calls: list[ToolCall] | None = None

        raw_calls = msg_data.get("tool_calls")
        if raw_calls:
            tool_calls = [
                _tool_call(
                    tc.get("function", {}).get("name", ""),
                    tc.get("function", {}).get("arguments", {}),
                    tc.get("id", f"call_{i}"),
                )
                for i, tc in enumerate(raw_calls)
            ]
        # Some models answer with a bare {"name": ..., "arguments": ...} object.
        elif content and content.strip().startswith("{"):
            try:
                parsed = json.loads(content.strip())
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict) and "name" in parsed:
                args = parsed.get("arguments") or parsed.get("parameters")
                if isinstance(args, dict):
                    tool_calls = [_tool_call(parsed["name"], args)]
                    content = None

        return Message(role=Role.ASSISTANT, content=content, tool_calls=tool_calls)


def _loads_or_raw(arguments: str) -> Any:
    try:
        return json.loads(arguments)
    except json.JSONDecodeError:
        return arguments
