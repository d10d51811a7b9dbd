"""Chat API contracts (OpenAI-compatible message shapes)."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolChoice(str, Enum):
    AUTO = "auto"
    REQUIRED = "required"
    NONE = "none"


class ToolCallFunction(BaseModel):
    name: str
    arguments: str  # JSON-encoded string


class ToolCall(BaseModel):
    id: str
    type: str = "function"
    function: ToolCallFunction


class Message(BaseModel):
    role: Role
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None


class ChatRequest(BaseModel):
    messages: list[Message]
    model: str | None = None
    stream: bool = False


class TraceMeta(BaseModel):
    """Trace metadata appended to every response."""

    turn_id: str
    role: str = ""
    tools_used: list[str] = []
    terminal_tools: list[str] = []
    steps: int = 0
    finish_reason: str = "stop"
    intent: str = "general_fitness"
    model: str = ""


class ChatResponse(BaseModel):
    id: str
    object: str = "chat.completion"
    model: str
    message: Message
    notices: list[str] = []   # fixed user-facing messages, e.g. plan limits
    trace: TraceMeta | None = None


class StreamChunk(BaseModel):
    """One event of a streamed turn: a text delta, or the final response."""

    chunk: str | None = None
    final: ChatResponse | None = None


class ToolListResponse(BaseModel):
    tools: list[dict[str, Any]]
