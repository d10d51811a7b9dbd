"""Shared fixtures: an in-memory tier stub, a scripted model and a seeded SQLite store."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeVar
from unittest.mock import MagicMock

import pytest

from contracts.api import Message, ToolChoice
from contracts.model import ModelAdapter
from contracts.store import DataStore, Row, Transaction

from coachgate.seed import seed_demo_data
from coachgate.store import SqliteStore

T = TypeVar("T")


class _EmptyTransaction(Transaction):
    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        return None

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        return []

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return 0


class StubStore(DataStore):
    """Returns fixed tiers and no rows."""

    def __init__(self, tiers: dict[str, str | None] | None = None) -> None:
        self.tiers = tiers or {}
        self.tier_lookups = 0

    async def get_subscription_tier(self, user_id: str) -> str | None:
        self.tier_lookups += 1
        return self.tiers.get(user_id)

    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        return None

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        return []

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return 0

    async def run_in_transaction(self, fn: Callable[[Transaction], T]) -> T:
        return fn(_EmptyTransaction())


class ScriptedAdapter(ModelAdapter):
    """Replays canned replies in order; exceptions in the script are raised.

    ``stream`` emits each reply's text in four-character chunks.
    """

    def __init__(self, replies: list[Message | Exception]) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def chat(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> Message:
        self.calls.append({"messages": list(messages), "tools": tools, "tool_choice": tool_choice})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def stream(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> AsyncIterator[str | Message]:
        reply = await self.chat(messages, model, tools=tools, tool_choice=tool_choice)
        text = reply.content or ""
        for i in range(0, len(text), 4):
            yield text[i : i + 4]
        yield reply


@pytest.fixture()
def stub_store() -> StubStore:
    return StubStore({"free-user": "free", "premium-user": "premium", "coach-user": "coach"})


@pytest.fixture()
def seeded_store(tmp_path: Path) -> SqliteStore:
    """A SQLite file with the demo accounts."""
    store = SqliteStore(tmp_path / "coachgate.db")
    seed_demo_data(store)
    return store


@pytest.fixture()
def scripted_adapter() -> type[ScriptedAdapter]:
    """Factory: ``scripted_adapter([reply, ...])``."""
    return ScriptedAdapter


class FakeStream:
    """Replaces ``httpx.AsyncClient.stream``: records the request, replays lines."""

    def __init__(self, lines: list[str]) -> None:
        self.lines = lines
        self.method = ""
        self.url = ""
        self.kwargs: dict[str, Any] = {}

    @asynccontextmanager
    async def __call__(self, method: str, url: str, **kwargs: Any) -> AsyncIterator[MagicMock]:
        self.method, self.url, self.kwargs = method, url, kwargs
        resp = MagicMock()
        resp.raise_for_status.return_value = None
        resp.aiter_lines = self._aiter_lines
        yield resp

    async def _aiter_lines(self) -> AsyncIterator[str]:
        for line in self.lines:
            yield line


@pytest.fixture()
def fake_stream() -> type[FakeStream]:
    """Factory: ``patch("httpx.AsyncClient.stream", fake_stream(lines))``."""
    return FakeStream
