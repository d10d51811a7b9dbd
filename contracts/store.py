"""Persistence handle contract.

Tools and the context provider only ever see this interface; the concrete
store is chosen at startup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, TypeVar


Row = dict[str, Any]

T = TypeVar("T")


class Transaction(ABC):
    """Synchronous statements run inside one exclusive write transaction."""

    @abstractmethod
    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        ...

    @abstractmethod
    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        ...

    @abstractmethod
    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement and return the last inserted row id."""
        ...


class DataStore(ABC):
    """Async persistence handle shared by the tools of one turn."""

    @abstractmethod
    async def get_subscription_tier(self, user_id: str) -> str | None:
        """Return the user's stored subscription tier, or None if unknown."""
        ...

    @abstractmethod
    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        ...

    @abstractmethod
    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        ...

    @abstractmethod
    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement and return the last inserted row id."""
        ...

    @abstractmethod
    async def run_in_transaction(self, fn: Callable[[Transaction], T]) -> T:
        """Run *fn* atomically against the store and return its result.

        Concurrent callers are serialised; *fn* sees the writes of every
        transaction that committed before it started.  If *fn* raises, its
        writes are rolled back and the exception propagates.
        """
        ...
