"""SQLite persistence handle.

One connection per operation, run off the event loop, so tools fanned out
in the same step can share a store safely.  Read-then-write sequences go
through ``run_in_transaction``, which holds SQLite's write lock from the
first read (``BEGIN IMMEDIATE``).
"""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from contracts.store import DataStore, Row, Transaction

T = TypeVar("T")

# Seconds a writer waits for another transaction to release the lock.
BUSY_TIMEOUT = 30.0

SCHEMA = """
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    tier TEXT,
    experience_level TEXT,
    goals TEXT DEFAULT '[]',
    injuries TEXT,
    preferred_weight_unit TEXT DEFAULT 'lbs',
    preferred_equipment TEXT DEFAULT '[]',
    exercises_to_avoid TEXT DEFAULT '[]',
    training_frequency TEXT,
    notifications_enabled INTEGER DEFAULT 1
);

CREATE TABLE IF NOT EXISTS workouts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    started_at TEXT NOT NULL,
    completed_at TEXT,
    duration_minutes INTEGER,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS workout_sets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    workout_id INTEGER,
    exercise TEXT NOT NULL,
    weight REAL,
    weight_unit TEXT DEFAULT 'lbs',
    reps INTEGER NOT NULL,
    rpe REAL,
    is_pr INTEGER DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS daily_workout_analytics (
    user_id TEXT NOT NULL,
    date TEXT NOT NULL,
    total_volume REAL DEFAULT 0,
    total_sets INTEGER DEFAULT 0,
    workout_count INTEGER DEFAULT 0,
    pr_count INTEGER DEFAULT 0,
    muscle_group_breakdown TEXT DEFAULT '{}',
    PRIMARY KEY (user_id, date)
);

CREATE TABLE IF NOT EXISTS coach_clients (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    coach_id TEXT NOT NULL,
    client_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    assigned_at TEXT NOT NULL,
    UNIQUE (coach_id, client_id)
);

CREATE INDEX IF NOT EXISTS idx_workouts_user ON workouts (user_id, status);
CREATE INDEX IF NOT EXISTS idx_sets_user ON workout_sets (user_id, exercise);
"""


class SqliteStore(DataStore):
    """DataStore backed by a local SQLite file."""

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)

    @property
    def path(self) -> str:
        return self._path

    def initialise(self) -> None:
        """Create tables if they do not exist."""
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path)
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    async def get_subscription_tier(self, user_id: str) -> str | None:
        row = await self.fetch_one("SELECT tier FROM user_profiles WHERE user_id = ?", (user_id,))
        return row["tier"] if row else None

    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        rows = await asyncio.to_thread(self._query, sql, params, 1)
        return rows[0] if rows else None

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        return await asyncio.to_thread(self._query, sql, params, None)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return await asyncio.to_thread(self._write, sql, params)

    async def run_in_transaction(self, fn: Callable[[Transaction], T]) -> T:
        return await asyncio.to_thread(self._transact, fn)

    # ── internal ────────────────────────────────────────────────────

    def _connect(self, **kwargs: Any) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=BUSY_TIMEOUT, **kwargs)
        conn.row_factory = sqlite3.Row
        return conn

    def _query(self, sql: str, params: Sequence[Any], limit: int | None) -> list[Row]:
        conn = self._connect()
        try:
            cursor = conn.execute(sql, tuple(params))
            raw = cursor.fetchmany(limit) if limit else cursor.fetchall()
            return [dict(r) for r in raw]
        finally:
            conn.close()

    def _write(self, sql: str, params: Sequence[Any]) -> int:
        conn = self._connect()
        try:
            cursor = conn.execute(sql, tuple(params))
            conn.commit()
            return cursor.lastrowid or 0
        finally:
            conn.close()

    def _transact(self, fn: Callable[[Transaction], T]) -> T:
        # Autocommit mode so BEGIN/COMMIT are ours to issue.
        conn = self._connect(isolation_level=None)
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                result = fn(_SqliteTransaction(conn))
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
            return result
        finally:
            conn.close()


class _SqliteTransaction(Transaction):
    """Statements on the connection holding the write lock."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        row = self._conn.execute(sql, tuple(params)).fetchone()
        return dict(row) if row is not None else None

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        return [dict(r) for r in self._conn.execute(sql, tuple(params)).fetchall()]

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return self._conn.execute(sql, tuple(params)).lastrowid or 0
