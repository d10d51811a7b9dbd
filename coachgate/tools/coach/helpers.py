"""Coach–client relationship checks shared by the coach tools."""

from __future__ import annotations

from typing import Any

from contracts.store import DataStore, Row


async def is_coach_of_client(store: DataStore, coach_id: str, client_id: str) -> bool:
    """True if an active coach–client relationship exists."""
    row = await store.fetch_one(
        "SELECT 1 AS ok FROM coach_clients WHERE coach_id = ? AND client_id = ? AND status = 'active'",
        (coach_id, client_id),
    )
    return row is not None


async def get_coach_clients(
    store: DataStore, coach_id: str, status: str = "active", limit: int = 50
) -> list[Row]:
    sql = (
        "SELECT c.client_id, c.status, c.assigned_at, p.name, p.experience_level, p.tier, "
        "(SELECT MAX(completed_at) FROM workouts w WHERE w.user_id = c.client_id "
        " AND w.status = 'completed') AS last_workout_at "
        "FROM coach_clients c LEFT JOIN user_profiles p ON p.user_id = c.client_id "
        "WHERE c.coach_id = ?"
    )
    args: list[Any] = [coach_id]
    if status != "all":
        sql += " AND c.status = ?"
        args.append(status)
    sql += " ORDER BY c.assigned_at DESC LIMIT ?"
    args.append(limit)
    return await store.fetch_all(sql, args)
