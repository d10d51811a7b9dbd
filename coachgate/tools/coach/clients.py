"""Coach client management tools.

Every tool here verifies the coach–client relationship before touching a
client's data.  A client that is not the caller's reads as not found.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from contracts.envelope import tool_error
from contracts.tool_sdk import BaseTool, ToolContext, ToolParams, UserRole

from coachgate.tools.coach.helpers import get_coach_clients, is_coach_of_client


def _client_not_found() -> Any:
    return tool_error("Client not found", reason="CLIENT_NOT_FOUND")


class ClientListParams(ToolParams):
    status: Literal["active", "all"] = "active"
    limit: int = Field(20, ge=1, le=50)


class GetClientList(BaseTool):
    name = "getClientList"
    description = (
        "Get the list of clients assigned to the coach. Use this when the coach asks to see "
        "their clients, how many they have, or to list their athletes."
    )
    Params = ClientListParams
    minimum_role = UserRole.COACH

    async def execute(self, params: ClientListParams, ctx: ToolContext) -> Any:
        rows = await get_coach_clients(ctx.store, ctx.user_id, params.status, params.limit)
        clients = [
            {
                "id": r["client_id"],
                "name": r["name"],
                "status": r["status"],
                "experienceLevel": r["experience_level"],
                "assignedAt": r["assigned_at"],
                "lastWorkoutAt": r["last_workout_at"],
            }
            for r in rows
        ]
        return {"hasClients": bool(clients), "clients": clients, "totalCount": len(clients)}


class ClientParams(ToolParams):
    client_id: UUID = Field(..., alias="clientId", description="Client user ID")


class GetClientProfile(BaseTool):
    name = "getClientProfile"
    description = (
        "Get the detailed profile for one of the coach's clients: experience level, goals, "
        "injuries and preferences."
    )
    Params = ClientParams
    minimum_role = UserRole.COACH

    async def execute(self, params: ClientParams, ctx: ToolContext) -> Any:
        client_id = str(params.client_id)
        if not await is_coach_of_client(ctx.store, ctx.user_id, client_id):
            return _client_not_found()

        profile = await ctx.store.fetch_one(
            "SELECT * FROM user_profiles WHERE user_id = ?", (client_id,)
        )
        if profile is None:
            return _client_not_found()

        return {
            "client": {
                "id": client_id,
                "name": profile["name"],
                "experienceLevel": profile["experience_level"],
                "goals": json.loads(profile["goals"] or "[]"),
                "injuries": profile["injuries"],
                "tier": profile["tier"],
                "preferredWeightUnit": profile["preferred_weight_unit"],
            }
        }


class ClientWorkoutsParams(ClientParams):
    limit: int = Field(10, ge=1, le=30)


class GetClientWorkouts(BaseTool):
    name = "getClientWorkouts"
    description = "Get recent workouts for one of the coach's clients."
    Params = ClientWorkoutsParams
    minimum_role = UserRole.COACH

    async def execute(self, params: ClientWorkoutsParams, ctx: ToolContext) -> Any:
        client_id = str(params.client_id)
        if not await is_coach_of_client(ctx.store, ctx.user_id, client_id):
            return _client_not_found()

        rows = await ctx.store.fetch_all(
            "SELECT id, name, status, started_at, completed_at, duration_minutes FROM workouts "
            "WHERE user_id = ? ORDER BY started_at DESC LIMIT ?",
            (client_id, params.limit),
        )
        return {
            "clientId": client_id,
            "workouts": [
                {
                    "id": r["id"],
                    "name": r["name"],
                    "status": r["status"],
                    "startedAt": r["started_at"],
                    "completedAt": r["completed_at"],
                    "durationMinutes": r["duration_minutes"],
                }
                for r in rows
            ],
            "totalCount": len(rows),
        }


class AtRiskParams(ToolParams):
    inactive_days: int = Field(7, alias="inactiveDays", ge=1, le=90,
                               description="Days without a completed workout")


class GetAtRiskClients(BaseTool):
    name = "getAtRiskClients"
    description = (
        "Find active clients who have not completed a workout recently. Use this when the "
        "coach asks who is falling off, who needs a check-in, or which clients are at risk."
    )
    Params = AtRiskParams
    minimum_role = UserRole.COACH

    async def execute(self, params: AtRiskParams, ctx: ToolContext) -> Any:
        cutoff = datetime.now(timezone.utc) - timedelta(days=params.inactive_days)
        rows = await get_coach_clients(ctx.store, ctx.user_id, "active")

        at_risk = []
        for r in rows:
            last = r["last_workout_at"]
            last_dt = datetime.fromisoformat(last) if last else None
            if last_dt is not None and last_dt.tzinfo is None:
                last_dt = last_dt.replace(tzinfo=timezone.utc)
            if last_dt is None or last_dt < cutoff:
                at_risk.append({
                    "id": r["client_id"],
                    "name": r["name"],
                    "lastWorkoutAt": last,
                    "daysInactive": (datetime.now(timezone.utc) - last_dt).days if last_dt else None,
                })

        return {
            "inactiveDays": params.inactive_days,
            "atRiskClients": at_risk,
            "totalCount": len(at_risk),
            "activeClientCount": len(rows),
        }
