"""Workout tools — recent workouts, personal records, set logging."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import Field

from contracts.envelope import tool_error, tool_success
from contracts.store import Transaction
from contracts.tool_sdk import BaseTool, ToolContext, ToolParams

LBS_PER_KG = 2.20462262

# SQL expression for a set's load in pounds, so kg and lbs rows compare.
_WEIGHT_LBS = "weight * (CASE weight_unit WHEN 'kg' THEN ? ELSE 1 END)"


def to_lbs(weight: float, unit: str) -> float:
    return weight * LBS_PER_KG if unit == "kg" else weight


class RecentWorkoutsParams(ToolParams):
    limit: int = Field(7, ge=1, le=30, description="Number of workouts to return")


class GetRecentWorkouts(BaseTool):
    name = "getRecentWorkouts"
    description = "Get recent completed workouts, most recent first."
    Params = RecentWorkoutsParams

    async def execute(self, params: RecentWorkoutsParams, ctx: ToolContext) -> Any:
        rows = await ctx.store.fetch_all(
            "SELECT id, name, started_at, completed_at, duration_minutes, notes FROM workouts "
            "WHERE user_id = ? AND status = 'completed' ORDER BY completed_at DESC LIMIT ?",
            (ctx.user_id, params.limit),
        )
        return {
            "workouts": [
                {
                    "id": r["id"],
                    "name": r["name"],
                    "date": r["completed_at"] or r["started_at"],
                    "durationMinutes": r["duration_minutes"],
                    "notes": r["notes"],
                }
                for r in rows
            ],
            "totalCount": len(rows),
        }


class PersonalRecordsParams(ToolParams):
    exercise_name: str | None = Field(
        None, alias="exerciseName", min_length=1, description="Filter by specific exercise"
    )


class GetPersonalRecords(BaseTool):
    name = "getPersonalRecords"
    description = "Get personal records (heaviest set) per exercise, optionally for one exercise."
    Params = PersonalRecordsParams

    async def execute(self, params: PersonalRecordsParams, ctx: ToolContext) -> Any:
        # With a single MAX() aggregate SQLite takes the bare columns from the
        # winning row, so each record keeps the unit it was lifted in.
        sql = (
            f"SELECT exercise, weight, weight_unit, created_at AS achieved_at, "
            f"MAX({_WEIGHT_LBS}) AS best_lbs "
            "FROM workout_sets WHERE user_id = ?"
        )
        args: list[Any] = [LBS_PER_KG, ctx.user_id]
        if params.exercise_name:
            sql += " AND LOWER(exercise) LIKE LOWER(?)"
            args.append(f"%{params.exercise_name}%")
        sql += " GROUP BY exercise ORDER BY exercise LIMIT 20"

        rows = await ctx.store.fetch_all(sql, args)
        if params.exercise_name and not rows:
            return tool_error(
                f'No records for exercise "{params.exercise_name}"', reason="EXERCISE_NOT_FOUND"
            )

        return tool_success({
            "records": [
                {
                    "exercise": r["exercise"],
                    "weight": r["weight"],
                    "weightUnit": r["weight_unit"],
                    "achievedAt": r["achieved_at"],
                }
                for r in rows
            ],
            "totalCount": len(rows),
        })


class LogWorkoutSetParams(ToolParams):
    exercise_name: str = Field(..., alias="exerciseName", min_length=1, description="Exercise performed")
    reps: int = Field(..., ge=1, le=100, description="Repetitions completed")
    weight: float | None = Field(None, ge=0, le=2000, description="Load lifted")
    weight_unit: Literal["lbs", "kg"] = Field("lbs", alias="weightUnit")
    rpe: float | None = Field(None, ge=1, le=10, description="Rate of perceived exertion")


class LogWorkoutSet(BaseTool):
    name = "logWorkoutSet"
    description = (
        "Log a completed set to the user's active workout, starting one if none is active. "
        "Use this when the user reports a set, e.g. '225 for 5 on bench'."
    )
    Params = LogWorkoutSetParams

    async def execute(self, params: LogWorkoutSetParams, ctx: ToolContext) -> Any:
        now = datetime.now(timezone.utc).replace(microsecond=0).isoformat()

        def log_set(tx: Transaction) -> dict[str, Any]:
            active = tx.fetch_one(
                "SELECT id FROM workouts WHERE user_id = ? AND status = 'active' "
                "ORDER BY started_at DESC LIMIT 1",
                (ctx.user_id,),
            )
            if active is not None:
                workout_id = active["id"]
            else:
                workout_id = tx.execute(
                    "INSERT INTO workouts (user_id, name, status, started_at) VALUES (?, ?, 'active', ?)",
                    (ctx.user_id, "Logged Workout", now),
                )

            previous = tx.fetch_one(
                f"SELECT MAX({_WEIGHT_LBS}) AS best_lbs FROM workout_sets "
                "WHERE user_id = ? AND LOWER(exercise) = LOWER(?)",
                (LBS_PER_KG, ctx.user_id, params.exercise_name),
            )
            best = (previous or {}).get("best_lbs")
            is_pr = params.weight is not None and (
                best is None or to_lbs(params.weight, params.weight_unit) > best
            )

            count = tx.fetch_one(
                "SELECT COUNT(*) AS n FROM workout_sets WHERE workout_id = ? AND LOWER(exercise) = LOWER(?)",
                (workout_id, params.exercise_name),
            )
            set_number = (count or {}).get("n", 0) + 1

            tx.execute(
                "INSERT INTO workout_sets (user_id, workout_id, exercise, weight, weight_unit, reps, rpe, "
                "is_pr, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    ctx.user_id,
                    workout_id,
                    params.exercise_name,
                    params.weight,
                    params.weight_unit,
                    params.reps,
                    params.rpe,
                    int(is_pr),
                    now,
                ),
            )
            return {"workoutId": workout_id, "setNumber": set_number, "isPr": is_pr}

        logged = await ctx.store.run_in_transaction(log_set)

        return {
            "workoutId": logged["workoutId"],
            "exerciseName": params.exercise_name,
            "weight": params.weight,
            "weightUnit": params.weight_unit,
            "reps": params.reps,
            "setNumber": logged["setNumber"],
            "isPr": logged["isPr"],
        }
