"""Unit tests for the athlete and coach tools against a seeded SQLite store."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import Any

import pytest

from contracts.envelope import ErrorKind, ToolResult
from contracts.tool_sdk import UserRole

from coachgate.context import create_context
from coachgate.dispatcher import ToolDispatcher
from coachgate.seed import (
    CLIENT_1_ID,
    CLIENT_2_ID,
    COACH_ID,
    FREE_ATHLETE_ID,
    PREMIUM_ATHLETE_ID,
    seed_demo_data,
)
from coachgate.store import SqliteStore
from coachgate.tools.registry import athlete_tool_set, coach_tool_set


# ── Helpers ─────────────────────────────────────────────────────────


async def _call(store: SqliteStore, user_id: str, tool: str, args: Any = None) -> ToolResult:
    ctx = await create_context(store, user_id)
    sets = [athlete_tool_set()]
    if ctx.role == UserRole.COACH:
        sets.append(coach_tool_set())
    return await ToolDispatcher.for_turn(ctx, *sets).dispatch(tool, args or {})


# ── Store ───────────────────────────────────────────────────────────


class TestSqliteStore:
    @pytest.mark.asyncio
    async def test_subscription_tiers(self, seeded_store: SqliteStore) -> None:
        assert await seeded_store.get_subscription_tier(FREE_ATHLETE_ID) == "free"
        assert await seeded_store.get_subscription_tier(COACH_ID) == "coach"
        assert await seeded_store.get_subscription_tier("missing") is None

    @pytest.mark.asyncio
    async def test_execute_returns_rowid(self, seeded_store: SqliteStore) -> None:
        rowid = await seeded_store.execute(
            "INSERT INTO workouts (user_id, name, started_at) VALUES (?, ?, ?)",
            (FREE_ATHLETE_ID, "Test", "2026-01-01T00:00:00"),
        )
        row = await seeded_store.fetch_one("SELECT name FROM workouts WHERE id = ?", (rowid,))
        assert row == {"name": "Test"}

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, seeded_store: SqliteStore) -> None:
        def failing(tx: Any) -> None:
            tx.execute(
                "INSERT INTO workouts (user_id, name, started_at) VALUES (?, ?, ?)",
                (FREE_ATHLETE_ID, "Abandoned", "2026-01-01T00:00:00"),
            )
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await seeded_store.run_in_transaction(failing)

        assert await seeded_store.fetch_one("SELECT id FROM workouts WHERE name = 'Abandoned'") is None

    def test_seed_is_idempotent(self, seeded_store: SqliteStore) -> None:
        seed_demo_data(seeded_store)

        conn = sqlite3.connect(seeded_store.path)
        try:
            (count,) = conn.execute(
                "SELECT COUNT(*) FROM coach_clients WHERE coach_id = ?", (COACH_ID,)
            ).fetchone()
        finally:
            conn.close()
        assert count == 2


# ── Profile tools ───────────────────────────────────────────────────


class TestProfileTools:
    @pytest.mark.asyncio
    async def test_get_user_profile(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, PREMIUM_ATHLETE_ID, "getUserProfile")
        assert result.success
        assert result.data["name"] == "Premium Tier Athlete"
        assert result.data["tier"] == "premium"
        assert "strength" in result.data["goals"]

    @pytest.mark.asyncio
    async def test_profile_not_found(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, "ghost-user", "getUserProfile")
        assert result.code == ErrorKind.NOT_FOUND
        assert result.error.reason == "PROFILE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_preferences(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, PREMIUM_ATHLETE_ID, "getUserPreferences")
        assert result.data["preferredWeightUnit"] == "lbs"
        assert result.data["exercisesToAvoid"] == ["conventional_deadlift"]
        assert result.data["notificationsEnabled"] is True

    @pytest.mark.asyncio
    async def test_active_injuries(self, seeded_store: SqliteStore) -> None:
        premium = await _call(seeded_store, PREMIUM_ATHLETE_ID, "getActiveInjuries")
        free = await _call(seeded_store, FREE_ATHLETE_ID, "getActiveInjuries")
        assert premium.data["hasActiveInjuries"] is True
        assert "lower back" in premium.data["activeInjuries"]
        assert free.data["hasActiveInjuries"] is False
        assert free.data["activeInjuries"] is None


# ── Workout tools ───────────────────────────────────────────────────


class TestWorkoutTools:
    @pytest.mark.asyncio
    async def test_recent_workouts_default_limit(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, PREMIUM_ATHLETE_ID, "getRecentWorkouts")
        assert result.data["totalCount"] == 7
        dates = [w["date"] for w in result.data["workouts"]]
        assert dates == sorted(dates, reverse=True)

    @pytest.mark.asyncio
    async def test_recent_workouts_limit_validated(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, PREMIUM_ATHLETE_ID, "getRecentWorkouts", {"limit": 500})
        assert result.code == ErrorKind.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_personal_records(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, PREMIUM_ATHLETE_ID, "getPersonalRecords")
        records = {r["exercise"]: r["weight"] for r in result.data["records"]}
        assert set(records) == {"Back Squat", "Bench Press", "Barbell Row"}
        assert records["Back Squat"] == pytest.approx(210.0)

    @pytest.mark.asyncio
    async def test_personal_records_filter(self, seeded_store: SqliteStore) -> None:
        result = await _call(
            seeded_store, PREMIUM_ATHLETE_ID, "getPersonalRecords", {"exerciseName": "bench"}
        )
        assert [r["exercise"] for r in result.data["records"]] == ["Bench Press"]

    @pytest.mark.asyncio
    async def test_personal_records_unknown_exercise(self, seeded_store: SqliteStore) -> None:
        result = await _call(
            seeded_store, PREMIUM_ATHLETE_ID, "getPersonalRecords", {"exerciseName": "Deadlift"}
        )
        assert result.code == ErrorKind.NOT_FOUND
        assert result.error.reason == "EXERCISE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_log_workout_set(self, seeded_store: SqliteStore) -> None:
        args = {"exerciseName": "Goblet Squat", "reps": 10, "weight": 40, "weightUnit": "lbs"}
        first = await _call(seeded_store, FREE_ATHLETE_ID, "logWorkoutSet", args)
        second = await _call(seeded_store, FREE_ATHLETE_ID, "logWorkoutSet", args)

        assert first.data["setNumber"] == 1
        assert first.data["isPr"] is True
        assert second.data["setNumber"] == 2
        assert second.data["isPr"] is False
        assert first.data["workoutId"] == second.data["workoutId"]

    @pytest.mark.asyncio
    async def test_log_workout_set_concurrent_calls(self, seeded_store: SqliteStore) -> None:
        # "3 sets of 225 on bench" arrives as three calls in one model step
        ctx = await create_context(seeded_store, FREE_ATHLETE_ID)
        dispatcher = ToolDispatcher.for_turn(ctx, athlete_tool_set())
        args = {"exerciseName": "Bench", "reps": 5, "weight": 225}

        results = await asyncio.gather(*(dispatcher.dispatch("logWorkoutSet", args) for _ in range(3)))

        assert all(r.success for r in results)
        assert sorted(r.data["setNumber"] for r in results) == [1, 2, 3]
        assert [r.data["isPr"] for r in results].count(True) == 1
        assert len({r.data["workoutId"] for r in results}) == 1
        active = await seeded_store.fetch_all(
            "SELECT id FROM workouts WHERE user_id = ? AND status = 'active'", (FREE_ATHLETE_ID,)
        )
        assert len(active) == 1

    @pytest.mark.asyncio
    async def test_pr_compares_across_units(self, seeded_store: SqliteStore) -> None:
        kg = {"exerciseName": "Front Squat", "reps": 3, "weight": 100, "weightUnit": "kg"}
        lbs = {"exerciseName": "Front Squat", "reps": 3, "weight": 200, "weightUnit": "lbs"}

        first = await _call(seeded_store, FREE_ATHLETE_ID, "logWorkoutSet", kg)
        second = await _call(seeded_store, FREE_ATHLETE_ID, "logWorkoutSet", lbs)
        records = await _call(
            seeded_store, FREE_ATHLETE_ID, "getPersonalRecords", {"exerciseName": "Front Squat"}
        )

        assert first.data["isPr"] is True
        # 200 lbs is lighter than 100 kg
        assert second.data["isPr"] is False
        (record,) = records.data["records"]
        assert record["weight"] == pytest.approx(100.0)
        assert record["weightUnit"] == "kg"

    @pytest.mark.asyncio
    async def test_log_workout_set_requires_reps(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, FREE_ATHLETE_ID, "logWorkoutSet", {"exerciseName": "Squat"})
        assert result.code == ErrorKind.VALIDATION_ERROR
        assert result.error.details[0]["loc"] == ["reps"]


# ── Analytics tools ─────────────────────────────────────────────────


class TestAnalyticsTools:
    @pytest.mark.asyncio
    async def test_free_user_denied(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, FREE_ATHLETE_ID, "getVolumeAnalytics", {"period": "week"})
        assert result.code == ErrorKind.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_volume_analytics(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, PREMIUM_ATHLETE_ID, "getVolumeAnalytics")
        assert result.data["hasData"] is True
        assert result.data["period"] == "Last 30 days"
        assert result.data["summary"]["totalWorkouts"] == 11
        assert result.data["muscleGroupDistribution"] == {"quads": 11, "chest": 11, "back": 11}

    @pytest.mark.asyncio
    async def test_volume_period_overrides_days(self, seeded_store: SqliteStore) -> None:
        result = await _call(
            seeded_store, PREMIUM_ATHLETE_ID, "getVolumeAnalytics", {"period": "week", "days": 60}
        )
        assert result.data["period"] == "Last 7 days"

    @pytest.mark.asyncio
    async def test_volume_no_data(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, COACH_ID, "getVolumeAnalytics")
        assert result.data == {"hasData": False, "message": "No workout data in this period"}

    @pytest.mark.asyncio
    async def test_progress_trends(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, PREMIUM_ATHLETE_ID, "getProgressTrends", {"weeks": 8})
        assert result.data["hasData"] is True
        assert result.data["trends"]["volumeTrend"] in {"increasing", "stable", "decreasing"}
        assert result.data["weeklyData"]


# ── Coach tools ─────────────────────────────────────────────────────


class TestCoachTools:
    @pytest.mark.asyncio
    async def test_client_list(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, COACH_ID, "getClientList", {"status": "active"})
        assert result.success
        assert result.data["totalCount"] == 2
        assert {c["id"] for c in result.data["clients"]} == {CLIENT_1_ID, CLIENT_2_ID}

    @pytest.mark.asyncio
    async def test_client_profile(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, COACH_ID, "getClientProfile", {"clientId": CLIENT_2_ID})
        assert result.data["client"]["name"] == "Client Two"
        assert "shoulder" in result.data["client"]["injuries"]

    @pytest.mark.asyncio
    async def test_other_users_are_not_found(self, seeded_store: SqliteStore) -> None:
        result = await _call(
            seeded_store, COACH_ID, "getClientProfile", {"clientId": FREE_ATHLETE_ID}
        )
        assert result.code == ErrorKind.NOT_FOUND
        assert result.error.reason == "CLIENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_client_profile_bad_uuid(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, COACH_ID, "getClientProfile", {"clientId": "not-a-uuid"})
        assert result.code == ErrorKind.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_client_workouts(self, seeded_store: SqliteStore) -> None:
        result = await _call(
            seeded_store, COACH_ID, "getClientWorkouts", {"clientId": CLIENT_1_ID, "limit": 2}
        )
        assert result.data["clientId"] == CLIENT_1_ID
        assert result.data["totalCount"] == 2

    @pytest.mark.asyncio
    async def test_at_risk_clients(self, seeded_store: SqliteStore) -> None:
        result = await _call(seeded_store, COACH_ID, "getAtRiskClients", {"inactiveDays": 7})
        assert [c["id"] for c in result.data["atRiskClients"]] == [CLIENT_2_ID]
        assert result.data["atRiskClients"][0]["daysInactive"] >= 20
        assert result.data["activeClientCount"] == 2
