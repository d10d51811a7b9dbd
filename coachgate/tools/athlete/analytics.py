"""Analytics tools — training volume and progress trends (premium)."""

from __future__ import annotations

import json
from datetime import date, timedelta
from typing import Any, Literal

from pydantic import Field

from contracts.tool_sdk import BaseTool, ToolContext, ToolParams, UserRole

_PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 90}


class VolumeAnalyticsParams(ToolParams):
    days: int = Field(30, ge=7, le=90, description="Number of days to analyze")
    period: Literal["week", "month", "quarter"] | None = Field(
        None, description="Shorthand for days; overrides it when given"
    )

    @property
    def window_days(self) -> int:
        return _PERIOD_DAYS[self.period] if self.period else self.days


class GetVolumeAnalytics(BaseTool):
    name = "getVolumeAnalytics"
    description = (
        "Get training volume analytics and muscle group distribution. Use this when the user "
        "asks how much volume they are doing, which muscle groups they train, or about "
        "training balance."
    )
    Params = VolumeAnalyticsParams
    minimum_role = UserRole.PREMIUM

    async def execute(self, params: VolumeAnalyticsParams, ctx: ToolContext) -> Any:
        days = params.window_days
        start = (date.today() - timedelta(days=days)).isoformat()
        rows = await ctx.store.fetch_all(
            "SELECT * FROM daily_workout_analytics WHERE user_id = ? AND date >= ? ORDER BY date DESC",
            (ctx.user_id, start),
        )
        if not rows:
            return {"hasData": False, "message": "No workout data in this period"}

        total_volume = sum(r["total_volume"] or 0 for r in rows)
        total_sets = sum(r["total_sets"] or 0 for r in rows)
        total_workouts = sum(r["workout_count"] or 0 for r in rows)

        muscle_groups: dict[str, int] = {}
        for row in rows:
            breakdown = json.loads(row["muscle_group_breakdown"] or "{}")
            for muscle, sets in breakdown.items():
                muscle_groups[muscle] = muscle_groups.get(muscle, 0) + sets

        return {
            "hasData": True,
            "period": f"Last {days} days",
            "summary": {
                "totalVolume": round(total_volume),
                "totalSets": total_sets,
                "totalWorkouts": total_workouts,
                "totalPRs": sum(r["pr_count"] or 0 for r in rows),
                "avgVolumePerWorkout": round(total_volume / total_workouts) if total_workouts else 0,
                "avgSetsPerWorkout": round(total_sets / total_workouts) if total_workouts else 0,
            },
            "muscleGroupDistribution": muscle_groups,
            "dailyTrend": [
                {"date": r["date"], "volume": r["total_volume"], "sets": r["total_sets"]}
                for r in rows[:7]
            ],
        }


class ProgressTrendsParams(ToolParams):
    weeks: int = Field(12, ge=4, le=52, description="Number of weeks to analyze")


class GetProgressTrends(BaseTool):
    name = "getProgressTrends"
    description = (
        "Get overall progress trends: whether weekly training volume is increasing, stable "
        "or decreasing. Use this when the user asks if they are getting stronger or improving."
    )
    Params = ProgressTrendsParams
    minimum_role = UserRole.PREMIUM

    async def execute(self, params: ProgressTrendsParams, ctx: ToolContext) -> Any:
        start = (date.today() - timedelta(weeks=params.weeks)).isoformat()
        rows = await ctx.store.fetch_all(
            "SELECT date, total_volume, workout_count, pr_count FROM daily_workout_analytics "
            "WHERE user_id = ? AND date >= ? ORDER BY date",
            (ctx.user_id, start),
        )
        if not rows:
            return {"hasData": False, "message": "No weekly data available"}

        weekly: dict[str, dict[str, float]] = {}
        for row in rows:
            day = date.fromisoformat(row["date"])
            week_start = (day - timedelta(days=day.weekday())).isoformat()
            bucket = weekly.setdefault(week_start, {"volume": 0.0, "workouts": 0, "prs": 0})
            bucket["volume"] += row["total_volume"] or 0
            bucket["workouts"] += row["workout_count"] or 0
            bucket["prs"] += row["pr_count"] or 0

        weeks = [weekly[k] | {"weekStart": k} for k in sorted(weekly, reverse=True)]
        recent, older = weeks[:4], weeks[4:8]
        recent_avg = sum(w["volume"] for w in recent) / len(recent)
        older_avg = sum(w["volume"] for w in older) / len(older) if older else recent_avg
        change = (recent_avg - older_avg) / older_avg * 100 if older_avg > 0 else 0.0

        if change > 5:
            direction = "increasing"
        elif change < -5:
            direction = "decreasing"
        else:
            direction = "stable"

        return {
            "hasData": True,
            "weeks": params.weeks,
            "trends": {
                "volumeTrend": direction,
                "volumeChangePercent": round(change),
                "avgWeeklyVolume": round(recent_avg),
                "avgWeeklyWorkouts": round(sum(w["workouts"] for w in recent) / len(recent)),
                "totalPRs": int(sum(w["prs"] for w in weeks)),
            },
            "weeklyData": weeks[:8],
        }
