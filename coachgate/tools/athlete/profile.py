"""Athlete profile tools — profile, preferences, injuries."""

from __future__ import annotations

import json
from typing import Any

from contracts.envelope import tool_error, tool_success
from contracts.tool_sdk import BaseTool, NoParams, ToolContext

_PROFILE_SQL = "SELECT * FROM user_profiles WHERE user_id = ?"


def _json_list(value: str | None) -> list[Any]:
    if not value:
        return []
    try:
        loaded = json.loads(value)
    except json.JSONDecodeError:
        return []
    return loaded if isinstance(loaded, list) else []


class GetUserProfile(BaseTool):
    name = "getUserProfile"
    description = (
        "Get the current user profile including goals, experience level, injuries, and "
        "training preferences. Use this when the user asks about their profile, goals, "
        "experience or tier, or when you need to personalize recommendations."
    )
    Params = NoParams

    async def execute(self, params: NoParams, ctx: ToolContext) -> Any:
        profile = await ctx.store.fetch_one(_PROFILE_SQL, (ctx.user_id,))
        if profile is None:
            return tool_error("User profile not found", reason="PROFILE_NOT_FOUND")

        return tool_success({
            "name": profile["name"],
            "experienceLevel": profile["experience_level"],
            "goals": _json_list(profile["goals"]),
            "injuries": profile["injuries"],
            "preferredEquipment": _json_list(profile["preferred_equipment"]),
            "preferredWeightUnit": profile["preferred_weight_unit"] or "lbs",
            "trainingFrequency": profile["training_frequency"],
            "tier": profile["tier"],
        })


class GetUserPreferences(BaseTool):
    name = "getUserPreferences"
    description = (
        "Get user SETTINGS and PREFERENCES only (weight unit, notification settings, "
        "equipment the user OWNS). Use this for questions like 'what equipment do I have' "
        "or 'what is my preferred unit'. Not for searching exercises."
    )
    Params = NoParams

    async def execute(self, params: NoParams, ctx: ToolContext) -> Any:
        profile = await ctx.store.fetch_one(_PROFILE_SQL, (ctx.user_id,))
        if profile is None:
            return tool_error("User profile not found", reason="PROFILE_NOT_FOUND")

        return {
            "preferredWeightUnit": profile["preferred_weight_unit"] or "lbs",
            "preferredEquipment": _json_list(profile["preferred_equipment"]),
            "exercisesToAvoid": _json_list(profile["exercises_to_avoid"]),
            "notificationsEnabled": bool(profile["notifications_enabled"]),
        }


class GetActiveInjuries(BaseTool):
    name = "getActiveInjuries"
    description = (
        "Get currently active injuries the user has logged. Use this when the user asks "
        "about injuries or body parts to avoid, or before recommending exercises."
    )
    Params = NoParams

    async def execute(self, params: NoParams, ctx: ToolContext) -> Any:
        profile = await ctx.store.fetch_one(_PROFILE_SQL, (ctx.user_id,))
        injuries = (profile or {}).get("injuries")
        has_injuries = bool(injuries and injuries.strip())

        return {
            "activeInjuries": injuries if has_injuries else None,
            "hasActiveInjuries": has_injuries,
            "exercisesToAvoid": _json_list((profile or {}).get("exercises_to_avoid")),
        }
