"""Tool sets — named, curated groups of tool definitions."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import jsonschema

from contracts.tool_sdk import BaseTool, ManifestEntry


class ToolSet:
    """In-memory mapping of tool name to definition for one persona."""

    def __init__(self, name: str, tools: Iterable[BaseTool] = ()) -> None:
        self.name = name
        self._tools: dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        """Register a tool instance.  Names must be unique within the set.

        The schema derived from the tool's params is checked here so that a
        malformed manifest fails at startup rather than at the model.
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered in set '{self.name}'")
        jsonschema.Draft202012Validator.check_schema(tool.manifest_entry().input_schema)
        self._tools[tool.name] = tool

    def get(self, name: str) -> BaseTool:
        """Return a registered tool by name, or raise ``KeyError``."""
        return self._tools[name]

    def list_tools(self) -> list[str]:
        """Return sorted list of registered tool names."""
        return sorted(self._tools)

    def manifest(self) -> list[ManifestEntry]:
        return [self._tools[name].manifest_entry() for name in sorted(self._tools)]

    def union(self, *others: ToolSet, name: str | None = None) -> ToolSet:
        """Combine sets.  A name present in two sets is an error."""
        combined = ToolSet(name or "+".join([self.name, *(o.name for o in others)]), self)
        for other in others:
            for tool in other:
                combined.register(tool)
        return combined

    def __iter__(self) -> Iterator[BaseTool]:
        return iter(self._tools[name] for name in sorted(self._tools))

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools


def athlete_tool_set() -> ToolSet:
    """Tools exposed to athlete-facing agents."""
    from coachgate.tools.athlete.analytics import GetProgressTrends, GetVolumeAnalytics
    from coachgate.tools.athlete.profile import GetActiveInjuries, GetUserPreferences, GetUserProfile
    from coachgate.tools.athlete.workout import GetPersonalRecords, GetRecentWorkouts, LogWorkoutSet

    return ToolSet(
        "athlete",
        [
            GetUserProfile(),
            GetUserPreferences(),
            GetActiveInjuries(),
            GetRecentWorkouts(),
            GetPersonalRecords(),
            LogWorkoutSet(),
            GetVolumeAnalytics(),
            GetProgressTrends(),
        ],
    )


def coach_tool_set() -> ToolSet:
    """Tools exposed to coach-facing agents."""
    from coachgate.tools.coach.clients import (
        GetAtRiskClients,
        GetClientList,
        GetClientProfile,
        GetClientWorkouts,
    )

    return ToolSet(
        "coach",
        [
            GetClientList(),
            GetClientProfile(),
            GetClientWorkouts(),
            GetAtRiskClients(),
        ],
    )
