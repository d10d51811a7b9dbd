"""Unit tests for tool sets and the dispatcher."""

from __future__ import annotations

import pytest

from contracts.envelope import ErrorKind
from contracts.tool_sdk import BaseTool, NoParams, ToolContext, UserRole

from coachgate.dispatcher import ToolDispatcher
from coachgate.tools.registry import ToolSet, athlete_tool_set, coach_tool_set


class _Named(BaseTool):
    description = "test tool"
    Params = NoParams

    def __init__(self, name: str, minimum_role: UserRole | None = None) -> None:
        self.name = name
        self.minimum_role = minimum_role

    async def execute(self, params: NoParams, ctx: ToolContext) -> dict:
        return {"tool": self.name}


def _ctx(stub_store, role: UserRole = UserRole.FREE) -> ToolContext:
    return ToolContext(store=stub_store, user_id="user-1", role=role)


# ── ToolSet ─────────────────────────────────────────────────────────


class TestToolSet:
    def test_register_and_get(self) -> None:
        ts = ToolSet("t", [_Named("b"), _Named("a")])
        assert ts.list_tools() == ["a", "b"]
        assert ts.get("a").name == "a"
        assert "b" in ts
        assert len(ts) == 2

    def test_duplicate_rejected(self) -> None:
        ts = ToolSet("t", [_Named("a")])
        with pytest.raises(ValueError):
            ts.register(_Named("a"))

    def test_get_unknown(self) -> None:
        with pytest.raises(KeyError):
            ToolSet("t").get("missing")

    def test_union(self) -> None:
        combined = ToolSet("x", [_Named("a")]).union(ToolSet("y", [_Named("b")]))
        assert combined.name == "x+y"
        assert combined.list_tools() == ["a", "b"]

    def test_union_collision(self) -> None:
        with pytest.raises(ValueError):
            ToolSet("x", [_Named("a")]).union(ToolSet("y", [_Named("a")]))

    def test_catalogue(self) -> None:
        athlete = athlete_tool_set()
        coach = coach_tool_set()
        assert athlete.list_tools() == [
            "getActiveInjuries",
            "getPersonalRecords",
            "getProgressTrends",
            "getRecentWorkouts",
            "getUserPreferences",
            "getUserProfile",
            "getVolumeAnalytics",
            "logWorkoutSet",
        ]
        assert coach.list_tools() == [
            "getAtRiskClients",
            "getClientList",
            "getClientProfile",
            "getClientWorkouts",
        ]
        assert all(t.minimum_role == UserRole.COACH for t in coach)
        assert athlete.get("getVolumeAnalytics").minimum_role == UserRole.PREMIUM
        assert athlete.get("getUserProfile").minimum_role is None


# ── dispatcher ──────────────────────────────────────────────────────


class TestToolDispatcher:
    @pytest.mark.asyncio
    async def test_dispatch_by_name(self, stub_store) -> None:
        d = ToolDispatcher.for_turn(_ctx(stub_store), ToolSet("t", [_Named("a"), _Named("b")]))
        result = await d.dispatch("b", {})
        assert result.success
        assert result.data == {"tool": "b"}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, stub_store) -> None:
        d = ToolDispatcher.for_turn(_ctx(stub_store), ToolSet("t", [_Named("a")]))
        result = await d.dispatch("deleteEverything", {})
        assert result.code == ErrorKind.NOT_FOUND
        assert result.error.reason == "UNKNOWN_TOOL"

    @pytest.mark.asyncio
    async def test_tool_outside_sets_not_reachable(self, stub_store) -> None:
        d = ToolDispatcher.for_turn(_ctx(stub_store, UserRole.COACH), athlete_tool_set())
        result = await d.dispatch("getClientList", {})
        assert result.error.reason == "UNKNOWN_TOOL"

    def test_union_of_sets(self, stub_store) -> None:
        d = ToolDispatcher.for_turn(
            _ctx(stub_store), ToolSet("x", [_Named("a")]), ToolSet("y", [_Named("b")])
        )
        assert d.list_tools() == ["a", "b"]
        assert "a" in d
        assert len(d) == 2

    def test_no_sets(self, stub_store) -> None:
        d = ToolDispatcher.for_turn(_ctx(stub_store))
        assert len(d) == 0
        assert d.function_definitions() == []

    def test_manifest_lists_denied_tools_too(self, stub_store) -> None:
        ts = ToolSet("t", [_Named("open"), _Named("paid", UserRole.PREMIUM)])
        d = ToolDispatcher.for_turn(_ctx(stub_store, UserRole.FREE), ts)
        assert [e.name for e in d.get_manifest()] == ["open", "paid"]

    def test_function_definitions_exclude(self, stub_store) -> None:
        d = ToolDispatcher.for_turn(_ctx(stub_store), ToolSet("t", [_Named("a"), _Named("b")]))
        fns = d.function_definitions(exclude=["a"])
        assert [f["function"]["name"] for f in fns] == ["b"]
