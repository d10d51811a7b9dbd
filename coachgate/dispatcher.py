"""Tool dispatcher — the closed name → BoundTool map for one turn."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from contracts.envelope import ErrorKind, ToolResult, tool_error
from contracts.policy import PolicyEngine
from contracts.tool_sdk import ManifestEntry, ToolContext

from coachgate.binder import BoundTool, bind
from coachgate.tools.registry import ToolSet

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """Dispatches tool calls by name and publishes the manifest."""

    def __init__(self, bound: Mapping[str, BoundTool]) -> None:
        self._bound = dict(bound)

    @classmethod
    def for_turn(
        cls,
        ctx: ToolContext,
        *tool_sets: ToolSet,
        policy: PolicyEngine | None = None,
    ) -> ToolDispatcher:
        """Bind the union of ``tool_sets`` to ``ctx``."""
        combined = tool_sets[0].union(*tool_sets[1:]) if tool_sets else ToolSet("empty")
        return cls(bind(ctx, combined, policy))

    async def dispatch(self, tool_name: str, raw_arguments: Any = None) -> ToolResult:
        bound = self._bound.get(tool_name)
        if bound is None:
            logger.info("Model requested unknown tool %r", tool_name)
            return tool_error(f"Unknown tool: {tool_name}", ErrorKind.NOT_FOUND, reason="UNKNOWN_TOOL")
        return await bound(raw_arguments)

    def get_manifest(self) -> list[ManifestEntry]:
        return [self._bound[name].manifest_entry() for name in sorted(self._bound)]

    def function_definitions(self, exclude: Iterable[str] = ()) -> list[dict[str, Any]]:
        """Manifest in function-calling format, minus ``exclude``."""
        skip = set(exclude)
        return [entry.to_function() for entry in self.get_manifest() if entry.name not in skip]

    def list_tools(self) -> list[str]:
        return sorted(self._bound)

    def __contains__(self, name: object) -> bool:
        return name in self._bound

    def __len__(self) -> int:
        return len(self._bound)
