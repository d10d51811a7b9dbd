"""Permission gate — binds tool definitions to a turn's context.

Every bound invocation runs the same fixed sequence:

1. validate the raw arguments against the tool's params model,
2. enforce the role decision made at bind time,
3. execute the domain logic inside a failure boundary,
4. normalise whatever came back into a result envelope.

Nothing a tool raises escapes a BoundTool; callers only ever get a
ToolSuccess or a ToolFailure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from contracts.envelope import (
    INTERNAL_ERROR_MESSAGE,
    PLAN_UPGRADE_MESSAGE,
    ErrorKind,
    ToolFailure,
    ToolResult,
    ToolSuccess,
    is_tool_result,
    tool_error,
)
from contracts.policy import PolicyDecision, PolicyEngine
from contracts.tool_sdk import ArgumentError, BaseTool, ManifestEntry, ToolContext

from coachgate.policy import RolePolicyEngine

logger = logging.getLogger(__name__)


class BoundTool:
    """One tool fused with one context.  Lives for a single turn."""

    def __init__(self, tool: BaseTool, ctx: ToolContext, decision: PolicyDecision) -> None:
        self._tool = tool
        self._ctx = ctx
        self._decision = decision

    @property
    def name(self) -> str:
        return self._tool.name

    @property
    def allowed(self) -> bool:
        return self._decision.allowed

    def manifest_entry(self) -> ManifestEntry:
        return self._tool.manifest_entry()

    async def __call__(self, raw_args: Any = None) -> ToolResult:
        # 1. validate
        try:
            params = self._tool.parse(raw_args)
        except ArgumentError as exc:
            logger.info(
                "Validation failed for %s (turn %s): %s", self.name, self._ctx.turn_id, exc
            )
            return tool_error(str(exc), ErrorKind.VALIDATION_ERROR, details=exc.issues)

        # 2. authorize
        if not self._decision.allowed:
            logger.info(
                "Permission denied for %s (turn %s, user %s): %s",
                self.name,
                self._ctx.turn_id,
                self._ctx.user_id,
                self._decision.reason,
            )
            return tool_error(PLAN_UPGRADE_MESSAGE, ErrorKind.PERMISSION_DENIED)

        # 3. execute
        try:
            value = await self._tool.execute(params, self._ctx)
        except Exception:
            logger.exception(
                "Tool %s raised (turn %s, user %s)", self.name, self._ctx.turn_id, self._ctx.user_id
            )
            return tool_error(INTERNAL_ERROR_MESSAGE, ErrorKind.INTERNAL_ERROR)

        # 4. normalise
        return self._normalise(value)

    def _normalise(self, value: Any) -> ToolResult:
        if not is_tool_result(value):
            return ToolSuccess(data=value)
        if isinstance(value, ToolFailure):
            if value.code == ErrorKind.PERMISSION_DENIED:
                # reserved for the role gate; a tool's own access check reads as "not found"
                logger.warning(
                    "Tool %s returned PERMISSION_DENIED; reporting NOT_FOUND instead", self.name
                )
                return tool_error(
                    value.error.message, ErrorKind.NOT_FOUND, reason=value.error.reason
                )
            logger.debug(
                "Tool %s reported %s: %s", self.name, value.code.value, value.error.message
            )
        return value


def bind(
    ctx: ToolContext,
    tools: Iterable[BaseTool],
    policy: PolicyEngine | None = None,
) -> dict[str, BoundTool]:
    """Bind every tool in ``tools`` (a ToolSet or any iterable) to ``ctx``.

    The role decision is taken here, once, and closed over by each
    BoundTool; it is still enforced on every call.
    """
    policy = policy or RolePolicyEngine()
    bound: dict[str, BoundTool] = {}
    for tool in tools:
        if tool.name in bound:
            raise ValueError(f"Duplicate tool name: {tool.name}")
        bound[tool.name] = BoundTool(tool, ctx, policy.check_tool(tool, ctx))
    return bound
