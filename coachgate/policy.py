"""Role policy engine.

A single total-order role hierarchy: a tool that requires ``premium`` is
available to ``premium`` and ``coach`` callers and never to ``free`` ones.
"""

from __future__ import annotations

from contracts.policy import PolicyDecision, PolicyEngine, PolicyVerdict
from contracts.tool_sdk import BaseTool, ToolContext, UserRole


def has_permission(role: UserRole, required: UserRole | None) -> bool:
    """True if ``role`` is at or above ``required``.  No requirement always passes."""
    if required is None:
        return True
    return role.rank >= required.rank


class RolePolicyEngine(PolicyEngine):
    """Compares the context's role against the tool's minimum role."""

    def check_tool(self, tool: BaseTool, ctx: ToolContext) -> PolicyDecision:
        required = tool.minimum_role

        if required is None:
            return PolicyDecision(
                verdict=PolicyVerdict.ALLOW,
                rule="minimum_role",
                reason=f"Tool '{tool.name}' has no role requirement",
            )

        if has_permission(ctx.role, required):
            return PolicyDecision(
                verdict=PolicyVerdict.ALLOW,
                rule="minimum_role",
                reason=f"Role '{ctx.role.value}' satisfies '{required.value}'",
            )

        return PolicyDecision(
            verdict=PolicyVerdict.DENY,
            rule="minimum_role",
            reason=f"Tool '{tool.name}' requires '{required.value}', caller is '{ctx.role.value}'",
        )
