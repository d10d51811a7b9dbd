"""Policy engine contracts.

The policy engine decides, once per (tool, context) pair, whether the
caller's role is high enough to run the tool.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel

from contracts.tool_sdk import BaseTool, ToolContext


class PolicyVerdict(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class PolicyDecision(BaseModel):
    verdict: PolicyVerdict
    rule: str = ""      # which rule triggered the decision
    reason: str = ""    # server-side explanation, never shown to the user

    @property
    def allowed(self) -> bool:
        return self.verdict == PolicyVerdict.ALLOW


class PolicyEngine(ABC):
    """Interface that the runtime policy engine must implement."""

    @abstractmethod
    def check_tool(self, tool: BaseTool, ctx: ToolContext) -> PolicyDecision:
        """May this context run this tool?"""
        ...
