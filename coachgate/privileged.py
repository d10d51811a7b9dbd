"""Privileged context construction.

For administrative tooling and test harnesses only.  Request handling code
(the HTTP app and the coach service) must never import this module: the
role here is taken on trust instead of being read from the user's
subscription.
"""

from __future__ import annotations

import logging

from contracts.store import DataStore
from contracts.tool_sdk import ToolContext, UserRole

logger = logging.getLogger(__name__)


def create_context_with_role(store: DataStore, user_id: str, role: UserRole | str) -> ToolContext:
    """Build a ToolContext with an explicit role, skipping the tier lookup."""
    role = UserRole(role)
    ctx = ToolContext(store=store, user_id=user_id, role=role)
    logger.warning(
        "Privileged context %s created for user=%s with role=%s", ctx.turn_id, user_id, role.value
    )
    return ctx
