"""Tool context provider.

Resolves an authenticated user into a role tier, once per turn, and packs
it with the persistence handle into an immutable ToolContext.
"""

from __future__ import annotations

import logging

from contracts.store import DataStore
from contracts.tool_sdk import ToolContext, UserRole

logger = logging.getLogger(__name__)


def determine_user_role(tier: str | None) -> UserRole:
    """Map a stored subscription tier to a role.

    Anything unrecognised, including no tier at all, is ``free``.
    """
    if not isinstance(tier, str):
        return UserRole.FREE
    normalized = tier.strip().lower()
    if normalized == UserRole.COACH.value:
        return UserRole.COACH
    if normalized == UserRole.PREMIUM.value:
        return UserRole.PREMIUM
    return UserRole.FREE


async def create_context(store: DataStore, user_id: str) -> ToolContext:
    """Create the tool context for one conversational turn.

    Errors from the tier lookup propagate; a turn never starts on a guessed
    role.
    """
    tier = await store.get_subscription_tier(user_id)
    role = determine_user_role(tier)
    ctx = ToolContext(store=store, user_id=user_id, role=role)
    logger.debug("Context %s: user=%s tier=%r role=%s", ctx.turn_id, user_id, tier, role.value)
    return ctx
