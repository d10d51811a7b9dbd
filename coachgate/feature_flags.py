"""Gradual rollout of tool calling.

Users are hashed into a stable bucket 0–99; a user whose bucket is below the
rollout percentage gets the tool-calling coach.  Force-enabled users always
do.
"""

from __future__ import annotations

from contracts.config import RolloutConfig


def hash_user_to_bucket(user_id: str) -> int:
    """Stable 32-bit string hash of ``user_id`` folded into 0–99."""
    h = 0
    for ch in user_id:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return abs(h) % 100


def should_use_tool_calling(user_id: str, rollout: RolloutConfig) -> bool:
    if user_id in rollout.force_enable_users:
        return True
    if rollout.percent >= 100:
        return True
    if rollout.percent <= 0:
        return False
    return hash_user_to_bucket(user_id) < rollout.percent
