"""Config loader — parse and validate coachgate.yaml."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from contracts.config import GateConfig

DEFAULT_CONFIG_PATH = "./coachgate.yaml"


def load_config(path: str) -> GateConfig:
    """Load a coachgate.yaml file and return a validated GateConfig."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    raw = p.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__}")

    return apply_env_overrides(GateConfig(**data))


def apply_env_overrides(config: GateConfig) -> GateConfig:
    """Rollout settings may be overridden from the environment."""
    rollout = config.rollout
    percent = os.environ.get("TOOL_CALLING_ROLLOUT_PERCENT")
    if percent:
        try:
            value = int(percent)
        except ValueError:
            raise ValueError(f"TOOL_CALLING_ROLLOUT_PERCENT must be an integer, got {percent!r}") from None
        rollout = rollout.model_copy(update={"percent": min(100, max(0, value))})

    users = os.environ.get("TOOL_CALLING_FORCE_ENABLE_USERS")
    if users:
        force = [u.strip() for u in users.split(",") if u.strip()]
        rollout = rollout.model_copy(update={"force_enable_users": force})

    return config.model_copy(update={"rollout": rollout})


def config_path_from_env() -> str:
    return os.environ.get("COACHGATE_CONFIG", DEFAULT_CONFIG_PATH)
