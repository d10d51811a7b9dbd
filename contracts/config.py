"""Config (coachgate.yaml) schema — Pydantic models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from contracts.api import ToolChoice


# ── Top-level sections ──────────────────────────────────────────────


class AppInfo(BaseModel):
    name: str = "coachgate"
    version: str = "0.1.0"


class AgentConfig(BaseModel):
    max_steps: int = Field(5, ge=1, le=20)
    tool_choice: ToolChoice = ToolChoice.AUTO   # first step only: auto | required
    history_limit: int = Field(10, ge=0)
    system_prompt: str | None = None


# ── Models ───────────────────────────────────────────────────────────


class ModelBackend(str, Enum):
    OPENAI = "openai"   # any OpenAI-compatible endpoint (xAI, OpenAI, vLLM...)
    OLLAMA = "ollama"


class ModelsConfig(BaseModel):
    backend: ModelBackend = ModelBackend.OPENAI
    base_url: str = "https://api.x.ai/v1"
    default: str = "grok-4-1-fast-reasoning"
    api_key_env: str = "XAI_API_KEY"
    timeout_seconds: float = 120.0


# ── Storage & rollout ───────────────────────────────────────────────


class StorageConfig(BaseModel):
    sqlite_path: str = "coachgate.db"


class RolloutConfig(BaseModel):
    percent: int = Field(0, ge=0, le=100)
    force_enable_users: list[str] = []


# ── Root config ──────────────────────────────────────────────────────


class GateConfig(BaseModel):
    app: AppInfo = AppInfo()
    agent: AgentConfig = AgentConfig()
    models: ModelsConfig = ModelsConfig()
    storage: StorageConfig = StorageConfig()
    rollout: RolloutConfig = RolloutConfig()
