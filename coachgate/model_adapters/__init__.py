"""Completion API adapters."""

from __future__ import annotations

from contracts.config import ModelBackend, ModelsConfig
from contracts.model import ModelAdapter


def create_adapter(config: ModelsConfig) -> ModelAdapter:
    """Build the adapter named by ``config.backend``."""
    if config.backend == ModelBackend.OLLAMA:
        from coachgate.model_adapters.ollama import OllamaAdapter

        return OllamaAdapter(base_url=config.base_url, timeout=config.timeout_seconds)

    from coachgate.model_adapters.openai_compat import OpenAICompatAdapter

    return OpenAICompatAdapter(
        base_url=config.base_url,
        api_key_env=config.api_key_env,
        timeout=config.timeout_seconds,
    )
