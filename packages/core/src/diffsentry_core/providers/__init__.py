from __future__ import annotations

from diffsentry_core.providers.base import (
    BaseModelClient,
    EmptyResponse,
    ModelError,
    ModelResponse,
    ProviderError,
    SafetyBlocked,
    Unreachable,
)

__all__ = [
    "BaseModelClient",
    "EmptyResponse",
    "ModelError",
    "ModelResponse",
    "ProviderError",
    "SafetyBlocked",
    "Unreachable",
    "get_model_client",
]


def get_model_client(config: dict) -> BaseModelClient:
    provider = config["model"]
    model_name = config.get("model_name")
    if provider == "gemini":
        model_name = config.get("gemini_model") or model_name
        from diffsentry_core.providers.gemini import GeminiClient

        return GeminiClient(api_key=config["gemini_api_key"], model=model_name)
    if provider == "anthropic":
        from diffsentry_core.providers.anthropic import AnthropicClient

        return AnthropicClient(api_key=config["anthropic_api_key"], model=model_name)
    if provider == "openai":
        from diffsentry_core.providers.openai import OpenAIClient

        return OpenAIClient(api_key=config["openai_api_key"], model=model_name)
    raise ValueError(f"Unknown model provider: {provider!r}. Choose 'gemini', 'anthropic' or 'openai'.")
