"""LLM provider protocol and factory for insight text generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-5-20250929",
    "openai": "gpt-4o",
}

# Insight text is optional, so a slow provider is cut off early and the
# caller falls back to canned text.
DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_MAX_RETRIES = 1


@dataclass
class ProviderResponse:
    """Text and token accounting for one completion."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


@runtime_checkable
class LLMProvider(Protocol):
    """Anything that turns a system + user message pair into text."""

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 600,
        temperature: float = 0.4,
    ) -> ProviderResponse: ...


def create_provider(
    provider_name: str,
    api_key: str = "",
    model: str = "",
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> LLMProvider:
    """Build a provider by name: "anthropic", "openai" or "mock".

    SDK imports happen here so that the mock provider works without either
    SDK configured. Raises ``ValueError`` for any other name.
    """
    model = model or DEFAULT_MODELS.get(provider_name, "")
    if provider_name == "anthropic":
        from medlog.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key, model=model, timeout=timeout, max_retries=max_retries)
    if provider_name == "openai":
        from medlog.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key, model=model, timeout=timeout, max_retries=max_retries)
    if provider_name == "mock":
        from medlog.core.llm.providers.mock import MockProvider

        return MockProvider()
    raise ValueError(f"Unknown LLM provider: {provider_name}")
