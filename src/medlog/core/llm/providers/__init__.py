"""LLM provider implementations."""

from medlog.core.llm.providers.anthropic import AnthropicProvider
from medlog.core.llm.providers.mock import FailingProvider, MockProvider
from medlog.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "FailingProvider", "MockProvider", "OpenAIProvider"]
