"""Optional text generators behind the insight formatter."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from medlog.core.llm.client import InsightLLMClient
from medlog.core.llm.provider import create_provider
from medlog.domains.adherence.prompts.insight_prompts import build_insight_user_message, topic_instructions

logger = logging.getLogger(__name__)


@runtime_checkable
class InsightGenerator(Protocol):
    """Turns a structured, minimized summary into insight sentences.

    Implementations may raise on any failure; the formatter falls back to
    canned text.
    """

    async def generate_insights(self, topic: str, summary: dict[str, Any]) -> list[str]: ...


class LLMInsightGenerator:
    """InsightGenerator backed by an LLM provider.

    Usage::

        generator = LLMInsightGenerator(InsightLLMClient(create_provider("mock")))
        lines = await generator.generate_insights("adherence", summary)
    """

    def __init__(self, client: InsightLLMClient) -> None:
        self.client = client
        self.last_guardrail_flags: list[str] = []

    async def generate_insights(self, topic: str, summary: dict[str, Any]) -> list[str]:
        response = await self.client.invoke(
            topic=topic,
            topic_instructions=topic_instructions(topic),
            user_message=build_insight_user_message(topic, summary),
        )
        self.last_guardrail_flags = response.guardrail_flags
        return response.insights


def create_insight_generator(settings) -> LLMInsightGenerator | None:
    """Build the configured generator, or None when generation is off."""
    if not settings.insights_enabled or settings.llm_provider == "none":
        logger.info("Insight generation disabled; canned insights only")
        return None

    if settings.llm_provider == "anthropic":
        api_key, model = settings.anthropic_api_key, settings.anthropic_model
    elif settings.llm_provider == "openai":
        api_key, model = settings.openai_api_key, settings.openai_model
    else:
        api_key, model = "", ""

    if settings.llm_provider in ("anthropic", "openai") and not api_key:
        logger.warning("No API key configured for %s; canned insights only", settings.llm_provider)
        return None

    provider = create_provider(
        settings.llm_provider,
        api_key=api_key,
        model=model,
        timeout=settings.insight_timeout_seconds,
        max_retries=settings.insight_max_retries,
    )
    client = InsightLLMClient(
        provider,
        max_tokens=settings.insight_max_tokens,
        temperature=settings.insight_temperature,
    )
    return LLMInsightGenerator(client)
