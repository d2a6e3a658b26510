"""Insight LLM client: prompt assembly, provider call and response cleanup."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from medlog.core.llm.provider import LLMProvider, ProviderResponse
from medlog.core.llm.response import extract_insights, sanitize_insights
from medlog.core.llm.system_prompt import build_full_system_prompt

logger = logging.getLogger(__name__)


@dataclass
class InsightTextResponse:
    """Parsed, guardrail-filtered output of one generation call."""

    insights: list[str]
    topic: str
    model: str
    guardrail_flags: list[str] = field(default_factory=list)
    usage: dict[str, int] = field(default_factory=dict)


class InsightLLMClient:
    """Invokes the LLM with topic instructions and a JSON data summary."""

    def __init__(
        self,
        provider: LLMProvider,
        max_tokens: int = 600,
        temperature: float = 0.4,
    ) -> None:
        self.provider = provider
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def invoke(self, topic: str, topic_instructions: str, user_message: str) -> InsightTextResponse:
        """Generate insights. Provider errors propagate to the caller."""
        full_system = build_full_system_prompt(topic_instructions)

        provider_response: ProviderResponse = await self.provider.generate(
            system_message=full_system,
            user_message=user_message,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

        logger.info(
            "Insight LLM call: topic=%s, model=%s, tokens=%d+%d, latency=%.0fms",
            topic,
            provider_response.model,
            provider_response.input_tokens,
            provider_response.output_tokens,
            provider_response.latency_ms,
        )

        insights, guardrail_check = sanitize_insights(extract_insights(provider_response.content))
        if not guardrail_check.passed:
            logger.warning(
                "Guardrails enforced on topic %s: %d prohibited patterns removed",
                topic,
                len(guardrail_check.flags),
            )

        return InsightTextResponse(
            insights=insights,
            topic=topic,
            model=provider_response.model,
            guardrail_flags=guardrail_check.flags,
            usage={
                "input_tokens": provider_response.input_tokens,
                "output_tokens": provider_response.output_tokens,
            },
        )
