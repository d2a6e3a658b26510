"""Anthropic Claude provider."""

from __future__ import annotations

import time

from medlog.core.llm.provider import DEFAULT_MAX_RETRIES, DEFAULT_MODELS, DEFAULT_TIMEOUT_SECONDS, ProviderResponse


class AnthropicProvider:
    """Insight provider over the async Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODELS["anthropic"],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        import anthropic

        self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self.model = model

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 600,
        temperature: float = 0.4,
    ) -> ProviderResponse:
        started = time.monotonic()
        message = await self.client.messages.create(
            model=self.model,
            system=system_message,
            messages=[{"role": "user", "content": user_message}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        latency_ms = (time.monotonic() - started) * 1000

        # Only text blocks carry insight content.
        text = "".join(block.text for block in message.content if getattr(block, "type", "text") == "text")
        return ProviderResponse(
            content=text,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
            model=message.model or self.model,
            latency_ms=latency_ms,
        )
