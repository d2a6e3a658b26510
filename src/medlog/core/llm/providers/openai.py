"""OpenAI chat-completions provider."""

from __future__ import annotations

import time

from medlog.core.llm.provider import DEFAULT_MAX_RETRIES, DEFAULT_MODELS, DEFAULT_TIMEOUT_SECONDS, ProviderResponse


class OpenAIProvider:
    """Insight provider over the async OpenAI chat API, in JSON mode."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODELS["openai"],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        import openai

        self.client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self.model = model

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 600,
        temperature: float = 0.4,
    ) -> ProviderResponse:
        started = time.monotonic()
        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_message},
                {"role": "user", "content": user_message},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        latency_ms = (time.monotonic() - started) * 1000

        text = ""
        if completion.choices:
            text = completion.choices[0].message.content or ""
        usage = completion.usage
        return ProviderResponse(
            content=text,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=completion.model or self.model,
            latency_ms=latency_ms,
        )
