"""Offline providers: canned output for tests and local runs, and a failing one."""

from __future__ import annotations

from medlog.core.llm.provider import ProviderResponse

DEFAULT_MOCK_CONTENT = (
    '{"insights": ['
    '"Your logged doses show a steady routine worth keeping.", '
    '"Bring this summary to your next appointment to review your medication plan."'
    "]}"
)


class MockProvider:
    """Answers every request with ``response_content`` and records the prompts."""

    def __init__(self, response_content: str = DEFAULT_MOCK_CONTENT) -> None:
        self.response_content = response_content
        self.prompts: list[tuple[str, str]] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    @property
    def last_system_message(self) -> str:
        return self.prompts[-1][0] if self.prompts else ""

    @property
    def last_user_message(self) -> str:
        return self.prompts[-1][1] if self.prompts else ""

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 600,
        temperature: float = 0.4,
    ) -> ProviderResponse:
        self.prompts.append((system_message, user_message))
        # Word counts stand in for token counts.
        return ProviderResponse(
            content=self.response_content,
            input_tokens=len(system_message.split()) + len(user_message.split()),
            output_tokens=len(self.response_content.split()),
            model="mock",
            latency_ms=0.0,
        )


class FailingProvider:
    """Raises ``error`` on every call, standing in for an unreachable service."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or ConnectionError("LLM provider unavailable")
        self.call_count = 0

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 600,
        temperature: float = 0.4,
    ) -> ProviderResponse:
        self.call_count += 1
        raise self.error
