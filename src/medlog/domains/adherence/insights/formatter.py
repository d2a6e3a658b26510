"""Insight formatter — generated insights with a deterministic fallback.

Numbers are computed elsewhere and never depend on this module. Here we only
decide which sentences accompany them: the generator's, when it is present
and answers, or the canned catalog text for the findings the rules produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

from medlog.core.privacy.policy import MAX_LIST_ITEMS, PrivacyMode, build_llm_data_context
from medlog.domains.adherence.domain_logic.analytics_models import AnalysisError, Finding, Serializable
from medlog.domains.adherence.insights.catalog import InsightCatalog, load_insight_catalog
from medlog.domains.adherence.insights.generator import InsightGenerator

logger = logging.getLogger(__name__)

InsightSource = Literal["generated", "fallback"]


@dataclass
class InsightResult(Serializable):
    topic: str
    insights: list[str]
    categories: list[str]
    source: InsightSource
    error: AnalysisError | None = None
    guardrail_flags: list[str] = field(default_factory=list)


class InsightFormatter:
    """Produces the insight list for one analytics topic.

    Usage::

        formatter = InsightFormatter(generator=None)
        result = await formatter.generate("adherence", findings, context)
    """

    def __init__(
        self,
        generator: InsightGenerator | None = None,
        catalog: InsightCatalog | None = None,
        privacy_mode: PrivacyMode = "strict",
        max_items: int = MAX_LIST_ITEMS,
    ) -> None:
        self.generator = generator
        self.catalog = catalog or load_insight_catalog()
        self.privacy_mode = privacy_mode
        self.max_items = max_items

    def build_payload(self, full_context: dict[str, Any]) -> dict[str, Any]:
        return build_llm_data_context(
            full_data_context=full_context,
            privacy_mode=self.privacy_mode,
            max_items=self.max_items,
        )

    def fallback(
        self,
        topic: str,
        findings: Sequence[Finding],
        error: AnalysisError | None = None,
    ) -> InsightResult:
        """Canned insights for ``findings``. Synchronous and always available."""
        return InsightResult(
            topic=topic,
            insights=self.catalog.render_all(findings),
            categories=[f.category for f in findings],
            source="fallback",
            error=error,
        )

    async def generate(
        self,
        topic: str,
        findings: Sequence[Finding],
        full_context: dict[str, Any],
    ) -> InsightResult:
        if self.generator is None:
            return self.fallback(topic, findings)

        payload = self.build_payload(full_context)
        try:
            lines = await self.generator.generate_insights(topic, payload)
        except Exception as exc:
            logger.warning("Insight generation failed for topic %s; using canned insights", topic, exc_info=True)
            return self.fallback(
                topic,
                findings,
                AnalysisError(kind="external_unavailable", message=f"{type(exc).__name__}: {exc}"),
            )

        lines = [line for line in (lines or []) if line and line.strip()]
        if not lines:
            logger.warning("Insight generator returned nothing for topic %s; using canned insights", topic)
            return self.fallback(
                topic,
                findings,
                AnalysisError(kind="external_unavailable", message="Generator returned no insights"),
            )

        return InsightResult(
            topic=topic,
            insights=lines[: self.max_items],
            categories=[f.category for f in findings],
            source="generated",
            guardrail_flags=list(getattr(self.generator, "last_guardrail_flags", [])),
        )
