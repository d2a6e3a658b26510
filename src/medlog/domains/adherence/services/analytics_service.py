"""Analytics service: fetch events for one user and run an analysis.

Each public method validates the query window, pulls what it needs from the
event source, runs the synchronous analyzers and attaches insights from the
formatter. Results are always wrapped in ``AnalysisResult``; bad windows come
back as error results rather than exceptions.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Sequence

from medlog.domains.adherence.connectors import EventSource
from medlog.domains.adherence.domain_logic.adherence_calculator import analyze_adherence
from medlog.domains.adherence.domain_logic.analytics_models import (
    DEFAULT_THRESHOLDS,
    AdherenceReport,
    AnalysisError,
    AnalysisResult,
    AnalyticsThresholds,
    ConsumptionPattern,
    EfficacyComparison,
    EfficacyContext,
    EfficacySummary,
    Finding,
    InsufficientData,
    SideEffectTrend,
)
from medlog.domains.adherence.domain_logic.consumption_analyzer import analyze_consumption, consumption_findings
from medlog.domains.adherence.domain_logic.correlation_engine import run_correlation_analysis
from medlog.domains.adherence.domain_logic.correlation_models import CorrelationAnalysis, HealthCorrelationReport
from medlog.domains.adherence.domain_logic.efficacy_aggregator import (
    compare_efficacy,
    contextual_factors,
    side_effect_trends,
    summarize_efficacy,
)
from medlog.domains.adherence.domain_logic.event_models import DateWindow
from medlog.domains.adherence.domain_logic.health_correlations import analyze_health_correlations
from medlog.domains.adherence.domain_logic.recommendations import (
    adherence_insights,
    adherence_recommendations,
    correlation_findings,
    efficacy_findings,
    health_correlation_findings,
)
from medlog.domains.adherence.domain_logic.timelines import build_timelines
from medlog.domains.adherence.insights.context import (
    adherence_context,
    consumption_context,
    correlation_context,
    efficacy_context,
    health_context,
)
from medlog.domains.adherence.insights.formatter import InsightFormatter

logger = logging.getLogger(__name__)


def validate_window(start: datetime, end: datetime) -> AnalysisError | None:
    """Return an ``invalid_range`` error for an inverted or empty window."""
    window = DateWindow(start=start, end=end)
    if window.is_valid:
        return None
    return AnalysisError(
        kind="invalid_range",
        message=f"Window start {window.start.isoformat()} must be before end {window.end.isoformat()}",
    )


class AdherenceAnalyticsService:
    """Async entry point for every analytics report.

    Usage::

        service = AdherenceAnalyticsService(InMemoryEventSource(dose_events=events))
        window = DateWindow.for_period("30days", now)
        result = await service.adherence_analytics("user-1", window)
        print(result.data.summary.adherence_rate)
    """

    def __init__(
        self,
        event_source: EventSource,
        formatter: InsightFormatter | None = None,
        thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self.event_source = event_source
        self.formatter = formatter or InsightFormatter()
        self.thresholds = thresholds

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _rejected(self, report: str, window: DateWindow) -> AnalysisResult[Any] | None:
        error = validate_window(window.start, window.end)
        if error is None:
            return None
        logger.warning("Rejected %s request: %s", report, error.message)
        return AnalysisResult.failed(error)

    def _log_timing(self, report: str, start_time: float, result: AnalysisResult[Any]) -> None:
        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.info("%s finished with status %s in %.1f ms", report, result.status, elapsed_ms)

    def _provenance(self) -> dict[str, str]:
        return self.event_source.get_provenance()

    # ------------------------------------------------------------------
    # Adherence
    # ------------------------------------------------------------------

    async def _adherence_report(
        self,
        user_id: str,
        window: DateWindow,
        medication_id: str | None,
        now: datetime | None,
    ) -> AdherenceReport:
        events = await self.event_source.get_dose_events(user_id, medication_id, window)
        names = await self.event_source.get_medication_names(user_id)
        return analyze_adherence(events, now=now or window.end, names=names, thresholds=self.thresholds)

    async def adherence_analytics(
        self,
        user_id: str,
        window: DateWindow,
        medication_id: str | None = None,
        now: datetime | None = None,
    ) -> AnalysisResult[AdherenceReport]:
        """Adherence summary, breakdowns, weekly trend and missed-dose patterns."""
        rejected = self._rejected("adherence_analytics", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        report = await self._adherence_report(user_id, window, medication_id, now)
        findings = adherence_insights(report, self.thresholds)
        insights = await self.formatter.generate(
            "adherence",
            findings,
            adherence_context(report, findings, window.to_dict(), self._provenance()),
        )
        result = AnalysisResult.ok(report, insights)
        self._log_timing("adherence_analytics", start_time, result)
        return result

    async def recommendations(
        self,
        user_id: str,
        window: DateWindow,
        medication_id: str | None = None,
        now: datetime | None = None,
    ) -> AnalysisResult[list[Finding]]:
        """Prioritized adherence recommendations, rendered from the catalog."""
        rejected = self._rejected("recommendations", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        report = await self._adherence_report(user_id, window, medication_id, now)
        findings = adherence_recommendations(report, self.thresholds)
        if isinstance(findings, InsufficientData):
            insights = self.formatter.fallback("recommendations", [Finding(category="keep_logging")])
            result: AnalysisResult[list[Finding]] = AnalysisResult.insufficient_data(
                findings, data=[], insights=insights
            )
        else:
            result = AnalysisResult.ok(findings, self.formatter.fallback("recommendations", findings))
        self._log_timing("recommendations", start_time, result)
        return result

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    async def consumption_patterns(
        self,
        user_id: str,
        window: DateWindow,
        medication_id: str | None = None,
    ) -> AnalysisResult[list[ConsumptionPattern]]:
        rejected = self._rejected("consumption_patterns", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        events = await self.event_source.get_dose_events(user_id, medication_id, window)
        names = await self.event_source.get_medication_names(user_id)
        patterns = analyze_consumption(events, names, self.thresholds)
        if not patterns:
            result: AnalysisResult[list[ConsumptionPattern]] = AnalysisResult.insufficient_data(
                InsufficientData(reason="No taken doses in the selected window", required=1, available=0),
                data=[],
            )
        else:
            findings = consumption_findings(patterns)
            insights = await self.formatter.generate(
                "consumption",
                findings,
                consumption_context(patterns, window.to_dict(), self._provenance()),
            )
            result = AnalysisResult.ok(patterns, insights)
        self._log_timing("consumption_patterns", start_time, result)
        return result

    # ------------------------------------------------------------------
    # Efficacy
    # ------------------------------------------------------------------

    async def efficacy_summary(
        self,
        user_id: str,
        medication_id: str,
        window: DateWindow,
    ) -> AnalysisResult[EfficacySummary]:
        """Efficacy rollup for one medication, with side-effect and lifestyle context."""
        rejected = self._rejected("efficacy_summary", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        reports = await self.event_source.get_efficacy_reports(user_id, medication_id, window)
        summary = summarize_efficacy(reports, self.thresholds)
        findings = efficacy_findings(summary)
        if isinstance(summary, InsufficientData):
            result: AnalysisResult[EfficacySummary] = AnalysisResult.insufficient_data(
                summary, insights=self.formatter.fallback("efficacy", findings)
            )
        else:
            check_ins = await self.event_source.get_check_ins(user_id, window)
            names = await self.event_source.get_medication_names(user_id)
            context = efficacy_context(
                summary,
                names.get(medication_id, medication_id),
                side_effect_trends(reports),
                contextual_factors(reports, check_ins),
                window.to_dict(),
                self._provenance(),
            )
            result = AnalysisResult.ok(summary, await self.formatter.generate("efficacy", findings, context))
        self._log_timing("efficacy_summary", start_time, result)
        return result

    async def side_effect_trends(
        self,
        user_id: str,
        medication_id: str,
        window: DateWindow,
    ) -> AnalysisResult[list[SideEffectTrend]]:
        rejected = self._rejected("side_effect_trends", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        reports = await self.event_source.get_efficacy_reports(user_id, medication_id, window)
        result = AnalysisResult.ok(side_effect_trends(reports))
        self._log_timing("side_effect_trends", start_time, result)
        return result

    async def contextual_factors(
        self,
        user_id: str,
        medication_id: str,
        window: DateWindow,
    ) -> AnalysisResult[EfficacyContext]:
        rejected = self._rejected("contextual_factors", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        reports = await self.event_source.get_efficacy_reports(user_id, medication_id, window)
        if not reports:
            result: AnalysisResult[EfficacyContext] = AnalysisResult.insufficient_data(
                InsufficientData(reason="No efficacy reports recorded", required=1, available=0)
            )
        else:
            check_ins = await self.event_source.get_check_ins(user_id, window)
            result = AnalysisResult.ok(contextual_factors(reports, check_ins))
        self._log_timing("contextual_factors", start_time, result)
        return result

    async def compare_efficacy(
        self,
        user_id: str,
        medication_ids: Sequence[str],
        window: DateWindow,
        symptom: str | None = None,
    ) -> AnalysisResult[list[EfficacyComparison]]:
        rejected = self._rejected("compare_efficacy", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        reports_by_medication = {
            medication_id: await self.event_source.get_efficacy_reports(user_id, medication_id, window)
            for medication_id in medication_ids
        }
        names = await self.event_source.get_medication_names(user_id)
        result = AnalysisResult.ok(compare_efficacy(reports_by_medication, symptom, names))
        self._log_timing("compare_efficacy", start_time, result)
        return result

    # ------------------------------------------------------------------
    # Correlations
    # ------------------------------------------------------------------

    async def symptom_correlations(
        self,
        user_id: str,
        window: DateWindow,
    ) -> AnalysisResult[CorrelationAnalysis]:
        """Medication-symptom correlations, temporal patterns and the symptom network."""
        rejected = self._rejected("symptom_correlations", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        dose_events = await self.event_source.get_dose_events(user_id, None, window)
        check_ins = await self.event_source.get_check_ins(user_id, window)
        efficacy_reports = await self.event_source.get_efficacy_reports(user_id, None, window)
        names = await self.event_source.get_medication_names(user_id)

        timelines = build_timelines(dose_events, check_ins, efficacy_reports, window, names)
        analysis = run_correlation_analysis(timelines, self.thresholds)
        findings = correlation_findings(analysis)
        if not timelines.medications or not timelines.symptoms:
            result: AnalysisResult[CorrelationAnalysis] = AnalysisResult.insufficient_data(
                InsufficientData(
                    reason="Correlations need both taken doses and reported symptoms",
                    required=1,
                    available=min(len(timelines.medications), len(timelines.symptoms)),
                ),
                data=analysis,
                insights=self.formatter.fallback("correlations", findings),
            )
        else:
            insights = await self.formatter.generate(
                "correlations",
                findings,
                correlation_context(analysis, window.to_dict(), self._provenance()),
            )
            result = AnalysisResult.ok(analysis, insights)
        self._log_timing("symptom_correlations", start_time, result)
        return result

    async def health_correlations(
        self,
        user_id: str,
        window: DateWindow,
        medication_id: str | None = None,
    ) -> AnalysisResult[HealthCorrelationReport]:
        """Adherence against feeling, symptoms and vital signs."""
        rejected = self._rejected("health_correlations", window)
        if rejected:
            return rejected

        start_time = time.monotonic()
        dose_events = await self.event_source.get_dose_events(user_id, None, window)
        check_ins = await self.event_source.get_check_ins(user_id, window)
        vitals = await self.event_source.get_vital_readings(user_id, window)

        report = analyze_health_correlations(dose_events, check_ins, vitals, medication_id)
        if isinstance(report, InsufficientData):
            result: AnalysisResult[HealthCorrelationReport] = AnalysisResult.insufficient_data(
                report, insights=self.formatter.fallback("health", health_correlation_findings([]))
            )
        else:
            findings = health_correlation_findings(report.correlations, medication_id)
            insights = await self.formatter.generate(
                "health",
                findings,
                health_context(report, window.to_dict(), self._provenance()),
            )
            result = AnalysisResult.ok(report, insights)
        self._log_timing("health_correlations", start_time, result)
        return result
