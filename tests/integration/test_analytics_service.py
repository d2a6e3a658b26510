"""End-to-end tests for the analytics service over the sample export."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from medlog.core.llm.client import InsightLLMClient
from medlog.core.llm.providers import FailingProvider, MockProvider
from medlog.domains.adherence.connectors.in_memory import InMemoryEventSource
from medlog.domains.adherence.domain_logic.event_models import DateWindow
from medlog.domains.adherence.insights.formatter import InsightFormatter
from medlog.domains.adherence.insights.generator import LLMInsightGenerator
from medlog.domains.adherence.services.analytics_service import AdherenceAnalyticsService, validate_window

START = datetime(2024, 3, 4, tzinfo=timezone.utc)
NOW = START + timedelta(days=14)
WINDOW = DateWindow(START, NOW)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class _ExplodingSource(InMemoryEventSource):
    async def get_dose_events(self, *args, **kwargs):
        raise AssertionError("events must not be fetched for an invalid window")


# ---------------------------------------------------------------------------
# Window validation
# ---------------------------------------------------------------------------

def test_validate_window():
    assert validate_window(START, NOW) is None
    assert validate_window(NOW, START).kind == "invalid_range"
    assert validate_window(START, START).kind == "invalid_range"


def test_invalid_window_is_rejected_without_fetching():
    service = AdherenceAnalyticsService(_ExplodingSource())
    result = _run(service.adherence_analytics("user-1", DateWindow(NOW, START)))
    assert result.status == "error"
    assert result.error.kind == "invalid_range"
    assert result.data is None


# ---------------------------------------------------------------------------
# Adherence
# ---------------------------------------------------------------------------

class TestAdherence:
    def test_weekday_weekend_figures(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).adherence_analytics("user-1", WINDOW))
        report = result.data
        assert result.status == "ok"
        assert report.summary.total_logs == 28
        assert report.summary.taken_logs == 24
        assert report.summary.adherence_rate == 86
        assert report.day_of_week.weekday_rate == 100
        assert report.day_of_week.weekend_rate == 50
        assert report.missed_patterns.worst_medication.name == "Metformin"
        assert report.missed_patterns.worst_time == "morning"

    def test_canned_insights_without_generator(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).adherence_analytics("user-1", WINDOW))
        assert result.insights.source == "fallback"
        assert result.insights.insights
        assert "overall_good" in result.insights.categories

    def test_other_users_excluded(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).adherence_analytics("user-2", WINDOW))
        assert result.data.summary.total_logs == 1
        assert result.data.summary.adherence_rate == 0

    def test_medication_filter(self, sample_source):
        service = AdherenceAnalyticsService(sample_source)
        result = _run(service.adherence_analytics("user-1", WINDOW, medication_id="med-2"))
        assert result.data.summary.adherence_rate == 100

    def test_generated_insights_with_mock(self, sample_source):
        formatter = InsightFormatter(generator=LLMInsightGenerator(InsightLLMClient(MockProvider())))
        result = _run(AdherenceAnalyticsService(sample_source, formatter).adherence_analytics("user-1", WINDOW))
        assert result.insights.source == "generated"
        assert result.data.summary.adherence_rate == 86

    def test_generator_failure_keeps_numbers(self, sample_source):
        formatter = InsightFormatter(generator=LLMInsightGenerator(InsightLLMClient(FailingProvider())))
        result = _run(AdherenceAnalyticsService(sample_source, formatter).adherence_analytics("user-1", WINDOW))
        assert result.status == "ok"
        assert result.data.summary.adherence_rate == 86
        assert result.insights.source == "fallback"
        assert result.insights.error.kind == "external_unavailable"

    def test_result_serializes(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).adherence_analytics("user-1", WINDOW))
        payload = result.to_dict()
        assert payload["status"] == "ok"
        assert payload["data"]["summary"]["adherence_rate"] == 86


class TestRecommendations:
    def test_ordered_findings(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).recommendations("user-1", WINDOW))
        categories = [f.category for f in result.data]
        assert result.status == "ok"
        assert categories[0] == "problem_medication"
        assert "morning_routine" in categories
        assert "weekend_gap" in categories
        assert len(result.insights.insights) == len(categories)

    def test_too_few_logs(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).recommendations("user-2", WINDOW))
        assert result.status == "insufficient_data"
        assert result.data == []
        assert result.insufficient.available == 1
        assert result.insights.categories == ["keep_logging"]


# ---------------------------------------------------------------------------
# Consumption and efficacy
# ---------------------------------------------------------------------------

class TestConsumption:
    def test_patterns(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).consumption_patterns("user-1", WINDOW))
        patterns = {p.medication_id: p for p in result.data}
        assert result.status == "ok"
        assert patterns["med-1"].dose_count == 10
        assert patterns["med-1"].by_time_of_day["morning"] == 10
        assert patterns["med-2"].average_interval_hours == 24.0
        assert all(not p.double_dose_instances for p in result.data)

    def test_no_taken_doses(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).consumption_patterns("user-2", WINDOW))
        assert result.status == "insufficient_data"
        assert result.data == []


class TestEfficacy:
    def test_summary(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).efficacy_summary("user-1", "med-1", WINDOW))
        assert result.status == "ok"
        assert result.data.records_count == 5
        assert result.data.average_rating == 4.0
        assert result.data.side_effects[0].effect == "nausea"
        assert result.data.average_time_to_effect == 45

    def test_no_reports(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).efficacy_summary("user-1", "med-2", WINDOW))
        assert result.status == "insufficient_data"
        assert result.insights.source == "fallback"

    def test_side_effect_trends(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).side_effect_trends("user-1", "med-1", WINDOW))
        assert [t.effect for t in result.data] == ["nausea"]

    def test_contextual_factors(self, sample_source):
        service = AdherenceAnalyticsService(sample_source)
        assert _run(service.contextual_factors("user-1", "med-1", WINDOW)).status == "ok"
        assert _run(service.contextual_factors("user-1", "med-2", WINDOW)).status == "insufficient_data"

    def test_compare(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).compare_efficacy("user-1", ["med-2", "med-1"], WINDOW))
        assert [c.medication_id for c in result.data] == ["med-1", "med-2"]
        assert result.data[0].name == "Metformin"


# ---------------------------------------------------------------------------
# Correlations
# ---------------------------------------------------------------------------

class TestCorrelations:
    def test_symptom_correlations(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).symptom_correlations("user-1", WINDOW))
        assert result.status == "ok"
        top = result.data.correlations[0]
        assert len(result.data.correlations) == 1
        assert top.medication_name == "Metformin"
        assert top.correlation == -1.0
        assert top.strength == "strong"
        assert top.interpretation == "may_reduce"

    def test_no_symptoms(self, sample_source):
        window = DateWindow(START, START + timedelta(days=5))
        result = _run(AdherenceAnalyticsService(sample_source).symptom_correlations("user-1", window))
        assert result.status == "insufficient_data"
        assert result.data.correlations == []

    def test_health_correlations(self, sample_source):
        result = _run(AdherenceAnalyticsService(sample_source).health_correlations("user-1", WINDOW))
        factors = {c.factor: c for c in result.data.correlations}
        assert result.status == "ok"
        assert result.data.days_analyzed == 14
        assert factors["overall_feeling"].correlation == 1.0
        assert "symptom_headache" not in factors  # four headache days, five needed
        assert factors["heartRate"].correlation == -1.0

    def test_health_medication_specific(self, sample_source):
        result = _run(
            AdherenceAnalyticsService(sample_source).health_correlations("user-1", WINDOW, medication_id="med-1")
        )
        types = {c.type for c in result.data.correlations}
        assert "medication_specific" in types

    def test_health_too_few_days(self, sample_source):
        window = DateWindow(START, START + timedelta(days=3))
        result = _run(AdherenceAnalyticsService(sample_source).health_correlations("user-1", window))
        assert result.status == "insufficient_data"
