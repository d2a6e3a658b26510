"""Shape analytics results into the context the privacy policy minimizes.

Each builder returns ``headline`` (scalar figures safe in any privacy mode),
``patterns`` (bucketed figures) and ``details`` (named items). Lists are
already ordered most-important first so capping keeps the right entries.
"""

from __future__ import annotations

from typing import Any, Sequence

from medlog.domains.adherence.domain_logic.analytics_models import (
    AdherenceReport,
    ConsumptionPattern,
    EfficacyContext,
    EfficacySummary,
    Finding,
    SideEffectTrend,
)
from medlog.domains.adherence.domain_logic.correlation_models import (
    CorrelationAnalysis,
    HealthCorrelationReport,
)

TOP_CORRELATIONS = 5
TOP_TEMPORAL_PATTERNS = 3


def _base(topic: str, period: dict[str, str] | None, provenance: dict[str, str] | None) -> dict[str, Any]:
    context: dict[str, Any] = {"topic": topic, "period": period}
    context.update(provenance or {})
    return context


def adherence_context(
    report: AdherenceReport,
    findings: Sequence[Finding] = (),
    period: dict[str, str] | None = None,
    provenance: dict[str, str] | None = None,
) -> dict[str, Any]:
    summary = report.summary
    missed = report.missed_patterns
    context = _base("adherence", period, provenance)
    context["headline"] = {
        "adherence_rate": summary.adherence_rate,
        "total_logs": summary.total_logs,
        "taken_logs": summary.taken_logs,
        "missed_logs": summary.missed_logs,
        "skipped_logs": summary.skipped_logs,
        "current_streak": summary.current_streak,
        "longest_streak": summary.longest_streak,
        "weekly_trend": report.weekly.trend,
    }
    context["patterns"] = {
        "day_of_week": {b.name: b.adherence_rate for b in report.day_of_week.buckets},
        "time_of_day": {b.name: b.adherence_rate for b in report.time_of_day.buckets},
        "weekday_rate": report.day_of_week.weekday_rate,
        "weekend_rate": report.day_of_week.weekend_rate,
        "missed_worst_day": missed.worst_day,
        "missed_worst_time": missed.worst_time,
        "observations": [f.category for f in findings],
    }
    context["details"] = {
        "medications": [m.to_dict() for m in report.by_medication],
        "worst_medication": missed.worst_medication.to_dict() if missed.worst_medication else None,
    }
    return context


def consumption_context(
    patterns: Sequence[ConsumptionPattern],
    period: dict[str, str] | None = None,
    provenance: dict[str, str] | None = None,
) -> dict[str, Any]:
    context = _base("consumption", period, provenance)
    context["headline"] = {
        "medications": len(patterns),
        "doses": sum(p.dose_count for p in patterns),
        "double_dose_instances": sum(len(p.double_dose_instances) for p in patterns),
    }
    context["patterns"] = {
        "time_of_day": [p.by_time_of_day for p in patterns],
    }
    context["details"] = {
        "medications": [
            {
                "name": p.name,
                "dose_count": p.dose_count,
                "average_interval_hours": p.average_interval_hours,
                "interval_std_dev_hours": p.interval_std_dev_hours,
                "double_dose_instances": len(p.double_dose_instances),
            }
            for p in patterns
        ]
    }
    return context


def efficacy_context(
    summary: EfficacySummary,
    medication_name: str,
    trends: Sequence[SideEffectTrend] = (),
    lifestyle: EfficacyContext | None = None,
    period: dict[str, str] | None = None,
    provenance: dict[str, str] | None = None,
) -> dict[str, Any]:
    context = _base("efficacy", period, provenance)
    context["headline"] = {
        "records_count": summary.records_count,
        "average_rating": summary.average_rating,
        "trend": summary.trend,
        "average_time_to_effect_minutes": summary.average_time_to_effect,
        "average_effect_duration_hours": summary.average_effect_duration,
    }
    context["patterns"] = {
        "rating_distribution": summary.rating_distribution,
        "best_time_of_day": lifestyle.best_time_of_day.to_dict() if lifestyle and lifestyle.best_time_of_day else None,
        "lifestyle_factors": [f.to_dict() for f in lifestyle.factors] if lifestyle else [],
    }
    context["details"] = {
        "medication": medication_name,
        "side_effects": [s.to_dict() for s in summary.side_effects],
        "side_effect_trends": [t.to_dict() for t in trends],
        "target_symptoms": [t.to_dict() for t in summary.target_symptoms],
    }
    return context


def correlation_context(
    analysis: CorrelationAnalysis,
    period: dict[str, str] | None = None,
    provenance: dict[str, str] | None = None,
) -> dict[str, Any]:
    context = _base("correlations", period, provenance)
    context["headline"] = {
        "correlations_found": len(analysis.correlations),
        "temporal_patterns_found": len(analysis.temporal_patterns),
        "symptoms_tracked": len(analysis.network.nodes),
    }
    context["patterns"] = {
        "strengths": [c.strength for c in analysis.correlations[:TOP_CORRELATIONS]],
    }
    context["details"] = {
        "correlations": [
            {
                "medication": c.medication_name,
                "symptom": c.symptom_name,
                "correlation": c.correlation,
                "strength": c.strength,
                "direction": c.direction,
                "lag_pattern": c.lag.pattern,
            }
            for c in analysis.correlations[:TOP_CORRELATIONS]
        ],
        "temporal_patterns": [
            {
                "medication": p.medication_name,
                "symptom": p.symptom_name,
                "categories": p.categories,
                "average_onset_days": p.average_onset_days,
            }
            for p in analysis.temporal_patterns[:TOP_TEMPORAL_PATTERNS]
        ],
        "efficacy": [
            {
                "medication": e.medication_name,
                "average_efficacy": e.average_efficacy,
                "symptoms": [{"symptom": s.symptom_name, "label": s.label} for s in e.symptoms],
            }
            for e in analysis.efficacy
        ],
    }
    return context


def health_context(
    report: HealthCorrelationReport,
    period: dict[str, str] | None = None,
    provenance: dict[str, str] | None = None,
) -> dict[str, Any]:
    context = _base("health", period, provenance)
    context["headline"] = {
        "days_analyzed": report.days_analyzed,
        "correlations_found": len(report.correlations),
    }
    context["patterns"] = {
        "strengths": [c.strength for c in report.correlations],
    }
    context["details"] = {
        "correlations": [
            {
                "factor": c.factor_name,
                "correlation": c.correlation,
                "strength": c.strength,
                "interpretation": c.interpretation,
            }
            for c in report.correlations
        ]
    }
    return context
