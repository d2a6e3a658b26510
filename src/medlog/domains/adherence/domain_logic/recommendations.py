"""Deterministic insight and recommendation rules.

Rules emit ``Finding`` categories, never prose. The insight catalog turns
categories into text, so the fallback path and the rule path always agree on
wording.
"""

from __future__ import annotations

from typing import Sequence

from medlog.domains.adherence.domain_logic.analytics_models import (
    DEFAULT_THRESHOLDS,
    AdherenceReport,
    AnalyticsThresholds,
    EfficacySummary,
    Finding,
    InsufficientData,
)
from medlog.domains.adherence.domain_logic.calendar import WEEKEND, WORKDAYS
from medlog.domains.adherence.domain_logic.correlation_models import (
    CorrelationAnalysis,
    HealthCorrelation,
)

PRIORITY_RANK = {"high": 1, "medium": 2, "low": 3}

LOW_ADHERENCE = 50
REMINDER_ADHERENCE = 80
WEEKEND_MISS_RATIO = 1.5
SKIP_RATIO = 0.2
MIN_RECOMMENDATIONS = 2

BUCKET_GAP = 20
STREAK_CURRENT = 3
STREAK_LONGEST = 7
MEDICATION_MIN_LOGS = 5
MEDICATION_LOW_RATE = 70

EFFICACY_MIN_REPORTS = 3
MAX_LISTED_SYMPTOMS = 3


def sort_by_priority(findings: Sequence[Finding]) -> list[Finding]:
    return sorted(findings, key=lambda f: PRIORITY_RANK.get(f.priority or "low", 3))


# ---------------------------------------------------------------------------
# Adherence
# ---------------------------------------------------------------------------

def adherence_recommendations(
    report: AdherenceReport,
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> list[Finding] | InsufficientData:
    """Improvement suggestions, highest priority first.

    Fewer than ``recommendation_min_logs`` events yield ``InsufficientData``;
    callers show the ``keep_logging`` text in that case.
    """
    summary = report.summary
    if summary.total_logs < thresholds.recommendation_min_logs:
        return InsufficientData(
            reason="Insufficient data for recommendations",
            required=thresholds.recommendation_min_logs,
            available=summary.total_logs,
        )

    rate = summary.adherence_rate
    missed = report.missed_patterns
    findings: list[Finding] = []

    if rate is None or rate < LOW_ADHERENCE:
        findings.append(Finding(category="discuss_with_provider", priority="high"))
    if rate is not None and rate < REMINDER_ADHERENCE:
        findings.append(Finding(category="set_reminders", priority="high"))
    if missed.worst_day:
        findings.append(Finding(category="worst_day_reminders", priority="medium", params={"day": missed.worst_day}))
    if missed.worst_time:
        findings.append(Finding(category=f"{missed.worst_time}_routine", priority="medium"))
    if missed.worst_medication:
        worst = missed.worst_medication
        findings.append(
            Finding(
                category="problem_medication",
                priority="high",
                params={"name": worst.name, "miss_rate": worst.miss_rate},
                medication_id=worst.medication_id,
            )
        )

    weekday_avg = sum(missed.by_day_of_week[d] for d in WORKDAYS) / len(WORKDAYS)
    weekend_avg = sum(missed.by_day_of_week[d] for d in WEEKEND) / len(WEEKEND)
    if weekend_avg > weekday_avg * WEEKEND_MISS_RATIO:
        findings.append(Finding(category="weekend_gap", priority="medium"))

    if summary.skipped_logs > summary.taken_logs * SKIP_RATIO:
        findings.append(Finding(category="frequent_skips", priority="medium"))
    if summary.total_logs > 0 and summary.taken_logs == 0:
        findings.append(Finding(category="log_taken_doses", priority="high"))

    if len(findings) < MIN_RECOMMENDATIONS:
        findings.append(Finding(category="consistent_routine", priority="medium"))
        findings.append(Finding(category="pill_organizer", priority="low"))

    return sort_by_priority(findings)


def _rated(buckets):
    return [b for b in buckets if b.adherence_rate is not None]


def adherence_insights(
    report: AdherenceReport,
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> list[Finding]:
    """Observations about the adherence record; empty until enough logs exist."""
    summary = report.summary
    if summary.total_logs <= thresholds.insight_min_logs:
        return []

    findings: list[Finding] = []
    rate = summary.adherence_rate
    if rate is not None:
        if rate >= 90:
            category = "overall_excellent"
        elif rate >= 80:
            category = "overall_good"
        elif rate >= 70:
            category = "overall_fair"
        else:
            category = "overall_low"
        findings.append(Finding(category=category, params={"rate": rate}))

    if summary.current_streak > STREAK_CURRENT:
        findings.append(Finding(category="current_streak", params={"days": summary.current_streak}))
    if summary.longest_streak > STREAK_LONGEST:
        findings.append(Finding(category="longest_streak", params={"days": summary.longest_streak}))

    days = _rated(report.day_of_week.buckets)
    if days:
        best = max(days, key=lambda b: b.adherence_rate)
        worst = min(days, key=lambda b: b.adherence_rate)
        if best.adherence_rate - worst.adherence_rate > BUCKET_GAP:
            findings.append(
                Finding(
                    category="day_of_week_gap",
                    params={
                        "best_day": best.name,
                        "best_rate": best.adherence_rate,
                        "worst_day": worst.name,
                        "worst_rate": worst.adherence_rate,
                    },
                )
            )

    bands = _rated(report.time_of_day.buckets)
    if bands:
        best = max(bands, key=lambda b: b.adherence_rate)
        worst = min(bands, key=lambda b: b.adherence_rate)
        if best.adherence_rate - worst.adherence_rate > BUCKET_GAP:
            findings.append(
                Finding(
                    category="time_of_day_gap",
                    params={
                        "best_time": best.name,
                        "best_rate": best.adherence_rate,
                        "worst_time": worst.name,
                        "worst_rate": worst.adherence_rate,
                    },
                )
            )

    eligible = [m for m in report.by_medication if m.total >= MEDICATION_MIN_LOGS and m.adherence_rate is not None]
    if eligible:
        lowest = min(eligible, key=lambda m: m.adherence_rate)
        if lowest.adherence_rate < MEDICATION_LOW_RATE:
            findings.append(
                Finding(
                    category="low_adherence_medication",
                    params={"name": lowest.name, "rate": lowest.adherence_rate},
                    medication_id=lowest.medication_id,
                )
            )

    if report.missed_patterns.worst_day:
        findings.append(Finding(category="missed_day", params={"day": report.missed_patterns.worst_day}))
    if report.missed_patterns.worst_time:
        findings.append(Finding(category="missed_time", params={"time_of_day": report.missed_patterns.worst_time}))
    return findings


# ---------------------------------------------------------------------------
# Correlations
# ---------------------------------------------------------------------------

def correlation_findings(analysis: CorrelationAnalysis) -> list[Finding]:
    findings = [Finding(category="correlation_general"), Finding(category="correlation_caution")]
    if analysis.correlations:
        top = analysis.correlations[0]
        params = {
            "medication": top.medication_name,
            "symptom": top.symptom_name,
            "strength": top.strength,
        }
        category = "top_correlation_positive" if top.direction == "positive" else "top_correlation_negative"
        findings.append(Finding(category=category, params=params, medication_id=top.medication_id))
    if analysis.temporal_patterns:
        pattern = analysis.temporal_patterns[0]
        for category in pattern.categories:
            findings.append(
                Finding(
                    category=category,
                    params={
                        "medication": pattern.medication_name,
                        "symptom": pattern.symptom_name,
                        "days": pattern.average_onset_days,
                    },
                    medication_id=pattern.medication_id,
                )
            )
    return findings


def efficacy_findings(summary: EfficacySummary | InsufficientData) -> list[Finding]:
    if isinstance(summary, InsufficientData) or summary.records_count < EFFICACY_MIN_REPORTS:
        return [Finding(category="efficacy_insufficient")]
    return [
        Finding(category="efficacy_track_timing"),
        Finding(category="efficacy_track_duration"),
        Finding(category="efficacy_discuss_side_effects"),
        Finding(category="efficacy_consistent_tracking"),
    ]


# ---------------------------------------------------------------------------
# Health outcomes
# ---------------------------------------------------------------------------

def _describe(correlation: HealthCorrelation) -> dict:
    return {
        "factor": correlation.factor_name,
        "interpretation": correlation.interpretation,
        "strength": correlation.strength,
    }


def health_correlation_findings(
    correlations: Sequence[HealthCorrelation],
    medication_id: str | None = None,
) -> list[Finding]:
    if not correlations:
        return [Finding(category="health_insufficient")]

    findings: list[Finding] = []
    specific = [c for c in correlations if c.type == "medication_specific"]
    if specific and medication_id:
        strongest = max(specific, key=lambda c: abs(c.correlation))
        findings.append(Finding(category="specific_strongest", params=_describe(strongest), medication_id=medication_id))

    strong = [c for c in correlations if c.strength == "strong"]
    moderate = [c for c in correlations if c.strength == "moderate"]
    if strong:
        findings.append(Finding(category="strong_relationship", params=_describe(strong[0])))
    elif moderate:
        findings.append(Finding(category="moderate_relationship", params=_describe(moderate[0])))

    reduced = [c for c in correlations if c.type == "symptom" and c.direction == "negative"]
    if reduced:
        symptoms = [c.factor_name.replace("Symptom: ", "") for c in reduced][:MAX_LISTED_SYMPTOMS]
        findings.append(Finding(category="symptom_reduction", params={"symptoms": ", ".join(symptoms)}))

    if len(findings) < MIN_RECOMMENDATIONS:
        findings.append(Finding(category="emerging_relationship"))
    return findings
