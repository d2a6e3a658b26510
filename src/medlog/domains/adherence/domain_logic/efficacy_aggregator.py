"""Roll-ups over medication efficacy reports.

Summaries, side-effect severity trends, lifestyle context and cross-medication
comparison. Reports may arrive in any order.
"""

from __future__ import annotations

import logging
import statistics
from collections import defaultdict
from datetime import timedelta
from typing import Iterable, Mapping, Sequence

from medlog.domains.adherence.domain_logic.analytics_models import (
    DEFAULT_THRESHOLDS,
    EFFICACY_TREND_DELTA,
    HIGH_EFFICACY_RATING,
    LOW_EFFICACY_RATING,
    RATING_LABELS,
    AnalyticsThresholds,
    ContextualFactor,
    EfficacyComparison,
    EfficacyContext,
    EfficacySummary,
    InsufficientData,
    SideEffectRollup,
    SideEffectTrend,
    TargetSymptomRollup,
    TimeOfDayEfficacy,
)
from medlog.domains.adherence.domain_logic.calendar import TIME_BANDS, round_half_up, time_band
from medlog.domains.adherence.domain_logic.event_models import CheckIn, EfficacyReport

logger = logging.getLogger(__name__)

CHECK_IN_WINDOW = timedelta(days=1)
MIN_REPORTS_PER_BAND = 2
TOP_SIDE_EFFECTS = 3

# field -> (minimum absolute difference, decimals, category when high > low,
# category when high < low)
CONTEXT_FIELDS = {
    "sleep_hours": (1.0, 1, "more_sleep_helps", "less_sleep_helps"),
    "stress_level": (0.5, 1, "stress_not_limiting", "lower_stress_helps"),
    "exercise_minutes": (10.0, 0, "more_exercise_helps", "less_exercise_helps"),
}


def _direction(difference: float, delta: float, up: str = "improving", down: str = "declining") -> str:
    if difference >= delta:
        return up
    if difference <= -delta:
        return down
    return "stable"


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def _average_of(values: list[float]) -> int | None:
    if not values:
        return None
    return round_half_up(statistics.mean(values))


def summarize_efficacy(
    reports: Iterable[EfficacyReport],
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> EfficacySummary | InsufficientData:
    newest_first = sorted(reports, key=lambda r: r.recorded_at, reverse=True)
    count = len(newest_first)
    if not count:
        return InsufficientData(reason="No efficacy reports recorded", required=1, available=0)

    ratings = [r.overall_rating for r in newest_first]

    distribution = {label: 0 for label in RATING_LABELS.values()}
    for rating in ratings:
        bucket = min(5, max(1, round_half_up(rating)))
        distribution[RATING_LABELS[bucket]] += 1
    distribution = {label: round_half_up(n / count * 100) for label, n in distribution.items()}

    trend, compared = "stable", False
    if count >= thresholds.efficacy_trend_min_records:
        mid = count // 2
        difference = statistics.mean(ratings[:mid]) - statistics.mean(ratings[mid:])
        trend, compared = _direction(difference, EFFICACY_TREND_DELTA), True

    side_effects: dict[str, list] = defaultdict(list)
    for report in newest_first:
        for side_effect in report.side_effects:
            side_effects[side_effect.effect].append((report.recorded_at, side_effect.severity or 0))
    side_effect_rollups = [
        SideEffectRollup(
            effect=effect,
            occurrence_count=len(points),
            average_severity=round_half_up(statistics.mean(s for _, s in points), 1),
            occurrence_percentage=round_half_up(len(points) / count * 100),
            first_reported=min(t for t, _ in points),
        )
        for effect, points in side_effects.items()
    ]
    side_effect_rollups.sort(key=lambda r: r.occurrence_count, reverse=True)

    targets: dict[str, list[int]] = defaultdict(list)
    for report in newest_first:
        for target in report.target_symptoms:
            targets[target.name].append(target.improvement_rating or 0)
    target_rollups = [
        TargetSymptomRollup(
            name=name,
            occurrence_count=len(values),
            average_improvement=round_half_up(statistics.mean(values), 1),
            occurrence_percentage=round_half_up(len(values) / count * 100),
        )
        for name, values in targets.items()
    ]

    return EfficacySummary(
        records_count=count,
        average_rating=round_half_up(statistics.mean(ratings), 1),
        average_time_to_effect=_average_of([r.time_to_effect for r in newest_first if r.time_to_effect is not None]),
        average_effect_duration=_average_of([r.effect_duration for r in newest_first if r.effect_duration is not None]),
        rating_distribution=distribution,
        trend=trend,
        trend_compared=compared,
        side_effects=side_effect_rollups,
        target_symptoms=target_rollups,
        first_recorded=newest_first[-1].recorded_at,
        last_recorded=newest_first[0].recorded_at,
    )


# ---------------------------------------------------------------------------
# Side-effect trends
# ---------------------------------------------------------------------------

def side_effect_trends(reports: Iterable[EfficacyReport]) -> list[SideEffectTrend]:
    """Direction of each side effect's severity over time, most recent first.

    Four or more data points compare half means; two or three compare the
    last point with the first.
    """
    points: dict[str, list] = defaultdict(list)
    for report in sorted(reports, key=lambda r: r.recorded_at):
        for side_effect in report.side_effects:
            points[side_effect.effect].append((report.recorded_at, side_effect.severity or 0))

    trends = []
    for effect, series in points.items():
        severities = [s for _, s in series]
        if len(severities) >= 4:
            mid = len(severities) // 2
            change = statistics.mean(severities[mid:]) - statistics.mean(severities[:mid])
        elif len(severities) >= 2:
            change = severities[-1] - severities[0]
        else:
            change = 0
        latest_at, latest_severity = series[-1]
        trends.append(
            SideEffectTrend(
                effect=effect,
                occurrences=len(series),
                average_severity=round_half_up(statistics.mean(severities), 1),
                latest_severity=latest_severity,
                latest_report=latest_at,
                # severity going down is an improvement
                trend=_direction(-change, EFFICACY_TREND_DELTA, up="improving", down="worsening"),
                change=round_half_up(change, 1),
            )
        )
    trends.sort(key=lambda t: t.latest_report, reverse=True)
    return trends


# ---------------------------------------------------------------------------
# Contextual factors
# ---------------------------------------------------------------------------

def _nearby_check_ins(report: EfficacyReport, check_ins: Sequence[CheckIn]) -> list[CheckIn]:
    return [c for c in check_ins if abs(c.created_at - report.recorded_at) <= CHECK_IN_WINDOW]


def _field_mean(check_ins: Iterable[CheckIn], field_name: str) -> float | None:
    values = [getattr(c, field_name) for c in check_ins if getattr(c, field_name) is not None]
    return statistics.mean(values) if values else None


def _best_time_of_day(reports: Sequence[EfficacyReport]) -> TimeOfDayEfficacy | None:
    by_band: dict[str, list[float]] = defaultdict(list)
    for report in reports:
        by_band[time_band(report.recorded_at)].append(report.overall_rating)

    best = None
    for band in TIME_BANDS:
        ratings = by_band.get(band, [])
        if len(ratings) < MIN_REPORTS_PER_BAND:
            continue
        average = statistics.mean(ratings)
        if best is None or average > best[1]:
            best = (band, average, len(ratings))
    if best is None:
        return None
    return TimeOfDayEfficacy(time_of_day=best[0], average_rating=round_half_up(best[1], 1), reports=best[2])


def contextual_factors(
    reports: Iterable[EfficacyReport],
    check_ins: Iterable[CheckIn],
) -> EfficacyContext:
    """Lifestyle fields that separate well-rated reports from poorly-rated ones.

    Each report is matched with the check-ins logged within a day of it. A
    field is reported only when the gap between the high- and low-efficacy
    means reaches its noise threshold.
    """
    reports = list(reports)
    check_ins = list(check_ins)
    high_matches: list[CheckIn] = []
    low_matches: list[CheckIn] = []
    high_count = low_count = 0
    for report in reports:
        if report.overall_rating >= HIGH_EFFICACY_RATING:
            high_count += 1
            high_matches.extend(_nearby_check_ins(report, check_ins))
        elif report.overall_rating <= LOW_EFFICACY_RATING:
            low_count += 1
            low_matches.extend(_nearby_check_ins(report, check_ins))

    factors = []
    for field_name, (minimum, decimals, up_category, down_category) in CONTEXT_FIELDS.items():
        high = _field_mean(high_matches, field_name)
        low = _field_mean(low_matches, field_name)
        if high is None or low is None:
            continue
        difference = high - low
        if abs(difference) < minimum:
            continue
        factors.append(
            ContextualFactor(
                factor=field_name,
                category=up_category if difference > 0 else down_category,
                high_efficacy_value=round_half_up(high, 1),
                low_efficacy_value=round_half_up(low, 1),
                difference=round_half_up(difference, decimals),
            )
        )

    return EfficacyContext(
        factors=factors,
        best_time_of_day=_best_time_of_day(reports),
        high_efficacy_reports=high_count,
        low_efficacy_reports=low_count,
    )


# ---------------------------------------------------------------------------
# Comparison across medications
# ---------------------------------------------------------------------------

def compare_efficacy(
    reports_by_medication: Mapping[str, Iterable[EfficacyReport]],
    symptom: str | None = None,
    names: Mapping[str, str] | None = None,
) -> list[EfficacyComparison]:
    """Side-by-side efficacy, best-rated first; unrated medications last."""
    comparisons = []
    wanted = symptom.lower() if symptom else None
    for medication_id, reports in reports_by_medication.items():
        reports = sorted(reports, key=lambda r: r.recorded_at, reverse=True)
        count = len(reports)

        symptom_rating = None
        if wanted:
            improvements = [
                t.improvement_rating or 0
                for r in reports
                for t in r.target_symptoms
                if t.name.lower() == wanted
            ]
            if improvements:
                symptom_rating = round_half_up(statistics.mean(improvements), 1)

        effect_counts: dict[str, int] = defaultdict(int)
        for report in reports:
            for side_effect in report.side_effects:
                effect_counts[side_effect.effect] += 1
        top_effects = sorted(effect_counts.items(), key=lambda item: item[1], reverse=True)[:TOP_SIDE_EFFECTS]

        comparisons.append(
            EfficacyComparison(
                medication_id=medication_id,
                name=(names or {}).get(medication_id, medication_id),
                records_count=count,
                average_rating=round_half_up(statistics.mean(r.overall_rating for r in reports), 1) if count else None,
                symptom_rating=symptom_rating,
                top_side_effects=[
                    {"effect": effect, "percentage": round_half_up(n / count * 100)} for effect, n in top_effects
                ],
                latest_record=reports[0].recorded_at if reports else None,
            )
        )

    comparisons.sort(key=lambda c: (c.average_rating is None, -(c.average_rating or 0)))
    return comparisons
