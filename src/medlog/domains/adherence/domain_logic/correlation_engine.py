"""Symptom-medication correlation over day-indexed timelines.

Four independent analyses, each a pure function of ``Timelines``:

- pairwise phi coefficient of "medication taken" vs "symptom reported" days,
  with the dominant day lag between them;
- onset/offset patterns (symptoms shortly after doses, or after the last one);
- symptom frequency around well-rated efficacy reports;
- a symptom co-occurrence network.

Correlation is not causation; downstream text says so.
"""

from __future__ import annotations

import logging
import math
import statistics
from datetime import date, timedelta
from typing import Iterable

from medlog.domains.adherence.domain_logic.analytics_models import (
    DEFAULT_THRESHOLDS,
    EFFECT_WINDOW_DAYS,
    EFFICACY_MIN_DATES,
    HIGH_EFFICACY_RATING,
    OFFSET_WINDOW_DAYS,
    ONSET_WINDOW_DAYS,
    TEMPORAL_MIN_DATES,
    AnalyticsThresholds,
)
from medlog.domains.adherence.domain_logic.calendar import iter_days, round_half_up
from medlog.domains.adherence.domain_logic.correlation_models import (
    Contingency,
    CorrelationAnalysis,
    CorrelationResult,
    EfficacyEffectiveness,
    LagAnalysis,
    MedicationTimeline,
    NetworkLink,
    NetworkNode,
    OnsetExample,
    OverlapStats,
    SymptomEffectiveness,
    SymptomNetwork,
    SymptomTimeline,
    TemporalPattern,
    Timelines,
)

logger = logging.getLogger(__name__)

# Search order for the lag of a symptom day: same day, dose the day before,
# dose two days before, dose the day after. The first hit is counted and
# ties in the tally go to the earlier entry.
LAG_SEARCH_ORDER = (0, 1, 2, -1)
MAX_EXAMPLES = 3


# ---------------------------------------------------------------------------
# Phi coefficient
# ---------------------------------------------------------------------------

def phi_coefficient(table: Contingency) -> float:
    """Phi for a 2x2 table; 0.0 when any marginal is empty."""
    a_days, b_days, total = table.a_days, table.b_days, table.total
    denominator = math.sqrt(a_days * (total - a_days) * b_days * (total - b_days))
    if denominator == 0:
        return 0.0
    return (table.both * table.neither - table.only_a * table.only_b) / denominator


def day_contingency(a_days: Iterable[date], b_days: Iterable[date], first: date, last: date) -> Contingency:
    """Count days in ``[first, last]`` by presence in each day set."""
    a_set, b_set = set(a_days), set(b_days)
    both = only_a = only_b = neither = 0
    for day in iter_days(first, last):
        in_a, in_b = day in a_set, day in b_set
        if in_a and in_b:
            both += 1
        elif in_a:
            only_a += 1
        elif in_b:
            only_b += 1
        else:
            neither += 1
    return Contingency(both=both, only_a=only_a, only_b=only_b, neither=neither)


def correlation_strength(value: float) -> str:
    magnitude = abs(value)
    if magnitude >= 0.7:
        return "strong"
    if magnitude >= 0.5:
        return "moderate"
    if magnitude >= 0.3:
        return "weak"
    if magnitude >= 0.1:
        return "very weak"
    return "negligible"


def _interpretation(phi: float) -> str:
    if phi > 0.3:
        return "likely_related"
    if phi < -0.3:
        return "may_reduce"
    return "weak_relationship"


# ---------------------------------------------------------------------------
# Lag
# ---------------------------------------------------------------------------

def temporal_lag(medication_days: Iterable[date], symptom_days: Iterable[date]) -> LagAnalysis:
    med_set = set(medication_days)
    distribution = {lag: 0 for lag in LAG_SEARCH_ORDER}
    for symptom_day in sorted(symptom_days):
        for lag in LAG_SEARCH_ORDER:
            if symptom_day - timedelta(days=lag) in med_set:
                distribution[lag] += 1
                break

    matches = sum(distribution.values())
    if not matches:
        return LagAnalysis(dominant_lag=None, confidence=0.0, distribution=distribution, total_matches=0)

    dominant = None
    for lag in LAG_SEARCH_ORDER:
        if dominant is None or distribution[lag] > distribution[dominant]:
            dominant = lag
    confidence = round_half_up(distribution[dominant] / matches, 2)

    pattern = None
    if confidence > 0.5:
        if dominant == 0:
            pattern = "same_day"
        elif dominant > 0:
            pattern = "after_medication"
        else:
            pattern = "before_medication"
    return LagAnalysis(
        dominant_lag=dominant,
        confidence=confidence,
        distribution=distribution,
        total_matches=matches,
        pattern=pattern,
    )


def _overlaps(medication: MedicationTimeline, symptom: SymptomTimeline) -> bool:
    if not medication.dates or not symptom.dates:
        return False
    return not (medication.last_date < symptom.first_date or medication.first_date > symptom.last_date)


def correlate_medication_symptoms(
    timelines: Timelines,
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> list[CorrelationResult]:
    """Phi correlation for every overlapping medication/symptom pair.

    Pairs with ``|phi|`` at or below the minimum are dropped; the rest are
    ordered strongest first.
    """
    results = []
    for medication in timelines.medications.values():
        for symptom in timelines.symptoms.values():
            if not _overlaps(medication, symptom):
                continue
            first = min(medication.first_date, symptom.first_date)
            last = max(medication.last_date, symptom.last_date)
            table = day_contingency(medication.dates, symptom.dates, first, last)
            phi = phi_coefficient(table)
            if abs(phi) <= thresholds.min_phi:
                continue
            results.append(
                CorrelationResult(
                    medication_id=medication.medication_id,
                    medication_name=medication.name,
                    symptom_name=symptom.name,
                    correlation=round_half_up(phi, 2),
                    strength=correlation_strength(phi),
                    direction="positive" if phi > 0 else "negative",
                    interpretation=_interpretation(phi),
                    lag=temporal_lag(medication.dates, symptom.dates),
                    overlap=OverlapStats(
                        days_with_medication=table.a_days,
                        days_with_symptom=table.b_days,
                        days_with_both=table.both,
                        total_days=table.total,
                        overlap_percentage=round_half_up(table.both / table.total * 100, 1),
                    ),
                )
            )
    results.sort(key=lambda r: abs(r.correlation), reverse=True)
    return results


# ---------------------------------------------------------------------------
# Onset / offset
# ---------------------------------------------------------------------------

def _temporal_categories(onsets: list[OnsetExample], offsets: list[OnsetExample]) -> list[str]:
    categories = []
    if len(onsets) >= 2:
        average = statistics.mean(o.days_between for o in onsets)
        categories.append("onset_same_or_next_day" if average <= 1 else "onset_delayed")
    if offsets:
        categories.append("offset_after_discontinuation")
    return categories


def temporal_patterns(timelines: Timelines) -> list[TemporalPattern]:
    patterns = []
    for symptom in timelines.symptoms.values():
        if len(symptom.dates) < TEMPORAL_MIN_DATES:
            continue
        symptom_days = sorted(symptom.dates)
        for medication in timelines.medications.values():
            if len(medication.dates) < TEMPORAL_MIN_DATES:
                continue
            medication_days = sorted(medication.dates)

            onsets = []
            for symptom_day in symptom_days:
                preceding = [d for d in medication_days if d < symptom_day]
                if not preceding:
                    continue
                gap = (symptom_day - preceding[-1]).days
                if gap <= ONSET_WINDOW_DAYS:
                    onsets.append(OnsetExample(medication_date=preceding[-1], symptom_date=symptom_day, days_between=gap))

            offsets = []
            last_dose = medication_days[-1]
            after = [d for d in symptom_days if d > last_dose]
            if after and (after[0] - last_dose).days <= OFFSET_WINDOW_DAYS:
                offsets.append(OnsetExample(medication_date=last_dose, symptom_date=after[0], days_between=(after[0] - last_dose).days))

            if not onsets and not offsets:
                continue
            patterns.append(
                TemporalPattern(
                    medication_id=medication.medication_id,
                    medication_name=medication.name,
                    symptom_name=symptom.name,
                    onset_count=len(onsets),
                    offset_count=len(offsets),
                    average_onset_days=(
                        round_half_up(statistics.mean(o.days_between for o in onsets), 1) if onsets else None
                    ),
                    onset_examples=onsets[:MAX_EXAMPLES],
                    offset_examples=offsets[:MAX_EXAMPLES],
                    categories=_temporal_categories(onsets, offsets),
                )
            )
    patterns.sort(key=lambda p: p.total_matches, reverse=True)
    return patterns


# ---------------------------------------------------------------------------
# Efficacy vs symptom frequency
# ---------------------------------------------------------------------------

def effectiveness_label(ratio: float) -> str:
    if ratio >= 0.7:
        return "highly effective"
    if ratio >= 0.5:
        return "moderately effective"
    if ratio >= 0.3:
        return "somewhat effective"
    if ratio >= 0.1:
        return "slightly effective"
    if ratio > -0.1:
        return "neutral"
    return "potentially counterproductive"


def efficacy_symptom_effectiveness(timelines: Timelines) -> list[EfficacyEffectiveness]:
    """Does a symptom appear less often after a well-rated day than before it?"""
    results = []
    for medication_id, efficacy in timelines.efficacy.items():
        medication = timelines.medications.get(medication_id)
        if medication is None or len(efficacy.ratings) < EFFICACY_MIN_DATES:
            continue
        high_days = [day for day, rating in efficacy.ratings.items() if rating >= HIGH_EFFICACY_RATING]

        symptoms = []
        for name in efficacy.target_symptoms:
            symptom = timelines.symptoms.get(name)
            if symptom is None:
                continue
            before = after = 0
            for day in high_days:
                for offset in range(1, EFFECT_WINDOW_DAYS + 1):
                    if day - timedelta(days=offset) in symptom.dates:
                        before += 1
                    if day + timedelta(days=offset) in symptom.dates:
                        after += 1
            raw_ratio = (before - after) / before if before else 0.0
            symptoms.append(
                SymptomEffectiveness(
                    symptom_name=name,
                    before_count=before,
                    after_count=after,
                    effectiveness_ratio=round_half_up(raw_ratio, 2),
                    label=effectiveness_label(raw_ratio),
                )
            )
        if not symptoms:
            continue
        symptoms.sort(key=lambda s: s.effectiveness_ratio, reverse=True)
        results.append(
            EfficacyEffectiveness(
                medication_id=medication_id,
                medication_name=medication.name,
                average_efficacy=round_half_up(statistics.mean(efficacy.ratings.values()), 1),
                reports_count=len(efficacy.ratings),
                symptoms=symptoms,
            )
        )
    results.sort(key=lambda r: r.average_efficacy, reverse=True)
    return results


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------

def symptom_network(
    timelines: Timelines,
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> SymptomNetwork:
    symptoms = list(timelines.symptoms.values())
    nodes = [
        NetworkNode(id=s.name, frequency=len(s.dates), body_locations=list(s.body_locations))
        for s in symptoms
    ]
    links = []
    for i, first in enumerate(symptoms):
        for second in symptoms[i + 1:]:
            shared = len(set(first.dates) & set(second.dates))
            if shared >= thresholds.cooccurrence_min_days:
                links.append(NetworkLink(source=first.name, target=second.name, value=shared))
    return SymptomNetwork(nodes=nodes, links=links)


def run_correlation_analysis(
    timelines: Timelines,
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> CorrelationAnalysis:
    analysis = CorrelationAnalysis(
        correlations=correlate_medication_symptoms(timelines, thresholds),
        temporal_patterns=temporal_patterns(timelines),
        efficacy=efficacy_symptom_effectiveness(timelines),
        network=symptom_network(timelines, thresholds),
    )
    logger.debug(
        "Correlation analysis: %d medications, %d symptoms, %d correlations, %d temporal patterns",
        len(timelines.medications),
        len(timelines.symptoms),
        len(analysis.correlations),
        len(analysis.temporal_patterns),
    )
    return analysis
