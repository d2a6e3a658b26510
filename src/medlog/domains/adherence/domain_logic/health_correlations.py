"""Daily adherence vs. health outcomes (feeling, symptoms, vital signs).

Builds one row per UTC day from dose events, check-ins and vital readings,
then runs Pearson correlations between the day's adherence ratio and each
outcome. Correlations too weak to mean anything are dropped.
"""

from __future__ import annotations

import logging
import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Sequence

from medlog.domains.adherence.domain_logic.analytics_models import InsufficientData
from medlog.domains.adherence.domain_logic.calendar import day_key, round_half_up
from medlog.domains.adherence.domain_logic.correlation_models import (
    HealthCorrelation,
    HealthCorrelationReport,
)
from medlog.domains.adherence.domain_logic.event_models import CheckIn, DoseEvent, VitalReading

logger = logging.getLogger(__name__)

MIN_DAYS = 7
MIN_FEELING_POINTS = 5
MIN_SYMPTOM_DAYS = 5
MIN_VITAL_POINTS = 7
MIN_ABS_CORRELATION = 0.2

FEELING_SCORES = {"good": 3, "fair": 2, "poor": 1}

# (vital type, value key, display name, which way is healthier)
VITALS_TO_ANALYZE = (
    ("bloodPressure", "systolic", "Systolic Blood Pressure", "down"),
    ("bloodPressure", "diastolic", "Diastolic Blood Pressure", "down"),
    ("heartRate", "heartRate", "Heart Rate", "stable"),
    ("glucose", "glucoseLevel", "Blood Glucose", "stable"),
)


@dataclass
class HealthDay:
    date: date
    adherence: float | None = None
    feeling: str | None = None
    symptoms: set[str] = field(default_factory=set)
    vitals: dict[str, list[VitalReading]] = field(default_factory=lambda: defaultdict(list))


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float | None:
    """Pearson's r, or None when it is undefined (constant or too short input)."""
    try:
        return statistics.correlation(xs, ys)
    except statistics.StatisticsError:
        return None


def pearson_strength(value: float) -> str:
    magnitude = abs(value)
    if magnitude >= 0.7:
        return "strong"
    if magnitude >= 0.4:
        return "moderate"
    if magnitude >= 0.2:
        return "weak"
    return "negligible"


def _daily_adherence(events: Iterable[DoseEvent]) -> dict[date, float]:
    totals: dict[date, int] = defaultdict(int)
    taken: dict[date, int] = defaultdict(int)
    for event in events:
        day = day_key(event.created_at)
        totals[day] += 1
        if event.is_taken:
            taken[day] += 1
    return {day: taken[day] / totals[day] for day in totals}


def build_health_days(
    dose_events: Iterable[DoseEvent],
    check_ins: Iterable[CheckIn],
    vital_readings: Iterable[VitalReading],
) -> list[HealthDay]:
    """One row per day that has any data; the worst feeling of a day wins."""
    days: dict[date, HealthDay] = {}

    def row(day: date) -> HealthDay:
        return days.setdefault(day, HealthDay(date=day))

    for day, ratio in _daily_adherence(dose_events).items():
        row(day).adherence = ratio
    for check_in in check_ins:
        current = row(day_key(check_in.created_at))
        if current.feeling is None or FEELING_SCORES[check_in.feeling] < FEELING_SCORES[current.feeling]:
            current.feeling = check_in.feeling
        current.symptoms.update(s.name.strip().lower() for s in check_in.symptoms if s.name.strip())
    for reading in vital_readings:
        row(day_key(reading.timestamp)).vitals[reading.type].append(reading)
    return [days[d] for d in sorted(days)]


def _correlation(
    type_: str,
    factor: str,
    factor_name: str,
    value: float,
    interpretation: str,
    points: int,
    favorable: bool | None = None,
    medication_id: str | None = None,
) -> HealthCorrelation:
    return HealthCorrelation(
        type=type_,
        factor=factor,
        factor_name=factor_name,
        correlation=round_half_up(value, 2),
        strength=pearson_strength(value),
        direction="positive" if value > 0 else "negative",
        interpretation=interpretation,
        favorable=favorable,
        medication_id=medication_id,
        data_points=points,
    )


def feeling_correlation(days: Sequence[HealthDay], medication_id: str | None = None) -> HealthCorrelation | None:
    points = [(d.adherence, FEELING_SCORES[d.feeling]) for d in days if d.adherence is not None and d.feeling]
    if len(points) < MIN_FEELING_POINTS:
        return None
    value = pearson([p[0] for p in points], [p[1] for p in points])
    if value is None:
        return None
    return _correlation(
        "medication_specific" if medication_id else "feeling",
        "overall_feeling",
        "Overall Feeling",
        value,
        "better_feeling_with_adherence" if value > 0 else "no_feeling_association",
        len(points),
        favorable=value > 0,
        medication_id=medication_id,
    )


def symptom_correlations(days: Sequence[HealthDay], medication_id: str | None = None) -> list[HealthCorrelation]:
    with_adherence = [d for d in days if d.adherence is not None]
    names = sorted({name for d in with_adherence for name in d.symptoms})
    results = []
    for name in names:
        presence = [1 if name in d.symptoms else 0 for d in with_adherence]
        if sum(presence) < MIN_SYMPTOM_DAYS:
            continue
        value = pearson([d.adherence for d in with_adherence], presence)
        if value is None or abs(value) < MIN_ABS_CORRELATION:
            continue
        results.append(
            _correlation(
                "medication_specific" if medication_id else "symptom",
                "symptom_" + "_".join(name.split()),
                f"Symptom: {name}",
                value,
                "fewer_symptom_with_adherence" if value < 0 else "no_symptom_reduction",
                len(with_adherence),
                favorable=value < 0,
                medication_id=medication_id,
            )
        )
    return results


def vital_correlations(days: Sequence[HealthDay]) -> list[HealthCorrelation]:
    results = []
    for vital_type, key, display_name, healthier in VITALS_TO_ANALYZE:
        xs, ys = [], []
        for day in days:
            if day.adherence is None:
                continue
            values = [r.values[key] for r in day.vitals.get(vital_type, []) if key in r.values]
            if values:
                xs.append(day.adherence)
                ys.append(statistics.mean(values))
        if len(xs) < MIN_VITAL_POINTS:
            continue
        value = pearson(xs, ys)
        if value is None or abs(value) < MIN_ABS_CORRELATION:
            continue
        if healthier == "down":
            favorable = value < 0
            interpretation = "favorable_vital_association" if favorable else "unfavorable_vital_association"
        else:
            favorable = None
            interpretation = "vital_association"
        results.append(_correlation("vital", key, display_name, value, interpretation, len(xs), favorable=favorable))
    return results


def analyze_health_correlations(
    dose_events: Iterable[DoseEvent],
    check_ins: Iterable[CheckIn],
    vital_readings: Iterable[VitalReading],
    medication_id: str | None = None,
) -> HealthCorrelationReport | InsufficientData:
    """Correlate daily adherence with how the user felt and measured.

    With ``medication_id`` the feeling and symptom correlations are repeated
    using only that medication's adherence.
    """
    dose_events = list(dose_events)
    check_ins = list(check_ins)
    days = build_health_days(dose_events, check_ins, vital_readings)
    if len(days) < MIN_DAYS:
        return InsufficientData(
            reason="Not enough days with adherence or health data to correlate",
            required=MIN_DAYS,
            available=len(days),
        )

    correlations: list[HealthCorrelation] = []
    feeling = feeling_correlation(days)
    if feeling is not None:
        correlations.append(feeling)
    correlations.extend(symptom_correlations(days))
    correlations.extend(vital_correlations(days))

    if medication_id:
        own_days = build_health_days([e for e in dose_events if e.medication_id == medication_id], check_ins, [])
        if sum(1 for d in own_days if d.adherence is not None) >= MIN_DAYS:
            specific = feeling_correlation(own_days, medication_id)
            if specific is not None and abs(specific.correlation) >= MIN_ABS_CORRELATION:
                correlations.append(specific)
            correlations.extend(symptom_correlations(own_days, medication_id))

    correlations.sort(key=lambda c: abs(c.correlation), reverse=True)
    logger.debug("Health correlations: %d days, %d correlations", len(days), len(correlations))
    return HealthCorrelationReport(days_analyzed=len(days), correlations=correlations)
