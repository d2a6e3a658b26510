"""When and how regularly each medication is actually taken."""

from __future__ import annotations

import logging
import statistics
from collections import defaultdict
from typing import Iterable, Mapping

from medlog.domains.adherence.domain_logic.analytics_models import (
    DEFAULT_THRESHOLDS,
    AnalyticsThresholds,
    ConsumptionPattern,
    DoubleDoseInstance,
    Finding,
)
from medlog.domains.adherence.domain_logic.calendar import (
    TIME_BANDS,
    WEEKDAY_NAMES,
    WEEKEND,
    WORKDAYS,
    round_half_up,
    time_band,
    weekday_name,
)
from medlog.domains.adherence.domain_logic.event_models import DoseEvent

logger = logging.getLogger(__name__)

PREFERRED_TIME_SHARE = 50   # percent of doses in one band
WEEKDAY_BIAS_RATIO = 1.5


def _consumption_for(
    medication_id: str,
    name: str,
    doses: list[DoseEvent],
    thresholds: AnalyticsThresholds,
) -> ConsumptionPattern:
    doses = sorted(doses, key=lambda e: e.preferred_time)
    by_band = {band: 0 for band in TIME_BANDS}
    by_day = {day: 0 for day in WEEKDAY_NAMES}
    for dose in doses:
        by_band[time_band(dose.preferred_time)] += 1
        by_day[weekday_name(dose.preferred_time)] += 1

    pattern = ConsumptionPattern(
        medication_id=medication_id,
        name=name,
        dose_count=len(doses),
        by_time_of_day=by_band,
        by_day_of_week=by_day,
    )
    if len(doses) < 2:
        return pattern

    intervals = []
    for previous, current in zip(doses, doses[1:]):
        hours = (current.preferred_time - previous.preferred_time).total_seconds() / 3600
        intervals.append(hours)
        if hours < thresholds.double_dose_hours:
            pattern.double_dose_instances.append(
                DoubleDoseInstance(
                    first_dose=previous.preferred_time,
                    second_dose=current.preferred_time,
                    interval_hours=round_half_up(hours, 1),
                )
            )

    pattern.average_interval_hours = round_half_up(statistics.mean(intervals), 1)
    pattern.interval_std_dev_hours = round_half_up(statistics.pstdev(intervals), 1)
    return pattern


def analyze_consumption(
    events: Iterable[DoseEvent],
    names: Mapping[str, str] | None = None,
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> list[ConsumptionPattern]:
    """Consumption patterns of taken doses, most-taken medication first."""
    per_medication: dict[str, list[DoseEvent]] = defaultdict(list)
    for event in events:
        if event.is_taken:
            per_medication[event.medication_id].append(event)

    patterns = [
        _consumption_for(
            medication_id,
            (names or {}).get(medication_id, medication_id),
            doses,
            thresholds,
        )
        for medication_id, doses in per_medication.items()
    ]
    patterns.sort(key=lambda p: p.dose_count, reverse=True)
    flagged = sum(len(p.double_dose_instances) for p in patterns)
    if flagged:
        logger.info("Detected %d possible double doses across %d medications", flagged, len(patterns))
    return patterns


def consumption_findings(patterns: Iterable[ConsumptionPattern]) -> list[Finding]:
    """Deterministic consumption insights for each medication."""
    findings = []
    for pattern in patterns:
        if pattern.dose_count == 0:
            continue

        band, count = max(pattern.by_time_of_day.items(), key=lambda item: item[1])
        share = round_half_up(count / pattern.dose_count * 100)
        if share > PREFERRED_TIME_SHARE:
            findings.append(
                Finding(
                    category="preferred_time",
                    params={"name": pattern.name, "time_of_day": band, "percentage": share},
                    medication_id=pattern.medication_id,
                )
            )

        if pattern.double_dose_instances:
            findings.append(
                Finding(
                    category="double_dosing",
                    priority="high",
                    params={"name": pattern.name, "count": len(pattern.double_dose_instances)},
                    medication_id=pattern.medication_id,
                )
            )

        weekday_avg = sum(pattern.by_day_of_week[d] for d in WORKDAYS) / len(WORKDAYS)
        weekend_avg = sum(pattern.by_day_of_week[d] for d in WEEKEND) / len(WEEKEND)
        if weekday_avg > weekend_avg * WEEKDAY_BIAS_RATIO:
            findings.append(
                Finding(
                    category="weekday_consistency",
                    priority="medium",
                    params={"name": pattern.name},
                    medication_id=pattern.medication_id,
                )
            )
    return findings
