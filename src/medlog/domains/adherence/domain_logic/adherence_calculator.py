"""Adherence rates, streaks and temporal breakdowns from dose events.

Every function here is pure: it takes dose events in any order and returns
result models. Empty input never raises; counts are zero and rates are None.
"""

from __future__ import annotations

import logging
import math
import statistics
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Mapping

from medlog.domains.adherence.domain_logic.analytics_models import (
    DEFAULT_THRESHOLDS,
    AdherenceReport,
    AdherenceSummary,
    AnalyticsThresholds,
    BucketStat,
    DailyAdherence,
    DayOfWeekBreakdown,
    MedicationAdherence,
    MedicationMissCount,
    MissedDosePatterns,
    TimeOfDayBreakdown,
    WeeklyTrend,
    WeekStat,
)
from medlog.domains.adherence.domain_logic.calendar import (
    TIME_BANDS,
    WEEKDAY_NAMES,
    WEEKEND,
    WORKDAYS,
    day_key,
    round_half_up,
    time_band,
    to_utc,
    week_key,
    week_start,
    weekday_name,
)
from medlog.domains.adherence.domain_logic.event_models import DoseEvent, DoseStatus

logger = logging.getLogger(__name__)

UNKNOWN_MEDICATION = "Unknown Medication"


def adherence_rate(taken: int, total: int) -> int | None:
    """Whole-number percentage of taken doses, None when nothing was logged."""
    if total <= 0:
        return None
    return round_half_up(taken / total * 100)


def _medication_name(medication_id: str, names: Mapping[str, str] | None) -> str:
    if names and medication_id in names:
        return names[medication_id]
    return medication_id or UNKNOWN_MEDICATION


# ---------------------------------------------------------------------------
# Summary and streaks
# ---------------------------------------------------------------------------

def compute_streaks(events: Iterable[DoseEvent]) -> tuple[int, int]:
    """Return ``(current_streak, longest_streak)``.

    The current streak counts consecutive "taken" events back from the most
    recent one; the longest streak is the longest such run anywhere.
    """
    ordered = sorted(events, key=lambda e: e.created_at)
    current = 0
    for event in reversed(ordered):
        if not event.is_taken:
            break
        current += 1

    longest = 0
    run = 0
    for event in ordered:
        if event.is_taken:
            run += 1
            longest = max(longest, run)
        else:
            run = 0
    return current, longest


def summarize_adherence(events: Iterable[DoseEvent]) -> AdherenceSummary:
    events = list(events)
    taken = sum(1 for e in events if e.status is DoseStatus.TAKEN)
    skipped = sum(1 for e in events if e.status is DoseStatus.SKIPPED)
    missed = sum(1 for e in events if e.status is DoseStatus.MISSED)
    current, longest = compute_streaks(events)
    return AdherenceSummary(
        total_logs=len(events),
        taken_logs=taken,
        skipped_logs=skipped,
        missed_logs=missed,
        adherence_rate=adherence_rate(taken, len(events)),
        current_streak=current,
        longest_streak=longest,
    )


# ---------------------------------------------------------------------------
# Bucketed breakdowns
# ---------------------------------------------------------------------------

def _bucket_stats(
    names: Iterable[str],
    totals: Mapping[str, int],
    taken: Mapping[str, int],
    min_support: int,
) -> list[BucketStat]:
    stats = []
    for name in names:
        total = totals.get(name, 0)
        rate = adherence_rate(taken.get(name, 0), total) if total >= min_support else None
        stats.append(BucketStat(name=name, total=total, taken=taken.get(name, 0), adherence_rate=rate))
    return stats


def _most_problematic(buckets: list[BucketStat]) -> str | None:
    """Lowest-rate bucket below 100% among those with a reported rate; first wins ties."""
    worst: BucketStat | None = None
    for bucket in buckets:
        if bucket.adherence_rate is None or bucket.adherence_rate >= 100:
            continue
        if worst is None or bucket.adherence_rate < worst.adherence_rate:
            worst = bucket
    return worst.name if worst else None


def time_of_day_breakdown(
    events: Iterable[DoseEvent],
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> TimeOfDayBreakdown:
    totals: dict[str, int] = defaultdict(int)
    taken: dict[str, int] = defaultdict(int)
    for event in events:
        band = time_band(event.bucket_time)
        totals[band] += 1
        if event.is_taken:
            taken[band] += 1
    buckets = _bucket_stats(TIME_BANDS, totals, taken, thresholds.tod_min_support)
    return TimeOfDayBreakdown(buckets=buckets, most_problematic=_most_problematic(buckets))


def day_of_week_breakdown(
    events: Iterable[DoseEvent],
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> DayOfWeekBreakdown:
    totals: dict[str, int] = defaultdict(int)
    taken: dict[str, int] = defaultdict(int)
    for event in events:
        day = weekday_name(event.bucket_time)
        totals[day] += 1
        if event.is_taken:
            taken[day] += 1
    buckets = _bucket_stats(WEEKDAY_NAMES, totals, taken, thresholds.dow_min_support)

    weekday_total = sum(totals[d] for d in WORKDAYS)
    weekend_total = sum(totals[d] for d in WEEKEND)
    weekday_rate = adherence_rate(sum(taken[d] for d in WORKDAYS), weekday_total)
    weekend_rate = adherence_rate(sum(taken[d] for d in WEEKEND), weekend_total)
    difference = None
    if weekday_rate is not None and weekend_rate is not None:
        difference = weekday_rate - weekend_rate

    return DayOfWeekBreakdown(
        buckets=buckets,
        most_problematic=_most_problematic(buckets),
        weekday_total=weekday_total,
        weekday_rate=weekday_rate,
        weekend_total=weekend_total,
        weekend_rate=weekend_rate,
        weekday_weekend_difference=difference,
    )


def weekly_trend(
    events: Iterable[DoseEvent],
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> WeeklyTrend:
    """Per-ISO-week rates and the direction between the early and late halves.

    With an odd number of weeks the two halves share the middle week.
    """
    grouped: dict[str, list[DoseEvent]] = defaultdict(list)
    starts = {}
    for event in events:
        day = day_key(event.bucket_time)
        key = week_key(day)
        grouped[key].append(event)
        starts[key] = week_start(day)

    weeks = []
    for key in sorted(grouped, key=lambda k: starts[k]):
        bucket = grouped[key]
        taken = sum(1 for e in bucket if e.is_taken)
        weeks.append(
            WeekStat(
                week=key,
                start=starts[key],
                total=len(bucket),
                taken=taken,
                adherence_rate=adherence_rate(taken, len(bucket)),
            )
        )

    current_rate = weeks[-1].adherence_rate if weeks else None
    if len(weeks) < thresholds.weekly_trend_min_weeks:
        return WeeklyTrend(weeks=weeks, trend="stable", compared=False, difference=None, current_week_rate=current_rate)

    half = math.ceil(len(weeks) / 2)
    first_mean = statistics.mean(w.adherence_rate or 0 for w in weeks[:half])
    last_mean = statistics.mean(w.adherence_rate or 0 for w in weeks[-half:])
    difference = last_mean - first_mean
    if difference >= thresholds.weekly_trend_delta:
        trend = "improving"
    elif difference <= -thresholds.weekly_trend_delta:
        trend = "declining"
    else:
        trend = "stable"
    return WeeklyTrend(
        weeks=weeks,
        trend=trend,
        compared=True,
        difference=round_half_up(difference, 1),
        current_week_rate=current_rate,
    )


def daily_adherence(events: Iterable[DoseEvent]) -> list[DailyAdherence]:
    totals: dict = defaultdict(int)
    taken: dict = defaultdict(int)
    for event in events:
        day = day_key(event.created_at)
        totals[day] += 1
        if event.is_taken:
            taken[day] += 1
    return [
        DailyAdherence(date=day, total=totals[day], taken=taken[day], adherence_rate=adherence_rate(taken[day], totals[day]))
        for day in sorted(totals)
    ]


def adherence_by_medication(
    events: Iterable[DoseEvent],
    names: Mapping[str, str] | None = None,
) -> list[MedicationAdherence]:
    """Per-medication counts, lowest adherence first."""
    counts: dict[str, dict[DoseStatus, int]] = {}
    for event in events:
        per_status = counts.setdefault(event.medication_id, defaultdict(int))
        per_status[event.status] += 1

    rows = []
    for medication_id, per_status in counts.items():
        total = sum(per_status.values())
        taken = per_status[DoseStatus.TAKEN]
        rows.append(
            MedicationAdherence(
                medication_id=medication_id,
                name=_medication_name(medication_id, names),
                total=total,
                taken=taken,
                skipped=per_status[DoseStatus.SKIPPED],
                missed=per_status[DoseStatus.MISSED],
                adherence_rate=adherence_rate(taken, total),
            )
        )
    rows.sort(key=lambda r: r.adherence_rate if r.adherence_rate is not None else 0)
    return rows


# ---------------------------------------------------------------------------
# Missed doses
# ---------------------------------------------------------------------------

def _worst(counts: Mapping[str, int], order: Iterable[str]) -> tuple[str | None, int]:
    worst_name, worst_count = None, 0
    for name in order:
        if counts.get(name, 0) > worst_count:
            worst_name, worst_count = name, counts[name]
    return worst_name, worst_count


def missed_dose_patterns(
    events: Iterable[DoseEvent],
    names: Mapping[str, str] | None = None,
) -> MissedDosePatterns:
    """Where missed and skipped doses cluster: weekday, hour band, medication."""
    events = list(events)
    by_day = {day: 0 for day in WEEKDAY_NAMES}
    by_band = {band: 0 for band in TIME_BANDS}
    missed_per_med: dict[str, int] = defaultdict(int)
    total_per_med: dict[str, int] = defaultdict(int)

    for event in events:
        total_per_med[event.medication_id] += 1
        if event.is_taken:
            continue
        by_day[weekday_name(event.bucket_time)] += 1
        by_band[time_band(event.bucket_time)] += 1
        missed_per_med[event.medication_id] += 1

    by_medication = [
        MedicationMissCount(
            medication_id=medication_id,
            name=_medication_name(medication_id, names),
            missed=missed_per_med[medication_id],
            total=total,
            miss_rate=round_half_up(missed_per_med[medication_id] / total * 100),
        )
        for medication_id, total in total_per_med.items()
    ]

    worst_medication = None
    for row in by_medication:
        if row.miss_rate > 0 and (worst_medication is None or row.miss_rate > worst_medication.miss_rate):
            worst_medication = row

    worst_day, worst_day_count = _worst(by_day, WEEKDAY_NAMES)
    worst_time, worst_time_count = _worst(by_band, TIME_BANDS)
    return MissedDosePatterns(
        by_day_of_week=by_day,
        by_time_of_day=by_band,
        by_medication=by_medication,
        worst_day=worst_day,
        worst_day_count=worst_day_count,
        worst_time=worst_time,
        worst_time_count=worst_time_count,
        worst_medication=worst_medication,
    )


# ---------------------------------------------------------------------------
# Full report
# ---------------------------------------------------------------------------

def analyze_adherence(
    events: Iterable[DoseEvent],
    *,
    now: datetime,
    names: Mapping[str, str] | None = None,
    thresholds: AnalyticsThresholds = DEFAULT_THRESHOLDS,
) -> AdherenceReport:
    """Assemble every adherence figure for events logged up to ``now``."""
    cutoff = to_utc(now)
    events = list(events)
    kept = [e for e in events if e.created_at <= cutoff]
    if len(kept) != len(events):
        logger.debug("Ignoring %d dose events logged after %s", len(events) - len(kept), cutoff.isoformat())

    return AdherenceReport(
        summary=summarize_adherence(kept),
        by_medication=adherence_by_medication(kept, names),
        day_of_week=day_of_week_breakdown(kept, thresholds),
        time_of_day=time_of_day_breakdown(kept, thresholds),
        weekly=weekly_trend(kept, thresholds),
        daily=daily_adherence(kept),
        missed_patterns=missed_dose_patterns(kept, names),
    )
