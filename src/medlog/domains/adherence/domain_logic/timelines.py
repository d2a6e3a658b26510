"""Day-indexed timelines built from raw events.

The correlation engine works on UTC calendar days, not timestamps: a
medication "happened" on a day if at least one taken dose was logged that
day, and a symptom on a day if any check-in that day reported it.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable, Mapping

from medlog.domains.adherence.domain_logic.analytics_models import (
    DEFAULT_SYMPTOM_SEVERITY,
    AdherenceSummary,
)
from medlog.domains.adherence.domain_logic.adherence_calculator import adherence_rate
from medlog.domains.adherence.domain_logic.calendar import day_key
from medlog.domains.adherence.domain_logic.correlation_models import (
    DayTally,
    EfficacyTimeline,
    MedicationTimeline,
    SymptomTimeline,
    Timelines,
)
from medlog.domains.adherence.domain_logic.event_models import (
    CheckIn,
    DateWindow,
    DoseEvent,
    DoseStatus,
    EfficacyReport,
)


def medication_timelines(
    events: Iterable[DoseEvent],
    names: Mapping[str, str] | None = None,
    window: DateWindow | None = None,
) -> dict[str, MedicationTimeline]:
    timelines: dict[str, MedicationTimeline] = {}
    for event in sorted(events, key=lambda e: e.created_at):
        if not event.is_taken:
            continue
        if window and not window.contains(event.created_at):
            continue
        timeline = timelines.get(event.medication_id)
        if timeline is None:
            timeline = MedicationTimeline(
                medication_id=event.medication_id,
                name=(names or {}).get(event.medication_id, event.medication_id),
            )
            timelines[event.medication_id] = timeline
        day = day_key(event.created_at)
        timeline.dates[day] = timeline.dates.get(day, 0) + 1
    return timelines


def symptom_timelines(
    check_ins: Iterable[CheckIn],
    window: DateWindow | None = None,
) -> dict[str, SymptomTimeline]:
    timelines: dict[str, SymptomTimeline] = {}
    for check_in in sorted(check_ins, key=lambda c: c.created_at):
        if window and not window.contains(check_in.created_at):
            continue
        day = day_key(check_in.created_at)
        for symptom in check_in.symptoms:
            key = symptom.name.strip().lower()
            if not key:
                continue
            timeline = timelines.setdefault(key, SymptomTimeline(name=key))
            timeline.dates[day] = timeline.dates.get(day, 0) + 1
            severity = symptom.severity if symptom.severity is not None else DEFAULT_SYMPTOM_SEVERITY
            timeline.severities[day] = max(timeline.severities.get(day, 0), severity)
            if symptom.body_location and symptom.body_location not in timeline.body_locations:
                timeline.body_locations.append(symptom.body_location)
    return timelines


def efficacy_timelines(
    reports: Iterable[EfficacyReport],
    window: DateWindow | None = None,
) -> dict[str, EfficacyTimeline]:
    timelines: dict[str, EfficacyTimeline] = {}
    for report in sorted(reports, key=lambda r: r.recorded_at):
        if window and not window.contains(report.recorded_at):
            continue
        timeline = timelines.setdefault(report.medication_id, EfficacyTimeline(medication_id=report.medication_id))
        # later reports on the same day replace earlier ones
        timeline.ratings[day_key(report.recorded_at)] = report.overall_rating
        for target in report.target_symptoms:
            name = target.name.strip().lower()
            if name and name not in timeline.target_symptoms:
                timeline.target_symptoms.append(name)
    return timelines


def build_timelines(
    dose_events: Iterable[DoseEvent],
    check_ins: Iterable[CheckIn],
    efficacy_reports: Iterable[EfficacyReport],
    window: DateWindow | None = None,
    names: Mapping[str, str] | None = None,
) -> Timelines:
    return Timelines(
        medications=medication_timelines(dose_events, names, window),
        symptoms=symptom_timelines(check_ins, window),
        efficacy=efficacy_timelines(efficacy_reports, window),
    )


# ---------------------------------------------------------------------------
# Adherence tallies
# ---------------------------------------------------------------------------

def adherence_timeline(events: Iterable[DoseEvent]) -> dict[date, DayTally]:
    """Per-day outcome counts of every dose event, in date order."""
    tallies: dict[date, DayTally] = defaultdict(DayTally)
    for event in events:
        tally = tallies[day_key(event.created_at)]
        tally.total += 1
        if event.status is DoseStatus.TAKEN:
            tally.taken += 1
        elif event.status is DoseStatus.MISSED:
            tally.missed += 1
        else:
            tally.skipped += 1
    return dict(sorted(tallies.items()))


def summary_from_timeline(timeline: Mapping[date, DayTally]) -> AdherenceSummary:
    """Re-derive adherence counts from a day tally.

    Streaks need event order, which a day tally does not keep, so they are
    left at zero.
    """
    total = sum(t.total for t in timeline.values())
    taken = sum(t.taken for t in timeline.values())
    return AdherenceSummary(
        total_logs=total,
        taken_logs=taken,
        skipped_logs=sum(t.skipped for t in timeline.values()),
        missed_logs=sum(t.missed for t in timeline.values()),
        adherence_rate=adherence_rate(taken, total),
    )
