"""Analytics result models and policy constants."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, Literal, TypeVar


# ---------------------------------------------------------------------------
# Policy constants (overridable through Settings)
# ---------------------------------------------------------------------------

DAY_OF_WEEK_MIN_SUPPORT = 3     # events before a weekday rate is reported
TIME_OF_DAY_MIN_SUPPORT = 5     # events before an hour-band rate is reported
CO_OCCURRENCE_MIN_DAYS = 2      # shared days before two symptoms are linked
DOUBLE_DOSE_HOURS = 8.0         # consecutive doses closer than this are flagged
MIN_PHI = 0.1                   # |phi| must exceed this to be reported
WEEKLY_TREND_MIN_WEEKS = 3
WEEKLY_TREND_DELTA = 5.0        # percentage points between halves
EFFICACY_TREND_MIN_RECORDS = 3
EFFICACY_TREND_DELTA = 0.5      # rating points between halves
RECOMMENDATION_MIN_LOGS = 5
INSIGHT_MIN_LOGS = 10           # adherence insights need strictly more than this

ONSET_WINDOW_DAYS = 3
OFFSET_WINDOW_DAYS = 7
EFFECT_WINDOW_DAYS = 3
TEMPORAL_MIN_DATES = 3
EFFICACY_MIN_DATES = 2
HIGH_EFFICACY_RATING = 4
LOW_EFFICACY_RATING = 2
DEFAULT_SYMPTOM_SEVERITY = 3


@dataclass(frozen=True)
class AnalyticsThresholds:
    """Tunable cut-offs passed to every analyzer."""

    dow_min_support: int = DAY_OF_WEEK_MIN_SUPPORT
    tod_min_support: int = TIME_OF_DAY_MIN_SUPPORT
    cooccurrence_min_days: int = CO_OCCURRENCE_MIN_DAYS
    double_dose_hours: float = DOUBLE_DOSE_HOURS
    min_phi: float = MIN_PHI
    weekly_trend_min_weeks: int = WEEKLY_TREND_MIN_WEEKS
    weekly_trend_delta: float = WEEKLY_TREND_DELTA
    efficacy_trend_min_records: int = EFFICACY_TREND_MIN_RECORDS
    recommendation_min_logs: int = RECOMMENDATION_MIN_LOGS
    insight_min_logs: int = INSIGHT_MIN_LOGS


DEFAULT_THRESHOLDS = AnalyticsThresholds()


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def to_plain(value: Any) -> Any:
    """Convert result objects into JSON-compatible structures."""
    if isinstance(value, Serializable):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k) if isinstance(k, (date, int)) else k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


class Serializable:
    """Mixin giving dataclass results a ``to_dict``."""

    def to_dict(self) -> dict[str, Any]:
        return {f.name: to_plain(getattr(self, f.name)) for f in fields(self)}


# ---------------------------------------------------------------------------
# Result envelopes
# ---------------------------------------------------------------------------

ErrorKind = Literal["invalid_range", "external_unavailable"]
ResultStatus = Literal["ok", "insufficient_data", "error"]

T = TypeVar("T")


@dataclass
class InsufficientData(Serializable):
    """Not enough events to compute a figure. Returned, never raised."""

    reason: str
    required: int
    available: int


@dataclass
class AnalysisError(Serializable):
    kind: ErrorKind
    message: str


@dataclass
class AnalysisResult(Serializable, Generic[T]):
    """Envelope returned by the analytics service."""

    status: ResultStatus
    data: T | None = None
    insufficient: InsufficientData | None = None
    error: AnalysisError | None = None
    insights: Any = None

    @classmethod
    def ok(cls, data: T, insights: Any = None) -> AnalysisResult[T]:
        return cls(status="ok", data=data, insights=insights)

    @classmethod
    def insufficient_data(
        cls,
        insufficient: InsufficientData,
        data: T | None = None,
        insights: Any = None,
    ) -> AnalysisResult[T]:
        return cls(status="insufficient_data", data=data, insufficient=insufficient, insights=insights)

    @classmethod
    def failed(cls, error: AnalysisError) -> AnalysisResult[T]:
        return cls(status="error", error=error)


@dataclass
class Finding(Serializable):
    """A deterministic insight or recommendation category.

    ``params`` fills the placeholders of the category's canned text.
    """

    category: str
    priority: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    medication_id: str | None = None


# ---------------------------------------------------------------------------
# Adherence
# ---------------------------------------------------------------------------

@dataclass
class AdherenceSummary(Serializable):
    total_logs: int
    taken_logs: int
    skipped_logs: int
    missed_logs: int
    adherence_rate: int | None
    current_streak: int = 0
    longest_streak: int = 0


@dataclass
class BucketStat(Serializable):
    """Counts for one weekday or hour band. ``adherence_rate`` is None below support."""

    name: str
    total: int
    taken: int
    adherence_rate: int | None


@dataclass
class TimeOfDayBreakdown(Serializable):
    buckets: list[BucketStat]
    most_problematic: str | None


@dataclass
class DayOfWeekBreakdown(Serializable):
    buckets: list[BucketStat]
    most_problematic: str | None
    weekday_total: int
    weekday_rate: int | None
    weekend_total: int
    weekend_rate: int | None
    weekday_weekend_difference: int | None


@dataclass
class WeekStat(Serializable):
    week: str
    start: date
    total: int
    taken: int
    adherence_rate: int | None


@dataclass
class WeeklyTrend(Serializable):
    weeks: list[WeekStat]
    trend: str
    compared: bool
    difference: float | None
    current_week_rate: int | None


@dataclass
class DailyAdherence(Serializable):
    date: date
    total: int
    taken: int
    adherence_rate: int | None


@dataclass
class MedicationAdherence(Serializable):
    medication_id: str
    name: str
    total: int
    taken: int
    skipped: int
    missed: int
    adherence_rate: int | None


@dataclass
class MedicationMissCount(Serializable):
    medication_id: str
    name: str
    missed: int
    total: int
    miss_rate: int


@dataclass
class MissedDosePatterns(Serializable):
    by_day_of_week: dict[str, int]
    by_time_of_day: dict[str, int]
    by_medication: list[MedicationMissCount]
    worst_day: str | None = None
    worst_day_count: int = 0
    worst_time: str | None = None
    worst_time_count: int = 0
    worst_medication: MedicationMissCount | None = None


@dataclass
class AdherenceReport(Serializable):
    summary: AdherenceSummary
    by_medication: list[MedicationAdherence]
    day_of_week: DayOfWeekBreakdown
    time_of_day: TimeOfDayBreakdown
    weekly: WeeklyTrend
    daily: list[DailyAdherence]
    missed_patterns: MissedDosePatterns


# ---------------------------------------------------------------------------
# Consumption
# ---------------------------------------------------------------------------

@dataclass
class DoubleDoseInstance(Serializable):
    first_dose: datetime
    second_dose: datetime
    interval_hours: float


@dataclass
class ConsumptionPattern(Serializable):
    medication_id: str
    name: str
    dose_count: int
    by_time_of_day: dict[str, int]
    by_day_of_week: dict[str, int]
    average_interval_hours: float | None = None
    interval_std_dev_hours: float | None = None
    double_dose_instances: list[DoubleDoseInstance] = field(default_factory=list)

    @property
    def interval_variance(self) -> float | None:
        """Legacy name for ``interval_std_dev_hours``; the value is a standard deviation."""
        return self.interval_std_dev_hours


# ---------------------------------------------------------------------------
# Efficacy
# ---------------------------------------------------------------------------

RATING_LABELS = {5: "excellent", 4: "good", 3: "moderate", 2: "fair", 1: "poor"}


@dataclass
class SideEffectRollup(Serializable):
    effect: str
    occurrence_count: int
    average_severity: float
    occurrence_percentage: int
    first_reported: datetime


@dataclass
class TargetSymptomRollup(Serializable):
    name: str
    occurrence_count: int
    average_improvement: float
    occurrence_percentage: int


@dataclass
class EfficacySummary(Serializable):
    records_count: int
    average_rating: float
    average_time_to_effect: int | None
    average_effect_duration: int | None
    rating_distribution: dict[str, int]
    trend: str
    trend_compared: bool
    side_effects: list[SideEffectRollup]
    target_symptoms: list[TargetSymptomRollup]
    first_recorded: datetime
    last_recorded: datetime


@dataclass
class SideEffectTrend(Serializable):
    effect: str
    occurrences: int
    average_severity: float
    latest_severity: int
    latest_report: datetime
    trend: str
    change: float


@dataclass
class ContextualFactor(Serializable):
    """A lifestyle field that differs between well- and poorly-rated reports."""

    factor: str
    category: str
    high_efficacy_value: float
    low_efficacy_value: float
    difference: float | int


@dataclass
class TimeOfDayEfficacy(Serializable):
    time_of_day: str
    average_rating: float
    reports: int


@dataclass
class EfficacyContext(Serializable):
    factors: list[ContextualFactor]
    best_time_of_day: TimeOfDayEfficacy | None
    high_efficacy_reports: int
    low_efficacy_reports: int


@dataclass
class EfficacyComparison(Serializable):
    medication_id: str
    name: str
    records_count: int
    average_rating: float | None
    symptom_rating: float | None
    top_side_effects: list[dict[str, Any]]
    latest_record: datetime | None
