"""Timeline and correlation result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from medlog.domains.adherence.domain_logic.analytics_models import Serializable


# ---------------------------------------------------------------------------
# Day-indexed timelines
# ---------------------------------------------------------------------------

@dataclass
class MedicationTimeline(Serializable):
    """Days on which a medication was taken, with doses per day."""

    medication_id: str
    name: str
    dates: dict[date, int] = field(default_factory=dict)

    @property
    def first_date(self) -> date | None:
        return min(self.dates) if self.dates else None

    @property
    def last_date(self) -> date | None:
        return max(self.dates) if self.dates else None


@dataclass
class SymptomTimeline(Serializable):
    """Days on which a symptom was reported, keyed by lower-cased name."""

    name: str
    dates: dict[date, int] = field(default_factory=dict)
    severities: dict[date, int] = field(default_factory=dict)
    body_locations: list[str] = field(default_factory=list)

    @property
    def first_date(self) -> date | None:
        return min(self.dates) if self.dates else None

    @property
    def last_date(self) -> date | None:
        return max(self.dates) if self.dates else None


@dataclass
class EfficacyTimeline(Serializable):
    medication_id: str
    ratings: dict[date, float] = field(default_factory=dict)
    target_symptoms: list[str] = field(default_factory=list)


@dataclass
class DayTally(Serializable):
    total: int = 0
    taken: int = 0
    missed: int = 0
    skipped: int = 0


@dataclass
class Timelines(Serializable):
    medications: dict[str, MedicationTimeline] = field(default_factory=dict)
    symptoms: dict[str, SymptomTimeline] = field(default_factory=dict)
    efficacy: dict[str, EfficacyTimeline] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Medication x symptom correlation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Contingency:
    """2x2 day counts for two day sets over a shared range."""

    both: int
    only_a: int
    only_b: int
    neither: int

    @property
    def total(self) -> int:
        return self.both + self.only_a + self.only_b + self.neither

    @property
    def a_days(self) -> int:
        return self.both + self.only_a

    @property
    def b_days(self) -> int:
        return self.both + self.only_b


@dataclass
class OverlapStats(Serializable):
    days_with_medication: int
    days_with_symptom: int
    days_with_both: int
    total_days: int
    overlap_percentage: float


@dataclass
class LagAnalysis(Serializable):
    """How many days separate a symptom from the nearest dose.

    Lag ``1`` means the dose came the day before the symptom; ``-1`` means
    the symptom preceded the dose by a day.
    """

    dominant_lag: int | None
    confidence: float
    distribution: dict[int, int]
    total_matches: int
    pattern: str | None = None


@dataclass
class CorrelationResult(Serializable):
    medication_id: str
    medication_name: str
    symptom_name: str
    correlation: float
    strength: str
    direction: str
    interpretation: str
    lag: LagAnalysis
    overlap: OverlapStats


@dataclass
class OnsetExample(Serializable):
    medication_date: date
    symptom_date: date
    days_between: int


@dataclass
class TemporalPattern(Serializable):
    medication_id: str
    medication_name: str
    symptom_name: str
    onset_count: int
    offset_count: int
    average_onset_days: float | None
    onset_examples: list[OnsetExample]
    offset_examples: list[OnsetExample]
    categories: list[str]

    @property
    def total_matches(self) -> int:
        return self.onset_count + self.offset_count


@dataclass
class SymptomEffectiveness(Serializable):
    symptom_name: str
    before_count: int
    after_count: int
    effectiveness_ratio: float
    label: str


@dataclass
class EfficacyEffectiveness(Serializable):
    medication_id: str
    medication_name: str
    average_efficacy: float
    reports_count: int
    symptoms: list[SymptomEffectiveness]


@dataclass
class NetworkNode(Serializable):
    id: str
    frequency: int
    body_locations: list[str]


@dataclass
class NetworkLink(Serializable):
    source: str
    target: str
    value: int


@dataclass
class SymptomNetwork(Serializable):
    nodes: list[NetworkNode]
    links: list[NetworkLink]


@dataclass
class CorrelationAnalysis(Serializable):
    correlations: list[CorrelationResult]
    temporal_patterns: list[TemporalPattern]
    efficacy: list[EfficacyEffectiveness]
    network: SymptomNetwork


# ---------------------------------------------------------------------------
# Adherence x health outcomes
# ---------------------------------------------------------------------------

@dataclass
class HealthCorrelation(Serializable):
    type: str
    factor: str
    factor_name: str
    correlation: float
    strength: str
    direction: str
    interpretation: str
    favorable: bool | None = None
    medication_id: str | None = None
    data_points: int = 0


@dataclass
class HealthCorrelationReport(Serializable):
    days_analyzed: int
    correlations: list[HealthCorrelation]
