"""Input event records consumed by the analytics.

Records arrive from the store as camelCase dicts with ISO timestamps; each
type has a ``from_dict`` that normalizes them. Malformed records raise
``EventParseError`` rather than being silently dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from medlog.domains.adherence.domain_logic.calendar import parse_timestamp, period_bounds, to_utc


class EventParseError(ValueError):
    """Raised when a stored record cannot be turned into an event."""


class DoseStatus(str, Enum):
    TAKEN = "taken"
    MISSED = "missed"
    SKIPPED = "skipped"


FEELINGS = ("good", "fair", "poor")

VITAL_TYPES = (
    "bloodPressure",
    "glucose",
    "weight",
    "temperature",
    "heartRate",
    "oxygenLevel",
    "other",
)


def _required(data: Mapping[str, Any], key: str, kind: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise EventParseError(f"{kind} record is missing '{key}'")
    return value


def _timestamp(data: Mapping[str, Any], key: str, kind: str, required: bool = True) -> datetime | None:
    value = data.get(key)
    if value is None or value == "":
        if required:
            raise EventParseError(f"{kind} record is missing '{key}'")
        return None
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError) as exc:
        raise EventParseError(f"{kind} record has unparsable '{key}': {value!r}") from exc


def _optional_number(data: Mapping[str, Any], key: str, kind: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise EventParseError(f"{kind} record has non-numeric '{key}': {value!r}") from exc


def _optional_int(data: Mapping[str, Any], key: str, kind: str) -> int | None:
    number = _optional_number(data, key, kind)
    return None if number is None else int(number)


def _normalize_timestamps(record: Any, *names: str) -> None:
    """Store the named timestamp fields of a frozen record as aware UTC."""
    for name in names:
        value = getattr(record, name)
        if value is not None:
            object.__setattr__(record, name, to_utc(value))


# ---------------------------------------------------------------------------
# Dose events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DoseEvent:
    """One logged dose outcome."""

    id: str
    user_id: str
    medication_id: str
    status: DoseStatus
    created_at: datetime
    scheduled_time: datetime | None = None
    taken_time: datetime | None = None

    def __post_init__(self) -> None:
        _normalize_timestamps(self, "created_at", "scheduled_time", "taken_time")

    @property
    def is_taken(self) -> bool:
        return self.status is DoseStatus.TAKEN

    @property
    def preferred_time(self) -> datetime:
        """When the dose actually happened, as best we know."""
        return self.taken_time or self.created_at

    @property
    def bucket_time(self) -> datetime:
        """Timestamp used for day-of-week and hour-band bucketing."""
        return self.scheduled_time or self.taken_time or self.created_at

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DoseEvent:
        raw_status = _required(data, "status", "dose")
        try:
            status = DoseStatus(str(raw_status).lower())
        except ValueError as exc:
            raise EventParseError(f"dose record has unknown status {raw_status!r}") from exc
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            user_id=str(_required(data, "userId", "dose")),
            medication_id=str(_required(data, "medicationId", "dose")),
            status=status,
            created_at=_timestamp(data, "createdAt", "dose"),
            scheduled_time=_timestamp(data, "scheduledTime", "dose", required=False),
            taken_time=_timestamp(data, "takenTime", "dose", required=False),
        )


# ---------------------------------------------------------------------------
# Vitals and check-ins
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VitalReading:
    id: str
    user_id: str
    type: str
    values: dict[str, float]
    timestamp: datetime
    is_normal: bool | None = None

    def __post_init__(self) -> None:
        _normalize_timestamps(self, "timestamp")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VitalReading:
        vital_type = str(_required(data, "type", "vital"))
        if vital_type not in VITAL_TYPES:
            raise EventParseError(f"vital record has unknown type {vital_type!r}")
        raw_values = data.get("values") or {}
        if not isinstance(raw_values, Mapping):
            raise EventParseError("vital record 'values' must be an object")
        values = {}
        for key, value in raw_values.items():
            if value is None:
                continue
            try:
                values[str(key)] = float(value)
            except (TypeError, ValueError) as exc:
                raise EventParseError(f"vital record has non-numeric value {key}={value!r}") from exc
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            user_id=str(_required(data, "userId", "vital")),
            type=vital_type,
            values=values,
            timestamp=_timestamp(data, "timestamp", "vital"),
            is_normal=data.get("isNormal"),
        )


@dataclass(frozen=True)
class Symptom:
    name: str
    severity: int | None = None
    body_location: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Symptom:
        return cls(
            name=str(_required(data, "name", "symptom")),
            severity=_optional_int(data, "severity", "symptom"),
            body_location=data.get("bodyLocation") or None,
        )


@dataclass(frozen=True)
class CheckIn:
    """Daily self-reported health check-in."""

    id: str
    user_id: str
    feeling: str
    created_at: datetime
    symptoms: tuple[Symptom, ...] = ()
    sleep_hours: float | None = None
    stress_level: float | None = None
    exercise_minutes: float | None = None

    def __post_init__(self) -> None:
        _normalize_timestamps(self, "created_at")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CheckIn:
        feeling = str(_required(data, "feeling", "check-in")).lower()
        if feeling not in FEELINGS:
            raise EventParseError(f"check-in record has unknown feeling {feeling!r}")
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            user_id=str(_required(data, "userId", "check-in")),
            feeling=feeling,
            created_at=_timestamp(data, "createdAt", "check-in"),
            symptoms=tuple(Symptom.from_dict(s) for s in data.get("symptoms") or []),
            sleep_hours=_optional_number(data, "sleepHours", "check-in"),
            stress_level=_optional_number(data, "stressLevel", "check-in"),
            exercise_minutes=_optional_number(data, "exerciseMinutes", "check-in"),
        )


# ---------------------------------------------------------------------------
# Efficacy reports
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SideEffect:
    effect: str
    severity: int | None = None


@dataclass(frozen=True)
class TargetSymptom:
    name: str
    improvement_rating: int | None = None


@dataclass(frozen=True)
class EfficacyReport:
    """A user's rating of how well a medication is working."""

    id: str
    user_id: str
    medication_id: str
    overall_rating: float
    recorded_at: datetime
    symptom_relief: float | None = None
    side_effects: tuple[SideEffect, ...] = ()
    target_symptoms: tuple[TargetSymptom, ...] = ()
    time_to_effect: float | None = None     # minutes
    effect_duration: float | None = None    # hours

    def __post_init__(self) -> None:
        _normalize_timestamps(self, "recorded_at")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EfficacyReport:
        rating = _optional_number(data, "overallRating", "efficacy")
        if rating is None:
            raise EventParseError("efficacy record is missing 'overallRating'")
        if not 1 <= rating <= 5:
            raise EventParseError(f"efficacy record has out-of-range rating {rating!r}")
        side_effects = tuple(
            SideEffect(
                effect=str(_required(s, "effect", "side effect")),
                severity=_optional_int(s, "severity", "side effect"),
            )
            for s in data.get("sideEffects") or []
        )
        target_symptoms = tuple(
            TargetSymptom(
                name=str(_required(t, "name", "target symptom")),
                improvement_rating=_optional_int(t, "improvementRating", "target symptom"),
            )
            for t in data.get("targetSymptoms") or []
        )
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            user_id=str(_required(data, "userId", "efficacy")),
            medication_id=str(_required(data, "medicationId", "efficacy")),
            overall_rating=rating,
            recorded_at=_timestamp(data, "recordedAt", "efficacy"),
            symptom_relief=_optional_number(data, "symptomRelief", "efficacy"),
            side_effects=side_effects,
            target_symptoms=target_symptoms,
            time_to_effect=_optional_number(data, "timeToEffect", "efficacy"),
            effect_duration=_optional_number(data, "effectDuration", "efficacy"),
        )


# ---------------------------------------------------------------------------
# Query window
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DateWindow:
    """Half-open ``[start, end)`` range of UTC timestamps."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", to_utc(self.start))
        object.__setattr__(self, "end", to_utc(self.end))

    @property
    def is_valid(self) -> bool:
        return self.start < self.end

    def contains(self, value: datetime) -> bool:
        return self.start <= to_utc(value) < self.end

    @classmethod
    def for_period(cls, period: str, now: datetime) -> DateWindow:
        start, end = period_bounds(period, now)
        return cls(start=start, end=end)

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class EventBundle:
    """Everything fetched for one user, ready for the analyzers."""

    dose_events: list[DoseEvent] = field(default_factory=list)
    vital_readings: list[VitalReading] = field(default_factory=list)
    check_ins: list[CheckIn] = field(default_factory=list)
    efficacy_reports: list[EfficacyReport] = field(default_factory=list)
    medication_names: dict[str, str] = field(default_factory=dict)
