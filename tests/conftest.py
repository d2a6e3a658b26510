"""Shared test fixtures for medlog analytics tests."""

from __future__ import annotations

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("JSON_EXPORT_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from medlog.domains.adherence.connectors.in_memory import InMemoryEventSource  # noqa: E402
from medlog.domains.adherence.domain_logic.event_models import (  # noqa: E402
    CheckIn,
    DoseEvent,
    EfficacyReport,
    VitalReading,
)

# Monday, 4 March 2024
START = datetime(2024, 3, 4, tzinfo=timezone.utc)
NOW = START + timedelta(days=14)

MEDICATION_NAMES = {"med-1": "Metformin", "med-2": "Lisinopril"}


# ---------------------------------------------------------------------------
# Sample export
# ---------------------------------------------------------------------------

def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def make_sample_export() -> dict[str, Any]:
    """Two weeks of records for one user, in export (camelCase) form.

    Metformin is taken every weekday morning and missed every weekend; on
    the missed days the user feels poor and reports a headache. Lisinopril is
    taken every evening.
    """
    logs, check_ins, vitals, efficacy = [], [], [], []
    for offset in range(14):
        day = START + timedelta(days=offset)
        weekend = day.weekday() >= 5
        morning = day + timedelta(hours=8)
        evening = day + timedelta(hours=20)
        logs.append({
            "id": f"log-m1-{offset}",
            "userId": "user-1",
            "medicationId": "med-1",
            "status": "missed" if weekend else "taken",
            "scheduledTime": _iso(morning),
            "takenTime": None if weekend else _iso(morning + timedelta(minutes=10)),
            "createdAt": _iso(morning + timedelta(minutes=10)),
        })
        logs.append({
            "id": f"log-m2-{offset}",
            "userId": "user-1",
            "medicationId": "med-2",
            "status": "taken",
            "scheduledTime": _iso(evening),
            "takenTime": _iso(evening),
            "createdAt": _iso(evening),
        })
        check_ins.append({
            "id": f"checkin-{offset}",
            "userId": "user-1",
            "feeling": "poor" if weekend else "good",
            "symptoms": [{"name": "Headache", "severity": 6, "bodyLocation": "head"}] if weekend else [],
            "sleepHours": 6.0 if weekend else 8.0,
            "stressLevel": 4,
            "exerciseMinutes": 10 if weekend else 30,
            "createdAt": _iso(day + timedelta(hours=12)),
        })
        vitals.append({
            "id": f"vital-{offset}",
            "userId": "user-1",
            "type": "heartRate",
            "values": {"heartRate": 80 if weekend else 68},
            "timestamp": _iso(day + timedelta(hours=7)),
        })

    for offset, rating in ((1, 5), (3, 4), (5, 2), (8, 5), (12, 4)):
        efficacy.append({
            "id": f"eff-{offset}",
            "userId": "user-1",
            "medicationId": "med-1",
            "overallRating": rating,
            "sideEffects": [{"effect": "nausea", "severity": 3}],
            "targetSymptoms": [{"name": "headache", "improvementRating": 4}],
            "timeToEffect": 45,
            "effectDuration": 6,
            "recordedAt": _iso(START + timedelta(days=offset, hours=13)),
        })

    # another user's record must never leak into user-1's reports
    logs.append({
        "userId": "user-2",
        "medicationId": "med-1",
        "status": "missed",
        "createdAt": _iso(START + timedelta(hours=9)),
    })

    return {
        "medications": [{"id": mid, "name": name} for mid, name in MEDICATION_NAMES.items()],
        "medicationLogs": logs,
        "vitalSigns": vitals,
        "healthCheckIns": check_ins,
        "efficacyRecords": efficacy,
    }


@pytest.fixture
def sample_export() -> dict[str, Any]:
    return make_sample_export()


@pytest.fixture
def export_file(tmp_path: Path, sample_export: dict[str, Any]) -> Path:
    """The sample export written to a temporary JSON file."""
    path = tmp_path / "export.json"
    path.write_text(json.dumps(sample_export))
    return path


@pytest.fixture
def sample_source(sample_export: dict[str, Any]) -> InMemoryEventSource:
    """An in-memory event source holding the sample export."""
    return InMemoryEventSource(
        dose_events=[DoseEvent.from_dict(r) for r in sample_export["medicationLogs"]],
        vital_readings=[VitalReading.from_dict(r) for r in sample_export["vitalSigns"]],
        check_ins=[CheckIn.from_dict(r) for r in sample_export["healthCheckIns"]],
        efficacy_reports=[EfficacyReport.from_dict(r) for r in sample_export["efficacyRecords"]],
        medication_names=dict(MEDICATION_NAMES),
    )
