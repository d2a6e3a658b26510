"""Tests for the in-memory event source."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from medlog.domains.adherence.connectors import EventSource
from medlog.domains.adherence.connectors.in_memory import InMemoryEventSource
from medlog.domains.adherence.domain_logic.event_models import DateWindow, DoseEvent

START = datetime(2024, 3, 4, tzinfo=timezone.utc)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _dose(day: int, medication_id: str = "med-1", user_id: str = "user-1") -> DoseEvent:
    return DoseEvent(
        id=f"{user_id}-{medication_id}-{day}",
        user_id=user_id,
        medication_id=medication_id,
        status="taken",
        created_at=START + timedelta(days=day),
    )


def test_satisfies_protocol():
    assert isinstance(InMemoryEventSource(), EventSource)


def test_filters_user_and_sorts():
    source = InMemoryEventSource(dose_events=[_dose(2), _dose(0), _dose(1, user_id="user-2")])
    doses = _run(source.get_dose_events("user-1"))
    assert [d.id for d in doses] == ["user-1-med-1-0", "user-1-med-1-2"]


def test_filters_medication():
    source = InMemoryEventSource(dose_events=[_dose(0), _dose(1, "med-2")])
    doses = _run(source.get_dose_events("user-1", medication_id="med-2"))
    assert [d.medication_id for d in doses] == ["med-2"]


def test_window_is_half_open():
    source = InMemoryEventSource(dose_events=[_dose(0), _dose(1), _dose(2)])
    window = DateWindow(START, START + timedelta(days=2))
    doses = _run(source.get_dose_events("user-1", window=window))
    assert len(doses) == 2


def test_sample_source_other_collections(sample_source):
    assert len(_run(sample_source.get_check_ins("user-1"))) == 14
    assert len(_run(sample_source.get_vital_readings("user-1"))) == 14
    assert len(_run(sample_source.get_efficacy_reports("user-1", medication_id="med-1"))) == 5
    assert _run(sample_source.get_efficacy_reports("user-1", medication_id="med-2")) == []
    assert _run(sample_source.get_medication_names("user-1"))["med-1"] == "Metformin"


def test_provenance():
    source = InMemoryEventSource(dose_events=[_dose(0)])
    provenance = source.get_provenance()
    assert provenance["data_source"] == "memory"
    assert "1 doses" in provenance["data_source_note"]
