"""Event source over caller-supplied event collections."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, TypeVar

from medlog.domains.adherence.domain_logic.event_models import (
    CheckIn,
    DateWindow,
    DoseEvent,
    EfficacyReport,
    VitalReading,
)

logger = logging.getLogger(__name__)

E = TypeVar("E")


def _select(
    events: Iterable[E],
    user_id: str,
    timestamp: Callable[[E], datetime],
    window: DateWindow | None,
    medication_id: str | None = None,
) -> list[E]:
    selected = [
        e
        for e in events
        if e.user_id == user_id
        and (medication_id is None or getattr(e, "medication_id", None) == medication_id)
        and (window is None or window.contains(timestamp(e)))
    ]
    selected.sort(key=timestamp)
    return selected


class InMemoryEventSource:
    """EventSource over lists held in memory.

    Usage::

        source = InMemoryEventSource(dose_events=events)
        doses = await source.get_dose_events("user-1", window=window)
    """

    def __init__(
        self,
        dose_events: Iterable[DoseEvent] = (),
        vital_readings: Iterable[VitalReading] = (),
        check_ins: Iterable[CheckIn] = (),
        efficacy_reports: Iterable[EfficacyReport] = (),
        medication_names: dict[str, str] | None = None,
        source_label: str = "memory",
        source_note: str = "",
    ) -> None:
        self._dose_events = list(dose_events)
        self._vital_readings = list(vital_readings)
        self._check_ins = list(check_ins)
        self._efficacy_reports = list(efficacy_reports)
        self._medication_names = dict(medication_names or {})
        self._source_label = source_label
        self._source_note = source_note

    async def get_dose_events(
        self,
        user_id: str,
        medication_id: str | None = None,
        window: DateWindow | None = None,
    ) -> list[DoseEvent]:
        return _select(self._dose_events, user_id, lambda e: e.created_at, window, medication_id)

    async def get_vital_readings(self, user_id: str, window: DateWindow | None = None) -> list[VitalReading]:
        return _select(self._vital_readings, user_id, lambda r: r.timestamp, window)

    async def get_check_ins(self, user_id: str, window: DateWindow | None = None) -> list[CheckIn]:
        return _select(self._check_ins, user_id, lambda c: c.created_at, window)

    async def get_efficacy_reports(
        self,
        user_id: str,
        medication_id: str | None = None,
        window: DateWindow | None = None,
    ) -> list[EfficacyReport]:
        return _select(self._efficacy_reports, user_id, lambda r: r.recorded_at, window, medication_id)

    async def get_medication_names(self, user_id: str) -> dict[str, str]:
        return dict(self._medication_names)

    @property
    def data_source(self) -> str:
        return self._source_label

    def get_provenance(self) -> dict[str, str]:
        note = self._source_note or (
            f"In-memory events ({len(self._dose_events)} doses, {len(self._check_ins)} check-ins, "
            f"{len(self._efficacy_reports)} efficacy reports)."
        )
        return {"data_source": self.data_source, "data_source_note": note}
