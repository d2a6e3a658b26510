"""Event source connectors — abstraction layer for stored event retrieval."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from medlog.domains.adherence.domain_logic.event_models import (
    CheckIn,
    DateWindow,
    DoseEvent,
    EfficacyReport,
    VitalReading,
)


@runtime_checkable
class EventSource(Protocol):
    """Abstract interface for retrieving a user's logged events.

    The analytics service calls these methods without knowing whether events
    come from a database, an export file or an in-memory fixture. Each method
    returns events ordered oldest first; ``window`` is half-open.
    """

    async def get_dose_events(
        self,
        user_id: str,
        medication_id: str | None = None,
        window: DateWindow | None = None,
    ) -> list[DoseEvent]:
        """Dose outcomes (taken / missed / skipped)."""
        ...

    async def get_vital_readings(self, user_id: str, window: DateWindow | None = None) -> list[VitalReading]:
        """Vital sign readings."""
        ...

    async def get_check_ins(self, user_id: str, window: DateWindow | None = None) -> list[CheckIn]:
        """Daily health check-ins with symptoms and lifestyle fields."""
        ...

    async def get_efficacy_reports(
        self,
        user_id: str,
        medication_id: str | None = None,
        window: DateWindow | None = None,
    ) -> list[EfficacyReport]:
        """Medication efficacy ratings."""
        ...

    async def get_medication_names(self, user_id: str) -> dict[str, str]:
        """Display names keyed by medication id."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the active data source: 'json_export' or 'memory'."""
        ...

    def get_provenance(self) -> dict[str, str]:
        """Return provenance metadata suitable for merging into insight context."""
        ...
