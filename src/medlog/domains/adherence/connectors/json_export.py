"""JSON export event source — reads a medication tracker data export.

The export is one JSON document with a list per collection::

    {
      "medications": [{"id": "med-1", "name": "Metformin"}],
      "medicationLogs": [{"userId": "u1", "medicationId": "med-1", "status": "taken", ...}],
      "vitalSigns": [...],
      "healthCheckIns": [...],
      "efficacyRecords": [...]
    }

Missing collections are treated as empty.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from medlog.domains.adherence.connectors.in_memory import InMemoryEventSource
from medlog.domains.adherence.domain_logic.event_models import (
    CheckIn,
    DateWindow,
    DoseEvent,
    EfficacyReport,
    EventParseError,
    VitalReading,
)

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "medicationLogs": DoseEvent,
    "vitalSigns": VitalReading,
    "healthCheckIns": CheckIn,
    "efficacyRecords": EfficacyReport,
}


class JsonExportParseError(Exception):
    """Raised when the export file cannot be read or a record is malformed."""


def parse_json_export(path: str | Path) -> InMemoryEventSource:
    """Parse an export file into an in-memory source. Raises on any bad record."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data: Any = json.load(f)
    except OSError as exc:
        raise JsonExportParseError(f"Cannot read export {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise JsonExportParseError(f"Export {path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise JsonExportParseError(f"Export {path} must be a JSON object")

    parsed: dict[str, list] = {}
    for key, model in COLLECTIONS.items():
        records = data.get(key) or []
        if not isinstance(records, list):
            raise JsonExportParseError(f"Export {path}: '{key}' must be a list")
        try:
            parsed[key] = [model.from_dict(record) for record in records]
        except EventParseError as exc:
            raise JsonExportParseError(f"Export {path}: bad record in '{key}': {exc}") from exc
        except AttributeError as exc:
            raise JsonExportParseError(f"Export {path}: '{key}' entries must be objects") from exc

    names = {}
    for medication in data.get("medications") or []:
        medication_id = medication.get("id") or medication.get("_id")
        if medication_id and medication.get("name"):
            names[str(medication_id)] = str(medication["name"])

    logger.info(
        "Parsed export %s: %d dose logs, %d vitals, %d check-ins, %d efficacy reports",
        path,
        len(parsed["medicationLogs"]),
        len(parsed["vitalSigns"]),
        len(parsed["healthCheckIns"]),
        len(parsed["efficacyRecords"]),
    )
    return InMemoryEventSource(
        dose_events=parsed["medicationLogs"],
        vital_readings=parsed["vitalSigns"],
        check_ins=parsed["healthCheckIns"],
        efficacy_reports=parsed["efficacyRecords"],
        medication_names=names,
        source_label="json_export",
        source_note="Data from medication tracker JSON export.",
    )


class JsonExportEventSource:
    """EventSource backed by a JSON export file.

    Usage::

        source = JsonExportEventSource("/path/to/export.json")
        if source.is_connected():
            doses = await source.get_dose_events("user-1")
    """

    def __init__(self, export_path: str) -> None:
        self._export_path = export_path
        self._loaded: InMemoryEventSource | None = None
        self._connected = bool(export_path) and Path(export_path).exists()

    def _source(self) -> InMemoryEventSource:
        if self._loaded is None:
            try:
                self._loaded = parse_json_export(self._export_path)
            except JsonExportParseError:
                logger.exception("Failed to parse JSON export")
                self._connected = False
                self._loaded = InMemoryEventSource(source_label=self.data_source)
        return self._loaded

    async def get_dose_events(
        self,
        user_id: str,
        medication_id: str | None = None,
        window: DateWindow | None = None,
    ) -> list[DoseEvent]:
        return await self._source().get_dose_events(user_id, medication_id, window)

    async def get_vital_readings(self, user_id: str, window: DateWindow | None = None) -> list[VitalReading]:
        return await self._source().get_vital_readings(user_id, window)

    async def get_check_ins(self, user_id: str, window: DateWindow | None = None) -> list[CheckIn]:
        return await self._source().get_check_ins(user_id, window)

    async def get_efficacy_reports(
        self,
        user_id: str,
        medication_id: str | None = None,
        window: DateWindow | None = None,
    ) -> list[EfficacyReport]:
        return await self._source().get_efficacy_reports(user_id, medication_id, window)

    async def get_medication_names(self, user_id: str) -> dict[str, str]:
        return await self._source().get_medication_names(user_id)

    def is_connected(self) -> bool:
        """Check if the export file exists and parsed cleanly."""
        return self._connected

    @property
    def data_source(self) -> str:
        return "json_export"

    def get_provenance(self) -> dict[str, str]:
        return {
            "data_source": self.data_source,
            "data_source_note": "Data from medication tracker JSON export.",
            "export_path": self._export_path,
        }
