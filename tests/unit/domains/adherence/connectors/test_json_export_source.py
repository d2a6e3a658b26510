"""Tests for the JSON export connector."""

from __future__ import annotations

import asyncio
import json

import pytest

from medlog.domains.adherence.connectors import EventSource
from medlog.domains.adherence.connectors.json_export import (
    JsonExportEventSource,
    JsonExportParseError,
    parse_json_export,
)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestParseJsonExport:
    def test_parses_all_collections(self, export_file):
        source = parse_json_export(export_file)
        assert len(_run(source.get_dose_events("user-1"))) == 28
        assert len(_run(source.get_dose_events("user-2"))) == 1
        assert len(_run(source.get_check_ins("user-1"))) == 14
        assert _run(source.get_medication_names("user-1")) == {"med-1": "Metformin", "med-2": "Lisinopril"}
        assert source.data_source == "json_export"

    def test_missing_collections_are_empty(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("{}")
        source = parse_json_export(path)
        assert _run(source.get_dose_events("user-1")) == []

    def test_mongo_style_ids(self, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"medications": [{"_id": "abc", "name": "Aspirin"}]}))
        assert _run(parse_json_export(path).get_medication_names("user-1")) == {"abc": "Aspirin"}

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(JsonExportParseError, match="not valid JSON"):
            parse_json_export(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(JsonExportParseError, match="Cannot read"):
            parse_json_export(tmp_path / "absent.json")

    def test_non_object_document(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]")
        with pytest.raises(JsonExportParseError, match="must be a JSON object"):
            parse_json_export(path)

    def test_collection_not_a_list(self, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"medicationLogs": {"status": "taken"}}))
        with pytest.raises(JsonExportParseError, match="must be a list"):
            parse_json_export(path)

    def test_bad_record(self, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"medicationLogs": [{"userId": "u", "status": "taken"}]}))
        with pytest.raises(JsonExportParseError, match="bad record"):
            parse_json_export(path)

    def test_non_object_record(self, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"vitalSigns": ["oops"]}))
        with pytest.raises(JsonExportParseError, match="must be objects"):
            parse_json_export(path)


class TestJsonExportEventSource:
    def test_connected_source(self, export_file):
        source = JsonExportEventSource(str(export_file))
        assert isinstance(source, EventSource)
        assert source.is_connected()
        assert len(_run(source.get_efficacy_reports("user-1"))) == 5
        assert len(_run(source.get_vital_readings("user-1"))) == 14
        provenance = source.get_provenance()
        assert provenance["data_source"] == "json_export"
        assert provenance["export_path"] == str(export_file)

    def test_missing_path_not_connected(self, tmp_path):
        assert not JsonExportEventSource("").is_connected()
        assert not JsonExportEventSource(str(tmp_path / "absent.json")).is_connected()

    def test_bad_file_logs_and_returns_empty(self, tmp_path, caplog):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        source = JsonExportEventSource(str(path))
        assert source.is_connected()
        with caplog.at_level("ERROR"):
            assert _run(source.get_dose_events("user-1")) == []
        assert "Failed to parse JSON export" in caplog.text
        assert not source.is_connected()
