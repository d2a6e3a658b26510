"""Tests for the YAML insight catalog."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from medlog.domains.adherence.domain_logic.adherence_calculator import analyze_adherence
from medlog.domains.adherence.domain_logic.analytics_models import Finding
from medlog.domains.adherence.domain_logic.calendar import TIME_BANDS
from medlog.domains.adherence.domain_logic.event_models import DoseEvent, DoseStatus
from medlog.domains.adherence.domain_logic.recommendations import adherence_insights, adherence_recommendations
from medlog.domains.adherence.insights.catalog import (
    InsightCatalogError,
    load_insight_catalog,
    load_insight_catalog_file,
)

RULE_CATEGORIES = [
    "keep_logging",
    "discuss_with_provider",
    "set_reminders",
    "worst_day_reminders",
    "problem_medication",
    "weekend_gap",
    "frequent_skips",
    "log_taken_doses",
    "consistent_routine",
    "pill_organizer",
    "overall_excellent",
    "overall_good",
    "overall_fair",
    "overall_low",
    "current_streak",
    "longest_streak",
    "day_of_week_gap",
    "time_of_day_gap",
    "low_adherence_medication",
    "missed_day",
    "missed_time",
    "preferred_time",
    "double_dosing",
    "weekday_consistency",
    "correlation_general",
    "correlation_caution",
    "top_correlation_positive",
    "top_correlation_negative",
    "onset_same_or_next_day",
    "onset_delayed",
    "offset_after_discontinuation",
    "efficacy_insufficient",
    "efficacy_track_timing",
    "efficacy_track_duration",
    "efficacy_discuss_side_effects",
    "efficacy_consistent_tracking",
    "health_insufficient",
    "specific_strongest",
    "strong_relationship",
    "moderate_relationship",
    "symptom_reduction",
    "emerging_relationship",
] + [f"{band}_routine" for band in TIME_BANDS]


@pytest.fixture
def catalog():
    return load_insight_catalog()


class TestPackagedCatalog:
    @pytest.mark.parametrize("category", RULE_CATEGORIES)
    def test_every_rule_category_has_text(self, catalog, category):
        assert catalog.has(category)

    def test_version(self, catalog):
        assert catalog.version == "1.0.0"

    def test_folded_text_is_single_line(self, catalog):
        text = catalog.render(Finding(category="pill_organizer"))
        assert "\n" not in text
        assert "  " not in text

    def test_rule_output_renders_completely(self, catalog):
        monday = datetime(2024, 3, 4, tzinfo=timezone.utc)
        statuses = ["taken"] * 6 + ["missed", "skipped", "missed", "missed", "taken", "missed"]
        events = [
            DoseEvent("", "user-1", "med-1", DoseStatus(s), monday + timedelta(days=i, hours=19))
            for i, s in enumerate(statuses)
        ]
        report = analyze_adherence(events, now=monday + timedelta(days=30), names={"med-1": "Metformin"})
        findings = adherence_recommendations(report) + adherence_insights(report)
        lines = catalog.render_all(findings)
        assert len(lines) == len(findings)
        assert any("Metformin" in line for line in lines)


class TestRender:
    def test_params_filled_and_capitalized(self, catalog):
        text = catalog.render(Finding(category="missed_time", params={"time_of_day": "evening"}))
        assert text.startswith("Evening doses")
        assert text[0].isupper()

    def test_unknown_category(self, catalog):
        assert catalog.render(Finding(category="no_such_thing")) is None

    def test_missing_params(self, catalog):
        assert catalog.render(Finding(category="overall_excellent")) is None

    def test_render_all_skips_unrenderable(self, catalog):
        lines = catalog.render_all([Finding(category="pill_organizer"), Finding(category="nope")])
        assert len(lines) == 1


class TestLoadFile:
    def test_custom_file(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text('version: "2"\ncategories:\n  hello: "hi {name}"\n')
        catalog = load_insight_catalog_file(path)
        assert catalog.version == "2"
        assert catalog.render(Finding(category="hello", params={"name": "there"})) == "Hi there"

    def test_missing_file(self, tmp_path):
        with pytest.raises(InsightCatalogError):
            load_insight_catalog_file(tmp_path / "absent.yaml")

    def test_no_categories(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("version: 1\n")
        with pytest.raises(InsightCatalogError):
            load_insight_catalog_file(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("categories: [unclosed\n")
        with pytest.raises(InsightCatalogError):
            load_insight_catalog_file(path)
