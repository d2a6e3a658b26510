"""Tests for parsing generated insight text and enforcing guardrails."""

from __future__ import annotations

from medlog.core.llm.response import check_guardrails, extract_insights, sanitize_insights


class TestExtractInsights:
    def test_json_object(self):
        text = '{"insights": ["First insight here.", "Second insight here."]}'
        assert extract_insights(text) == ["First insight here.", "Second insight here."]

    def test_bare_json_list(self):
        assert extract_insights('["One", " ", "Two"]') == ["One", "Two"]

    def test_fenced_json(self):
        text = '```json\n{"insights": ["Fenced insight."]}\n```'
        assert extract_insights(text) == ["Fenced insight."]

    def test_numbered_lines(self):
        text = "Here you go:\n1. Take doses with breakfast.\n2) Set an evening alarm."
        assert extract_insights(text) == ["Take doses with breakfast.", "Set an evening alarm."]

    def test_bullet_lines(self):
        text = "Summary\n- Weekends are the weak spot.\n* Mornings look strong."
        assert extract_insights(text) == ["Weekends are the weak spot.", "Mornings look strong."]

    def test_long_lines_only(self):
        text = "Short\nThis line is long enough to count as an insight.\n```"
        assert extract_insights(text) == ["This line is long enough to count as an insight."]

    def test_short_text_kept_whole(self):
        assert extract_insights("  Keep going  ") == ["Keep going"]

    def test_empty(self):
        assert extract_insights("") == []
        assert extract_insights("   \n ") == []


class TestGuardrails:
    def test_clean_text_passes(self):
        check = check_guardrails("Evening doses are missed most often.")
        assert check.passed
        assert check.flags == []

    def test_prescription_change_flagged(self):
        check = check_guardrails("You should Double Your Dose on Mondays.")
        assert not check.passed
        assert "changing prescriptions" in check.flags[0]

    def test_diagnosis_flagged(self):
        assert not check_guardrails("This is a sign of diabetes.").passed

    def test_sanitize_drops_only_flagged_lines(self):
        lines = ["Keep a steady routine.", "Stop taking it on weekends.", "You will develop a habit."]
        kept, check = sanitize_insights(lines)
        assert kept == ["Keep a steady routine."]
        assert not check.passed
        assert len(check.flags) == 2

    def test_sanitize_all_clean(self):
        kept, check = sanitize_insights(["Fine.", "Also fine."])
        assert kept == ["Fine.", "Also fine."]
        assert check.passed
