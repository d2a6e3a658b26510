"""Tests for environment-driven settings."""

from __future__ import annotations

from medlog.core.config.settings import Settings, get_settings
from medlog.domains.adherence.domain_logic.analytics_models import DEFAULT_THRESHOLDS, AnalyticsThresholds


def test_defaults(monkeypatch):
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    settings = Settings()
    assert settings.llm_provider == "anthropic"
    assert settings.default_privacy_mode == "strict"
    assert settings.insights_enabled is True
    assert settings.medlog_log_level == "info"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DOW_MIN_SUPPORT", "4")
    monkeypatch.setenv("DOUBLE_DOSE_HOURS", "6.5")
    monkeypatch.setenv("DEFAULT_PRIVACY_MODE", "standard")
    settings = get_settings()
    assert settings.llm_provider == "mock"
    assert settings.dow_min_support == 4
    assert settings.double_dose_hours == 6.5
    assert settings.default_privacy_mode == "standard"


def test_thresholds_value_object(monkeypatch):
    monkeypatch.setenv("MIN_PHI", "0.3")
    thresholds = Settings().thresholds()
    assert isinstance(thresholds, AnalyticsThresholds)
    assert thresholds.min_phi == 0.3
    assert thresholds.tod_min_support == DEFAULT_THRESHOLDS.tod_min_support


def test_default_thresholds_match():
    assert Settings().thresholds() == DEFAULT_THRESHOLDS
