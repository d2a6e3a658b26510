"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings

from medlog.domains.adherence.domain_logic.analytics_models import (
    CO_OCCURRENCE_MIN_DAYS,
    DAY_OF_WEEK_MIN_SUPPORT,
    DOUBLE_DOSE_HOURS,
    EFFICACY_TREND_MIN_RECORDS,
    INSIGHT_MIN_LOGS,
    MIN_PHI,
    RECOMMENDATION_MIN_LOGS,
    TIME_OF_DAY_MIN_SUPPORT,
    WEEKLY_TREND_DELTA,
    WEEKLY_TREND_MIN_WEEKS,
    AnalyticsThresholds,
)


class Settings(BaseSettings):
    """Medlog analytics configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    medlog_log_level: str = "info"

    # Insight text generation. "none" disables the generator entirely and
    # every insight list comes from the canned catalog.
    llm_provider: Literal["anthropic", "openai", "mock", "none"] = "anthropic"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    insights_enabled: bool = True
    insight_max_tokens: int = 600
    insight_temperature: float = 0.4
    insight_timeout_seconds: float = 20.0
    insight_max_retries: int = 1

    # Privacy
    default_privacy_mode: Literal["strict", "standard", "explicit"] = "strict"

    # Connectors
    json_export_path: str = ""

    # Analytics policy
    dow_min_support: int = DAY_OF_WEEK_MIN_SUPPORT
    tod_min_support: int = TIME_OF_DAY_MIN_SUPPORT
    cooccurrence_min_days: int = CO_OCCURRENCE_MIN_DAYS
    double_dose_hours: float = DOUBLE_DOSE_HOURS
    min_phi: float = MIN_PHI
    weekly_trend_min_weeks: int = WEEKLY_TREND_MIN_WEEKS
    weekly_trend_delta: float = WEEKLY_TREND_DELTA
    efficacy_trend_min_records: int = EFFICACY_TREND_MIN_RECORDS
    recommendation_min_logs: int = RECOMMENDATION_MIN_LOGS
    insight_min_logs: int = INSIGHT_MIN_LOGS

    def thresholds(self) -> AnalyticsThresholds:
        """Freeze the policy fields into the value object the analyzers take."""
        return AnalyticsThresholds(
            dow_min_support=self.dow_min_support,
            tod_min_support=self.tod_min_support,
            cooccurrence_min_days=self.cooccurrence_min_days,
            double_dose_hours=self.double_dose_hours,
            min_phi=self.min_phi,
            weekly_trend_min_weeks=self.weekly_trend_min_weeks,
            weekly_trend_delta=self.weekly_trend_delta,
            efficacy_trend_min_records=self.efficacy_trend_min_records,
            recommendation_min_logs=self.recommendation_min_logs,
            insight_min_logs=self.insight_min_logs,
        )


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
