"""Engine configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ASO Combo Engine"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # KPI registry
    kpi_registry_version: str = "v1"

    # Combo generation
    combo_min_length: int = 2
    combo_max_length: int = 4
    max_combos_per_source: int = 500
    recommended_combo_limit: int = 10

    # Platform character limits (primary = App Store, secondary = Play Store)
    primary_title_char_limit: int = 30
    primary_subtitle_char_limit: int = 30
    secondary_title_char_limit: int = 50
    secondary_subtitle_char_limit: int = 80
    keywords_char_limit: int = 100

    # Multi-locale coverage analysis
    locale_underutilized_ratio: float = 0.5
    locale_wasted_duplicate_threshold: int = 3
    primary_locale_utilization_target: float = 80.0
    max_locale_recommendations_per_rule: int = 5

    def get_char_limits(self, platform: str) -> tuple[int, int]:
        """Return (title, subtitle) character limits for a platform."""
        if platform == "secondary":
            return self.secondary_title_char_limit, self.secondary_subtitle_char_limit
        return self.primary_title_char_limit, self.primary_subtitle_char_limit

    @property
    def locale_char_budget(self) -> int:
        """Characters indexable per locale (title + subtitle + keywords)."""
        return (
            self.primary_title_char_limit
            + self.primary_subtitle_char_limit
            + self.keywords_char_limit
        )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("max_combos_per_source", "recommended_combo_limit")
    @classmethod
    def _require_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @model_validator(mode="after")
    def _check_combo_lengths(self) -> "Settings":
        if not 2 <= self.combo_min_length <= self.combo_max_length <= 4:
            raise ValueError(
                "combo lengths must satisfy 2 <= combo_min_length <= combo_max_length <= 4",
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
