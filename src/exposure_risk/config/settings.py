"""Application settings loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from exposure_risk.risk.config import RiskCalculationConfig, ScoreMappingConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Nested values use a double underscore, e.g.
    ``RISK_CALCULATION__DETECTION_TIMEOUT=PT2M``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json: bool | None = None

    # Persistence
    risk_state_path: Path | None = None

    # Observability
    metrics_enabled: bool = True
    tracing_enabled: bool = False

    # Risk Calculation
    risk_calculation: RiskCalculationConfig = RiskCalculationConfig()
    score_mapping: ScoreMappingConfig = ScoreMappingConfig()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
